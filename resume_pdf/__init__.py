"""Export the résumé page of a locally served site to PDF."""

from resume_pdf.errors import (
    BrowserLaunchError,
    ExportError,
    ExportTimeoutError,
    NavigationError,
    NavigationTimeoutError,
    PrintError,
    SourceConnectionError,
    WriteError,
)
from resume_pdf.exporter import export_resume_to_pdf, export_resume_to_pdf_sync
from resume_pdf.models import ExportJob, ExportResult, ExportStage, PrintMargin, PrintOptions

__version__ = "0.1.0"

__all__ = [
    "BrowserLaunchError",
    "ExportError",
    "ExportTimeoutError",
    "NavigationError",
    "NavigationTimeoutError",
    "PrintError",
    "SourceConnectionError",
    "WriteError",
    "export_resume_to_pdf",
    "export_resume_to_pdf_sync",
    "ExportJob",
    "ExportResult",
    "ExportStage",
    "PrintMargin",
    "PrintOptions",
]
