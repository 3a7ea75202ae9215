"""Data models for resume-pdf."""

from resume_pdf.models.export import (
    ExportJob,
    ExportResult,
    ExportStage,
    PrintMargin,
    PrintOptions,
    length_to_inches,
)

__all__ = [
    "ExportJob",
    "ExportResult",
    "ExportStage",
    "PrintMargin",
    "PrintOptions",
    "length_to_inches",
]
