"""Export errors tagged with the pipeline stage that failed."""

from resume_pdf.models import ExportStage


class ExportError(Exception):
    """
    Base class for export failures.

    Attributes:
        stage: Pipeline stage that failed
        message: Error description
    """

    stage: ExportStage = ExportStage.LAUNCH

    def __init__(self, message: str, stage: ExportStage | None = None) -> None:
        if stage is not None:
            self.stage = stage
        self.message = message
        super().__init__(f"[{self.stage.value}] {message}")


class BrowserLaunchError(ExportError):
    """The browser could not be started."""

    stage = ExportStage.LAUNCH


class SourceConnectionError(ExportError):
    """The source URL is unreachable."""

    stage = ExportStage.CONNECT


class NavigationError(ExportError):
    """The page failed to load."""

    stage = ExportStage.NAVIGATE


class NavigationTimeoutError(NavigationError):
    """The page did not finish loading in time."""


class PrintError(ExportError):
    """The browser failed to produce the PDF."""

    stage = ExportStage.PRINT


class WriteError(ExportError):
    """The PDF could not be written to the output path."""

    stage = ExportStage.WRITE


class ExportTimeoutError(ExportError):
    """The overall export deadline elapsed."""
