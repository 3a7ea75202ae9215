"""Résumé export pipeline: load the served page in headless Chrome and print it."""

import asyncio
import contextlib
import os
import tempfile
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from pathlib import Path

import httpx

from resume_pdf.browser import (
    BrowserSession,
    CDPClient,
    CDPError,
    CDPNavigationError,
    CDPTimeoutError,
)
from resume_pdf.config import settings
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
from resume_pdf.models import ExportJob, ExportResult, ExportStage
from resume_pdf.utils.logging import get_logger

logger = get_logger(__name__)

# Chrome net errors that mean nothing is listening at the source URL
CONNECTION_ERRORS = frozenset(
    {
        "net::ERR_CONNECTION_REFUSED",
        "net::ERR_CONNECTION_RESET",
        "net::ERR_CONNECTION_CLOSED",
        "net::ERR_CONNECTION_TIMED_OUT",
        "net::ERR_ADDRESS_UNREACHABLE",
        "net::ERR_NAME_NOT_RESOLVED",
        "net::ERR_INTERNET_DISCONNECTED",
    }
)

BrowserFactory = Callable[[], AbstractAsyncContextManager[BrowserSession]]


async def probe_source(url: str, timeout: float) -> None:
    """
    Check that something answers HTTP at ``url``.

    Any response counts, including error statuses.

    Raises:
        SourceConnectionError: If the connection fails
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        try:
            response = await client.get(url)
        except httpx.TransportError as e:
            raise SourceConnectionError(f"Cannot reach {url}: {e}") from e

    logger.debug("Source reachable", url=url, status=response.status_code)


def write_pdf(output_path: Path, data: bytes) -> None:
    """
    Atomically replace ``output_path`` with ``data``.

    The bytes go to a temporary file in the same directory which is then
    renamed over the destination, so an existing file is never truncated.
    The parent directory must already exist.

    Raises:
        WriteError: If the file cannot be written
    """
    directory = output_path.parent
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=directory
        )
    except OSError as e:
        raise WriteError(f"Cannot create a file in {directory}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, output_path)
    except OSError as e:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise WriteError(f"Cannot write {output_path}: {e}") from e


class PdfExporter:
    """Runs a single export job through launch, navigate, print and write."""

    def __init__(
        self,
        job: ExportJob,
        navigation_timeout: float | None = None,
        check_source: bool | None = None,
        browser_factory: BrowserFactory | None = None,
    ) -> None:
        self.job = job
        self.navigation_timeout = (
            navigation_timeout
            if navigation_timeout is not None
            else settings.navigation_timeout_seconds
        )
        self.check_source = check_source if check_source is not None else settings.check_source
        self.browser_factory: BrowserFactory = browser_factory or BrowserSession
        self.stage = ExportStage.CONNECT

    async def run(self) -> ExportResult:
        """
        Export the page to PDF.

        Returns:
            ExportResult describing the written file

        Raises:
            ExportError: Tagged with the stage that failed
        """
        started_at = datetime.now(UTC)
        logger.info(
            "Starting export",
            url=self.job.source_url,
            output_path=str(self.job.output_path),
        )

        try:
            if self.check_source:
                self.stage = ExportStage.CONNECT
                await probe_source(self.job.source_url, settings.probe_timeout_seconds)

            self.stage = ExportStage.LAUNCH
            try:
                async with self.browser_factory() as browser:
                    pdf = await self._render(browser.cdp)

                    self.stage = ExportStage.WRITE
                    write_pdf(self.job.output_path, pdf)
            except CDPError as e:
                # Only tab setup can leak raw protocol errors here
                raise BrowserLaunchError(f"Failed to open a browser tab: {e}") from e

        except ExportError as e:
            logger.error("Export failed", stage=e.stage.value, error=e.message)
            raise

        completed_at = datetime.now(UTC)
        result = ExportResult(
            source_url=self.job.source_url,
            output_path=self.job.output_path,
            size_bytes=len(pdf),
            started_at=started_at,
            completed_at=completed_at,
            execution_time_ms=int((completed_at - started_at).total_seconds() * 1000),
        )
        logger.info(
            "Export completed",
            output_path=str(result.output_path),
            size_bytes=result.size_bytes,
            execution_time_ms=result.execution_time_ms,
        )
        return result

    async def _render(self, cdp: CDPClient) -> bytes:
        """Navigate the tab to the source page and print it."""
        url = self.job.source_url

        self.stage = ExportStage.NAVIGATE
        try:
            await cdp.navigate(url, timeout=self.navigation_timeout)
        except CDPNavigationError as e:
            if e.error_text in CONNECTION_ERRORS:
                raise SourceConnectionError(f"Cannot reach {url}: {e.error_text}") from e
            raise NavigationError(f"Failed to load {url}: {e.error_text}") from e
        except CDPTimeoutError as e:
            raise NavigationTimeoutError(
                f"Timed out after {self.navigation_timeout}s loading {url}"
            ) from e
        except CDPError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e

        self.stage = ExportStage.PRINT
        try:
            return await cdp.print_to_pdf(self.job.print_options.to_cdp_params())
        except CDPError as e:
            raise PrintError(f"Failed to print {url}: {e}") from e


async def export_resume_to_pdf(
    job: ExportJob,
    *,
    deadline: float | None = None,
    navigation_timeout: float | None = None,
    check_source: bool | None = None,
    browser_factory: BrowserFactory | None = None,
) -> ExportResult:
    """
    Print the page at ``job.source_url`` to ``job.output_path``.

    Args:
        job: What to export and where
        deadline: Optional bound on the whole run in seconds
        navigation_timeout: Page load timeout, defaults to configuration
        check_source: Probe the URL over HTTP before launching Chrome
        browser_factory: Returns the scoped browser, defaults to BrowserSession

    Returns:
        ExportResult describing the written file

    Raises:
        ExportError: Tagged with the stage that failed
    """
    exporter = PdfExporter(
        job,
        navigation_timeout=navigation_timeout,
        check_source=check_source,
        browser_factory=browser_factory,
    )

    try:
        async with asyncio.timeout(deadline):
            return await exporter.run()
    except TimeoutError as e:
        if deadline is None:
            raise
        logger.error("Export deadline elapsed", stage=exporter.stage.value, deadline=deadline)
        raise ExportTimeoutError(
            f"Export did not finish within {deadline}s", stage=exporter.stage
        ) from e


def export_resume_to_pdf_sync(
    job: ExportJob,
    *,
    deadline: float | None = None,
    navigation_timeout: float | None = None,
    check_source: bool | None = None,
) -> ExportResult:
    """Blocking wrapper around :func:`export_resume_to_pdf`."""
    return asyncio.run(
        export_resume_to_pdf(
            job,
            deadline=deadline,
            navigation_timeout=navigation_timeout,
            check_source=check_source,
        )
    )
