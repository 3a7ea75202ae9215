"""Scoped browser session: one headless Chrome with one tab."""

from types import TracebackType

from resume_pdf.browser.cdp import CDPClient
from resume_pdf.browser.chrome import ChromeLauncher, ChromeProcess
from resume_pdf.config import settings
from resume_pdf.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserSession:
    """
    Owns a headless Chrome process and a connected tab.

    Use as an async context manager; the tab and the process are released
    on every exit path::

        async with BrowserSession() as browser:
            await browser.cdp.navigate(url)
    """

    def __init__(
        self,
        launcher: ChromeLauncher | None = None,
        command_timeout: float | None = None,
    ) -> None:
        self.launcher = launcher or ChromeLauncher()
        self.command_timeout = (
            command_timeout if command_timeout is not None else settings.command_timeout_seconds
        )
        self.chrome_process: ChromeProcess | None = None
        self.cdp_client: CDPClient | None = None

    @property
    def cdp(self) -> CDPClient:
        """Connected CDP client for the session's tab."""
        if not self.cdp_client:
            raise RuntimeError("Browser session not started")
        return self.cdp_client

    async def start(self) -> None:
        """Launch Chrome, open a tab and connect to it."""
        self.chrome_process = await self.launcher.launch()

        try:
            self.cdp_client = CDPClient(
                self.chrome_process.devtools_port,
                command_timeout=self.command_timeout,
            )
            await self.cdp_client.open_tab()
            await self.cdp_client.connect()

            logger.info(
                "Browser session started",
                pid=self.chrome_process.pid,
                port=self.chrome_process.devtools_port,
            )

        except BaseException:
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the browser session and release resources."""
        logger.info("Stopping browser session")

        # Disconnect CDP and close the tab
        if self.cdp_client:
            try:
                await self.cdp_client.disconnect()
            except Exception as e:
                logger.error("Error disconnecting CDP", error=str(e))
            try:
                await self.cdp_client.close_tab()
            except Exception as e:
                logger.error("Error closing tab", error=str(e))
            self.cdp_client = None

        # Terminate Chrome
        if self.chrome_process:
            await self.launcher.terminate(self.chrome_process)
            self.chrome_process = None

        logger.info("Browser session stopped")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
