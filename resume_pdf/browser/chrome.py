"""Chrome process management."""

import asyncio
import shutil
import tempfile
from asyncio.subprocess import Process
from dataclasses import dataclass
from pathlib import Path

from resume_pdf.config import settings
from resume_pdf.errors import BrowserLaunchError
from resume_pdf.utils.logging import get_logger

logger = get_logger(__name__)

DEVTOOLS_PORT_FILE = "DevToolsActivePort"
STDERR_LOG_FILE = "chrome-stderr.log"


@dataclass
class ChromeProcess:
    """Represents a running headless Chrome process."""

    process: Process
    devtools_port: int
    user_data_dir: str

    @property
    def pid(self) -> int:
        return self.process.pid


def resolve_chrome_binary(binary: str) -> str | None:
    """Resolve a Chrome binary name or path to an executable path."""
    if Path(binary).is_file():
        return binary
    return shutil.which(binary)


def _read_stderr(user_data_dir: str) -> str:
    path = Path(user_data_dir) / STDERR_LOG_FILE
    try:
        return path.read_text(errors="replace").strip()
    except OSError:
        return ""


class ChromeLauncher:
    """Manages headless Chrome process lifecycle."""

    def __init__(
        self,
        chrome_binary: str | None = None,
        launch_timeout: float | None = None,
        sandbox: bool | None = None,
    ) -> None:
        self.chrome_binary = chrome_binary or settings.chrome_binary
        self.sandbox = sandbox if sandbox is not None else settings.chrome_sandbox
        self.launch_timeout = (
            launch_timeout if launch_timeout is not None else settings.launch_timeout_seconds
        )

    def _build_chrome_args(self, binary: str, user_data_dir: str) -> list[str]:
        """Build Chrome command line arguments."""
        args = [
            binary,
            "--headless=new",
            # Chrome picks a free port and publishes it in DevToolsActivePort
            "--remote-debugging-port=0",
            f"--user-data-dir={user_data_dir}",
            # Disable features that interfere with automation
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-background-networking",
            "--disable-client-side-phishing-detection",
            "--disable-default-apps",
            "--disable-extensions",
            "--disable-hang-monitor",
            "--disable-popup-blocking",
            "--disable-prompt-on-repost",
            "--disable-sync",
            "--disable-translate",
            "--metrics-recording-only",
            "--safebrowsing-disable-auto-update",
            # Performance
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--hide-scrollbars",
            "--mute-audio",
            "--lang=en-US",
            "about:blank",
        ]

        if not self.sandbox:
            # Chrome refuses to start as root with the sandbox enabled
            args.insert(1, "--no-sandbox")

        return args

    async def _wait_for_devtools_port(self, process: Process, user_data_dir: str) -> int:
        """Wait for Chrome to publish its DevTools port."""
        port_file = Path(user_data_dir) / DEVTOOLS_PORT_FILE
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.launch_timeout

        while loop.time() < deadline:
            if process.returncode is not None:
                raise BrowserLaunchError(
                    f"Chrome exited with code {process.returncode}: "
                    f"{_read_stderr(user_data_dir)}"
                )

            if port_file.exists():
                lines = port_file.read_text().splitlines()
                if lines and lines[0].strip().isdigit():
                    return int(lines[0])

            await asyncio.sleep(0.1)

        raise BrowserLaunchError(
            f"Chrome did not open a DevTools port within {self.launch_timeout}s"
        )

    async def launch(self) -> ChromeProcess:
        """
        Launch a new headless Chrome process.

        Returns:
            ChromeProcess with the process handle and DevTools port

        Raises:
            BrowserLaunchError: If Chrome is missing, exits early or never
                opens its DevTools port
        """
        binary = resolve_chrome_binary(self.chrome_binary)
        if binary is None:
            raise BrowserLaunchError(f"Chrome binary not found: {self.chrome_binary}")

        try:
            user_data_dir = tempfile.mkdtemp(
                prefix="resume_pdf_chrome_",
                dir=settings.chrome_user_data_base,
            )
        except OSError as e:
            raise BrowserLaunchError(
                f"Cannot create a Chrome profile in {settings.chrome_user_data_base}: {e}"
            ) from e

        args = self._build_chrome_args(binary, user_data_dir)

        logger.info("Launching Chrome", binary=binary, user_data_dir=user_data_dir)

        try:
            with open(Path(user_data_dir) / STDERR_LOG_FILE, "wb") as stderr_log:
                process = await asyncio.create_subprocess_exec(
                    *args,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=stderr_log,
                )
        except OSError as e:
            shutil.rmtree(user_data_dir, ignore_errors=True)
            raise BrowserLaunchError(f"Failed to launch Chrome: {e}") from e

        chrome_process = ChromeProcess(
            process=process,
            devtools_port=0,
            user_data_dir=user_data_dir,
        )

        try:
            chrome_process.devtools_port = await self._wait_for_devtools_port(
                process, user_data_dir
            )
        except BaseException:
            # Cleanup on failure, including cancellation
            await self.terminate(chrome_process, grace=0)
            raise

        logger.info(
            "Chrome launched successfully",
            pid=chrome_process.pid,
            devtools_port=chrome_process.devtools_port,
        )
        return chrome_process

    async def terminate(self, chrome_process: ChromeProcess, grace: float = 5.0) -> None:
        """
        Terminate a Chrome process and remove its profile directory.

        Args:
            chrome_process: Process to stop
            grace: Seconds to wait after SIGTERM before SIGKILL
        """
        process = chrome_process.process
        logger.info("Terminating Chrome", pid=chrome_process.pid)

        try:
            if process.returncode is not None:
                logger.debug("Chrome process already terminated", pid=chrome_process.pid)
            elif grace <= 0:
                process.kill()
                await process.wait()
            else:
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=grace)
                except TimeoutError:
                    process.kill()
                    await process.wait()
                    logger.warning("Chrome required force kill", pid=chrome_process.pid)

        except ProcessLookupError:
            logger.debug("Chrome process already terminated", pid=chrome_process.pid)
        finally:
            shutil.rmtree(chrome_process.user_data_dir, ignore_errors=True)
            logger.debug("Cleaned up user data dir", path=chrome_process.user_data_dir)
