"""Browser management module."""

from resume_pdf.browser.cdp import CDPClient, CDPError, CDPNavigationError, CDPTimeoutError
from resume_pdf.browser.chrome import ChromeLauncher, ChromeProcess, resolve_chrome_binary
from resume_pdf.browser.manager import BrowserSession

__all__ = [
    "CDPClient",
    "CDPError",
    "CDPNavigationError",
    "CDPTimeoutError",
    "ChromeLauncher",
    "ChromeProcess",
    "resolve_chrome_binary",
    "BrowserSession",
]
