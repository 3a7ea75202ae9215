"""Tests for the scoped browser session."""

import asyncio
from typing import Any

import pytest

from resume_pdf.browser import manager as manager_module
from resume_pdf.browser.cdp import CDPError
from resume_pdf.browser.manager import BrowserSession


class FakeProcess:
    pid = 4242


class FakeLauncher:
    def __init__(self) -> None:
        self.launched = 0
        self.terminated: list[Any] = []

    async def launch(self) -> Any:
        self.launched += 1
        chrome = FakeProcess()
        chrome.devtools_port = 9333  # type: ignore[attr-defined]
        return chrome

    async def terminate(self, chrome_process: Any) -> None:
        self.terminated.append(chrome_process)


class FakeCDPClient:
    instances: list["FakeCDPClient"] = []
    fail_on: str | None = None

    def __init__(self, devtools_port: int, command_timeout: float | None = None) -> None:
        self.devtools_port = devtools_port
        self.calls: list[str] = []
        FakeCDPClient.instances.append(self)

    async def _call(self, name: str) -> None:
        self.calls.append(name)
        if FakeCDPClient.fail_on == name:
            raise CDPError(f"{name} failed")

    async def open_tab(self) -> str:
        await self._call("open_tab")
        return "T1"

    async def connect(self) -> None:
        await self._call("connect")

    async def disconnect(self) -> None:
        await self._call("disconnect")

    async def close_tab(self) -> None:
        await self._call("close_tab")


@pytest.fixture(autouse=True)
def fake_cdp(monkeypatch: pytest.MonkeyPatch) -> None:
    FakeCDPClient.instances = []
    FakeCDPClient.fail_on = None
    monkeypatch.setattr(manager_module, "CDPClient", FakeCDPClient)


def test_session_releases_tab_and_process() -> None:
    """Test leaving the session closes the tab and stops Chrome."""
    launcher = FakeLauncher()

    async def scenario() -> None:
        async with BrowserSession(launcher=launcher) as browser:  # type: ignore[arg-type]
            assert browser.cdp is FakeCDPClient.instances[0]
            assert browser.cdp.devtools_port == 9333

    asyncio.run(scenario())

    assert FakeCDPClient.instances[0].calls == ["open_tab", "connect", "disconnect", "close_tab"]
    assert len(launcher.terminated) == 1


def test_session_releases_on_error_inside_scope() -> None:
    """Test the session is released when the body raises."""
    launcher = FakeLauncher()

    async def scenario() -> None:
        async with BrowserSession(launcher=launcher):  # type: ignore[arg-type]
            raise ValueError("render blew up")

    with pytest.raises(ValueError, match="render blew up"):
        asyncio.run(scenario())

    assert "close_tab" in FakeCDPClient.instances[0].calls
    assert len(launcher.terminated) == 1


def test_failed_tab_setup_terminates_chrome() -> None:
    """Test Chrome is stopped when the tab cannot be set up."""
    FakeCDPClient.fail_on = "connect"
    launcher = FakeLauncher()
    session = BrowserSession(launcher=launcher)  # type: ignore[arg-type]

    with pytest.raises(CDPError, match="connect failed"):
        asyncio.run(session.start())

    assert len(launcher.terminated) == 1
    assert session.cdp_client is None
    assert session.chrome_process is None


def test_cleanup_errors_do_not_mask_release() -> None:
    """Test a failing disconnect still stops Chrome."""
    FakeCDPClient.fail_on = "disconnect"
    launcher = FakeLauncher()

    async def scenario() -> None:
        async with BrowserSession(launcher=launcher):  # type: ignore[arg-type]
            pass

    asyncio.run(scenario())

    assert FakeCDPClient.instances[0].calls[-1] == "close_tab"
    assert len(launcher.terminated) == 1


def test_cdp_requires_started_session() -> None:
    """Test the CDP client is unavailable outside the session."""
    with pytest.raises(RuntimeError, match="not started"):
        BrowserSession(launcher=FakeLauncher()).cdp  # type: ignore[arg-type]
