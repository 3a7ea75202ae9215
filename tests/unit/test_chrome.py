"""Tests for the Chrome launcher using stand-in executables."""

import asyncio
import os
import stat
from pathlib import Path

import pytest

from resume_pdf.browser.chrome import ChromeLauncher, resolve_chrome_binary
from resume_pdf.config import settings
from resume_pdf.errors import BrowserLaunchError
from resume_pdf.models import ExportStage

# Publishes a DevTools port like Chrome does, then idles until terminated
FAKE_CHROME = """#!/bin/sh
for arg in "$@"; do
  case "$arg" in
    --user-data-dir=*) dir="${arg#--user-data-dir=}" ;;
  esac
done
printf '9333\\n/devtools/browser/fake\\n' > "$dir/DevToolsActivePort"
exec sleep 30
"""

CRASHING_CHROME = """#!/bin/sh
echo "sandbox setup failed" >&2
exit 3
"""

SILENT_CHROME = """#!/bin/sh
exec sleep 30
"""


def make_executable(directory: Path, name: str, script: str) -> Path:
    path = directory / name
    path.write_text(script)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def profiles(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    directory = tmp_path / "profiles"
    directory.mkdir()
    monkeypatch.setattr(settings, "chrome_user_data_base", str(directory))
    return directory


def test_build_chrome_args_is_headless() -> None:
    """Test the default command line runs headless without sandbox."""
    launcher = ChromeLauncher(chrome_binary="chromium", sandbox=False)

    args = launcher._build_chrome_args("/usr/bin/chromium", "/tmp/profile")

    assert args[0] == "/usr/bin/chromium"
    assert "--headless=new" in args
    assert "--remote-debugging-port=0" in args
    assert "--user-data-dir=/tmp/profile" in args
    assert "--no-sandbox" in args


def test_build_chrome_args_with_sandbox() -> None:
    """Test the sandbox flag is kept when enabled."""
    launcher = ChromeLauncher(chrome_binary="chromium", sandbox=True)

    assert "--no-sandbox" not in launcher._build_chrome_args("chromium", "/tmp/profile")


def test_resolve_chrome_binary(tmp_path: Path) -> None:
    """Test binary lookup by path and by name."""
    binary = make_executable(tmp_path, "chrome", SILENT_CHROME)

    assert resolve_chrome_binary(str(binary)) == str(binary)
    assert resolve_chrome_binary("definitely-not-a-browser-binary") is None


def test_missing_binary() -> None:
    """Test a missing binary fails the launch stage."""
    launcher = ChromeLauncher(chrome_binary="definitely-not-a-browser-binary")

    with pytest.raises(BrowserLaunchError) as exc_info:
        asyncio.run(launcher.launch())

    assert exc_info.value.stage == ExportStage.LAUNCH


def test_launch_and_terminate(tmp_path: Path, profiles: Path) -> None:
    """Test launching reads the DevTools port and terminate cleans up."""
    binary = make_executable(tmp_path, "chrome", FAKE_CHROME)
    launcher = ChromeLauncher(chrome_binary=str(binary), launch_timeout=5)

    async def scenario() -> None:
        chrome = await launcher.launch()
        assert chrome.devtools_port == 9333
        assert Path(chrome.user_data_dir).parent == profiles
        assert chrome.process.returncode is None

        await launcher.terminate(chrome)

        assert chrome.process.returncode is not None
        assert not os.path.exists(chrome.user_data_dir)

    asyncio.run(scenario())


def test_early_exit_reports_stderr(tmp_path: Path, profiles: Path) -> None:
    """Test an early Chrome exit reports its stderr."""
    binary = make_executable(tmp_path, "chrome", CRASHING_CHROME)
    launcher = ChromeLauncher(chrome_binary=str(binary), launch_timeout=5)

    with pytest.raises(BrowserLaunchError, match="sandbox setup failed"):
        asyncio.run(launcher.launch())

    assert list(profiles.iterdir()) == []


def test_launch_timeout_kills_process(tmp_path: Path, profiles: Path) -> None:
    """Test Chrome is killed when no DevTools port appears."""
    binary = make_executable(tmp_path, "chrome", SILENT_CHROME)
    launcher = ChromeLauncher(chrome_binary=str(binary), launch_timeout=0.3)

    with pytest.raises(BrowserLaunchError, match="DevTools port"):
        asyncio.run(launcher.launch())

    assert list(profiles.iterdir()) == []


def test_missing_profile_base_is_a_launch_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """An unusable profile directory fails the launch stage."""
    binary = make_executable(tmp_path, "chrome", FAKE_CHROME)
    monkeypatch.setattr(settings, "chrome_user_data_base", str(tmp_path / "nope"))
    launcher = ChromeLauncher(chrome_binary=str(binary), launch_timeout=5)

    with pytest.raises(BrowserLaunchError, match="Chrome profile") as exc_info:
        asyncio.run(launcher.launch())

    assert exc_info.value.stage == ExportStage.LAUNCH
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
