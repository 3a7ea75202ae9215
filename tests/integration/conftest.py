"""Fixtures for exporting against a real Chromium and a local HTTP server."""

import functools
import threading
from collections.abc import Iterator
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from resume_pdf.browser import resolve_chrome_binary
from resume_pdf.config import settings

CANDIDATE_BINARIES = ("chromium", "chromium-browser", "google-chrome", "google-chrome-stable")

RESUME_HTML = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Résumé</title>
    <style>@page { size: 210mm 297mm; }</style>
  </head>
  <body style="background:#eee">
    <h1>Jane Doe</h1>
    <p>Software engineer.</p>
  </body>
</html>
"""


class QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture(scope="session")
def chrome_binary() -> str:
    for candidate in (settings.chrome_binary, *CANDIDATE_BINARIES):
        binary = resolve_chrome_binary(candidate)
        if binary:
            return binary
    pytest.skip("no Chromium binary available")


@pytest.fixture(autouse=True)
def use_chrome(chrome_binary: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "chrome_binary", chrome_binary)
    monkeypatch.setattr(settings, "chrome_user_data_base", str(tmp_path))


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    root = tmp_path / "public"
    (root / "resume").mkdir(parents=True)
    (root / "resume" / "index.html").write_text(RESUME_HTML, encoding="utf-8")
    return root


@pytest.fixture
def site_url(site_root: Path) -> Iterator[str]:
    """Serve ``site_root`` like the site generator's dev server does."""
    handler = functools.partial(QuietHandler, directory=str(site_root))
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/resume/"
    finally:
        server.shutdown()
        server.server_close()
