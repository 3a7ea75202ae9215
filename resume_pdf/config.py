"""Application configuration."""

import tempfile

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Exporter settings loaded from environment variables."""

    # Export job defaults
    source_url: str = "http://localhost:1313/resume/"
    output_path: str = "assets/resume.pdf"
    check_source: bool = True

    # Chrome/Chromium settings
    chrome_binary: str = "chromium"
    chrome_sandbox: bool = False
    chrome_user_data_base: str = tempfile.gettempdir()
    launch_timeout_seconds: float = 10.0

    # Timeouts
    navigation_timeout_seconds: float = 30.0
    command_timeout_seconds: float = 30.0
    probe_timeout_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    class Config:
        env_prefix = "RESUME_PDF_"
        env_file = ".env"


settings = Settings()
