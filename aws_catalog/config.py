"""
Settings for the catalog API and CLI, read from the environment (and .env).
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Environment-backed settings. The database path lives in database/connection.py."""

    APP_NAME: str = "AWS Service Catalog"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE: str = os.getenv("LOG_FILE", "logs/app.log")
    LOG_MAX_SIZE: int = int(os.getenv("LOG_MAX_SIZE", str(5 * 1024 * 1024)))
    LOG_BACKUP_COUNT: int = int(os.getenv("LOG_BACKUP_COUNT", "3"))

    # PDF export: seconds allowed for one headless-browser render
    PDF_RENDER_TIMEOUT: float = float(os.getenv("PDF_RENDER_TIMEOUT", "30"))
    PDF_BROWSER_ARGS: str = os.getenv("PDF_BROWSER_ARGS", "--no-sandbox --disable-setuid-sandbox")

    # Download name: <prefix>-<unix ms>.<ext>
    EXPORT_FILENAME_PREFIX: str = os.getenv("EXPORT_FILENAME_PREFIX", "aws-services-comparison")


settings = Settings()
