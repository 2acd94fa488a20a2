"""Configuration management for the media catalog."""

import os
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load .env file from config directory or current working directory
_config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if _config_env.exists():
    load_dotenv(_config_env)
else:
    load_dotenv()

DEFAULT_AUDIO_EXTENSIONS = (".mp3", ".m4a")
DEFAULT_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")

# Change notifications for one path inside this window are merged
WATCH_DEBOUNCE_SECONDS = 2.0


def _parse_extensions(value: str) -> Tuple[str, ...]:
    """Parse a comma separated extension list into normalized suffixes."""
    extensions = []
    for item in value.split(","):
        item = item.strip().lower()
        if not item:
            continue
        if not item.startswith("."):
            item = f".{item}"
        extensions.append(item)
    return tuple(extensions)


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.library_root = Path(
            os.getenv("MEDIA_CATALOG_LIBRARY_ROOT", str(Path.home() / "Music"))
        )

        default_db_path = str(Path.home() / ".media-catalog" / "catalog.db")
        self.database_path = Path(
            os.getenv("MEDIA_CATALOG_DATABASE_PATH", default_db_path)
        )

        # File classification
        self.audio_extensions = _parse_extensions(
            os.getenv(
                "MEDIA_CATALOG_AUDIO_EXTENSIONS", ",".join(DEFAULT_AUDIO_EXTENSIONS)
            )
        )
        self.image_extensions = _parse_extensions(
            os.getenv(
                "MEDIA_CATALOG_IMAGE_EXTENSIONS", ",".join(DEFAULT_IMAGE_EXTENSIONS)
            )
        )

        # Extraction settings
        self.extract_workers = max(
            1, int(os.getenv("MEDIA_CATALOG_EXTRACT_WORKERS", "1"))
        )
        self.max_probe_bytes = int(
            os.getenv("MEDIA_CATALOG_MAX_PROBE_BYTES", str(2 * 1024**3))
        )

        self.watch_debounce_seconds = WATCH_DEBOUNCE_SECONDS

        self.log_level = os.getenv("MEDIA_CATALOG_LOG_LEVEL", "INFO").upper()

    def ensure_database_directory(self) -> None:
        """Ensure the database directory exists."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """Get application configuration."""
    return Config()
