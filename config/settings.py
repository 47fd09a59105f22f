"""
Configuration settings with environment variable loading.

All credentials MUST be provided via environment variables.
Never log or expose passwords or tokens in any output.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TRANSPORTS = ("webdav", "gist")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class WebDAVConfig:
    """WebDAV file store configuration."""
    url: str
    username: str
    password: str
    path: str = "/tabsync/"

    def __post_init__(self):
        if not self.url:
            raise ConfigurationError("WEBDAV_URL is required")
        if not self.username:
            raise ConfigurationError("WEBDAV_USERNAME is required")
        if not self.password:
            raise ConfigurationError("WEBDAV_PASSWORD is required")
        if not self.url.startswith(("https://", "http://")):
            raise ConfigurationError("WEBDAV_URL must be an http(s) URL")

    def __repr__(self) -> str:
        """Never expose password in repr."""
        return (
            f"WebDAVConfig(url='{self.url}', username='{self.username}', "
            f"password='***REDACTED***', path='{self.path}')"
        )


@dataclass(frozen=True)
class GistConfig:
    """Gist document store configuration."""
    token: str
    gist_id: str = ""

    def __post_init__(self):
        if not self.token or not self.token.strip():
            raise ConfigurationError("GIST_TOKEN is required")

    def __repr__(self) -> str:
        """Never expose token in repr."""
        return f"GistConfig(token='***REDACTED***', gist_id='{self.gist_id}')"


@dataclass(frozen=True)
class SyncConfig:
    """Sync engine configuration."""
    transport: str = "webdav"
    timeout_seconds: float = 15.0
    max_retries: int = 3
    include_browser_bookmarks: bool = True

    def __post_init__(self):
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(
                f"TABSYNC_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got '{self.transport}'"
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError("TABSYNC_TIMEOUT must be positive")


@dataclass(frozen=True)
class StorageConfig:
    """Persistent storage configuration."""
    database_path: Path = field(default_factory=lambda: Path("data/tabsync.db"))
    bookmarks_file: Optional[Path] = None

    def __post_init__(self):
        object.__setattr__(self, 'database_path', Path(self.database_path))
        if self.bookmarks_file is not None:
            object.__setattr__(self, 'bookmarks_file', Path(self.bookmarks_file))


@dataclass(frozen=True)
class Settings:
    """
    Application settings container.

    All configuration is loaded from environment variables.
    Only the selected transport's section is populated.
    """
    sync: SyncConfig
    storage: StorageConfig
    webdav: Optional[WebDAVConfig] = None
    gist: Optional[GistConfig] = None
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(\n"
            f"  sync={self.sync},\n"
            f"  storage={self.storage},\n"
            f"  webdav={self.webdav},\n"
            f"  gist={self.gist}\n"
            f")"
        )


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from environment variables.

    Optionally loads from a .env file first.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If required configuration is missing
    """
    if env_file and env_file.exists():
        _load_env_file(env_file)
    elif Path(".env").exists():
        _load_env_file(Path(".env"))

    try:
        sync = SyncConfig(
            transport=os.getenv("TABSYNC_TRANSPORT", "webdav").strip().lower(),
            timeout_seconds=float(os.getenv("TABSYNC_TIMEOUT", "15")),
            max_retries=int(os.getenv("TABSYNC_MAX_RETRIES", "3")),
            include_browser_bookmarks=_env_flag("TABSYNC_INCLUDE_BROWSER", True),
        )

        bookmarks_file = os.getenv("TABSYNC_BOOKMARKS_FILE", "").strip()
        storage = StorageConfig(
            database_path=Path(os.getenv("TABSYNC_DATABASE_PATH", "data/tabsync.db")),
            bookmarks_file=Path(bookmarks_file).expanduser() if bookmarks_file else None,
        )

        webdav = None
        gist = None
        if sync.transport == "webdav":
            webdav = WebDAVConfig(
                url=os.getenv("WEBDAV_URL", "").strip(),
                username=os.getenv("WEBDAV_USERNAME", ""),
                password=os.getenv("WEBDAV_PASSWORD", ""),
                path=os.getenv("WEBDAV_PATH", "/tabsync/"),
            )
        else:
            gist = GistConfig(
                token=os.getenv("GIST_TOKEN", ""),
                gist_id=os.getenv("GIST_ID", "").strip(),
            )

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        settings = Settings(
            sync=sync,
            storage=storage,
            webdav=webdav,
            gist=gist,
            log_level=log_level,
        )

        logger.info("Configuration loaded successfully")
        logger.debug(f"Settings: {settings}")

        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _load_env_file(path: Path) -> None:
    """
    Load environment variables from a file.

    Simple .env parser that handles:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    logger.debug(f"Loading environment from {path}")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                logger.warning(f"Invalid line {line_num} in {path}: no '=' found")
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            elif value.startswith("'") and value.endswith("'"):
                value = value[1:-1]

            # Environment variables take precedence
            if key not in os.environ:
                os.environ[key] = value
