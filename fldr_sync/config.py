import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_config_logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent
_ENV_FILES = (
    _PACKAGE_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Fldr Sync API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Remote store (system of record)
    remote_base_url: str = "http://localhost:8020/api/v1"
    remote_timeout: float = 10.0

    # Durable local store
    local_store_url: str = "sqlite:///data/fldr_sync.db"
    storage_namespace: str = "git"

    # Sync behaviour
    write_quiet_period: float = 1.0          # Write scheduler debounce, seconds
    connectivity_check_interval: float = 30.0  # 0 disables the probe

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine — local store SQL
    log_level_http: str = "WARNING"          # httpx / httpcore — remote store calls
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_sync: str = "INFO"             # reconciliation engine / flush trace
    log_colors: bool = True                  # ANSI colours in the SyncLogger output

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    def model_post_init(self, __context: object) -> None:
        """Ensure the directory of a file-backed SQLite store exists."""
        if self.local_store_url.startswith("sqlite:///") and ":memory:" not in self.local_store_url:
            db_path = Path(self.local_store_url.removeprefix("sqlite:///"))
            try:
                db_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                _config_logger.warning("Could not create local store directory: %s", exc)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
