"""Logging setup for the reference server and for hosts embedding the sync engine.

Per-category levels come from Settings, so the local store's SQL or the
remote client's httpx chatter can be turned down without hiding the flush
trace. Hosts that log to files can switch off the SyncLogger's ANSI colours.

Usage:
    from fldr_sync.infrastructure.logging.log_config import setup_logging
    setup_logging()            # reads get_settings()
    setup_logging(settings)    # or an explicit Settings instance
"""

import logging
import sys

from fldr_sync.config import Settings, get_settings
from fldr_sync.infrastructure.logging.colored_logger import set_colors_enabled

# Settings field → logger names it controls
_CATEGORY_LOGGERS: dict[str, tuple[str, ...]] = {
    "log_level_sql": ("sqlalchemy.engine", "sqlalchemy.pool"),
    "log_level_http": ("httpx", "httpcore"),
    "log_level_uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "log_level_sync": ("fldr_sync.sync", "fldr_sync.application.services"),
}

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"


def setup_logging(settings: Settings | None = None) -> dict[str, int]:
    """Apply root and per-category levels. Returns the level set on each logger."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    if not root.handlers:
        # uvicorn installs its own handler; an embedding host or script may not
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    set_colors_enabled(settings.log_colors)

    applied: dict[str, int] = {}
    for field_name, logger_names in _CATEGORY_LOGGERS.items():
        level = _parse_level(getattr(settings, field_name))
        for name in logger_names:
            logging.getLogger(name).setLevel(level)
            applied[name] = level

    logging.getLogger(__name__).debug(
        "Logging configured (root=%s, colors=%s): %s",
        settings.log_level,
        settings.log_colors,
        {name: logging.getLevelName(level) for name, level in applied.items()},
    )
    return applied


def _parse_level(raw: str) -> int:
    """Level name → logging constant; unknown names fall back to INFO."""
    numeric = logging.getLevelName(raw.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO
