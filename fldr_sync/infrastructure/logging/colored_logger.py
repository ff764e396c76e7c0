"""Colored sync logger — ANSI-colored console logging for the sync engine.

Provides a SyncLogger with color-coded output per sync stage, making it
easy to follow a flush or an offline fallback in the terminal.

Color scheme:
    🟢 Green   — Local cache
    🟡 Yellow  — Pending-write queue
    🔵 Blue    — Remote store
    🟣 Magenta — Flush
    🟠 Cyan    — Normalization / list snapshot
    🔴 Red     — Errors
    ⚪ Gray    — Timing / Stats
"""

import logging
import re
import time
from contextlib import contextmanager
from typing import Any


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


_ANSI_ESCAPE = re.compile(r"\033\[[0-9;]*m")
_colors_enabled = True


def set_colors_enabled(enabled: bool) -> None:
    """Toggle ANSI colours for every SyncLogger (off when logging to files)."""
    global _colors_enabled
    _colors_enabled = enabled


# ── Sync Stage Definitions ───────────────────────────────────────────

class SyncStage:
    """Predefined sync stages with colors and icons."""

    CACHE = ("CACHE", _Colors.GREEN, "💾")
    QUEUE = ("QUEUE", _Colors.YELLOW, "📥")
    REMOTE = ("REMOTE", _Colors.BLUE, "🌐")
    FLUSH = ("FLUSH", _Colors.MAGENTA, "🔄")
    NORMALIZE = ("NORMALIZE", _Colors.CYAN, "🧹")
    LIST = ("LIST", _Colors.CYAN, "📋")
    ERROR = ("ERROR", _Colors.RED, "❌")
    COMPLETE = ("COMPLETE", _Colors.GREEN, "✅")


# ── SyncLogger ───────────────────────────────────────────────────────

class SyncLogger:
    """Color-coded logger for the reconciliation engine.

    Usage:
        log = SyncLogger("fldr_sync.sync")
        log.step_start(SyncStage.FLUSH, "Replaying 3 queued writes")
        log.detail("fldr r1", fields="title, notes")
        log.step_complete(SyncStage.FLUSH, "Queue cleared")
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)
        self._component = component_name

    def _emit(self, level: int, text: str) -> None:
        if not _colors_enabled:
            text = _ANSI_ESCAPE.sub("", text)
        self._logger.log(level, text)

    @staticmethod
    def _details(color: str, kwargs: dict[str, Any]) -> str:
        if not kwargs:
            return ""
        details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
        return f" {color}({details}){_Colors.RESET}"

    def step_start(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log the start of a sync step with its stage color."""
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        self._emit(logging.INFO, formatted + self._details(_Colors.GRAY, kwargs))

    def step_complete(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log the successful completion of a sync step."""
        label, color, icon = stage
        formatted = (
            f"{color}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}"
        )
        self._emit(logging.INFO, formatted + self._details(_Colors.GRAY, kwargs))

    def step_warning(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log a recoverable problem (offline fallback, suspect remote data)."""
        label, _, icon = stage
        formatted = (
            f"{_Colors.YELLOW}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.YELLOW}{message}{_Colors.RESET}"
        )
        self._emit(logging.WARNING, formatted + self._details(_Colors.DIM, kwargs))

    def step_error(self, stage: tuple[str, str, str], message: str, error: Exception | None = None) -> None:
        """Log a sync step error in red."""
        label, _, icon = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}❌ [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._emit(logging.ERROR, formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        """Log additional detail (gray/dimmed)."""
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        self._emit(logging.DEBUG, formatted + self._details(_Colors.DIM, kwargs))

    def stats(self, **kwargs: Any) -> None:
        """Log statistics / timing information."""
        parts = [f"{_Colors.GRAY}{k}: {v}" for k, v in kwargs.items()]
        formatted = f"   {_Colors.GRAY}📈 {' | '.join(parts)}{_Colors.RESET}"
        self._emit(logging.INFO, formatted)

    @contextmanager
    def timed_step(self, stage: tuple[str, str, str], message: str, **kwargs: Any):
        """Context manager that logs start/end with elapsed time.

        Usage:
            with log.timed_step(SyncStage.FLUSH, "Replaying queue"):
                await replay(...)
        """
        self.step_start(stage, message, **kwargs)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.step_error(stage, f"{message} — failed after {elapsed:.2f}s", error=e)
            raise
        else:
            elapsed = time.perf_counter() - start
            self.step_complete(stage, f"{message} — {elapsed:.2f}s", **kwargs)
