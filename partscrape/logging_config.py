"""Logging for crawl runs.

Human-readable progress goes to stdout. Every record, including the
structured events emitted through :func:`log_scrape_event`, is also appended
to ``logs/crawl_<YYYYMMDD>.jsonl`` tagged with the run id, so an interrupted
and resumed crawl can be told apart from the run before it.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "ROOT_LOGGER",
    "LOG_DIR",
    "setup_logging",
    "get_logger",
    "log_scrape_event",
]

ROOT_LOGGER = "partscrape"

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"

# Attributes carried by event records on top of the standard LogRecord ones
EVENT_ATTR = "event_type"
DATA_ATTR = "event_data"


def _new_run_id() -> str:
    return datetime.now().strftime("%Y%m%dT%H%M%S")


class CrawlEventFileHandler(logging.Handler):
    """Appends each record as one JSON line to a per-day crawl log."""

    def __init__(self, log_dir: Path, run_id: str) -> None:
        super().__init__(level=logging.DEBUG)
        log_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir = log_dir
        self.run_id = run_id

    @property
    def path(self) -> Path:
        return self.log_dir / f"crawl_{datetime.now():%Y%m%d}.jsonl"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: Dict[str, Any] = {
                "ts": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
                "run_id": self.run_id,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            event = getattr(record, EVENT_ATTR, None)
            if event:
                entry["event_type"] = event
                entry.update(getattr(record, DATA_ATTR, None) or {})
            line = json.dumps(entry, ensure_ascii=False, default=str)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except Exception:
            self.handleError(record)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS [LEVEL] message``, with the level colored on a TTY."""

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
        self.use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().formatMessage(record)
        code = self.LEVEL_COLORS.get(record.levelno, "0")
        plain = record.levelname
        record.levelname = f"\033[{code}m{plain}\033[0m"
        try:
            return super().formatMessage(record)
        finally:
            record.levelname = plain


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    run_id: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``partscrape`` logger for one run.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Minimum level shown on the console
        log_to_file: Append JSON lines under ``log_dir``
        log_to_console: Print progress to stdout
        log_dir: Directory for JSONL files (default: ``<project>/logs``)
        run_id: Tag written on every JSONL entry (default: start timestamp)
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # The file keeps debug events even when the console is quieter
    logger.setLevel(logging.DEBUG if log_to_file else level)

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(ConsoleFormatter(use_color=sys.stdout.isatty()))
        logger.addHandler(console)

    if log_to_file:
        logger.addHandler(CrawlEventFileHandler(log_dir or LOG_DIR, run_id or _new_run_id()))

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger for a module of the package, e.g. ``get_logger("walker")``."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_scrape_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    logger_name: str = ROOT_LOGGER,
) -> None:
    """Emit a structured crawl event (``page_fetched``, ``batch_written``, ...).

    ``data`` is merged into the JSONL entry. Its optional ``message`` key is
    used as the text; otherwise the event type is.
    """
    logger = get_logger(logger_name)
    if not logger.isEnabledFor(level):
        return
    payload = {k: v for k, v in data.items() if k != "message"}
    logger.log(
        level,
        data.get("message", event_type),
        extra={EVENT_ATTR: event_type, DATA_ATTR: payload},
    )
