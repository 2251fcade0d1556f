"""
Logging setup for boostprep.

``configure_logging(config)`` is called once by each CLI command before any
data is loaded.  Library modules only ever use ``logging.getLogger(__name__)``.

Design, encoding and CV modules attach experiment context to their records
through ``extra=``::

    logger.info("CV done", extra=experiment_context(formula="mpg ~ .", n_cols=11))

Recognised context keys (``CONTEXT_FIELDS``) are appended to plain-text lines
as ``key=value`` pairs and become top-level keys of JSON lines::

    2026-10-16T15:00:00Z [INFO] boostprep.ml.cv: CV done | formula='mpg ~ .' n_cols=11
    {"ts": "2026-10-16T15:00:00Z", "level": "INFO", "logger": "boostprep.ml.cv",
     "msg": "CV done", "formula": "mpg ~ .", "n_cols": 11}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from boostprep.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Order in which context appears on a text line.
CONTEXT_FIELDS = (
    "step",
    "strategy",
    "formula",
    "n_rows",
    "n_cols",
    "dropped_rows",
    "zero_filled_cells",
    "metric",
    "n_rounds",
    "nfold",
)

# category_encoders and pyarrow are chatty at DEBUG; lightgbm logs per round.
QUIET_LOGGERS = ("lightgbm", "category_encoders", "pyarrow", "httpx", "httpcore")


def experiment_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra=`` dict, dropping ``None`` values and unknown keys."""
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context field(s): {sorted(unknown)}")
    return {k: v for k, v in fields.items() if v is not None}


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {k: getattr(record, k) for k in CONTEXT_FIELDS if hasattr(record, k)}


class _TextFormatter(logging.Formatter):
    """Standard line format, followed by ``| key=value`` context when present."""

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        pairs = " ".join(
            f"{k}={v!r}" if isinstance(v, str) else f"{k}={v}"
            for k, v in context.items()
        )
        head, sep, tail = line.partition("\n")
        return f"{head} | {pairs}{sep}{tail}"


class _JsonFormatter(logging.Formatter):
    """Emit one JSON object per line: ``ts``, ``level``, ``logger``, ``msg``
    and any experiment context carried by the record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_context_of(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from ``config``.

    Installs a stdout handler and, when ``config.log_file`` is set, a file
    handler; both use the JSON formatter if ``config.json_format`` is true.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        _JsonFormatter() if config.json_format else _TextFormatter()
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
