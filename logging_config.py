"""
Structured logging configuration for the Fury Fence site backend.
Import and call setup_logging() once at app startup.
"""
import logging
import logging.handlers
import os
import json
from datetime import datetime, timezone

from furyfence.core.paths import LOG_DIR

EXTRA_FIELDS = ("route", "method", "status", "duration_ms",
                "kind", "quote_number", "index")


class JSONFormatter(logging.Formatter):
    """Structured JSON log lines for machine parsing."""
    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Readable console format with color."""
    COLORS = {
        "DEBUG": "\033[36m", "INFO": "\033[32m",
        "WARNING": "\033[33m", "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{color}{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}{self.RESET}"
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level=None, json_logs=None, log_dir=None):
    """
    Configure logging for the full application.

    Args:
        level: Override log level (default: from LOG_LEVEL env or INFO)
        json_logs: Force JSON console format (default: LOG_JSON env)
        log_dir: Where site.log rotates (default: <data dir>/logs)
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if json_logs is None:
        json_logs = os.environ.get("LOG_JSON", "").lower() in ("1", "true", "yes")
    log_dir = log_dir or LOG_DIR

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    root.addHandler(console)

    # rotates at 5MB, keeps 5 backups
    try:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "site.log"),
            maxBytes=5_000_000, backupCount=5,
        )
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)
    except (OSError, PermissionError):
        pass  # skip file logging if dir not writable

    # Quiet noisy libs
    for name in ("urllib3", "werkzeug"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("furyfence").info("Logging initialized (level=%s)", level)
