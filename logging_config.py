"""
Logging setup for the quote service.

Call setup_logging() once at startup (app.py __main__, scripts). Modules log
through their own named loggers ("quote_pdf", "routes_quotes", ...) and pass
quote context with ``extra=``:

    log.info("PDF file for quote %s", corr, extra={"correlative": corr, "pages": 2})

Console output is coloured text in dev or JSON lines with QUOTEDOC_JSON_LOGS;
the rotating file under DATA_DIR/logs is always JSON.
"""
import json
import logging
import logging.handlers
import os
from datetime import datetime, timezone

from quotedoc.core.paths import DATA_DIR

LOG_DIR = os.path.join(DATA_DIR, "logs")
LOG_FILE = "quotedoc.log"

# extra= keys copied into the output, in this order
REQUEST_FIELDS = ("method", "route", "status", "duration_ms")
QUOTE_FIELDS = ("correlative", "quote_number", "pages", "items", "total")

NOISY_LOGGERS = ("werkzeug", "PIL", "reportlab")


def record_context(record) -> dict:
    """The request/quote fields a record was logged with."""
    return {k: getattr(record, k) for k in REQUEST_FIELDS + QUOTE_FIELDS
            if hasattr(record, k)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the log file and hosted consoles."""

    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class HumanFormatter(logging.Formatter):
    """HH:MM:SS [L] logger: message  {quote context}, coloured by level."""
    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        quote = {k: v for k, v in record_context(record).items() if k in QUOTE_FIELDS}
        if quote:
            line += "  {" + ", ".join(f"{k}={v}" for k, v in quote.items()) + "}"
        color = self.COLORS.get(record.levelno, "")
        line = f"{color}{line}{self.RESET}" if color else line
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def setup_logging(level=None, json_logs=None, log_dir=None):
    """
    Install console and file handlers on the root logger.

    Args:
        level: log level name (default: LOG_LEVEL env, else INFO)
        json_logs: JSON console output (default: QUOTEDOC_JSON_LOGS env)
        log_dir: directory for the rotating quotedoc.log (default: DATA_DIR/logs)
    """
    level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    if json_logs is None:
        json_logs = _env_flag("QUOTEDOC_JSON_LOGS")
    log_dir = log_dir or LOG_DIR

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    root.addHandler(console)

    # 5 x 5MB of generated-quote history
    try:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE), maxBytes=5_000_000, backupCount=5,
            encoding="utf-8",
        )
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)
    except OSError as e:
        logging.getLogger("quotedoc").warning("File logging disabled (%s): %s", log_dir, e)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("quotedoc").info("Logging ready: level=%s json=%s file=%s",
                                       level, json_logs, os.path.join(log_dir, LOG_FILE))
