"""Root logger setup for the gateway process."""

import logging

# httpx logs every upstream request at INFO; those lines belong at DEBUG
NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)

UVICORN_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_log_level(raw: str | None) -> str:
    """Normalize a LOG_LEVEL value, tolerating trailing comments."""
    words = (raw or "").split()
    if not words:
        return "INFO"
    level = words[0].upper()
    return level if level in VALID_LEVELS else "INFO"


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Silence the HTTP client loggers unless the gateway runs at DEBUG."""
    level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for name in NOISY_HTTP_LOGGERS:
        logging.getLogger(name).setLevel(level)


class CorrelationFormatter(logging.Formatter):
    """Prefix messages with the first 8 chars of the record's ``correlation_id``.

    Callers attach the id with ``extra={"correlation_id": request_id}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "correlation_id", None)
        if not request_id:
            return super().format(record)
        original = record.msg
        record.msg = f"[{str(request_id)[:8]}] {original}"
        try:
            return super().format(record)
        finally:
            record.msg = original


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Re-level INFO records from the given logger prefixes as DEBUG."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO and record.name.startswith(self.prefixes):
            record.levelno = logging.DEBUG
            record.levelname = "DEBUG"
        return True


def configure_root_logging(log_level: str | None = None) -> str:
    """Replace the root handlers with the gateway's stream handler.

    Returns:
        The effective log level name.
    """
    level = parse_log_level(log_level)

    console = logging.StreamHandler()
    console.setFormatter(
        CorrelationFormatter("%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")
    )
    console.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(level)

    for name in UVICORN_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    set_noisy_http_logger_levels(level)

    logging.getLogger(__name__).debug(f"Logging configured at {level}")
    return level
