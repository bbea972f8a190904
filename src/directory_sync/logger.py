import json
import logging
import os
import sys

DEFAULT_SERVICE_LOG_FILE = "/tmp/directory-sync.log"
_TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON line.

    Keys: ts, level, logger, msg, and exc when a traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(debug_format: str) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATE_FORMAT)
    return logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging for the host process.

    Args:
        mode: "service" logs to a file only, "cli" logs to stderr
            (and to *log_file* as well when given).
        debug: If True, overrides LOG_LEVEL to DEBUG.
        log_file: Log file path (overrides LOG_FILE env var in service mode).
        debug_format: "text" (default) or "json" for structured output.
        level: Level name from the config file, used when LOG_LEVEL is unset.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: WARNING for service mode, INFO for CLI mode.
        LOG_FILE: Log file path for service mode.
                  Default: /tmp/directory-sync.log
    """
    default_level = "WARNING" if mode == "service" else "INFO"
    env_level = (os.getenv("LOG_LEVEL") or level or default_level).upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    handlers: list[logging.Handler] = []
    if mode == "service":
        final_log_file = log_file or os.getenv(
            "LOG_FILE", DEFAULT_SERVICE_LOG_FILE
        )
        handlers.append(logging.FileHandler(final_log_file, mode="a"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))
        if log_file:
            handlers.append(logging.FileHandler(log_file, mode="a"))

    formatter = _make_formatter(debug_format)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers)

