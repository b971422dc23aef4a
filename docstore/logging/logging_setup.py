import logging
import os
import sys
from datetime import datetime

from pytz import timezone

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_PREFIXES = ((logging.ERROR, "⛔ "), (logging.WARNING, "⚠️ "))
_ANSI_CODES = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
}


def _get_log_level() -> int:
    level = getattr(logging, os.getenv("LOG_LEVEL", "info").upper(), None)
    return level if isinstance(level, int) else logging.INFO


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in a pytz zone and marks warnings and errors with a symbol."""

    def __init__(self, tz_name: str = "UTC", fmt: str | None = LOG_FORMAT, datefmt: str | None = DATE_FORMAT):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.tz = timezone(tz_name)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record: logging.LogRecord) -> str:
        prefix = next((symbol for level, symbol in _LEVEL_PREFIXES if record.levelno >= level), "")
        # handlers share the record, only the copy carries the prefix
        marked = logging.makeLogRecord({**record.__dict__, "msg": prefix + record.getMessage(), "args": ()})
        return super().format(marked)


class ColoredFormatter(TimezoneFormatter):
    """Console formatter, wraps the line in an ANSI colour when the record has a ``color`` attribute."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        code = _ANSI_CODES.get(getattr(record, "color", None) or "")
        return f"\033[{code}m{line}\033[0m" if code else line


class ColorLogger(logging.LoggerAdapter):
    """
    Logger adapter that takes an optional ``color=`` keyword on every call::

        logger.info("version %d written", 3, color="green")

    The colour travels as a record attribute, so only :class:`ColoredFormatter` renders it.
    """

    def process(self, msg, kwargs):
        color = kwargs.pop("color", None)
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        return msg, kwargs


def _build_handlers(log_file: str, tz_name: str) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(tz_name))
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(TimezoneFormatter(tz_name))
    return [console, file_handler]


def setup_logging() -> ColorLogger:
    """
    Sends the root logger to stdout and to ``$ROOT_DIR/logs/app.log`` and returns the docstore logger.

    LOG_LEVEL selects the level (default info) and TIMEZONE the zone of the timestamps
    (default Europe/Berlin). Calling it again replaces the handlers of the previous call.
    """
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    level = _get_log_level()

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(os.path.join(log_dir, "app.log"), os.getenv("TIMEZONE", "Europe/Berlin")):
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    # the azure SDK logs every request and response at info
    logging.getLogger("azure").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger("docstore"))
