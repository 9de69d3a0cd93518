import logging
from datetime import datetime
import inspect
from colorlog import ColoredFormatter
import os

__all__ = [
    "log_error",
    "log_info",
    "log_warning",
    "log_debug",
    "set_log_level",
    "configure_file_logging",
    "PingFilter",
    "configure_socketio_logging",
]

LOGGER = logging.getLogger("call_relay")

## Allow all messages to be passed to handlers
LOGGER.setLevel(logging.DEBUG)
LOGGER.propagate = False

log_format = ColoredFormatter(
    "%(log_color)s%(asctime)s | %(levelname)s | %(message)s%(reset)s"
)
level = logging.INFO

## Configure logging stream
stream_handler = logging.StreamHandler()
stream_handler.setLevel(level)
stream_handler.setFormatter(log_format)
stream_handler.set_name("stream_handler")
LOGGER.addHandler(stream_handler)


def configure_file_logging(log_dir: str) -> None:
    """
    Attach the daily debug and regular log files under log_dir.

    Safe to call more than once; existing file handlers are replaced.
    """
    os.makedirs(os.path.join(log_dir, "logs"), exist_ok=True)
    os.makedirs(os.path.join(log_dir, "debug"), exist_ok=True)

    for handler in list(LOGGER.handlers):
        if handler.name in ("debugger_handler", "regular_handler"):
            LOGGER.removeHandler(handler)
            handler.close()

    today = datetime.now().strftime("%Y-%m-%d")

    ## Configure debug logging file
    debugger_handler = logging.FileHandler(
        os.path.join(log_dir, "debug", f"call-relay-debug-{today}.log"),
        mode="w",
    )
    debugger_handler.setLevel(logging.DEBUG)
    debugger_handler.setFormatter(log_format)
    debugger_handler.set_name("debugger_handler")
    LOGGER.addHandler(debugger_handler)

    ## Configure regular logging file
    regular_handler = logging.FileHandler(
        os.path.join(log_dir, "logs", f"call-relay-logs-{today}.log"),
        mode="w",
    )
    regular_handler.setLevel(stream_handler.level)
    regular_handler.setFormatter(log_format)
    regular_handler.set_name("regular_handler")
    LOGGER.addHandler(regular_handler)


def log_error(message: str) -> None:
    """Log an error message."""
    LOGGER.error(
        f"{inspect.stack()[1].function} | {message}",
        stack_info=True,
        stacklevel=3,
    )


def log_info(message: str) -> None:
    """Log an informational message."""
    LOGGER.info(f"{inspect.stack()[1].function} | {message}")


def log_warning(message: str) -> None:
    """Log a warning message."""
    LOGGER.warning(f"{inspect.stack()[1].function} | {message}")


def log_debug(message: str) -> None:
    """Log a debug message."""
    LOGGER.debug(f"{inspect.stack()[1].function} | {message}")


def set_log_level(level) -> None:
    """Set the logging level."""
    for handler in LOGGER.handlers:
        if handler.name != "debugger_handler":
            handler.setLevel(level)


class PingFilter(logging.Filter):
    """Filter to suppress ping/pong log messages from socketio/engineio."""

    def filter(self, record):
        message = record.getMessage().lower()
        return "packet ping" not in message and "packet pong" not in message


SOCKETIO_LOGGERS = [
    "socketio",
    "engineio",
    "socketio.server",
    "engineio.server",
    "socketio.client",
    "engineio.client",
]


def configure_socketio_logging() -> None:
    """Configure socketio and engineio loggers to filter ping/pong messages."""
    for logger_name in SOCKETIO_LOGGERS:
        logger = logging.getLogger(logger_name)
        if not any(isinstance(f, PingFilter) for f in logger.filters):
            logger.addFilter(PingFilter())
