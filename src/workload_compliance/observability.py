"""Logging helpers.

Loggers returned by get_logger accept structured keyword fields, mirroring the
call style used throughout the package:

    logger.info("Rule registered", rule="container_security", total=3)

Fields are appended to the message as key=value pairs and also attached to the
LogRecord under ``fields`` so handlers can emit them separately.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

_LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Keyword arguments understood by logging.Logger itself
_RESERVED_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class StructuredLogger(logging.LoggerAdapter):
    """LoggerAdapter that turns keyword arguments into key=value fields."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        """Move non-reserved keyword arguments into the log message.

        Args:
            msg: The log message.
            kwargs: Keyword arguments passed to the logging call.

        Returns:
            Tuple of (rendered message, kwargs accepted by logging.Logger).
        """
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in _RESERVED_KWARGS}
        if not fields:
            return msg, kwargs

        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        return f"{msg} {rendered}", kwargs

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(level):
            msg, kwargs = self.process(msg, kwargs)
            self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: Any, *args: Any, exc_info: Any = True, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger for the given module name.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        A StructuredLogger wrapping the stdlib logger.
    """
    return StructuredLogger(logging.getLogger(name), {})


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and the HTTP service.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(handler)

    # Silence noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
