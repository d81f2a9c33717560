"""
zonehub Logging - instrumented wrapper around standard Python logging.
"""
import asyncio
import functools
import logging
import sys

from zonehub.version import __version__

LOGGER_NAME = 'zonehub'
LOG_FORMAT = '%(asctime)s.%(msecs)03d %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


class InstrumentedLogger(logging.Logger):
    """Logger with instrument decorator for method tracing."""

    def instrument(self, message_template: str = ""):
        """
        Decorator that logs entry to a function/method.

        Args:
            message_template: Format string that can reference {self} and keyword arguments.
        """
        def render(args, kwargs) -> str:
            try:
                if args and hasattr(args[0], '__class__'):
                    return message_template.format(self=args[0], **kwargs)
                return message_template.format(**kwargs)
            except (KeyError, AttributeError, IndexError):
                return message_template

        def decorator(func):
            @functools.wraps(func)
            def sync_wrapper(*args, **kwargs):
                msg = render(args, kwargs)
                if msg:
                    self.info(msg)
                return func(*args, **kwargs)

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                msg = render(args, kwargs)
                if msg:
                    self.info(msg)
                return await func(*args, **kwargs)

            if asyncio.iscoroutinefunction(func):
                return async_wrapper
            return sync_wrapper

        return decorator


def get_logger(name: str) -> InstrumentedLogger:
    """Create an instrumented logger writing to stdout."""
    logging.setLoggerClass(InstrumentedLogger)

    logger = logging.getLogger(name)
    logger.__class__ = InstrumentedLogger

    if not logger.handlers:
        # Line buffering so container logs show up immediately
        if hasattr(sys.stdout, 'reconfigure'):
            sys.stdout.reconfigure(line_buffering=True)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


def configure(level: str = 'INFO', log_file: str | None = None):
    """Apply the configured level and optional log file to the main logger."""
    logger.setLevel(level.upper())

    if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        handler = logging.FileHandler(log_file, encoding='utf-8')
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s'
        ))
        logger.addHandler(handler)

    logger.debug(f'Logging configured: {level=} {log_file=} version={__version__}')


logger = get_logger(LOGGER_NAME)
