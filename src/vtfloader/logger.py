"""Logging helpers, used by the loader and the scripts.

Messages use :py:meth:`str.format` style arguments rather than ``%``::

    LOGGER = get_logger(__name__)
    LOGGER.info('Loaded {} frames from "{}"', count, filename)

Messages logged inside a :py:func:`context` block are tagged with its name,
so the loader can indicate which file and frame are being decoded.
"""
from typing import Any, Iterator, Mapping, Optional, Tuple, cast
import contextlib
import contextvars
import logging
import os
import sys


__all__ = ['LoggerAdapter', 'get_logger', 'init_logging', 'context']

#: The names of the currently active contexts, outermost first.
CONTEXT: 'contextvars.ContextVar[Tuple[str, ...]]' = contextvars.ContextVar(
    'vtfloader_log_context', default=(),
)
#: Set this environment variable to ``1`` to show debug messages on the console.
DEBUG_ENV = 'VTFLOADER_DEBUG'
#: The log record attribute holding the context tag.
CONTEXT_ATTR = 'vtf_context'
CONSOLE_FORMAT = '[{levelname[0]}]{vtf_context} {module}.{funcName}(): {message}'

# Frames to skip so the caller of debug()/info()/etc is reported, not our log().
# Before 3.11 internal logging frames were counted too.
_STACKLEVEL = 2 if sys.version_info >= (3, 11) else 1


class FormatMessage:
    """A message with arguments, only formatted once a handler needs the text.

    If no arguments are given the message is left untouched, so braces can
    still be used in plain messages.
    """
    __slots__ = ['text', 'args', 'kwargs']

    def __init__(self, text: str, args: Tuple[object, ...], kwargs: Mapping[str, object]) -> None:
        self.text = text
        self.args: Optional[Tuple[object, ...]] = args
        self.kwargs: Optional[Mapping[str, object]] = kwargs

    def __str__(self) -> str:
        if self.args is not None and self.kwargs is not None:
            if self.args or self.kwargs:
                self.text = self.text.format(*self.args, **self.kwargs)
            self.args = self.kwargs = None
        return self.text


def context_tag() -> str:
    """Produce the text added to messages for the active contexts."""
    names = CONTEXT.get()
    return f' ({", ".join(names)})' if names else ''


class LoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Wraps a logger, to use str.format() and add the context tag."""
    logger: logging.Logger

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger, {})

    def log(  # type: ignore[override]
        self,
        level: int,
        msg: object,
        *args: object,
        exc_info: Any = None,
        stack_info: bool = False,
        extra: Optional[Mapping[str, object]] = None,
        **kwargs: object,
    ) -> None:
        """Log a message, passing the positional and keyword arguments to :py:meth:`str.format`."""
        if not self.isEnabledFor(level):
            return
        record_extra = dict(extra or {})
        record_extra[CONTEXT_ATTR] = context_tag()
        self.logger.log(
            level,
            FormatMessage(str(msg), args, kwargs),
            exc_info=exc_info,
            stack_info=stack_info,
            extra=record_extra,
            stacklevel=_STACKLEVEL,
        )

    def __getattr__(self, attr: str) -> Any:
        """Anything else is handled by the logger."""
        return getattr(self.logger, attr)


class Formatter(logging.Formatter):
    """Fills in the context tag for records from loggers not using our adapter."""
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, CONTEXT_ATTR):
            setattr(record, CONTEXT_ATTR, '')
        return super().format(record)


def _below_warning(record: logging.LogRecord) -> bool:
    """Warnings and errors are sent to stderr only."""
    return record.levelno < logging.WARNING


def init_logging(main_logger: str = '') -> logging.Logger:
    """Send log messages to the console, for use by scripts.

    Information goes to stdout, warnings and errors to stderr. Debug messages
    are shown only if ``VTFLOADER_DEBUG`` is set to ``1``.

    :param main_logger: The name of the logger to return, in the ``vtfloader`` namespace.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    formatter = Formatter(CONSOLE_FORMAT, style='{')

    if sys.stdout is not None:
        out_handler = logging.StreamHandler(sys.stdout)
        out_handler.setLevel(logging.DEBUG if os.environ.get(DEBUG_ENV) == '1' else logging.INFO)
        out_handler.addFilter(_below_warning)
        out_handler.setFormatter(formatter)
        root.addHandler(out_handler)

    if sys.stderr is not None:
        err_handler = logging.StreamHandler(sys.stderr)
        err_handler.setLevel(logging.WARNING)
        err_handler.setFormatter(formatter)
        root.addHandler(err_handler)

    return get_logger(main_logger)


def get_logger(name: str = '') -> logging.Logger:
    """Get a logger inside the ``vtfloader`` namespace, accepting str.format() arguments.

    Names already in the namespace (like ``__name__`` for our modules) are used as-is.
    """
    if not name or name == 'vtfloader':
        full_name = 'vtfloader'
    elif name.startswith('vtfloader.'):
        full_name = name
    else:
        full_name = 'vtfloader.' + name
    return cast(logging.Logger, LoggerAdapter(logging.getLogger(full_name)))


@contextlib.contextmanager
def context(name: str) -> Iterator[str]:
    """Tag every message logged inside this block with the name."""
    token = CONTEXT.set(CONTEXT.get() + (name, ))
    try:
        yield name
    finally:
        CONTEXT.reset(token)
