"""structlog configuration for entitykit.

Engine modules log through ``logging.getLogger(__name__)``, so every record
lands under the ``entitykit`` logger. :func:`configure_logging` gives that
logger one stderr handler whose ``ProcessorFormatter`` renders records either
for a console or as JSON lines. The root logger and any handlers the host
application installed are left alone.

Each public engine call (``parse``, ``partial_parse``, ``validate``,
``update``) runs inside :func:`operation_context`, which binds the operation
name and the entity type name as structlog context variables. Every record
emitted while the call runs carries both keys.
"""

from __future__ import annotations

import functools
import logging
import sys
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog

LOGGER_NAME = "entitykit"

_HANDLER_NAME = "entitykit-stderr"

_T = TypeVar("_T")


def _processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route ``entitykit`` records to stderr through structlog.

    Calling it again replaces the handler installed by the previous call.

    Args:
        verbose: Emit engine DEBUG records. When False, only WARNING+.
        log_json: Render JSON lines instead of console output.
    """
    shared = _processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.handlers = [h for h in package_logger.handlers if h.name != _HANDLER_NAME]
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


def configure_from_settings() -> None:
    """Apply :func:`configure_logging` using the cached settings."""
    from entitykit.config.settings import get_settings

    settings = get_settings()
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)


def _entity_name(target: Any) -> str:
    cls = target if isinstance(target, type) else type(target)
    return cls.__name__


@contextmanager
def operation_context(operation: str, target: Any) -> Iterator[None]:
    """Bind ``operation`` and ``entity`` for records logged inside the block.

    *target* is a declared class or an instance of one. The previous values
    are restored on exit, so nested operations report the innermost call.
    """
    with structlog.contextvars.bound_contextvars(
        operation=operation, entity=_entity_name(target)
    ):
        yield


def logged_operation(
    operation: str,
) -> Callable[[Callable[..., Awaitable[_T]]], Callable[..., Awaitable[_T]]]:
    """Run an async engine entry point inside :func:`operation_context`.

    The decorated function's first argument names the entity.
    """

    def decorate(func: Callable[..., Awaitable[_T]]) -> Callable[..., Awaitable[_T]]:
        @functools.wraps(func)
        async def wrapper(target: Any, *args: Any, **kwargs: Any) -> _T:
            with operation_context(operation, target):
                return await func(target, *args, **kwargs)

        return wrapper

    return decorate
