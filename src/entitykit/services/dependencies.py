"""Dependency Resolution Registry: tokens to values for injected fields.

A provider maps a token (a string, a :class:`Token`, or a class) to either a
static value or a factory. Factories are invoked on every resolution; nothing
is cached, so a factory returning a fresh object yields a distinct object
each time.

INVARIANT: The provider list and fallback persist until explicitly
reconfigured. :meth:`DependencyRegistry.configure` only replaces the parts it
is given; :meth:`DependencyRegistry.reset` clears both.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from entitykit.domain.fields import MISSING, DeclarationError
from entitykit.domain.problem import EntityError
from entitykit.domain.registry import REGISTRY
from entitykit.services.validate import maybe_await

logger = logging.getLogger(__name__)

Fallback = Callable[[Any], Any | Awaitable[Any]]


class DependencyResolutionError(EntityError, LookupError):
    """No provider or fallback produced a value for a token."""

    def __init__(self, token: Any) -> None:
        self.token = token
        super().__init__(f"No provider found for token: {token_name(token)}")


class Token:
    """Unique dependency token compared by identity.

    Example::

        DATABASE = Token("database")
        configure(providers=[Provider(DATABASE, use_factory=connect)])
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Token({self.name!r})"


@dataclass(frozen=True)
class Provider:
    """Binds *token* to a static ``use_value`` or a ``use_factory``.

    The factory may be sync or async and is called with no arguments.
    """

    token: Any
    use_value: Any = MISSING
    use_factory: Callable[[], Any] | None = None

    def __post_init__(self) -> None:
        if (self.use_value is MISSING) == (self.use_factory is None):
            raise DeclarationError(
                f"Provider for {token_name(self.token)} needs exactly one of "
                "use_value or use_factory"
            )


def token_name(token: Any) -> str:
    """Readable name of *token* for messages; classes use their registered name."""
    if isinstance(token, type):
        return REGISTRY.name_of(token) or token.__name__
    if isinstance(token, Token):
        return token.name
    name = getattr(token, "__name__", None)
    if isinstance(name, str):
        return name
    return str(token)


_KEEP: Any = object()


class DependencyRegistry:
    """Process-wide provider table plus an optional fallback resolver."""

    def __init__(self) -> None:
        self._providers: list[Provider] = []
        self._fallback: Fallback | None = None

    @property
    def providers(self) -> list[Provider]:
        return list(self._providers)

    @property
    def fallback(self) -> Fallback | None:
        return self._fallback

    def configure(
        self,
        providers: Iterable[Provider] = _KEEP,
        fallback: Fallback | None = _KEEP,
    ) -> None:
        """Replace whichever of *providers* / *fallback* is given.

        An omitted argument keeps its current value. Pass ``providers=[]``
        to clear providers and ``fallback=None`` to clear the fallback.
        """
        if providers is not _KEEP:
            self._providers = list(providers)
            logger.debug("Configured %d dependency provider(s)", len(self._providers))
        if fallback is not _KEEP:
            self._fallback = fallback
            logger.debug("Dependency fallback %s", "cleared" if fallback is None else "set")

    def reset(self) -> None:
        self._providers = []
        self._fallback = None

    def find_provider(self, token: Any) -> Provider | None:
        for provider in self._providers:
            if provider.token is token or provider.token == token:
                return provider
        return None

    async def resolve(self, token: Any) -> Any:
        """Resolve *token*: first matching provider, then the fallback.

        Raises:
            DependencyResolutionError: Nothing produced a value.
        """
        provider = self.find_provider(token)
        if provider is not None:
            if provider.use_factory is not None:
                logger.debug("Resolving %s via factory", token_name(token))
                return await maybe_await(provider.use_factory())
            return provider.use_value

        if self._fallback is not None:
            result = await maybe_await(self._fallback(token))
            if result is not None:
                logger.debug("Resolved %s via fallback", token_name(token))
                return result

        raise DependencyResolutionError(token)


DEPENDENCIES = DependencyRegistry()


def configure(
    providers: Iterable[Provider] = _KEEP,
    fallback: Fallback | None = _KEEP,
) -> None:
    DEPENDENCIES.configure(providers=providers, fallback=fallback)


async def resolve(token: Any) -> Any:
    return await DEPENDENCIES.resolve(token)


def reset() -> None:
    DEPENDENCIES.reset()
