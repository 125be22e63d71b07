"""Middleware chains.

A middleware is a callable that takes a handler and returns a handler.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator

from .handler import Handler

Middleware = Callable[[Handler], Handler]


class Chain:
    """An immutable, ordered sequence of middlewares."""

    __slots__ = ("_middlewares",)

    def __init__(self, middlewares: Iterable[Middleware] = ()) -> None:
        self._middlewares: tuple[Middleware, ...] = tuple(middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middlewares)

    def __repr__(self) -> str:
        return f"Chain({list(self._middlewares)!r})"

    def append(self, *args: Middleware) -> "Chain":
        """Return a new chain with ``args`` added as the innermost middlewares."""
        return Chain(self._middlewares + args)

    def then(self, handler: Any) -> Any:
        """Wrap ``handler`` so that the first middleware runs outermost."""
        for middleware in reversed(self._middlewares):
            handler = middleware(handler)
        return handler