"""Routing of incoming updates to registered handlers."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from .filter import Filter, all_of
from .handler import (
    Handler,
    TypedHandler,
    chat_member_updated_handler,
    field_handler,
    message_handler,
    update_type,
)
from .middleware import Chain, Middleware

ErrorHandler = Callable[[Any, Exception], Awaitable[Any]]


class FilterNotAllowed(Exception):
    """Raised by a filtered handler when its filter rejects the update."""

    def __init__(self) -> None:
        super().__init__("filter no allow")


def compact_filters(*args: Filter) -> Optional[Filter]:
    """Combine filters into one; ``None`` when there are none."""
    if not args:
        return None
    if len(args) == 1:
        return args[0]
    return all_of(*args)


def filter_middleware(flt: Optional[Filter]) -> Middleware:
    """Middleware that runs the handler only when ``flt`` allows the update."""

    def wrap(next_handler: Handler) -> Handler:
        async def handle(update: Any) -> Any:
            if flt is None:
                return await next_handler(update)
            try:
                allowed = await flt.allow(update)
            except Exception as err:
                raise RuntimeError(f"filter error: {err}") from err
            if allowed:
                return await next_handler(update)
            raise FilterNotAllowed()

        return handle

    return wrap


async def _noop(update: Any) -> None:
    return None


def _typed(handler: Any, make: Callable[[Any], TypedHandler]) -> Any:
    return handler if isinstance(handler, TypedHandler) else make(handler)


class Router:
    """Dispatches an update to the first handler whose filters allow it.

    Generic update handlers are tried first, then the handlers registered for
    the update's type, in registration order.
    """

    def __init__(self) -> None:
        self._chain = Chain()
        self._typed_handlers: dict[str, list[Handler]] = {}
        self._update_handlers: list[Handler] = []
        self._default_handler: Handler = _noop
        self._error_handler: Optional[ErrorHandler] = None

    def use(self, *args: Middleware) -> "Router":
        """Add middlewares; they apply to handlers registered afterwards."""
        self._chain = self._chain.append(*args)
        return self

    def _wrap(self, handler: Any, filters: tuple) -> Handler:
        flt = compact_filters(*filters)
        return self._chain.append(filter_middleware(flt)).then(handler)

    def _register(self, typ: str, handler: Any, filters: tuple) -> "Router":
        self._typed_handlers.setdefault(typ, []).append(self._wrap(handler, filters))
        return self

    def _register_message(self, typ: str, handler: Any, filters: tuple) -> "Router":
        return self._register(typ, _typed(handler, message_handler), filters)

    def _register_field(self, typ: str, handler: Any, filters: tuple) -> "Router":
        return self._register(typ, _typed(handler, lambda fn: field_handler(fn, typ)), filters)

    def message(self, handler: Any, *args: Filter) -> "Router":
        return self._register_message("message", handler, args)

    def edited_message(self, handler: Any, *args: Filter) -> "Router":
        return self._register_message("edited_message", handler, args)

    def channel_post(self, handler: Any, *args: Filter) -> "Router":
        return self._register_message("channel_post", handler, args)

    def edited_channel_post(self, handler: Any, *args: Filter) -> "Router":
        return self._register_message("edited_channel_post", handler, args)

    def inline_query(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("inline_query", handler, args)

    def chosen_inline_result(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("chosen_inline_result", handler, args)

    def callback_query(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("callback_query", handler, args)

    def shipping_query(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("shipping_query", handler, args)

    def pre_checkout_query(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("pre_checkout_query", handler, args)

    def poll(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("poll", handler, args)

    def poll_answer(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("poll_answer", handler, args)

    def my_chat_member(self, handler: Any, *args: Filter) -> "Router":
        return self._register("my_chat_member", _typed(handler, chat_member_updated_handler), args)

    def chat_member(self, handler: Any, *args: Filter) -> "Router":
        return self._register("chat_member", _typed(handler, chat_member_updated_handler), args)

    def chat_join_request(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("chat_join_request", handler, args)

    def message_reaction(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("message_reaction", handler, args)

    def message_reaction_count(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("message_reaction_count", handler, args)

    def chat_boost(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("chat_boost", handler, args)

    def removed_chat_boost(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("removed_chat_boost", handler, args)

    def business_connection(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("business_connection", handler, args)

    def business_message(self, handler: Any, *args: Filter) -> "Router":
        return self._register_message("business_message", handler, args)

    def edited_business_message(self, handler: Any, *args: Filter) -> "Router":
        return self._register_message("edited_business_message", handler, args)

    def deleted_business_messages(self, handler: Any, *args: Filter) -> "Router":
        return self._register_field("deleted_business_messages", handler, args)

    def error(self, handler: ErrorHandler) -> "Router":
        """Set the handler for errors raised while handling an update."""
        self._error_handler = handler
        return self

    def update(self, handler: Handler, *args: Filter) -> "Router":
        """Register a handler for any update; tried before typed handlers."""
        self._update_handlers.append(self._wrap(handler, args))
        return self

    async def handle(self, update: Any) -> Any:
        """Run the first handler that accepts ``update``."""
        group = list(self._update_handlers)
        group.extend(self._typed_handlers.get(update_type(update), ()))
        group.append(self._chain.then(self._default_handler))

        for handler in group:
            try:
                return await handler(update)
            except FilterNotAllowed:
                continue
            except Exception as err:
                if self._error_handler is None:
                    raise
                return await self._error_handler(update, err)
        return None

    async def __call__(self, update: Any) -> Any:
        return await self.handle(update)