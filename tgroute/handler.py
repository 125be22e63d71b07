"""Update handlers and typed views over incoming updates.

An update is any object whose attributes name its parts (``message``,
``callback_query`` and so on); unset parts are ``None`` or absent.  The
update may also carry a ``client`` attribute for talking back to the API.
Handlers are async callables taking one update.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Iterator, Optional

Handler = Callable[[Any], Awaitable[Any]]

UPDATE_FIELDS: tuple[str, ...] = (
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
    "business_connection",
    "business_message",
    "edited_business_message",
    "deleted_business_messages",
    "message_reaction",
    "message_reaction_count",
    "inline_query",
    "chosen_inline_result",
    "callback_query",
    "shipping_query",
    "pre_checkout_query",
    "poll",
    "poll_answer",
    "my_chat_member",
    "chat_member",
    "chat_join_request",
    "chat_boost",
    "removed_chat_boost",
)

MESSAGE_FIELDS: tuple[str, ...] = (
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
)

_HANDLED_MESSAGE_FIELDS = MESSAGE_FIELDS + ("business_message", "edited_business_message")
_CHAT_MEMBER_FIELDS = ("my_chat_member", "chat_member")


def first_not_none(*args: Any) -> Any:
    """Return the first argument that is not ``None``, or ``None``."""
    return next((arg for arg in args if arg is not None), None)


def _parts(update: Any, names: Iterable[str]) -> Iterator[Any]:
    return (getattr(update, name, None) for name in names)


def get_update_message(update: Any) -> Any:
    """Return the message, edited message, channel post or edited channel post."""
    return first_not_none(*_parts(update, MESSAGE_FIELDS))


def update_type(update: Any) -> Optional[str]:
    """Return the name of the first set part of the update, or ``None``."""
    return next(
        (name for name in UPDATE_FIELDS if getattr(update, name, None) is not None),
        None,
    )


class TypedUpdate:
    """An update together with the part a typed handler was built for.

    The part is reachable as ``payload`` and under each field name the
    handler looks at; other attributes are looked up on the part itself.
    """

    __slots__ = ("update", "payload", "_names")

    def __init__(self, update: Any, payload: Any, names: Iterable[str]) -> None:
        self.update = update
        self.payload = payload
        self._names = frozenset(names)

    @property
    def client(self) -> Any:
        return getattr(self.update, "client", None)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._names:
            return self.payload
        return getattr(self.payload, name)

    def __repr__(self) -> str:
        return f"TypedUpdate(payload={self.payload!r})"


class TypedHandler:
    """Adapts a function of a :class:`TypedUpdate` into an update handler.

    The payload is the first set field among ``fields``.  A handler over
    several fields is skipped when none of them is set; a handler over a
    single field is always called.
    """

    def __init__(self, fn: Callable[[TypedUpdate], Awaitable[Any]], *args: str) -> None:
        if not args:
            raise ValueError("at least one update field is required")
        self.fn = fn
        self.fields = tuple(args)

    async def __call__(self, update: Any) -> Any:
        payload = first_not_none(*_parts(update, self.fields))
        if payload is None and len(self.fields) > 1:
            return None
        return await self.fn(TypedUpdate(update, payload, self.fields))

    def __repr__(self) -> str:
        return f"TypedHandler({self.fn!r}, fields={self.fields!r})"


def message_handler(fn: Callable[[TypedUpdate], Awaitable[Any]]) -> TypedHandler:
    """Handler for any kind of message, including business messages."""
    return TypedHandler(fn, *_HANDLED_MESSAGE_FIELDS)


def chat_member_updated_handler(fn: Callable[[TypedUpdate], Awaitable[Any]]) -> TypedHandler:
    """Handler for ``my_chat_member`` and ``chat_member`` updates."""
    return TypedHandler(fn, *_CHAT_MEMBER_FIELDS)


def field_handler(fn: Callable[[TypedUpdate], Awaitable[Any]], field: str) -> TypedHandler:
    """Handler for a single update part such as ``inline_query``."""
    return TypedHandler(fn, field)