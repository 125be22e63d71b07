"""Update filters deciding whether a handler should see an update."""

from __future__ import annotations

import abc
import re
from typing import Any, Awaitable, Callable, Iterable, Optional, Pattern, Union

from .handler import get_update_message


def _attr(obj: Any, name: str) -> Any:
    return getattr(obj, name, None)


class Filter(abc.ABC):
    """Decides whether an update is allowed through."""

    @abc.abstractmethod
    async def allow(self, update: Any) -> bool:
        """Return True if the update is allowed."""


class FilterFunc(Filter):
    """A filter built from an async function of an update."""

    def __init__(self, fn: Callable[[Any], Awaitable[bool]]) -> None:
        self.fn = fn

    async def allow(self, update: Any) -> bool:
        return bool(await self.fn(update))


def any_of(*args: Filter) -> Filter:
    """Allow the update if any of the filters allows it."""

    async def check(update: Any) -> bool:
        for flt in args:
            if await flt.allow(update):
                return True
        return False

    return FilterFunc(check)


def all_of(*args: Filter) -> Filter:
    """Allow the update only if all of the filters allow it."""

    async def check(update: Any) -> bool:
        for flt in args:
            if not await flt.allow(update):
                return False
        return True

    return FilterFunc(check)


def not_(flt: Filter) -> Filter:
    """Allow the update if ``flt`` does not."""

    async def check(update: Any) -> bool:
        return not await flt.allow(update)

    return FilterFunc(check)


class CommandFilter(Filter):
    """Matches message commands such as ``/start`` or ``/start@botname``."""

    def __init__(
        self,
        commands: Iterable[str],
        prefixes: Union[str, Iterable[str]] = "/",
        ignore_mention: bool = False,
        ignore_case: bool = True,
        ignore_caption: bool = True,
    ) -> None:
        self.ignore_case = ignore_case
        self.commands = [c.lower() if ignore_case else c for c in commands]
        self.prefixes = "".join(prefixes)
        self.ignore_mention = ignore_mention
        self.ignore_caption = ignore_caption

    async def allow(self, update: Any) -> bool:
        msg = get_update_message(update)
        if msg is None:
            return False

        text = _attr(msg, "text") or ""
        if not text and not self.ignore_caption:
            text = _attr(msg, "caption") or ""
        if not text:
            return False

        full_command = text.split(" ", 1)[0]

        try:
            me = await update.client.me()
        except Exception as err:
            raise RuntimeError(f"command filter: get current bot info: {err}") from err

        prefix = full_command[:1]
        name, _, mention = full_command[1:].partition("@")
        if self.ignore_case:
            name = name.lower()

        if prefix not in self.prefixes:
            return False

        username = _attr(me, "username") or ""
        if not self.ignore_mention and mention and mention.casefold() != username.casefold():
            return False

        return name in self.commands


def command(
    name: str,
    *,
    prefixes: Union[str, Iterable[str]] = "/",
    ignore_mention: bool = False,
    ignore_case: bool = True,
    ignore_caption: bool = True,
    aliases: Iterable[str] = (),
) -> CommandFilter:
    """Filter for a command and its aliases in message text (or caption)."""
    return CommandFilter(
        [name, *aliases],
        prefixes=prefixes,
        ignore_mention=ignore_mention,
        ignore_case=ignore_case,
        ignore_caption=ignore_caption,
    )


def get_message_entities(message: Any) -> list:
    """Return entities of the text, caption, poll explanation or game text."""
    entities = _attr(message, "entities")
    if entities:
        return list(entities)
    caption_entities = _attr(message, "caption_entities")
    if caption_entities:
        return list(caption_entities)
    poll = _attr(message, "poll")
    if poll is not None:
        return list(_attr(poll, "explanation_entities") or [])
    game = _attr(message, "game")
    if game is not None:
        return list(_attr(game, "text_entities") or [])
    return []


def get_update_chat(update: Any) -> Any:
    """Return the chat an update belongs to, or ``None``."""
    msg = get_update_message(update)
    if msg is not None:
        return _attr(msg, "chat")
    callback_query = _attr(update, "callback_query")
    if callback_query is not None and _attr(callback_query, "message") is not None:
        return _attr(callback_query.message, "chat")
    for name in ("my_chat_member", "chat_member", "chat_join_request"):
        part = _attr(update, name)
        if part is not None:
            return _attr(part, "chat")
    return None


def extract_update_text(update: Any) -> tuple[str, bool]:
    """Return the text an update carries and whether it has any."""
    msg = get_update_message(update)
    if msg is not None:
        for text in (_attr(msg, "text"), _attr(msg, "caption")):
            if text:
                return text, True
        poll = _attr(msg, "poll")
        if poll is not None and _attr(poll, "question"):
            return poll.question, True
        return "", False

    for part_name, text_name in (
        ("callback_query", "data"),
        ("inline_query", "query"),
        ("chosen_inline_result", "query"),
        ("poll", "question"),
    ):
        part = _attr(update, part_name)
        if part is not None and _attr(part, text_name):
            return getattr(part, text_name), True
    return "", False


def regexp(pattern: Union[str, Pattern[str]]) -> Filter:
    """Allow updates whose text matches ``pattern`` anywhere."""
    compiled = re.compile(pattern)

    async def check(update: Any) -> bool:
        text, ok = extract_update_text(update)
        if not ok:
            return False
        return compiled.search(text) is not None

    return FilterFunc(check)


def _update_chat_type(update: Any) -> tuple[Optional[Any], bool]:
    if get_update_message(update) is None:
        callback_query = _attr(update, "callback_query")
        if callback_query is None or _attr(callback_query, "message") is None:
            inline_query = _attr(update, "inline_query")
            if inline_query is not None:
                return _attr(inline_query, "chat_type"), True
    if get_update_message(update) is None and not any(
        _attr(update, name) is not None
        for name in ("callback_query", "my_chat_member", "chat_member", "chat_join_request")
    ):
        return None, False
    chat = get_update_chat(update)
    if chat is None:
        return None, False
    return _attr(chat, "type"), True


def chat_type(*args: Any) -> Filter:
    """Allow updates from chats of one of the given types."""
    types = tuple(args)

    async def check(update: Any) -> bool:
        typ, found = _update_chat_type(update)
        return found and typ in types

    return FilterFunc(check)


def message_entity(*args: Any) -> Filter:
    """Allow messages or polls that hold an entity of one of the given types."""
    types = tuple(args)

    async def check(update: Any) -> bool:
        poll = _attr(update, "poll")
        if poll is not None:
            entities = list(_attr(poll, "explanation_entities") or [])
        else:
            msg = get_update_message(update)
            if msg is None:
                return False
            entities = get_message_entities(msg)
        return any(_attr(entity, "type") in types for entity in entities)

    return FilterFunc(check)


class TextFuncFilter(Filter):
    """Applies ``fn(text, ignore_case)`` to the text of an update."""

    def __init__(self, fn: Callable[[str, bool], bool], ignore_case: bool = False) -> None:
        self.fn = fn
        self.ignore_case = ignore_case

    async def allow(self, update: Any) -> bool:
        text, ok = extract_update_text(update)
        if not ok or not text:
            return False
        return bool(self.fn(text, self.ignore_case))


def text_func(fn: Callable[[str, bool], bool], *, ignore_case: bool = False) -> TextFuncFilter:
    """Filter on update text with a custom comparison."""
    return TextFuncFilter(fn, ignore_case)


def text_equal(value: str, *, ignore_case: bool = False) -> TextFuncFilter:
    """Allow updates whose text equals ``value``."""

    def check(text: str, fold: bool) -> bool:
        if fold:
            return text.casefold() == value.casefold()
        return text == value

    return TextFuncFilter(check, ignore_case)


def text_has_prefix(value: str, *, ignore_case: bool = False) -> TextFuncFilter:
    """Allow updates whose text starts with ``value``."""

    def check(text: str, fold: bool) -> bool:
        if fold:
            return text.lower().startswith(value.lower())
        return text.startswith(value)

    return TextFuncFilter(check, ignore_case)


def text_has_suffix(value: str, *, ignore_case: bool = False) -> TextFuncFilter:
    """Allow updates whose text ends with ``value``."""

    def check(text: str, fold: bool) -> bool:
        if fold:
            return text.lower().endswith(value.lower())
        return text.endswith(value)

    return TextFuncFilter(check, ignore_case)


def text_contains(value: str, *, ignore_case: bool = False) -> TextFuncFilter:
    """Allow updates whose text contains ``value``."""

    def check(text: str, fold: bool) -> bool:
        if fold:
            return value.lower() in text.lower()
        return value in text

    return TextFuncFilter(check, ignore_case)


def text_in(values: Iterable[str], *, ignore_case: bool = False) -> TextFuncFilter:
    """Allow updates whose text is one of ``values``."""
    choices = tuple(values)

    def check(text: str, fold: bool) -> bool:
        if fold:
            folded = text.casefold()
            return any(folded == choice.casefold() for choice in choices)
        return text in choices

    return TextFuncFilter(check, ignore_case)