import re
from types import SimpleNamespace as NS

import pytest

from tgroute.filter import (
    CommandFilter,
    Filter,
    FilterFunc,
    TextFuncFilter,
    all_of,
    any_of,
    chat_type,
    command,
    extract_update_text,
    get_message_entities,
    get_update_chat,
    message_entity,
    not_,
    regexp,
    text_contains,
    text_equal,
    text_func,
    text_has_prefix,
    text_has_suffix,
    text_in,
)


def const(value, error=None):
    async def fn(update):
        if error is not None:
            raise error
        return value

    return FilterFunc(fn)


YES = const(True)
NO = const(False)
FAIL = const(False, ValueError("some error"))


class FakeClient:
    def __init__(self, username="go_tg_test_bot", error=None):
        self.username = username
        self.error = error
        self.calls = 0

    async def me(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return NS(username=self.username)


@pytest.mark.asyncio
async def test_any_of():
    assert await any_of(YES, NO).allow(NS()) is True
    assert await any_of(NO, NO).allow(NS()) is False
    assert await any_of().allow(NS()) is False
    with pytest.raises(ValueError, match="some error"):
        await any_of(FAIL, YES).allow(NS())


@pytest.mark.asyncio
async def test_all_of():
    assert await all_of(YES, YES).allow(NS()) is True
    assert await all_of(YES, NO).allow(NS()) is False
    assert await all_of().allow(NS()) is True
    with pytest.raises(ValueError):
        await all_of(YES, FAIL).allow(NS())


@pytest.mark.asyncio
async def test_not():
    assert await not_(YES).allow(NS()) is False
    assert await not_(NO).allow(NS()) is True
    with pytest.raises(ValueError):
        await not_(const(True, ValueError("test"))).allow(NS())


@pytest.mark.asyncio
async def test_custom_filter_subclass():
    class Even(Filter):
        async def allow(self, update):
            return update.value % 2 == 0

    assert await all_of(Even(), YES).allow(NS(value=4)) is True
    assert await all_of(Even(), YES).allow(NS(value=3)) is False


@pytest.mark.parametrize(
    "flt, update, expected",
    [
        (command("start"), NS(message=NS(text="/start azcv 5678")), True),
        (command("start"), NS(), False),
        (command("start"), NS(channel_post=NS(text="/start azcv 5678")), True),
        (command("start", ignore_caption=False), NS(message=NS(caption="/start azcv 5678")), True),
        (command("start", ignore_caption=False), NS(message=NS()), False),
        (command("start"), NS(message=NS(text="!start azcv 5678")), False),
        (command("start", prefixes="!"), NS(message=NS(text="!start azcv 5678")), True),
        (command("start"), NS(message=NS(text="/start@go_tg_test_bot azcv 5678")), True),
        (command("start"), NS(message=NS(text="/start@anybot azcv 5678")), False),
        (command("start"), NS(message=NS(text="/help azcv 5678")), False),
        (command("start", ignore_mention=True), NS(message=NS(text="/start@anybot azcv 5678")), True),
        (command("start", ignore_case=False), NS(message=NS(text="/START azcv 5678")), False),
        (command("start", aliases=["help"]), NS(message=NS(text="/help azcv 5678")), True),
    ],
)
@pytest.mark.asyncio
async def test_command(flt, update, expected):
    update.client = FakeClient()
    assert await flt.allow(update) is expected


@pytest.mark.asyncio
async def test_command_ignores_case_by_default():
    flt = CommandFilter(["Start"])
    assert flt.commands == ["start"]
    update = NS(message=NS(text="/START"), client=FakeClient())
    assert await flt.allow(update) is True


@pytest.mark.asyncio
async def test_command_client_error():
    update = NS(message=NS(text="/start"), client=FakeClient(error=OSError("down")))
    with pytest.raises(RuntimeError, match="get current bot info: down"):
        await command("start").allow(update)


@pytest.mark.parametrize(
    "update, expected",
    [
        (NS(message=NS(text="mango")), True),
        (NS(message=NS(caption="mango")), True),
        (NS(message=NS(poll=NS(question="mango"))), True),
        (NS(callback_query=NS(data="mango")), True),
        (NS(inline_query=NS(query="mango")), True),
        (NS(chosen_inline_result=NS(query="mango")), True),
        (NS(poll=NS(question="mango")), True),
        (NS(poll_answer=NS()), False),
        (NS(message=NS(text="apple")), False),
    ],
)
@pytest.mark.asyncio
async def test_regexp(update, expected):
    assert await regexp("go").allow(update) is expected
    assert await regexp(re.compile("go")).allow(update) is expected


def test_extract_update_text_message_without_text_stops():
    update = NS(message=NS(text=""), callback_query=NS(data="data"))
    assert extract_update_text(update) == ("", False)
    assert extract_update_text(NS(callback_query=NS(data="data"))) == ("data", True)


@pytest.mark.parametrize(
    "types, update, expected",
    [
        (("private",), NS(message=NS(chat=NS(type="private"))), True),
        (("private",), NS(edited_message=NS(chat=NS(type="private"))), True),
        (("channel",), NS(channel_post=NS(chat=NS(type="channel"))), True),
        (("channel",), NS(edited_channel_post=NS(chat=NS(type="channel"))), True),
        (("private",), NS(callback_query=NS(message=NS(chat=NS(type="private")))), True),
        (("private",), NS(callback_query=NS(message=None)), False),
        (("sender",), NS(inline_query=NS(chat_type="sender")), True),
        (("supergroup",), NS(my_chat_member=NS(chat=NS(type="supergroup"))), True),
        (("supergroup",), NS(chat_member=NS(chat=NS(type="supergroup"))), True),
        (("supergroup",), NS(chat_join_request=NS(chat=NS(type="supergroup"))), True),
        (("supergroup",), NS(shipping_query=NS()), False),
        (("group", "supergroup"), NS(message=NS(chat=NS(type="private"))), False),
    ],
)
@pytest.mark.asyncio
async def test_chat_type(types, update, expected):
    assert await chat_type(*types).allow(update) is expected


def test_get_update_chat():
    chat = NS(type="group", id=1)
    assert get_update_chat(NS(message=NS(chat=chat))) is chat
    assert get_update_chat(NS(chat_join_request=NS(chat=chat))) is chat
    assert get_update_chat(NS(inline_query=NS(chat_type="sender"))) is None


def _email_entities():
    return [NS(type="email", offset=0, length=13)]


@pytest.mark.parametrize(
    "types, update, expected",
    [
        (("email",), NS(callback_query=NS()), False),
        (("email",), NS(message=NS(text="text")), False),
        (("hashtag",), NS(message=NS(text="[email]", entities=_email_entities())), False),
        (("email",), NS(message=NS(text="[email]", entities=_email_entities())), True),
        (
            ("email", "bold"),
            NS(message=NS(caption="[email]", caption_entities=_email_entities())),
            True,
        ),
        (
            ("email",),
            NS(poll=NS(explanation="[email]", explanation_entities=_email_entities())),
            True,
        ),
        (
            ("email",),
            NS(message=NS(game=NS(text="[email]", text_entities=_email_entities()))),
            True,
        ),
        (
            ("email",),
            NS(message=NS(poll=NS(explanation="[email]", explanation_entities=_email_entities()))),
            True,
        ),
    ],
)
@pytest.mark.asyncio
async def test_message_entity(types, update, expected):
    assert await message_entity(*types).allow(update) is expected


def test_get_message_entities_poll_takes_precedence_over_game():
    game_entities = _email_entities()
    message = NS(poll=NS(explanation_entities=[]), game=NS(text_entities=game_entities))
    assert get_message_entities(message) == []
    assert get_message_entities(NS(game=NS(text_entities=game_entities))) == game_entities
    assert get_message_entities(NS()) == []


def msg(text):
    return NS(message=NS(text=text))


@pytest.mark.parametrize(
    "flt, update, expected",
    [
        (text_equal(""), msg(""), False),
        (text_equal("text"), msg("text"), True),
        (text_equal("Text"), msg("txet"), False),
        (text_equal("Text", ignore_case=True), msg("text"), True),
        (text_equal("Привіт", ignore_case=True), msg("привіт"), True),
        (text_equal("Tex t", ignore_case=True), msg("text"), False),
        (text_has_prefix("foo"), msg("foobar"), True),
        (text_has_prefix("bar"), msg("foobar"), False),
        (text_has_prefix("foo", ignore_case=True), msg("Foobar"), True),
        (text_has_prefix("При", ignore_case=True), msg("привіт"), True),
        (text_has_prefix("Хай", ignore_case=True), msg("привіт"), False),
        (text_has_suffix("аша"), msg("привіташа"), True),
        (text_has_suffix("привіт"), msg("привіташа"), False),
        (text_has_suffix("аша", ignore_case=True), msg("ПривітАша"), True),
        (text_contains("каш"), msg("акашка"), True),
        (text_contains("каш"), msg("саш"), False),
        (text_contains("каш", ignore_case=True), msg("Каша"), True),
        (text_contains("каш", ignore_case=True), msg("Саша"), False),
        (text_in(["1", "2", "3"]), msg("2"), True),
        (text_in(["1", "2", "3"]), msg("4"), False),
        (text_in(["A", "B", "C"], ignore_case=True), msg("b"), True),
        (text_in(["A", "B", "C"], ignore_case=True), msg("f"), False),
    ],
)
@pytest.mark.asyncio
async def test_text_filters(flt, update, expected):
    assert await flt.allow(update) is expected


@pytest.mark.asyncio
async def test_text_func_receives_ignore_case():
    seen = []

    def fn(text, ignore_case):
        seen.append((text, ignore_case))
        return True

    flt = text_func(fn, ignore_case=True)
    assert isinstance(flt, TextFuncFilter)
    assert await flt.allow(msg("hello")) is True
    assert seen == [("hello", True)]
    assert await flt.allow(NS(poll_answer=NS())) is False
    assert seen == [("hello", True)]