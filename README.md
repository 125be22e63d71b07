# tgroute

Building blocks for Telegram bots. You can route incoming updates to handlers and narrow
them with composable async filters. You can pack dataclasses into callback button data and
keep per-chat session state between updates.

The package has no runtime dependencies.

## What it does not do

tgroute does not talk to the Bot API. It has no HTTP client, no long-polling loop and no
webhook server. You fetch updates with a client of your choice and pass each one to
`Router.handle`. Replies are sent through whatever client you attach to the update.

## Install

```
pip install tgroute
```

To run the test suite:

```
pip install "tgroute[test]"
pytest
```

## Updates

An update is any object whose attributes are named after the Bot API update fields:
`message`, `edited_message`, `channel_post`, `callback_query`, `inline_query`, `poll`,
`my_chat_member` and so on. Parts that are not set are `None` or absent. Two more
attributes are used where present:

- `client`: the filter made by `command()` calls `await update.client.me()` and reads
  its `username`.
- `update_id`: the session manager uses it to identify an update.

`tgroute.handler.update_type(update)` returns the name of the first set part.
`get_update_message(update)` returns the message, edited message, channel post or edited
channel post.

## Routing updates

`tgroute.router.Router` keeps a list of handlers for each update type. It tries handlers in
this order:

1. generic handlers registered with `update()`;
2. the handlers registered for the update's type, in registration order;
3. a default handler that does nothing.

The first handler whose filters allow the update handles it. Handlers whose filters
reject the update are skipped.

```python
from tgroute.router import Router
from tgroute.filter import command, chat_type, text_contains, any_of

router = Router()

async def on_start(msg):
    print(msg.text)          # attributes are looked up on the message

async def on_greeting(msg):
    ...

router.message(on_start, command("start", aliases=["help"]))
router.message(
    on_greeting,
    text_contains("hello", ignore_case=True),
    any_of(chat_type("private"), chat_type("group")),
)

await router.handle(update)
```

Typed handlers receive a `tgroute.handler.TypedUpdate`. It exposes the following:

- `payload`: the part the handler was registered for.
- The same part under its field name, for example `msg.message` or `cq.callback_query`.
- `update`: the whole update.
- `client`: the update's client.

Any other attribute is read from the payload.

Message handlers accept any kind of message. This covers `message`, `edited_message`,
`channel_post`, `edited_channel_post`, `business_message` and `edited_business_message`.
Chat member handlers accept both `my_chat_member` and `chat_member`. `update()` handlers
receive the raw update.

When several filters are passed, all of them must allow the update. If a filter raises,
the error is re-raised as `RuntimeError("filter error: ...")`. If a handler raises and an
error handler was set with `router.error(fn)`, the router returns
`await fn(update, exc)`. Without an error handler, the exception propagates.

A `Router` is itself an async callable of one update.

### Middleware

A middleware is a callable that takes a handler and returns a wrapped handler.
`router.use(mw, ...)` adds middleware. It applies only to handlers registered after the
call, so call `use()` first. `tgroute.middleware.Chain` composes middleware for your own
use. `Chain(mws).then(handler)` wraps the handler so that the first middleware runs
outermost. `append()` returns a new chain.

## Filters

A filter is an object with an async `allow(update)` method. `tgroute.filter` provides the
following:

- `command(name, *, prefixes="/", ignore_mention=False, ignore_case=True, ignore_caption=True, aliases=())`:
  matches `/name` and `/name@botname`. A mention of another bot is rejected unless
  `ignore_mention` is set.
- `regexp(pattern)`: the pattern is searched in the update text. The text is taken from
  the message text, the caption, the poll question, the callback data, the inline query or
  the chosen result query.
- `chat_type(*types)`: the update comes from a chat of one of the given types.
- `message_entity(*types)`: the message or poll holds an entity of one of the given types.
- `text_equal`, `text_has_prefix`, `text_has_suffix`, `text_contains`, `text_in`: each
  takes `ignore_case`.
- `text_func(fn, *, ignore_case=False)`: your own check, called as
  `fn(text, ignore_case)`.
- `any_of`, `all_of`, `not_`: combine filters.
- `FilterFunc(coro_fn)`: wraps an async function of an update.

## Callback data

`tgroute.callback_data.CallbackDataCodec` encodes a dataclass instance as its field values
joined by a delimiter, for example `1:0:-kf12oi:xyz`. It also decodes such a string back
into the dataclass.

Supported field types are `bool`, `int`, `str` and `float`. The codec's defaults are:

- delimiter `:`
- integer base 36
- float format `f`, with the shortest exact precision

The encoded data may be at most 64 bytes in UTF-8. Longer data raises
`CallbackDataTooLongError` unless `disable_length_check=True` is set.

You can override settings per field in the field metadata:

```python
from dataclasses import dataclass, field

@dataclass
class Item:
    id: int = field(metadata={"base": 10})
    price: float = field(metadata={"fmt": "f", "prec": 2})
```

Errors raise `CallbackDataError`, which is a `ValueError`. The module-level functions
`encode_callback_data` and `decode_callback_data` use a default codec.

`CallbackDataFilter` binds a dataclass to a prefix. It provides the following methods:

- `encode` and `decode`
- `button` and `must_button`: these return an `InlineKeyboardButton`. On failure
  `button` raises and `must_button` returns an empty button.
- `filter()`: matches the prefix.
- `filter_func(check)`: matches the prefix and passes the decoded value to `check`.
- `handler(fn)`: calls `fn(update, value)` with the decoded value.

```python
from dataclasses import dataclass
from tgroute.callback_data import CallbackDataFilter

@dataclass
class Vote:
    item: int
    up: bool

votes = CallbackDataFilter(Vote, "vote")
button = votes.button("👍", Vote(item=42, up=True))   # callback_data "vote:16:1"

async def on_vote(cq, vote):
    ...

router.callback_query(votes.handler(on_vote), votes.filter())
```

## Sessions

`tgroute.session.manager.Manager` is a middleware that handles a session around each
handler:

1. It loads the session for the update's chat from a store. If none is stored, it uses a
   copy of the initial value.
2. It exposes the session through `manager.get()` while the handler runs.
3. If the handler changed the session, it writes it back. A session equal to the initial
   value is deleted from the store instead.
4. If the handler raises, nothing is saved.

```python
from dataclasses import dataclass
from tgroute.session.manager import Manager
from tgroute.session.store import StoreFile

@dataclass
class Session:
    count: int = 0

sessions = Manager(Session(), store=StoreFile("sessions"))
router.use(sessions)

async def count_messages(msg):
    sessions.get().count += 1

router.message(count_messages, sessions.filter(lambda s: s.count < 10))
```

The `Manager` constructor takes these keyword arguments, each with a default:

- `key_func`: defaults to `key_func_chat`, which uses the chat id.
- `store`: defaults to `StoreMemory()`.
- `encode` and `decode`: default to compact JSON.

`setup()` changes any of these later. `set_equal_func()` replaces the equality check.
`reset(session)` restores a session to the initial value in place. `filter(fn)` builds a
filter on the current session.

`tgroute.session.store` has two built-in stores:

- `StoreMemory`: in memory and thread-safe.
- `StoreFile(directory, *, perms=0o666, transform=...)`: one `.session` file per key.
  `transform` can split a key into subdirectories.

To use your own store, subclass `Store` and implement async `set`, `get` and `delete`.
`get` must return `None` for a missing key.