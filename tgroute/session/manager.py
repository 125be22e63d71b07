"""Per-chat sessions kept between updates.

A session is a mutable object (typically a dataclass instance) with a
user-defined structure.  :class:`Manager` works as a middleware: it loads the
session for an update, makes it available through :meth:`Manager.get` while
the handler runs, and saves it back when the handler changed it.  A session
equal to the initial value is removed from the store.
"""

from __future__ import annotations

import contextvars
import copy
import dataclasses
import json
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from ..filter import Filter, FilterFunc, get_update_chat
from ..router import FilterNotAllowed
from .store import Store, StoreMemory

T = TypeVar("T")

KeyFunc = Callable[[Any], str]
Encoder = Callable[[Any], bytes]
Decoder = Callable[[bytes, type], Any]


def key_func_chat(update: Any) -> str:
    """Return the id of the update's chat as a key, or an empty string."""
    chat = get_update_chat(update)
    if chat is None:
        return ""
    chat_id = getattr(chat, "id", None)
    return "" if chat_id is None else str(int(chat_id))


def _json_encode(value: Any) -> bytes:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        obj = dataclasses.asdict(value)
    elif hasattr(value, "__dict__"):
        obj = vars(value)
    else:
        obj = value
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


def _json_decode(data: bytes, cls: type) -> Any:
    obj = json.loads(data)
    if dataclasses.is_dataclass(cls):
        return cls(
            **{
                fld.name: obj[fld.name]
                for fld in dataclasses.fields(cls)
                if fld.init and fld.name in obj
            }
        )
    if isinstance(obj, dict) and cls is not dict:
        instance = cls.__new__(cls)
        instance.__dict__.update(obj)
        return instance
    return cls(obj)


def _default_equal(a: Any, b: Any) -> bool:
    return a == b


class Manager(Generic[T]):
    """Loads, exposes and persists sessions around update handlers."""

    def __init__(
        self,
        initial: T,
        *,
        key_func: KeyFunc = key_func_chat,
        store: Optional[Store] = None,
        encode: Encoder = _json_encode,
        decode: Decoder = _json_decode,
    ) -> None:
        self.initial = initial
        self.key_func = key_func
        self.store: Store = store if store is not None else StoreMemory()
        self.encode = encode
        self.decode = decode
        self.equal: Callable[[T, T], bool] = _default_equal
        self._current: contextvars.ContextVar[Optional[T]] = contextvars.ContextVar(
            f"session-{id(self)}", default=None
        )
        self._cache: dict[Any, T] = {}

    def set_equal_func(self, fn: Callable[[T, T], bool]) -> None:
        """Set the function deciding whether two sessions are equal."""
        self.equal = fn

    def setup(
        self,
        *,
        key_func: Optional[KeyFunc] = None,
        store: Optional[Store] = None,
        encode: Optional[Encoder] = None,
        decode: Optional[Decoder] = None,
    ) -> None:
        """Change settings after construction; only the given ones are replaced."""
        if key_func is not None:
            self.key_func = key_func
        if store is not None:
            self.store = store
        if encode is not None:
            self.encode = encode
        if decode is not None:
            self.decode = decode

    def get(self) -> Optional[T]:
        """Return the session of the update being handled, or ``None`` outside one."""
        return self._current.get()

    def reset(self, session: T) -> None:
        """Restore ``session`` in place to the initial value."""
        fresh = copy.deepcopy(self.initial)
        if dataclasses.is_dataclass(session) and not isinstance(session, type):
            for fld in dataclasses.fields(session):
                object.__setattr__(session, fld.name, getattr(fresh, fld.name))
        else:
            session.__dict__.clear()
            session.__dict__.update(vars(fresh))

    def filter(self, fn: Callable[[T], bool]) -> Filter:
        """Filter that passes the current session to ``fn``; false without a session."""

        async def check(update: Any) -> bool:
            session = self.get()
            if session is None:
                return False
            return bool(fn(session))

        return FilterFunc(check)

    async def _load(self, key: str) -> T:
        data = await self.store.get(key)
        if data is None:
            return copy.deepcopy(self.initial)
        return self.decode(data, type(self.initial))

    async def _save(self, key: str, session: T) -> None:
        try:
            data = self.encode(session)
        except Exception as err:
            raise RuntimeError(f"encode session: {err}") from err
        await self.store.set(key, data)

    @staticmethod
    def _cache_key(update: Any) -> Any:
        update_id = getattr(update, "update_id", None)
        return update_id if update_id is not None else id(update)

    def wrap(self, handler: Callable[[Any], Awaitable[Any]]) -> Callable[[Any], Awaitable[Any]]:
        """Wrap ``handler`` so it runs with the session of its update.

        The session is fetched from the store (or created from the initial
        value), exposed through :meth:`get`, and written back if the handler
        changed it.  Nothing is saved when the handler raises.
        """

        async def handle(update: Any) -> Any:
            key = self.key_func(update)
            if not key:
                raise RuntimeError("can't get key from update")

            cache_key = self._cache_key(update)
            session = self._cache.get(cache_key)
            if session is None:
                try:
                    session = await self._load(key)
                except Exception as err:
                    raise RuntimeError(f"get session from store: {err}") from err
                self._cache[cache_key] = session

            before = copy.deepcopy(session)
            token = self._current.set(session)
            try:
                result = await handler(update)
            except FilterNotAllowed:
                raise
            except BaseException:
                self._cache.pop(cache_key, None)
                raise
            finally:
                self._current.reset(token)

            self._cache.pop(cache_key, None)

            if not self.equal(before, session):
                if self.equal(session, self.initial):
                    try:
                        await self.store.delete(key)
                    except Exception as err:
                        raise RuntimeError(f"delete default session: {err}") from err
                    return result
                try:
                    await self._save(key, session)
                except Exception as err:
                    raise RuntimeError(f"save session to store: {err}") from err

            return result

        return handle

    def __call__(self, handler: Callable[[Any], Awaitable[Any]]) -> Callable[[Any], Awaitable[Any]]:
        return self.wrap(handler)