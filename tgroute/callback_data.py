"""Compact callback data for inline keyboard buttons.

A dataclass instance is encoded as its field values joined by a delimiter.
Supported field types are ``bool``, ``int``, ``str`` and ``float``.
Per-field options live in the dataclass field metadata:

* ``base``: integer base (2..36) for an ``int`` field,
* ``fmt``: float format character (``f``, ``e``, ``E``, ``g``, ``G``),
* ``prec``: float precision, negative for the shortest exact form.

Metadata values may be integers or strings holding them.
"""

from __future__ import annotations

import dataclasses
import math
import typing
from decimal import Decimal
from typing import Any, Awaitable, Callable, Generic, Iterator, TypeVar

from .filter import Filter, FilterFunc

CALLBACK_DATA_MAX_LEN = 64

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_FLOAT_FORMATS = "feEgG"
_NAMED_TYPES = {"bool": bool, "int": int, "str": str, "float": float}
_BASE_PREFIXES = {2: "0b", 8: "0o", 16: "0x"}

T = TypeVar("T")


class CallbackDataError(ValueError):
    """Callback data cannot be encoded or decoded."""


class CallbackDataTooLongError(CallbackDataError):
    """The encoded callback data exceeds the length limit."""

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(
            f"callback data length is too long: {length}, max: {CALLBACK_DATA_MAX_LEN}"
        )


@dataclasses.dataclass(frozen=True)
class InlineKeyboardButton:
    """An inline keyboard button carrying callback data."""

    text: str = ""
    callback_data: str = ""


def _syntax_error(text: str) -> CallbackDataError:
    return CallbackDataError(f"parsing {text!r}: invalid syntax")


def _format_int(value: int, base: int) -> str:
    if not 2 <= base <= 36:
        raise CallbackDataError(f"invalid base {base}")
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, base)
        digits.append(_DIGITS[rem])
    return sign + "".join(reversed(digits))


def _parse_int(text: str, base: int) -> int:
    if base != 0 and not 2 <= base <= 36:
        raise CallbackDataError(f"parsing {text!r}: invalid base {base}")
    if not text or text != text.strip() or "_" in text:
        raise _syntax_error(text)
    prefix = _BASE_PREFIXES.get(base)
    if prefix is not None and text.lstrip("+-").lower().startswith(prefix):
        raise _syntax_error(text)
    try:
        return int(text, base)
    except ValueError:
        raise _syntax_error(text) from None


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise _syntax_error(text)
    try:
        return float(text)
    except ValueError:
        raise _syntax_error(text) from None


def _format_shortest(value: float, fmt: str) -> str:
    sign = "-" if math.copysign(1.0, value) < 0 else ""
    dec = Decimal(repr(abs(value))).normalize()
    _, digit_tuple, exponent = dec.as_tuple()
    digits = "".join(map(str, digit_tuple))
    if digits == "0":
        digits, point = "", 0
    else:
        point = len(digits) + int(exponent)

    exp_char = "E" if fmt.isupper() else "e"
    kind = fmt.lower()
    if kind == "g":
        exp = point - 1
        kind = "e" if exp < -4 or exp >= 6 else "f"

    if kind == "f":
        return sign + format(dec, "f")

    if not digits:
        mantissa, exp = "0", 0
    else:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp = point - 1
    exp_sign = "-" if exp < 0 else "+"
    return f"{sign}{mantissa}{exp_char}{exp_sign}{abs(exp):02d}"


def _format_float(value: float, fmt: str, prec: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if fmt not in _FLOAT_FORMATS:
        raise CallbackDataError(f"unsupported float format: {fmt}")
    if prec < 0:
        return _format_shortest(value, fmt)
    return format(value, f".{prec}{fmt}")


def _tag_int(raw: Any, label: str) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    try:
        return int(str(raw))
    except ValueError:
        raise CallbackDataError(
            f"invalid {label} value: parsing {str(raw)!r}: invalid syntax"
        ) from None


def _resolve_kind(tp: Any) -> Any:
    if isinstance(tp, str):
        return _NAMED_TYPES.get(tp.strip(), tp)
    return tp


def _type_name(tp: Any) -> str:
    if isinstance(tp, str):
        return tp
    origin = typing.get_origin(tp) or tp
    return getattr(origin, "__name__", repr(tp))


def _dataclass_fields(cls: type) -> Iterator[tuple[dataclasses.Field, Any]]:
    for fld in dataclasses.fields(cls):
        yield fld, _resolve_kind(fld.type)


def _unsupported(tp: Any) -> CallbackDataError:
    return CallbackDataError(f"unsupported field type: {_type_name(tp)}")


class CallbackDataCodec:
    """Encodes dataclass instances to callback data strings and back."""

    def __init__(
        self,
        *,
        delimiter: str = ":",
        int_base: int = 36,
        float_fmt: str = "f",
        float_prec: int = -1,
        disable_length_check: bool = False,
    ) -> None:
        if len(delimiter) != 1:
            raise CallbackDataError(f"invalid delimiter: {delimiter!r}")
        if len(float_fmt) != 1:
            raise CallbackDataError(f"invalid fmt value: {float_fmt}")
        self.delimiter = delimiter
        self.int_base = int_base
        self.float_fmt = float_fmt
        self.float_prec = float_prec
        self.disable_length_check = disable_length_check

    def _base(self, fld: dataclasses.Field) -> int:
        raw = fld.metadata.get("base")
        return self.int_base if raw is None else _tag_int(raw, "base")

    def _fmt(self, fld: dataclasses.Field) -> str:
        raw = fld.metadata.get("fmt")
        if raw is None:
            return self.float_fmt
        if not isinstance(raw, str) or len(raw) != 1:
            raise CallbackDataError(f"invalid fmt value: {raw}")
        return raw

    def _prec(self, fld: dataclasses.Field) -> int:
        raw = fld.metadata.get("prec")
        return self.float_prec if raw is None else _tag_int(raw, "prec")

    def _encode_value(self, fld: dataclasses.Field, kind: Any, value: Any) -> str:
        if kind is bool:
            return "1" if value else "0"
        if kind is int:
            try:
                return _format_int(int(value), self._base(fld))
            except CallbackDataError as err:
                raise CallbackDataError(f"field {fld.name}: {err}") from err
        if kind is str:
            return str(value)
        if kind is float:
            try:
                return _format_float(float(value), self._fmt(fld), self._prec(fld))
            except CallbackDataError as err:
                raise CallbackDataError(f"field {fld.name}: {err}") from err
        raise _unsupported(kind)

    def _decode_value(self, fld: dataclasses.Field, kind: Any, raw: str) -> Any:
        if kind is bool:
            if raw == "1":
                return True
            if raw == "0":
                return False
            raise CallbackDataError(f"invalid bool value: {raw}")
        if kind is int:
            try:
                return _parse_int(raw, self._base(fld))
            except CallbackDataError as err:
                raise CallbackDataError(f"field {fld.name}: {err}") from err
        if kind is str:
            return raw
        if kind is float:
            try:
                return _parse_float(raw)
            except CallbackDataError as err:
                raise CallbackDataError(f"field {fld.name}: {err}") from err
        raise _unsupported(kind)

    def encode(self, src: Any) -> str:
        """Encode a dataclass instance as delimited field values."""
        if src is None:
            raise CallbackDataError("src is None")
        if isinstance(src, type) or not dataclasses.is_dataclass(src):
            raise CallbackDataError("src should be a dataclass instance")

        result = self.delimiter.join(
            self._encode_value(fld, kind, getattr(src, fld.name))
            for fld, kind in _dataclass_fields(type(src))
        )

        length = len(result.encode("utf-8"))
        if not self.disable_length_check and length > CALLBACK_DATA_MAX_LEN:
            raise CallbackDataTooLongError(length)
        return result

    def decode(self, data: str, cls: type[T]) -> T:
        """Decode callback data into a new instance of dataclass ``cls``."""
        if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
            raise CallbackDataError("cls should be a dataclass type")

        fields = list(_dataclass_fields(cls))
        values = data.split(self.delimiter) if data else []
        if len(values) != len(fields):
            raise CallbackDataError(
                f"invalid data length: expected {len(fields)}, got {len(values)}"
            )

        init_values: dict[str, Any] = {}
        late_values: dict[str, Any] = {}
        for (fld, kind), raw in zip(fields, values):
            target = init_values if fld.init else late_values
            target[fld.name] = self._decode_value(fld, kind, raw)

        obj = cls(**init_values)
        for name, value in late_values.items():
            object.__setattr__(obj, name, value)
        return obj


DEFAULT_CALLBACK_DATA_CODEC = CallbackDataCodec()


def encode_callback_data(src: Any) -> str:
    """Encode ``src`` with the default codec."""
    return DEFAULT_CALLBACK_DATA_CODEC.encode(src)


def decode_callback_data(data: str, cls: type[T]) -> T:
    """Decode ``data`` into ``cls`` with the default codec."""
    return DEFAULT_CALLBACK_DATA_CODEC.decode(data, cls)


class CallbackDataFilter(Generic[T]):
    """Prefixed callback data for one dataclass type.

    Builds buttons, decodes callback queries, filters updates by prefix and
    wraps handlers so that they receive the decoded value.
    """

    def __init__(self, cls: type[T], prefix: str, **kwargs: Any) -> None:
        self.cls = cls
        self.prefix = prefix
        self.codec = CallbackDataCodec(**kwargs)

    @property
    def _full_prefix(self) -> str:
        return self.prefix + self.codec.delimiter

    def must_button(self, text: str, value: T) -> InlineKeyboardButton:
        """Return a button for ``value``, or an empty button if it cannot be encoded."""
        try:
            data = self.encode(value)
        except CallbackDataError:
            return InlineKeyboardButton()
        return InlineKeyboardButton(text=text, callback_data=data)

    def button(self, text: str, value: T) -> InlineKeyboardButton:
        """Return a button for ``value``."""
        try:
            data = self.encode(value)
        except CallbackDataError as err:
            raise CallbackDataError(f"encode: {err}") from err
        return InlineKeyboardButton(text=text, callback_data=data)

    def encode(self, value: T) -> str:
        """Encode ``value`` behind the prefix."""
        try:
            body = self.codec.encode(value)
        except CallbackDataError as err:
            raise CallbackDataError(f"body encode: {err}") from err
        return self._full_prefix + body

    def decode(self, data: str) -> T:
        """Decode prefixed callback data."""
        if not data.startswith(self.prefix):
            raise CallbackDataError(f"invalid prefix: expected {self.prefix}, got {data}")
        body = data.removeprefix(self._full_prefix)
        try:
            return self.codec.decode(body, self.cls)
        except CallbackDataError as err:
            raise CallbackDataError(f"body decode: {err}") from err

    def filter(self) -> Filter:
        """Filter allowing callback queries whose data carries the prefix."""
        full_prefix = self._full_prefix

        async def check(update: Any) -> bool:
            query = getattr(update, "callback_query", None)
            if query is None:
                return False
            return (getattr(query, "data", None) or "").startswith(full_prefix)

        return FilterFunc(check)

    def filter_func(self, check: Callable[[T], bool]) -> Filter:
        """Filter allowing prefixed callback queries whose value passes ``check``."""
        full_prefix = self._full_prefix

        async def allow(update: Any) -> bool:
            query = getattr(update, "callback_query", None)
            if query is None:
                return False
            data = getattr(query, "data", None) or ""
            try:
                value = self.decode(data)
            except CallbackDataError as err:
                raise CallbackDataError(f"decode: {err}") from err
            return data.startswith(full_prefix) and bool(check(value))

        return FilterFunc(allow)

    def handler(
        self, fn: Callable[[Any, T], Awaitable[Any]]
    ) -> Callable[[Any], Awaitable[Any]]:
        """Wrap ``fn(callback_query_update, value)`` as a callback query handler."""

        async def handle(cqu: Any) -> Any:
            try:
                value = self.decode(cqu.callback_query.data)
            except CallbackDataError as err:
                raise CallbackDataError(f"decode: {err}") from err
            return await fn(cqu, value)

        return handle