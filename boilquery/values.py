"""Comparison and assignment helpers for database values and nullable wrappers."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Valuer(Protocol):
    """Something that can give its primitive database value."""

    def value(self) -> Any: ...


@runtime_checkable
class Scanner(Protocol):
    """Something that can take its state from a primitive database value."""

    def scan(self, value: Any) -> None: ...


def _is_valuer(obj: Any) -> bool:
    return callable(getattr(obj, "value", None))


def _is_scanner(obj: Any) -> bool:
    return callable(getattr(obj, "scan", None))


def _is_bytes(obj: Any) -> bool:
    return isinstance(obj, (bytes, bytearray))


def _is_numeric(obj: Any) -> bool:
    return isinstance(obj, (int, float)) and not isinstance(obj, bool)


def _parse_numeric(text: str, like: Any) -> Any:
    try:
        if isinstance(like, int):
            return int(text, 0)
        return float(text)
    except ValueError as err:
        raise ValueError(
            f"tried to parse {text!r} as {type(like).__name__} but got error: {err}"
        ) from err


def _category(obj: Any) -> type:
    for kind in (bool, int, float, str, datetime):
        if isinstance(obj, kind):
            return kind
    if _is_bytes(obj):
        return bytes
    return type(obj)


def equal(a: Any, b: Any) -> bool:
    """Compare two primitive-ish values, unwrapping valuers and parsing numeric strings.

    Raises TypeError when the underlying primitive types differ.
    """
    if (a is None) != (b is None):
        return False
    if _is_bytes(a) and _is_bytes(b):
        return bytes(a) == bytes(b)

    if _is_valuer(a):
        a = a.value()
    if _is_valuer(b):
        b = b.value()

    if (a is None) != (b is None):
        return False

    if isinstance(a, str) and _is_numeric(b):
        a = _parse_numeric(a, b)
    if isinstance(b, str) and _is_numeric(a):
        b = _parse_numeric(b, a)

    kind_a, kind_b = _category(a), _category(b)
    if kind_a is not kind_b:
        raise TypeError(
            f"primitive type of a ({kind_a.__name__}) was not the same "
            f"primitive type as b ({kind_b.__name__})"
        )

    if kind_a in (bool, int, float, str, datetime):
        return a == b
    if kind_a is bytes:
        return bytes(a) == bytes(b)
    return False


def _scan(scanner: Any, value: Any) -> None:
    try:
        scanner.scan(value)
    except Exception as err:
        raise ValueError(
            f"tried to call scan on {type(scanner).__name__} with {value!r} but got err: {err}"
        ) from err


def _convert_like(dst: Any, val: Any) -> Any:
    if val is None:
        try:
            return type(dst)()
        except TypeError:
            return None
    if isinstance(dst, bool):
        return bool(val)
    if isinstance(dst, int):
        return int(val)
    if isinstance(dst, float):
        return float(val)
    if isinstance(dst, str):
        return str(val)
    if isinstance(dst, bytearray):
        return bytearray(val)
    if isinstance(dst, bytes):
        return bytes(val)
    return val


def assign(dst: Any, src: Any) -> Any:
    """Assign src into dst and return what dst should now hold.

    A scanner dst is updated in place and returned; a bytearray dst is refilled
    in place; for plain values the converted value is returned. Raises TypeError
    when neither side is a scanner or valuer.
    """
    if _is_bytes(dst) and _is_bytes(src):
        if isinstance(dst, bytearray):
            dst[:] = src
            return dst
        return bytes(src)

    dst_scanner = _is_scanner(dst)
    src_valuer = _is_valuer(src)

    if dst_scanner:
        _scan(dst, src.value() if src_valuer else src)
        return dst
    if src_valuer:
        return _convert_like(dst, src.value())
    raise TypeError("assign needs a scanner destination or a valuer source")


def must_time(valuer: Any) -> datetime:
    """Return the time held by a valuer; a null value gives datetime.min."""
    value = valuer.value()
    if value is None:
        return datetime.min
    if not isinstance(value, datetime):
        raise TypeError(f"expected a datetime from {type(valuer).__name__}, got {value!r}")
    return value


def is_valuer_nil(valuer: Any) -> bool:
    """True when the valuer's value is null."""
    return valuer.value() is None


def is_nil(value: Any) -> bool:
    """True for None or for a valuer whose value is null."""
    if value is None:
        return True
    if _is_valuer(value):
        return is_valuer_nil(value)
    return False


def set_scanner(scanner: Any, value: Any) -> None:
    """Scan a value into a scanner, raising ValueError if it refuses it."""
    _scan(scanner, value)