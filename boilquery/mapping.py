"""Map result columns onto (possibly nested) dataclass attributes."""

from __future__ import annotations

import dataclasses
import functools
import inspect
import re
import types
import typing
from typing import Any, Optional, Sequence

Path = tuple[str, ...]

_SPECIAL_WORDS = (
    ("ASCII", "Ascii"),
    ("GUID", "Guid"),
    ("JSON", "Json"),
    ("UUID", "Uuid"),
    ("UTF8", "Utf8"),
    ("ACL", "Acl"),
    ("API", "Api"),
    ("CPU", "Cpu"),
    ("EOF", "Eof"),
    ("RAM", "Ram"),
    ("SLA", "Sla"),
    ("UDP", "Udp"),
    ("UID", "Uid"),
    ("URI", "Uri"),
    ("URL", "Url"),
    ("ID", "Id"),
    ("IP", "Ip"),
    ("UI", "Ui"),
)
# Alternation tries the words in list order at each position, so longer words win.
_SPECIAL_RE = re.compile("|".join(word for word, _ in _SPECIAL_WORDS))
_SPECIAL_MAP = dict(_SPECIAL_WORDS)

_ANNOTATION_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*")
_NON_TYPE_NAMES = frozenset(
    {"Optional", "Union", "None", "NoneType", "typing", "typing.Optional", "typing.Union"}
)


def get_boil_tag(field: dataclasses.Field) -> tuple[str, bool]:
    """Read the 'boil' metadata of a dataclass field as (name, recurse)."""
    tag = field.metadata.get("boil", "")
    if not tag:
        return "", False
    name, comma, _ = tag.partition(",")
    if not comma:
        return tag, False
    return name, True


def untitle_case(name: str) -> str:
    """Turn a TitleCased name back into snake_case, keeping known acronyms whole."""
    if not name:
        return ""
    name = _SPECIAL_RE.sub(lambda m: _SPECIAL_MAP[m.group(0)], name)

    words: list[str] = []
    last_up = True
    start = 0
    for i, ch in enumerate(name):
        current_up = ch.isupper()
        is_digit = ch.isdigit()
        if not is_digit and not last_up and current_up:
            words.append(name[start:i])
            start = i
        if not is_digit and last_up and not current_up and i - 1 - start > 1:
            words.append(name[start:i - 1])
            start = i - 1
        last_up = current_up

    if name[start:]:
        words.append(name[start:])
    return "_".join(word.lower() for word in words)


def _unwrap_optional(hint: Any) -> Any:
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return hint


def _lookup_name(cls: type, name: str) -> Any:
    if name == cls.__name__:
        return cls
    module = inspect.getmodule(cls)
    namespace = vars(module) if module is not None else {}
    head, *rest = name.split(".")
    if head not in namespace:
        return None
    found = namespace[head]
    for part in rest:
        found = getattr(found, part, None)
        if found is None:
            return None
    return found


def _resolve_string(cls: type, annotation: str) -> Any:
    names = [n for n in _ANNOTATION_NAME_RE.findall(annotation) if n not in _NON_TYPE_NAMES]
    if len(names) != 1:
        return None
    return _lookup_name(cls, names[0])


def _field_dataclass(cls: type, field: dataclasses.Field) -> Optional[type]:
    """Return the dataclass type a field holds, or None when it holds none."""
    hint = field.type
    if isinstance(hint, str):
        hint = _resolve_string(cls, hint)
    hint = _unwrap_optional(hint)
    if isinstance(hint, typing.ForwardRef):
        hint = _resolve_string(cls, hint.__forward_arg__)
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return hint

    if field.default_factory is not dataclasses.MISSING:
        value = field.default_factory()
    elif field.default is not dataclasses.MISSING:
        value = field.default
    else:
        value = None
    if value is not None and dataclasses.is_dataclass(value) and not isinstance(value, type):
        return type(value)
    return None


def _require_dataclass(cls: type, field: dataclasses.Field) -> type:
    nested = _field_dataclass(cls, field)
    if nested is None:
        raise TypeError(
            f"field type {field.type!r} is not a dataclass and cannot be bound into"
        )
    return nested


@functools.lru_cache(maxsize=None)
def _struct_mapping(cls: type) -> dict[str, Path]:
    mapping: dict[str, Path] = {}
    _fill_mapping(cls, "", (), mapping)
    return mapping


def _fill_mapping(cls: type, prefix: str, current: Path, mapping: dict[str, Path]) -> None:
    for field in dataclasses.fields(cls):
        tag, recurse = get_boil_tag(field)
        if not tag:
            tag = untitle_case(field.name)
        elif tag.startswith("-"):
            continue
        if prefix:
            tag = f"{prefix}.{tag}"
        path = current + (field.name,)
        if recurse:
            _fill_mapping(_require_dataclass(cls, field), tag, path, mapping)
            continue
        mapping[tag] = path


def make_struct_mapping(cls: type) -> dict[str, Path]:
    """Map column names to attribute paths for a dataclass type."""
    return dict(_struct_mapping(cls))


def bind_mapping(mapping: dict[str, Path], columns: Sequence[str]) -> list[Optional[Path]]:
    """Resolve each column to an attribute path; unknown columns map to None."""
    resolved: list[Optional[Path]] = []
    for column in columns:
        path = mapping.get(column)
        if path is None:
            suffix = "." + column
            path = next((p for name, p in mapping.items() if name.endswith(suffix)), None)
        resolved.append(path)
    return resolved


def _follow(obj: Any, path: Path) -> Any:
    for name in path:
        if obj is None:
            return None
        obj = getattr(obj, name)
    return obj


def values_from_mapping(obj: Any, mapping: Sequence[Optional[Path]]) -> list[Any]:
    """Read the value at each mapped path; unmapped entries give None."""
    return [None if path is None else _follow(obj, path) for path in mapping]


def _parent_for_write(obj: Any, path: Path) -> Any:
    for name in path:
        child = getattr(obj, name)
        if child is None:
            field = next(f for f in dataclasses.fields(obj) if f.name == name)
            child = _require_dataclass(type(obj), field)()
            setattr(obj, name, child)
        obj = child
    return obj


def assign_from_mapping(obj: Any, mapping: Sequence[Optional[Path]], row: Sequence[Any]) -> None:
    """Store each row value at its mapped path, creating nested objects as needed."""
    if len(mapping) != len(row):
        raise ValueError(f"expected {len(mapping)} values in row but got {len(row)}")
    for path, value in zip(mapping, row):
        if path is None:
            continue
        parent = _parent_for_write(obj, path[:-1])
        setattr(parent, path[-1], value)


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    try:
        zero = type(value)()
    except TypeError:
        return False
    return value == zero


def non_zero_default_set(defaults: Sequence[str], obj: Any) -> list[str]:
    """Return the names in defaults whose tagged fields on obj hold non-zero values."""
    fields = dataclasses.fields(obj)
    result: list[str] = []
    for default in defaults:
        field = next((f for f in fields if get_boil_tag(f)[0] == default), None)
        if field is None:
            raise ValueError(
                f"could not find field name {default} in type {type(obj).__name__}"
            )
        if not _is_zero(getattr(obj, field.name)):
            result.append(default)
    return result