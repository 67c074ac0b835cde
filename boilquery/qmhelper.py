"""Helpers that build WHERE query mods for comparisons and null checks."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .query import Query


@runtime_checkable
class Nullable(Protocol):
    """A value that knows whether it holds SQL NULL."""

    def is_zero(self) -> bool: ...


class Operator(str, enum.Enum):
    """Supported comparison operators."""

    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="


@dataclass
class WhereQueryMod:
    """A WHERE clause with its bound arguments."""

    clause: str
    args: list[Any] = field(default_factory=list)

    def apply(self, q: Query) -> None:
        q.append_where(self.clause, *self.args)


def _is_null(value: Any) -> bool:
    if isinstance(value, Nullable):
        return value.is_zero()
    return value is None


def where_null_eq(name: str, negated: bool, value: Any) -> WhereQueryMod:
    """Compare a nullable column, writing 'is [not] null' when value is null."""
    if _is_null(value):
        return where_is_not_null(name) if negated else where_is_null(name)
    return where(name, Operator.NEQ if negated else Operator.EQ, value)


def where_is_null(name: str) -> WhereQueryMod:
    return WhereQueryMod(clause=f"{name} is null")


def where_is_not_null(name: str) -> WhereQueryMod:
    return WhereQueryMod(clause=f"{name} is not null")


def where(name: str, operator: Operator | str, value: Any) -> WhereQueryMod:
    """Compare a column with a value; raises ValueError for an unknown operator."""
    op = Operator(operator)
    return WhereQueryMod(clause=f"{name} {op.value} ?", args=[value])