"""Query mods: small composable objects that each change one part of a query."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from .qmhelper import WhereQueryMod
from .query import Query


@runtime_checkable
class QueryMod(Protocol):
    """Anything that modifies a query in place."""

    def apply(self, q: Query) -> None: ...


@dataclass(frozen=True)
class ModFunc:
    """Adapts a plain function taking a query into a query mod."""

    func: Callable[[Query], None]

    def apply(self, q: Query) -> None:
        self.func(q)


class ModList(list):
    """A list of query mods that is itself a query mod."""

    def apply(self, q: Query) -> None:
        apply(q, *self)


def apply(q: Query, *args: QueryMod) -> None:
    """Apply the query mods to the query, in order."""
    for mod in args:
        mod.apply(q)


def sql(query: str, *args: Any) -> ModFunc:
    """Use a plain SQL statement."""
    return ModFunc(lambda q: q.set_sql(query, *args))


def load(relationship: str, *args: QueryMod) -> ModFunc:
    """Eager load a dotted relationship path, with mods for its last step."""
    mods = ModList(args)

    def _apply(q: Query) -> None:
        q.append_load(relationship)
        if mods:
            q.set_load_mods(relationship, mods)

    return ModFunc(_apply)


def inner_join(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_inner_join(clause, *args))


def left_outer_join(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_left_outer_join(clause, *args))


def right_outer_join(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_right_outer_join(clause, *args))


def full_outer_join(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_full_outer_join(clause, *args))


def distinct(clause: str) -> ModFunc:
    def _apply(q: Query) -> None:
        q.distinct = clause

    return ModFunc(_apply)


def with_(clause: str, *args: Any) -> ModFunc:
    """Add a common table expression."""
    return ModFunc(lambda q: q.append_with(clause, *args))


def select(*args: str) -> ModFunc:
    return ModFunc(lambda q: q.append_select(*args))


def where(clause: str, *args: Any) -> WhereQueryMod:
    """Add a WHERE clause; several are joined with AND."""
    return WhereQueryMod(clause=clause, args=list(args))


def and_(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_where(clause, *args))


def or_(clause: str, *args: Any) -> ModFunc:
    def _apply(q: Query) -> None:
        q.append_where(clause, *args)
        q.set_last_where_as_or()

    return ModFunc(_apply)


def or2(mod: QueryMod) -> ModFunc:
    """Apply a where mod and join it to what precedes it with OR."""

    def _apply(q: Query) -> None:
        mod.apply(q)
        q.set_last_where_as_or()

    return ModFunc(_apply)


def where_in(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_in(clause, *args))


def and_in(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_in(clause, *args))


def or_in(clause: str, *args: Any) -> ModFunc:
    def _apply(q: Query) -> None:
        q.append_in(clause, *args)
        q.set_last_where_as_or()

    return ModFunc(_apply)


def where_not_in(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_not_in(clause, *args))


def and_not_in(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_not_in(clause, *args))


def or_not_in(clause: str, *args: Any) -> ModFunc:
    def _apply(q: Query) -> None:
        q.append_not_in(clause, *args)
        q.set_last_where_as_or()

    return ModFunc(_apply)


def expr(*args: QueryMod) -> ModFunc:
    """Group where mods in parentheses; disables automatic parentheses."""

    def _apply(q: Query) -> None:
        q.append_where_left_paren()
        apply(q, *args)
        q.append_where_right_paren()

    return ModFunc(_apply)


def group_by(clause: str) -> ModFunc:
    return ModFunc(lambda q: q.append_group_by(clause))


def order_by(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_order_by(clause, *args))


def having(clause: str, *args: Any) -> ModFunc:
    return ModFunc(lambda q: q.append_having(clause, *args))


def from_(table: str) -> ModFunc:
    return ModFunc(lambda q: q.append_from(table))


def limit(count: int) -> ModFunc:
    def _apply(q: Query) -> None:
        q.limit = count

    return ModFunc(_apply)


def offset(count: int) -> ModFunc:
    def _apply(q: Query) -> None:
        q.offset = count

    return ModFunc(_apply)


def for_(clause: str) -> ModFunc:
    """Add a locking clause at the end of the statement."""

    def _apply(q: Query) -> None:
        q.for_lock = clause

    return ModFunc(_apply)


def comment(text: str) -> ModFunc:
    def _apply(q: Query) -> None:
        q.comment = text

    return ModFunc(_apply)


def rels(*args: str) -> str:
    """Join relationship names into a dotted path for load."""
    return ".".join(args)


def with_deleted() -> ModFunc:
    """Drop the automatic soft-delete condition from the query."""
    return ModFunc(lambda q: q.remove_soft_delete_where())