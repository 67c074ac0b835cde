"""Query state: the clauses, arguments and options that make up a SQL statement."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class Dialect:
    """How a particular database quotes identifiers and writes placeholders."""

    lq: str = '"'
    rq: str = '"'
    use_index_placeholders: bool = False
    use_top_clause: bool = False


class JoinKind(enum.Enum):
    INNER = "INNER"
    OUTER_LEFT = "LEFT"
    OUTER_RIGHT = "RIGHT"
    NATURAL = "NATURAL"
    OUTER_FULL = "FULL"


class WhereKind(enum.Enum):
    NORMAL = "normal"
    LEFT_PAREN = "left_paren"
    RIGHT_PAREN = "right_paren"
    IN = "in"
    NOT_IN = "not_in"


@dataclass
class Where:
    """One element of a WHERE expression."""

    clause: str = ""
    args: list[Any] = field(default_factory=list)
    kind: WhereKind = WhereKind.NORMAL
    or_separator: bool = False


@dataclass
class ArgClause:
    """A clause fragment with its bound arguments."""

    clause: str
    args: list[Any] = field(default_factory=list)


@dataclass
class Join:
    """A join clause with its kind and bound arguments."""

    kind: JoinKind
    clause: str
    args: list[Any] = field(default_factory=list)


@runtime_checkable
class Applicator(Protocol):
    """Anything that can modify a query in place."""

    def apply(self, q: "Query") -> None: ...


_DELETED_AT = re.compile(r"deleted_at[\"'`]? is null")


@dataclass
class Query:
    """Accumulated state of a query being built."""

    dialect: Dialect = field(default_factory=Dialect)
    raw_sql: str = ""
    raw_args: list[Any] = field(default_factory=list)

    load: list[str] = field(default_factory=list)
    load_mods: dict[str, Applicator] = field(default_factory=dict)

    delete: bool = False
    update: dict[str, Any] = field(default_factory=dict)
    withs: list[ArgClause] = field(default_factory=list)
    select_cols: list[str] = field(default_factory=list)
    count: bool = False
    from_: list[str] = field(default_factory=list)
    joins: list[Join] = field(default_factory=list)
    where: list[Where] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    order_by: list[ArgClause] = field(default_factory=list)
    having: list[ArgClause] = field(default_factory=list)
    limit: int | None = None
    offset: int = 0
    for_lock: str = ""
    distinct: str = ""
    comment: str = ""

    remove_soft_delete: bool = False

    def set_sql(self, sql: str, *args: Any) -> None:
        """Replace the query with raw SQL and its arguments."""
        self.raw_sql = sql
        self.raw_args = list(args)

    def set_load(self, *args: str) -> None:
        """Replace the relationships to eager load."""
        self.load = list(args)

    def append_load(self, relationship: str) -> None:
        self.load.append(relationship)

    def set_load_mods(self, rel: str, applicator: Applicator) -> None:
        """Attach query mods to the eager load of one relationship."""
        self.load_mods[rel] = applicator

    def append_select(self, *args: str) -> None:
        self.select_cols.extend(args)

    def append_from(self, *args: str) -> None:
        self.from_.extend(args)

    def set_from(self, *args: str) -> None:
        self.from_ = list(args)

    def _append_join(self, kind: JoinKind, clause: str, args: tuple[Any, ...]) -> None:
        self.joins.append(Join(kind=kind, clause=clause, args=list(args)))

    def append_inner_join(self, clause: str, *args: Any) -> None:
        self._append_join(JoinKind.INNER, clause, args)

    def append_left_outer_join(self, clause: str, *args: Any) -> None:
        self._append_join(JoinKind.OUTER_LEFT, clause, args)

    def append_right_outer_join(self, clause: str, *args: Any) -> None:
        self._append_join(JoinKind.OUTER_RIGHT, clause, args)

    def append_full_outer_join(self, clause: str, *args: Any) -> None:
        self._append_join(JoinKind.OUTER_FULL, clause, args)

    def append_having(self, clause: str, *args: Any) -> None:
        self.having.append(ArgClause(clause, list(args)))

    def append_where(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause=clause, args=list(args)))

    def append_in(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause=clause, args=list(args), kind=WhereKind.IN))

    def append_not_in(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause=clause, args=list(args), kind=WhereKind.NOT_IN))

    def set_last_where_as_or(self) -> None:
        """Join the last WHERE element (or parenthesised group) with OR.

        Raises ValueError when a closing parenthesis has no opening match.
        """
        if not self.where:
            return
        if self.where[-1].kind is not WhereKind.RIGHT_PAREN:
            self.where[-1].or_separator = True
            return

        depth = 0
        for element in reversed(self.where[:-1]):
            if element.kind is WhereKind.LEFT_PAREN:
                if depth == 0:
                    element.or_separator = True
                    return
                depth -= 1
            elif element.kind is WhereKind.RIGHT_PAREN:
                depth += 1

        raise ValueError("could not find matching ( in where query expr")

    def append_where_left_paren(self) -> None:
        self.where.append(Where(kind=WhereKind.LEFT_PAREN))

    def append_where_right_paren(self) -> None:
        self.where.append(Where(kind=WhereKind.RIGHT_PAREN))

    def append_group_by(self, clause: str) -> None:
        self.group_by.append(clause)

    def append_order_by(self, clause: str, *args: Any) -> None:
        self.order_by.append(ArgClause(clause, list(args)))

    def append_with(self, clause: str, *args: Any) -> None:
        self.withs.append(ArgClause(clause, list(args)))

    def remove_soft_delete_where(self) -> None:
        """Ask for the automatic soft-delete condition to be dropped."""
        self.remove_soft_delete = True

    def strip_soft_delete(self) -> None:
        """Drop the last automatic 'deleted_at is null' condition, if requested."""
        if not self.remove_soft_delete:
            return
        for index in range(len(self.where) - 1, -1, -1):
            element = self.where[index]
            if element.kind is WhereKind.NORMAL and _DELETED_AT.search(element.clause):
                del self.where[index]
                return


def raw(query: str, *args: Any) -> Query:
    """Make a query from raw SQL text."""
    q = Query()
    q.set_sql(query, *args)
    return q