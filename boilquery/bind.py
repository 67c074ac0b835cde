"""Run built queries against a DB-API executor and bind result rows onto dataclasses."""

from __future__ import annotations

import dataclasses
import functools
import logging
from typing import Any, Optional, Sequence

from .builders import build_query
from .eager_load import eager_load
from .mapping import (
    _field_dataclass,
    assign_from_mapping,
    bind_mapping,
    get_boil_tag,
    make_struct_mapping,
)
from .query import Query

logger = logging.getLogger(__name__)


class BindError(Exception):
    """Raised when query results cannot be bound onto the target."""


class NoRowsError(BindError):
    """Raised when a single object was asked for but the query returned no rows."""


def bind_checks(target: Any) -> tuple[type, bool]:
    """Work out what kind of bind target this is.

    A dataclass instance is filled in place from the first row (singular); a
    dataclass type produces a list of new instances, one per row. Returns the
    dataclass type and whether the bind is singular.
    """
    if isinstance(target, type):
        if dataclasses.is_dataclass(target):
            return target, False
    elif dataclasses.is_dataclass(target):
        return type(target), True
    raise BindError(
        "obj type should be a dataclass instance or a dataclass type "
        f"but was {type(target).__name__!r}"
    )


@functools.lru_cache(maxsize=None)
def _column_mapping(cls: type, columns: tuple[str, ...]) -> tuple[Optional[tuple[str, ...]], ...]:
    return tuple(bind_mapping(make_struct_mapping(cls), columns))


def _new_instance(cls: type) -> Any:
    """Create a fresh instance, allocating nested ',bind' objects left as None."""
    try:
        instance = cls()
    except TypeError as err:
        raise BindError(f"cannot create {cls.__name__} without arguments: {err}") from err

    for field in dataclasses.fields(cls):
        _, recurse = get_boil_tag(field)
        if not recurse or getattr(instance, field.name) is not None:
            continue
        nested = _field_dataclass(cls, field)
        if nested is not None:
            setattr(instance, field.name, nested())
    return instance


def _fill(obj: Any, mapping: Sequence[Any], row: Sequence[Any]) -> None:
    try:
        assign_from_mapping(obj, mapping, row)
    except (ValueError, TypeError, AttributeError) as err:
        raise BindError(f"failed to bind pointers to obj: {err}") from err


def bind(cursor: Any, target: Any) -> Any:
    """Bind the rows of an executed DB-API cursor onto target.

    For a dataclass instance the first row is written into it and it is
    returned; NoRowsError is raised when there is no row. For a dataclass type
    a list with one new instance per row is returned. Columns that match no
    field are ignored.
    """
    cls, singular = bind_checks(target)

    description = getattr(cursor, "description", None)
    if not description:
        raise BindError("bind failed to get column names")
    columns = tuple(column[0] for column in description)
    mapping = _column_mapping(cls, columns)

    if singular:
        row = cursor.fetchone()
        if row is None:
            raise NoRowsError("no rows in result set")
        _fill(target, mapping, row)
        return target

    results = []
    for row in cursor:
        instance = _new_instance(cls)
        _fill(instance, mapping, row)
        results.append(instance)
    return results


def _execute(q: Query, executor: Any) -> Any:
    sql, args = build_query(q)
    logger.debug("%s", sql)
    logger.debug("%r", args)

    make_cursor = getattr(executor, "cursor", None)
    cursor = make_cursor() if callable(make_cursor) else executor
    cursor.execute(sql, list(args))
    return cursor


def exec_query(q: Query, executor: Any) -> Any:
    """Execute a query that returns no rows; gives back the cursor used."""
    return _execute(q, executor)


def query_rows(q: Query, executor: Any) -> Any:
    """Execute the query and give back a cursor positioned on its rows."""
    return _execute(q, executor)


def query_row(q: Query, executor: Any) -> Optional[Sequence[Any]]:
    """Execute the query and return its first row, or None when there is none."""
    cursor = _execute(q, executor)
    try:
        return cursor.fetchone()
    finally:
        close = getattr(cursor, "close", None)
        if callable(close):
            close()


def query_bind(q: Query, executor: Any, target: Any) -> Any:
    """Execute the query, bind the rows onto target and eager load relationships."""
    bind_checks(target)

    try:
        cursor = query_rows(q, executor)
    except Exception as err:
        raise BindError(f"bind failed to execute query: {err}") from err

    try:
        result = bind(cursor, target)
    finally:
        close = getattr(cursor, "close", None)
        if callable(close):
            close()

    if q.load:
        eager_load(executor, q.load, q.load_mods, result)
    return result