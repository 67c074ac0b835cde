"""Render a Query into SQL text and its ordered list of arguments."""

from __future__ import annotations

import re
from typing import Any

from .query import JoinKind, Query, Where, WhereKind

_IDENTIFIER = re.compile(r'"?[a-z_][_a-z0-9]*"?(?:\."?[_a-z][_a-z0-9]*"?)*', re.IGNORECASE)
_IN_CLAUSE = re.compile(r"(.*[\s|\)|\?])IN([\s|\(|\?].*)", re.IGNORECASE)
_NOT_IN_CLAUSE = re.compile(r"(.*[\s|\)|\?])NOT\s+IN([\s|\(|\?].*)", re.IGNORECASE)
_SMART_QUOTE = re.compile(
    r'"?[a-z_][_a-z0-9\-]*"?(\."?[_a-z][_a-z0-9]*"?)*(\.\*)?', re.IGNORECASE
)


def ident_quote(lq: str, rq: str, name: str) -> str:
    """Quote a simple (possibly dotted) identifier; leave anything else alone."""
    if name.lower() == "null" or name == "?":
        return name
    if not _SMART_QUOTE.fullmatch(name):
        return name
    parts = []
    for part in name.split("."):
        if part.startswith(lq) or part.endswith(rq) or part == "*":
            parts.append(part)
        else:
            parts.append(f"{lq}{part}{rq}")
    return ".".join(parts)


def ident_quote_list(lq: str, rq: str, names: list[str]) -> list[str]:
    """Quote every identifier in a list."""
    return [ident_quote(lq, rq, name) for name in names]


def placeholders(use_index_placeholders: bool, count: int, start: int, group: int) -> str:
    """Write count placeholders, grouped into parenthesised tuples of size group."""
    if start == 0 or group == 0:
        raise ValueError("Invalid start or group numbers supplied.")
    marks = [f"${start + i}" if use_index_placeholders else "?" for i in range(count)]
    if group > 1:
        groups = (",".join(marks[i:i + group]) for i in range(0, count, group))
        return "(" + "),(".join(groups) + ")"
    return ",".join(marks)


def _numbered(q: Query, text: str, start_at: int) -> str:
    if q.dialect.use_index_placeholders:
        text, _ = convert_question_marks(text, start_at)
    return text


def build_query(q: Query) -> tuple[str, list[Any]]:
    """Build the query text and arguments, caching the result on the query."""
    q.strip_soft_delete()

    if q.raw_sql:
        return q.raw_sql, q.raw_args
    if q.delete:
        sql, args = _build_delete(q)
    elif q.update:
        sql, args = _build_update(q)
    else:
        sql, args = _build_select(q)

    q.raw_sql = sql
    q.raw_args = args
    return sql, args


def _build_select(q: Query) -> tuple[str, list[Any]]:
    d = q.dialect
    args: list[Any] = []
    parts = [write_comment(q), _write_ctes(q, args), "SELECT "]

    if d.use_top_clause and q.limit is not None and q.offset == 0:
        parts.append(f" TOP ({q.limit}) ")

    if q.count:
        parts.append("COUNT(")

    has_select = bool(q.select_cols)
    has_joins = bool(q.joins)
    if q.distinct:
        parts.append("DISTINCT ")
        parts.append(f"({q.distinct})" if q.count else q.distinct)
    elif has_joins and has_select and not q.count:
        parts.append(", ".join(write_as_statements(q)))
    elif has_select:
        parts.append(", ".join(ident_quote_list(d.lq, d.rq, q.select_cols)))
    elif has_joins and not q.count:
        parts.append(", ".join(write_stars(q)))
    else:
        parts.append("*")

    if q.count:
        parts.append(")")

    parts.append(" FROM " + ", ".join(ident_quote_list(d.lq, d.rq, q.from_)))

    if q.joins:
        start = len(args) + 1
        text = []
        for join in q.joins:
            if join.kind is JoinKind.NATURAL:
                raise ValueError(f"Unsupported join of kind {join.kind}")
            text.append(f" {join.kind.value} JOIN {join.clause}")
            args.extend(join.args)
        parts.append(_numbered(q, "".join(text), start))

    where, where_args = where_clause(q, len(args) + 1)
    parts.append(where)
    args.extend(where_args)

    parts.append(_write_modifiers(q, args))
    parts.append(";")
    return "".join(parts), args


def _build_delete(q: Query) -> tuple[str, list[Any]]:
    d = q.dialect
    args: list[Any] = []
    parts = [write_comment(q), _write_ctes(q, args), "DELETE FROM "]
    parts.append(", ".join(ident_quote_list(d.lq, d.rq, q.from_)))

    where, where_args = where_clause(q, 1)
    args.extend(where_args)
    parts.append(where)

    parts.append(_write_modifiers(q, args))
    parts.append(";")
    return "".join(parts), args


def _build_update(q: Query) -> tuple[str, list[Any]]:
    d = q.dialect
    args: list[Any] = []
    parts = [write_comment(q), _write_ctes(q, args), "UPDATE "]
    parts.append(", ".join(ident_quote_list(d.lq, d.rq, q.from_)))

    assignments = []
    for index, name in enumerate(sorted(q.update), start=1):
        args.append(q.update[name])
        column = ident_quote(d.lq, d.rq, name)
        mark = placeholders(d.use_index_placeholders, 1, index, 1)
        assignments.append(f"{column} = {mark}")
    parts.append(" SET " + ", ".join(assignments))

    where, where_args = where_clause(q, len(args) + 1)
    args.extend(where_args)
    parts.append(where)

    parts.append(_write_modifiers(q, args))
    parts.append(";")
    return "".join(parts), args


def _write_parameterized(q: Query, args: list[Any], keyword: str, delim: str, clauses) -> str:
    start = len(args) + 1
    text = keyword + delim.join(c.clause for c in clauses)
    for c in clauses:
        args.extend(c.args)
    return _numbered(q, text, start)


def _write_modifiers(q: Query, args: list[Any]) -> str:
    parts = []
    if q.group_by:
        parts.append(" GROUP BY " + ", ".join(q.group_by))
    if q.having:
        parts.append(_write_parameterized(q, args, " HAVING ", " AND ", q.having))
    if q.order_by:
        parts.append(_write_parameterized(q, args, " ORDER BY ", ", ", q.order_by))

    if not q.dialect.use_top_clause:
        if q.limit is not None:
            parts.append(f" LIMIT {q.limit}")
        if q.offset != 0:
            parts.append(f" OFFSET {q.offset}")
    elif q.offset != 0:
        # OFFSET/FETCH requires an ORDER BY clause; order arbitrarily if none given.
        if not q.order_by:
            parts.append(" ORDER BY (SELECT NULL)")
        parts.append(f" OFFSET {q.offset} ROWS")
        if q.limit is not None:
            parts.append(f" FETCH NEXT {q.limit} ROWS ONLY")

    if q.for_lock:
        parts.append(f" FOR {q.for_lock}")
    return "".join(parts)


def write_stars(q: Query) -> list[str]:
    """Select every column of each table in FROM, using aliases where present."""
    d = q.dialect
    columns = []
    for source in q.from_:
        tokens = source.split(" ")
        if len(tokens) == 1:
            columns.append(f"{ident_quote(d.lq, d.rq, tokens[0])}.*")
            continue
        alias, name, ok = parse_from_clause(tokens)
        if not ok:
            return []
        columns.append(f"{ident_quote(d.lq, d.rq, alias or name)}.*")
    return columns


def write_as_statements(q: Query) -> list[str]:
    """Quote select columns, aliasing dotted ones to their dotted name."""
    d = q.dialect
    columns = []
    for col in q.select_cols:
        if not _IDENTIFIER.fullmatch(col):
            columns.append(col)
            continue
        tokens = col.split(".")
        if len(tokens) == 1:
            columns.append(ident_quote(d.lq, d.rq, col))
            continue
        alias = ".".join(tok.strip('"') for tok in tokens)
        columns.append(f'{ident_quote(d.lq, d.rq, col)} as "{alias}"')
    return columns


def where_clause(q: Query, start_at: int) -> tuple[str, list[Any]]:
    """Render the WHERE expression, numbering placeholders from start_at."""
    if not q.where:
        return "", []

    manual_parens = any(
        w.kind in (WhereKind.LEFT_PAREN, WhereKind.RIGHT_PAREN) for w in q.where
    )

    def wrap(text: str) -> str:
        return text if manual_parens else f"({text})"

    d = q.dialect
    out = [" WHERE "]
    args: list[Any] = []
    not_first = False

    for w in q.where:
        if not_first and w.kind is not WhereKind.RIGHT_PAREN:
            out.append(" OR " if w.or_separator else " AND ")
        else:
            not_first = True

        if w.kind is WhereKind.NORMAL:
            text = w.clause
            if d.use_index_placeholders:
                text, used = convert_question_marks(text, start_at)
                start_at += used
            out.append(wrap(text))
            args.extend(w.args)
        elif w.kind is WhereKind.LEFT_PAREN:
            out.append("(")
            not_first = False
        elif w.kind is WhereKind.RIGHT_PAREN:
            out.append(")")
        else:
            text, used = _in_clause(q, w, start_at)
            out.append(text if not w.args else wrap(text))
            if w.args:
                args.extend(w.args)
            start_at += used

    return "".join(out), args


def _in_clause(q: Query, w: Where, start_at: int) -> tuple[str, int]:
    """Render an IN / NOT IN element; an empty argument list gives a constant."""
    d = q.dialect
    total = len(w.args)
    is_in = w.kind is WhereKind.IN
    if total == 0:
        return ("(1=0)" if is_in else "(1=1)"), 0

    match = (_IN_CLAUSE if is_in else _NOT_IN_CLAUSE).fullmatch(w.clause)
    if match is None:
        return convert_in_question_marks(d.use_index_placeholders, w.clause, start_at, 1, total)

    left_side = match.group(1).strip()
    right_side = match.group(2).strip()
    cols = ident_quote_list(d.lq, d.rq, left_side.split(","))
    group_at = len(cols)

    if d.use_index_placeholders:
        left_clause, left_count = convert_question_marks(",".join(cols), start_at)
    else:
        left_count = sum(1 for col in cols if col == "?")
        left_clause = ",".join(cols)

    right_clause, right_count = convert_in_question_marks(
        d.use_index_placeholders, right_side, start_at + left_count, group_at, total - left_count
    )
    keyword = " IN " if is_in else " NOT IN "
    return left_clause + keyword + right_clause, left_count + right_count


def convert_in_question_marks(
    use_index_placeholders: bool, clause: str, start_at: int, group_at: int, total: int
) -> tuple[str, int]:
    """Replace the first unescaped ? with a parenthesised list of placeholders."""
    if start_at == 0 or not clause:
        raise ValueError("Not a valid start number.")

    found_at = next(
        (i for i, ch in enumerate(clause) if ch == "?" and (i == 0 or clause[i - 1] != "\\")),
        -1,
    )
    if found_at == -1:
        return clause.replace("\\?", "?"), 0

    marks = placeholders(use_index_placeholders, total, start_at, group_at)
    text = f"{clause[:found_at]}({marks}){clause[found_at + 1:]}"
    return text.replace("\\?", "?"), total


def convert_question_marks(clause: str, start_at: int) -> tuple[str, int]:
    """Replace each unescaped ? with $N, counting from start_at; \\? becomes ?."""
    if start_at == 0:
        raise ValueError("Not a valid start number.")

    out = []
    index = 0
    total = 0
    while index < len(clause):
        clause = clause[index:]
        index = clause.find("?")
        if index == -1:
            out.append(clause)
            break

        escape = clause.find("\\?")
        if escape != -1 and index > escape:
            out.append(clause[:escape] + "?")
            index += 1
            continue

        out.append(f"{clause[:index]}${start_at}")
        total += 1
        start_at += 1
        index += 1

    return "".join(out), total


def parse_from_clause(tokens: list[str]) -> tuple[str, str, bool]:
    """Parse 'a', 'a b' or 'a as b' into (alias, name, ok)."""
    alias = ""
    name = ""
    ok = False
    saw_ident = saw_as = False
    for token in tokens[:3]:
        lowered = token.lower()
        if saw_ident and lowered == "as":
            saw_as = True
            continue
        if saw_ident and lowered == "on":
            break
        if not _IDENTIFIER.fullmatch(token):
            break
        if saw_ident or saw_as:
            alias = token.strip('"')
            break
        name = token.strip('"')
        saw_ident = True
        ok = True
    return alias, name, ok


def write_comment(q: Query) -> str:
    """Render the query comment as SQL line comments."""
    if not q.comment:
        return ""
    return "".join(f"-- {line}\n" for line in q.comment.split("\n"))


def _write_ctes(q: Query, args: list[Any]) -> str:
    if not q.withs:
        return ""
    start = len(args) + 1
    text = ",".join(f" {w.clause}" for w in q.withs) + " "
    for w in q.withs:
        args.extend(w.args)
    return "WITH" + _numbered(q, text, start)