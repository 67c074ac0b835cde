# boilquery

`boilquery` builds SQL statements from small, composable query modifiers,
binds result rows onto dataclasses, and eager-loads relationships between
model objects. It has no runtime dependencies and works with any DB-API
connection or cursor.

## Installation

```
pip install boilquery
```

With the test requirements:

```
pip install "boilquery[test]"
```

## Building queries

A `boilquery.query.Query` collects the parts of a statement. Modifiers from
`boilquery.qm` change it, and `boilquery.builders.build_query(q)` returns the
SQL text together with the list of arguments to hand to the driver.

```python
from boilquery import qm
from boilquery.builders import build_query
from boilquery.query import Dialect, Query

q = Query(dialect=Dialect(lq='"', rq='"', use_index_placeholders=True))
qm.apply(
    q,
    qm.from_("users"),
    qm.where("age > ?", 21),
    qm.or_("admin = ?", True),
    qm.order_by("name ASC"),
    qm.limit(10),
)

sql, args = build_query(q)
# SELECT * FROM "users" WHERE (age > $1) OR (admin = $2) ORDER BY name ASC LIMIT 10;
# [21, True]
```

`Dialect` describes the target database:

- `lq` / `rq`: the identifier quote characters (both `"` by default).
- `use_index_placeholders`: turn `?` into `$1`, `$2`, ... When off (the
  default), `?` placeholders are left as they are.
- `use_top_clause`: write `TOP (n)` for a limit without offset, and
  `OFFSET n ROWS FETCH NEXT m ROWS ONLY` (with `ORDER BY (SELECT NULL)` when
  no order is given) instead of `LIMIT` / `OFFSET`.

A query with `delete` set builds a `DELETE`, one with a non-empty `update`
mapping builds an `UPDATE ... SET` with the columns in sorted order, and any
other builds a `SELECT`. `build_query` stores the text it produced on the
query (`raw_sql` / `raw_args`), so building the same query again returns the
same statement. `boilquery.query.raw(sql, *args)` creates a query from literal
SQL, and `Query.set_sql` replaces a query's text.

### Modifiers

- Selection: `qm.select`, `qm.distinct`, `qm.from_`, `qm.with_` (common table
  expressions), `qm.comment` (written as `-- ` lines before the statement).
- Joins: `qm.inner_join`, `qm.left_outer_join`, `qm.right_outer_join`,
  `qm.full_outer_join`. With joins and no explicit columns, every table in
  FROM is selected as `"table".*` (or its alias); dotted select columns are
  aliased, e.g. `"a"."fun" as "a.fun"`.
- Filtering: `qm.where`, `qm.and_`, `qm.or_`, `qm.or2`, `qm.expr` for manual
  grouping (once used, automatic parentheses around where clauses stop), and
  the set forms `qm.where_in`, `qm.and_in`, `qm.or_in`, `qm.where_not_in`,
  `qm.and_not_in`, `qm.or_not_in`.
- Shaping: `qm.group_by`, `qm.having`, `qm.order_by`, `qm.limit`,
  `qm.offset`, `qm.for_` (row locking clause).
- Raw SQL: `qm.sql`.
- Relationships: `qm.load(path, *mods)` marks a dotted relationship path for
  eager loading, with optional modifiers for that path's loader; `qm.rels`
  joins names into such a path.
- Soft deletes: `qm.with_deleted()` drops the last `deleted_at is null`
  condition from the where list when the query is built.

Any callable taking a `Query` can be wrapped with `qm.ModFunc`, and
`qm.ModList` is a list of modifiers that is itself a modifier.

### IN clauses

`where_in` expands the first unescaped `?` into a placeholder list sized by the
arguments. When the left side names several columns the placeholders are
grouped:

```python
qm.where_in("(a, b) in ?", 1, 2, 3, 4)
# WHERE ((a, b) IN (($1,$2),($3,$4)))
```

An empty argument list yields `(1=0)` for IN and `(1=1)` for NOT IN, so chains
stay valid. A backslash-escaped `\?` is written as a literal `?`.

The helpers behind this are public in `boilquery.builders`:
`convert_question_marks`, `convert_in_question_marks`, `placeholders`,
`where_clause`, `ident_quote`, `ident_quote_list`, `parse_from_clause`,
`write_stars`, `write_as_statements` and `write_comment`.

### Typed where helpers

`boilquery.qmhelper` provides `where(name, operator, value)` with the
`Operator` values (`EQ`, `NEQ`, `LT`, `LTE`, `GT`, `GTE`; an unknown operator
raises `ValueError`), `where_is_null`, `where_is_not_null`, and
`where_null_eq`, which writes `is null` / `is not null` when the value is
`None` or a `Nullable` whose `is_zero()` is true. Each returns a
`WhereQueryMod`.

## Running queries and binding results

`boilquery.bind` executes a built query through a DB-API connection (its
`cursor()` is used) or a cursor:

- `exec_query(q, executor)` runs a statement and returns the cursor.
- `query_rows(q, executor)` returns the cursor positioned on the rows.
- `query_row(q, executor)` returns the first row or `None`.
- `query_bind(q, executor, target)` binds the rows, then eager-loads any
  relationships the query asked for, and returns the result.

`bind(cursor, target)` does the binding on its own. A dataclass *instance* is
filled from the first row and returned (`NoRowsError` when there is none); a
dataclass *type* yields a list with one new instance per row. Any other target
raises `BindError`. Columns that match no field are ignored.

Columns are matched to fields by name. A field name is converted to snake case
(`FunID` becomes `fun_id`, known acronyms such as `GUID` stay whole), unless
the field carries `boil` metadata:

```python
from dataclasses import dataclass, field

@dataclass
class Friend:
    id: int = 0

@dataclass
class Row:
    name: str = field(default="", metadata={"boil": "user_name"})
    secret_note: str = field(default="", metadata={"boil": "-"})   # never bound
    friend: Friend = field(default_factory=Friend, metadata={"boil": "friend,bind"})
```

A tag ending in `,bind` makes a nested dataclass whose fields match prefixed
columns such as `friend.id`; a column with no exact match is matched against
names ending in `.column`. The SQL and arguments of every executed statement
are logged at debug level on the `boilquery.bind` logger.

The lower-level pieces are in `boilquery.mapping`: `make_struct_mapping`,
`bind_mapping`, `values_from_mapping`, `assign_from_mapping`, `get_boil_tag`,
`untitle_case`, and `non_zero_default_set`, which returns the tagged default
columns whose values are not zero (and raises `ValueError` for a name with no
matching field).

## Comparing and assigning values

`boilquery.values` works across plain values and objects implementing the
`Valuer` (`value()`) and `Scanner` (`scan(value)`) protocols:

- `equal(a, b)` unwraps valuers, parses numeric strings against numbers, and
  raises `TypeError` when the underlying types differ.
- `assign(dst, src)` scans into a scanner destination in place, or returns the
  valuer's value converted to the destination's type; it raises `TypeError`
  when neither side is a scanner or valuer.
- `must_time`, `is_valuer_nil`, `is_nil` and `set_scanner` (which raises
  `ValueError` when the scanner refuses the value).

## Eager loading

`boilquery.eager_load.eager_load(executor, to_load, mods, obj)` walks dotted
relationship paths such as `"videos.tags"`. Model objects carry an `R`
attribute holding loaded relations (an object, `None` or a list) and an `L`
attribute with one `load_<name>(executor, singular, obj, mods)` method per
relationship. Each level is loaded once for all objects collected at that
level. Failures raise `EagerLoadError`. `collect_loaded` gathers the loaded
objects of one relationship across parents, and `embedded_value` pulls a field
of a given dataclass type out of an object or list of objects.

## What this package does not do

It does not read a database schema or generate model classes: the dataclasses,
their `R` relationship holders and `L` loaders are written by the user. It
does not open or manage database connections, and offers no command-line tool.