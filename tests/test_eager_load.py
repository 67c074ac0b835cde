from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from boilquery.eager_load import (
    EagerLoadError,
    collect_loaded,
    eager_load,
    embedded_value,
)

counts: Counter = Counter()
seen: dict[str, Any] = {}


@pytest.fixture(autouse=True)
def _reset():
    counts.clear()
    seen.clear()
    yield


def _targets(singular, obj):
    return [obj] if singular else obj


@dataclass
class NestedR:
    pass


class NestedL:
    pass


@dataclass
class Nested:
    id: int = 0
    R: Optional[NestedR] = None
    L: NestedL = field(default_factory=NestedL)


@dataclass
class ChildR:
    nested_one: Optional[Nested] = None
    nested_many: Optional[list] = None


class ChildL:
    def load_nested_one(self, executor, singular, obj, mods):
        for o in _targets(singular, obj):
            if o.R is None:
                o.R = ChildR()
            o.R.nested_one = Nested(id=21)
        counts["nested_one"] += 1

    def load_nested_many(self, executor, singular, obj, mods):
        for o in _targets(singular, obj):
            if o.R is None:
                o.R = ChildR()
            o.R.nested_many = [Nested(id=22), Nested(id=23)]
        counts["nested_many"] += 1


@dataclass
class Child:
    id: int = 0
    R: Optional[ChildR] = None
    L: ChildL = field(default_factory=ChildL)


@dataclass
class ZeroR:
    nested_one: Optional[Nested] = None
    nested_many: Optional[list] = None


class ZeroL:
    def load_nested_one(self, executor, singular, obj, mods):
        counts["zero_nested_one"] += 1

    def load_nested_many(self, executor, singular, obj, mods):
        counts["zero_nested_many"] += 1


@dataclass
class Zero:
    id: int = 0
    R: Optional[ZeroR] = None
    L: ZeroL = field(default_factory=ZeroL)


@dataclass
class EagerR:
    child_one: Optional[Child] = None
    child_many: Optional[list] = None
    zero_one: Optional[Zero] = None
    zero_many: Optional[list] = None


class EagerL:
    def load_child_one(self, executor, singular, obj, mods):
        seen["executor"] = executor
        seen["mods"] = mods
        for o in _targets(singular, obj):
            if o.R is None:
                o.R = EagerR()
            o.R.child_one = Child(id=11)
        counts["child_one"] += 1

    def load_child_many(self, executor, singular, obj, mods):
        for o in _targets(singular, obj):
            if o.R is None:
                o.R = EagerR()
            o.R.child_many = [Child(id=12), Child(id=13)]
        counts["child_many"] += 1

    def load_zero_one(self, executor, singular, obj, mods):
        for o in _targets(singular, obj):
            if o.R is None:
                o.R = EagerR()

    def load_zero_many(self, executor, singular, obj, mods):
        for o in _targets(singular, obj):
            if o.R is None:
                o.R = EagerR()
            o.R.zero_many = []

    def load_broken(self, executor, singular, obj, mods):
        raise RuntimeError("boom")


@dataclass
class Eager:
    id: int = 0
    R: Optional[EagerR] = None
    L: EagerL = field(default_factory=EagerL)


TO_LOAD = [
    "child_one.nested_many",
    "child_one.nested_one",
    "child_many.nested_many",
    "child_many.nested_one",
]


def check_child_one(c):
    assert c is not None
    assert c.id == 11


def check_child_many(cs):
    assert [c.id for c in cs] == [12, 13]


def check_nested_one(n):
    assert n is not None
    assert n.id == 21


def check_nested_many(ns):
    assert [n.id for n in ns] == [22, 23]


def test_eager_load_from_one():
    obj = Eager()
    eager_load(None, TO_LOAD, None, obj)

    assert counts["child_many"] == 1
    assert counts["child_one"] == 1
    assert counts["nested_many"] == 2
    assert counts["nested_one"] == 2

    check_child_one(obj.R.child_one)
    check_child_many(obj.R.child_many)

    check_nested_one(obj.R.child_one.R.nested_one)
    check_nested_one(obj.R.child_many[0].R.nested_one)
    check_nested_one(obj.R.child_many[1].R.nested_one)

    check_nested_many(obj.R.child_one.R.nested_many)
    check_nested_many(obj.R.child_many[0].R.nested_many)
    check_nested_many(obj.R.child_many[1].R.nested_many)


def test_eager_load_from_many():
    items = [Eager(id=-1), Eager(id=-2)]
    eager_load(None, TO_LOAD, None, items)

    assert counts["child_many"] == 1
    assert counts["child_one"] == 1
    assert counts["nested_many"] == 2
    assert counts["nested_one"] == 2

    for item in items:
        check_child_one(item.R.child_one)
        check_child_many(item.R.child_many)
        check_nested_one(item.R.child_one.R.nested_one)
        check_nested_one(item.R.child_many[0].R.nested_one)
        check_nested_one(item.R.child_many[1].R.nested_one)
        check_nested_many(item.R.child_one.R.nested_many)
        check_nested_many(item.R.child_many[0].R.nested_many)
        check_nested_many(item.R.child_many[1].R.nested_many)


ZERO_LOAD = [
    "zero_many.nested_many",
    "zero_one.nested_one",
    "zero_many.nested_many",
    "zero_one.nested_one",
]


def test_eager_load_zero_parents():
    obj = Eager()
    eager_load(None, ZERO_LOAD, None, obj)
    assert obj.R.zero_many == []
    assert obj.R.zero_one is None
    assert counts["zero_nested_one"] == 0
    assert counts["zero_nested_many"] == 0


def test_eager_load_zero_parents_many():
    items = [Eager(), Eager()]
    eager_load(None, ZERO_LOAD, None, items)
    for item in items:
        assert item.R.zero_many == []
        assert item.R.zero_one is None


def test_collect_loaded_nils():
    items = [Eager(R=EagerR()), Eager(R=EagerR())]
    assert collect_loaded("child_many", items) == []
    assert collect_loaded("child_one", items) == []


def test_collect_loaded_flattens_and_skips_none():
    a, b, c = Child(id=1), Child(id=2), Child(id=3)
    items = [Eager(R=EagerR(child_many=[a, b])), Eager(R=EagerR(child_many=[c]))]
    assert [x.id for x in collect_loaded("child_many", items)] == [1, 2, 3]

    singles = [Eager(R=EagerR(child_one=a)), Eager(R=EagerR()), Eager(R=EagerR(child_one=c))]
    assert [x.id for x in collect_loaded("child_one", singles)] == [1, 3]


def test_collect_loaded_nil_relationship_struct():
    with pytest.raises(EagerLoadError, match="relationship struct was nil"):
        collect_loaded("child_one", [Eager()])


def test_collect_loaded_missing_relationship_struct():
    with pytest.raises(EagerLoadError, match="relationship struct was invalid"):
        collect_loaded("child_one", [object()])


def test_executor_and_mods_are_passed_to_loader():
    executor = object()
    mods = {"child_one": "mods-for-child-one"}
    obj = Eager()
    eager_load(executor, ["child_one"], mods, obj)
    assert seen["executor"] is executor
    assert seen["mods"] == "mods-for-child-one"
    assert obj.R.child_one.id == 11


def test_missing_mods_pass_none():
    obj = Eager()
    eager_load(None, ["child_one"], {"child_many": "other"}, obj)
    assert seen["mods"] is None
    assert obj.R.child_one.id == 11
    assert obj.R.child_many is None


def test_none_object_is_ignored():
    result = eager_load(None, ["child_one"], None, None)
    assert result is None
    assert counts == Counter()


def test_empty_list_loads_nothing():
    items: list = []
    eager_load(None, ["child_one.nested_one"], None, items)
    assert items == []
    assert counts == Counter()


def test_missing_loader_attribute():
    @dataclass
    class NoLoader:
        id: int = 0

    with pytest.raises(EagerLoadError, match="no L loader"):
        eager_load(None, ["child_one"], None, NoLoader())


def test_missing_load_method():
    with pytest.raises(EagerLoadError, match="could not find load_missing method"):
        eager_load(None, ["missing"], None, Eager())


def test_loader_error_is_wrapped():
    with pytest.raises(EagerLoadError, match="failed to eager load broken") as info:
        eager_load(None, ["broken"], None, Eager())
    assert isinstance(info.value.__cause__, RuntimeError)


@dataclass
class Base:
    name: str = ""


@dataclass
class Extended:
    base: Base = field(default_factory=Base)
    extra: int = 0


def test_embedded_value_single():
    inner = Base(name="a")
    assert embedded_value(Extended(base=inner), Base) is inner


def test_embedded_value_list():
    first, second = Base(name="a"), Base(name="b")
    result = embedded_value([Extended(base=first), Extended(base=second)], Base)
    assert result == [first, second]
    assert result[0] is first


def test_embedded_value_no_match():
    assert embedded_value(Base(name="a"), Extended) is None
    assert embedded_value([Base()], Extended) is None


def test_embedded_value_nested_list_unsupported():
    assert embedded_value([[Extended()]], Base) is None


def test_embedded_value_empty_list():
    assert embedded_value([], Base) == []