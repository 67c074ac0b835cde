"""Eager loading of relationships across a graph of loaded model objects.

Model objects taking part in eager loading carry two attributes:

* ``R``: the relationship holder, whose attributes hold loaded relations
  (a single object, ``None``, or a list of objects).
* ``L``: the loader, with one method per relationship named
  ``load_<relationship>(executor, singular, obj, mods)``. ``obj`` is either one
  model object (``singular`` true) or a list of them.

Relationships are named as dotted paths of ``R`` attributes, such as
``"videos.tags"``.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Optional, Sequence

from .mapping import _field_dataclass
from .query import Applicator

LOAD_METHOD_PREFIX = "load_"
RELATIONSHIP_ATTR = "R"
LOADER_ATTR = "L"


class EagerLoadError(Exception):
    """Raised when a relationship cannot be eager loaded."""


class _LoadState:
    """Tracks which relationship paths have been loaded during one eager load."""

    def __init__(
        self,
        executor: Any,
        mods: Optional[Mapping[str, Applicator]],
    ) -> None:
        self.executor = executor
        self.mods = dict(mods or {})
        self.loaded: set[str] = set()
        self.to_load: list[str] = []

    def key(self, depth: int) -> str:
        return ".".join(self.to_load[: depth + 1])

    def load(self, depth: int, obj: Any, singular: bool) -> None:
        if obj is None:
            return

        if self.key(depth) not in self.loaded:
            self._call_loader(depth, obj, singular)

        if depth + 1 >= len(self.to_load):
            return

        if singular:
            self._recurse(depth, obj)
            return

        if not obj:
            return

        collected = collect_loaded(self.to_load[depth], obj)
        if not collected:
            return
        self.load(depth + 1, collected, False)

    def _call_loader(self, depth: int, obj: Any, singular: bool) -> None:
        current = self.to_load[depth]

        if singular:
            sample = obj
        else:
            if not obj or obj[0] is None:
                return
            sample = obj[0]

        if not hasattr(sample, LOADER_ATTR):
            raise EagerLoadError(
                f"attempted to load {current} but no {LOADER_ATTR} loader was found"
            )
        loader = getattr(sample, LOADER_ATTR)

        method = getattr(loader, LOAD_METHOD_PREFIX + current, None)
        if not callable(method):
            raise EagerLoadError(
                f"could not find {LOAD_METHOD_PREFIX}{current} method for eager loading"
            )

        mods = self.mods.get(self.key(depth))
        try:
            method(self.executor, singular, obj, mods)
        except Exception as err:
            raise EagerLoadError(f"failed to eager load {current}: {err}") from err

        self.loaded.add(self.key(depth))

    def _recurse(self, depth: int, obj: Any) -> None:
        key = self.to_load[depth]
        try:
            relationships = _find_relationships(obj)
        except EagerLoadError as err:
            raise EagerLoadError(f"failed to append loaded {key}: {err}") from err

        loaded = _relation(relationships, key)
        if loaded is None:
            return
        self.load(depth + 1, loaded, not isinstance(loaded, list))


def _find_relationships(obj: Any) -> Any:
    if obj is None or not hasattr(obj, RELATIONSHIP_ATTR):
        raise EagerLoadError("relationship struct was invalid")
    relationships = getattr(obj, RELATIONSHIP_ATTR)
    if relationships is None:
        raise EagerLoadError("relationship struct was nil")
    return relationships


def _relation(relationships: Any, key: str) -> Any:
    if not hasattr(relationships, key):
        raise EagerLoadError(
            f"relationship {key} not found on {type(relationships).__name__}"
        )
    return getattr(relationships, key)


def eager_load(
    executor: Any,
    to_load: Sequence[str],
    mods: Optional[Mapping[str, Applicator]],
    obj: Any,
) -> None:
    """Load every dotted relationship path in to_load into obj.

    obj is a single model object or a list of them. mods maps a relationship
    path to the query mods passed to that path's loader.
    """
    state = _LoadState(executor, mods)
    singular = not isinstance(obj, list)
    for path in to_load:
        state.to_load = path.split(".")
        state.load(0, obj, singular)


def collect_loaded(key: str, loading_from: Sequence[Any]) -> list[Any]:
    """Gather the objects loaded under relationship key from every parent.

    Single relations that are None are skipped; list relations are flattened.
    """
    collection: list[Any] = []
    for parent in loading_from:
        try:
            relationships = _find_relationships(parent)
        except EagerLoadError as err:
            raise EagerLoadError(f"failed to collect loaded {key}: {err}") from err

        loaded = _relation(relationships, key)
        if isinstance(loaded, list):
            collection.extend(loaded)
        elif loaded is not None:
            collection.append(loaded)
    return collection


def _embedded_field(cls: type, embedded_type: type) -> Optional[str]:
    if not dataclasses.is_dataclass(cls):
        return None
    for field in dataclasses.fields(cls):
        if _field_dataclass(cls, field) is embedded_type:
            return field.name
    return None


def embedded_value(source: Any, embedded_type: type) -> Any:
    """Pull the field of type embedded_type out of source.

    source is a dataclass instance or a list of them; the result is the
    embedded value or a list of them. None is returned when the types do not
    match or source is a nested list.
    """
    if isinstance(source, list):
        if not source:
            return []
        if any(isinstance(item, list) for item in source):
            return None
        name = _embedded_field(type(source[0]), embedded_type)
        if name is None:
            return None
        return [getattr(item, name) for item in source]

    if source is None:
        return None
    name = _embedded_field(type(source), embedded_type)
    if name is None:
        return None
    return getattr(source, name)