"""Composable SQL query building, result binding onto dataclasses and eager loading."""

__version__ = "0.1.0"

__all__ = [
    "bind",
    "builders",
    "eager_load",
    "mapping",
    "qm",
    "qmhelper",
    "query",
    "values",
]