"""Helpers for walking JSON parameter trees.

Parameter values are arbitrary JSON (``None``, bool, int, float, str, list,
dict). Every helper here returns new containers and leaves its input alone,
so callers can hand in trees they do not own.
"""

import copy
from typing import Any, Callable, Iterator, Union

JsonValue = Union[None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]]


def join_path(parent: str, key: str | int) -> str:
    """Extend a parameter path with a dict key or list index."""
    if isinstance(key, int):
        return f"{parent}[{key}]"
    if not parent:
        return str(key)
    return f"{parent}.{key}"


def iter_strings(value: Any, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield ``(path, string)`` for every string leaf in a tree."""
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from iter_strings(item, join_path(path, key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from iter_strings(item, join_path(path, index))


def map_strings(value: Any, fn: Callable[[str, str], Any], path: str = "") -> Any:
    """Return a copy of ``value`` with every string leaf replaced by ``fn(path, leaf)``."""
    if isinstance(value, str):
        return fn(path, value)
    if isinstance(value, dict):
        return {key: map_strings(item, fn, join_path(path, key)) for key, item in value.items()}
    if isinstance(value, list):
        return [map_strings(item, fn, join_path(path, index)) for index, item in enumerate(value)]
    return value


def normalize_json(value: Any) -> JsonValue:
    """Coerce a value into plain JSON.

    Tuples become lists, dict keys become strings and anything that is not a
    JSON scalar is rendered with ``str``.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {str(key): normalize_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_json(item) for item in value]
    return str(value)


def deep_copy(value: Any) -> Any:
    return copy.deepcopy(value)
