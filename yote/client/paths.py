"""
Yote — List Key Paths and Fetch Routes
=======================================

What:  Normalizes list arguments into key paths and derives the API route a
       key path is fetched from.

A key path addresses one list in the nested ListCache tree:

    ()                      → ("all",)
    ("_task", task_id)      → lists["_task"][task_id]
    ("_id", ["a", "b"])     → lists["_id"][("a", "b")]

Route rule (mirrors the server's by-ref routes):

    ("all",)                → /api/tasks
    ("status",)             → /api/tasks/by-status
    ("_id", ("a", "b"))     → /api/tasks/by-_id-list?_id=a&_id=b&
    ("author", "12345")     → /api/tasks/by-author/12345
    ("a", "1", "k", "v")    → /api/tasks/by-a/1/k/v
"""

from typing import Any, Iterable, Tuple, Union
from urllib.parse import quote

KeySegment = Union[str, Tuple[str, ...]]
KeyPath = Tuple[KeySegment, ...]

DEFAULT_KEY_PATH: KeyPath = ("all",)


def _scalar(value: Any) -> str:
    return "null" if value is None else str(value)


def normalize_segment(value: Any) -> KeySegment:
    """
    Sequences become tuples of strings, None becomes "null", anything else str().
    Sets are sorted so equal sets address the same list.
    """
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(_scalar(v) for v in value))
    if isinstance(value, (list, tuple)):
        return tuple(_scalar(v) for v in value)
    return _scalar(value)


def normalize_key_path(list_args: Iterable[Any]) -> KeyPath:
    key_path = tuple(normalize_segment(arg) for arg in list_args)
    return key_path or DEFAULT_KEY_PATH


def _encode(segment: str) -> str:
    return quote(segment, safe="")


def build_list_route(base: str, key_path: KeyPath) -> str:
    """
    Route a key path is fetched from, relative to the resource base
    (e.g. "/api/tasks").
    """
    if not key_path or key_path == DEFAULT_KEY_PATH:
        return base

    first = key_path[0]
    if isinstance(first, tuple):
        raise ValueError("the first list argument must be a field name, not a sequence")

    if len(key_path) == 1:
        return f"{base}/by-{_encode(first)}"

    if len(key_path) == 2 and isinstance(key_path[1], tuple):
        query = "".join(f"{_encode(first)}={_encode(value)}&" for value in key_path[1])
        return f"{base}/by-{_encode(first)}-list?{query}"

    rest = key_path[1:]
    if any(isinstance(segment, tuple) for segment in rest):
        raise ValueError("only the second of exactly two list arguments may be a sequence")
    return f"{base}/by-{_encode(first)}/" + "/".join(_encode(segment) for segment in rest)
