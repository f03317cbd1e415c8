"""Dot-separated path resolution over parsed JSON content."""
from typing import Any, Optional


def resolve_path(content: Any, path: str) -> Optional[Any]:
    """
    Follow path ("a.b.0.c") through nested dicts and lists.

    A segment selects a dict key, or a list element when it is an integer
    position. Returns None as soon as a segment cannot be followed.
    """
    if not path:
        return None
    return _walk(content, path.split("."))


def _walk(node: Any, segments: list[str]) -> Optional[Any]:
    if not segments:
        return node
    head, rest = segments[0], segments[1:]

    if isinstance(node, dict):
        if head not in node:
            return None
        return _walk(node[head], rest)

    if isinstance(node, list):
        try:
            index = int(head)
        except ValueError:
            return None
        if not 0 <= index < len(node):
            return None
        return _walk(node[index], rest)

    return None
