"""Dot-path access into decoded webhook payloads."""

from typing import Any

_MISSING = object()


def data_get(document: Any, path: str | None, default: Any = None) -> Any:
    """Return the value at ``path`` (``"event.item.0.id"``) or ``default``.

    Mapping keys are matched as strings; list segments must be integer
    indexes. A ``None`` or empty path returns the document itself.
    """
    if path is None or path == "":
        return document
    value = _lookup(document, path.split("."))
    return default if value is _MISSING else value


def _lookup(node: Any, segments: list[str]) -> Any:
    if not segments:
        return node
    head, rest = segments[0], segments[1:]
    if isinstance(node, dict):
        if head not in node:
            return _MISSING
        return _lookup(node[head], rest)
    if isinstance(node, (list, tuple)):
        try:
            index = int(head)
        except ValueError:
            return _MISSING
        if not -len(node) <= index < len(node):
            return _MISSING
        return _lookup(node[index], rest)
    return _MISSING
