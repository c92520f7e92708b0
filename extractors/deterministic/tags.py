"""Tag inference from the first meaningful path segment or a handler class name."""

from __future__ import annotations

from typing import List, Sequence

SKIP_SEGMENTS = frozenset({"api", "v1", "v2", "v3"})
PARAM_MARKERS = ("{", ":", "<")

CRUD_PREFIXES = ("Get", "Create", "Update", "Delete", "List")


def infer_tags(path: str) -> List[str]:
    """
    ``/api/v1/users/{id}`` -> ``["users"]``; ``/`` and ``/{id}`` -> ``[]``.
    """
    for segment in path.lstrip("/").split("/"):
        if not segment or segment in SKIP_SEGMENTS:
            continue
        if segment.startswith(PARAM_MARKERS):
            continue
        return [segment]
    return []


def infer_tags_from_handler(handler: str, path: str, suffix: str = "Endpoint",
                            prefixes: Sequence[str] = CRUD_PREFIXES) -> List[str]:
    """
    ``GetUserEndpoint`` -> ``["User"]``, falling back to the path when the
    class name is consumed entirely by the suffix and prefix.
    """
    name = handler.strip()
    if suffix and name.endswith(suffix):
        name = name[:-len(suffix)]
    for prefix in prefixes:
        if name.startswith(prefix):
            name = name[len(prefix):]
            break
    if name:
        return [name]
    return infer_tags(path)
