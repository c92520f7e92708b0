"""
Operation ID synthesis from method, canonical path and handler name.

    synthesize_operation_id("GET", "/users/{id}", "")        -> "getUsersByid"
    synthesize_operation_id("GET", "/users", "get_users")    -> "getGet_users"
    synthesize_operation_id("GET", "/x", "users::list")      -> "getList"

IDs are deterministic but not unique; document assembly deduplicates.
"""

from __future__ import annotations

import re

from .path_params import BRACE_PARAM_RE

ANONYMOUS_HANDLERS = frozenset({"", "<anonymous>", "anonymous", "lambda"})

_QUALIFIER_RE = re.compile(r'::|\.')
_WORD_BREAK_RE = re.compile(r'[/\-_]')


def upper_first(word: str) -> str:
    return word[:1].upper() + word[1:]


def handler_basename(handler: str) -> str:
    """Last segment of a module-qualified handler (``a::b``, ``A.b``)."""
    return _QUALIFIER_RE.split(handler.strip())[-1]


def synthesize_operation_id(method: str, path: str, handler: str = "", strip_suffix: str = "") -> str:
    verb = method.lower()

    if handler and handler.strip() not in ANONYMOUS_HANDLERS:
        name = handler_basename(handler)
        if strip_suffix and name.endswith(strip_suffix) and len(name) > len(strip_suffix):
            name = name[:-len(strip_suffix)]
        if name:
            return verb + upper_first(name)

    clean = BRACE_PARAM_RE.sub(lambda m: "By" + m.group(1), path)
    words = _WORD_BREAK_RE.sub(" ", clean).split()
    if not words:
        return verb
    return verb + "".join(w[:1].upper() + w[1:].lower() for w in words)
