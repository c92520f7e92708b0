"""
Path-parameter conversion into canonical ``{name}`` templates.

Converts the parameter syntax of each supported framework:
- ``:id`` / ``:id(\\d+)``   (Express, Hono, Axum < 0.8, Phoenix, Drogon)
- ``<id>`` / ``<path..>``  (Rocket)
- ``{id:int}``             (FastEndpoints / ASP.NET constraints)
- ``*`` / ``*rest``        (wildcards)
- ``{id}``                 (already canonical, left untouched)
"""

from __future__ import annotations

import re
from typing import List

from ..base import Parameter, Schema

# {name} with no nested braces; group 1 is everything inside
BRACE_PARAM_RE = re.compile(r'\{([^{}]+)\}')

_COLON_RE = re.compile(r':([A-Za-z_][A-Za-z0-9_]*)(?:\([^)]*\))?')
_ANGLE_RE = re.compile(r'<([A-Za-z_][A-Za-z0-9_]*)(?:\.\.)?>')
_CONSTRAINED_BRACE_RE = re.compile(r'\{\*{0,2}([A-Za-z_][A-Za-z0-9_]*)(?::[^{}]*|\?)?\}')
_WILDCARD_RE = re.compile(r'\*([A-Za-z_][A-Za-z0-9_]*)?')


def convert_colon_params(path: str) -> str:
    """``/users/:id(\\d+)`` -> ``/users/{id}``."""
    return _COLON_RE.sub(r'{\1}', path)


def convert_angle_params(path: str) -> str:
    """``/files/<path..>`` -> ``/files/{path}``."""
    return _ANGLE_RE.sub(r'{\1}', path)


def convert_brace_params(path: str) -> str:
    """``/users/{id:int}`` -> ``/users/{id}``; ``{*rest}`` and ``{id?}`` too."""
    return _CONSTRAINED_BRACE_RE.sub(r'{\1}', path)


def convert_wildcards(path: str) -> str:
    """``/files/*`` -> ``/files/{path}``; ``/files/*rest`` -> ``/files/{rest}``."""
    return _WILDCARD_RE.sub(lambda m: "{" + (m.group(1) or "path") + "}", path)


def convert(path: str) -> str:
    """
    Rewrite any supported parameter syntax into canonical ``{name}`` form.

    Brace constraints are handled before colon parameters so that the
    ``:int`` of ``{id:int}`` is never mistaken for a parameter. The result
    is a fixed point: ``convert(convert(p)) == convert(p)``.
    """
    path = convert_brace_params(path)
    path = convert_angle_params(path)
    path = convert_colon_params(path)
    return convert_wildcards(path)


def ensure_leading_slash(path: str) -> str:
    if not path.startswith("/"):
        return "/" + path
    return path


def combine_paths(base: str, path: str) -> str:
    """Join a scope/controller/mount prefix with a sub path."""
    base = (base or "").strip()
    path = (path or "").strip()
    if not base or base == "/":
        return ensure_leading_slash(path) if path else "/"
    base = ensure_leading_slash(base).rstrip("/")
    if not path or path == "/":
        return base or "/"
    return base + ensure_leading_slash(path)


def extract_path_params(path: str) -> List[Parameter]:
    """
    One required string path parameter per ``{name}`` occurrence.

    Left-to-right order is kept and duplicate names are not removed. A name
    carrying a leftover ``:constraint`` is truncated at the colon.
    """
    params = []
    for match in BRACE_PARAM_RE.finditer(path):
        name = match.group(1).split(":", 1)[0]
        params.append(Parameter(
            name=name,
            location="path",
            required=True,
            schema=Schema(type="string"),
        ))
    return params
