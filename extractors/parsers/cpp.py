"""C++ source parser: classes/structs with their base lists and data members."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from ..base import SourceFile
from ..deterministic.text import find_closing, line_at, mask_comments
from . import ParsedSource

_CLASS_RE = re.compile(
    r'\b(class|struct)\s+(?:[A-Z_]+\s+)?([A-Za-z_]\w*)\s*(?:final\s*)?(?::\s*([^{;]+))?\{'
)
_MEMBER_RE = re.compile(
    r'^\s*((?:[\w:]+(?:\s*<[^;{}()]*>)?[\s\*&]+)+?)([A-Za-z_]\w*)\s*(?:\[[^\]]*\])?\s*(?:=[^;]*|\{[^;]*\})?;',
    re.MULTILINE,
)
_SKIP_MEMBER_PREFIXES = ("return", "using", "typedef", "friend", "static_assert", "delete", "goto")


@dataclass
class CppMember:
    name: str
    type: str
    line: int


@dataclass
class CppClass:
    kind: str
    name: str
    line: int
    bases: List[str] = field(default_factory=list)
    members: List[CppMember] = field(default_factory=list)
    body: str = ""


class CppSource(ParsedSource):
    def __init__(self, file: SourceFile, masked: str):
        super().__init__(file, masked)
        self.classes: List[CppClass] = []

    def close(self) -> None:
        super().close()
        self.classes = []


def parse_cpp(file: SourceFile) -> CppSource:
    masked = mask_comments(file.text, quotes="\"'", multiline_quotes="", path=file.path)
    source = CppSource(file, masked)

    for m in _CLASS_RE.finditer(masked):
        open_brace = m.end() - 1
        close_brace = find_closing(masked, open_brace, "{", "}", quotes="\"'")
        if close_brace < 0:
            continue
        bases = []
        if m.group(3):
            for base in m.group(3).split(","):
                base = re.sub(r'\b(public|private|protected|virtual)\b', '', base).strip()
                if base:
                    bases.append(base)
        cls = CppClass(
            kind=m.group(1),
            name=m.group(2),
            line=line_at(masked, m.start()),
            bases=bases,
            body=masked[open_brace + 1:close_brace],
        )
        cls.members = _members(masked, open_brace + 1, close_brace)
        source.classes.append(cls)

    return source


_ACCESS_RE = re.compile(r'\b(?:public|private|protected)\s*:(?!:)')


def _flatten_nested(body: str) -> str:
    """Blank out nested ``{...}`` blocks (method bodies) and access labels, keeping offsets."""
    out = list(body)
    depth = 0
    for i, ch in enumerate(body):
        if ch == "{":
            depth += 1
            out[i] = " "
        elif ch == "}":
            depth = max(0, depth - 1)
            out[i] = " "
        elif depth > 0 and ch != "\n":
            out[i] = " "
    return _ACCESS_RE.sub(lambda m: " " * len(m.group(0)), "".join(out))


def _members(masked: str, body_start: int, body_end: int) -> List[CppMember]:
    body = _flatten_nested(masked[body_start:body_end])
    members = []
    for m in _MEMBER_RE.finditer(body):
        type_name = " ".join(m.group(1).split())
        if not type_name or type_name.split()[0] in _SKIP_MEMBER_PREFIXES:
            continue
        if "(" in m.group(0):
            continue
        members.append(CppMember(
            name=m.group(2),
            type=type_name,
            line=line_at(masked, body_start + m.start(2)),
        ))
    return members
