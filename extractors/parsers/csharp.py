"""C# source parser: classes/records with base lists, auto-properties and record parameters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from ..base import SourceFile
from ..deterministic.text import find_closing, line_at, mask_comments, split_spans
from . import ParsedSource

_TYPE_DECL_RE = re.compile(
    r'\b(class|record|struct)\s+(?:class\s+|struct\s+)?([A-Za-z_]\w*)\s*(<[^>{(]*>)?\s*'
)
_PROPERTY_RE = re.compile(
    r'((?:\[[^\[\]]*\]\s*)*)public\s+((?:(?:required|virtual|override|new)\s+)*)'
    r'([\w.]+(?:\s*<[^;{}()=]*>)?(?:\[\])?\??)\s+([A-Za-z_]\w*)\s*\{\s*(?:get|init|set)[^}]*\}'
    r'(\s*=\s*[^;]+;)?'
)
_ATTRIBUTE_NAME_RE = re.compile(r'\[\s*([\w.]+)')
_RECORD_PARAM_RE = re.compile(r'^((?:\[[^\[\]]*\]\s*)*)([\w.]+(?:\s*<.*>)?(?:\[\])?\??)\s+([A-Za-z_]\w*)\s*(=.*)?$',
                              re.DOTALL)


@dataclass
class CSharpProperty:
    name: str
    type: str
    line: int
    attributes: List[str] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    has_default: bool = False


@dataclass
class CSharpClass:
    kind: str
    name: str
    line: int
    bases: str = ""
    body: str = ""
    body_start: int = 0
    properties: List[CSharpProperty] = field(default_factory=list)


class CSharpSource(ParsedSource):
    def __init__(self, file: SourceFile, masked: str):
        super().__init__(file, masked)
        self.classes: List[CSharpClass] = []

    def close(self) -> None:
        super().close()
        self.classes = []


def parse_csharp(file: SourceFile) -> CSharpSource:
    masked = mask_comments(file.text, quotes="\"'", multiline_quotes="", path=file.path)
    source = CSharpSource(file, masked)

    for m in _TYPE_DECL_RE.finditer(masked):
        pos = m.end()
        cls = CSharpClass(kind=m.group(1), name=m.group(2), line=line_at(masked, m.start()))

        # positional record parameters: record Foo(string Name, int Age)
        if pos < len(masked) and masked[pos] == "(":
            close = find_closing(masked, pos, quotes='"')
            if close < 0:
                continue
            cls.properties.extend(_record_parameters(masked, pos + 1, close))
            pos = close + 1

        head_end = len(masked)
        for stop in ("{", ";"):
            idx = masked.find(stop, pos)
            if 0 <= idx < head_end:
                head_end = idx
        header = masked[pos:head_end].strip()
        if header.startswith(":"):
            cls.bases = re.split(r'\bwhere\b', header[1:], 1)[0].strip()

        if head_end < len(masked) and masked[head_end] == "{":
            close = find_closing(masked, head_end, "{", "}", quotes='"')
            if close < 0:
                continue
            cls.body = masked[head_end + 1:close]
            cls.body_start = head_end + 1
            cls.properties.extend(_properties(masked, head_end + 1, cls.body))

        source.classes.append(cls)

    return source


def _properties(masked: str, body_start: int, body: str) -> List[CSharpProperty]:
    props = []
    for m in _PROPERTY_RE.finditer(body):
        if "static" in m.group(2):
            continue
        props.append(CSharpProperty(
            name=m.group(4),
            type=" ".join(m.group(3).split()),
            line=line_at(masked, body_start + m.start(4)),
            attributes=_ATTRIBUTE_NAME_RE.findall(m.group(1) or ""),
            modifiers=m.group(2).split(),
            has_default=bool(m.group(5)),
        ))
    return props


def _record_parameters(masked: str, start: int, end: int) -> List[CSharpProperty]:
    props = []
    for offset, param in split_spans(masked[start:end], angle=True, quotes='"'):
        m = _RECORD_PARAM_RE.match(param)
        if not m:
            continue
        props.append(CSharpProperty(
            name=m.group(3),
            type=" ".join(m.group(2).split()),
            line=line_at(masked, start + offset),
            attributes=_ATTRIBUTE_NAME_RE.findall(m.group(1) or ""),
            has_default=bool(m.group(4)),
        ))
    return props
