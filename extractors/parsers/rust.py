"""Rust source parser: use declarations, attributed functions and structs."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..base import SourceFile
from ..deterministic.text import find_closing, line_at, mask_comments, split_spans, string_literal
from . import ParsedSource

_USE_RE = re.compile(r'^\s*(?:pub(?:\s*\([^)]*\))?\s+)?use\s+([^;]+);', re.MULTILINE)
_EXTERN_CRATE_RE = re.compile(r'\bextern\s+crate\s+(\w+)')
_FN_RE = re.compile(r'\bfn\s+([A-Za-z_]\w*)\s*(?:<[^>{]*>)?\s*\(')
_STRUCT_RE = re.compile(r'\bstruct\s+([A-Za-z_]\w*)\s*(?:<[^>{;]*>)?\s*(?:where[^{;]*)?\{')
_ATTR_START_RE = re.compile(r'#\[')
_ATTR_BODY_RE = re.compile(r'^\s*([A-Za-z_][\w:]*)\s*(?:\((.*)\)|=\s*(.*))?\s*$', re.DOTALL)
_QUALIFIER_TAIL_RE = re.compile(
    r'(?:\bpub(?:\s*\([^)]*\))?|\basync|\bconst|\bunsafe|\bdefault|\bextern(?:\s*"[^"]*")?)$'
)
_FIELD_RE = re.compile(r'^(?:pub(?:\s*\([^)]*\))?\s+)?([A-Za-z_]\w*)\s*:\s*(.+)$', re.DOTALL)
_RETURN_RE = re.compile(r'\s*->\s*([^{;]+?)\s*(?:where\b[^{]*)?[{;]')


@dataclass
class RustAttribute:
    name: str
    args: str
    line: int
    start: int = 0
    end: int = 0

    def string_args(self) -> List[str]:
        return [s for s in (string_literal(a, quotes='"') for _, a in split_spans(self.args, quotes='"'))
                if s is not None]


@dataclass
class RustFunction:
    name: str
    line: int
    params: str
    return_type: str = ""
    attributes: List[RustAttribute] = field(default_factory=list)

    def param_types(self) -> Dict[str, str]:
        """``name -> type`` for simple ``name: Type`` parameters."""
        result = {}
        for _, param in split_spans(self.params, angle=True, quotes='"'):
            m = re.match(r'^(?:mut\s+)?([A-Za-z_]\w*)\s*:\s*(.+)$', param, re.DOTALL)
            if m:
                result[m.group(1)] = " ".join(m.group(2).split())
        return result


@dataclass
class RustField:
    name: str
    type: str
    line: int
    attributes: List[RustAttribute] = field(default_factory=list)


@dataclass
class RustStruct:
    name: str
    line: int
    attributes: List[RustAttribute] = field(default_factory=list)
    fields: List[RustField] = field(default_factory=list)

    def derives(self) -> List[str]:
        names = []
        for attr in self.attributes:
            if attr.name == "derive":
                names.extend(d.strip().rsplit("::", 1)[-1] for d in attr.args.split(","))
        return names


def attribute_options(attrs: List[RustAttribute], name: str) -> Dict[str, Optional[str]]:
    """
    Merge ``#[name(key = "value", flag)]`` attributes into one mapping.

    Flags map to None; string values are unquoted.
    """
    options: Dict[str, Optional[str]] = {}
    for attr in attrs:
        if attr.name != name:
            continue
        for _, item in split_spans(attr.args, quotes='"'):
            if "=" in item:
                key, value = item.split("=", 1)
                literal = string_literal(value, quotes='"')
                options[key.strip()] = literal if literal is not None else value.strip()
            else:
                options[item.strip()] = None
    return options


class RustSource(ParsedSource):
    def __init__(self, file: SourceFile, masked: str):
        super().__init__(file, masked)
        self.uses: List[str] = []
        self.functions: List[RustFunction] = []
        self.structs: List[RustStruct] = []

    def uses_crate(self, crate: str) -> bool:
        return any(crate in use for use in self.uses)

    def close(self) -> None:
        super().close()
        self.uses = []
        self.functions = []
        self.structs = []


def parse_rust(file: SourceFile) -> RustSource:
    text = file.text
    masked = mask_comments(text, quotes="", multiline_quotes='"', char_literals=True, path=file.path)
    source = RustSource(file, masked)

    source.uses = [" ".join(m.group(1).split()) for m in _USE_RE.finditer(masked)]
    source.uses.extend(m.group(1) for m in _EXTERN_CRATE_RE.finditer(masked))

    attrs_by_end = _attributes(masked)

    for m in _FN_RE.finditer(masked):
        open_paren = m.end() - 1
        close_paren = find_closing(masked, open_paren, quotes='"')
        if close_paren < 0:
            continue
        ret = _RETURN_RE.match(masked, close_paren + 1)
        source.functions.append(RustFunction(
            name=m.group(1),
            line=line_at(masked, m.start()),
            params=masked[open_paren + 1:close_paren],
            return_type=" ".join(ret.group(1).split()) if ret else "",
            attributes=_leading_attributes(masked, m.start(), attrs_by_end),
        ))

    for m in _STRUCT_RE.finditer(masked):
        open_brace = m.end() - 1
        close_brace = find_closing(masked, open_brace, "{", "}", quotes='"')
        if close_brace < 0:
            continue
        struct = RustStruct(
            name=m.group(1),
            line=line_at(masked, m.start()),
            attributes=_leading_attributes(masked, m.start(), attrs_by_end),
        )
        struct.fields = _struct_fields(masked, open_brace + 1, close_brace)
        source.structs.append(struct)

    return source


def _attributes(masked: str) -> Dict[int, RustAttribute]:
    """Outer attributes keyed by the offset of their closing bracket."""
    found = {}
    for m in _ATTR_START_RE.finditer(masked):
        open_bracket = m.end() - 1
        close_bracket = find_closing(masked, open_bracket, "[", "]", quotes='"')
        if close_bracket < 0:
            continue
        attr = _parse_attribute(masked[open_bracket + 1:close_bracket], line_at(masked, m.start()))
        if attr:
            attr.start, attr.end = m.start(), close_bracket
            found[close_bracket] = attr
    return found


def _parse_attribute(body: str, line: int) -> Optional[RustAttribute]:
    m = _ATTR_BODY_RE.match(body)
    if not m:
        return None
    return RustAttribute(name=m.group(1), args=(m.group(2) or m.group(3) or "").strip(), line=line)


def _leading_attributes(masked: str, start: int, attrs_by_end: Dict[int, RustAttribute]) -> List[RustAttribute]:
    """Attributes directly above an item, skipping visibility and qualifiers."""
    found: List[RustAttribute] = []
    pos = start
    while True:
        i = pos - 1
        while i >= 0 and masked[i].isspace():
            i -= 1
        if i < 0:
            break
        if masked[i] == "]" and i in attrs_by_end:
            attr = attrs_by_end[i]
            found.insert(0, attr)
            pos = attr.start
            continue
        window_start = max(0, i - 40)
        tail = _QUALIFIER_TAIL_RE.search(masked[window_start:i + 1])
        if tail:
            pos = window_start + tail.start()
            continue
        break
    return found


def _struct_fields(masked: str, body_start: int, body_end: int) -> List[RustField]:
    body = masked[body_start:body_end]
    fields = []
    for offset, chunk in split_spans(body, angle=True, quotes='"'):
        attrs = []
        rest = chunk
        # peel leading #[...] attributes off the field
        while rest.startswith("#["):
            close = find_closing(rest, 1, "[", "]", quotes='"')
            if close < 0:
                break
            attr = _parse_attribute(rest[2:close], line_at(masked, body_start + offset))
            if attr:
                attrs.append(attr)
            rest = rest[close + 1:].lstrip()
        m = _FIELD_RE.match(rest)
        if not m:
            continue
        field_offset = body_start + offset + (len(chunk) - len(rest))
        fields.append(RustField(
            name=m.group(1),
            type=" ".join(m.group(2).split()),
            line=line_at(masked, field_offset),
            attributes=attrs,
        ))
    return fields
