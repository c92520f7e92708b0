"""Java and Kotlin source parser: classes, fields/constructor properties and enums."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

from ..base import SourceFile
from ..deterministic.text import find_closing, line_at, mask_comments, split_spans
from . import ParsedSource

_ANNOTATION_RE = re.compile(r'@(?:field:|param:|get:)?([\w.]+)(?:\s*\(([^)]*)\))?')
_LEADING_ANNOTATIONS = r'((?:@(?:field:|param:|get:)?[\w.]+(?:\s*\([^)]*\))?\s*)*)'

_JAVA_CLASS_RE = re.compile(
    _LEADING_ANNOTATIONS +
    r'(?:(?:public|protected|private|static|final|abstract|sealed)\s+)*(class|record)\s+([A-Za-z_]\w*)'
)
_JAVA_FIELD_RE = re.compile(
    r'^[ \t]*' + _LEADING_ANNOTATIONS +
    r'((?:(?:private|protected|public|final|static|transient|volatile)\s+)*)'
    r'([\w.]+(?:\s*<[^;=(){}]*>)?(?:\[\])?)\s+([A-Za-z_]\w*)\s*(=[^;]*)?;',
    re.MULTILINE,
)
_KOTLIN_CLASS_RE = re.compile(
    _LEADING_ANNOTATIONS +
    r'(?:(?:data|open|sealed|abstract|public|internal|private)\s+)*class\s+([A-Za-z_]\w*)\s*(?:<[^>]*>)?\s*'
    r'(?:(?:public|private|internal|protected)?\s*constructor\s*)?(\()?'
)
_KOTLIN_PARAM_RE = re.compile(
    r'^' + _LEADING_ANNOTATIONS + r'(?:(?:override|private|public|internal|protected)\s+)*(val|var)\s+'
    r'([A-Za-z_]\w*)\s*:\s*(.+?)\s*(=.*)?$',
    re.DOTALL,
)
_ENUM_RE = re.compile(r'\benum\s+(?:class\s+)?([A-Za-z_]\w*)[^{]*\{')


@dataclass
class JvmProperty:
    name: str
    type: str
    line: int
    annotations: List[str] = field(default_factory=list)
    has_default: bool = False


@dataclass
class JvmClass:
    name: str
    line: int
    annotations: List[str] = field(default_factory=list)
    properties: List[JvmProperty] = field(default_factory=list)


class JvmSource(ParsedSource):
    def __init__(self, file: SourceFile, masked: str):
        super().__init__(file, masked)
        self.classes: List[JvmClass] = []
        self.enums: Dict[str, List[str]] = {}

    def close(self) -> None:
        super().close()
        self.classes = []
        self.enums = {}


def annotation_names(text: str) -> List[str]:
    return [m.group(1).rsplit(".", 1)[-1] for m in _ANNOTATION_RE.finditer(text or "")]


def _mask(file: SourceFile, kotlin: bool) -> str:
    return mask_comments(file.text, quotes="\"'", multiline_quotes="", triple_quotes=kotlin, path=file.path)


def _enums(masked: str) -> Dict[str, List[str]]:
    enums = {}
    for m in _ENUM_RE.finditer(masked):
        close = find_closing(masked, m.end() - 1, "{", "}", quotes='"')
        if close < 0:
            continue
        constants = masked[m.end():close].split(";", 1)[0]
        values = []
        for _, item in split_spans(constants):
            name = re.match(r'^([A-Z_][A-Za-z0-9_]*)', item)
            if name:
                values.append(name.group(1))
        enums[m.group(1)] = values
    return enums


def _blank_nested(body: str) -> str:
    """Blank nested ``{...}`` blocks so only top-level members stay visible."""
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
    return "".join(out)


def parse_java(file: SourceFile) -> JvmSource:
    masked = _mask(file, kotlin=False)
    source = JvmSource(file, masked)
    source.enums = _enums(masked)

    for m in _JAVA_CLASS_RE.finditer(masked):
        cls = JvmClass(name=m.group(3), line=line_at(masked, m.start(2)), annotations=annotation_names(m.group(1)))
        pos = m.end()
        if m.group(2) == "record":
            open_paren = masked.find("(", pos)
            close_paren = find_closing(masked, open_paren, quotes='"') if open_paren >= 0 else -1
            if close_paren > 0:
                for offset, param in split_spans(masked[open_paren + 1:close_paren], angle=True, quotes='"'):
                    pm = re.match(_LEADING_ANNOTATIONS + r'([\w.]+(?:\s*<.*>)?(?:\[\])?)\s+([A-Za-z_]\w*)$',
                                  param, re.DOTALL)
                    if pm:
                        cls.properties.append(JvmProperty(
                            name=pm.group(3), type=" ".join(pm.group(2).split()),
                            line=line_at(masked, open_paren + 1 + offset),
                            annotations=annotation_names(pm.group(1)),
                        ))
                pos = close_paren + 1

        open_brace = masked.find("{", pos)
        close_brace = find_closing(masked, open_brace, "{", "}", quotes='"') if open_brace >= 0 else -1
        if close_brace > 0 and m.group(2) == "class":
            body = _blank_nested(masked[open_brace + 1:close_brace])
            for fm in _JAVA_FIELD_RE.finditer(body):
                if "static" in fm.group(2) or fm.group(3) in ("return", "package", "import", "throw"):
                    continue
                cls.properties.append(JvmProperty(
                    name=fm.group(4),
                    type=" ".join(fm.group(3).split()),
                    line=line_at(masked, open_brace + 1 + fm.start(4)),
                    annotations=annotation_names(fm.group(1)),
                    has_default=bool(fm.group(5)),
                ))
        source.classes.append(cls)

    return source


def parse_kotlin(file: SourceFile) -> JvmSource:
    masked = _mask(file, kotlin=True)
    source = JvmSource(file, masked)
    source.enums = _enums(masked)

    for m in _KOTLIN_CLASS_RE.finditer(masked):
        cls = JvmClass(name=m.group(2), line=line_at(masked, m.start(2)), annotations=annotation_names(m.group(1)))
        if m.group(3):
            open_paren = m.end() - 1
            close_paren = find_closing(masked, open_paren, quotes='"')
            if close_paren > 0:
                for offset, param in split_spans(masked[open_paren + 1:close_paren], angle=True, quotes='"'):
                    pm = _KOTLIN_PARAM_RE.match(param)
                    if not pm:
                        continue
                    cls.properties.append(JvmProperty(
                        name=pm.group(3),
                        type=" ".join(pm.group(4).split()),
                        line=line_at(masked, open_paren + 1 + offset),
                        annotations=annotation_names(pm.group(1)),
                        has_default=bool(pm.group(5)),
                    ))
        source.classes.append(cls)

    return source
