"""
Elixir source parser producing a ``do ... end`` block tree.

Logical lines (continuations joined) become leaf statements; lines that open
more ``do``/``fn`` blocks than they close become block nodes whose children
are the statements up to the matching ``end``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from ..base import ParseError, SourceFile
from ..deterministic.text import mask_comments
from . import ParsedSource

_STRING_RE = re.compile(r'"(?:\\.|[^"\\\n])*"')
_OPEN_RE = re.compile(r'\bdo\b(?!:)|\bfn\b')
_CLOSE_RE = re.compile(r'(?<![.:])\bend\b(?!:)')


@dataclass
class ElixirNode:
    head: str
    line: int
    block: bool = False
    children: List["ElixirNode"] = field(default_factory=list)

    def walk(self) -> Iterator["ElixirNode"]:
        for child in self.children:
            yield child
            if child.block:
                yield from child.walk()


class ElixirSource(ParsedSource):
    def __init__(self, file: SourceFile, masked: str):
        super().__init__(file, masked)
        self.root = ElixirNode(head="", line=0, block=True)

    def close(self) -> None:
        super().close()
        self.root = ElixirNode(head="", line=0, block=True)


def code_only(text: str) -> str:
    """Blank string literal contents so keywords inside strings are not counted."""
    return _STRING_RE.sub(lambda m: '"' + " " * (len(m.group(0)) - 2) + '"', text)


def _logical_lines(masked: str) -> List[Tuple[int, str]]:
    """Join continuation lines (open brackets or a trailing comma) into one statement."""
    lines: List[Tuple[int, str]] = []
    pending: List[str] = []
    start_line = 0
    depth = 0
    for number, raw in enumerate(masked.split("\n"), start=1):
        text = raw.strip()
        if not text and not pending:
            continue
        if not pending:
            start_line = number
        pending.append(text)
        code = code_only(text)
        depth += sum(code.count(c) for c in "([{") - sum(code.count(c) for c in ")]}")
        if depth > 0 or code.endswith(","):
            continue
        lines.append((start_line, " ".join(p for p in pending if p)))
        pending = []
        depth = 0
    if pending:
        lines.append((start_line, " ".join(p for p in pending if p)))
    return lines


def parse_elixir(file: SourceFile) -> ElixirSource:
    masked = mask_comments(file.text, line_comment="#", block_comment=False, quotes="'",
                           multiline_quotes='"', triple_quotes=True, path=file.path)
    source = ElixirSource(file, masked)

    stack = [source.root]
    for line, text in _logical_lines(masked):
        code = code_only(text)
        opens = len(_OPEN_RE.findall(code))
        closes = len(_CLOSE_RE.findall(code))

        if closes > opens:
            for _ in range(closes - opens):
                if len(stack) == 1:
                    raise ParseError(f"unexpected 'end' at line {line}", file.path)
                stack.pop()
            continue
        if opens > closes:
            node = ElixirNode(head=text, line=line, block=True)
            stack[-1].children.append(node)
            stack.append(node)
            # extra openers on the same line (``fn`` inside a ``do`` head) nest anonymously
            for _ in range(opens - closes - 1):
                inner = ElixirNode(head="", line=line, block=True)
                stack[-1].children.append(inner)
                stack.append(inner)
            continue
        stack[-1].children.append(ElixirNode(head=text, line=line))

    if len(stack) > 1:
        raise ParseError(f"unclosed block opened at line {stack[-1].line}", file.path)
    return source
