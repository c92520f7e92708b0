"""
Text scanning primitives shared by the language parsers and plugins.

Everything here works on raw source text with character offsets, so line
numbers can always be recovered with ``line_at``.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..base import ParseError

PAIRS = {"(": ")", "[": "]", "{": "}"}
DEFAULT_QUOTES = "\"'`"

_CHAR_LITERAL = re.compile(r"'(?:\\.[^'\n]{0,8}|[^\\'\n])'")


def line_at(content: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return content[:offset].count('\n') + 1


def skip_string(content: str, start: int) -> int:
    """Index just past the string literal opening at ``start`` (or -1)."""
    quote = content[start]
    i = start + 1
    n = len(content)
    while i < n:
        ch = content[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return -1


def find_closing(content: str, open_index: int, opener: str = "(", closer: str = ")",
                 quotes: str = DEFAULT_QUOTES) -> int:
    """
    Index of the delimiter closing the one at ``open_index``.

    String literals delimited by any of ``quotes`` are skipped. Returns -1
    when the text ends before the delimiters balance.
    """
    depth = 0
    i = open_index
    n = len(content)
    while i < n:
        ch = content[i]
        if ch in quotes:
            end = skip_string(content, i)
            if end < 0:
                return -1
            i = end
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_spans(text: str, sep: str = ",", angle: bool = False,
                quotes: str = DEFAULT_QUOTES) -> List[Tuple[int, str]]:
    """
    Split ``text`` on top-level separators.

    Returns ``(offset, stripped_segment)`` pairs; empty segments are dropped.
    ``angle`` treats ``<``/``>`` as nesting delimiters (generic arguments).
    """
    openers = "([{" + ("<" if angle else "")
    closers = ")]}" + (">" if angle else "")
    spans: List[Tuple[int, str]] = []
    depth = 0
    start = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in quotes:
            end = skip_string(text, i)
            i = end if end > 0 else n
            continue
        if ch in openers:
            depth += 1
        elif ch in closers:
            # "->" and "=>" are arrows, not closing generics
            if not (ch == ">" and i > 0 and text[i - 1] in "-="):
                depth = max(0, depth - 1)
        elif ch == sep and depth == 0:
            _append_span(spans, text, start, i)
            start = i + 1
        i += 1
    _append_span(spans, text, start, n)
    return spans


def _append_span(spans: List[Tuple[int, str]], text: str, start: int, end: int) -> None:
    segment = text[start:end]
    stripped = segment.strip()
    if stripped:
        spans.append((start + len(segment) - len(segment.lstrip()), stripped))


def split_arguments(text: str, angle: bool = False, quotes: str = DEFAULT_QUOTES) -> List[str]:
    return [segment for _, segment in split_spans(text, ",", angle=angle, quotes=quotes)]


def string_literal(token: str, quotes: str = DEFAULT_QUOTES) -> Optional[str]:
    """Contents of a quoted literal, or None if ``token`` is not one."""
    token = token.strip()
    if len(token) >= 2 and token[0] in quotes and token[-1] == token[0]:
        return token[1:-1]
    return None


def find_statement_end(content: str, start: int, quotes: str = DEFAULT_QUOTES) -> int:
    """Offset of the first top-level ``;`` at or after ``start`` (or end of text)."""
    depth = 0
    i = start
    n = len(content)
    while i < n:
        ch = content[i]
        if ch in quotes:
            end = skip_string(content, i)
            if end < 0:
                return n
            i = end
            continue
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth < 0:
                return i
        elif ch == ";" and depth == 0:
            return i
        i += 1
    return n


def mask_comments(content: str, line_comment: str = "//", block_comment: bool = True,
                  quotes: str = "\"'", multiline_quotes: str = "`", triple_quotes: bool = False,
                  char_literals: bool = False, path: str = "") -> str:
    """
    Replace comments with spaces, keeping every offset and newline intact.

    Single-line quoted strings end at a newline; ``multiline_quotes`` and
    triple-quoted strings may span lines and raise ``ParseError`` when they
    never close, as does an unterminated block comment.
    """
    out = list(content)
    n = len(content)
    i = 0
    while i < n:
        ch = content[i]

        if char_literals and ch == "'":
            m = _CHAR_LITERAL.match(content, i)
            if m:
                i = m.end()
                continue
            i += 1
            continue

        if triple_quotes and content.startswith('"""', i):
            end = content.find('"""', i + 3)
            if end < 0:
                raise ParseError(f"unterminated triple-quoted string at line {line_at(content, i)}", path)
            i = end + 3
            continue

        if ch in multiline_quotes:
            end = skip_string(content, i)
            if end < 0:
                raise ParseError(f"unterminated string at line {line_at(content, i)}", path)
            i = end
            continue

        if ch in quotes:
            j = i + 1
            while j < n and content[j] != ch and content[j] != "\n":
                j += 2 if content[j] == "\\" else 1
            i = j + 1
            continue

        if line_comment and content.startswith(line_comment, i):
            end = content.find("\n", i)
            end = n if end < 0 else end
            for k in range(i, end):
                out[k] = " "
            i = end
            continue

        if block_comment and content.startswith("/*", i):
            end = content.find("*/", i + 2)
            if end < 0:
                raise ParseError(f"unterminated block comment at line {line_at(content, i)}", path)
            for k in range(i, end + 2):
                if out[k] != "\n":
                    out[k] = " "
            i = end + 2
            continue

        i += 1
    return "".join(out)


def generic_arguments(type_name: str) -> List[str]:
    """Top-level generic arguments of ``Outer<A, B>`` (empty when not generic)."""
    start = type_name.find("<")
    if start < 0:
        return []
    end = find_closing(type_name, start, "<", ">", quotes="")
    if end < 0:
        return []
    return split_arguments(type_name[start + 1:end], angle=True)


def generic_base(type_name: str) -> str:
    """``Outer`` of ``Outer<A, B>``."""
    return type_name.split("<", 1)[0].strip()
