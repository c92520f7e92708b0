"""
JavaScript / TypeScript source parser.

Produces the imports, top-level variable initializers, member-call chains and
TypeScript interface bodies of one file. Router symbol tables for Express and
Hono are built on top of it with ``RouterTable``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..base import SourceFile
from ..deterministic.path_params import combine_paths
from ..deterministic.text import find_closing, line_at, mask_comments, split_spans, string_literal
from . import ParsedSource

logger = logging.getLogger("route_extractor.parsers.javascript")

JS_QUOTES = "\"'`"

_IMPORT_FROM_RE = re.compile(r'\bimport\s+(?:type\s+)?(?:[\w${},*\s]+?\s+from\s+)?["\']([^"\']+)["\']')
_REQUIRE_RE = re.compile(r'\brequire\s*\(\s*["\']([^"\']+)["\']\s*\)')
_DECLARATION_RE = re.compile(r'\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::\s*[^=;]+?)?\s*=\s*')
_CALL_ROOT_RE = re.compile(r'(?<![\w$.])([A-Za-z_$][\w$]*)\s*\.\s*([A-Za-z_$][\w$]*)\s*\(')
_CHAIN_RE = re.compile(r'\s*\.\s*([A-Za-z_$][\w$]*)\s*\(')
_NEW_ROOT_RE = re.compile(r'\bnew\s+[A-Za-z_$][\w$]*\s*\(')
_DECLARED_BEFORE_RE = re.compile(r'\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::\s*[^=;]+?)?\s*=\s*$')
_INTERFACE_RE = re.compile(
    r'\b(?:export\s+)?interface\s+([A-Za-z_$][\w$]*)\s*(?:<[^>{]*>)?\s*(?:extends\s+[^{]+)?\{'
)
_TYPE_ALIAS_RE = re.compile(r'\b(?:export\s+)?type\s+([A-Za-z_$][\w$]*)\s*(?:<[^>=]*>)?\s*=\s*\{')
_MEMBER_RE = re.compile(
    r'^(?:readonly\s+)?([A-Za-z_$][\w$]*|"[^"]+"|\'[^\']+\')(\?)?\s*:\s*(.+?)[,;]?$', re.DOTALL
)


@dataclass
class MemberCall:
    """``receiver.method(args)``; chained calls share the root receiver."""
    receiver: str
    method: str
    args: List[str]
    start: int
    line: int
    parent: Optional["MemberCall"] = None


@dataclass
class Variable:
    name: str
    init: str
    line: int


@dataclass
class InterfaceMember:
    name: str
    type: str
    optional: bool


@dataclass
class Interface:
    name: str
    line: int
    members: List[InterfaceMember] = field(default_factory=list)


class JsSource(ParsedSource):
    def __init__(self, file: SourceFile, masked: str):
        super().__init__(file, masked)
        self.imports: Set[str] = set()
        self.variables: Dict[str, Variable] = {}
        self.calls: List[MemberCall] = []
        self.interfaces: List[Interface] = []

    def imports_module(self, module: str) -> bool:
        return any(m == module or m.startswith(module + "/") for m in self.imports)

    def close(self) -> None:
        super().close()
        self.imports = set()
        self.variables = {}
        self.calls = []
        self.interfaces = []


def parse_javascript(file: SourceFile) -> JsSource:
    masked = mask_comments(file.text, quotes="\"'", multiline_quotes="`", path=file.path)
    source = JsSource(file, masked)

    source.imports.update(_IMPORT_FROM_RE.findall(masked))
    source.imports.update(_REQUIRE_RE.findall(masked))

    for m in _DECLARATION_RE.finditer(masked):
        end = _expression_end(masked, m.end())
        # first declaration wins; shadowing in nested scopes is ignored
        source.variables.setdefault(m.group(1), Variable(m.group(1), masked[m.end():end].strip(),
                                                         line_at(masked, m.start())))

    source.calls = _member_calls(masked)
    source.interfaces = _interfaces(masked)
    return source


def _expression_end(content: str, start: int) -> int:
    """End of an initializer: a top-level ``;`` or a newline not continuing the expression."""
    depth = 0
    i = start
    n = len(content)
    while i < n:
        ch = content[i]
        if ch in JS_QUOTES:
            i = _skip_quoted(content, i)
            continue
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth < 0:
                return i
        elif ch == ";" and depth == 0:
            return i
        elif ch == "\n" and depth == 0:
            rest = content[i:].lstrip()
            if not rest.startswith((".", "?", ":", "+", "-", "*", "&&", "||")):
                return i
        i += 1
    return n


def _skip_quoted(content: str, start: int) -> int:
    quote = content[start]
    i = start + 1
    while i < len(content):
        if content[i] == "\\":
            i += 2
            continue
        if content[i] == quote:
            return i + 1
        i += 1
    return len(content)


def call_arguments(content: str, open_paren: int) -> Tuple[List[str], int]:
    """Top-level argument texts of the call opening at ``open_paren`` and its closing index."""
    close = find_closing(content, open_paren, quotes=JS_QUOTES)
    if close < 0:
        return [], -1
    return [arg for _, arg in split_spans(content[open_paren + 1:close], quotes=JS_QUOTES)], close


def _member_calls(masked: str) -> List[MemberCall]:
    calls: List[MemberCall] = []
    for m in _CALL_ROOT_RE.finditer(masked):
        args, close = call_arguments(masked, m.end() - 1)
        if close < 0:
            continue
        call = MemberCall(m.group(1), m.group(2), args, m.start(2), line_at(masked, m.start(2)))
        calls.append(call)
        _follow_chain(masked, call.receiver, call, close + 1, calls)

    # new Hono().get(...): chain rooted at a constructor; receiver is the declared variable, if any
    for m in _NEW_ROOT_RE.finditer(masked):
        close = find_closing(masked, m.end() - 1, quotes=JS_QUOTES)
        if close < 0:
            continue
        declared = _DECLARED_BEFORE_RE.search(masked, max(0, m.start() - 200), m.start())
        _follow_chain(masked, declared.group(1) if declared else "", None, close + 1, calls)
    calls.sort(key=lambda c: c.start)
    return calls


def _follow_chain(masked: str, receiver: str, parent: Optional[MemberCall], pos: int,
                  calls: List[MemberCall]) -> None:
    while True:
        chained = _CHAIN_RE.match(masked, pos)
        if not chained:
            break
        args, close = call_arguments(masked, chained.end() - 1)
        if close < 0:
            break
        link = MemberCall(receiver, chained.group(1), args, chained.start(1),
                          line_at(masked, chained.start(1)), parent=parent)
        calls.append(link)
        parent = link
        pos = close + 1


def _interfaces(masked: str) -> List[Interface]:
    found = []
    for regex in (_INTERFACE_RE, _TYPE_ALIAS_RE):
        for m in regex.finditer(masked):
            open_brace = m.end() - 1
            close = find_closing(masked, open_brace, "{", "}", quotes=JS_QUOTES)
            if close < 0:
                continue
            iface = Interface(name=m.group(1), line=line_at(masked, m.start(1)))
            body = masked[open_brace + 1:close].replace("\n", ";")
            for _, member in split_spans(body, sep=";", angle=True, quotes=JS_QUOTES):
                for _, piece in split_spans(member, sep=",", angle=True, quotes=JS_QUOTES):
                    mm = _MEMBER_RE.match(piece)
                    if not mm:
                        continue
                    iface.members.append(InterfaceMember(
                        name=mm.group(1).strip("\"'"),
                        type=mm.group(3).strip().rstrip(";,"),
                        optional=bool(mm.group(2)),
                    ))
            found.append(iface)
    found.sort(key=lambda i: i.line)
    return found


def js_string(token: str) -> Optional[str]:
    """Contents of a quoted or template literal argument."""
    return string_literal(token, quotes=JS_QUOTES)


def callee_name(expr: str) -> str:
    """``zValidator`` of ``zValidator('json', S)``; ``body`` of ``body('x').isEmail()``."""
    m = re.match(r'^\s*([A-Za-z_$][\w$.]*)\s*\(', expr)
    return m.group(1) if m else ""


# =============================================================================
# ROUTER SYMBOL TABLE
# =============================================================================

class RouterTable:
    """
    Router variables of one file and their mount prefixes.

    ``mount(parent, path, child)`` records ``parent.use/route(path, child)``;
    ``prefix(name)`` resolves the full prefix through any chain of mounts.
    """

    def __init__(self):
        self.base_paths: Dict[str, str] = {}
        self.mounts: Dict[str, Tuple[str, str]] = {}

    def add(self, name: str, base_path: str = "") -> None:
        self.base_paths.setdefault(name, base_path)

    def __contains__(self, name: str) -> bool:
        return name in self.base_paths

    def __len__(self) -> int:
        return len(self.base_paths)

    def mount(self, parent: str, path: str, child: str) -> None:
        if child in self.base_paths and child != parent:
            self.mounts[child] = (parent, path)

    def prefix(self, name: str, _seen: Optional[Set[str]] = None) -> str:
        seen = _seen or set()
        if name in seen:
            logger.debug(f"router mount cycle through '{name}'")
            return ""
        seen.add(name)
        own = self.base_paths.get(name, "")
        if name not in self.mounts:
            return own
        parent, path = self.mounts[name]
        mounted = combine_paths(self.prefix(parent, seen), path)
        return combine_paths(mounted, own) if own else mounted


def build_router_table(source: JsSource, constructor_re: re.Pattern, mount_methods: Set[str],
                       default: str = "app") -> RouterTable:
    """Router variables whose initializer matches ``constructor_re``, plus their mounts."""
    table = RouterTable()
    for var in source.variables.values():
        if constructor_re.search(var.init):
            base = re.search(r'\.basePath\s*\(\s*["\'`]([^"\'`]*)["\'`]', var.init)
            table.add(var.name, base.group(1) if base else "")
    if not len(table):
        table.add(default)

    for call in source.calls:
        if call.method not in mount_methods or call.receiver not in table or len(call.args) < 2:
            continue
        path = js_string(call.args[0])
        if path is None:
            continue
        for arg in reversed(call.args[1:]):
            if arg in table:
                table.mount(call.receiver, path, arg)
                break
    return table
