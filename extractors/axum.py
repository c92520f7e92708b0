"""Axum plugin: fluent ``Router::new().route("/p", get(h).post(h2))`` chains."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, NamedTuple, Set, Tuple

from .base import BaseExtractor, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert, ensure_leading_slash, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import find_closing, find_statement_end, line_at, split_arguments, string_literal
from .manifest import cargo_has_dependency
from .parsers.rust import RustSource, parse_rust
from .serde import serde_struct_schemas

logger = logging.getLogger("route_extractor.axum")

ROUTE_CALL_RE = re.compile(r'\.route\s*\(')
NEST_CALL_RE = re.compile(r'\.nest\s*\(')
METHOD_CALL_RE = re.compile(r'\b(get|post|put|delete|patch|head|options|trace)\s*\(')
HANDLER_PATH_RE = re.compile(r'^[A-Za-z_][\w:]*(?:::<[^>]*>)?$')
# users.clone(), users.with_state(state)
CALL_SUFFIX_RE = re.compile(r'(?:\s*\.\s*\w+\s*\([^()]*\))+$')


class PrefixRange(NamedTuple):
    start: int
    end: int
    prefix: str


class AxumExtractor(BaseExtractor):
    """Axum router chains; ``.nest`` prefixes are applied when resolvable in-file."""

    @property
    def name(self) -> str:
        return "axum"

    @property
    def framework(self) -> str:
        return "Axum"

    @property
    def languages(self) -> Set[str]:
        return {"rust"}

    @property
    def extensions(self) -> Set[str]:
        return {".rs"}

    def detect(self, project_root) -> bool:
        return cargo_has_dependency(project_root, "axum")

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_rust(file) as source:
            if not source.uses_crate("axum"):
                return []

            ranges = self._nest_ranges(source) if self.config.propagate_prefixes else []
            routes: List[Route] = []
            masked = source.masked

            for match in ROUTE_CALL_RE.finditer(masked):
                open_paren = match.end() - 1
                close_paren = find_closing(masked, open_paren, quotes='"')
                if close_paren < 0:
                    logger.debug(f"{file.path}:{line_at(masked, match.start())} unbalanced .route( call")
                    continue

                args = split_arguments(masked[open_paren + 1:close_paren], quotes='"')
                if len(args) < 2:
                    continue
                raw_path = string_literal(args[0], quotes='"')
                if raw_path is None:
                    continue

                line = line_at(masked, match.start())
                for prefix in self._prefixes_at(ranges, match.start()):
                    path = convert(combine_paths(prefix, raw_path) if prefix else ensure_leading_slash(raw_path))
                    for method, handler in self._method_handlers(args[1]):
                        route = self.new_route(file, method, path, line, handler)
                        route.parameters = extract_path_params(path)
                        route.operation_id = synthesize_operation_id(method, path, handler)
                        route.tags = infer_tags(path)
                        routes.append(route)

            return routes

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        with parse_rust(file) as source:
            return serde_struct_schemas(source, self.config.compose_optional_arrays)

    @staticmethod
    def _method_handlers(chain: str) -> List[tuple]:
        """``get(h1).post(h2)`` -> ``[("GET", "h1"), ("POST", "h2")]``."""
        pairs = []
        pos = 0
        while True:
            m = METHOD_CALL_RE.search(chain, pos)
            if not m:
                break
            open_paren = m.end() - 1
            close_paren = find_closing(chain, open_paren, quotes='"')
            if close_paren < 0:
                break
            inner = chain[open_paren + 1:close_paren].strip()
            handler = inner if HANDLER_PATH_RE.match(inner) else ""
            pairs.append((m.group(1).upper(), handler))
            pos = close_paren + 1
        return pairs

    @staticmethod
    def _prefixes_at(ranges: List[PrefixRange], pos: int) -> List[str]:
        """Every prefix ``pos`` is mounted under; a router nested twice yields two."""
        spans: Dict[Tuple[int, int], List[str]] = {}
        for r in ranges:
            if r.start < pos < r.end:
                options = spans.setdefault((r.start, r.end), [])
                if r.prefix not in options:
                    options.append(r.prefix)
        prefixes = [""]
        # ranges are sorted by start, so outer spans come first
        for options in spans.values():
            prefixes = [outer + p for outer in prefixes for p in options]
        return prefixes

    def _nest_ranges(self, source: RustSource) -> List[PrefixRange]:
        """
        Text ranges whose ``.route(`` calls sit under a ``.nest`` prefix.

        Inline routers cover the nest call's own arguments; an identifier
        covers its ``let`` binding or the body of the function of that name.
        """
        masked = source.masked
        ranges: List[PrefixRange] = []
        for match in NEST_CALL_RE.finditer(masked):
            open_paren = match.end() - 1
            close_paren = find_closing(masked, open_paren, quotes='"')
            if close_paren < 0:
                continue
            args = split_arguments(masked[open_paren + 1:close_paren], quotes='"')
            if len(args) < 2:
                continue
            prefix = string_literal(args[0], quotes='"')
            if not prefix:
                continue
            prefix = ensure_leading_slash(prefix).rstrip("/")

            target = CALL_SUFFIX_RE.sub("", args[1].strip())
            ident = re.match(r'^([A-Za-z_]\w*)(?:\s*\(\s*\))?$', target)
            if not ident:
                ranges.append(PrefixRange(open_paren, close_paren, prefix))
                continue

            name = ident.group(1)
            binding = re.search(r'\blet\s+(?:mut\s+)?' + name + r'\b[^=;]*=', masked)
            if binding:
                end = find_statement_end(masked, binding.end(), quotes='"')
                ranges.append(PrefixRange(binding.start(), end, prefix))
                continue
            func = re.search(r'\bfn\s+' + name + r'\s*(?:<[^>{]*>)?\s*\(', masked)
            if func:
                body_open = masked.find("{", func.end())
                body_close = find_closing(masked, body_open, "{", "}", quotes='"') if body_open >= 0 else -1
                if body_close > 0:
                    ranges.append(PrefixRange(body_open, body_close, prefix))
                    continue
            logger.debug(f"{source.path}: cannot resolve nested router '{name}' for prefix {prefix}")

        ranges.sort(key=lambda r: r.start)
        return ranges
