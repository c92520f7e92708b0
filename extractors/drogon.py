"""Drogon plugin: ADD_METHOD_TO / METHOD_ADD macros and app().registerHandler."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Set

from .base import BaseExtractor, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import convert, ensure_leading_slash, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import find_closing, line_at, split_arguments, string_literal
from .deterministic.type_mapping import cpp_type_schema
from .manifest import cpp_mentions
from .parsers.cpp import parse_cpp

logger = logging.getLogger("route_extractor.drogon")

HTTP_METHODS = {"Get": "GET", "Post": "POST", "Put": "PUT", "Delete": "DELETE",
                "Patch": "PATCH", "Head": "HEAD", "Options": "OPTIONS"}

# ADD_METHOD_TO(Ctrl::method, "/p", Get) and the older ADD_METHOD_TO(Ctrl, method, "/p", Get)
METHOD_MACRO_RE = re.compile(r'\b(ADD_METHOD_TO|METHOD_ADD)\s*\(')
REGISTER_HANDLER_RE = re.compile(r'\bregisterHandler\s*\(')
QUALIFIED_HANDLER_RE = re.compile(r'^([A-Za-z_]\w*)\s*::\s*([A-Za-z_]\w*)$')
IDENT_RE = re.compile(r'^[A-Za-z_]\w*$')
METHOD_TOKEN_RE = re.compile(r'\b(?:drogon::)?(Get|Post|Put|Delete|Patch|Head|Options)\b')
CONTROLLER_SUFFIX_RE = re.compile(r'(Controller|Ctrl)$')

DTO_NAME_RE = re.compile(r'(Dto|DTO|Request|Response|Model)$')


class DrogonExtractor(BaseExtractor):
    """Drogon controllers; routes are deduplicated by method+path across the batch."""

    @property
    def name(self) -> str:
        return "drogon"

    @property
    def framework(self) -> str:
        return "Drogon"

    @property
    def languages(self) -> Set[str]:
        return {"cpp"}

    @property
    def extensions(self) -> Set[str]:
        return {".cpp", ".cc", ".cxx", ".hpp", ".h"}

    def detect(self, project_root) -> bool:
        return cpp_mentions(project_root, "drogon")

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_cpp(file) as source:
            masked = source.masked
            if "drogon" not in masked and not METHOD_MACRO_RE.search(masked):
                return []

            routes: List[Route] = []
            for match in METHOD_MACRO_RE.finditer(masked):
                routes.extend(self._macro_routes(file, masked, match))
            for match in REGISTER_HANDLER_RE.finditer(masked):
                routes.extend(self._handler_routes(file, masked, match))
            return routes

    def finalize_routes(self, routes: List[Route]) -> List[Route]:
        seen = set()
        unique = []
        for route in routes:
            key = (route.method, route.path)
            if key in seen:
                continue
            seen.add(key)
            unique.append(route)
        return unique

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        schemas = []
        with parse_cpp(file) as source:
            for cls in source.classes:
                if not DTO_NAME_RE.search(cls.name):
                    continue
                schema = Schema(title=cls.name, type="object")
                for member in cls.members:
                    prop = cpp_type_schema(member.type)
                    schema.properties[member.name] = prop
                    if not prop.nullable:
                        schema.required.append(member.name)
                schemas.append(schema)
        return schemas

    def _macro_routes(self, file: SourceFile, masked: str, match) -> List[Route]:
        open_paren = match.end() - 1
        close_paren = find_closing(masked, open_paren, quotes="\"'")
        if close_paren < 0:
            logger.debug(f"{file.path}:{line_at(masked, match.start())} unbalanced {match.group(1)}")
            return []
        args = split_arguments(masked[open_paren + 1:close_paren], quotes="\"'")

        qualified = QUALIFIED_HANDLER_RE.match(args[0]) if args else None
        if qualified:
            controller, method_name = qualified.groups()
            rest = args[1:]
        elif len(args) >= 2 and IDENT_RE.match(args[0]) and IDENT_RE.match(args[1]):
            controller, method_name = args[0], args[1]
            rest = args[2:]
        else:
            return []

        raw_path = string_literal(rest[0], quotes='"') if rest else None
        if raw_path is None:
            return []
        methods = [HTTP_METHODS[m] for arg in rest[1:] for m in METHOD_TOKEN_RE.findall(arg)] or ["GET"]
        handler = f"{controller}.{method_name}"
        return self._build(file, methods, raw_path, line_at(masked, match.start()), handler, controller)

    def _handler_routes(self, file: SourceFile, masked: str, match) -> List[Route]:
        open_paren = match.end() - 1
        close_paren = find_closing(masked, open_paren, quotes="\"'")
        if close_paren < 0:
            return []
        args = split_arguments(masked[open_paren + 1:close_paren], quotes="\"'")
        raw_path = string_literal(args[0], quotes='"') if args else None
        if raw_path is None:
            return []
        # explicit {Get, Post} list after the lambda, otherwise GET
        methods = []
        for arg in args[2:]:
            if arg.startswith("{"):
                methods.extend(HTTP_METHODS[m] for m in METHOD_TOKEN_RE.findall(arg))
        return self._build(file, methods or ["GET"], raw_path, line_at(masked, match.start()), "lambda", None)

    def _build(self, file: SourceFile, methods: List[str], raw_path: str, line: int,
               handler: str, controller: Optional[str]) -> List[Route]:
        path = convert(ensure_leading_slash(raw_path))
        tag = CONTROLLER_SUFFIX_RE.sub("", controller) if controller else ""
        routes = []
        for method in dict.fromkeys(methods):
            route = self.new_route(file, method, path, line, handler)
            route.parameters = extract_path_params(path)
            route.operation_id = synthesize_operation_id(method, path, handler)
            route.tags = [tag] if tag else infer_tags(path)
            routes.append(route)
        return routes
