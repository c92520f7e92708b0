"""Rocket plugin: ``#[get("/path")]`` route attributes and ``.mount`` prefixes."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set

from .base import BaseExtractor, ParseError, Parameter, RequestBody, Response, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert_angle_params, ensure_leading_slash, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import find_closing, generic_arguments, generic_base, split_arguments, string_literal
from .deterministic.type_mapping import RUST_TYPES, rust_type_schema
from .manifest import cargo_has_dependency
from .parsers.rust import RustAttribute, RustFunction, parse_rust
from .serde import serde_struct_schemas

logger = logging.getLogger("route_extractor.rocket")

ROUTE_ATTRIBUTES = {"get", "post", "put", "delete", "patch", "head", "options"}
MOUNT_CALL_RE = re.compile(r'\.mount\s*\(')
ROUTES_MACRO_RE = re.compile(r'routes!\s*\[([^\]]*)\]')
QUERY_SEGMENT_RE = re.compile(r'<([A-Za-z_][A-Za-z0-9_]*)(?:\.\.)?>')
BODY_WRAPPERS = {"Json", "Form", "MsgPack", "Validated"}


class RocketExtractor(BaseExtractor):
    """
    Rocket attribute routes.

    ``.mount("/p", routes![a, b])`` calls anywhere in the batch form a
    handler -> prefixes table that is built in ``prepare`` and only read
    during the per-file walk.
    """

    def __init__(self, config=None):
        super().__init__(config)
        self.mounts: Dict[str, List[str]] = {}

    @property
    def name(self) -> str:
        return "rocket"

    @property
    def framework(self) -> str:
        return "Rocket"

    @property
    def languages(self) -> Set[str]:
        return {"rust"}

    @property
    def extensions(self) -> Set[str]:
        return {".rs"}

    def detect(self, project_root) -> bool:
        return cargo_has_dependency(project_root, "rocket")

    def prepare(self, files: List[SourceFile]) -> None:
        mounts: Dict[str, List[str]] = {}
        if self.config.propagate_prefixes:
            for file in files:
                if not self.accepts(file):
                    continue
                try:
                    with parse_rust(file) as source:
                        _collect_mounts(source.masked, mounts)
                except ParseError as e:
                    logger.debug(f"mount scan skipped {file.path}: {e}")
        self.mounts = mounts

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_rust(file) as source:
            if not source.uses_crate("rocket"):
                return []
            routes: List[Route] = []
            for func in source.functions:
                for attr in func.attributes:
                    if attr.name not in ROUTE_ATTRIBUTES:
                        continue
                    routes.extend(self._routes_for(file, func, attr))
            return routes

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        with parse_rust(file) as source:
            return serde_struct_schemas(source, self.config.compose_optional_arrays)

    def _routes_for(self, file: SourceFile, func: RustFunction, attr: RustAttribute) -> List[Route]:
        args = split_arguments(attr.args, quotes='"')
        raw = string_literal(args[0], quotes='"') if args else None
        if raw is None:
            return []

        uri, _, query = raw.partition("?")
        data_arg = None
        for arg in args[1:]:
            key, _, value = arg.partition("=")
            if key.strip() == "data":
                data_arg = string_literal(value, quotes='"')

        method = attr.name.upper()
        param_types = func.param_types()
        body = self._request_body(data_arg, param_types) if data_arg else None
        response = self._response(func.return_type)

        routes = []
        for prefix in self.mounts.get(func.name) or [""]:
            path = convert_angle_params(combine_paths(prefix, uri) if prefix else ensure_leading_slash(uri))
            route = self.new_route(file, method, path, attr.line, func.name)
            route.parameters = extract_path_params(path) + _query_params(query, param_types)
            route.request_body = body
            if response:
                route.responses["200"] = response
            route.operation_id = synthesize_operation_id(method, path, func.name)
            route.tags = infer_tags(path)
            routes.append(route)
        return routes

    @staticmethod
    def _request_body(data_arg: str, param_types: Dict[str, str]) -> RequestBody:
        m = QUERY_SEGMENT_RE.match(data_arg.strip())
        arg_type = param_types.get(m.group(1), "") if m else ""
        inner = _unwrap(arg_type, BODY_WRAPPERS)
        if inner and inner != arg_type:
            return RequestBody.json(Schema.reference(inner))
        return RequestBody.json(Schema(type="object"))

    @staticmethod
    def _response(return_type: str) -> Optional[Response]:
        inner = _unwrap(return_type, {"Json"} | {"Result", "Option"})
        if inner and inner != return_type and inner not in RUST_TYPES and re.match(r"^[A-Z]\w*$", inner):
            return Response.json(Schema.reference(inner))
        return None


def _unwrap(type_name: str, wrappers: Set[str]) -> str:
    """Peel ``Json<T>``-style wrappers (first generic argument) off a type."""
    current = type_name.strip()
    while True:
        base = generic_base(current).rsplit("::", 1)[-1]
        args = generic_arguments(current)
        if base in wrappers and args:
            current = args[0].strip()
            continue
        return current


def _query_params(query: str, param_types: Dict[str, str]) -> List[Parameter]:
    params = []
    for m in QUERY_SEGMENT_RE.finditer(query):
        name = m.group(1)
        schema = rust_type_schema(param_types[name]) if name in param_types else Schema(type="string")
        params.append(Parameter(name=name, location="query", required=False, schema=schema))
    return params


def _collect_mounts(masked: str, mounts: Dict[str, List[str]]) -> None:
    for match in MOUNT_CALL_RE.finditer(masked):
        open_paren = match.end() - 1
        close_paren = find_closing(masked, open_paren, quotes='"')
        if close_paren < 0:
            continue
        args = split_arguments(masked[open_paren + 1:close_paren], quotes='"')
        if len(args) < 2:
            continue
        prefix = string_literal(args[0], quotes='"')
        routes_macro = ROUTES_MACRO_RE.search(args[1])
        if prefix is None or not routes_macro:
            continue
        for name in split_arguments(routes_macro.group(1)):
            handler = name.strip().rsplit("::", 1)[-1]
            prefixes = mounts.setdefault(handler, [])
            if prefix not in prefixes:
                prefixes.append(prefix)
