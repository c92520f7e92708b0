"""Express plugin: app/router verb calls, ``.use`` mounts, ``.route()`` chains and validators."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Set

from .base import BaseExtractor, RequestBody, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import split_arguments
from .manifest import package_json_has_dependency
from .parsers.javascript import MemberCall, RouterTable, build_router_table, callee_name, js_string, parse_javascript
from .zod import express_validator_fields, file_schemas, joi_field, object_entries, zod_schema

logger = logging.getLogger("route_extractor.express")

HTTP_METHODS = {"get": "GET", "post": "POST", "put": "PUT", "delete": "DELETE", "patch": "PATCH",
                "head": "HEAD", "options": "OPTIONS", "all": "ALL"}
ROUTER_CONSTRUCTOR_RE = re.compile(r'^(?:express\s*\(\s*\)|(?:express\s*\.\s*)?Router\s*\(|new\s+Router\s*\()')
EXPRESS_VALIDATOR_CALLS = {"body", "query", "param", "check", "header"}
HANDLER_RE = re.compile(r'^[A-Za-z_$][\w$.]*$')
IDENT_RE = re.compile(r'^[A-Za-z_$][\w$]*$')


class ExpressExtractor(BaseExtractor):

    @property
    def name(self) -> str:
        return "express"

    @property
    def framework(self) -> str:
        return "Express"

    @property
    def languages(self) -> Set[str]:
        return {"javascript", "typescript"}

    @property
    def extensions(self) -> Set[str]:
        return {".js", ".mjs", ".cjs", ".ts"}

    def detect(self, project_root) -> bool:
        return package_json_has_dependency(project_root, "express")

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_javascript(file) as source:
            if "express" not in source.imports:
                return []
            routers = build_router_table(source, ROUTER_CONSTRUCTOR_RE, {"use"})

            routes = []
            for call in source.calls:
                if call.receiver not in routers:
                    continue
                route = self._route_from_call(file, call, routers)
                if route is not None:
                    routes.append(route)
            return routes

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        with parse_javascript(file) as source:
            return file_schemas(source)

    def _route_from_call(self, file: SourceFile, call: MemberCall, routers: RouterTable) -> Optional[Route]:
        method = HTTP_METHODS.get(call.method)
        if method is None:
            return None

        # router.route('/p').get(h).post(h): the path comes from the route() link
        anchor = call.parent
        while anchor is not None and anchor.method != "route":
            anchor = anchor.parent
        if anchor is not None:
            raw_path = js_string(anchor.args[0]) if anchor.args else None
            middle = call.args[:-1]
        else:
            raw_path = js_string(call.args[0]) if call.args else None
            middle = call.args[1:-1]
        if raw_path is None:
            return None

        path = convert(combine_paths(routers.prefix(call.receiver), raw_path))
        handler = call.args[-1] if call.args and HANDLER_RE.match(call.args[-1]) else ""
        route = self.new_route(file, method, path, call.line, handler)
        route.parameters = extract_path_params(path)
        self._apply_validators(route, middle)
        route.operation_id = synthesize_operation_id(method, path)
        route.tags = infer_tags(path)
        return route

    @staticmethod
    def _apply_validators(route: Route, middle: List[str]) -> None:
        validator_args = []
        for arg in middle:
            name = callee_name(arg)
            if name in EXPRESS_VALIDATOR_CALLS or (arg.startswith("[") and callee_name(arg[1:]) in
                                                   EXPRESS_VALIDATOR_CALLS):
                validator_args.append(arg)
                continue
            body = _validator_body(name, arg)
            if body is not None and route.request_body is None:
                route.request_body = RequestBody.json(body)

        if validator_args:
            body, params = express_validator_fields(validator_args)
            route.parameters.extend(params)
            if body is not None and route.request_body is None:
                route.request_body = RequestBody.json(body)


def _validator_body(name: str, arg: str) -> Optional[Schema]:
    """Body schema of a ``celebrate``/``validate``/``zValidator`` middleware call."""
    if not name:
        return None
    inner = split_arguments(arg[arg.index("(") + 1:arg.rindex(")")])
    if not inner:
        return None

    if name == "celebrate":
        for key, value in object_entries(inner[0]):
            if key not in ("body", "Segments.BODY"):
                continue
            value = value.strip()
            if IDENT_RE.match(value):
                return Schema.reference(value)
            return joi_field(value).schema
        return None

    if name == "validate":
        schema_expr = inner[0].strip()
    elif name == "zValidator" and len(inner) >= 2 and js_string(inner[0]) in ("json", "body"):
        schema_expr = inner[1].strip()
    else:
        return None
    if IDENT_RE.match(schema_expr):
        return Schema.reference(schema_expr)
    return zod_schema(schema_expr) or Schema(type="object")
