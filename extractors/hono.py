"""Hono plugin: verb calls such as ``app.get('/p', ...)`` in hono files, zValidator bodies."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set

from .base import JSON_MEDIA_TYPE, BaseExtractor, MediaType, Parameter, RequestBody, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import split_arguments
from .manifest import package_json_has_dependency
from .parsers.javascript import MemberCall, RouterTable, build_router_table, callee_name, js_string, parse_javascript
from .zod import file_schemas, zod_schema, zod_variables

logger = logging.getLogger("route_extractor.hono")

HTTP_METHODS = {"get": "GET", "post": "POST", "put": "PUT", "delete": "DELETE", "patch": "PATCH",
                "head": "HEAD", "options": "OPTIONS", "all": "ALL"}
ROUTER_CONSTRUCTOR_RE = re.compile(r'^new\s+(?:Hono|OpenAPIHono)\b')
HANDLER_RE = re.compile(r'^[A-Za-z_$][\w$.]*$')


class HonoExtractor(BaseExtractor):

    @property
    def name(self) -> str:
        return "hono"

    @property
    def framework(self) -> str:
        return "Hono"

    @property
    def languages(self) -> Set[str]:
        return {"javascript", "typescript"}

    @property
    def extensions(self) -> Set[str]:
        return {".js", ".mjs", ".cjs", ".ts", ".tsx"}

    def detect(self, project_root) -> bool:
        return package_json_has_dependency(project_root, "hono")

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_javascript(file) as source:
            if not source.imports_module("hono"):
                return []
            routers = build_router_table(source, ROUTER_CONSTRUCTOR_RE, {"route"})
            zod_objects = {name: init for name, init, _ in zod_variables(source)}

            routes = []
            # any receiver counts; the router table only supplies mount and basePath prefixes
            for call in source.calls:
                route = self._route_from_call(file, call, routers, zod_objects)
                if route is not None:
                    routes.append(route)
            return routes

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        with parse_javascript(file) as source:
            return file_schemas(source)

    def _route_from_call(self, file: SourceFile, call: MemberCall, routers: RouterTable,
                         zod_objects: Dict[str, str]) -> Optional[Route]:
        args = call.args
        if call.method == "on" and len(args) >= 3:
            # app.on('PURGE', '/cache', handler)
            method = js_string(args[0])
            args = args[1:]
        else:
            method = HTTP_METHODS.get(call.method)
        # path plus at least one handler; c.get('key') and map.get(k) fall out here
        if not method or len(args) < 2:
            return None
        raw_path = js_string(args[0])
        if raw_path is None:
            return None
        if call.receiver not in routers and not raw_path.startswith("/"):
            return None

        path = convert(combine_paths(routers.prefix(call.receiver), raw_path))
        handler = args[-1] if len(args) > 1 and HANDLER_RE.match(args[-1]) else ""
        route = self.new_route(file, method, path, call.line, handler)
        route.parameters = extract_path_params(path)

        # middle arguments: everything between the path and the final handler
        for arg in args[1:-1]:
            if callee_name(arg) != "zValidator":
                continue
            self._apply_validator(route, arg, zod_objects)

        route.operation_id = synthesize_operation_id(route.method, path)
        route.tags = infer_tags(path)
        return route

    @staticmethod
    def _apply_validator(route: Route, arg: str, zod_objects: Dict[str, str]) -> None:
        inner = split_arguments(arg[arg.index("(") + 1:arg.rindex(")")])
        if len(inner) < 2:
            return
        target, schema_expr = js_string(inner[0]), inner[1].strip()
        named = re.match(r'^[A-Za-z_$][\w$]*$', schema_expr)

        if target in ("json", "form"):
            if named:
                schema = Schema.reference(schema_expr)
            else:
                schema = zod_schema(schema_expr) or Schema(type="object")
            media = JSON_MEDIA_TYPE if target == "json" else "multipart/form-data"
            route.request_body = RequestBody(required=True, content={media: MediaType(schema)})
        elif target in ("query", "header"):
            expr = zod_objects.get(schema_expr) if named else schema_expr
            schema = zod_schema(expr) if expr else None
            if schema is None:
                logger.debug(f"{route.source_file}:{route.source_line} {target} validator schema not resolvable")
                return
            for name, prop in schema.properties.items():
                route.parameters.append(Parameter(name=name, location=target, required=name in schema.required,
                                                  schema=prop))
