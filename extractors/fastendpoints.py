"""FastEndpoints plugin: ``Endpoint<TReq, TResp>`` classes configured in ``Configure()``."""

from __future__ import annotations

import logging
import re
from typing import List, NamedTuple, Optional, Set, Tuple

from .base import BaseExtractor, RequestBody, Response, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import convert, ensure_leading_slash, extract_path_params
from .deterministic.tags import infer_tags_from_handler
from .deterministic.text import find_closing, generic_arguments, line_at, split_arguments, string_literal
from .deterministic.type_mapping import csharp_type_schema
from .manifest import csproj_mentions
from .parsers.csharp import CSharpClass, parse_csharp

logger = logging.getLogger("route_extractor.fastendpoints")

BODY_METHODS = {"POST", "PUT", "PATCH"}
VERB_CALL_RE = re.compile(r'(?<![.\w])(Get|Post|Put|Delete|Patch|Head|Options)\s*\(')
ROUTES_CALL_RE = re.compile(r'(?<![.\w])Routes\s*\(')
VERBS_CALL_RE = re.compile(r'(?<![.\w])Verbs\s*\(([^)]*)\)')
HTTP_VERB_RE = re.compile(r'Http\.(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)')
DTO_NAME_RE = re.compile(r'(Request|Response|Dto|DTO|Model)$')


class EndpointMatcher(NamedTuple):
    """One candidate endpoint base-class shape; ``roles`` names its generic arguments."""
    label: str
    regex: re.Pattern
    roles: Tuple[str, ...]


# Tried in order; the first matcher whose arity fits wins.
ENDPOINT_MATCHERS: List[EndpointMatcher] = [
    EndpointMatcher("Endpoint<Req, Resp>", re.compile(r'\bEndpoint\s*<'), ("request", "response")),
    EndpointMatcher("Endpoint<Req>", re.compile(r'\bEndpoint\s*<'), ("request",)),
    EndpointMatcher("EndpointWithoutRequest<Resp>", re.compile(r'\bEndpointWithoutRequest\s*<'), ("response",)),
    EndpointMatcher("EndpointWithMapping<Req, Resp, Entity>", re.compile(r'\bEndpointWithMapping\s*<'),
                    ("request", "response", "entity")),
    EndpointMatcher("Ep.Req<Req>.Res<Resp>", re.compile(r'\bEp\s*\.\s*Req\s*<'), ("request",)),
    EndpointMatcher("Ep.NoReq.Res<Resp>", re.compile(r'\bEp\s*\.\s*NoReq\s*\.\s*Res\s*<'), ("response",)),
    EndpointMatcher("EndpointWithoutRequest", re.compile(r'\bEndpointWithoutRequest\b(?!\s*<)'), ()),
    EndpointMatcher("Endpoint", re.compile(r'\bEndpoint\b(?!\s*<)'), ()),
]


class EndpointShape(NamedTuple):
    request: str = ""
    response: str = ""


def match_endpoint_base(bases: str) -> Optional[EndpointShape]:
    for matcher in ENDPOINT_MATCHERS:
        m = matcher.regex.search(bases)
        if not m:
            continue
        if not matcher.roles:
            return EndpointShape()
        args = generic_arguments(bases[m.start():])
        if len(args) != len(matcher.roles):
            continue
        roles = dict(zip(matcher.roles, args))
        shape = EndpointShape(request=roles.get("request", ""), response=roles.get("response", ""))
        # Ep.Req<T>.Res<R>: the response sits in a second generic group
        if matcher.label.startswith("Ep.Req"):
            res = re.search(r'\.\s*Res\s*<', bases[m.end():])
            if res:
                res_args = generic_arguments(bases[m.end() + res.start():])
                shape = shape._replace(response=res_args[0] if res_args else "")
        return shape
    return None


class FastEndpointsExtractor(BaseExtractor):

    @property
    def name(self) -> str:
        return "fastendpoints"

    @property
    def framework(self) -> str:
        return "FastEndpoints"

    @property
    def languages(self) -> Set[str]:
        return {"csharp"}

    @property
    def extensions(self) -> Set[str]:
        return {".cs"}

    def detect(self, project_root) -> bool:
        return csproj_mentions(project_root, "FastEndpoints")

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        routes: List[Route] = []
        with parse_csharp(file) as source:
            for cls in source.classes:
                if cls.kind != "class" or not cls.bases:
                    continue
                shape = match_endpoint_base(cls.bases)
                if shape is None:
                    continue
                routes.extend(self._class_routes(file, source.masked, cls, shape))
        return routes

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        schemas = []
        with parse_csharp(file) as source:
            for cls in source.classes:
                if not DTO_NAME_RE.search(cls.name):
                    continue
                schema = Schema(title=cls.name, type="object")
                for prop in cls.properties:
                    prop_schema = csharp_type_schema(prop.type)
                    schema.properties[prop.name] = prop_schema
                    explicit = "Required" in prop.attributes or "required" in prop.modifiers
                    if explicit or (not prop_schema.nullable and not prop.has_default):
                        schema.required.append(prop.name)
                schemas.append(schema)
        return schemas

    def _class_routes(self, file: SourceFile, masked: str, cls: CSharpClass, shape: EndpointShape) -> List[Route]:
        declared: List[Tuple[str, str, int]] = []
        body = cls.body

        for m in VERB_CALL_RE.finditer(body):
            for path in self._string_args(body, m.end() - 1):
                declared.append((m.group(1).upper(), path, cls.body_start + m.start()))

        verbs_match = VERBS_CALL_RE.search(body)
        verbs = HTTP_VERB_RE.findall(verbs_match.group(1)) if verbs_match else []
        for m in ROUTES_CALL_RE.finditer(body):
            for path in self._string_args(body, m.end() - 1):
                for verb in verbs or ["GET"]:
                    declared.append((verb, path, cls.body_start + m.start()))

        routes = []
        for method, raw_path, offset in declared:
            path = convert(ensure_leading_slash(raw_path))
            route = self.new_route(file, method, path, line_at(masked, offset), cls.name)
            route.parameters = extract_path_params(path)
            if _is_type_name(shape.request) and method in BODY_METHODS:
                route.request_body = RequestBody.json(Schema.reference(shape.request))
            if _is_type_name(shape.response):
                route.responses["200"] = Response.json(Schema.reference(shape.response))
            route.operation_id = synthesize_operation_id(method, path, cls.name, strip_suffix="Endpoint")
            route.tags = infer_tags_from_handler(cls.name, path)
            routes.append(route)
        return routes

    @staticmethod
    def _string_args(body: str, open_paren: int) -> List[str]:
        close_paren = find_closing(body, open_paren, quotes='"')
        if close_paren < 0:
            return []
        literals = (string_literal(a, quotes='"') for a in split_arguments(body[open_paren + 1:close_paren]))
        return [lit for lit in literals if lit is not None]


def _is_type_name(name: str) -> bool:
    return bool(re.match(r'^[A-Za-z_]\w*$', name)) and name != "EmptyRequest"
