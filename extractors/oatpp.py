"""Oat++ plugin: ENDPOINT(...) macros with PATH/QUERY/HEADER/BODY_DTO sub-macros."""

from __future__ import annotations

import logging
import re
from typing import List, Set

from .base import BaseExtractor, MediaType, Parameter, RequestBody, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import convert, ensure_leading_slash, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import find_closing, line_at, split_arguments, string_literal
from .deterministic.type_mapping import oatpp_type_schema
from .manifest import cpp_mentions
from .parsers.cpp import parse_cpp

logger = logging.getLogger("route_extractor.oatpp")

ENDPOINT_RE = re.compile(
    r'\bENDPOINT(?:_ASYNC)?\s*\(\s*"(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)"\s*,\s*"([^"]*)"\s*,\s*(\w+)'
)
QUERY_RE = re.compile(r'\bQUERY\s*\(\s*([\w:<>]+)\s*,\s*(\w+)\s*(?:,\s*"([^"]*)")?\s*\)')
PATH_RE = re.compile(r'\bPATH\s*\(\s*([\w:<>]+)\s*,\s*(\w+)\s*(?:,\s*"([^"]*)")?\s*\)')
HEADER_RE = re.compile(r'\bHEADER\s*\(\s*([\w:<>]+)\s*,\s*(\w+)\s*,\s*"([^"]+)"\s*\)')
BODY_DTO_RE = re.compile(r'\bBODY_DTO\s*\(\s*(?:oatpp::)?Object\s*<\s*(\w+)\s*>\s*,\s*(\w+)\s*\)')
BODY_STRING_RE = re.compile(r'\bBODY_STRING\s*\(\s*[\w:]+\s*,\s*(\w+)\s*\)')

DTO_CLASS_RE = re.compile(r'^(?:oatpp::)?DTO$')
DTO_FIELD_RE = re.compile(r'\bDTO_FIELD\s*\(')


class OatppExtractor(BaseExtractor):

    @property
    def name(self) -> str:
        return "oatpp"

    @property
    def framework(self) -> str:
        return "Oat++"

    @property
    def languages(self) -> Set[str]:
        return {"cpp"}

    @property
    def extensions(self) -> Set[str]:
        return {".cpp", ".cc", ".cxx", ".hpp", ".h"}

    def detect(self, project_root) -> bool:
        return cpp_mentions(project_root, "oatpp")

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_cpp(file) as source:
            masked = source.masked
            routes: List[Route] = []
            for match in ENDPOINT_RE.finditer(masked):
                method, raw_path, handler = match.groups()
                open_paren = masked.index("(", match.start())
                close_paren = find_closing(masked, open_paren, quotes='"')
                if close_paren < 0:
                    logger.debug(f"{file.path}:{line_at(masked, match.start())} unbalanced ENDPOINT macro")
                    continue
                args_text = masked[open_paren:close_paren + 1]

                path = convert(ensure_leading_slash(raw_path))
                route = self.new_route(file, method, path, line_at(masked, match.start()), handler)
                route.parameters = self._parameters(path, args_text)
                route.request_body = self._request_body(args_text)
                route.operation_id = synthesize_operation_id(method, path, handler)
                route.tags = infer_tags(path)
                routes.append(route)
            return routes

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        schemas = []
        with parse_cpp(file) as source:
            for cls in source.classes:
                if not any(DTO_CLASS_RE.search(base) for base in cls.bases):
                    continue
                schemas.append(self._dto_schema(cls.name, cls.body))
        return schemas

    @staticmethod
    def _parameters(path: str, args_text: str) -> List[Parameter]:
        params = extract_path_params(path)
        # PATH(Int32, userId, "id") binds userId to the {id} placeholder
        for m in PATH_RE.finditer(args_text):
            type_name, var_name, alias = m.groups()
            for param in params:
                if param.name == (alias or var_name):
                    param.schema = oatpp_type_schema(type_name)
        for m in QUERY_RE.finditer(args_text):
            type_name, var_name, alias = m.groups()
            params.append(Parameter(
                name=alias or var_name,
                location="query",
                required=False,
                schema=oatpp_type_schema(type_name),
            ))
        for m in HEADER_RE.finditer(args_text):
            type_name, _, header = m.groups()
            params.append(Parameter(name=header, location="header", required=False,
                                    schema=oatpp_type_schema(type_name)))
        return params

    @staticmethod
    def _request_body(args_text: str):
        dto = BODY_DTO_RE.search(args_text)
        if dto:
            return RequestBody.json(Schema.reference(dto.group(1)))
        if BODY_STRING_RE.search(args_text):
            return RequestBody(required=True, content={"text/plain": MediaType(Schema(type="string"))})
        return None

    @staticmethod
    def _dto_schema(name: str, body: str) -> Schema:
        schema = Schema(title=name, type="object")
        for match in DTO_FIELD_RE.finditer(body):
            open_paren = match.end() - 1
            close_paren = find_closing(body, open_paren, quotes='"')
            if close_paren < 0:
                continue
            args = split_arguments(body[open_paren + 1:close_paren], angle=True, quotes='"')
            if len(args) < 2:
                continue
            key = args[1]
            if len(args) > 2:
                key = string_literal(args[2], quotes='"') or key
            schema.properties[key] = oatpp_type_schema(args[0])
        return schema
