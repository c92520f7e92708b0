"""
Micronaut plugin for Java and Kotlin controllers.

Routes are found by a line scanner driven by an explicit two-state machine:

    Idle --@Get/@Post/...--> PendingMethod(method, path, line)
    PendingMethod --@Get/@Post/...--> PendingMethod (the newer annotation wins)
    PendingMethod --method / fun declaration--> Idle   (emits one route)

Lines that are neither (other annotations, blank lines) leave the state alone.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple, Union

from .base import BaseExtractor, Parameter, RequestBody, Response, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import (
    find_closing, generic_arguments, generic_base, mask_comments, split_arguments, split_spans,
    string_literal,
)
from .deterministic.type_mapping import (
    JAVA_COLLECTIONS, JAVA_TYPES, JAVA_WRAPPERS, KOTLIN_COLLECTIONS, KOTLIN_TYPES,
    java_type_schema, kotlin_type_schema,
)
from .manifest import jvm_mentions
from .parsers.jvm import JvmClass, JvmSource, parse_java, parse_kotlin

logger = logging.getLogger("route_extractor.micronaut")

CONTROLLER_RE = re.compile(r'@Controller\b(?:\s*\(([^)]*)\))?')
HTTP_ANNOTATION_RE = re.compile(r'@(Get|Post|Put|Delete|Patch|Head|Options)\b(?:\s*\(([^)]*)\))?')
ANNOTATION_RE = re.compile(r'@(?:field:|param:)?([\w.]+)(?:\s*\(([^)]*)\))?')

JAVA_METHOD_RE = re.compile(
    r'^\s*(?:(?:public|protected|private|static|final|synchronized|abstract|default|native)\s+)*'
    r'(?:<[^>]+>\s+)?([\w.]+(?:\s*<.*>)?(?:\[\])?)\s+([A-Za-z_]\w*)\s*\('
)
KOTLIN_FUN_RE = re.compile(r'\bfun\s+(?:<[^>]+>\s*)?(?:[\w.]+\.)?([A-Za-z_]\w*)\s*\(')
KOTLIN_RETURN_RE = re.compile(r'\s*:\s*([^={\n]+)')
NOT_A_TYPE = {"return", "new", "else", "throw", "case", "yield"}

# RFC 6570 query expansion: /books{?max,offset}
QUERY_TEMPLATE_RE = re.compile(r'\{[?&]([^}]*)\}')
RESERVED_EXPANSION_RE = re.compile(r'\{[+#./;]')

SCHEMA_ANNOTATIONS = {"Introspected", "Serdeable"}
REQUIRED_ANNOTATIONS = {"NotNull", "NotBlank", "NotEmpty", "NonNull"}
NULLABLE_ANNOTATIONS = {"Nullable"}
DTO_NAME_RE = re.compile(r'(Dto|DTO|Request|Response|Model)$')
NO_PAYLOAD = {"", "void", "Void", "Unit", "HttpStatus", "?"}


# =============================================================================
# ROUTE STATE MACHINE
# =============================================================================

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingMethod:
    method: str
    path: str
    line: int


ScanState = Union[Idle, PendingMethod]


@dataclass
class MethodDeclaration:
    name: str
    params: str
    return_type: str


def annotation_path(args: Optional[str]) -> str:
    """Path from ``("/x")``, ``(value = "/x")`` or ``(uri = "/x")``; other keys are ignored."""
    if not args:
        return ""
    for arg in split_arguments(args, quotes='"'):
        key, _, value = arg.partition("=")
        if not value:
            literal = string_literal(key, quotes='"')
        elif key.strip() in ("value", "uri"):
            literal = string_literal(value, quotes='"')
        else:
            continue
        if literal is not None:
            return literal
    return ""


def transition(state: ScanState, annotation: Optional[Tuple[str, str, int]],
               declared: bool) -> Tuple[ScanState, Optional[PendingMethod]]:
    """
    Advance the scanner by one line.

    ``annotation`` is ``(method, path, line)`` when the line carries an HTTP
    annotation. Returns the next state and the pending method to emit, if any.
    """
    if annotation is not None:
        state = PendingMethod(*annotation)
    if declared and isinstance(state, PendingMethod):
        return Idle(), state
    return state, None


class MicronautExtractor(BaseExtractor):

    @property
    def name(self) -> str:
        return "micronaut"

    @property
    def framework(self) -> str:
        return "Micronaut"

    @property
    def languages(self) -> Set[str]:
        return {"java", "kotlin"}

    @property
    def extensions(self) -> Set[str]:
        return {".java", ".kt"}

    def detect(self, project_root) -> bool:
        return jvm_mentions(project_root, "io.micronaut")

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        kotlin = file.language == "kotlin"
        masked = mask_comments(file.text, quotes="\"'", multiline_quotes="", triple_quotes=kotlin, path=file.path)
        if "@Controller" not in masked:
            return []

        routes: List[Route] = []
        base_path = ""
        state: ScanState = Idle()
        offset = 0
        for line_no, line in enumerate(masked.split("\n"), start=1):
            line_start = offset
            offset += len(line) + 1

            controller = CONTROLLER_RE.search(line)
            if controller:
                base_path = annotation_path(controller.group(1))
                state = Idle()
                continue

            http = HTTP_ANNOTATION_RE.search(line)
            annotation = None
            if http:
                annotation = (http.group(1).upper(), annotation_path(http.group(2)), line_no)

            decl = self._declaration(masked, line, line_start, kotlin)
            state, emitted = transition(state, annotation, decl is not None)
            if emitted is not None:
                routes.append(self._build_route(file, base_path, emitted, decl, kotlin))
        return routes

    @staticmethod
    def _declaration(masked: str, line: str, line_start: int, kotlin: bool) -> Optional[MethodDeclaration]:
        # annotations are blanked so "@Get("/x") fun f()" still matches at the right offset
        blanked = ANNOTATION_RE.sub(lambda m: " " * len(m.group(0)), line)
        if kotlin:
            m = KOTLIN_FUN_RE.search(blanked)
            if not m:
                return None
            name, return_type = m.group(1), ""
        else:
            m = JAVA_METHOD_RE.match(blanked)
            if not m or m.group(1) in NOT_A_TYPE:
                return None
            return_type, name = m.group(1), m.group(2)

        open_paren = line_start + m.end() - 1
        close_paren = find_closing(masked, open_paren, quotes='"')
        if close_paren < 0:
            return None
        if kotlin:
            ret = KOTLIN_RETURN_RE.match(masked, close_paren + 1)
            return_type = ret.group(1).strip() if ret else ""
        return MethodDeclaration(name=name, params=masked[open_paren + 1:close_paren], return_type=return_type)

    def _build_route(self, file: SourceFile, base_path: str, pending: PendingMethod,
                     decl: MethodDeclaration, kotlin: bool) -> Route:
        raw_path = combine_paths(base_path, pending.path)
        query_names = []
        for template in QUERY_TEMPLATE_RE.finditer(raw_path):
            query_names.extend(n.strip().rstrip("*") for n in template.group(1).split(",") if n.strip())
        raw_path = QUERY_TEMPLATE_RE.sub("", raw_path) or "/"
        path = convert(RESERVED_EXPANSION_RE.sub("{", raw_path))

        route = self.new_route(file, pending.method, path, pending.line, decl.name)
        route.parameters = extract_path_params(path)
        mapper = kotlin_type_schema if kotlin else java_type_schema

        for _, param in split_spans(decl.params, angle=True, quotes='"'):
            self._apply_parameter(route, param, kotlin, mapper)

        known = {p.name for p in route.parameters}
        for name in query_names:
            if name not in known:
                route.parameters.append(Parameter(name=name, location="query", required=False))

        payload = payload_schema(decl.return_type, kotlin)
        if payload is not None:
            route.responses["200"] = Response.json(payload)

        route.operation_id = synthesize_operation_id(pending.method, path, decl.name)
        route.tags = infer_tags(path)
        return route

    @staticmethod
    def _apply_parameter(route: Route, param: str, kotlin: bool, mapper) -> None:
        annotations = {m.group(1).rsplit(".", 1)[-1]: m.group(2) for m in ANNOTATION_RE.finditer(param)}
        if not annotations:
            return
        bare = ANNOTATION_RE.sub("", param).strip()
        if kotlin:
            m = re.match(r'^(?:vararg\s+)?([A-Za-z_]\w*)\s*:\s*(.+?)(?:\s*=.*)?$', bare, re.DOTALL)
            var_name, type_text = (m.group(1), m.group(2)) if m else ("", "")
        else:
            m = re.match(r'^(?:final\s+)?(.+?)\s+([A-Za-z_]\w*)$', bare, re.DOTALL)
            type_text, var_name = (m.group(1), m.group(2)) if m else ("", "")
        if not var_name:
            return

        if "QueryValue" in annotations:
            name = annotation_path(annotations["QueryValue"]) or var_name
            route.parameters.append(Parameter(name=name, location="query", required=False,
                                              schema=mapper(type_text)))
        elif "Header" in annotations:
            name = annotation_path(annotations["Header"]) or var_name
            route.parameters.append(Parameter(name=name, location="header", required=False,
                                              schema=mapper(type_text)))
        elif "PathVariable" in annotations:
            name = annotation_path(annotations["PathVariable"]) or var_name
            for existing in route.parameters:
                if existing.location == "path" and existing.name == name:
                    existing.schema = mapper(type_text)
        elif "Body" in annotations and route.request_body is None:
            schema = payload_schema(type_text, kotlin)
            if schema is not None:
                route.request_body = RequestBody.json(schema)

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        kotlin = file.language == "kotlin"
        parse = parse_kotlin if kotlin else parse_java
        with parse(file) as source:
            return [
                self._class_schema(cls, source, kotlin)
                for cls in source.classes
                if DTO_NAME_RE.search(cls.name) or SCHEMA_ANNOTATIONS & set(cls.annotations)
            ]

    @staticmethod
    def _class_schema(cls: JvmClass, source: JvmSource, kotlin: bool) -> Schema:
        schema = Schema(title=cls.name, type="object")
        for prop in cls.properties:
            if prop.type in source.enums:
                prop_schema = Schema(type="string", enum=list(source.enums[prop.type]))
            elif prop.type.rstrip("?") in source.enums:
                prop_schema = Schema(type="string", enum=list(source.enums[prop.type.rstrip("?")]), nullable=True)
            else:
                prop_schema = kotlin_type_schema(prop.type) if kotlin else java_type_schema(prop.type)
            annotations = set(prop.annotations)
            if annotations & NULLABLE_ANNOTATIONS:
                prop_schema.nullable = True
            schema.properties[prop.name] = prop_schema

            if annotations & REQUIRED_ANNOTATIONS:
                schema.required.append(prop.name)
            elif kotlin and not prop.type.endswith("?") and not prop.has_default:
                schema.required.append(prop.name)
        return schema


def payload_schema(type_text: str, kotlin: bool) -> Optional[Schema]:
    """Body/response schema: wrappers unwrapped, DTO names as ``$ref``, None for no payload."""
    type_text = " ".join(type_text.split()).rstrip("?").strip()
    base = generic_base(type_text).rsplit(".", 1)[-1]
    args = generic_arguments(type_text)
    if base in JAVA_WRAPPERS or base in ("HttpResponse", "MutableHttpResponse"):
        return payload_schema(args[0], kotlin) if args else None
    if base in NO_PAYLOAD:
        return None
    if base in JAVA_COLLECTIONS or base in KOTLIN_COLLECTIONS:
        items = payload_schema(args[0], kotlin) if args else None
        return Schema(type="array", items=items)
    if type_text.endswith("[]"):
        return Schema(type="array", items=payload_schema(type_text[:-2], kotlin))
    if base in JAVA_TYPES or base in KOTLIN_TYPES or args:
        return kotlin_type_schema(type_text) if kotlin else java_type_schema(type_text)
    if re.match(r'^[A-Z]\w*$', base):
        return Schema.reference(base)
    return None
