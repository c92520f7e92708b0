"""Phoenix plugin: router scopes, verbs and resources; Ecto schemas."""

from __future__ import annotations

import logging
import re
from typing import Any, List, NamedTuple, Optional, Set

from .base import BaseExtractor, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.text import split_arguments
from .deterministic.type_mapping import ecto_type_schema
from .manifest import mix_mentions
from .parsers.elixir import ElixirNode, parse_elixir

logger = logging.getLogger("route_extractor.phoenix")

ROUTER_MARKER_RE = re.compile(r'\buse\s+(?:Phoenix\.Router\b|[\w.]+\s*,\s*:router\b)')
VERB_RE = re.compile(r'^(get|post|put|patch|delete|options|head)\s*\(?\s*"([^"]*)"\s*,\s*([\w.]+)\s*,\s*:(\w+)')
SCOPE_RE = re.compile(r'^scope\s*\(?\s*(?:"([^"]*)"|path:\s*"([^"]*)")(?:\s*,\s*([A-Z][\w.]*))?')
RESOURCES_RE = re.compile(r'^resources\s*\(?\s*"([^"]*)"\s*,\s*([\w.]+)(.*?)(?:\s+do)?\s*$')
ATOM_LIST_RE = re.compile(r'\b(only|except):\s*\[([^\]]*)\]')

DEFMODULE_RE = re.compile(r'^defmodule\s+([\w.]+)')
SCHEMA_BLOCK_RE = re.compile(r'^(?:schema\s*\(?\s*"[^"]*"|embedded_schema\b)')
FIELD_RE = re.compile(r'^field\s*\(?\s*:(\w+)(?:\s*,\s*(.+?))?\s*\)?$')
BELONGS_TO_RE = re.compile(r'^belongs_to\s*\(?\s*:(\w+)')
EMBEDS_RE = re.compile(r'^embeds_(one|many)\s*\(?\s*:(\w+)\s*,\s*([\w.]+)')
TIMESTAMPS_RE = re.compile(r'^timestamps\b\s*(?:\((.*)\))?')


class ResourceAction(NamedTuple):
    method: str
    suffix: str
    action: str


RESOURCE_ACTIONS = [
    ResourceAction("GET", "", "index"),
    ResourceAction("GET", "/new", "new"),
    ResourceAction("POST", "", "create"),
    ResourceAction("GET", "/:id", "show"),
    ResourceAction("GET", "/:id/edit", "edit"),
    ResourceAction("PUT", "/:id", "update"),
    ResourceAction("PATCH", "/:id", "update"),
    ResourceAction("DELETE", "/:id", "delete"),
]


def singularize(word: str) -> str:
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("ses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def expand_resources(path: str, options: str) -> List[ResourceAction]:
    """The standard actions of ``resources``, filtered by ``only:``/``except:``."""
    filters = {key: {a.strip().lstrip(":") for a in atoms.split(",") if a.strip()}
               for key, atoms in ATOM_LIST_RE.findall(options)}
    actions = []
    for action in RESOURCE_ACTIONS:
        if "only" in filters and action.action not in filters["only"]:
            continue
        if "except" in filters and action.action in filters["except"]:
            continue
        actions.append(action)
    return actions


def parse_ecto_default(raw: str) -> Any:
    raw = raw.strip()
    if raw in ("true", "false"):
        return raw == "true"
    if raw == "nil":
        return None
    if re.match(r'^-?\d+$', raw):
        return int(raw)
    if re.match(r'^-?\d+\.\d+$', raw):
        return float(raw)
    return raw.strip("\"'").lstrip(":")


class PhoenixExtractor(BaseExtractor):

    @property
    def name(self) -> str:
        return "phoenix"

    @property
    def framework(self) -> str:
        return "Phoenix"

    @property
    def languages(self) -> Set[str]:
        return {"elixir"}

    @property
    def extensions(self) -> Set[str]:
        return {".ex", ".exs"}

    def detect(self, project_root) -> bool:
        return mix_mentions(project_root, ":phoenix")

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        if "router" not in file.path.lower():
            return []
        with parse_elixir(file) as source:
            if not ROUTER_MARKER_RE.search(source.masked):
                return []
            routes: List[Route] = []
            self._walk_scope(file, source.root, "", "", routes)
            return routes

    def _walk_scope(self, file: SourceFile, node: ElixirNode, prefix: str, alias: str,
                    routes: List[Route]) -> None:
        for child in node.children:
            head = child.head

            verb = VERB_RE.match(head)
            if verb:
                method, path, controller, action = verb.groups()
                routes.append(self._build(file, method.upper(), combine_paths(prefix, path),
                                          _qualify(alias, controller), action, child.line))
                continue

            resources = RESOURCES_RE.match(head)
            if resources:
                path, controller, options = resources.groups()
                base = combine_paths(prefix, path)
                handler_base = _qualify(alias, controller)
                for action in expand_resources(path, options):
                    routes.append(self._build(file, action.method, base + action.suffix,
                                              handler_base, action.action, child.line))
                if child.block:
                    segment = path.strip("/").split("/")[-1]
                    nested = f"{base}/:{singularize(segment)}_id"
                    self._walk_scope(file, child, nested, alias, routes)
                continue

            scope = SCOPE_RE.match(head)
            if scope and child.block:
                path = scope.group(1) if scope.group(1) is not None else scope.group(2)
                self._walk_scope(file, child, combine_paths(prefix, path), _qualify(alias, scope.group(3) or ""),
                                 routes)
                continue

            if child.block:
                self._walk_scope(file, child, prefix, alias, routes)

    def _build(self, file: SourceFile, method: str, raw_path: str, controller: str, action: str,
               line: int) -> Route:
        path = convert(raw_path)
        route = self.new_route(file, method, path, line, f"{controller}.{action}")
        route.parameters = extract_path_params(path)
        route.operation_id = synthesize_operation_id(method, path, action)
        route.tags = infer_tags(path)
        return route

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        schemas: List[Schema] = []
        with parse_elixir(file) as source:
            self._collect_schemas(source.root, "", schemas)
        return schemas

    def _collect_schemas(self, node: ElixirNode, module: str, schemas: List[Schema]) -> None:
        for child in node.children:
            if not child.block:
                continue
            mod = DEFMODULE_RE.match(child.head)
            if mod:
                self._collect_schemas(child, mod.group(1), schemas)
            elif SCHEMA_BLOCK_RE.match(child.head):
                schema = self._ecto_schema(child, module)
                if schema is not None:
                    schemas.append(schema)
            else:
                self._collect_schemas(child, module, schemas)

    @staticmethod
    def _ecto_schema(block: ElixirNode, module: str) -> Optional[Schema]:
        schema = Schema(title=module.rsplit(".", 1)[-1] if module else "", type="object")
        for stmt in block.children:
            head = stmt.head
            fm = FIELD_RE.match(head)
            if fm:
                name, rest = fm.group(1), fm.group(2) or ":string"
                args = split_arguments(rest)
                prop = ecto_type_schema(args[0]) if args else Schema(type="string")
                options = ", ".join(args[1:])
                values = re.search(r'values:\s*\[([^\]]*)\]', options)
                if values:
                    prop.enum = [v.strip().lstrip(":") for v in values.group(1).split(",") if v.strip()]
                default = re.search(r'default:\s*([^,]+)', options)
                if default:
                    prop.default = parse_ecto_default(default.group(1))
                schema.properties[name] = prop
                if not default:
                    schema.required.append(name)
                continue

            belongs = BELONGS_TO_RE.match(head)
            if belongs:
                key = f"{belongs.group(1)}_id"
                schema.properties[key] = Schema(type="integer")
                schema.required.append(key)
                continue

            embeds = EMBEDS_RE.match(head)
            if embeds:
                kind, name, target = embeds.groups()
                ref = Schema.reference(target.rsplit(".", 1)[-1])
                schema.properties[name] = ref if kind == "one" else Schema(type="array", items=ref)
                continue

            stamps = TIMESTAMPS_RE.match(head)
            if stamps:
                stamp_type = re.search(r'type:\s*(:\w+)', stamps.group(1) or "")
                for key in ("inserted_at", "updated_at"):
                    schema.properties[key] = ecto_type_schema(stamp_type.group(1) if stamp_type else ":naive_datetime")

        if not schema.properties:
            return None
        return schema


def _qualify(alias: str, name: str) -> str:
    if alias and name:
        return f"{alias}.{name}"
    return alias or name
