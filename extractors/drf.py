"""
Django REST Framework plugin.

Routes come from ``@api_view`` functions and APIView/ViewSet classes; the
prefixes passed to ``router.register`` and ``path(..., View.as_view())``
anywhere in the batch override the class-name based paths. Schemas come from
Serializer classes and Pydantic models.
"""

from __future__ import annotations

import ast
import logging
import re
from typing import Dict, List, NamedTuple, Optional, Set

from .base import BaseExtractor, ParseError, RequestBody, Response, Route, Schema, SourceFile
from .deterministic.operation_id import synthesize_operation_id
from .deterministic.path_params import combine_paths, convert, ensure_leading_slash, extract_path_params
from .deterministic.tags import infer_tags
from .deterministic.type_mapping import python_type_schema
from .manifest import python_mentions
from .parsers.python import (
    PythonSource, base_names, class_assignments, decorator_calls, keywords, literal, nested_class,
    parse_python, short_name,
)

logger = logging.getLogger("route_extractor.drf")

HTTP_VERBS = ("get", "post", "put", "patch", "delete", "head", "options")
BODY_METHODS = {"POST", "PUT", "PATCH"}
VIEW_CLASS_RE = re.compile(r'(ViewSet|APIView)$')
CLASS_SUFFIX_RE = re.compile(r'(ViewSet|APIView|View)$')
DJANGO_CONVERTER_RE = re.compile(r'<(?:\w+:)?(\w+)>')


class ViewAction(NamedTuple):
    action: str
    method: str
    detail: bool


MODEL_VIEWSET_ACTIONS = [
    ViewAction("list", "GET", False),
    ViewAction("create", "POST", False),
    ViewAction("retrieve", "GET", True),
    ViewAction("update", "PUT", True),
    ViewAction("partial_update", "PATCH", True),
    ViewAction("destroy", "DELETE", True),
]
ACTIONS_BY_NAME = {a.action: a for a in MODEL_VIEWSET_ACTIONS}

MIXIN_ACTIONS = {
    "ListModelMixin": ["list"],
    "CreateModelMixin": ["create"],
    "RetrieveModelMixin": ["retrieve"],
    "UpdateModelMixin": ["update", "partial_update"],
    "DestroyModelMixin": ["destroy"],
}

SERIALIZER_FIELDS = {
    "CharField": ("string", ""), "EmailField": ("string", "email"), "URLField": ("string", "uri"),
    "UUIDField": ("string", "uuid"), "SlugField": ("string", ""), "RegexField": ("string", ""),
    "IPAddressField": ("string", "ip"), "IntegerField": ("integer", ""), "FloatField": ("number", ""),
    "DecimalField": ("number", ""), "BooleanField": ("boolean", ""), "NullBooleanField": ("boolean", ""),
    "DateTimeField": ("string", "date-time"), "DateField": ("string", "date"), "TimeField": ("string", "time"),
    "DurationField": ("string", ""), "ChoiceField": ("string", ""), "MultipleChoiceField": ("array", ""),
    "ListField": ("array", ""), "DictField": ("object", ""), "JSONField": ("object", ""),
    "HStoreField": ("object", ""), "FileField": ("string", "binary"), "ImageField": ("string", "binary"),
    "PrimaryKeyRelatedField": ("integer", ""), "SlugRelatedField": ("string", ""),
    "HyperlinkedRelatedField": ("string", "uri"), "HyperlinkedIdentityField": ("string", "uri"),
    "StringRelatedField": ("string", ""), "SerializerMethodField": ("object", ""), "ReadOnlyField": ("object", ""),
}


def api_view_path(function_name: str) -> str:
    return "/" + function_name.lower().replace("_", "-")


def class_base_path(class_name: str) -> str:
    return "/" + CLASS_SUFFIX_RE.sub("", class_name).lower()


def django_route(route: str) -> str:
    """``users/<int:pk>/`` -> ``/users/{pk}``."""
    route = DJANGO_CONVERTER_RE.sub(r'{\1}', route.strip().lstrip("^").rstrip("$"))
    route = ensure_leading_slash(route)
    return route.rstrip("/") or "/"


def is_view_class(cls: ast.ClassDef) -> bool:
    return any(VIEW_CLASS_RE.search(name) or name in MIXIN_ACTIONS for name in base_names(cls))


def is_serializer(cls: ast.ClassDef) -> bool:
    return any("Serializer" in name for name in base_names(cls))


class DRFExtractor(BaseExtractor):

    def __init__(self, config=None):
        super().__init__(config)
        self.registered: Dict[str, str] = {}

    @property
    def name(self) -> str:
        return "drf"

    @property
    def framework(self) -> str:
        return "Django REST Framework"

    @property
    def languages(self) -> Set[str]:
        return {"python"}

    @property
    def extensions(self) -> Set[str]:
        return {".py"}

    def detect(self, project_root) -> bool:
        return python_mentions(project_root, "djangorestframework")

    # -------------------------------------------------------------------------
    # Batch prefixes
    # -------------------------------------------------------------------------

    def prepare(self, files: List[SourceFile]) -> None:
        """Collect ``router.register`` and ``path(..., X.as_view())`` prefixes from the whole batch."""
        registered: Dict[str, str] = {}
        for file in files:
            if not self.accepts(file):
                continue
            text = file.text
            if "register" not in text and "as_view" not in text:
                continue
            try:
                with parse_python(file) as source:
                    self._collect_prefixes(source, registered)
            except ParseError as e:
                logger.debug(f"[{self.name}] prefix scan skipped {file.path}: {e}")
        self.registered = registered
        if registered:
            logger.debug(f"[{self.name}] {len(registered)} registered view prefixes")

    @staticmethod
    def _collect_prefixes(source: PythonSource, registered: Dict[str, str]) -> None:
        for node in ast.walk(source.tree):
            if not isinstance(node, ast.Call) or len(node.args) < 2:
                continue
            prefix = literal(node.args[0])
            if not isinstance(prefix, str):
                continue
            func = short_name(node.func)
            target = node.args[1]
            if func == "register" and isinstance(node.func, ast.Attribute):
                registered.setdefault(short_name(target), django_route(prefix))
            elif func in ("path", "re_path", "url") and isinstance(target, ast.Call) \
                    and short_name(target.func) == "as_view" and isinstance(target.func, ast.Attribute):
                registered.setdefault(short_name(target.func.value), django_route(prefix))

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        with parse_python(file) as source:
            if not source.imports_module("rest_framework"):
                return []
            routes: List[Route] = []
            for func in source.functions:
                routes.extend(self._api_view_routes(file, func))
            for cls in source.classes:
                if is_view_class(cls):
                    routes.extend(self._class_routes(file, cls))
            return routes

    def _api_view_routes(self, file: SourceFile, func: ast.FunctionDef) -> List[Route]:
        decorators = decorator_calls(func, "api_view")
        if not decorators:
            return []
        methods = ["GET"]
        dec = decorators[0]
        if isinstance(dec, ast.Call) and dec.args:
            listed = literal(dec.args[0])
            if isinstance(listed, (list, tuple)) and listed:
                methods = [str(m).upper() for m in listed]

        path = self.registered.get(func.name) or api_view_path(func.name)
        routes = []
        for method in dict.fromkeys(methods):
            route = self.new_route(file, method, path, func.lineno, func.name)
            route.parameters = extract_path_params(path)
            route.operation_id = synthesize_operation_id(method, path, func.name)
            route.tags = infer_tags(path)
            routes.append(route)
        return routes

    def _class_routes(self, file: SourceFile, cls: ast.ClassDef) -> List[Route]:
        bases = base_names(cls)
        attrs = class_assignments(cls)
        base_path = self.registered.get(cls.name) or class_base_path(cls.name)
        lookup = literal(attrs.get("lookup_url_kwarg")) or literal(attrs.get("lookup_field")) or "id"
        detail_path = combine_paths(base_path, "{" + str(lookup) + "}")
        serializer = short_name(attrs["serializer_class"]) if "serializer_class" in attrs else ""

        actions: List[str] = []
        if any(b == "ModelViewSet" for b in bases):
            actions = [a.action for a in MODEL_VIEWSET_ACTIONS]
        elif any(b == "ReadOnlyModelViewSet" for b in bases):
            actions = ["list", "retrieve"]
        for base in bases:
            actions.extend(MIXIN_ACTIONS.get(base, []))

        methods = {stmt.name: stmt for stmt in cls.body if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef))}
        is_viewset = any("ViewSet" in b for b in bases)
        if is_viewset:
            # plain ViewSets declare their actions as methods
            actions.extend(name for name in methods if name in ACTIONS_BY_NAME)

        routes: List[Route] = []
        seen = set()

        def add(method: str, path: str, action: str, line: int, kind: str) -> None:
            path = convert(path)
            if (method, path) in seen:
                return
            seen.add((method, path))
            handler = f"{cls.name}.{action}"
            route = self.new_route(file, method, path, line, handler)
            route.parameters = extract_path_params(path)
            route.operation_id = synthesize_operation_id(method, path, action)
            route.tags = [cls.name]
            if serializer:
                ref = Schema.reference(serializer)
                if method in BODY_METHODS:
                    route.request_body = RequestBody.json(ref)
                if kind == "list":
                    route.responses["200"] = Response.json(Schema(type="array", items=ref))
                elif kind == "retrieve":
                    route.responses["200"] = Response.json(ref)
            routes.append(route)

        for name in dict.fromkeys(actions):
            action = ACTIONS_BY_NAME[name]
            line = methods[name].lineno if name in methods else cls.lineno
            add(action.method, detail_path if action.detail else base_path, name, line, name)

        for name, func in methods.items():
            for dec in decorator_calls(func, "action"):
                kw = keywords(dec) if isinstance(dec, ast.Call) else {}
                detail = bool(literal(kw.get("detail")))
                url_path = literal(kw.get("url_path")) or name
                listed = literal(kw.get("methods")) or ["get"]
                root = detail_path if detail else base_path
                for method in listed:
                    add(str(method).upper(), f"{root.rstrip('/')}/{url_path}", name, func.lineno, "action")

        for name, func in methods.items():
            if name in HTTP_VERBS:
                add(name.upper(), base_path, name, func.lineno, name)
        return routes

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        with parse_python(file) as source:
            pydantic_models: Set[str] = set()
            schemas = []
            for cls in source.classes:
                bases = base_names(cls)
                if is_serializer(cls):
                    schemas.append(serializer_schema(cls))
                elif "BaseModel" in bases or any(b in pydantic_models for b in bases):
                    pydantic_models.add(cls.name)
                    schemas.append(pydantic_schema(cls))
            return schemas


def serializer_field_schema(call: ast.Call) -> Optional[Schema]:
    name = short_name(call.func)
    kw = keywords(call)
    if name in SERIALIZER_FIELDS:
        kind, fmt = SERIALIZER_FIELDS[name]
        schema = Schema(type=kind, format=fmt)
    elif name.endswith("Serializer"):
        schema = Schema.reference(name)
    else:
        return None

    if name in ("ChoiceField", "MultipleChoiceField"):
        choices = literal(kw.get("choices") or (call.args[0] if call.args else None)) or []
        values = [c[0] if isinstance(c, (list, tuple)) else c for c in choices]
        if name == "ChoiceField":
            schema.enum = values
        else:
            schema.items = Schema(type="string", enum=values)
    if name == "ListField" and "child" in kw and isinstance(kw["child"], ast.Call):
        schema.items = serializer_field_schema(kw["child"])

    if literal(kw.get("allow_null")) is True:
        schema.nullable = True
    for key, attr in (("max_length", "max_length"), ("min_length", "min_length"),
                      ("max_value", "maximum"), ("min_value", "minimum")):
        value = literal(kw.get(key))
        if isinstance(value, (int, float)):
            setattr(schema, attr, value)
    help_text = literal(kw.get("help_text"))
    if isinstance(help_text, str):
        schema.description = help_text
    if "default" in kw:
        schema.default = literal(kw["default"])

    if literal(kw.get("many")) is True:
        schema = Schema(type="array", items=schema)
    return schema


def serializer_schema(cls: ast.ClassDef) -> Schema:
    schema = Schema(title=cls.name, type="object")
    for stmt in cls.body:
        if not (isinstance(stmt, ast.Assign) and isinstance(stmt.value, ast.Call)):
            continue
        field_schema = serializer_field_schema(stmt.value)
        if field_schema is None:
            continue
        kw = keywords(stmt.value)
        optional = (literal(kw.get("required")) is False or "default" in kw
                    or literal(kw.get("read_only")) is True)
        for target in stmt.targets:
            if isinstance(target, ast.Name):
                schema.properties[target.id] = field_schema
                if not optional:
                    schema.required.append(target.id)

    # ModelSerializer Meta.fields without explicit declarations: names only
    meta = nested_class(cls, "Meta")
    if meta is not None:
        fields = literal(class_assignments(meta).get("fields"))
        if isinstance(fields, (list, tuple)):
            for name in fields:
                schema.properties.setdefault(str(name), Schema())
    return schema


def pydantic_schema(cls: ast.ClassDef) -> Schema:
    schema = Schema(title=cls.name, type="object")
    for stmt in cls.body:
        if not (isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name)):
            continue
        annotation = ast.unparse(stmt.annotation)
        if annotation.startswith(("ClassVar", "typing.ClassVar")):
            continue
        field_schema = python_type_schema(annotation)
        has_default = stmt.value is not None

        if isinstance(stmt.value, ast.Call) and short_name(stmt.value.func) == "Field":
            kw = keywords(stmt.value)
            first = stmt.value.args[0] if stmt.value.args else kw.get("default")
            has_default = not (first is None or (isinstance(first, ast.Constant) and first.value is Ellipsis)) \
                or "default_factory" in kw
            description = literal(kw.get("description"))
            if isinstance(description, str):
                field_schema.description = description
            for key, attr in (("ge", "minimum"), ("le", "maximum"), ("min_length", "min_length"),
                              ("max_length", "max_length")):
                value = literal(kw.get(key))
                if isinstance(value, (int, float)):
                    setattr(field_schema, attr, value)
            if first is not None and has_default:
                field_schema.default = literal(first)
        elif has_default:
            field_schema.default = literal(stmt.value)

        schema.properties[stmt.target.id] = field_schema
        if not has_default and not field_schema.nullable:
            schema.required.append(stmt.target.id)
    return schema
