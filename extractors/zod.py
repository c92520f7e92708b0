"""
Schema builders for the JavaScript plugins.

Covers zod (``z.object({...})``), Joi (``Joi.object({...})`` inside
celebrate), express-validator chains and TypeScript interfaces. Expressions
are read as text: a namespace base call followed by a chain of modifiers.
"""

from __future__ import annotations

import re
from typing import Any, List, NamedTuple, Optional, Set, Tuple

from .base import Parameter, Schema
from .deterministic.text import split_spans
from .deterministic.type_mapping import TYPESCRIPT_TYPES, typescript_type_schema
from .parsers.javascript import JS_QUOTES, Interface, JsSource, call_arguments, js_string

_ZOD_BASE_RE = re.compile(r'^(?:z|zod)\s*\.\s*(\w+)\s*\(')
_JOI_BASE_RE = re.compile(r'^Joi\s*\.\s*(\w+)\s*\(')
_CHAIN_RE = re.compile(r'\s*\.\s*(\w+)\s*\(')
_IDENT_RE = re.compile(r'^([A-Za-z_$][\w$]*)')
_VALIDATOR_FIELD_RE = re.compile(r'\b(body|query|param|check|header)\s*\(\s*["\']([^"\']+)["\']\s*\)')

STRING_FORMATS = {
    "email": "email", "url": "uri", "uri": "uri", "uuid": "uuid", "guid": "uuid", "cuid": "cuid",
    "datetime": "date-time", "isoDate": "date-time", "date": "date", "time": "time", "ip": "ip",
    "ipv4": "ipv4", "ipv6": "ipv6", "hostname": "hostname",
}


class Modifier(NamedTuple):
    name: str
    args: List[str]


class ChainExpr(NamedTuple):
    base: str
    base_args: List[str]
    modifiers: List[Modifier]


class FieldSchema(NamedTuple):
    schema: Schema
    required: bool


def literal_value(token: str) -> Any:
    token = token.strip()
    text = js_string(token)
    if text is not None:
        return text
    if token in ("true", "false"):
        return token == "true"
    if re.match(r'^-?\d+$', token):
        return int(token)
    if re.match(r'^-?\d*\.\d+$', token):
        return float(token)
    return token


def parse_chain(expr: str, base_re: re.Pattern) -> Optional[ChainExpr]:
    """``z.string().min(1).optional()`` -> ``ChainExpr("string", [], [min(1), optional()])``."""
    expr = expr.strip()
    m = base_re.match(expr)
    if m:
        base = m.group(1)
        base_args, close = call_arguments(expr, m.end() - 1)
    else:
        ident = _IDENT_RE.match(expr)
        if not ident:
            return None
        # an identifier naming another schema, possibly with modifiers
        base, base_args, close = "$ref:" + ident.group(1), [], ident.end() - 1
    if close < 0:
        return None

    modifiers = []
    pos = close + 1
    while True:
        chained = _CHAIN_RE.match(expr, pos)
        if not chained:
            break
        args, close = call_arguments(expr, chained.end() - 1)
        if close < 0:
            break
        modifiers.append(Modifier(chained.group(1), args))
        pos = close + 1
    return ChainExpr(base, base_args, modifiers)


def object_entries(obj_text: str) -> List[Tuple[str, str]]:
    """``{ a: x, 'b': y }`` -> ``[("a", "x"), ("b", "y")]``."""
    obj_text = obj_text.strip()
    if not (obj_text.startswith("{") and obj_text.endswith("}")):
        return []
    entries = []
    for _, entry in split_spans(obj_text[1:-1], quotes=JS_QUOTES):
        key, sep, value = _split_key(entry)
        if sep:
            entries.append((key, value))
    return entries


def _split_key(entry: str) -> Tuple[str, str, str]:
    m = re.match(r'^\s*(\[[^\]]+\]|"[^"]*"|\'[^\']*\'|[A-Za-z_$][\w$]*)\s*:\s*', entry)
    if not m:
        return "", "", ""
    key = m.group(1)
    if key.startswith("["):
        key = key[1:-1].strip()
    return key.strip("\"'"), ":", entry[m.end():]


def _apply_size(schema: Schema, name: str, value: Any) -> None:
    if not isinstance(value, (int, float)):
        return
    if schema.type == "string":
        if name in ("min", "length"):
            schema.min_length = int(value)
        if name in ("max", "length"):
            schema.max_length = int(value)
    elif schema.type in ("number", "integer"):
        if name == "min":
            schema.minimum = value
        elif name == "max":
            schema.maximum = value


# =============================================================================
# ZOD
# =============================================================================

def zod_field(expr: str) -> FieldSchema:
    chain = parse_chain(expr, _ZOD_BASE_RE)
    if chain is None:
        return FieldSchema(Schema(type="object"), True)

    schema = _zod_base(chain)
    required = True
    if chain.base in ("optional",):
        required = False
    for mod in chain.modifiers:
        name, args = mod.name, mod.args
        if name == "optional":
            required = False
        elif name == "nullish":
            required = False
            schema.nullable = True
        elif name == "nullable":
            schema.nullable = True
        elif name == "default":
            required = False
            if args:
                schema.default = literal_value(args[0])
        elif name in STRING_FORMATS and schema.type == "string":
            schema.format = STRING_FORMATS[name]
        elif name == "int":
            schema.type = "integer"
        elif name in ("positive", "nonnegative"):
            schema.minimum = 0
        elif name in ("min", "max", "length") and args:
            _apply_size(schema, name, literal_value(args[0]))
        elif name == "regex" and args:
            schema.pattern = args[0].strip().strip("/")
        elif name == "describe" and args:
            schema.description = js_string(args[0]) or ""
        elif name == "array":
            schema = Schema(type="array", items=schema)
    return FieldSchema(schema, required)


def _zod_base(chain: ChainExpr) -> Schema:
    base, args = chain.base, chain.base_args
    if base.startswith("$ref:"):
        return Schema.reference(base[5:])
    if base in ("string", "number", "boolean"):
        return Schema(type=base)
    if base == "bigint":
        return Schema(type="integer")
    if base == "date":
        return Schema(type="string", format="date-time")
    if base == "object" and args:
        return zod_object(args[0])
    if base == "array":
        return Schema(type="array", items=zod_field(args[0]).schema if args else None)
    if base == "tuple":
        return Schema(type="array")
    if base == "enum" and args:
        values = [literal_value(v) for _, v in split_spans(args[0].strip()[1:-1], quotes=JS_QUOTES)] \
            if args[0].strip().startswith("[") else []
        return Schema(type="string", enum=values)
    if base == "literal" and args:
        value = literal_value(args[0])
        kind = "boolean" if isinstance(value, bool) else "integer" if isinstance(value, int) else \
            "number" if isinstance(value, float) else "string"
        return Schema(type=kind, enum=[value])
    if base in ("optional", "nullable") and args:
        inner = zod_field(args[0]).schema
        if base == "nullable":
            inner.nullable = True
        return inner
    if base == "union" and args and args[0].strip().startswith("["):
        members = [zod_field(v).schema for _, v in split_spans(args[0].strip()[1:-1], quotes=JS_QUOTES)]
        if members and all(m.enum and m.type == members[0].type for m in members):
            return Schema(type=members[0].type, enum=[v for m in members for v in m.enum])
        return Schema(type="object")
    return Schema(type="object")


def zod_object(obj_text: str, title: str = "") -> Schema:
    schema = Schema(title=title, type="object")
    for key, value in object_entries(obj_text):
        field = zod_field(value)
        schema.properties[key] = field.schema
        if field.required:
            schema.required.append(key)
    return schema


def zod_schema(expr: str, title: str = "") -> Optional[Schema]:
    """Schema of a ``z.object(...)`` expression (modifiers such as ``.strict()`` ignored)."""
    chain = parse_chain(expr, _ZOD_BASE_RE)
    if chain is None or chain.base != "object" or not chain.base_args:
        return None
    return zod_object(chain.base_args[0], title)


# =============================================================================
# JOI
# =============================================================================

def joi_field(expr: str) -> FieldSchema:
    chain = parse_chain(expr, _JOI_BASE_RE)
    if chain is None:
        return FieldSchema(Schema(type="object"), False)

    base = chain.base
    if base.startswith("$ref:"):
        schema = Schema.reference(base[5:])
    elif base in ("string", "number", "boolean", "array", "object"):
        schema = Schema(type=base)
    elif base == "date":
        schema = Schema(type="string", format="date-time")
    else:
        schema = Schema(type="object")
    if base == "object" and chain.base_args:
        schema = joi_object(chain.base_args[0])

    required = False
    for mod in chain.modifiers:
        name, args = mod.name, mod.args
        if name == "required":
            required = True
        elif name == "allow" and "null" in args:
            schema.nullable = True
        elif name in ("valid", "only"):
            schema.enum = [literal_value(a) for a in args if a != "null"]
        elif name == "integer":
            schema.type = "integer"
        elif name in STRING_FORMATS and schema.type == "string":
            schema.format = STRING_FORMATS[name]
        elif name in ("min", "max", "length") and args:
            _apply_size(schema, name, literal_value(args[0]))
        elif name == "items" and args:
            schema.items = joi_field(args[0]).schema
        elif name == "keys" and args:
            keyed = joi_object(args[0])
            schema.properties, schema.required = keyed.properties, keyed.required
        elif name == "default" and args:
            schema.default = literal_value(args[0])
        elif name == "pattern" and args:
            schema.pattern = args[0].strip().strip("/")
    return FieldSchema(schema, required)


def joi_object(obj_text: str) -> Schema:
    schema = Schema(type="object")
    for key, value in object_entries(obj_text):
        field = joi_field(value)
        schema.properties[key] = field.schema
        if field.required:
            schema.required.append(key)
    return schema


# =============================================================================
# EXPRESS-VALIDATOR
# =============================================================================

VALIDATOR_TYPES = {
    "isInt": ("integer", ""), "isNumeric": ("number", ""), "isFloat": ("number", ""),
    "isDecimal": ("number", ""), "isBoolean": ("boolean", ""), "isEmail": ("string", "email"),
    "isURL": ("string", "uri"), "isUUID": ("string", "uuid"), "isISO8601": ("string", "date-time"),
    "isDate": ("string", "date"), "isArray": ("array", ""), "isObject": ("object", ""),
}


def express_validator_fields(args: List[str]) -> Tuple[Optional[Schema], List[Parameter]]:
    """Inline body schema and query/header parameters from ``body('x').isEmail()`` chains."""
    body = Schema(type="object")
    params: List[Parameter] = []
    for arg in args:
        for m in _VALIDATOR_FIELD_RE.finditer(arg):
            location, name = m.groups()
            modifiers = _trailing_modifiers(arg, m.end())
            schema = Schema(type="string")
            optional = False
            for mod in modifiers:
                if mod.name in VALIDATOR_TYPES:
                    schema.type, schema.format = VALIDATOR_TYPES[mod.name]
                elif mod.name == "optional":
                    optional = True
                elif mod.name == "isIn" and mod.args and mod.args[0].strip().startswith("["):
                    schema.enum = [literal_value(v) for _, v in
                                   split_spans(mod.args[0].strip()[1:-1], quotes=JS_QUOTES)]
                elif mod.name == "isLength" and mod.args:
                    for key, value in object_entries(mod.args[0]):
                        if key == "min":
                            schema.min_length = literal_value(value)
                        elif key == "max":
                            schema.max_length = literal_value(value)
            if location in ("body", "check"):
                body.properties[name] = schema
                if not optional:
                    body.required.append(name)
            elif location in ("query", "header"):
                params.append(Parameter(name=name, location=location, required=not optional, schema=schema))
    return (body if body.properties else None), params


def _trailing_modifiers(text: str, pos: int) -> List[Modifier]:
    modifiers = []
    while True:
        chained = _CHAIN_RE.match(text, pos)
        if not chained:
            break
        args, close = call_arguments(text, chained.end() - 1)
        if close < 0:
            break
        modifiers.append(Modifier(chained.group(1), args))
        pos = close + 1
    return modifiers


# =============================================================================
# FILE-LEVEL SCHEMAS
# =============================================================================

def typescript_property_schema(ts_type: str, known: Set[str]) -> Schema:
    ts_type = ts_type.strip()
    if ts_type.endswith("[]"):
        return Schema(type="array", items=typescript_property_schema(ts_type[:-2], known))
    if ts_type in known and ts_type not in TYPESCRIPT_TYPES:
        return Schema.reference(ts_type)
    return typescript_type_schema(ts_type)


def interface_schema(iface: Interface, known: Set[str]) -> Schema:
    schema = Schema(title=iface.name, type="object")
    for member in iface.members:
        schema.properties[member.name] = typescript_property_schema(member.type, known)
        if not member.optional:
            schema.required.append(member.name)
    return schema


def zod_variables(source: JsSource) -> List[Tuple[str, str, int]]:
    """``(name, initializer, line)`` of every top-level ``z.object(...)`` variable."""
    return [(v.name, v.init, v.line) for v in source.variables.values() if _ZOD_BASE_RE.match(v.init)]


def file_schemas(source: JsSource) -> List[Schema]:
    """TypeScript interfaces and zod object schemas declared in one file, in source order."""
    known = {iface.name for iface in source.interfaces}
    found: List[Tuple[int, Schema]] = [(iface.line, interface_schema(iface, known)) for iface in source.interfaces]
    for name, init, line in zod_variables(source):
        schema = zod_schema(init, title=name)
        if schema is not None:
            found.append((line, schema))
    found.sort(key=lambda pair: pair[0])
    return [schema for _, schema in found]
