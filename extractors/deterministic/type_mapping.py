#!/usr/bin/env python3
"""
Type Mapping
============
Convert source-language type names into OpenAPI property schemas.

One mapper per type system:
- Rust (serde structs)          rust_type_schema / rust_field_schema
- C++ (Drogon DTOs)             cpp_type_schema
- Oat++ DTO_FIELD types         oatpp_type_schema
- C# properties                 csharp_type_schema
- Java / Kotlin fields          java_type_schema / kotlin_type_schema
- Python annotations            python_type_schema
- Ecto field types              ecto_type_schema
- TypeScript annotations        typescript_type_schema

Unknown types map to ``object``, except capitalized Rust names, which
become component references; mapping never raises.
"""

from __future__ import annotations

import re
from typing import Dict, Tuple

from ..base import Schema
from .text import generic_arguments, generic_base, split_arguments

_S = Tuple[str, str]


def _scalar(mapping: Dict[str, _S], name: str, default: _S = ("object", "")) -> Schema:
    type_, format_ = mapping.get(name, default)
    return Schema(type=type_, format=format_)


def _last_segment(name: str, sep: str) -> str:
    return name.rsplit(sep, 1)[-1].strip()


# =============================================================================
# RUST
# =============================================================================

RUST_TYPES: Dict[str, _S] = {
    'String': ('string', ''), 'str': ('string', ''), 'char': ('string', ''),
    'Cow': ('string', ''),
    'i8': ('integer', ''), 'i16': ('integer', ''), 'i32': ('integer', 'int32'),
    'i64': ('integer', 'int64'), 'i128': ('integer', ''), 'isize': ('integer', ''),
    'u8': ('integer', ''), 'u16': ('integer', ''), 'u32': ('integer', 'int32'),
    'u64': ('integer', 'int64'), 'u128': ('integer', ''), 'usize': ('integer', ''),
    'f32': ('number', 'float'), 'f64': ('number', 'double'),
    'bool': ('boolean', ''),
    'Uuid': ('string', 'uuid'),
    'DateTime': ('string', 'date-time'), 'NaiveDateTime': ('string', 'date-time'),
    'OffsetDateTime': ('string', 'date-time'), 'PrimitiveDateTime': ('string', 'date-time'),
    'NaiveDate': ('string', 'date'), 'Date': ('string', 'date'),
    'NaiveTime': ('string', 'time'),
    'HashMap': ('object', ''), 'BTreeMap': ('object', ''), 'IndexMap': ('object', ''),
    'Value': ('object', ''),
}

RUST_COLLECTIONS = {'Vec', 'VecDeque', 'HashSet', 'BTreeSet', 'IndexSet', 'LinkedList'}
RUST_TRANSPARENT = {'Box', 'Arc', 'Rc', 'Cell', 'RefCell'}


def _rust_clean(rust_type: str) -> str:
    rust_type = rust_type.strip()
    rust_type = re.sub(r"^&\s*(?:'\w+\s+)?(?:mut\s+)?", "", rust_type)
    return rust_type.strip()


def rust_type_schema(rust_type: str) -> Schema:
    """Structural mapping: arrays keep their items, Option marks nullable."""
    rust_type = _rust_clean(rust_type)
    if rust_type.startswith("[") and rust_type.endswith("]"):
        inner = rust_type[1:-1].split(";", 1)[0]
        return Schema(type="array", items=rust_type_schema(inner))

    base = _last_segment(generic_base(rust_type), "::")
    args = generic_arguments(rust_type)

    if base == "Option" and args:
        schema = rust_type_schema(args[0])
        schema.nullable = True
        return schema
    if base in RUST_TRANSPARENT and args:
        return rust_type_schema(args[0])
    if base in RUST_COLLECTIONS:
        return Schema(type="array", items=rust_type_schema(args[0]) if args else None)
    if rust_type == "()":
        return Schema()
    # another struct or enum: owner: Owner
    if base not in RUST_TYPES and not args and re.match(r"^[A-Z]\w*$", base):
        return Schema.reference(base)
    return _scalar(RUST_TYPES, base)


def _rust_element_type(rust_type: str) -> str:
    """Strip Option/collection/smart-pointer wrappers down to the element type."""
    rust_type = _rust_clean(rust_type)
    while True:
        base = _last_segment(generic_base(rust_type), "::")
        args = generic_arguments(rust_type)
        if args and (base == "Option" or base in RUST_COLLECTIONS or base in RUST_TRANSPARENT):
            rust_type = _rust_clean(args[0])
            continue
        return rust_type


def rust_field_schema(rust_type: str, compose_optional_arrays: bool = False) -> Schema:
    """
    Property schema of a serde struct field.

    By default an ``Option<...>`` field takes its type from the innermost
    element (``Option<Vec<String>>`` -> nullable ``string``), the optional
    wrapper overwriting any array typing. With ``compose_optional_arrays``
    the wrappers compose into a nullable array of strings instead.
    """
    cleaned = _rust_clean(rust_type)
    is_optional = _last_segment(generic_base(cleaned), "::") == "Option"

    if is_optional and not compose_optional_arrays:
        schema = rust_type_schema(_rust_element_type(cleaned))
        schema.nullable = True
        return schema

    return rust_type_schema(cleaned)


def is_rust_optional(rust_type: str) -> bool:
    return _last_segment(generic_base(_rust_clean(rust_type)), "::") == "Option"


# =============================================================================
# C++ (Drogon)
# =============================================================================

CPP_TYPES: Dict[str, _S] = {
    'string': ('string', ''), 'wstring': ('string', ''), 'string_view': ('string', ''),
    'char': ('string', ''),
    'int': ('integer', 'int32'), 'short': ('integer', ''), 'long': ('integer', 'int64'),
    'unsigned': ('integer', ''), 'size_t': ('integer', ''),
    'int8_t': ('integer', ''), 'int16_t': ('integer', ''), 'int32_t': ('integer', 'int32'),
    'int64_t': ('integer', 'int64'), 'uint8_t': ('integer', ''), 'uint16_t': ('integer', ''),
    'uint32_t': ('integer', 'int32'), 'uint64_t': ('integer', 'int64'),
    'float': ('number', 'float'), 'double': ('number', 'double'),
    'bool': ('boolean', ''),
    'Date': ('string', 'date-time'),
    'Json::Value': ('object', ''), 'Value': ('object', ''), 'json': ('object', ''),
}

CPP_COLLECTIONS = {'vector', 'list', 'array', 'deque', 'set', 'unordered_set'}
CPP_MAPS = {'map', 'unordered_map', 'multimap'}
CPP_POINTERS = {'shared_ptr', 'unique_ptr', 'weak_ptr'}


def cpp_type_schema(cpp_type: str) -> Schema:
    cpp_type = re.sub(r'\b(const|volatile|mutable|static)\b', '', cpp_type)
    cpp_type = cpp_type.replace('&', '').replace('*', '').strip()
    cpp_type = re.sub(r'^(unsigned|signed)\s+(long\s+long|long|int|short|char)$', r'\2', cpp_type)
    cpp_type = re.sub(r'\s+', ' ', cpp_type)
    if cpp_type in ('long long', 'long int'):
        return Schema(type='integer', format='int64')

    base = generic_base(cpp_type)
    short = _last_segment(base, "::")
    args = generic_arguments(cpp_type)

    if short == 'optional' and args:
        schema = cpp_type_schema(args[0])
        schema.nullable = True
        return schema
    if short in CPP_POINTERS and args:
        return cpp_type_schema(args[0])
    if short in CPP_COLLECTIONS:
        return Schema(type='array', items=cpp_type_schema(args[0]) if args else None)
    if short in CPP_MAPS:
        return Schema(type='object')
    if base in CPP_TYPES:
        return _scalar(CPP_TYPES, base)
    return _scalar(CPP_TYPES, short)


# =============================================================================
# OAT++
# =============================================================================

OATPP_TYPES: Dict[str, _S] = {
    'String': ('string', ''),
    'Int8': ('integer', ''), 'UInt8': ('integer', ''),
    'Int16': ('integer', ''), 'UInt16': ('integer', ''),
    'Int32': ('integer', 'int32'), 'UInt32': ('integer', 'int32'),
    'Int64': ('integer', 'int64'), 'UInt64': ('integer', 'int64'),
    'Float32': ('number', 'float'), 'Float64': ('number', 'double'),
    'Boolean': ('boolean', ''),
    'Any': ('object', ''),
}


def oatpp_type_schema(oatpp_type: str) -> Schema:
    oatpp_type = oatpp_type.strip().replace('oatpp::', '')
    base = generic_base(oatpp_type)
    args = generic_arguments(oatpp_type)

    if base == 'Object':
        return Schema.reference(args[0]) if args else Schema(type='object')
    if base in ('List', 'Vector', 'UnorderedSet'):
        return Schema(type='array', items=oatpp_type_schema(args[0]) if args else None)
    if base in ('Fields', 'UnorderedFields'):
        return Schema(type='object')
    if base == 'Enum':
        return Schema(type='string')
    return _scalar(OATPP_TYPES, base)


# =============================================================================
# C#
# =============================================================================

CSHARP_TYPES: Dict[str, _S] = {
    'string': ('string', ''), 'String': ('string', ''), 'char': ('string', ''),
    'int': ('integer', 'int32'), 'Int32': ('integer', 'int32'),
    'long': ('integer', 'int64'), 'Int64': ('integer', 'int64'),
    'short': ('integer', ''), 'byte': ('integer', ''), 'uint': ('integer', ''),
    'ulong': ('integer', ''), 'ushort': ('integer', ''), 'sbyte': ('integer', ''),
    'float': ('number', 'float'), 'Single': ('number', 'float'),
    'double': ('number', 'double'), 'Double': ('number', 'double'),
    'decimal': ('number', 'double'), 'Decimal': ('number', 'double'),
    'bool': ('boolean', ''), 'Boolean': ('boolean', ''),
    'Guid': ('string', 'uuid'),
    'DateTime': ('string', 'date-time'), 'DateTimeOffset': ('string', 'date-time'),
    'DateOnly': ('string', 'date'), 'TimeOnly': ('string', 'time'),
    'TimeSpan': ('string', ''), 'Uri': ('string', 'uri'),
    'IFormFile': ('string', 'binary'), 'byte[]': ('string', 'byte'),
    'object': ('object', ''), 'dynamic': ('object', ''), 'JsonElement': ('object', ''),
}

CSHARP_VALUE_TYPES = {
    'int', 'long', 'short', 'byte', 'uint', 'ulong', 'ushort', 'sbyte', 'float', 'double',
    'decimal', 'bool', 'char', 'Guid', 'DateTime', 'DateTimeOffset', 'DateOnly', 'TimeOnly',
    'TimeSpan',
}

CSHARP_COLLECTIONS = {
    'List', 'IList', 'IEnumerable', 'ICollection', 'IReadOnlyList', 'IReadOnlyCollection',
    'HashSet', 'ISet', 'Collection', 'ReadOnlyCollection', 'ImmutableList', 'ImmutableArray',
}
CSHARP_MAPS = {'Dictionary', 'IDictionary', 'IReadOnlyDictionary', 'ImmutableDictionary'}


def csharp_type_schema(cs_type: str) -> Schema:
    cs_type = cs_type.strip()
    if cs_type in CSHARP_TYPES:
        return _scalar(CSHARP_TYPES, cs_type)
    if cs_type.endswith("?"):
        schema = csharp_type_schema(cs_type[:-1])
        schema.nullable = True
        return schema
    if cs_type.endswith("[]"):
        return Schema(type='array', items=csharp_type_schema(cs_type[:-2]))

    base = _last_segment(generic_base(cs_type), ".")
    args = generic_arguments(cs_type)
    if base == 'Nullable' and args:
        schema = csharp_type_schema(args[0])
        schema.nullable = True
        return schema
    if base in CSHARP_COLLECTIONS:
        return Schema(type='array', items=csharp_type_schema(args[0]) if args else None)
    if base in CSHARP_MAPS:
        return Schema(type='object')
    return _scalar(CSHARP_TYPES, base)


# =============================================================================
# JAVA / KOTLIN
# =============================================================================

JAVA_TYPES: Dict[str, _S] = {
    'String': ('string', ''), 'char': ('string', ''), 'Character': ('string', ''),
    'CharSequence': ('string', ''),
    'int': ('integer', 'int32'), 'Integer': ('integer', 'int32'),
    'long': ('integer', 'int64'), 'Long': ('integer', 'int64'),
    'short': ('integer', ''), 'Short': ('integer', ''),
    'byte': ('integer', ''), 'Byte': ('integer', ''),
    'BigInteger': ('integer', ''),
    'float': ('number', 'float'), 'Float': ('number', 'float'),
    'double': ('number', 'double'), 'Double': ('number', 'double'),
    'BigDecimal': ('number', ''),
    'boolean': ('boolean', ''), 'Boolean': ('boolean', ''),
    'UUID': ('string', 'uuid'),
    'LocalDateTime': ('string', 'date-time'), 'Instant': ('string', 'date-time'),
    'ZonedDateTime': ('string', 'date-time'), 'OffsetDateTime': ('string', 'date-time'),
    'Date': ('string', 'date-time'),
    'LocalDate': ('string', 'date'), 'LocalTime': ('string', 'time'),
    'URI': ('string', 'uri'), 'URL': ('string', 'uri'),
    'Object': ('object', ''),
}

JAVA_COLLECTIONS = {'List', 'ArrayList', 'LinkedList', 'Set', 'HashSet', 'TreeSet', 'Collection',
                    'Iterable', 'Flux', 'Publisher'}
JAVA_MAPS = {'Map', 'HashMap', 'TreeMap', 'LinkedHashMap'}
JAVA_WRAPPERS = {'ResponseEntity', 'HttpResponse', 'MutableHttpResponse', 'Mono', 'CompletableFuture',
                 'CompletionStage', 'Single', 'Maybe'}


def java_type_schema(java_type: str) -> Schema:
    java_type = re.sub(r'@\w+(?:\([^)]*\))?\s*', '', java_type).strip()
    if java_type.endswith("[]"):
        return Schema(type='array', items=java_type_schema(java_type[:-2]))

    base = _last_segment(generic_base(java_type), ".")
    args = generic_arguments(java_type)
    if base == 'Optional':
        schema = java_type_schema(args[0]) if args else Schema(type='object')
        schema.nullable = True
        return schema
    if base in JAVA_WRAPPERS and args:
        return java_type_schema(args[0])
    if base in JAVA_COLLECTIONS:
        return Schema(type='array', items=java_type_schema(args[0]) if args else None)
    if base in JAVA_MAPS:
        return Schema(type='object')
    return _scalar(JAVA_TYPES, base)


KOTLIN_TYPES: Dict[str, _S] = {
    'String': ('string', ''), 'Char': ('string', ''),
    'Int': ('integer', 'int32'), 'Long': ('integer', 'int64'),
    'Short': ('integer', ''), 'Byte': ('integer', ''),
    'UInt': ('integer', ''), 'ULong': ('integer', ''),
    'Float': ('number', 'float'), 'Double': ('number', 'double'),
    'Boolean': ('boolean', ''),
    'Any': ('object', ''), 'Unit': ('', ''),
}

KOTLIN_COLLECTIONS = {'List', 'MutableList', 'ArrayList', 'Set', 'MutableSet', 'HashSet',
                      'Collection', 'Iterable', 'Array', 'Sequence', 'Flow'}
KOTLIN_MAPS = {'Map', 'MutableMap', 'HashMap', 'LinkedHashMap'}
KOTLIN_ARRAYS: Dict[str, _S] = {
    'IntArray': ('integer', 'int32'), 'LongArray': ('integer', 'int64'),
    'DoubleArray': ('number', 'double'), 'FloatArray': ('number', 'float'),
    'BooleanArray': ('boolean', ''),
}


def kotlin_type_schema(kotlin_type: str) -> Schema:
    kotlin_type = kotlin_type.strip()
    if kotlin_type.endswith("?"):
        schema = kotlin_type_schema(kotlin_type[:-1])
        schema.nullable = True
        return schema

    base = _last_segment(generic_base(kotlin_type), ".")
    args = generic_arguments(kotlin_type)
    if base in KOTLIN_ARRAYS:
        return Schema(type='array', items=_scalar(KOTLIN_ARRAYS, base))
    if base in KOTLIN_COLLECTIONS:
        return Schema(type='array', items=kotlin_type_schema(args[0]) if args else None)
    if base in KOTLIN_MAPS:
        return Schema(type='object')
    if base in JAVA_WRAPPERS and args:
        return kotlin_type_schema(args[0])
    if base in KOTLIN_TYPES:
        return _scalar(KOTLIN_TYPES, base)
    # java.time, UUID and friends are shared with Java
    return _scalar(JAVA_TYPES, base)


# =============================================================================
# PYTHON
# =============================================================================

PYTHON_TYPES: Dict[str, _S] = {
    'str': ('string', ''), 'int': ('integer', ''), 'float': ('number', ''),
    'bool': ('boolean', ''), 'bytes': ('string', 'binary'),
    'Decimal': ('number', ''),
    'datetime': ('string', 'date-time'), 'date': ('string', 'date'), 'time': ('string', 'time'),
    'UUID': ('string', 'uuid'), 'UUID4': ('string', 'uuid'),
    'EmailStr': ('string', 'email'),
    'HttpUrl': ('string', 'uri'), 'AnyUrl': ('string', 'uri'), 'AnyHttpUrl': ('string', 'uri'),
    'dict': ('object', ''), 'Dict': ('object', ''), 'Mapping': ('object', ''),
    'Any': ('object', ''), 'object': ('object', ''),
    'list': ('array', ''), 'set': ('array', ''), 'tuple': ('array', ''),
}

PYTHON_COLLECTIONS = {'List', 'list', 'Set', 'set', 'FrozenSet', 'frozenset', 'Sequence',
                      'Tuple', 'tuple', 'Iterable'}


def python_type_schema(annotation: str) -> Schema:
    """Map an annotation's source text (``Optional[List[int]]``) to a schema."""
    annotation = annotation.strip().strip("'\"")

    union = split_arguments(annotation.replace("|", ","), angle=False) if "|" in annotation else []
    if len(union) > 1:
        members = [u for u in union if u != "None"]
        schema = python_type_schema(members[0]) if len(members) == 1 else Schema(type='object')
        if len(members) < len(union):
            schema.nullable = True
        return schema

    base = annotation.split("[", 1)[0].strip()
    base = _last_segment(base, ".")
    inner = ""
    if "[" in annotation and annotation.endswith("]"):
        inner = annotation[annotation.index("[") + 1:-1]
    args = split_arguments(inner) if inner else []

    if base == 'Optional' and args:
        schema = python_type_schema(args[0])
        schema.nullable = True
        return schema
    if base == 'Union' and args:
        return python_type_schema(" | ".join(args))
    if base == 'Annotated' and args:
        return python_type_schema(args[0])
    if base == 'Literal':
        values = [a.strip("'\"") for a in args]
        return Schema(type='string' if all(a[:1] in "'\"" for a in args) else 'integer', enum=values)
    if base in PYTHON_COLLECTIONS:
        return Schema(type='array', items=python_type_schema(args[0]) if args else None)
    if base in PYTHON_TYPES:
        return _scalar(PYTHON_TYPES, base)
    if base in ('constr', 'conint', 'confloat'):
        return Schema(type={'constr': 'string', 'conint': 'integer', 'confloat': 'number'}[base])
    return Schema(type='object')


# =============================================================================
# ECTO
# =============================================================================

ECTO_TYPES: Dict[str, _S] = {
    'string': ('string', ''),
    'integer': ('integer', ''), 'id': ('integer', ''),
    'float': ('number', ''), 'decimal': ('number', ''),
    'boolean': ('boolean', ''),
    'date': ('string', 'date'), 'time': ('string', 'time'), 'time_usec': ('string', 'time'),
    'datetime': ('string', 'date-time'), 'utc_datetime': ('string', 'date-time'),
    'naive_datetime': ('string', 'date-time'), 'utc_datetime_usec': ('string', 'date-time'),
    'naive_datetime_usec': ('string', 'date-time'),
    'uuid': ('string', 'uuid'), 'binary_id': ('string', 'uuid'),
    'binary': ('string', 'binary'),
    'map': ('object', ''),
}


def ecto_type_schema(ecto_type: str) -> Schema:
    """``:string`` / ``Ecto.UUID`` / ``{:array, :string}``; unknown -> string."""
    ecto_type = ecto_type.strip()
    array = re.match(r'^\{\s*:array\s*,\s*(.+)\}$', ecto_type)
    if array:
        return Schema(type='array', items=ecto_type_schema(array.group(1)))
    if re.match(r'^\{\s*:map\s*,', ecto_type):
        return Schema(type='object')
    if ecto_type == 'Ecto.UUID':
        return Schema(type='string', format='uuid')
    if ecto_type.startswith('Ecto.Enum'):
        return Schema(type='string')
    return _scalar(ECTO_TYPES, ecto_type.lstrip(':'), default=('string', ''))


# =============================================================================
# TYPESCRIPT
# =============================================================================

TYPESCRIPT_TYPES: Dict[str, _S] = {
    'string': ('string', ''), 'number': ('number', ''), 'bigint': ('integer', ''),
    'boolean': ('boolean', ''), 'Date': ('string', 'date-time'),
    'object': ('object', ''), 'any': ('object', ''), 'unknown': ('object', ''),
    'Record': ('object', ''), 'Map': ('object', ''),
}


def typescript_type_schema(ts_type: str) -> Schema:
    ts_type = ts_type.strip()
    members = [m.strip() for m in ts_type.split("|")] if "|" in ts_type and "<" not in ts_type else []
    if members:
        non_null = [m for m in members if m not in ("null", "undefined")]
        literals = [m for m in non_null if m[:1] in "'\"`"]
        if non_null and len(literals) == len(non_null):
            schema = Schema(type='string', enum=[m[1:-1] for m in literals])
        elif len(non_null) == 1:
            schema = typescript_type_schema(non_null[0])
        else:
            schema = Schema(type='object')
        if len(non_null) < len(members):
            schema.nullable = True
        return schema

    if ts_type.endswith("[]"):
        return Schema(type='array', items=typescript_type_schema(ts_type[:-2]))
    base = generic_base(ts_type)
    args = generic_arguments(ts_type)
    if base in ('Array', 'ReadonlyArray', 'Set'):
        return Schema(type='array', items=typescript_type_schema(args[0]) if args else None)
    return _scalar(TYPESCRIPT_TYPES, base)
