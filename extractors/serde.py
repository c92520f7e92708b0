"""Serde struct -> Schema mapping shared by the Axum and Rocket plugins."""

from __future__ import annotations

import re
from typing import Callable, Dict, List

from .base import Schema
from .deterministic.type_mapping import is_rust_optional, rust_field_schema
from .parsers.rust import RustSource, RustStruct, attribute_options

SERDE_DERIVES = {"Serialize", "Deserialize"}


def _words(name: str) -> List[str]:
    return [w for w in re.split(r'_+', name) if w]


RENAME_RULES: Dict[str, Callable[[str], str]] = {
    "lowercase": lambda n: n.replace("_", "").lower(),
    "UPPERCASE": lambda n: n.replace("_", "").upper(),
    "camelCase": lambda n: "".join(w if i == 0 else w.capitalize() for i, w in enumerate(_words(n))),
    "PascalCase": lambda n: "".join(w.capitalize() for w in _words(n)),
    "snake_case": lambda n: n,
    "SCREAMING_SNAKE_CASE": lambda n: n.upper(),
    "kebab-case": lambda n: "-".join(_words(n)),
    "SCREAMING-KEBAB-CASE": lambda n: "-".join(_words(n)).upper(),
}


def is_serde_struct(struct: RustStruct) -> bool:
    return bool(SERDE_DERIVES.intersection(struct.derives()))


def serde_struct_schema(struct: RustStruct, compose_optional_arrays: bool = False) -> Schema:
    """
    Object schema for one serde struct.

    ``rename`` changes the property key; ``rename_all`` on the struct applies
    to every field without its own rename. ``skip`` fields are dropped and
    ``default`` fields are not required.
    """
    schema = Schema(title=struct.name, type="object")
    rename_all = attribute_options(struct.attributes, "serde").get("rename_all") or ""
    rule = RENAME_RULES.get(rename_all)

    for field in struct.fields:
        options = attribute_options(field.attributes, "serde")
        if "skip" in options or "skip_serializing" in options or "flatten" in options:
            continue

        key = options.get("rename") or (rule(field.name) if rule else field.name)
        prop = rust_field_schema(field.type, compose_optional_arrays)
        schema.properties[key] = prop

        if not is_rust_optional(field.type) and "default" not in options:
            schema.required.append(key)

    return schema


def serde_struct_schemas(source: RustSource, compose_optional_arrays: bool = False) -> List[Schema]:
    return [serde_struct_schema(s, compose_optional_arrays) for s in source.structs if is_serde_struct(s)]
