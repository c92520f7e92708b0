"""
OpenAPI 3.0 document assembly from extracted routes and schemas.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

import yaml

from .base import ConfigError, Route, Schema

logger = logging.getLogger("route_extractor.openapi")

OPENAPI_VERSION = "3.0.3"
STANDARD_METHODS = ["get", "put", "post", "delete", "options", "head", "patch"]


def _operation(route: Route, operation_id: str) -> Dict[str, Any]:
    op: Dict[str, Any] = {"operationId": operation_id}
    if route.tags:
        op["tags"] = list(route.tags)
    if route.parameters:
        op["parameters"] = [p.to_dict() for p in route.parameters]
    if route.request_body is not None:
        op["requestBody"] = route.request_body.to_dict()
    if route.responses:
        op["responses"] = {code: r.to_dict() for code, r in route.responses.items()}
    else:
        op["responses"] = {"200": {"description": "Successful response"}}
    op["x-source"] = f"{route.source_file}:{route.source_line}"
    if route.handler:
        op["x-handler"] = route.handler
    return op


def build_openapi_document(routes: List[Route], schemas: List[Schema],
                           title: str = "Extracted API", version: str = "1.0.0") -> Dict[str, Any]:
    """
    Group routes by path and method into an OpenAPI 3.0.3 document.

    A route with method ``ALL`` is expanded to every standard method not
    already declared for its path. Operation IDs are made unique with
    ``_2``, ``_3`` suffixes in route order. Schemas are keyed by title; the
    first schema wins when two share a title.
    """
    doc: Dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": {"title": title, "version": version},
        "paths": {},
        "components": {"schemas": {}},
    }

    seen_ids: Dict[str, int] = {}

    def unique_id(op_id: str) -> str:
        count = seen_ids.get(op_id, 0) + 1
        seen_ids[op_id] = count
        return op_id if count == 1 else f"{op_id}_{count}"

    declared = {(r.path, r.method.lower()) for r in routes if r.method != "ALL"}

    for route in routes:
        path_item = doc["paths"].setdefault(route.path, {})
        if route.method == "ALL":
            methods = [m for m in STANDARD_METHODS if (route.path, m) not in declared]
        else:
            methods = [route.method.lower()]

        for method in methods:
            if method in path_item:
                logger.debug(f"Duplicate operation {method.upper()} {route.path} from {route.source_file}")
                continue
            op_id = route.operation_id
            if route.method == "ALL":
                op_id = f"{method}{op_id[3:]}" if op_id.startswith("all") else f"{op_id}_{method}"
            path_item[method] = _operation(route, unique_id(op_id))

    for schema in schemas:
        if not schema.title:
            continue
        if schema.title in doc["components"]["schemas"]:
            logger.debug(f"Duplicate schema '{schema.title}' ignored")
            continue
        doc["components"]["schemas"][schema.title] = schema.to_dict()

    return doc


def dump_document(doc: Dict[str, Any], fmt: str = "json") -> str:
    if fmt == "json":
        return json.dumps(doc, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)
    raise ConfigError(f"Unknown output format '{fmt}'")
