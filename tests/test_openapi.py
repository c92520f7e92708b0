"""OpenAPI document assembly and serialization."""

import json

import pytest
import yaml

from extractors.base import ConfigError, Parameter, RequestBody, Route, Schema
from extractors.openapi import OPENAPI_VERSION, build_openapi_document, dump_document


def _route(method, path, op_id, **kwargs):
    return Route(method=method, path=path, operation_id=op_id, source_file="src/app.rs", source_line=3,
                 framework="Axum", **kwargs)


def test_document_skeleton():
    doc = build_openapi_document([], [], title="Svc", version="2.0.0")
    assert doc == {
        "openapi": OPENAPI_VERSION,
        "info": {"title": "Svc", "version": "2.0.0"},
        "paths": {},
        "components": {"schemas": {}},
    }


def test_operation_fields():
    route = _route("POST", "/users/{id}", "postUsersByid", handler="create_user", tags=["users"],
                   parameters=[Parameter("id", "path", True)],
                   request_body=RequestBody.json(Schema.reference("NewUser")))
    op = build_openapi_document([route], [])["paths"]["/users/{id}"]["post"]

    assert op["operationId"] == "postUsersByid"
    assert op["tags"] == ["users"]
    assert op["parameters"] == [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}]
    assert op["requestBody"]["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/NewUser"}
    assert op["responses"] == {"200": {"description": "Successful response"}}
    assert op["x-source"] == "src/app.rs:3"
    assert op["x-handler"] == "create_user"


def test_duplicate_operation_ids_are_suffixed():
    routes = [_route("GET", "/a", "getThing"), _route("GET", "/b", "getThing"), _route("GET", "/c", "getThing")]
    paths = build_openapi_document(routes, [])["paths"]
    assert [paths[p]["get"]["operationId"] for p in ("/a", "/b", "/c")] == ["getThing", "getThing_2", "getThing_3"]


def test_duplicate_method_and_path_keeps_first():
    routes = [_route("GET", "/a", "first"), _route("GET", "/a", "second")]
    assert build_openapi_document(routes, [])["paths"]["/a"]["get"]["operationId"] == "first"


def test_all_expands_to_undeclared_methods():
    routes = [
        _route("GET", "/users", "getUsers"),
        _route("ALL", "/users", "allUsers"),
        _route("POST", "/users", "postUsers"),
        _route("ALL", "/any", "handleAny"),
    ]
    paths = build_openapi_document(routes, [])["paths"]

    users = paths["/users"]
    assert list(users) == ["get", "put", "delete", "options", "head", "patch", "post"]
    assert users["post"]["operationId"] == "postUsers"
    assert users["patch"]["operationId"] == "patchUsers"
    assert paths["/any"]["get"]["operationId"] == "handleAny_get"
    assert len(paths["/any"]) == 7


def test_schemas_keyed_by_title_first_wins():
    schemas = [
        Schema(title="User", type="object", properties={"id": Schema(type="integer")}),
        Schema(title="User", type="object"),
        Schema(type="object"),
    ]
    components = build_openapi_document([], schemas)["components"]["schemas"]
    assert list(components) == ["User"]
    assert components["User"]["properties"] == {"id": {"type": "integer"}}


def test_dump_json_and_yaml():
    doc = build_openapi_document([_route("GET", "/a", "getA")], [])
    assert json.loads(dump_document(doc, "json")) == doc
    assert yaml.safe_load(dump_document(doc, "yaml")) == doc


def test_dump_unknown_format():
    with pytest.raises(ConfigError):
        dump_document({}, "xml")
