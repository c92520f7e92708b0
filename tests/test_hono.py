"""Hono routers, route mounting and zValidator request schemas."""

import pytest

from extractors.hono import HonoExtractor

APP = '''
import { Hono } from 'hono'
import { zValidator } from '@hono/zod-validator'
import { z } from 'zod'

const CreateUser = z.object({
  name: z.string().min(1),
  email: z.string().email(),
  age: z.number().int().optional(),
})

const ListQuery = z.object({ page: z.string().optional(), q: z.string() })

const app = new Hono()
const users = new Hono()

users.get('/', (c) => c.json([]))
users.post('/', zValidator('json', CreateUser), createUser)
users.get('/:id', zValidator('query', ListQuery), (c) => c.json({}))

app.route('/users', users)
app.on('PURGE', '/cache', (c) => c.text('ok'))

export default app
'''


@pytest.fixture
def routes(make_source):
    return HonoExtractor().extract_routes([make_source(APP, "typescript", "src/index.ts")])


def test_mounted_routes(routes):
    assert [(r.method, r.path) for r in routes] == [
        ("GET", "/users"),
        ("POST", "/users"),
        ("GET", "/users/{id}"),
        ("PURGE", "/cache"),
    ]
    assert routes[0].source_line == 16


def test_path_based_operation_ids(routes):
    assert [r.operation_id for r in routes] == ["getUsers", "postUsers", "getUsersByid", "purgeCache"]
    assert routes[0].tags == ["users"]


def test_named_handler_is_recorded(routes):
    assert routes[1].handler == "createUser"
    assert routes[0].handler == ""


def test_json_validator_becomes_request_body(routes):
    body = routes[1].request_body
    assert body.required is True
    assert body.content["application/json"].schema.ref == "#/components/schemas/CreateUser"


def test_query_validator_becomes_parameters(routes):
    params = [(p.name, p.location, p.required) for p in routes[2].parameters]
    assert params == [("id", "path", True), ("page", "query", False), ("q", "query", True)]


def test_requires_hono_import(make_source):
    source = make_source('''
        const express = require('express')
        const app = express()
        app.get('/x', handler)
    ''', "javascript", "app.js")
    assert HonoExtractor().extract_routes([source]) == []


def test_ignores_python_sources(make_source):
    source = make_source("@app.get('/x')\ndef x(): pass\n", "python", "app.py")
    assert HonoExtractor().extract_routes([source]) == []


def test_base_path(make_source):
    source = make_source('''
        import { Hono } from 'hono'
        const api = new Hono().basePath('/api')
        api.delete('/items/:id', removeItem)
    ''', "typescript")
    routes = HonoExtractor().extract_routes([source])
    assert [(r.method, r.path, r.operation_id) for r in routes] == [("DELETE", "/api/items/{id}", "deleteApiItemsByid")]


def test_zod_schemas(make_source):
    schemas = HonoExtractor().extract_schemas([make_source(APP, "typescript", "src/index.ts")])

    assert [s.title for s in schemas] == ["CreateUser", "ListQuery"]
    create = schemas[0]
    assert create.required == ["name", "email"]
    assert create.properties["name"].min_length == 1
    assert create.properties["email"].format == "email"
    assert create.properties["age"].type == "integer"
    assert schemas[1].required == ["q"]


def test_chained_constructor_routes(make_source):
    source = make_source('''
        import { Hono } from 'hono'
        export const api = new Hono()
          .get('/a', listA)
          .post('/b', createB)
    ''', "typescript", "src/api.ts")
    routes = HonoExtractor().extract_routes([source])
    assert [(r.method, r.path, r.handler) for r in routes] == [("GET", "/a", "listA"), ("POST", "/b", "createB")]
    assert routes[0].source_line == 3


def test_chained_routes_after_base_path(make_source):
    source = make_source('''
        import { Hono } from 'hono'
        const v1 = new Hono().basePath('/v1').get('/ping', ping)
    ''', "typescript")
    routes = HonoExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/v1/ping")]


def test_imported_app_alongside_local_router(make_source):
    source = make_source('''
        import { Hono } from 'hono'
        import { app } from './app'
        const admin = new Hono()
        admin.get('/users', listUsers)
        app.get('/health', (c) => c.text('ok'))
    ''', "typescript", "src/routes.ts")
    routes = HonoExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/users"), ("GET", "/health")]


def test_context_getters_are_not_routes(make_source):
    source = make_source('''
        import { Hono } from 'hono'
        const app = new Hono()
        app.get('/me', (c) => {
          const user = c.get('user')
          return c.json(cache.get(user.id, 'fallback'))
        })
    ''', "typescript")
    routes = HonoExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/me")]
