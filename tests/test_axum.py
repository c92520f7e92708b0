"""Axum router chains, nest prefixes and serde schemas."""

from extractors.axum import AxumExtractor
from extractors.config import ExtractorConfig

ROUTER = '''
use axum::{routing::{delete, get}, Router};

async fn list_users() {}

pub fn app() -> Router {
    Router::new()
        .route("/users", get(list_users).post(create_user))
        .route("/users/:id", get(get_user))
        .nest("/api", api_routes())
}

fn api_routes() -> Router {
    Router::new().route("/items/{id}", delete(remove_item))
}
'''


def test_chained_methods_share_route_line(make_source):
    routes = AxumExtractor().extract_routes([make_source(ROUTER, "rust", "src/app.rs")])

    users = [r for r in routes if r.path == "/users"]
    assert [(r.method, r.path) for r in users] == [("GET", "/users"), ("POST", "/users")]
    assert {r.source_line for r in users} == {7}


def test_route_fields(make_source):
    routes = AxumExtractor().extract_routes([make_source(ROUTER, "rust", "src/app.rs")])
    by_key = {(r.method, r.path): r for r in routes}

    get_user = by_key[("GET", "/users/{id}")]
    assert get_user.handler == "get_user"
    assert get_user.operation_id == "getGet_user"
    assert get_user.tags == ["users"]
    assert [p.name for p in get_user.parameters] == ["id"]
    assert get_user.framework == "Axum"
    assert get_user.source_file == "src/app.rs"


def test_nest_prefix_applied_to_router_function(make_source):
    routes = AxumExtractor().extract_routes([make_source(ROUTER, "rust")])
    assert ("DELETE", "/api/items/{id}") in [(r.method, r.path) for r in routes]


def test_nest_prefix_disabled(make_source):
    extractor = AxumExtractor(ExtractorConfig(propagate_prefixes=False))
    routes = extractor.extract_routes([make_source(ROUTER, "rust")])
    assert ("DELETE", "/items/{id}") in [(r.method, r.path) for r in routes]


def test_inline_nested_router(make_source):
    source = make_source('''
        use axum::Router;

        fn app() -> Router {
            Router::new().nest("/v2", Router::new().route("/ping", get(ping)))
        }
    ''', "rust")
    routes = AxumExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/v2/ping")]


def test_file_without_axum_import_is_ignored(make_source):
    source = make_source('''
        fn main() {
            thing.route("/x", get(h));
        }
    ''', "rust")
    assert AxumExtractor().extract_routes([source]) == []


def test_unbalanced_route_call_is_abandoned(make_source):
    source = make_source('''
        use axum::Router;

        fn app() -> Router {
            Router::new().route("/ok", get(ok))
        }

        fn broken() {
            x.route("/bad", get(h)
        }
    ''', "rust")
    routes = AxumExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/ok")]


def test_parse_failure_skips_file(make_source):
    broken = make_source('use axum::Router;\n/* never closed\nfn a() {}', "rust", "src/broken.rs")
    good = make_source('use axum::Router;\nfn a() { Router::new().route("/a", get(a)) }', "rust", "src/good.rs")

    extractor = AxumExtractor()
    routes = extractor.extract_routes([broken, good])

    assert [r.source_file for r in routes] == ["src/good.rs"]
    assert extractor.stats["files_skipped"] == 1
    assert extractor.stats["files_scanned"] == 2


def test_nest_through_method_calls(make_source):
    source = make_source('''
        use axum::{routing::get, Router};

        pub fn app(state: AppState) -> Router {
            let users = Router::new().route("/{id}", get(show_user));
            Router::new()
                .nest("/users", users.clone())
                .nest("/admin/users", users.with_state(state))
        }
    ''', "rust")
    routes = AxumExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/users/{id}"), ("GET", "/admin/users/{id}")]
    assert {r.source_line for r in routes} == {4}


def test_other_languages_are_not_processed(make_source):
    source = make_source('app.route("/x", get(h))', "python")
    assert AxumExtractor().extract_routes([source]) == []


class TestSerdeSchemas:
    STRUCT = '''
        use serde::{Deserialize, Serialize};

        #[derive(Debug, Serialize, Deserialize)]
        #[serde(rename_all = "camelCase")]
        pub struct User {
            pub user_id: u64,
            #[serde(rename = "mail")]
            pub email: String,
            pub posts: Option<Vec<String>>,
            #[serde(default)]
            pub active: bool,
            #[serde(skip)]
            pub secret: String,
        }

        struct Internal {
            value: i32,
        }
    '''

    def test_struct_schema(self, make_source):
        schemas = AxumExtractor().extract_schemas([make_source(self.STRUCT, "rust")])

        assert [s.title for s in schemas] == ["User"]
        user = schemas[0]
        assert list(user.properties) == ["userId", "mail", "posts", "active"]
        assert user.properties["userId"].type == "integer"
        assert user.required == ["userId", "mail"]

    def test_option_vec_is_nullable_string_by_default(self, make_source):
        user = AxumExtractor().extract_schemas([make_source(self.STRUCT, "rust")])[0]
        posts = user.properties["posts"]
        assert posts.type == "string"
        assert posts.nullable is True
        assert "posts" not in user.required

    def test_option_vec_composes_when_configured(self, make_source):
        extractor = AxumExtractor(ExtractorConfig(compose_optional_arrays=True))
        posts = extractor.extract_schemas([make_source(self.STRUCT, "rust")])[0].properties["posts"]
        assert posts.type == "array"
        assert posts.items.type == "string"
        assert posts.nullable is True

    def test_named_field_types_are_references(self, make_source):
        source = make_source('''
            #[derive(Serialize)]
            pub struct Post {
                pub owner: Owner,
                pub tags: Vec<Tag>,
            }
        ''', "rust")
        post = AxumExtractor().extract_schemas([source])[0]
        assert post.properties["owner"].ref == "#/components/schemas/Owner"
        assert post.properties["tags"].items.ref == "#/components/schemas/Tag"
