"""Rocket route attributes, mount prefixes and typed bodies."""

from extractors.config import ExtractorConfig
from extractors.rocket import RocketExtractor

HANDLERS = '''
#[macro_use] extern crate rocket;
use rocket::serde::json::Json;

#[get("/users/<id>?<verbose>")]
fn get_user(id: u64, verbose: Option<bool>) -> Option<Json<User>> {
    None
}

#[post("/users", data = "<user>")]
fn create_user(user: Json<NewUser>) -> Json<User> {
    todo!()
}

#[delete("/files/<path..>")]
fn remove_file(path: PathBuf) {}
'''

LAUNCH = '''
use rocket::routes;

#[launch]
fn rocket() -> _ {
    rocket::build()
        .mount("/api", routes![handlers::get_user, handlers::create_user])
}
'''


def _extract(make_source, config=None):
    files = [
        make_source(HANDLERS, "rust", "src/handlers.rs"),
        make_source(LAUNCH, "rust", "src/main.rs"),
    ]
    return RocketExtractor(config).extract_routes(files)


def test_mount_prefixes_apply_across_files(make_source):
    routes = _extract(make_source)
    assert [(r.method, r.path) for r in routes] == [
        ("GET", "/api/users/{id}"),
        ("POST", "/api/users"),
        ("DELETE", "/files/{path}"),
    ]


def test_mount_prefixes_disabled(make_source):
    routes = _extract(make_source, ExtractorConfig(propagate_prefixes=False))
    assert [r.path for r in routes] == ["/users/{id}", "/users", "/files/{path}"]


def test_query_and_path_parameters(make_source):
    get_user = _extract(make_source)[0]

    assert [(p.name, p.location) for p in get_user.parameters] == [("id", "path"), ("verbose", "query")]
    verbose = get_user.parameters[1]
    assert verbose.required is False
    assert verbose.schema.type == "boolean"
    assert get_user.source_line == 4
    assert get_user.handler == "get_user"
    assert get_user.operation_id == "getGet_user"


def test_body_and_response_references(make_source):
    get_user, create_user, remove_file = _extract(make_source)

    assert get_user.request_body is None
    assert get_user.responses["200"].to_dict()["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/User"}

    body = create_user.request_body.to_dict()
    assert body["required"] is True
    assert body["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/NewUser"}

    assert remove_file.responses == {}


def test_rocket_schemas(make_source):
    source = make_source('''
        use rocket::serde::{Deserialize, Serialize};

        #[derive(Serialize, Deserialize)]
        #[serde(crate = "rocket::serde")]
        struct NewUser {
            name: String,
            age: Option<u8>,
        }
    ''', "rust")
    schemas = RocketExtractor().extract_schemas([source])
    assert schemas[0].title == "NewUser"
    assert schemas[0].required == ["name"]
    assert schemas[0].properties["age"].nullable is True
