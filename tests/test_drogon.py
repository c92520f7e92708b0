"""Drogon method macros, registerHandler lambdas and DTO structs."""

from extractors.drogon import DrogonExtractor

CONTROLLER = '''
#include <drogon/HttpController.h>
using namespace drogon;

class UserController : public drogon::HttpController<UserController>
{
  public:
    METHOD_LIST_BEGIN
    ADD_METHOD_TO(UserController::getUser, "/users/{id}", Get);
    ADD_METHOD_TO(UserController::updateUser, "/users/{id}", Put, Patch);
    METHOD_ADD(UserController::list, "/list", Get, "LoginFilter");
    METHOD_LIST_END
};
'''

MAIN = '''
#include <drogon/drogon.h>

int main()
{
    drogon::app().registerHandler(
        "/health",
        [](const HttpRequestPtr &req, std::function<void(const HttpResponsePtr &)> &&callback) {
            callback(HttpResponse::newHttpResponse());
        },
        {Get, Post});
    drogon::app().run();
}
'''


def test_method_macros(make_source):
    routes = DrogonExtractor().extract_routes([make_source(CONTROLLER, "cpp", "src/UserController.h")])

    assert [(r.method, r.path) for r in routes] == [
        ("GET", "/users/{id}"),
        ("PUT", "/users/{id}"),
        ("PATCH", "/users/{id}"),
        ("GET", "/list"),
    ]
    get_user = routes[0]
    assert get_user.handler == "UserController.getUser"
    assert get_user.operation_id == "getGetUser"
    assert get_user.tags == ["User"]
    assert get_user.source_line == 8


def test_register_handler_lambda(make_source):
    routes = DrogonExtractor().extract_routes([make_source(MAIN, "cpp", "src/main.cc")])

    assert [(r.method, r.path) for r in routes] == [("GET", "/health"), ("POST", "/health")]
    assert routes[0].handler == "lambda"
    assert routes[0].operation_id == "getHealth"
    assert routes[0].tags == ["health"]


def test_duplicate_routes_across_files_are_dropped(make_source):
    files = [
        make_source(CONTROLLER, "cpp", "src/UserController.h"),
        make_source(CONTROLLER, "cpp", "src/UserController.cc"),
    ]
    routes = DrogonExtractor().extract_routes(files)
    assert len(routes) == 4
    assert {r.source_file for r in routes} == {"src/UserController.h"}


def test_dto_struct_schema(make_source):
    source = make_source('''
        #include <optional>
        #include <string>

        struct CreateUserRequest {
            std::string name;
            int age;
            std::optional<std::string> nickname;
            std::vector<std::string> roles;
        };

        struct Helper {
            int ignored;
        };
    ''', "cpp")
    schemas = DrogonExtractor().extract_schemas([source])

    assert [s.title for s in schemas] == ["CreateUserRequest"]
    schema = schemas[0]
    assert schema.properties["age"].type == "integer"
    assert schema.properties["nickname"].nullable is True
    assert schema.properties["roles"].items.type == "string"
    assert schema.required == ["name", "age", "roles"]
