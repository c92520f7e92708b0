"""Oat++ ENDPOINT macros and DTO_FIELD schemas."""

from extractors.oatpp import OatppExtractor

CONTROLLER = '''
#include "oatpp/web/server/api/ApiController.hpp"

class UserController : public oatpp::web::server::api::ApiController {
public:
  ENDPOINT("GET", "/users/{userId}", getUser, PATH(Int32, userId)) {
    return createResponse(Status::CODE_200, "ok");
  }

  ENDPOINT("POST", "/users", createUser,
           BODY_DTO(Object<UserDto>, dto),
           QUERY(String, source, "src"),
           HEADER(String, token, "X-Token")) {
    return createDtoResponse(Status::CODE_200, dto);
  }
};
'''

DTO = '''
#include "oatpp/core/macro/codegen.hpp"

class UserDto : public oatpp::DTO {
  DTO_INIT(UserDto, DTO)

  DTO_FIELD(Int32, id);
  DTO_FIELD(String, name, "user-name");
  DTO_FIELD(List<String>, roles);
};
'''


def test_endpoint_routes(make_source):
    routes = OatppExtractor().extract_routes([make_source(CONTROLLER, "cpp")])

    assert [(r.method, r.path) for r in routes] == [("GET", "/users/{userId}"), ("POST", "/users")]
    get_user = routes[0]
    assert get_user.handler == "getUser"
    assert get_user.operation_id == "getGetUser"
    assert get_user.source_line == 5
    assert get_user.parameters[0].schema.type == "integer"
    assert get_user.parameters[0].schema.format == "int32"


def test_endpoint_body_query_and_header(make_source):
    create_user = OatppExtractor().extract_routes([make_source(CONTROLLER, "cpp")])[1]

    assert [(p.name, p.location) for p in create_user.parameters] == [("src", "query"), ("X-Token", "header")]
    body = create_user.request_body.to_dict()
    assert body["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/UserDto"}


def test_dto_schema(make_source):
    schemas = OatppExtractor().extract_schemas([make_source(DTO, "cpp")])

    assert [s.title for s in schemas] == ["UserDto"]
    props = schemas[0].properties
    assert list(props) == ["id", "user-name", "roles"]
    assert props["roles"].type == "array"
    assert props["roles"].items.type == "string"
