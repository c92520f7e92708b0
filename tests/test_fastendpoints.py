"""FastEndpoints endpoint classes and C# DTO schemas."""

import pytest

from extractors.fastendpoints import ENDPOINT_MATCHERS, FastEndpointsExtractor, match_endpoint_base

ENDPOINTS = '''
using FastEndpoints;

public class CreateUserEndpoint : Endpoint<CreateUserRequest, UserResponse>
{
    public override void Configure()
    {
        Post("/api/users");
        AllowAnonymous();
    }

    public override async Task HandleAsync(CreateUserRequest req, CancellationToken ct)
    {
        await SendAsync(new UserResponse());
    }
}

public class GetUserEndpoint : EndpointWithoutRequest<UserResponse>
{
    public override void Configure()
    {
        Get("/api/users/{id:int}");
    }
}

public class DeleteUserEndpoint : Endpoint<DeleteUserRequest>
{
    public override void Configure()
    {
        Routes("/api/users/{id}", "/api/accounts/{id}");
        Verbs(Http.DELETE);
    }
}

public class PingEndpoint : EndpointWithoutRequest
{
    public override void Configure() { Routes("/ping"); }
}

public class NotAnEndpoint : BaseService
{
    public void Get(string key) { }
}
'''


@pytest.fixture
def routes(make_source):
    return FastEndpointsExtractor().extract_routes([make_source(ENDPOINTS, "csharp", "Features/Users.cs")])


def test_routes_per_endpoint_class(routes):
    assert [(r.method, r.path, r.handler) for r in routes] == [
        ("POST", "/api/users", "CreateUserEndpoint"),
        ("GET", "/api/users/{id}", "GetUserEndpoint"),
        ("DELETE", "/api/users/{id}", "DeleteUserEndpoint"),
        ("DELETE", "/api/accounts/{id}", "DeleteUserEndpoint"),
        ("GET", "/ping", "PingEndpoint"),
    ]


def test_request_and_response_references(routes):
    create, get_user, delete_user = routes[0], routes[1], routes[2]

    assert create.request_body.to_dict()["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/CreateUserRequest"}
    assert create.responses["200"].to_dict()["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/UserResponse"}
    assert get_user.request_body is None
    assert "200" in get_user.responses
    assert delete_user.request_body is None
    assert delete_user.responses == {}


def test_operation_ids_tags_and_lines(routes):
    create, get_user, _, _, ping = routes
    assert create.operation_id == "postCreateUser"
    assert get_user.operation_id == "getGetUser"
    assert create.tags == ["User"]
    assert ping.tags == ["Ping"]
    assert create.source_line == 7


def test_matchers_are_tried_in_order():
    assert ENDPOINT_MATCHERS[0].label == "Endpoint<Req, Resp>"
    assert match_endpoint_base("Endpoint<A, B>").request == "A"
    assert match_endpoint_base("Endpoint<A, B>").response == "B"
    assert match_endpoint_base("Endpoint<A>").request == "A"
    assert match_endpoint_base("Endpoint<A>").response == ""
    assert match_endpoint_base("EndpointWithoutRequest<R>").response == "R"
    assert match_endpoint_base("EndpointWithMapping<A, B, Entity>").response == "B"
    assert match_endpoint_base("Ep.Req<A>.Res<B>") == ("A", "B")
    assert match_endpoint_base("BaseService") is None


def test_dto_schemas(make_source):
    source = make_source('''
        public class CreateUserRequest
        {
            [Required]
            public string? Name { get; set; }
            public int Age { get; set; }
            public string Email { get; set; } = "";
            public required string Password { get; init; }
            public List<string>? Tags { get; set; }
        }

        public record UserResponse(Guid Id, string Name, string? Nickname = null);

        public class Helper
        {
            public int X { get; set; }
        }
    ''', "csharp")
    schemas = FastEndpointsExtractor().extract_schemas([source])

    assert [s.title for s in schemas] == ["CreateUserRequest", "UserResponse"]
    request, response = schemas
    assert list(request.properties) == ["Name", "Age", "Email", "Password", "Tags"]
    assert request.required == ["Name", "Age", "Password"]
    assert request.properties["Tags"].type == "array"
    assert request.properties["Tags"].nullable is True
    assert response.properties["Id"].format == "uuid"
    assert response.required == ["Id", "Name"]
