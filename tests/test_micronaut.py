"""Micronaut annotation scanning for Java and Kotlin controllers."""

import pytest

from extractors.micronaut import Idle, MicronautExtractor, PendingMethod, annotation_path, transition

JAVA_CONTROLLER = '''
package example;

import io.micronaut.http.annotation.*;

@Controller("/books")
public class BookController {

    @Get("/{id}")
    public Book show(@PathVariable Long id) {
        return null;
    }

    @Get
    @Post("/")
    public HttpResponse<Book> save(@Body BookRequest request, @Header("X-Trace") String trace) {
        return HttpResponse.created(null);
    }

    @Get("/search{?q,max}")
    public List<Book> search(@QueryValue String q) {
        return List.of();
    }

    @Delete(uri = "/{id}")
    public void delete(Long id) {}
}
'''

KOTLIN_CONTROLLER = '''
package example

import io.micronaut.http.annotation.*

@Controller("/api/users")
class UserController(private val service: UserService) {

    @Get("/{id}")
    fun show(@PathVariable id: Long): UserDto? = service.find(id)

    @Post
    suspend fun create(@Body request: CreateUserRequest): HttpResponse<UserDto> {
        return HttpResponse.created(service.create(request))
    }
}
'''


# =============================================================================
# STATE MACHINE
# =============================================================================

class TestTransition:

    def test_annotation_moves_idle_to_pending(self):
        state, emitted = transition(Idle(), ("GET", "/a", 1), False)
        assert state == PendingMethod("GET", "/a", 1)
        assert emitted is None

    def test_restacked_annotation_overwrites_pending(self):
        state, emitted = transition(PendingMethod("GET", "/a", 1), ("POST", "/b", 2), False)
        assert state == PendingMethod("POST", "/b", 2)
        assert emitted is None

    def test_declaration_emits_and_returns_to_idle(self):
        state, emitted = transition(PendingMethod("POST", "/b", 2), None, True)
        assert state == Idle()
        assert emitted == PendingMethod("POST", "/b", 2)

    def test_declaration_while_idle_emits_nothing(self):
        assert transition(Idle(), None, True) == (Idle(), None)

    def test_annotation_and_declaration_on_one_line(self):
        state, emitted = transition(Idle(), ("GET", "/x", 3), True)
        assert state == Idle()
        assert emitted == PendingMethod("GET", "/x", 3)

    def test_unrelated_line_keeps_state(self):
        pending = PendingMethod("GET", "/a", 1)
        assert transition(pending, None, False) == (pending, None)


@pytest.mark.parametrize("args, expected", [
    ('"/x"', "/x"),
    ('value = "/x"', "/x"),
    ('uri = "/x", produces = "application/json"', "/x"),
    ('produces = "text/plain"', ""),
    (None, ""),
])
def test_annotation_path(args, expected):
    assert annotation_path(args) == expected


# =============================================================================
# JAVA
# =============================================================================

class TestJavaController:

    @pytest.fixture
    def routes(self, make_source):
        source = make_source(JAVA_CONTROLLER, "java", "src/main/java/example/BookController.java")
        return MicronautExtractor().extract_routes([source])

    def test_routes(self, routes):
        assert [(r.method, r.path, r.handler) for r in routes] == [
            ("GET", "/books/{id}", "show"),
            ("POST", "/books", "save"),
            ("GET", "/books/search", "search"),
            ("DELETE", "/books/{id}", "delete"),
        ]

    def test_restacked_annotation_keeps_the_later_one(self, routes):
        save = routes[1]
        assert save.method == "POST"
        assert save.source_line == 14

    def test_path_variable_type(self, routes):
        show = routes[0]
        assert show.source_line == 8
        assert show.parameters[0].name == "id"
        assert show.parameters[0].schema.type == "integer"
        assert show.responses["200"].to_dict()["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/Book"}

    def test_body_and_header(self, routes):
        save = routes[1]
        assert save.request_body.to_dict()["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/BookRequest"}
        assert [(p.name, p.location) for p in save.parameters] == [("X-Trace", "header")]
        assert save.responses["200"].to_dict()["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/Book"}

    def test_query_values_and_template(self, routes):
        search = routes[2]
        assert [(p.name, p.location, p.required) for p in search.parameters] == [
            ("q", "query", False), ("max", "query", False)]
        assert search.responses["200"].to_dict()["content"]["application/json"]["schema"]["type"] == "array"

    def test_void_has_no_response_and_ids(self, routes):
        delete = routes[3]
        assert delete.responses == {}
        assert delete.operation_id == "deleteDelete"
        assert delete.tags == ["books"]

    def test_file_without_controller(self, make_source):
        source = make_source('''
            public class Helper {
                @Get("/nope")
                public String nope() { return ""; }
            }
        ''', "java")
        assert MicronautExtractor().extract_routes([source]) == []


def test_java_schemas(make_source):
    source = make_source('''
        @Introspected
        public class Book {
            @NotBlank
            private String title;
            @Nullable
            private Integer pages;
            private Genre genre;
            private static final long serialVersionUID = 1L;

            public String getTitle() { return title; }
        }

        enum Genre { FICTION, SCIENCE; }

        public record BookRequest(@NotNull String title, List<String> tags) {}

        public class BookService {
            private String ignored;
        }
    ''', "java")
    schemas = MicronautExtractor().extract_schemas([source])

    assert [s.title for s in schemas] == ["Book", "BookRequest"]
    book, request = schemas
    assert list(book.properties) == ["title", "pages", "genre"]
    assert book.required == ["title"]
    assert book.properties["pages"].nullable is True
    assert book.properties["genre"].enum == ["FICTION", "SCIENCE"]
    assert request.required == ["title"]
    assert request.properties["tags"].type == "array"


# =============================================================================
# KOTLIN
# =============================================================================

def test_kotlin_routes(make_source):
    source = make_source(KOTLIN_CONTROLLER, "kotlin", "src/main/kotlin/UserController.kt")
    routes = MicronautExtractor().extract_routes([source])

    assert [(r.method, r.path, r.handler) for r in routes] == [
        ("GET", "/api/users/{id}", "show"),
        ("POST", "/api/users", "create"),
    ]
    show, create = routes
    assert show.parameters[0].schema.format == "int64"
    assert show.responses["200"].to_dict()["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/UserDto"}
    assert create.request_body.to_dict()["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/CreateUserRequest"}
    assert create.operation_id == "postCreate"
    assert create.tags == ["users"]


def test_kotlin_schemas(make_source):
    source = make_source('''
        @Serdeable
        data class UserDto(
            val id: Long,
            val name: String,
            val email: String?,
            val role: Role = Role.USER,
        )

        enum class Role { ADMIN, USER }
    ''', "kotlin")
    schemas = MicronautExtractor().extract_schemas([source])

    assert [s.title for s in schemas] == ["UserDto"]
    dto = schemas[0]
    assert dto.required == ["id", "name"]
    assert dto.properties["email"].nullable is True
    assert dto.properties["role"].enum == ["ADMIN", "USER"]
