"""Phoenix router scopes/resources and Ecto schemas."""

import pytest

from extractors.base import ParseError
from extractors.parsers.elixir import parse_elixir
from extractors.phoenix import PhoenixExtractor, expand_resources, singularize

ROUTER = '''
defmodule MyAppWeb.Router do
  use MyAppWeb, :router

  pipeline :api do
    plug :accepts, ["json"]
  end

  scope "/api", MyAppWeb do
    pipe_through :api

    get "/health", HealthController, :index
    resources "/users", UserController, only: [:index, :show, :create]
    resources "/posts", PostController, except: [:new, :edit] do
      get "/comments", CommentController, :index
    end
  end

  scope "/admin", MyAppWeb.Admin, as: :admin do
    delete "/cache/:key", CacheController, :purge
  end
end
'''

SCHEMA = '''
defmodule MyApp.Accounts.User do
  use Ecto.Schema

  schema "users" do
    field :name, :string
    field :age, :integer, default: 0
    field :role, Ecto.Enum, values: [:admin, :member]
    field :tags, {:array, :string}
    belongs_to :org, MyApp.Org
    embeds_one :profile, MyApp.Profile
    embeds_many :addresses, MyApp.Address
    timestamps(type: :utc_datetime)
  end

  def changeset(user, attrs) do
    user
    |> cast(attrs, [:name])
  end
end

defmodule MyApp.Empty do
  use Ecto.Schema

  embedded_schema do
  end
end
'''


@pytest.fixture
def routes(make_source):
    return PhoenixExtractor().extract_routes([make_source(ROUTER, "elixir", "lib/my_app_web/router.ex")])


def test_router_routes(routes):
    assert [(r.method, r.path) for r in routes] == [
        ("GET", "/api/health"),
        ("GET", "/api/users"),
        ("POST", "/api/users"),
        ("GET", "/api/users/{id}"),
        ("GET", "/api/posts"),
        ("POST", "/api/posts"),
        ("GET", "/api/posts/{id}"),
        ("PUT", "/api/posts/{id}"),
        ("PATCH", "/api/posts/{id}"),
        ("DELETE", "/api/posts/{id}"),
        ("GET", "/api/posts/{post_id}/comments"),
        ("DELETE", "/admin/cache/{key}"),
    ]


def test_handlers_are_alias_qualified(routes):
    assert routes[0].handler == "MyAppWeb.HealthController.index"
    assert routes[10].handler == "MyAppWeb.CommentController.index"
    assert routes[-1].handler == "MyAppWeb.Admin.CacheController.purge"


def test_route_metadata(routes):
    health = routes[0]
    assert health.source_line == 11
    assert health.operation_id == "getIndex"
    assert health.tags == ["health"]
    assert routes[-1].operation_id == "deletePurge"
    assert [p.name for p in routes[-1].parameters] == ["key"]


def test_non_router_files_are_ignored(make_source):
    source = make_source(ROUTER, "elixir", "lib/my_app_web/endpoint.ex")
    assert PhoenixExtractor().extract_routes([source]) == []


def test_unbalanced_end_skips_file(make_source):
    source = make_source('''
        defmodule MyAppWeb.Router do
          use Phoenix.Router
          get "/x", XController, :index
        end
        end
    ''', "elixir", "lib/router.ex")
    extractor = PhoenixExtractor()
    assert extractor.extract_routes([source]) == []
    assert extractor.stats["files_skipped"] == 1


def test_parse_elixir_raises_on_unclosed_block(make_source):
    with pytest.raises(ParseError):
        parse_elixir(make_source('defmodule A do\n  def x do\n    1\n  end\n', "elixir"))


def test_expand_resources_filters():
    assert [a.action for a in expand_resources("/u", ", only: [:index, :show]")] == ["index", "show"]
    assert len(expand_resources("/u", "")) == 8


@pytest.mark.parametrize("word, expected", [
    ("posts", "post"), ("categories", "category"), ("boxes", "box"), ("status", "statu"), ("address", "address"),
])
def test_singularize(word, expected):
    assert singularize(word) == expected


def test_ecto_schema(make_source):
    schemas = PhoenixExtractor().extract_schemas([make_source(SCHEMA, "elixir", "lib/my_app/accounts/user.ex")])

    assert [s.title for s in schemas] == ["User"]
    user = schemas[0]
    assert list(user.properties) == [
        "name", "age", "role", "tags", "org_id", "profile", "addresses", "inserted_at", "updated_at",
    ]
    assert user.required == ["name", "role", "tags", "org_id"]
    assert user.properties["age"].default == 0
    assert user.properties["role"].enum == ["admin", "member"]
    assert user.properties["tags"].items.type == "string"
    assert user.properties["profile"].ref == "#/components/schemas/Profile"
    assert user.properties["addresses"].items.ref == "#/components/schemas/Address"
    assert user.properties["inserted_at"].format == "date-time"


def test_plain_schema_block(make_source):
    source = make_source('''
        defmodule A.Post do
          use Ecto.Schema
          schema "posts" do
            field :title, :string
          end
        end
    ''', "elixir", "lib/a/post.ex")
    schemas = PhoenixExtractor().extract_schemas([source])
    assert [s.title for s in schemas] == ["Post"]
    assert schemas[0].properties["title"].type == "string"
