"""Django REST Framework views, viewsets, router prefixes and schemas."""

import pytest

from extractors.drf import DRFExtractor, django_route

VIEWS = '''
from django.urls import path
from rest_framework import serializers, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.routers import DefaultRouter
from rest_framework.views import APIView


class WidgetSerializer(serializers.ModelSerializer):
    name = serializers.CharField(max_length=100)
    email = serializers.EmailField(required=False)
    kind = serializers.ChoiceField(choices=[("a", "A"), ("b", "B")])
    tags = serializers.ListField(child=serializers.CharField())
    owner = OwnerSerializer(read_only=True)

    class Meta:
        model = Widget
        fields = ["id", "name", "email", "kind", "tags", "owner", "created"]


class WidgetViewSet(viewsets.ModelViewSet):
    serializer_class = WidgetSerializer

    @action(detail=True, methods=["post"], url_path="archive")
    def archive(self, request, pk=None):
        return None


class HealthView(APIView):
    def get(self, request):
        return None


@api_view(["GET", "POST"])
def ping_server(request):
    return None


router = DefaultRouter()
router.register(r"widgets", WidgetViewSet)
urlpatterns = [path("health/", HealthView.as_view())]
'''

MODELS = '''
from typing import List, Optional

from pydantic import BaseModel, Field


class Item(BaseModel):
    id: int
    name: str = Field(..., min_length=1, description="Display name")
    price: float = Field(0.0, ge=0)
    tags: List[str] = Field(default_factory=list)
    note: Optional[str]


class SpecialItem(Item):
    code: str
'''


@pytest.fixture
def routes(make_source):
    return DRFExtractor().extract_routes([make_source(VIEWS, "python", "app/views.py")])


def test_route_set(routes):
    assert [(r.method, r.path) for r in routes] == [
        ("GET", "/ping-server"),
        ("POST", "/ping-server"),
        ("GET", "/widgets"),
        ("POST", "/widgets"),
        ("GET", "/widgets/{id}"),
        ("PUT", "/widgets/{id}"),
        ("PATCH", "/widgets/{id}"),
        ("DELETE", "/widgets/{id}"),
        ("POST", "/widgets/{id}/archive"),
        ("GET", "/health"),
    ]


def test_model_viewset_has_six_standard_routes(routes):
    standard = [r for r in routes if r.handler.startswith("WidgetViewSet.") and r.handler != "WidgetViewSet.archive"]
    assert len(standard) == 6
    assert [r.handler.split(".")[1] for r in standard] == [
        "list", "create", "retrieve", "update", "partial_update", "destroy",
    ]


def test_serializer_bodies_and_responses(routes):
    by_key = {(r.method, r.path): r for r in routes}
    ref = "#/components/schemas/WidgetSerializer"

    create = by_key[("POST", "/widgets")]
    assert create.request_body.content["application/json"].schema.ref == ref
    listing = by_key[("GET", "/widgets")]
    assert listing.responses["200"].content["application/json"].schema.items.ref == ref
    detail = by_key[("GET", "/widgets/{id}")]
    assert detail.responses["200"].content["application/json"].schema.ref == ref
    assert by_key[("DELETE", "/widgets/{id}")].request_body is None


def test_operation_ids_and_tags(routes):
    by_key = {(r.method, r.path): r for r in routes}
    assert by_key[("GET", "/ping-server")].operation_id == "getPing_server"
    assert by_key[("POST", "/widgets/{id}/archive")].operation_id == "postArchive"
    assert by_key[("GET", "/health")].operation_id == "getGet"
    assert by_key[("GET", "/widgets")].tags == ["WidgetViewSet"]
    assert by_key[("GET", "/ping-server")].tags == ["ping-server"]


def test_lookup_field_without_registration(make_source):
    source = make_source('''
        from rest_framework import viewsets


        class ArticleViewSet(viewsets.ReadOnlyModelViewSet):
            lookup_field = "slug"
    ''', "python", "blog/views.py")
    routes = DRFExtractor().extract_routes([source])
    assert [(r.method, r.path) for r in routes] == [("GET", "/article"), ("GET", "/article/{slug}")]


def test_requires_rest_framework_import(make_source):
    source = make_source('''
        class ThingViewSet(ModelViewSet):
            pass
    ''', "python")
    assert DRFExtractor().extract_routes([source]) == []


def test_syntax_error_is_skipped(make_source):
    extractor = DRFExtractor()
    assert extractor.extract_routes([make_source("def broken(:\n", "python", "bad.py")]) == []
    assert extractor.stats["files_skipped"] == 1


@pytest.mark.parametrize("raw, expected", [
    ("users/<int:pk>/", "/users/{pk}"),
    ("^items/$", "/items"),
    ("", "/"),
])
def test_django_route(raw, expected):
    assert django_route(raw) == expected


def test_serializer_schema(make_source):
    schemas = DRFExtractor().extract_schemas([make_source(VIEWS, "python", "app/views.py")])

    assert [s.title for s in schemas] == ["WidgetSerializer"]
    widget = schemas[0]
    assert list(widget.properties) == ["name", "email", "kind", "tags", "owner", "id", "created"]
    assert widget.required == ["name", "kind", "tags"]
    assert widget.properties["name"].max_length == 100
    assert widget.properties["email"].format == "email"
    assert widget.properties["kind"].enum == ["a", "b"]
    assert widget.properties["tags"].items.type == "string"
    assert widget.properties["owner"].ref == "#/components/schemas/OwnerSerializer"


def test_pydantic_schemas(make_source):
    schemas = DRFExtractor().extract_schemas([make_source(MODELS, "python", "app/models.py")])

    assert [s.title for s in schemas] == ["Item", "SpecialItem"]
    item = schemas[0]
    assert item.required == ["id", "name"]
    assert item.properties["name"].min_length == 1
    assert item.properties["name"].description == "Display name"
    assert item.properties["price"].default == 0.0
    assert item.properties["price"].minimum == 0
    assert item.properties["note"].nullable is True
    assert schemas[1].required == ["code"]
