"""Command-line entry point."""

import json

import yaml

import main

CARGO = '[package]\nname = "svc"\n\n[dependencies]\naxum = "0.7"\n'

APP = '''use axum::{routing::get, Router};

pub fn app() -> Router {
    Router::new()
        .route("/users", get(list_users).post(create_user))
        .route("/users/:id", get(get_user))
}
'''


def _project(tmp_path):
    root = tmp_path / "svc"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text(CARGO)
    (root / "src" / "app.rs").write_text(APP)
    return root


def test_parser_flags():
    args = main.build_parser().parse_args(["./svc", "--framework", "axum", "--framework", "hono",
                                           "--parallel", "--workers", "3", "--openapi"])
    assert args.framework == ["axum", "hono"]
    assert args.parallel is True
    assert args.workers == 3
    assert args.openapi == "AUTO"


def test_build_config_overrides(monkeypatch):
    monkeypatch.delenv("EXTRACTOR_WORKERS", raising=False)
    args = main.build_parser().parse_args(["./svc", "--workers", "2", "--no-prefix-propagation",
                                           "--format", "yaml", "-v"])
    config = main.build_config(args)
    assert config.parallel_workers == 2
    assert config.propagate_prefixes is False
    assert config.output_format == "yaml"
    assert config.log_level == "DEBUG"


def test_extract_to_files(tmp_path):
    root = _project(tmp_path)
    out = tmp_path / "routes.json"
    spec = tmp_path / "openapi.yaml"

    code = main.main([str(root), "-q", "-o", str(out), "--openapi", str(spec), "--title", "Svc"])

    assert code == 0
    data = json.loads(out.read_text())
    assert data["frameworks"] == ["Axum"]
    assert [(r["method"], r["path"]) for r in data["routes"]] == [
        ("GET", "/users"), ("POST", "/users"), ("GET", "/users/{id}"),
    ]
    doc = yaml.safe_load(spec.read_text())
    assert doc["info"]["title"] == "Svc"
    assert sorted(doc["paths"]) == ["/users", "/users/{id}"]


def test_missing_directory(tmp_path):
    assert main.main([str(tmp_path / "absent"), "-q"]) == 1


def test_unknown_framework(tmp_path):
    root = _project(tmp_path)
    assert main.main([str(root), "-q", "--framework", "spring"]) == 1
