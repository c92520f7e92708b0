"""Extraction pipeline: ordering, parallelism and failure isolation."""

from typing import List, Set

import pytest

from extractors.base import BaseExtractor, ParseError, Route, Schema, SourceFile
from extractors.config import ExtractorConfig
from extractors.pipeline import ExtractionPipeline
from extractors.registry import ExtractorRegistry, build_default_registry


class EchoExtractor(BaseExtractor):
    """One GET route per python file, named after the file."""

    def __init__(self, name: str = "echo", config=None):
        super().__init__(config)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def framework(self) -> str:
        return self._name.title()

    @property
    def languages(self) -> Set[str]:
        return {"python"}

    @property
    def extensions(self) -> Set[str]:
        return {".py"}

    def detect(self, project_root) -> bool:
        return False

    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        if "boom" in file.text:
            raise RuntimeError("boom")
        if "malformed" in file.text:
            raise ParseError("malformed", file.path)
        return [self.new_route(file, "GET", "/" + file.path[:-3], 1, "handler")]

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        return [Schema(title=file.path[:-3].title(), type="object")]


def _registry(*names):
    registry = ExtractorRegistry()
    for name in names:
        registry.register(EchoExtractor(name))
    return registry


def _files(count):
    return [SourceFile(f"f{i:02d}.py", "python", "ok") for i in range(count)]


@pytest.mark.parametrize("parallel, workers", [(False, 4), (True, 1), (True, 4), (True, 16)])
def test_output_follows_input_order(parallel, workers):
    config = ExtractorConfig(parallel=parallel, parallel_workers=workers)
    result = ExtractionPipeline(_registry("echo"), config).run(_files(30))

    assert [r.path for r in result.routes] == [f"/f{i:02d}" for i in range(30)]
    assert [s.title for s in result.schemas] == [f"F{i:02d}" for i in range(30)]


def test_plugins_run_in_registry_order():
    result = ExtractionPipeline(_registry("zeta", "alpha")).run(_files(2))

    assert result.frameworks == ["Alpha", "Zeta"]
    assert [r.framework for r in result.routes] == ["Alpha", "Alpha", "Zeta", "Zeta"]


def test_explicit_plugin_selection():
    registry = _registry("zeta", "alpha")
    result = ExtractionPipeline(registry).run(_files(1), [registry.get("zeta")])
    assert result.frameworks == ["Zeta"]
    assert len(result.routes) == 1


def test_unexpected_error_is_isolated():
    files = [
        SourceFile("a.py", "python", "ok"),
        SourceFile("b.py", "python", "boom"),
        SourceFile("c.py", "python", "ok"),
    ]
    pipeline = ExtractionPipeline(_registry("echo"), ExtractorConfig(parallel=True, parallel_workers=3))
    result = pipeline.run(files)

    assert [r.path for r in result.routes] == ["/a", "/c"]
    assert [s.title for s in result.schemas] == ["A", "C"]
    assert result.stats["files_errored"] == 1
    assert result.stats["files_total"] == 3


def test_per_framework_stats():
    files = [
        SourceFile("a.py", "python", "ok"),
        SourceFile("b.py", "python", "malformed"),
        SourceFile("main.rs", "rust", "fn main() {}"),
    ]
    result = ExtractionPipeline(_registry("echo")).run(files)

    stats = result.stats["by_framework"]["Echo"]
    assert stats["routes"] == 1
    assert stats["schemas"] == 2
    assert stats["files_scanned"] == 2
    assert stats["files_skipped"] == 1
    assert result.stats["files_errored"] == 0


def test_result_to_dict():
    result = ExtractionPipeline(_registry("echo")).run(_files(1))
    data = result.to_dict()

    assert data["frameworks"] == ["Echo"]
    assert data["routes"][0]["path"] == "/f00"
    assert data["schemas"][0]["title"] == "F00"


def test_batch_prefixes_across_files(make_source):
    rocket_main = make_source('''
        #[launch]
        fn rocket() -> _ {
            rocket::build().mount("/api", routes![users::list])
        }
    ''', "rust", "src/main.rs")
    rocket_users = make_source('''
        use rocket::get;

        #[get("/users")]
        pub fn list() -> String { String::new() }
    ''', "rust", "src/users.rs")

    registry = build_default_registry(ExtractorConfig(frameworks=["rocket"]))
    result = ExtractionPipeline(registry, ExtractorConfig(parallel=True, parallel_workers=2)).run(
        [rocket_main, rocket_users])

    assert [(r.method, r.path) for r in result.routes] == [("GET", "/api/users")]
