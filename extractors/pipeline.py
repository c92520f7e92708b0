"""
Extraction pipeline: runs the selected plugins over a batch of source files.

Per-file work may run in a thread pool. Results are keyed by input index and
flattened back in input order, so the output does not depend on scheduling.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from .base import BaseExtractor, Route, Schema, SourceFile
from .config import ExtractorConfig
from .registry import ExtractorRegistry

logger = logging.getLogger("route_extractor.pipeline")


@dataclass
class ExtractionResult:
    routes: List[Route] = field(default_factory=list)
    schemas: List[Schema] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
    frameworks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frameworks": list(self.frameworks),
            "stats": dict(self.stats),
            "routes": [r.to_dict() for r in self.routes],
            "schemas": [s.to_dict() for s in self.schemas],
        }


class ExtractionPipeline:
    """
    Drives registered plugins over a file batch.

    ``run`` calls each plugin's ``prepare`` on the calling thread, walks the
    files (sequentially or with ``parallel_workers`` threads), then hands the
    concatenated routes to ``finalize_routes``. An unexpected exception in one
    file is logged and counted in ``files_errored``; the rest of the batch
    still completes.
    """

    def __init__(self, registry: ExtractorRegistry, config: Optional[ExtractorConfig] = None):
        self.registry = registry
        self.config = config or ExtractorConfig()
        self.stats: Dict[str, Any] = {"files_total": 0, "files_errored": 0, "by_framework": {}}
        self._lock = Lock()

    def run(self, files: List[SourceFile], plugins: Optional[List[BaseExtractor]] = None) -> ExtractionResult:
        if plugins is None:
            plugins = list(self.registry)

        self.stats = {"files_total": len(files), "files_errored": 0, "by_framework": {}}
        result = ExtractionResult(stats=self.stats, frameworks=[p.framework for p in plugins])

        for plugin in plugins:
            plugin.prepare(files)

        tasks = [(plugin, index) for plugin in plugins for index in range(len(files))]
        outputs = self._run_tasks(tasks, files)

        for plugin in plugins:
            routes: List[Route] = []
            schemas: List[Schema] = []
            for index in range(len(files)):
                found_routes, found_schemas = outputs.get((plugin.name, index), ([], []))
                routes.extend(found_routes)
                schemas.extend(found_schemas)
            routes = plugin.finalize_routes(routes)
            result.routes.extend(routes)
            result.schemas.extend(schemas)
            self.stats["by_framework"][plugin.framework] = {
                "routes": len(routes),
                "schemas": len(schemas),
                **plugin.stats,
            }

        logger.info(f"Extraction complete: {len(result.routes)} routes, {len(result.schemas)} schemas "
                    f"from {len(files)} files")
        return result

    def _run_tasks(self, tasks: List[Tuple[BaseExtractor, int]],
                   files: List[SourceFile]) -> Dict[Tuple[str, int], Tuple[List[Route], List[Schema]]]:
        outputs: Dict[Tuple[str, int], Tuple[List[Route], List[Schema]]] = {}

        if not self.config.parallel or self.config.parallel_workers <= 1:
            for plugin, index in tasks:
                found = self._process(plugin, files[index])
                if found is not None:
                    outputs[(plugin.name, index)] = found
            return outputs

        logger.info(f"Starting parallel extraction with {self.config.parallel_workers} workers")
        with ThreadPoolExecutor(max_workers=self.config.parallel_workers) as executor:
            future_to_task = {
                executor.submit(self._process, plugin, files[index]): (plugin.name, index)
                for plugin, index in tasks
            }
            for future in as_completed(future_to_task):
                found = future.result()
                if found is not None:
                    outputs[future_to_task[future]] = found
        return outputs

    def _process(self, plugin: BaseExtractor,
                 file: SourceFile) -> Optional[Tuple[List[Route], List[Schema]]]:
        try:
            return plugin.routes_for_file(file), plugin.schemas_for_file(file)
        except Exception as e:
            logger.error(f"[{plugin.name}] error processing {file.path}: {e}")
            with self._lock:
                self.stats["files_errored"] += 1
            return None
