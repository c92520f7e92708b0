"""
Explicit plugin registry.

The host builds a registry and registers plugins on it; nothing registers
itself at import time.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from .base import BaseExtractor, RegistrationError

logger = logging.getLogger("route_extractor.registry")


class ExtractorRegistry:
    """Name-keyed collection of framework plugins."""

    def __init__(self):
        self._extractors: Dict[str, BaseExtractor] = {}

    def register(self, extractor: Optional[BaseExtractor]) -> None:
        if extractor is None:
            raise RegistrationError("Cannot register a missing extractor")
        name = extractor.name
        if not name:
            raise RegistrationError(f"Extractor {type(extractor).__name__} has an empty name")
        if name in self._extractors:
            raise RegistrationError(f"Extractor '{name}' is already registered")
        self._extractors[name] = extractor
        logger.debug(f"Registered extractor '{name}' ({extractor.framework})")

    def unregister(self, name: str) -> None:
        if name not in self._extractors:
            raise RegistrationError(f"Extractor '{name}' is not registered")
        del self._extractors[name]

    def get(self, name: str) -> Optional[BaseExtractor]:
        return self._extractors.get(name)

    def has(self, name: str) -> bool:
        return name in self._extractors

    def clear(self) -> None:
        self._extractors.clear()

    def list(self) -> List[str]:
        return sorted(self._extractors)

    def __len__(self) -> int:
        return len(self._extractors)

    def __iter__(self):
        return iter(self._extractors[name] for name in self.list())

    def detect(self, project_root: Union[str, Path]) -> List[BaseExtractor]:
        """Every plugin whose manifest check matches, in name order."""
        found = []
        for name in self.list():
            extractor = self._extractors[name]
            if extractor.detect(project_root):
                logger.info(f"Detected {extractor.framework} in {project_root}")
                found.append(extractor)
        return found

    def detect_first(self, project_root: Union[str, Path]) -> Optional[BaseExtractor]:
        detected = self.detect(project_root)
        return detected[0] if detected else None


def build_default_registry(config=None) -> ExtractorRegistry:
    """Registry with the ten bundled plugins, narrowed to ``config.frameworks`` when set."""
    from .axum import AxumExtractor
    from .drf import DRFExtractor
    from .drogon import DrogonExtractor
    from .express import ExpressExtractor
    from .fastendpoints import FastEndpointsExtractor
    from .hono import HonoExtractor
    from .micronaut import MicronautExtractor
    from .oatpp import OatppExtractor
    from .phoenix import PhoenixExtractor
    from .rocket import RocketExtractor

    registry = ExtractorRegistry()
    plugins = [
        AxumExtractor(config), RocketExtractor(config), DrogonExtractor(config), OatppExtractor(config),
        FastEndpointsExtractor(config), MicronautExtractor(config), PhoenixExtractor(config),
        HonoExtractor(config), ExpressExtractor(config), DRFExtractor(config),
    ]
    wanted = set(config.frameworks) if config is not None and config.frameworks else None
    for plugin in plugins:
        if wanted is None or plugin.name in wanted:
            registry.register(plugin)

    if wanted:
        unknown = wanted - set(registry.list())
        if unknown:
            raise RegistrationError(f"Unknown framework(s): {', '.join(sorted(unknown))}")
    return registry
