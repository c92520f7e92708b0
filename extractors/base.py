"""
Shared data models and BaseExtractor for the Polyglot Route Extractor.

All framework plugins import from this module.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Set, Union

logger = logging.getLogger("route_extractor.base")

SCHEMA_REF_PREFIX = "#/components/schemas/"
JSON_MEDIA_TYPE = "application/json"


# =============================================================================
# ERRORS
# =============================================================================

class ExtractorError(Exception):
    """Base class for every error raised by the extractor package."""


class ParseError(ExtractorError):
    """A source file could not be parsed; the file is skipped."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class RegistrationError(ExtractorError):
    """Invalid plugin registration (missing, unnamed or duplicate plugin)."""


class ConfigError(ExtractorError):
    """Invalid configuration file or value."""


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class Schema:
    """OpenAPI-style object or property schema."""
    type: str = ""
    format: str = ""
    title: str = ""
    description: str = ""
    properties: Dict[str, "Schema"] = field(default_factory=dict)
    items: Optional["Schema"] = None
    required: List[str] = field(default_factory=list)
    nullable: bool = False
    ref: str = ""
    enum: List[Any] = field(default_factory=list)
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: str = ""

    @classmethod
    def reference(cls, type_name: str) -> "Schema":
        return cls(ref=SCHEMA_REF_PREFIX + type_name)

    def to_dict(self) -> Dict[str, Any]:
        if self.ref:
            data: Dict[str, Any] = {"$ref": self.ref}
            if self.nullable:
                data["nullable"] = True
            return data

        data = {}
        if self.title:
            data["title"] = self.title
        if self.type:
            data["type"] = self.type
        if self.format:
            data["format"] = self.format
        if self.description:
            data["description"] = self.description
        if self.properties:
            data["properties"] = {k: v.to_dict() for k, v in self.properties.items()}
        if self.items is not None:
            data["items"] = self.items.to_dict()
        if self.required:
            data["required"] = list(self.required)
        if self.nullable:
            data["nullable"] = True
        if self.enum:
            data["enum"] = list(self.enum)
        if self.default is not None:
            data["default"] = self.default
        if self.minimum is not None:
            data["minimum"] = self.minimum
        if self.maximum is not None:
            data["maximum"] = self.maximum
        if self.min_length is not None:
            data["minLength"] = self.min_length
        if self.max_length is not None:
            data["maxLength"] = self.max_length
        if self.pattern:
            data["pattern"] = self.pattern
        return data


@dataclass
class Parameter:
    """A path, query or header parameter."""
    name: str
    location: str
    required: bool = False
    schema: Schema = field(default_factory=lambda: Schema(type="string"))
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "in": self.location,
            "required": self.required,
            "schema": self.schema.to_dict(),
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class MediaType:
    schema: Schema

    def to_dict(self) -> Dict[str, Any]:
        return {"schema": self.schema.to_dict()}


@dataclass
class RequestBody:
    required: bool = False
    content: Dict[str, MediaType] = field(default_factory=dict)
    description: str = ""

    @classmethod
    def json(cls, schema: Schema, required: bool = True) -> "RequestBody":
        return cls(required=required, content={JSON_MEDIA_TYPE: MediaType(schema)})

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "required": self.required,
            "content": {k: v.to_dict() for k, v in self.content.items()},
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class Response:
    description: str = ""
    content: Dict[str, MediaType] = field(default_factory=dict)

    @classmethod
    def json(cls, schema: Schema, description: str = "Successful response") -> "Response":
        return cls(description=description, content={JSON_MEDIA_TYPE: MediaType(schema)})

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"description": self.description}
        if self.content:
            data["content"] = {k: v.to_dict() for k, v in self.content.items()}
        return data


@dataclass
class Route:
    """Represents one extracted HTTP operation."""
    method: str
    path: str
    handler: str = ""
    operation_id: str = ""
    tags: List[str] = field(default_factory=list)
    parameters: List[Parameter] = field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: Dict[str, Response] = field(default_factory=dict)
    source_file: str = ""
    source_line: int = 0
    framework: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "handler": self.handler,
            "operation_id": self.operation_id,
            "tags": list(self.tags),
            "parameters": [p.to_dict() for p in self.parameters],
            "request_body": self.request_body.to_dict() if self.request_body else None,
            "responses": {k: v.to_dict() for k, v in self.responses.items()},
            "source_file": self.source_file,
            "source_line": self.source_line,
            "framework": self.framework,
        }


@dataclass
class SourceFile:
    """One input file: path, declared language tag and raw content."""
    path: str
    language: str
    content: Union[bytes, str] = b""

    @property
    def text(self) -> str:
        if isinstance(self.content, bytes):
            return self.content.decode("utf-8", errors="ignore")
        return self.content


# =============================================================================
# BASE EXTRACTOR (Abstract)
# =============================================================================

class BaseExtractor(ABC):
    """
    Abstract base class for all framework plugins.

    Subclasses implement per-file extraction; the batch loops here filter on
    the declared language and isolate parse failures so that one malformed
    file never fails the whole batch.
    """

    def __init__(self, config=None):
        from .config import ExtractorConfig

        self.config = config or ExtractorConfig()
        self.stats = {"files_scanned": 0, "files_skipped": 0, "routes_found": 0, "schemas_found": 0}
        self._skipped: Set[str] = set()
        self._lock = Lock()

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name of the plugin."""
        pass

    @property
    @abstractmethod
    def framework(self) -> str:
        """Display name of the framework."""
        pass

    @property
    @abstractmethod
    def languages(self) -> Set[str]:
        """Declared language tags this plugin processes."""
        pass

    @property
    @abstractmethod
    def extensions(self) -> Set[str]:
        """File extensions this plugin processes."""
        pass

    @abstractmethod
    def detect(self, project_root: Union[str, Path]) -> bool:
        """Check the project's manifest files for the framework."""
        pass

    @abstractmethod
    def extract_routes_from_file(self, file: SourceFile) -> List[Route]:
        pass

    def extract_schemas_from_file(self, file: SourceFile) -> List[Schema]:
        return []

    def accepts(self, file: SourceFile) -> bool:
        return file.language in self.languages

    def prepare(self, files: List[SourceFile]) -> None:
        """Build batch-level lookup tables before the per-file walk."""

    def finalize_routes(self, routes: List[Route]) -> List[Route]:
        """Batch-level post-processing of the concatenated routes."""
        return routes

    def _count(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self.stats[key] += amount

    def _skip(self, path: str) -> None:
        with self._lock:
            if path not in self._skipped:
                self._skipped.add(path)
                self.stats["files_skipped"] += 1

    def routes_for_file(self, file: SourceFile) -> List[Route]:
        """Routes of one file; a parse failure skips the file and yields nothing."""
        if not self.accepts(file):
            return []
        self._count("files_scanned")
        try:
            found = self.extract_routes_from_file(file)
        except ParseError as e:
            logger.debug(f"[{self.name}] skipping {file.path}: {e}")
            self._skip(file.path)
            return []
        self._count("routes_found", len(found))
        return found

    def schemas_for_file(self, file: SourceFile) -> List[Schema]:
        if not self.accepts(file):
            return []
        try:
            found = self.extract_schemas_from_file(file)
        except ParseError as e:
            logger.debug(f"[{self.name}] skipping {file.path} for schemas: {e}")
            self._skip(file.path)
            return []
        self._count("schemas_found", len(found))
        return found

    def extract_routes(self, files: List[SourceFile]) -> List[Route]:
        self.prepare(files)
        routes: List[Route] = []
        for file in files:
            routes.extend(self.routes_for_file(file))
        return self.finalize_routes(routes)

    def extract_schemas(self, files: List[SourceFile]) -> List[Schema]:
        schemas: List[Schema] = []
        for file in files:
            schemas.extend(self.schemas_for_file(file))
        return schemas

    def new_route(self, file: SourceFile, method: str, path: str, line: int, handler: str = "") -> Route:
        """Route skeleton with provenance; callers fill in the derived fields."""
        return Route(
            method=method.upper(),
            path=path,
            handler=handler,
            source_file=file.path,
            source_line=line,
            framework=self.framework,
        )
