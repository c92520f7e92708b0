"""
Polyglot Route Extractor
========================
Static extraction of HTTP routes and DTO schemas from web-framework source
code: Axum, Rocket, Drogon, Oat++, FastEndpoints, Micronaut, Phoenix, Hono,
Express and Django REST Framework.
"""

from .base import (
    BaseExtractor,
    ConfigError,
    ExtractorError,
    MediaType,
    Parameter,
    ParseError,
    RegistrationError,
    RequestBody,
    Response,
    Route,
    Schema,
    SourceFile,
)
from .config import ExtractorConfig, setup_logging
from .openapi import build_openapi_document, dump_document
from .pipeline import ExtractionPipeline, ExtractionResult
from .registry import ExtractorRegistry, build_default_registry
from .sources import collect_source_files, language_for

__version__ = "1.0.0"

__all__ = [
    "BaseExtractor",
    "ConfigError",
    "ExtractionPipeline",
    "ExtractionResult",
    "ExtractorConfig",
    "ExtractorError",
    "ExtractorRegistry",
    "MediaType",
    "Parameter",
    "ParseError",
    "RegistrationError",
    "RequestBody",
    "Response",
    "Route",
    "Schema",
    "SourceFile",
    "build_default_registry",
    "build_openapi_document",
    "collect_source_files",
    "dump_document",
    "language_for",
    "setup_logging",
]
