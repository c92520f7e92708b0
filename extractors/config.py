"""
Configuration and logging setup for the Polyglot Route Extractor.

Configuration can be loaded from environment variables, a JSON/YAML file,
or built directly and overridden by CLI args.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Set

import yaml

from .base import ConfigError


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured logging for the extractor."""
    logger = logging.getLogger("route_extractor")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)  # Only warnings and errors to console
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt='%Y-%m-%dT%H:%M:%S'
        ))
        logger.addHandler(file_handler)

    return logger


# =============================================================================
# IGNORE PATTERNS
# =============================================================================
DEFAULT_IGNORE_DIRS: Set[str] = {
    # Version control
    ".git", ".svn", ".hg",
    # Dependencies
    "node_modules", "bower_components", "vendor", "deps", "_build",
    # Python
    "__pycache__", ".pytest_cache", ".mypy_cache", ".tox",
    "venv", ".venv", "env", "site-packages", ".eggs", "dist", "build",
    # .NET
    "bin", "obj", ".vs", "packages",
    # JVM / Rust
    "target", ".gradle", ".idea",
    # JavaScript
    ".next", ".nuxt", "coverage", ".cache",
    # IDE
    ".vscode",
}

OUTPUT_FORMATS = ("json", "yaml")


# =============================================================================
# CONFIGURATION SYSTEM
# =============================================================================
@dataclass
class ExtractorConfig:
    """
    Extractor configuration with sensible defaults.

    ``propagate_prefixes`` applies Axum ``.nest`` and Rocket ``.mount``
    prefixes to the routes they contain. ``compose_optional_arrays`` maps
    ``Option<Vec<T>>`` to a nullable array instead of letting the optional
    wrapper overwrite the array typing with the element type.
    """
    # Scanning options
    ignore_dirs: Set[str] = field(default_factory=set)
    max_file_size_mb: int = 10
    parallel: bool = False
    parallel_workers: int = 4
    frameworks: List[str] = field(default_factory=list)

    # Extraction behaviour
    propagate_prefixes: bool = True
    compose_optional_arrays: bool = False

    # Output options
    output_format: str = "json"
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    def __post_init__(self):
        """Apply default ignore dirs if not set."""
        if not self.ignore_dirs:
            self.ignore_dirs = DEFAULT_IGNORE_DIRS.copy()
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(f"Unknown output format '{self.output_format}', expected one of {OUTPUT_FORMATS}")
        if self.parallel_workers < 1:
            raise ConfigError("parallel_workers must be at least 1")

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """Load configuration from environment variables."""
        frameworks = os.getenv("EXTRACTOR_FRAMEWORKS", "")
        try:
            return cls(
                max_file_size_mb=int(os.getenv("EXTRACTOR_MAX_FILE_SIZE", 10)),
                parallel=os.getenv("EXTRACTOR_PARALLEL", "false").lower() == "true",
                parallel_workers=int(os.getenv("EXTRACTOR_WORKERS", 4)),
                frameworks=[f.strip() for f in frameworks.split(",") if f.strip()],
                propagate_prefixes=os.getenv("EXTRACTOR_PROPAGATE_PREFIXES", "true").lower() == "true",
                compose_optional_arrays=os.getenv("EXTRACTOR_COMPOSE_OPTIONAL_ARRAYS", "false").lower() == "true",
                output_format=os.getenv("EXTRACTOR_OUTPUT_FORMAT", "json"),
                log_level=os.getenv("EXTRACTOR_LOG_LEVEL", "WARNING"),
                log_file=os.getenv("EXTRACTOR_LOG_FILE"),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

    @classmethod
    def from_file(cls, path: str) -> "ExtractorConfig":
        """Load configuration from JSON or YAML file."""
        try:
            with open(path, 'r') as f:
                if path.endswith(('.yaml', '.yml')):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")

        # Convert ignore_dirs list to set if present
        if 'ignore_dirs' in data and isinstance(data['ignore_dirs'], list):
            data['ignore_dirs'] = set(data['ignore_dirs'])

        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "ignore_dirs": sorted(self.ignore_dirs),
            "max_file_size_mb": self.max_file_size_mb,
            "parallel": self.parallel,
            "parallel_workers": self.parallel_workers,
            "frameworks": list(self.frameworks),
            "propagate_prefixes": self.propagate_prefixes,
            "compose_optional_arrays": self.compose_optional_arrays,
            "output_format": self.output_format,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }
