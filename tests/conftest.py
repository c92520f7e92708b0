"""Shared fixtures: in-memory source files and a default config."""

import textwrap

import pytest

from extractors.base import SourceFile
from extractors.config import ExtractorConfig


@pytest.fixture
def make_source():
    """Build a SourceFile from an indented snippet."""
    def _make(content: str, language: str, path: str = "src/main") -> SourceFile:
        return SourceFile(path=path, language=language, content=textwrap.dedent(content).lstrip("\n"))
    return _make


@pytest.fixture
def config():
    return ExtractorConfig()
