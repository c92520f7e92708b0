"""Source collection: walk a project tree and load files as ``SourceFile`` records."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

from .base import SourceFile

logger = logging.getLogger("route_extractor.sources")

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    ".rs": "rust",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hh": "cpp", ".h": "cpp",
    ".cs": "csharp",
    ".java": "java",
    ".kt": "kotlin",
    ".ex": "elixir", ".exs": "elixir",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".py": "python",
}


def language_for(path: Union[str, Path]) -> Optional[str]:
    return LANGUAGE_BY_EXTENSION.get(Path(path).suffix.lower())


def collect_source_files(root: Union[str, Path], config) -> List[SourceFile]:
    """
    Load every recognised source file under ``root``.

    Ignored directories are pruned during the walk and files over the size
    limit are left out. Paths are relative to ``root`` and sorted so that
    repeated runs see the same order.
    """
    root = Path(root)
    limit = config.max_file_size_mb * 1024 * 1024
    files: List[SourceFile] = []

    for dirpath, dirs, names in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in config.ignore_dirs)
        for filename in sorted(names):
            fp = Path(dirpath) / filename
            language = language_for(fp)
            if language is None:
                continue
            try:
                if fp.stat().st_size > limit:
                    logger.debug(f"Skipping large file: {fp}")
                    continue
                content = fp.read_bytes()
            except OSError as e:
                logger.warning(f"Cannot read {fp}: {e}")
                continue
            files.append(SourceFile(path=fp.relative_to(root).as_posix(), language=language, content=content))

    logger.info(f"Collected {len(files)} source files from {root}")
    return files
