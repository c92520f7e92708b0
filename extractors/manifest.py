"""
Manifest sniffing used by the plugins' ``detect`` step.

Checks are line-oriented, case-insensitive substring matches inside the
recognised dependency section of each manifest. This is a heuristic, not a
manifest parser: an unreadable or missing manifest simply means "not found".
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

logger = logging.getLogger("route_extractor.manifest")

PathLike = Union[str, Path]

CARGO_SECTIONS = ("[dependencies]", "[dev-dependencies]", "[workspace.dependencies]")
PACKAGE_JSON_SECTIONS = ('"dependencies"', '"devdependencies"', '"peerdependencies"')
CPP_MANIFESTS = ("CMakeLists.txt", "conanfile.txt", "conanfile.py", "vcpkg.json")
JVM_MANIFESTS = ("build.gradle", "build.gradle.kts", "pom.xml")
PYTHON_MANIFESTS = ("requirements.txt", "requirements-dev.txt", "pyproject.toml", "setup.py",
                    "setup.cfg", "Pipfile")


def _read_lines(path: Path) -> Optional[List[str]]:
    try:
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            return f.read().splitlines()
    except OSError as e:
        logger.debug(f"Cannot read manifest {path}: {e}")
        return None


def file_mentions(path: Path, needle: str) -> bool:
    """Case-insensitive substring check over every line of ``path``."""
    if not path.is_file():
        return False
    lines = _read_lines(path)
    if lines is None:
        return False
    needle = needle.lower()
    return any(needle in line.lower() for line in lines)


def any_file_mentions(root: PathLike, names: Iterable[str], needle: str) -> bool:
    root = Path(root)
    return any(file_mentions(root / name, needle) for name in names)


def cargo_has_dependency(root: PathLike, crate: str) -> bool:
    """``crate`` listed under a Cargo.toml dependency table."""
    lines = _read_lines(Path(root) / "Cargo.toml") if (Path(root) / "Cargo.toml").is_file() else None
    if not lines:
        return False
    crate = crate.lower()
    in_deps = False
    for raw in lines:
        line = raw.strip().lower()
        if line.startswith("["):
            in_deps = line in CARGO_SECTIONS or line.startswith(("[dependencies.", "[dev-dependencies."))
            if in_deps and crate in line:
                return True
            continue
        if in_deps and line.split("=", 1)[0].strip().strip('"') == crate:
            return True
    return False


def package_json_has_dependency(root: PathLike, package: str) -> bool:
    """``package`` listed in a package.json dependencies block."""
    path = Path(root) / "package.json"
    lines = _read_lines(path) if path.is_file() else None
    if not lines:
        return False
    needle = f'"{package.lower()}"'
    in_deps = False
    for raw in lines:
        line = raw.strip().lower()
        if any(line.startswith(section) for section in PACKAGE_JSON_SECTIONS):
            in_deps = True
            if line.endswith("}") or line.endswith("},"):
                in_deps = needle in line
                if in_deps:
                    return True
            continue
        if in_deps:
            if line.startswith("}"):
                in_deps = False
                continue
            if line.startswith(needle) or line.startswith(needle.rstrip('"') + "/"):
                return True
    return False


def csproj_mentions(root: PathLike, needle: str) -> bool:
    root = Path(root)
    try:
        candidates = sorted(root.glob("*.csproj")) + sorted(root.glob("*/*.csproj"))
    except OSError:
        return False
    return any(file_mentions(path, needle) for path in candidates)


def cpp_mentions(root: PathLike, needle: str) -> bool:
    return any_file_mentions(root, CPP_MANIFESTS, needle)


def jvm_mentions(root: PathLike, needle: str) -> bool:
    return any_file_mentions(root, JVM_MANIFESTS, needle)


def mix_mentions(root: PathLike, needle: str) -> bool:
    return any_file_mentions(root, ("mix.exs",), needle)


def python_mentions(root: PathLike, needle: str) -> bool:
    return any_file_mentions(root, PYTHON_MANIFESTS, needle)
