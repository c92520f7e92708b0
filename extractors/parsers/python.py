"""Python source parser built on the standard ``ast`` module."""

from __future__ import annotations

import ast
import logging
from typing import Any, Dict, List, Optional, Set

from ..base import ParseError, SourceFile
from . import ParsedSource

logger = logging.getLogger("route_extractor.parsers.python")


class PythonSource(ParsedSource):
    def __init__(self, file: SourceFile, tree: ast.Module):
        super().__init__(file, file.text)
        self.tree = tree
        self.imports: Set[str] = set()

    @property
    def classes(self) -> List[ast.ClassDef]:
        return [node for node in self.tree.body if isinstance(node, ast.ClassDef)]

    @property
    def functions(self) -> List[ast.FunctionDef]:
        return [node for node in self.tree.body if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))]

    def imports_module(self, module: str) -> bool:
        return any(m == module or m.startswith(module + ".") for m in self.imports)

    def close(self) -> None:
        super().close()
        self.tree = ast.Module(body=[], type_ignores=[])
        self.imports = set()


def parse_python(file: SourceFile) -> PythonSource:
    try:
        tree = ast.parse(file.text, filename=file.path)
    except SyntaxError as e:
        raise ParseError(f"syntax error at line {e.lineno}: {e.msg}", file.path) from e
    except ValueError as e:
        raise ParseError(str(e), file.path) from e

    source = PythonSource(file, tree)
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            source.imports.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            source.imports.add(node.module)
    return source


# =============================================================================
# AST HELPERS
# =============================================================================

def dotted_name(node: ast.AST) -> str:
    """``serializers.CharField`` for an Attribute chain, ``CharField`` for a Name."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = dotted_name(node.value)
        return f"{parent}.{node.attr}" if parent else node.attr
    if isinstance(node, ast.Call):
        return dotted_name(node.func)
    return ""


def short_name(node: ast.AST) -> str:
    return dotted_name(node).rsplit(".", 1)[-1]


def base_names(cls: ast.ClassDef) -> List[str]:
    return [short_name(base) for base in cls.bases]


def literal(node: Optional[ast.AST]) -> Any:
    """Python value of a literal node, or None when it is not a literal."""
    if node is None:
        return None
    try:
        return ast.literal_eval(node)
    except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
        return None


def keywords(call: ast.Call) -> Dict[str, ast.AST]:
    return {kw.arg: kw.value for kw in call.keywords if kw.arg}


def decorator_calls(func: ast.AST, name: str) -> List[ast.AST]:
    """Decorators of ``func`` named ``name`` (bare or called)."""
    return [dec for dec in getattr(func, "decorator_list", []) if short_name(dec) == name]


def class_assignments(cls: ast.ClassDef) -> Dict[str, ast.AST]:
    """Simple ``name = value`` assignments in a class body."""
    values = {}
    for stmt in cls.body:
        if isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                if isinstance(target, ast.Name):
                    values[target.id] = stmt.value
    return values


def nested_class(cls: ast.ClassDef, name: str) -> Optional[ast.ClassDef]:
    for stmt in cls.body:
        if isinstance(stmt, ast.ClassDef) and stmt.name == name:
            return stmt
    return None
