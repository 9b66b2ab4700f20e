#!/usr/bin/env python3
from __future__ import annotations

import ast
import sys
from pathlib import Path

MAX_FUNCTION_LINES = 240
MAX_FILE_LINES = 500
PACKAGE = "news_ingest"
# Modules allowed to write to stdout; everything else goes through logging.
PRINT_ALLOWED = {"cli.py"}


def iter_python_files(root: Path) -> list[Path]:
    paths: list[Path] = []
    for folder in [root / "src" / PACKAGE, root / "tests", root / "scripts"]:
        if not folder.exists():
            continue
        paths.extend(path for path in folder.rglob("*.py") if "__pycache__" not in path.parts)
    return sorted(paths)


def is_library_module(path: Path, root: Path) -> bool:
    return (root / "src" / PACKAGE) in path.parents


def check_file_length(path: Path, lines: list[str]) -> list[str]:
    if len(lines) > MAX_FILE_LINES:
        return [f"{path}: file too long ({len(lines)} > {MAX_FILE_LINES})"]
    return []


def check_tree(path: Path, tree: ast.AST, library: bool) -> list[str]:
    errors: list[str] = []
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.end_lineno:
            length = node.end_lineno - node.lineno + 1
            if length > MAX_FUNCTION_LINES:
                errors.append(
                    f"{path}:{node.lineno} {node.name} too long ({length} > {MAX_FUNCTION_LINES})"
                )
        if isinstance(node, ast.ExceptHandler) and node.type is None:
            errors.append(f"{path}:{node.lineno} bare except")
        if (
            library
            and path.name not in PRINT_ALLOWED
            and isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id == "print"
        ):
            errors.append(f"{path}:{node.lineno} print() in library module, use logging")
    return errors


def main() -> int:
    root = Path(__file__).resolve().parents[1]
    failures: list[str] = []
    for path in iter_python_files(root):
        text = path.read_text(encoding="utf-8")
        failures.extend(check_file_length(path, text.splitlines()))
        failures.extend(check_tree(path, ast.parse(text), is_library_module(path, root)))
    for failure in failures:
        print(failure, file=sys.stderr)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
