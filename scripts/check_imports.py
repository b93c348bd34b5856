#!/usr/bin/env python3
"""Fail when a bmm_engine module imports across a layer boundary.

    domain, config   import no other layer
    application      domain
    infrastructure   domain, application, config
    bootstrap        everything except api
    api              application, domain, bootstrap

Routes reach stubs and adapters only through bootstrap.

Usage:
    python scripts/check_imports.py [package_directory]
"""

import ast
import sys
from pathlib import Path
from typing import NamedTuple

PACKAGE = "bmm_engine"

ALLOWED_IMPORTS: dict[str, frozenset[str]] = {
    "domain": frozenset(),
    "config": frozenset(),
    "application": frozenset({"domain"}),
    "infrastructure": frozenset({"domain", "application", "config"}),
    "bootstrap": frozenset({"domain", "application", "infrastructure", "config"}),
    "api": frozenset({"application", "domain", "bootstrap"}),
}


class Violation(NamedTuple):
    path: str
    line: int
    message: str


def imported_modules(node: ast.AST) -> list[str]:
    """Absolute module names an import statement pulls in."""
    if isinstance(node, ast.Import):
        return [alias.name for alias in node.names]
    if isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
        return [node.module]
    return []


def layer_of(py_file: Path, package_dir: Path) -> str | None:
    try:
        parts = py_file.relative_to(package_dir).parts
    except ValueError:
        return None
    if len(parts) > 1 and parts[0] in ALLOWED_IMPORTS:
        return parts[0]
    return None


def target_layer(module: str) -> str | None:
    head, _, rest = module.partition(".")
    if head != PACKAGE or not rest:
        return None
    layer = rest.split(".", 1)[0]
    return layer if layer in ALLOWED_IMPORTS else None


def check_file_imports(py_file: Path, package_dir: Path) -> list[Violation]:
    layer = layer_of(py_file, package_dir)
    if layer is None:
        return []
    try:
        tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
    except (SyntaxError, UnicodeDecodeError) as exc:
        print(f"warning: skipping {py_file}: {exc}", file=sys.stderr)
        return []

    violations = []
    for node in ast.walk(tree):
        for module in imported_modules(node):
            target = target_layer(module)
            if target is None or target == layer or target in ALLOWED_IMPORTS[layer]:
                continue
            violations.append(
                Violation(str(py_file), node.lineno, f"{layer} layer cannot import from {target}")
            )
    return violations


def check_import_boundaries(package_dir: Path) -> list[Violation]:
    if not package_dir.is_dir():
        print(f"error: {package_dir} is not a directory", file=sys.stderr)
        return []
    violations: list[Violation] = []
    for py_file in sorted(package_dir.rglob("*.py")):
        violations.extend(check_file_imports(py_file, package_dir))
    return violations


def main(argv: list[str]) -> int:
    package_dir = Path(argv[1]) if len(argv) > 1 else Path(__file__).parent.parent / PACKAGE
    violations = check_import_boundaries(package_dir)
    for violation in violations:
        print(f"{violation.path}:{violation.line}: {violation.message}")
    if violations:
        print(f"{len(violations)} import boundary violation(s)")
        return 1
    print("import boundaries ok")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
