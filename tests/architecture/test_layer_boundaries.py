"""
Layer boundary contract.

Tests that enforce the package layering:

1. backoffice_kernel/** may NOT import backoffice_engines,
   backoffice_modules, backoffice_services or backoffice_config.
   The kernel never depends upward.

2. backoffice_engines/** may NOT import backoffice_modules,
   backoffice_services or backoffice_config.  Engines stay pure.

3. Only backoffice_services performs HTTP: no other package imports
   ``requests`` except the bootstrap that hands a session through.

The checks parse source with ``ast``; nothing is imported.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    """All .py files under a top-level package."""
    return sorted((ROOT / package).rglob("*.py"))


def _imported_modules(path: Path):
    """Yield (lineno, dotted module) for every import statement in a file."""
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            yield from ((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
            yield node.lineno, node.module


def _violations(package: str, forbidden: tuple[str, ...], allowed: tuple[str, ...] = ()) -> list[str]:
    found: list[str] = []
    for path in _python_files(package):
        if path.name in allowed:
            continue
        for lineno, module in _imported_modules(path):
            if module.split(".")[0] in forbidden:
                found.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:

    FORBIDDEN_PREFIXES = (
        "backoffice_engines",
        "backoffice_modules",
        "backoffice_services",
        "backoffice_config",
    )

    def test_kernel_files_exist(self):
        assert _python_files("backoffice_kernel")

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations("backoffice_kernel", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Kernel boundary violation: backoffice_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )


class TestEnginesStayPure:

    FORBIDDEN_PREFIXES = (
        "backoffice_modules",
        "backoffice_services",
        "backoffice_config",
        "requests",
    )

    def test_engines_do_not_import_outer_layers(self):
        violations = _violations("backoffice_engines", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Engine purity violation: backoffice_engines/** must not import "
            "modules, services, config or HTTP:\n" + "\n".join(violations)
        )


class TestHttpOnlyInServices:

    def test_modules_do_not_import_requests(self):
        violations = _violations(
            "backoffice_modules", ("requests",), allowed=("bootstrap.py",),
        )
        assert not violations, (
            "Only backoffice_services may talk HTTP:\n" + "\n".join(violations)
        )
