# tests/conftest.py
"""
Shared fixtures: throw-away Go workspaces laid out the way ``inco gen``
leaves them (go.mod, sources, .inco_cache/ shadows and overlay.json).
"""

import json
from pathlib import Path

import pytest


DIV_SOURCE = """\
package pkg

func Div(a, b int) int {
\t// @inco: b != 0
\treturn a / b
}
"""


def div_shadow(original: str) -> str:
    """Shadow of DIV_SOURCE: the directive line became a three-line guard."""
    return (
        f"//line {original}:1\n"         # 0
        "package pkg\n"                  # 1
        "\n"                             # 2
        "func Div(a, b int) int {\n"     # 3
        f"//line {original}:4\n"         # 4
        "\tif !(b != 0) {\n"             # 5  -> original 3
        "\t\tpanic(\"inco violation: b != 0\")\n"  # 6 -> original 4
        "\t}\n"                          # 7
        f"//line {original}:5\n"         # 8
        "\treturn a / b\n"               # 9  -> original 4
        "}\n"                            # 10
    )


class Workspace:
    """A workspace root with helpers to populate it."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def write(self, rel: str, text: str) -> Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def go_mod(self, module_dir: str = "") -> Path:
        return self.write(str(Path(module_dir) / "go.mod"), "module example.com/demo\n\ngo 1.22\n")

    def overlay(self, replace: dict, module_dir: str = "") -> Path:
        doc = {"Replace": {str(k): str(v) for k, v in replace.items()}}
        return self.write(str(Path(module_dir) / ".inco_cache" / "overlay.json"), json.dumps(doc))

    def div_module(self, module_dir: str = ""):
        """go.mod + pkg/foo.go + its shadow + overlay; returns (original, shadow)."""
        base = Path(module_dir)
        self.go_mod(module_dir)
        original = self.write(str(base / "pkg" / "foo.go"), DIV_SOURCE)
        shadow = self.write(str(base / ".inco_cache" / "foo_1a2b.go"), div_shadow(str(original)))
        self.overlay({original: shadow}, module_dir)
        return original, shadow


@pytest.fixture
def workspace(tmp_path):
    return Workspace(tmp_path / "ws")


def numbered_source(total: int, directives=()) -> str:
    """A Go-ish file of *total* lines with ``// @inco:`` on the given 0-based lines."""
    lines = []
    for i in range(total):
        if i in directives:
            lines.append(f"\t// @inco: x{i} > 0")
        else:
            lines.append(f"\tx{i} := {i}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_source():
    return numbered_source
