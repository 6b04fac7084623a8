"""Repository-level checks: documentation and bundled example data."""

import json
from pathlib import Path


def test_readme_exists(project_root: Path) -> None:
    readme = project_root / "README.md"
    assert readme.exists(), "README.md should exist at the project root"
    assert "run_planning" in readme.read_text(encoding="utf-8")


def test_example_snapshot_is_valid_json(project_root: Path) -> None:
    payload = json.loads((project_root / "src" / "example_planning.json").read_text())
    assert {"capacities", "live"} <= set(payload)
