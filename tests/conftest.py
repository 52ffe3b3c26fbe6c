from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


TemplateFactory = Callable[..., Path]


@pytest.fixture()
def templates_root(tmp_path: Path) -> Path:
    root = tmp_path / "templates"
    root.mkdir()
    return root


@pytest.fixture()
def make_template(templates_root: Path) -> TemplateFactory:
    """Write a template directory below ``templates_root``."""

    def factory(name: str, files: Mapping[str, str] | None = None, manifest: str | None = None) -> Path:
        path = templates_root / name
        path.mkdir()
        if manifest is not None:
            (path / "template.yml").write_text(manifest, encoding="utf-8")
        for relative, content in (files or {}).items():
            target = path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return path

    return factory
