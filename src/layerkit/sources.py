"""Install, update and remove user templates kept in git checkouts."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path, PurePosixPath
from typing import Sequence
from urllib.parse import urlparse

from .errors import TemplateSourceError, UnknownTemplate

__all__ = ["install", "remove", "template_name_from_uri", "update"]


LOGGER = logging.getLogger(__name__)


def template_name_from_uri(uri: str) -> str:
    """Return the template name for a repository ``uri``, minus any ``.git``."""

    path = urlparse(uri).path or uri
    # scp-like URIs (git@host:owner/name.git) parse as a bare path
    path = path.rsplit(":", 1)[-1]
    name = PurePosixPath(path.rstrip("/")).name
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise TemplateSourceError(f"cannot derive a template name from {uri!r}")
    return name


def _git(arguments: Sequence[str], *, cwd: Path | None = None) -> None:
    try:
        subprocess.run(
            ["git", *arguments],
            cwd=cwd,
            capture_output=True,
            check=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise TemplateSourceError("git is not installed") from exc
    except subprocess.CalledProcessError as exc:
        message = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
        raise TemplateSourceError(f"git {arguments[0]} failed: {message}") from exc


def install(uri: str, templates_dir: Path) -> Path:
    """Clone the template at ``uri`` into ``templates_dir``."""

    name = template_name_from_uri(uri)
    path = templates_dir / name
    if path.exists():
        raise TemplateSourceError(f"template {name!r} is already installed")

    templates_dir.mkdir(parents=True, exist_ok=True)
    LOGGER.info("installing %s from %s", name, uri)
    _git(["clone", uri, str(path)])
    return path


def update(templates_dir: Path) -> list[Path]:
    """Pull the latest changes into every installed template."""

    if not templates_dir.is_dir():
        return []

    updated: list[Path] = []
    for path in sorted(templates_dir.iterdir()):
        if not path.is_dir():
            continue
        LOGGER.info("updating %s", path.name)
        _git(["pull", "-q"], cwd=path)
        updated.append(path)
    return updated


def remove(name: str, templates_dir: Path) -> Path:
    """Delete the installed template called ``name``."""

    path = templates_dir / PurePosixPath(name).name
    if not path.is_dir():
        raise UnknownTemplate(name)

    LOGGER.info("removing %s", path.name)
    shutil.rmtree(path)
    return path
