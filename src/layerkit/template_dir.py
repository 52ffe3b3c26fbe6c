"""Loading template directories from disk.

A template directory looks like::

    <name>/
      template.yml               optional manifest
      files/...                  copied verbatim
      templates/...              rendered, a trailing ".tmpl" is dropped
      markup/<flavour>/...       rendered only for that markup flavour
      includes/<dir>/<slot>.tmpl fragments for ``{% includes slot %}``

Loading only records what is there. Paths stay uninterpolated so one loaded
template can serve any number of generation runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import TemplateLoadError

__all__ = [
    "FILES_DIR",
    "INCLUDES_DIR",
    "MANIFEST_NAME",
    "MARKUP_DIR",
    "ROOT_DIRECTORY",
    "TEMPLATES_DIR",
    "TEMPLATE_SUFFIX",
    "Template",
    "TemplateManifest",
]


MANIFEST_NAME = "template.yml"
FILES_DIR = "files"
TEMPLATES_DIR = "templates"
MARKUP_DIR = "markup"
INCLUDES_DIR = "includes"
TEMPLATE_SUFFIX = ".tmpl"

# Logical directory of files placed directly in the project root
ROOT_DIRECTORY = "."

FileEntry = Tuple[str, Path]


class TemplateManifest(BaseModel):
    """Contents of ``template.yml``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    description: str = Field(default="", description="Human readable summary shown by `layerkit list`.")
    directories: Tuple[str, ...] = Field(default=(), description="Directory paths to create, may contain placeholders.")


def _strip_suffix(relative: str) -> str:
    if relative.endswith(TEMPLATE_SUFFIX) and len(relative) > len(TEMPLATE_SUFFIX):
        return relative[: -len(TEMPLATE_SUFFIX)]
    return relative


def _scan(root: Path) -> tuple[list[str], list[FileEntry]]:
    """Return the sub-directories and files below ``root`` in sorted order."""

    directories: list[str] = []
    files: list[FileEntry] = []
    if not root.is_dir():
        return directories, files

    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root).as_posix()
        if path.is_dir():
            directories.append(relative)
        elif path.is_file():
            files.append((relative, path))
    return directories, files


def _load_manifest(path: Path) -> TemplateManifest:
    manifest_path = path / MANIFEST_NAME
    if not manifest_path.is_file():
        return TemplateManifest()

    try:
        data = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise TemplateLoadError(f"{manifest_path}: invalid YAML: {exc}") from exc

    if data is None:
        return TemplateManifest()
    if not isinstance(data, dict):
        raise TemplateLoadError(f"{manifest_path}: expected a mapping")

    try:
        return TemplateManifest.model_validate(data)
    except ValidationError as exc:
        raise TemplateLoadError(f"{manifest_path}: {exc}") from exc


def _load_includes(root: Path) -> Mapping[str, Mapping[str, Path]]:
    includes: Dict[str, Dict[str, Path]] = {}
    _, fragments = _scan(root)
    for relative, path in fragments:
        logical = PurePosixPath(_strip_suffix(relative))
        directory = logical.parent.as_posix()
        includes.setdefault(directory, {})[logical.name] = path
    return MappingProxyType({directory: MappingProxyType(slots) for directory, slots in includes.items()})


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Template:
    """A loaded, read-only template directory.

    Attributes
    ----------
    path:
        Canonical absolute path of the template. Equality and hashing use
        only this field.
    directories:
        Directory paths declared by the manifest followed by those found in
        ``files/`` and ``templates/``.
    static_files:
        ``(destination, source)`` pairs copied without rendering.
    renderables:
        ``(destination, source)`` pairs rendered for every markup flavour.
    markup_renderables:
        Flavour specific ``(destination, source)`` pairs keyed by flavour.
    includes:
        Include fragment paths keyed by logical directory, then slot name.
    """

    path: Path
    description: str = field(default="", compare=False)
    directories: Tuple[str, ...] = field(default=(), compare=False)
    static_files: Tuple[FileEntry, ...] = field(default=(), compare=False)
    renderables: Tuple[FileEntry, ...] = field(default=(), compare=False)
    markup_renderables: Mapping[str, Tuple[FileEntry, ...]] = field(default_factory=_empty_mapping, compare=False)
    markup_directories: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty_mapping, compare=False)
    includes: Mapping[str, Mapping[str, Path]] = field(default_factory=_empty_mapping, compare=False)

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def load(cls, path: str | Path) -> "Template":
        """Load the template stored at ``path``."""

        root = Path(path).expanduser().resolve()
        if not root.is_dir():
            raise TemplateLoadError(f"{root} is not a template directory")

        manifest = _load_manifest(root)
        static_dirs, static_files = _scan(root / FILES_DIR)
        template_dirs, template_files = _scan(root / TEMPLATES_DIR)

        markup_renderables: Dict[str, Tuple[FileEntry, ...]] = {}
        markup_directories: Dict[str, Tuple[str, ...]] = {}
        markup_root = root / MARKUP_DIR
        if markup_root.is_dir():
            for flavour_root in sorted(markup_root.iterdir()):
                if not flavour_root.is_dir():
                    continue
                dirs, files = _scan(flavour_root)
                markup_directories[flavour_root.name] = tuple(dirs)
                markup_renderables[flavour_root.name] = tuple(
                    (_strip_suffix(relative), source) for relative, source in files
                )

        directories = dict.fromkeys([*manifest.directories, *static_dirs, *template_dirs])
        return cls(
            path=root,
            description=manifest.description,
            directories=tuple(directories),
            static_files=tuple(static_files),
            renderables=tuple((_strip_suffix(relative), source) for relative, source in template_files),
            markup_renderables=MappingProxyType(markup_renderables),
            markup_directories=MappingProxyType(markup_directories),
            includes=_load_includes(root / INCLUDES_DIR),
        )

    def each_directory(self, markup: str | None = None) -> Iterator[str]:
        """Yield the directory paths to create for ``markup``."""

        yield from self.directories
        if markup is not None:
            for directory in self.markup_directories.get(markup, ()):
                if directory not in self.directories:
                    yield directory

    def each_file(self) -> Iterator[FileEntry]:
        """Yield ``(destination, source)`` pairs of static files."""

        yield from self.static_files

    def each_template(self, markup: str | None = None) -> Iterator[FileEntry]:
        """Yield ``(destination, source)`` pairs of files to render for ``markup``."""

        yield from self.renderables
        if markup is not None:
            yield from self.markup_renderables.get(markup, ())

    def include_for(self, directory: str, slot: str) -> Path | None:
        """Return the fragment registered for ``slot`` in ``directory``, if any."""

        return self.includes.get(directory, {}).get(slot)
