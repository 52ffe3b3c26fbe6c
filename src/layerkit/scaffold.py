"""Compose layered templates into a new project tree."""

from __future__ import annotations

import logging
import posixpath
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Mapping, Sequence

from .config import GenerationContext
from .errors import AmbiguousDestination, IOFailure
from .includes import IncludeResolver
from .registry import TemplateRegistry
from .template import TemplateRenderer
from .template_dir import ROOT_DIRECTORY, Template

__all__ = ["Composer", "FileAction", "GenerationPlan", "GenerationReport"]


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileAction:
    """A single file to materialise.

    ``directory`` is the uninterpolated logical directory of the file, used to
    find include fragments while rendering it.
    """

    destination: str
    source: Path
    template: Template
    render: bool
    directory: str


@dataclass(slots=True)
class GenerationPlan:
    """Everything a generation run will write, in write order."""

    directories: list[str] = field(default_factory=list)
    files: list[FileAction] = field(default_factory=list)
    shadowed: list[FileAction] = field(default_factory=list)


@dataclass(slots=True)
class GenerationReport:
    """What a generation run wrote below ``root``."""

    root: Path
    directories: list[str] = field(default_factory=list)
    files: dict[str, str] = field(default_factory=dict)


def _normalize(path: str) -> str:
    if not path.strip():
        raise AmbiguousDestination(path, "interpolates to an empty path")
    normalized = PurePosixPath(posixpath.normpath(path))
    if normalized.is_absolute() or normalized.parts[:1] == ("..",):
        raise AmbiguousDestination(path, "escapes the destination root")
    return normalized.as_posix()


def _check_destinations(directories: Iterable[str], files: Sequence[FileAction]) -> None:
    occupied: set[str] = set()
    for directory in directories:
        occupied.add(directory)
        occupied.update(parent.as_posix() for parent in PurePosixPath(directory).parents)

    claimed: set[str] = set()
    for action in files:
        if action.destination in claimed:
            raise AmbiguousDestination(action.destination, "claimed by more than one file")
        claimed.add(action.destination)
        occupied.update(parent.as_posix() for parent in PurePosixPath(action.destination).parents)

    for action in files:
        if action.destination in occupied:
            raise AmbiguousDestination(action.destination, "is both a file and a directory")


def _make_directory(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IOFailure(path, exc) from exc


class Composer:
    """Generate a project from an ordered list of templates.

    Templates are given highest precedence first. Every directory any template
    declares is created once; every distinct file destination is written once,
    by the first template in the list that provides it. Within a template,
    static files are handled before rendered ones.
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        renderer: TemplateRenderer | None = None,
        *,
        missing: str = "error",
    ) -> None:
        self.registry = registry
        self.renderer = renderer or TemplateRenderer()
        self.missing = missing

    def _interpolate(self, path: str, variables: Mapping[str, Any]) -> str:
        return _normalize(self.renderer.render_string(path, variables, missing="error"))

    def plan(self, templates: Sequence[Template], context: GenerationContext) -> GenerationPlan:
        """Work out the directories and winning files without touching disk."""

        variables = context.variables()
        markup = context.markup.value

        directories: dict[str, None] = {}
        for template in templates:
            for directory in template.each_directory(markup):
                path = self._interpolate(directory, variables)
                if path != ROOT_DIRECTORY:
                    directories.setdefault(path)

        claimed: dict[str, FileAction] = {}
        shadowed: list[FileAction] = []
        for template in templates:
            entries = [(raw, source, False) for raw, source in template.each_file()]
            entries.extend((raw, source, True) for raw, source in template.each_template(markup))
            for raw, source, render in entries:
                action = FileAction(
                    destination=self._interpolate(raw, variables),
                    source=source,
                    template=template,
                    render=render,
                    directory=PurePosixPath(raw).parent.as_posix(),
                )
                winner = claimed.get(action.destination)
                if winner is not None:
                    LOGGER.debug(
                        "skipping %s from %s, already provided by %s",
                        action.destination,
                        template.name,
                        winner.template.name,
                    )
                    shadowed.append(action)
                    continue
                claimed[action.destination] = action

        files = list(claimed.values())
        _check_destinations(directories, files)
        return GenerationPlan(directories=list(directories), files=files, shadowed=shadowed)

    def generate(
        self,
        destination: str | Path,
        context: GenerationContext,
        templates: Sequence[str],
    ) -> GenerationReport:
        """Generate the project described by ``context`` inside ``destination``.

        Template names are resolved and the whole run is planned before the
        first write, so unknown templates and conflicting destinations leave
        the filesystem untouched. Write errors abort the run as
        :class:`~layerkit.errors.IOFailure`; files already written stay.
        """

        loaded = self.registry.resolve(templates)
        plan = self.plan(loaded, context)
        variables = context.variables()
        includes = IncludeResolver(loaded, self.renderer, variables, missing=self.missing)

        root = Path(destination).expanduser().resolve()
        LOGGER.info("generating %s in %s from %s", context.name, root, ", ".join(templates))

        _make_directory(root)
        for directory in plan.directories:
            LOGGER.debug("creating directory %s", directory)
            _make_directory(root / directory)

        report = GenerationReport(root=root, directories=list(plan.directories))
        for action in plan.files:
            target = root / action.destination
            LOGGER.debug("writing %s from %s", action.destination, action.template.name)
            try:
                if action.render:
                    self.renderer.render_file(
                        action.source,
                        variables,
                        target=target,
                        missing=self.missing,
                        includes=includes.lookup_for(action.directory),
                    )
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(action.source, target)
                shutil.copymode(action.source, target)
            except OSError as exc:
                raise IOFailure(target, exc) from exc
            report.files[action.destination] = action.template.name

        return report
