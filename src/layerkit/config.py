"""Generation options and the variables exposed to rendered templates."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import naming

__all__ = [
    "BUILTIN_TEMPLATES_DIR",
    "DocumentationTool",
    "FeatureFlags",
    "GenerationContext",
    "GenerationOptions",
    "HOME_ENV",
    "Markup",
    "home_dir",
    "installed_templates_dir",
]


HOME_ENV = "LAYERKIT_HOME"
BUILTIN_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def home_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the per-user layerkit directory, ``~/.layerkit`` by default."""

    environ = os.environ if environ is None else environ
    override = environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".layerkit"


def installed_templates_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the directory user-installed templates are cloned into."""

    return home_dir(environ) / "templates"


class Markup(str, Enum):
    """Markup flavours a template may provide variant files for."""

    RDOC = "rdoc"
    MARKDOWN = "markdown"
    TEXTILE = "textile"


class DocumentationTool(str, Enum):
    """Documentation generator the new project is set up for."""

    RDOC = "rdoc"
    YARD = "yard"
    NONE = "none"


class FeatureFlags(BaseModel):
    """Optional features templates can query with ``{% if ... %}``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    documentation: DocumentationTool = Field(default=DocumentationTool.RDOC, description="Documentation generator to configure.")
    bundler: bool = Field(default=False, description="Whether the project manages dependencies with Bundler.")

    @property
    def rdoc(self) -> bool:
        return self.documentation is DocumentationTool.RDOC

    @property
    def yard(self) -> bool:
        return self.documentation is DocumentationTool.YARD


class GenerationOptions(BaseModel):
    """User supplied options for a single generation run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    templates: Tuple[str, ...] = Field(default=("base",), description="Template names, highest precedence first.")
    name: str | None = Field(None, description="Project name; defaults to the destination directory name.")
    markup: Markup = Field(default=Markup.RDOC, description="Markup flavour for documentation files.")
    version: str = Field(default="0.1.0", description="Initial project version.")
    summary: str = Field(default="TODO: Summary", description="One line summary of the project.")
    description: str = Field(default="TODO: Description", description="Longer project description.")
    homepage: str | None = Field(None, description="Project homepage URL.")
    email: str | None = Field(None, description="Primary contact email.")
    authors: Tuple[str, ...] = Field(default=(), description="Project authors, primary author first.")
    license: str = Field(default="MIT", description="License identifier.")
    features: FeatureFlags = Field(default_factory=FeatureFlags, description="Optional project features.")

    @field_validator("templates")
    @classmethod
    def _check_templates(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("at least one template is required")
        seen: set[str] = set()
        for name in value:
            if name in seen:
                raise ValueError(f"template {name!r} is listed more than once")
            seen.add(name)
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("version must not be empty")
        return value


@dataclass(frozen=True, slots=True)
class GenerationContext:
    """Variable bindings shared by every template rendered in one run.

    Attributes
    ----------
    name:
        The project name, e.g. ``"foo-bar_baz"``.
    project_dir:
        Basename of the destination directory.
    modules:
        Module names guessed from :attr:`name`, outermost first.
    namespace:
        :attr:`modules` joined with ``::``.
    namespace_dirs:
        One directory name per module.
    namespace_path:
        :attr:`namespace_dirs` joined with ``/``; the on-disk location of the
        main file under ``lib/``.
    safe_email:
        :attr:`email` with ``@`` spelled out, for documents published online.
    author:
        The first of :attr:`authors`, if any.
    """

    name: str
    project_dir: str
    modules: Tuple[str, ...]
    namespace: str
    namespace_dirs: Tuple[str, ...]
    namespace_path: str
    markup: Markup
    version: str
    summary: str
    description: str
    homepage: str | None
    email: str | None
    safe_email: str | None
    authors: Tuple[str, ...]
    author: str | None
    license: str
    features: FeatureFlags

    @classmethod
    def from_name(
        cls,
        name: str,
        options: GenerationOptions | None = None,
        *,
        project_dir: str | None = None,
    ) -> "GenerationContext":
        """Build the bindings for the project called ``name``.

        Parameters
        ----------
        name:
            The project name. ``options.name`` takes precedence when set.
        options:
            User supplied options; defaults are used when omitted.
        project_dir:
            Basename of the destination directory, defaulting to ``name``.
        """

        options = options or GenerationOptions()
        project_name = (options.name or name).strip()
        if not project_name:
            raise ValueError("project name must not be empty")

        email = options.email
        return cls(
            name=project_name,
            project_dir=project_dir or project_name,
            modules=tuple(naming.module_names_of(project_name)),
            namespace=naming.namespace_of(project_name),
            namespace_dirs=tuple(naming.namespace_dirs_of(project_name)),
            namespace_path=naming.namespace_path_of(project_name),
            markup=options.markup,
            version=options.version,
            summary=options.summary,
            description=options.description,
            homepage=options.homepage,
            email=email,
            safe_email=email.replace("@", " at ") if email else None,
            authors=options.authors,
            author=options.authors[0] if options.authors else None,
            license=options.license,
            features=options.features,
        )

    def variables(self) -> Mapping[str, Any]:
        """Return the mapping handed to the template renderer."""

        return {
            "name": self.name,
            "project_dir": self.project_dir,
            "modules": tuple(self.modules),
            "namespace": self.namespace,
            "namespace_dirs": tuple(self.namespace_dirs),
            "namespace_path": self.namespace_path,
            "markup": self.markup.value,
            "version": self.version,
            "summary": self.summary,
            "description": self.description,
            "homepage": self.homepage,
            "email": self.email,
            "safe_email": self.safe_email,
            "authors": tuple(self.authors),
            "author": self.author,
            "license": self.license,
            "documentation": self.features.documentation.value,
            "rdoc": self.features.rdoc,
            "yard": self.features.yard,
            "bundler": self.features.bundler,
            "bin_dir": naming.BIN_DIR,
            "lib_dir": naming.LIB_DIR,
            "ext_dir": naming.EXT_DIR,
            "data_dir": naming.DATA_DIR,
            "test_dir": naming.TEST_DIR,
            "spec_dir": naming.SPEC_DIR,
            "pkg_dir": naming.PKG_DIR,
        }
