"""Generate project skeletons from layered templates.

The package guesses module names, namespaces and directories from a project
name, loads template directories, and composes an ordered list of them into a
new project where the first template providing a file wins while include
fragments from every template are combined.
"""

from __future__ import annotations

from .config import DocumentationTool, FeatureFlags, GenerationContext, GenerationOptions, Markup
from .errors import (
    AmbiguousDestination,
    IOFailure,
    LayerkitError,
    TemplateLoadError,
    TemplateRenderingError,
    TemplateSourceError,
    UnknownTemplate,
)
from .includes import IncludeResolver
from .naming import module_name, module_names_of, namespace_dirs_of, namespace_of, segments, to_snake_case
from .registry import TemplateRegistry
from .scaffold import Composer, GenerationPlan, GenerationReport
from .template import TemplateRenderer
from .template_dir import Template

__all__ = [
    "AmbiguousDestination",
    "Composer",
    "DocumentationTool",
    "FeatureFlags",
    "GenerationContext",
    "GenerationOptions",
    "GenerationPlan",
    "GenerationReport",
    "IOFailure",
    "IncludeResolver",
    "LayerkitError",
    "Markup",
    "Template",
    "TemplateLoadError",
    "TemplateRegistry",
    "TemplateRenderer",
    "TemplateRenderingError",
    "TemplateSourceError",
    "UnknownTemplate",
    "module_name",
    "module_names_of",
    "namespace_dirs_of",
    "namespace_of",
    "segments",
    "to_snake_case",
]

__version__ = "0.1.0"
