"""Exception types raised by layerkit."""

from __future__ import annotations

from pathlib import Path


class LayerkitError(RuntimeError):
    """Base class for every error raised by the library."""


class UnknownTemplate(LayerkitError):
    """Raised when a requested template name has no registered location."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown template {name!r}")
        self.name = name


class AmbiguousDestination(LayerkitError):
    """Raised when a destination path cannot be materialised exactly once."""

    def __init__(self, destination: str, reason: str) -> None:
        super().__init__(f"ambiguous destination {destination!r}: {reason}")
        self.destination = destination
        self.reason = reason


class IOFailure(LayerkitError):
    """Raised when writing the generated tree fails."""

    def __init__(self, path: Path, error: OSError) -> None:
        super().__init__(f"could not write {path}: {error.strerror or error}")
        self.path = path
        self.error = error


class TemplateLoadError(LayerkitError):
    """Raised when a template directory cannot be loaded."""


class TemplateRenderingError(LayerkitError):
    """Raised when the renderer cannot evaluate a placeholder or tag."""


class TemplateSourceError(LayerkitError):
    """Raised when installing, updating or removing a template source fails."""


__all__ = [
    "AmbiguousDestination",
    "IOFailure",
    "LayerkitError",
    "TemplateLoadError",
    "TemplateRenderingError",
    "TemplateSourceError",
    "UnknownTemplate",
]
