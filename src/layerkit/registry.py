"""Registry mapping template names to template directories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .errors import UnknownTemplate
from .template_dir import Template

__all__ = ["TemplateRegistry"]


LOGGER = logging.getLogger(__name__)


class TemplateRegistry:
    """Explicitly populated mapping of template names to locations.

    A template is registered under the basename of its directory. Registering
    a second location under the same name replaces the first, which is how
    installed templates shadow builtin ones.
    """

    def __init__(self) -> None:
        self._locations: dict[str, Path] = {}
        self._loaded: dict[Path, Template] = {}

    @classmethod
    def discover(cls, *roots: str | Path) -> "TemplateRegistry":
        """Build a registry from every template directory inside ``roots``.

        Later roots take precedence over earlier ones. Missing roots are
        skipped.
        """

        registry = cls()
        for root in roots:
            registry.register_all(root)
        return registry

    def register(self, path: str | Path) -> str:
        """Register the template directory at ``path`` and return its name."""

        location = Path(path).expanduser().resolve()
        name = location.name
        previous = self._locations.get(name)
        if previous is not None and previous != location:
            LOGGER.debug("template %s at %s shadows %s", name, location, previous)
        self._locations[name] = location
        return name

    def register_all(self, root: str | Path) -> list[str]:
        """Register every sub-directory of ``root`` as a template."""

        root = Path(root).expanduser()
        if not root.is_dir():
            LOGGER.debug("template root %s does not exist", root)
            return []
        return [self.register(path) for path in sorted(root.iterdir()) if path.is_dir()]

    def names(self) -> list[str]:
        return sorted(self._locations)

    def location(self, name: str) -> Path:
        """Return the directory registered for ``name``."""

        try:
            return self._locations[name]
        except KeyError:
            raise UnknownTemplate(name) from None

    def load(self, name: str) -> Template:
        """Load ``name``, reusing the copy loaded earlier in this process."""

        location = self.location(name)
        template = self._loaded.get(location)
        if template is None:
            LOGGER.debug("loading template %s from %s", name, location)
            template = Template.load(location)
            self._loaded[location] = template
        return template

    def resolve(self, names: Iterable[str]) -> list[Template]:
        """Return the templates called ``names``, preserving their order.

        Every name is checked before anything is loaded so that an unknown
        template is reported without side effects.
        """

        requested: Sequence[str] = list(names)
        for name in requested:
            self.location(name)
        return [self.load(name) for name in requested]

    def __contains__(self, name: object) -> bool:
        return name in self._locations

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._locations)
