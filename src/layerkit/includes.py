"""Combining include fragments contributed by several templates."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Mapping, Sequence

from .template import IncludeLookup, TemplateRenderer
from .template_dir import Template

__all__ = ["IncludeResolver"]


LOGGER = logging.getLogger(__name__)


class IncludeResolver:
    """Render every fragment registered for a slot, in template order.

    Unlike files, where one template wins, include fragments are additive:
    each template registering a fragment for ``(directory, slot)`` contributes
    its rendered text.
    """

    def __init__(
        self,
        templates: Sequence[Template],
        renderer: TemplateRenderer,
        variables: Mapping[str, Any],
        *,
        missing: str = "error",
    ) -> None:
        self._templates = tuple(templates)
        self._renderer = renderer
        self._variables = variables
        self._missing = missing

    def render(self, directory: str, slot: str) -> str:
        """Return the concatenated fragments for ``slot`` in ``directory``."""

        output: list[str] = []
        for template in self._templates:
            fragment = template.include_for(directory, slot)
            if fragment is None:
                continue
            LOGGER.debug("including %s/%s from %s", directory, slot, template.name)
            output.append(self._renderer.render_file(fragment, self._variables, missing=self._missing))
        return "".join(output)

    def lookup_for(self, directory: str) -> IncludeLookup:
        """Return the ``includes`` lookup for a file rendered in ``directory``."""

        return partial(self.render, directory)
