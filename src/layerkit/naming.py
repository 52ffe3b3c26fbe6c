"""Guess module names, namespaces and directories from a project name.

Project names follow the packaging convention where ``-`` separates nested
namespaces and ``_`` separates the words of a single module name, so
``"foo-bar_baz"`` describes the module ``BarBaz`` nested inside ``Foo``.
"""

from __future__ import annotations

import re
from importlib import resources
from typing import Mapping

import yaml

__all__ = [
    "BIN_DIR",
    "COMMON_ABBREVIATIONS",
    "COMMON_NAMESPACES",
    "DATA_DIR",
    "EXT_DIR",
    "IGNORE_NAMESPACES",
    "LIB_DIR",
    "NAMESPACE_SEPARATOR",
    "PKG_DIR",
    "SPEC_DIR",
    "TEST_DIR",
    "module_name",
    "module_names_of",
    "namespace_dirs_of",
    "namespace_of",
    "namespace_path_of",
    "segments",
    "to_snake_case",
]


BIN_DIR = "bin"
LIB_DIR = "lib"
EXT_DIR = "ext"
DATA_DIR = "data"
TEST_DIR = "test"
SPEC_DIR = "spec"
PKG_DIR = "pkg"

NAMESPACE_SEPARATOR = "::"

# Words used in project names, but never in namespaces
IGNORE_NAMESPACES = frozenset({"core", "ruby", "rb", "java"})

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def _load_common_namespaces() -> dict[str, str]:
    text = resources.files("layerkit").joinpath("data", "common_namespaces.yml").read_text(encoding="utf-8")
    table = yaml.safe_load(text) or {}
    return {str(key).lower(): str(value) for key, value in table.items()}


def _load_common_abbreviations() -> dict[str, str]:
    text = resources.files("layerkit").joinpath("data", "abbreviations.txt").read_text(encoding="utf-8")
    words = (line.strip() for line in text.splitlines())
    return {word.lower(): word for word in words if word}


COMMON_NAMESPACES: Mapping[str, str] = _load_common_namespaces()
COMMON_ABBREVIATIONS: Mapping[str, str] = _load_common_abbreviations()


def segments(name: str) -> list[str]:
    """Split ``name`` on ``-`` and drop empty or ignored segments."""

    return [
        segment
        for segment in name.split("-")
        if segment and segment.lower() not in IGNORE_NAMESPACES
    ]


def module_name(word: str) -> str:
    """Guess the module name for a single ``word`` of a project name.

    Curated namespaces are consulted before common abbreviations; both lookups
    ignore case and return the canonical spelling. Any other word simply has
    its first letter upper-cased.
    """

    key = word.lower()
    if key in COMMON_NAMESPACES:
        return COMMON_NAMESPACES[key]
    if key in COMMON_ABBREVIATIONS:
        return COMMON_ABBREVIATIONS[key]
    return word[:1].upper() + word[1:]


def module_names_of(name: str) -> list[str]:
    """Return one module name per namespace segment of ``name``."""

    return ["".join(module_name(word) for word in segment.split("_")) for segment in segments(name)]


def namespace_of(name: str) -> str:
    """Return the fully qualified namespace for ``name``, e.g. ``Foo::BarBaz``."""

    return NAMESPACE_SEPARATOR.join(module_names_of(name))


def to_snake_case(name: str) -> str:
    """Convert a camel-case identifier to a lower-case, underscored one.

    An ``_`` is inserted between a lower-case letter or digit and a following
    capital, and before the last capital of an acronym that starts a new word,
    so ``HTTPClient`` becomes ``http_client`` and ``FooBar`` becomes
    ``foo_bar``. Existing underscores are preserved.
    """

    spaced = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    spaced = _WORD_BOUNDARY.sub(r"\1_\2", spaced)
    return spaced.lower()


def namespace_dirs_of(name: str) -> list[str]:
    """Return the directory names making up the namespace path of ``name``."""

    return [to_snake_case(segment) for segment in segments(name)]


def namespace_path_of(name: str) -> str:
    """Return the namespace directory of ``name`` relative to ``lib/``."""

    return "/".join(namespace_dirs_of(name))
