"""Command line interface for layerkit."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from . import __version__, sources
from .config import (
    BUILTIN_TEMPLATES_DIR,
    DocumentationTool,
    FeatureFlags,
    GenerationContext,
    GenerationOptions,
    Markup,
    installed_templates_dir,
)
from .errors import LayerkitError
from .registry import TemplateRegistry
from .scaffold import Composer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="layerkit", description="Generate projects from layered templates")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log what is being generated")
    subparsers = parser.add_subparsers(dest="command", required=True)

    new_parser = subparsers.add_parser("new", help="generate a new project")
    new_parser.add_argument("path", type=Path, help="Directory to generate the project into")
    new_parser.add_argument(
        "-T",
        "--template",
        dest="templates",
        action="append",
        metavar="NAME",
        help="Template to apply; repeat to layer templates, most specific first (default: base)",
    )
    new_parser.add_argument("-n", "--name", help="Project name (default: the directory name)")
    new_parser.add_argument(
        "--markup",
        choices=[markup.value for markup in Markup],
        default=Markup.RDOC.value,
        help="Markup used for documentation files",
    )
    new_parser.add_argument("-V", "--version", dest="project_version", default="0.1.0", help="Initial version")
    new_parser.add_argument("-s", "--summary", default="TODO: Summary", help="One line summary")
    new_parser.add_argument("-D", "--description", default="TODO: Description", help="Project description")
    new_parser.add_argument("-U", "--homepage", help="Project homepage")
    new_parser.add_argument("-e", "--email", help="Primary contact email")
    new_parser.add_argument(
        "-a",
        "--author",
        dest="authors",
        action="append",
        default=[],
        help="Project author; repeat for several",
    )
    new_parser.add_argument("-L", "--license", default="MIT", help="License identifier")
    new_parser.add_argument(
        "--docs",
        choices=[tool.value for tool in DocumentationTool],
        default=DocumentationTool.RDOC.value,
        help="Documentation generator to set up",
    )
    new_parser.add_argument("--bundler", action="store_true", help="Manage dependencies with Bundler")

    subparsers.add_parser("list", help="list builtin and installed templates")

    install_parser = subparsers.add_parser("install", help="install a template from a git repository")
    install_parser.add_argument("uri", help="Git URI of the template")

    subparsers.add_parser("update", help="update every installed template")

    remove_parser = subparsers.add_parser("remove", help="remove an installed template")
    remove_parser.add_argument("name", help="Name of the installed template")

    subparsers.add_parser("version", help="print the layerkit version")

    return parser


def _registry() -> TemplateRegistry:
    return TemplateRegistry.discover(BUILTIN_TEMPLATES_DIR, installed_templates_dir())


def _handle_new(args: argparse.Namespace) -> int:
    destination = args.path.expanduser()
    if destination.exists() and (not destination.is_dir() or any(destination.iterdir())):
        raise LayerkitError(f"{destination} already exists and is not empty")

    options = GenerationOptions(
        templates=tuple(args.templates or ["base"]),
        name=args.name,
        markup=args.markup,
        version=args.project_version,
        summary=args.summary,
        description=args.description,
        homepage=args.homepage,
        email=args.email,
        authors=tuple(args.authors),
        license=args.license,
        features=FeatureFlags(documentation=args.docs, bundler=args.bundler),
    )
    project_dir = destination.resolve().name
    context = GenerationContext.from_name(project_dir, options, project_dir=project_dir)

    report = Composer(_registry()).generate(destination, context, options.templates)
    print(f"Project {context.name} created at {report.root}")
    return 0


def _handle_list(args: argparse.Namespace) -> int:
    for title, root in (
        ("Builtin templates:", BUILTIN_TEMPLATES_DIR),
        ("Installed templates:", installed_templates_dir()),
    ):
        print(title)
        registry = TemplateRegistry.discover(root)
        for name in registry.names():
            description = registry.load(name).description
            print(f"  {name}" + (f" - {description}" if description else ""))
    return 0


def _handle_install(args: argparse.Namespace) -> int:
    path = sources.install(args.uri, installed_templates_dir())
    print(f"Installed {path.name} into {path}")
    return 0


def _handle_update(args: argparse.Namespace) -> int:
    for path in sources.update(installed_templates_dir()):
        print(f"Updated {path.name}")
    return 0


def _handle_remove(args: argparse.Namespace) -> int:
    path = sources.remove(args.name, installed_templates_dir())
    print(f"Removed {path.name}")
    return 0


def _handle_version(args: argparse.Namespace) -> int:
    print(f"layerkit {__version__}")
    return 0


_HANDLERS = {
    "new": _handle_new,
    "list": _handle_list,
    "install": _handle_install,
    "update": _handle_update,
    "remove": _handle_remove,
    "version": _handle_version,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = _HANDLERS.get(args.command)
    if handler is None:
        parser.error("no command provided")
        return 2

    try:
        return handler(args)
    except (LayerkitError, ValueError) as exc:
        sys.stderr.write(f"layerkit: {exc}\n")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
