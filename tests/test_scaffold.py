from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from layerkit.config import BUILTIN_TEMPLATES_DIR, GenerationContext, GenerationOptions
from layerkit.errors import AmbiguousDestination, IOFailure, UnknownTemplate
from layerkit.registry import TemplateRegistry
from layerkit.scaffold import Composer


@pytest.fixture()
def context() -> GenerationContext:
    return GenerationContext.from_name("foo-bar_baz")


def _composer(templates_root: Path) -> Composer:
    return Composer(TemplateRegistry.discover(templates_root))


def _files(root: Path) -> set[str]:
    return {path.relative_to(root).as_posix() for path in root.rglob("*") if path.is_file()}


@pytest.mark.parametrize("order, expected", [(["a", "b"], "from a\n"), (["b", "a"], "from b\n")])
def test_first_template_wins_a_shared_destination(make_template, templates_root, tmp_path, context, order, expected):
    make_template("a", {"templates/README.tmpl": "from a\n"})
    make_template("b", {"templates/README.tmpl": "from b\n"})

    report = _composer(templates_root).generate(tmp_path / "out", context, order)

    assert (tmp_path / "out" / "README").read_text(encoding="utf-8") == expected
    assert report.files == {"README": order[0]}


def test_files_are_the_union_of_all_destinations(make_template, templates_root, tmp_path, context):
    make_template("a", {"files/Rakefile": "a\n", "templates/lib/{{namespace_path}}.rb.tmpl": "# {{ namespace }}\n"})
    make_template("b", {"files/Rakefile": "b\n", "files/Gemfile": "gems\n"})

    destination = tmp_path / "out"
    _composer(templates_root).generate(destination, context, ["a", "b"])

    assert _files(destination) == {"Rakefile", "Gemfile", "lib/foo/bar_baz.rb"}
    assert (destination / "Rakefile").read_text(encoding="utf-8") == "a\n"
    assert (destination / "lib" / "foo" / "bar_baz.rb").read_text(encoding="utf-8") == "# Foo::BarBaz\n"


def test_static_files_are_copied_verbatim(make_template, templates_root, tmp_path, context):
    make_template("a", {"files/{{project_dir}}.txt": "{{ name }} stays\n"})

    destination = tmp_path / "out"
    _composer(templates_root).generate(destination, context, ["a"])

    assert (destination / "foo-bar_baz.txt").read_text(encoding="utf-8") == "{{ name }} stays\n"


def test_static_file_beats_renderable_within_a_template(make_template, templates_root, tmp_path, context):
    make_template("a", {"files/NOTES": "static\n", "templates/NOTES.tmpl": "rendered\n"})

    destination = tmp_path / "out"
    report = _composer(templates_root).generate(destination, context, ["a"])

    assert (destination / "NOTES").read_text(encoding="utf-8") == "static\n"
    assert report.files == {"NOTES": "a"}


def test_static_files_keep_their_mode(make_template, templates_root, tmp_path, context):
    path = make_template("a", {"files/bin/{{project_dir}}": "#!/bin/sh\n"})
    script = path / "files" / "bin" / "{{project_dir}}"
    script.chmod(script.stat().st_mode | stat.S_IXUSR)

    destination = tmp_path / "out"
    _composer(templates_root).generate(destination, context, ["a"])

    assert os.access(destination / "bin" / "foo-bar_baz", os.X_OK)


def test_directories_are_the_union_of_declarations(make_template, templates_root, tmp_path, context):
    make_template("a", manifest="directories: ['{{ lib_dir }}/{{ namespace_path }}', pkg]\n")
    make_template("b", {"files/data/.keep": ""}, manifest="directories: [pkg, '{{ spec_dir }}']\n")

    destination = tmp_path / "out"
    report = _composer(templates_root).generate(destination, context, ["a", "b"])

    assert report.directories == ["lib/foo/bar_baz", "pkg", "spec", "data"]
    for directory in report.directories:
        assert (destination / directory).is_dir()


def test_plan_records_shadowed_files(make_template, templates_root, context):
    make_template("a", {"templates/README.tmpl": "a"})
    make_template("b", {"templates/README.tmpl": "b", "templates/TODO.tmpl": "b"})
    composer = _composer(templates_root)

    plan = composer.plan(composer.registry.resolve(["a", "b"]), context)

    assert [(action.destination, action.template.name) for action in plan.files] == [
        ("README", "a"),
        ("TODO", "b"),
    ]
    assert [(action.destination, action.template.name) for action in plan.shadowed] == [("README", "b")]


def test_includes_are_additive_across_templates(make_template, templates_root, tmp_path, context):
    make_template(
        "a",
        {
            "templates/README.tmpl": "A readme\n{% includes license_notice %}\n",
            "includes/license_notice.tmpl": "A notice\n",
        },
    )
    make_template(
        "b",
        {
            "templates/README.tmpl": "B readme\n{% includes license_notice %}\n",
            "includes/license_notice.tmpl": "B notice for {{ namespace }}\n",
        },
    )

    destination = tmp_path / "out"
    _composer(templates_root).generate(destination, context, ["b", "a"])

    assert (destination / "README").read_text(encoding="utf-8") == "B readme\nB notice for Foo::BarBaz\nA notice\n"


def test_includes_follow_the_logical_directory(make_template, templates_root, tmp_path, context):
    make_template(
        "a",
        {
            "templates/lib/{{namespace_path}}.rb.tmpl": "{% includes requires %}",
            "includes/lib/requires.tmpl": "require 'set'\n",
            "includes/requires.tmpl": "root only\n",
        },
    )

    destination = tmp_path / "out"
    _composer(templates_root).generate(destination, context, ["a"])

    assert (destination / "lib" / "foo" / "bar_baz.rb").read_text(encoding="utf-8") == "require 'set'\n"


def test_markup_selects_variant_files(make_template, templates_root, tmp_path):
    make_template(
        "a",
        {
            "markup/markdown/README.md.tmpl": "# {{ name }}\n",
            "markup/rdoc/README.rdoc.tmpl": "= {{ name }}\n",
        },
    )
    context = GenerationContext.from_name("demo", GenerationOptions(markup="markdown"))

    destination = tmp_path / "out"
    _composer(templates_root).generate(destination, context, ["a"])

    assert _files(destination) == {"README.md"}


def test_unknown_template_writes_nothing(make_template, templates_root, tmp_path, context):
    make_template("a", {"templates/README.tmpl": "a"})

    destination = tmp_path / "out"
    with pytest.raises(UnknownTemplate):
        _composer(templates_root).generate(destination, context, ["a", "missing"])

    assert not destination.exists()


@pytest.mark.parametrize(
    "files, manifest",
    [
        ({"files/lib": "not a directory\n"}, "directories: [lib/foo]\n"),
        ({"files/docs": "file\n", "templates/docs/index.tmpl": "nested\n"}, None),
    ],
)
def test_conflicting_destinations_write_nothing(make_template, templates_root, tmp_path, context, files, manifest):
    make_template("a", files, manifest=manifest)

    destination = tmp_path / "out"
    with pytest.raises(AmbiguousDestination):
        _composer(templates_root).generate(destination, context, ["a"])

    assert not destination.exists()


def test_destination_escaping_the_root_is_rejected(make_template, templates_root, tmp_path, context):
    make_template("a", manifest="directories: ['../{{ name }}']\n")

    with pytest.raises(AmbiguousDestination):
        _composer(templates_root).generate(tmp_path / "out", context, ["a"])


def test_write_failures_surface_as_io_failure(make_template, templates_root, tmp_path, context):
    make_template("a", {"templates/README.tmpl": "a"})
    destination = tmp_path / "out"
    destination.write_text("a file, not a directory", encoding="utf-8")

    with pytest.raises(IOFailure) as excinfo:
        _composer(templates_root).generate(destination, context, ["a"])

    assert excinfo.value.path == destination.resolve()


def test_builtin_templates_compose(tmp_path):
    composer = Composer(TemplateRegistry.discover(BUILTIN_TEMPLATES_DIR))
    options = GenerationOptions(
        templates=("rspec", "bundler", "base"),
        email="jane@example.com",
        authors=("Jane Doe",),
    )
    context = GenerationContext.from_name("foo-bar_baz", options)

    destination = tmp_path / "foo-bar_baz"
    report = composer.generate(destination, context, options.templates)

    assert report.files["Rakefile"] == "rspec"
    assert report.files["Gemfile"] == "bundler"
    assert "RSpec::Core::RakeTask" in (destination / "Rakefile").read_text(encoding="utf-8")

    version = (destination / "lib" / "foo" / "bar_baz" / "version.rb").read_text(encoding="utf-8")
    assert "module Foo::BarBaz" in version
    assert "VERSION = '0.1.0'" in version
    assert (destination / "spec" / "foo" / "bar_baz_spec.rb").is_file()

    readme = (destination / "README.rdoc").read_text(encoding="utf-8")
    assert "* jane at example.com" in readme
    assert "$ gem install foo-bar_baz" in readme
    assert readme.index("$ rake spec") < readme.index("$ bundle install")
    assert "{%" not in readme
    assert not (destination / "README.md").exists()


def test_rendering_cannot_change_variables_for_later_files(make_template, templates_root, tmp_path):
    make_template("a", {"templates/first.tmpl": "[{{ authors.clear }}]\n"})
    make_template("b", {"templates/second.tmpl": "{{ authors|join }}\n"})
    options = GenerationOptions(templates=("a", "b"), authors=("Ann", "Bob"))
    context = GenerationContext.from_name("demo", options)

    destination = tmp_path / "out"
    Composer(TemplateRegistry.discover(templates_root), missing="keep").generate(destination, context, ["a", "b"])

    assert (destination / "first").read_text(encoding="utf-8") == "[{{ authors.clear }}]\n"
    assert (destination / "second").read_text(encoding="utf-8") == "Ann, Bob\n"


def test_file_actions_are_hashable(make_template, templates_root, context):
    make_template("a", {"templates/README.tmpl": "a\n", "files/LICENSE": "MIT\n"})
    composer = _composer(templates_root)

    plan = composer.plan(composer.registry.resolve(["a"]), context)

    assert len(set(plan.files)) == 2
