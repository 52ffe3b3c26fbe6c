"""Constrained string templating used for file names and file contents.

Templates support three constructs and nothing else:

* ``{{ dotted.name|filter }}`` placeholders,
* ``{% if cond %}`` / ``{% elif cond %}`` / ``{% else %}`` / ``{% endif %}``
  blocks, where ``cond`` is ``name``, ``not name``, ``name == "text"`` or
  ``name != "text"``,
* ``{% includes slot %}`` which asks the caller supplied lookup for the
  combined include fragments registered for ``slot``.

Dotted names resolve through mapping keys and public, non-callable
attributes only; methods are never called. A block tag alone on its line
consumes the whole line. A standalone ``{% includes %}`` ends its output with
a newline, so fragments without a trailing newline stay on their own line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping, Union

from .errors import TemplateRenderingError
from .naming import to_snake_case

__all__ = [
    "IncludeLookup",
    "TemplateRenderer",
    "TemplateRenderingError",
]


IncludeLookup = Callable[[str], str]

_TOKEN_PATTERN = re.compile(r"{{\s*(?P<expression>[^{}]+?)\s*}}|{%\s*(?P<tag>.+?)\s*%}")
_LINE_END = re.compile(r"[ \t]*\r?\n")
_CONDITION_PATTERN = re.compile(
    r"""^(?P<negate>not\s+)?(?P<key>[\w.]+)
        (?:\s*(?P<operator>==|!=)\s*(?P<literal>"[^"]*"|'[^']*'))?$""",
    re.VERBOSE,
)
_SLOT_PATTERN = re.compile(r"""^(?:"(?P<double>\w+)"|'(?P<single>\w+)'|(?P<bare>\w+))$""")
_MISSING = object()


@dataclass(slots=True)
class _Text:
    text: str


@dataclass(slots=True)
class _Placeholder:
    source: str
    expression: str


@dataclass(slots=True)
class _Includes:
    slot: str
    standalone: bool = False


@dataclass(slots=True)
class _Conditional:
    branches: list[tuple[str, list["_Node"]]] = field(default_factory=list)
    otherwise: list["_Node"] | None = None


_Node = Union[_Text, _Placeholder, _Includes, _Conditional]


def _resolve_value(context: Mapping[str, Any], dotted_path: str) -> Any:
    value: Any = context
    for segment in dotted_path.split("."):
        if isinstance(value, Mapping):
            if segment not in value:
                raise KeyError(segment)
            value = value[segment]
            continue
        if segment.startswith("_") or not hasattr(value, segment):
            raise KeyError(segment)
        value = getattr(value, segment)
        if callable(value):
            raise KeyError(segment)
    return value


def _apply_filter(value: Any, filter_name: str, filters: Mapping[str, Callable[[Any], Any]]) -> Any:
    try:
        filter_func = filters[filter_name]
    except KeyError as exc:
        raise TemplateRenderingError(f"unknown filter '{filter_name}'") from exc

    return filter_func(value)


def _join(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def _parse_slot(argument: str) -> str:
    match = _SLOT_PATTERN.match(argument)
    if match is None:
        raise TemplateRenderingError(f"invalid include slot '{argument}'")
    return match.group("double") or match.group("single") or match.group("bare")


def _parse(template: str) -> list[_Node]:
    root: list[_Node] = []
    # Each frame is the open conditional (None for the root) and the body
    # currently receiving nodes.
    stack: list[tuple[_Conditional | None, list[_Node]]] = [(None, root)]
    text = template
    position = 0

    for match in _TOKEN_PATTERN.finditer(text):
        block, body = stack[-1]
        expression = match.group("expression")
        start, end = match.start(), match.end()

        standalone = False
        if expression is None:
            line_start = text.rfind("\n", 0, start) + 1
            line_end = _LINE_END.match(text, end)
            standalone = (
                line_start >= position
                and not text[line_start:start].strip(" \t")
                and line_end is not None
            )
            if standalone:
                start, end = line_start, line_end.end()

        if start > position:
            body.append(_Text(text[position:start]))
        position = end

        if expression is not None:
            body.append(_Placeholder(match.group(0), expression))
            continue

        keyword, _, argument = match.group("tag").partition(" ")
        argument = argument.strip()
        if keyword == "if":
            node = _Conditional(branches=[(argument, [])])
            body.append(node)
            stack.append((node, node.branches[0][1]))
        elif keyword in {"elif", "else"}:
            if block is None or block.otherwise is not None:
                raise TemplateRenderingError(f"unexpected '{keyword}' tag")
            if keyword == "elif":
                block.branches.append((argument, []))
                stack[-1] = (block, block.branches[-1][1])
            else:
                block.otherwise = []
                stack[-1] = (block, block.otherwise)
        elif keyword == "endif":
            if block is None:
                raise TemplateRenderingError("unexpected 'endif' tag")
            stack.pop()
        elif keyword == "includes":
            body.append(_Includes(_parse_slot(argument), standalone))
        else:
            raise TemplateRenderingError(f"unknown tag '{keyword}'")

    if len(stack) > 1:
        raise TemplateRenderingError("unclosed 'if' tag")
    if position < len(text):
        root.append(_Text(text[position:]))
    return root


def _test(condition: str, context: Mapping[str, Any]) -> bool:
    match = _CONDITION_PATTERN.match(condition)
    if match is None:
        raise TemplateRenderingError(f"invalid condition '{condition}'")

    try:
        value = _resolve_value(context, match.group("key"))
    except KeyError:
        value = _MISSING

    operator = match.group("operator")
    if operator is None:
        result = value is not _MISSING and bool(value)
    else:
        literal = match.group("literal")[1:-1]
        equal = value is not _MISSING and str(value) == literal
        result = equal if operator == "==" else not equal

    return not result if match.group("negate") else result


@dataclass(slots=True)
class TemplateRenderer:
    """Render templates written in the constrained placeholder language."""

    filters: MutableMapping[str, Callable[[Any], Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.filters:
            self.filters.update(
                {
                    "upper": lambda value: str(value).upper(),
                    "lower": lambda value: str(value).lower(),
                    "title": lambda value: str(value).title(),
                    "capitalize": lambda value: str(value).capitalize(),
                    "snake": lambda value: to_snake_case(str(value)),
                    "join": _join,
                    "repr": lambda value: repr(value),
                    "strip": lambda value: str(value).strip(),
                }
            )

    def render_string(
        self,
        template: str,
        context: Mapping[str, Any],
        *,
        missing: str = "keep",
        includes: IncludeLookup | None = None,
    ) -> str:
        """Render ``template`` using ``context``.

        Parameters
        ----------
        template:
            The template string to evaluate.
        context:
            Mapping providing values for placeholders and conditions.
        missing:
            Controls what happens when a placeholder cannot be resolved. The
            supported policies are ``"keep"`` (return the placeholder unchanged),
            ``"empty"`` (replace with an empty string) and ``"error"`` (raise
            :class:`TemplateRenderingError`). Names missing from a condition
            are always treated as false.
        includes:
            Lookup answering ``{% includes slot %}`` tags. Without one, such
            tags raise :class:`TemplateRenderingError`.
        """

        if missing not in {"keep", "empty", "error"}:
            raise ValueError("missing must be 'keep', 'empty', or 'error'")

        output: list[str] = []
        self._render_nodes(_parse(template), context, output, missing, includes)
        return "".join(output)

    def _render_nodes(
        self,
        nodes: list[_Node],
        context: Mapping[str, Any],
        output: list[str],
        missing: str,
        includes: IncludeLookup | None,
    ) -> None:
        for node in nodes:
            if isinstance(node, _Text):
                output.append(node.text)
            elif isinstance(node, _Placeholder):
                output.append(self._substitute(node, context, missing))
            elif isinstance(node, _Includes):
                if includes is None:
                    raise TemplateRenderingError(
                        f"includes('{node.slot}') is only available while rendering a template file"
                    )
                fragment = includes(node.slot)
                if node.standalone and fragment and not fragment.endswith("\n"):
                    fragment += "\n"
                output.append(fragment)
            else:
                body = node.otherwise
                for condition, branch in node.branches:
                    if _test(condition, context):
                        body = branch
                        break
                if body:
                    self._render_nodes(body, context, output, missing, includes)

    def _substitute(self, node: _Placeholder, context: Mapping[str, Any], missing: str) -> str:
        parts = [part.strip() for part in node.expression.split("|") if part.strip()]
        if not parts:
            return node.source

        key, *filters = parts
        try:
            value = _resolve_value(context, key)
        except KeyError:
            if missing == "keep":
                return node.source
            if missing == "empty":
                return ""
            raise TemplateRenderingError(f"missing value for '{key}'")

        for filter_name in filters:
            value = _apply_filter(value, filter_name, self.filters)

        return str(value)

    def render_file(
        self,
        template_path: str | Path,
        context: Mapping[str, Any],
        *,
        target: str | Path | None = None,
        encoding: str = "utf-8",
        missing: str = "keep",
        includes: IncludeLookup | None = None,
    ) -> str:
        """Render ``template_path`` and optionally write the result to ``target``."""

        template_path = Path(template_path)
        if not template_path.is_file():
            raise FileNotFoundError(template_path)

        text = template_path.read_text(encoding=encoding)
        try:
            rendered = self.render_string(text, context, missing=missing, includes=includes)
        except TemplateRenderingError as exc:
            raise TemplateRenderingError(f"{template_path}: {exc}") from exc

        if target is not None:
            target_path = Path(target)
            target_path.parent.mkdir(parents=True, exist_ok=True)
            target_path.write_text(rendered, encoding=encoding)

        return rendered
