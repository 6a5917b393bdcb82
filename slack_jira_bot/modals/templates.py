"""Issue body templates evaluated over submitted field values."""

from __future__ import annotations

from typing import Mapping

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment


class TemplateRenderError(Exception):
    """Raised when a template cannot be compiled or rendered."""


_ENVIRONMENT = SandboxedEnvironment(
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=False,
)


class IssueTemplate:
    """A named Jinja2 template.

    Field values are exposed as top-level variables, so ``{{ symptom }}``
    substitutes the text typed into the ``symptom`` block and
    ``{% if category_static_select == "Other" %}`` branches on a selected option.
    Referencing a field that was not supplied is an error rather than an empty
    string.
    """

    def __init__(self, name: str, source: str) -> None:
        self.name = name
        try:
            self._template = _ENVIRONMENT.from_string(source)
        except TemplateError as exc:
            raise TemplateRenderError(f"Template '{name}' is invalid: {exc}") from exc

    def render(self, values: Mapping[str, str]) -> str:
        try:
            return self._template.render(dict(values))
        except TemplateError as exc:
            raise TemplateRenderError(f"Template '{self.name}' failed to render: {exc}") from exc
