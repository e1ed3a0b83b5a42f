"""Jinja2 rendering of the packaged ``.j2`` templates.

Every text file that is not JSON comes out of a template under
``forge_pkg/scaffolder/templates/``.  Rendering is pure, so a dry-run
preview and a real write of the same configuration produce identical text.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATE_DIR = Path(__file__).parent / "templates"

# Strings matching this may be emitted as plain YAML scalars.
_YAML_PLAIN_SAFE = re.compile(r"^[A-Za-z0-9_./][A-Za-z0-9 _./@:-]*$")


def _yaml_scalar_filter(value: Any) -> str:
    """Render a value as a YAML scalar, single-quoting when needed."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    text = str(value)
    if _YAML_PLAIN_SAFE.match(text) and not text.endswith(":") and ": " not in text:
        return text
    return "'" + text.replace("'", "''") + "'"


def _js_quote_filter(value: Any) -> str:
    """Render a value as a single-quoted JavaScript string literal."""
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


class TemplateRenderer:
    """Loads templates from *template_dir* and renders them with a context.

    Undefined variables raise instead of rendering as empty strings, and
    nothing is HTML-escaped.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(yaml_scalar=_yaml_scalar_filter, js_quote=_js_quote_filter)

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render *template_path* (relative to the template directory)."""
        return self.env.get_template(template_path).render(**context)


@lru_cache(maxsize=1)
def default_renderer() -> TemplateRenderer:
    """Shared renderer over the packaged templates."""
    return TemplateRenderer()
