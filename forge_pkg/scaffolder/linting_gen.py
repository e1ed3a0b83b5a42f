"""ESLint, Prettier and EditorConfig generation."""

from __future__ import annotations

from typing import Any

from ..config import ProjectConfig
from .templates import TemplateRenderer, default_renderer

ESLINT_FILE = ".eslintrc.json"
PRETTIER_FILE = ".prettierrc"
EDITORCONFIG_FILE = ".editorconfig"

# Must stay the last entry of ``extends`` so it can switch off every
# formatting rule enabled before it.
PRETTIER_EXTENDS = "prettier"


def generate_eslint_config(config: ProjectConfig) -> dict[str, Any]:
    """Build the ``.eslintrc.json`` structure.

    TypeScript projects layer the ``@typescript-eslint`` parser, plugin and
    recommended rules on top of ``eslint:recommended``.
    """
    extends = ["eslint:recommended"]
    eslint: dict[str, Any] = {
        "env": {"node": True, "es2021": True},
        "extends": extends,
        "parserOptions": {"ecmaVersion": "latest", "sourceType": "module"},
        "rules": {},
    }
    if config.is_typescript:
        eslint["parser"] = "@typescript-eslint/parser"
        eslint["plugins"] = ["@typescript-eslint"]
        extends.append("plugin:@typescript-eslint/recommended")
    extends.append(PRETTIER_EXTENDS)
    return eslint


def generate_prettier_config() -> dict[str, Any]:
    return {
        "semi": True,
        "trailingComma": "es5",
        "singleQuote": True,
        "printWidth": 100,
        "tabWidth": 2,
        "useTabs": False,
    }


def generate_editorconfig(renderer: TemplateRenderer | None = None) -> str:
    renderer = renderer or default_renderer()
    return renderer.render("editorconfig.j2", {})
