"""README generation.

Badges and body sections are each gated on one configuration flag (or on the
GitHub handle being known); the gating lives here, the layout in
``README.md.j2``.
"""

from __future__ import annotations

from ..config import PackageManager, ProjectConfig
from .manifest import run_script
from .templates import TemplateRenderer, default_renderer

DEFAULT_DESCRIPTION = "A new npm package."


def install_command(package_manager: PackageManager, package_name: str) -> str:
    verb = "install" if package_manager is PackageManager.NPM else "add"
    return f"{package_manager.value} {verb} {package_name}"


def readme_badges(config: ProjectConfig) -> list[tuple[str, str, str | None]]:
    """``(label, image_url, link_url)`` for every badge this config shows."""
    name = config.package_name
    badges: list[tuple[str, str, str | None]] = [
        (
            "npm version",
            f"https://img.shields.io/npm/v/{name}",
            f"https://www.npmjs.com/package/{name}",
        ),
        ("License", f"https://img.shields.io/npm/l/{name}", None),
    ]
    if config.is_typescript:
        badges.append(("Types", f"https://img.shields.io/npm/types/{name}", None))

    slug = config.repo_slug
    if slug is not None:
        if config.coverage_active:
            badges.append(
                (
                    "Coverage",
                    f"https://codecov.io/gh/{slug}/branch/main/graph/badge.svg",
                    f"https://codecov.io/gh/{slug}",
                )
            )
        if config.ci_enabled:
            badges.append(
                (
                    "CI",
                    f"https://github.com/{slug}/actions/workflows/ci.yml/badge.svg",
                    f"https://github.com/{slug}/actions/workflows/ci.yml",
                )
            )
    return badges


def generate_readme(config: ProjectConfig, renderer: TemplateRenderer | None = None) -> str:
    renderer = renderer or default_renderer()
    pm = config.package_manager
    context = {
        "package_name": config.package_name,
        "description": config.description or DEFAULT_DESCRIPTION,
        "badges": readme_badges(config),
        "language": config.language.value,
        "install_command": install_command(pm, config.package_name),
        "typescript": config.is_typescript,
        "has_tests": config.has_tests,
        "test_command": run_script(pm, "test"),
        "linting": config.linting_enabled,
        "lint_command": run_script(pm, "lint"),
        "format_command": run_script(pm, "format"),
        "build_command": run_script(pm, "build"),
        "exports_command": run_script(pm, "check:exports"),
        "cd": config.cd_enabled,
        "repo_slug": config.repo_slug,
        "author": config.author_name,
    }
    return renderer.render("README.md.j2", context)
