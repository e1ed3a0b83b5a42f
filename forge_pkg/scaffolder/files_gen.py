"""Static and near-static files: ignore lists, root re-exports, example source.

The root re-export files forward to ``dist/`` so consumers (and editors)
resolve the package root without a ``dist/`` path segment.
"""

from __future__ import annotations

from ..config import ModuleFormat, ProjectConfig
from .manifest import ROOT_INDEX_DTS, ROOT_INDEX_JS, ROOT_INDEX_MJS
from .templates import TemplateRenderer, default_renderer
from .testing_gen import runner_config_filename

_ROOT_TEMPLATES = {
    ROOT_INDEX_JS: "root/index.js.j2",
    ROOT_INDEX_MJS: "root/index.mjs.j2",
    ROOT_INDEX_DTS: "root/index.d.ts.j2",
}


def generate_gitignore(renderer: TemplateRenderer | None = None) -> str:
    renderer = renderer or default_renderer()
    return renderer.render("gitignore.j2", {})


def generate_npmignore(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str | None:
    """Publish-ignore list; ``None`` for JavaScript, whose source is what ships."""
    if not config.is_typescript:
        return None
    renderer = renderer or default_renderer()
    context = {
        "test_config": runner_config_filename(config),
        "linting": config.linting_enabled,
    }
    return renderer.render("npmignore.j2", context)


def generate_root_index(
    config: ProjectConfig, filename: str, renderer: TemplateRenderer | None = None
) -> str:
    """Render one of ``index.js``, ``index.mjs`` or ``index.d.ts``.

    ``index.js`` is CommonJS for commonjs and dual packages and ESM for esm
    packages; in dual packages ESM consumers go through ``index.mjs``.
    """
    if filename not in _ROOT_TEMPLATES:
        raise ValueError(f"Not a root re-export file: {filename}")
    renderer = renderer or default_renderer()
    context = {
        "package_name": config.package_name,
        "commonjs": config.module_format is not ModuleFormat.ESM,
    }
    return renderer.render(_ROOT_TEMPLATES[filename], context)


def generate_example_source(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str:
    """Render ``src/index.(ts|js)`` with the ``greet`` / ``add`` examples."""
    renderer = renderer or default_renderer()
    context = {
        "typescript": config.is_typescript,
        "commonjs": config.module_format is ModuleFormat.COMMONJS,
    }
    return renderer.render("src/index.j2", context)
