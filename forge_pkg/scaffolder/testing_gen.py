"""Test-runner configuration generation (Vitest and Jest)."""

from __future__ import annotations

from ..config import ModuleFormat, ProjectConfig, TestRunner
from .templates import TemplateRenderer, default_renderer


def runner_config_filename(config: ProjectConfig) -> str | None:
    """Name of the runner's config file, or ``None`` without a runner."""
    if config.test_runner is TestRunner.VITEST:
        return "vitest.config.ts"
    if config.test_runner is TestRunner.JEST:
        return f"jest.config.{config.source_ext}"
    return None


def generate_vitest_config(renderer: TemplateRenderer | None = None) -> str:
    renderer = renderer or default_renderer()
    return renderer.render("vitest.config.ts.j2", {})


def generate_jest_config(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str:
    """Render ``jest.config.ts`` (ts-jest) or ``jest.config.js``.

    A plain CommonJS package gets a ``module.exports`` config file.

    ESM TypeScript packages need the ``default-esm`` preset and must mark
    ``.ts`` as ESM.
    """
    renderer = renderer or default_renderer()
    esm = config.module_format is ModuleFormat.ESM
    context = {
        "typescript": config.is_typescript,
        "preset": "ts-jest/presets/default-esm" if esm else "ts-jest",
        "treat_ts_as_esm": esm,
        "ext": config.source_ext,
        "commonjs": config.module_format is ModuleFormat.COMMONJS,
    }
    return renderer.render("jest.config.j2", context)


def generate_runner_config(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str | None:
    """Config file content for the selected runner (``None`` for no runner)."""
    if config.test_runner is TestRunner.VITEST:
        return generate_vitest_config(renderer)
    if config.test_runner is TestRunner.JEST:
        return generate_jest_config(config, renderer)
    return None


def generate_example_test(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str:
    """Render ``src/index.test.(ts|js)`` exercising the example source."""
    renderer = renderer or default_renderer()
    source = "vitest" if config.test_runner is TestRunner.VITEST else "@jest/globals"
    import_path = "./index" if config.is_typescript else "./index.js"
    # Jest runs plain CommonJS sources untransformed, so no import syntax there.
    commonjs_js = (
        not config.is_typescript
        and config.module_format is ModuleFormat.COMMONJS
        and config.test_runner is TestRunner.JEST
    )
    context = {
        "test_import": source,
        "import_path": import_path,
        "commonjs_js": commonjs_js,
    }
    return renderer.render("src/index.test.j2", context)
