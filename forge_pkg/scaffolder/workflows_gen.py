"""GitHub Actions workflows and Dependabot configuration.

Steps are assembled as plain data (one dict per step) so the gating rules can
be tested without parsing YAML; the templates only lay them out.
"""

from __future__ import annotations

from typing import Any

import yaml

from ..config import ProjectConfig
from .templates import TemplateRenderer, default_renderer

CI_WORKFLOW_PATH = ".github/workflows/ci.yml"
PUBLISH_WORKFLOW_PATH = ".github/workflows/publish.yml"
DEPENDABOT_PATH = ".github/dependabot.yml"

NODE_MATRIX: tuple[int, ...] = (18, 20, 22)
PUBLISH_NODE_VERSION = 20
# Coverage is uploaded from one matrix leg only.
COVERAGE_NODE_VERSION = 20

CHECKOUT_ACTION = "actions/checkout@v4"
SETUP_NODE_ACTION = "actions/setup-node@v4"
CODECOV_ACTION = "codecov/codecov-action@v4"


def load_workflow(text: str) -> dict[str, Any]:
    """Parse a rendered workflow or Dependabot file.

    Raises:
        ValueError: If the text is not a YAML mapping.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Rendered YAML does not parse: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Rendered YAML is not a mapping")
    return data


def _render_checked(renderer: TemplateRenderer, template: str, context: dict[str, Any]) -> str:
    text = renderer.render(template, context)
    load_workflow(text)
    return text


def _step(name: str, **fields: Any) -> dict[str, Any]:
    return {"name": name, **fields}


def _verification_steps(config: ProjectConfig, *, lint: bool, coverage: bool) -> list[dict[str, Any]]:
    """Type-check, lint, test and coverage steps shared by CI and publish."""
    steps: list[dict[str, Any]] = []
    if config.is_typescript:
        steps.append(_step("Type check", run="npm run typecheck"))
    if lint and config.linting_enabled:
        steps.append(_step("Lint", run="npm run lint"))
    if config.has_tests:
        if coverage and config.coverage_active:
            steps.append(_step("Run tests", run="npm run test:coverage"))
            steps.append(
                _step(
                    "Upload coverage to Codecov",
                    condition=f"matrix.node-version == {COVERAGE_NODE_VERSION}",
                    uses=CODECOV_ACTION,
                    with_={"token": "${{ secrets.CODECOV_TOKEN }}"},
                )
            )
        else:
            steps.append(_step("Run tests", run="npm test"))
    return steps


def _build_step() -> dict[str, Any]:
    # JavaScript packages have no build script.
    return _step("Build", run="npm run build --if-present")


def ci_steps(config: ProjectConfig) -> list[dict[str, Any]]:
    """Ordered CI job steps.  The build step is always last."""
    steps = [
        _step("Checkout code", uses=CHECKOUT_ACTION),
        _step(
            "Setup Node.js ${{ matrix.node-version }}",
            uses=SETUP_NODE_ACTION,
            with_={"node-version": "${{ matrix.node-version }}"},
        ),
        _step("Install dependencies", run="npm install"),
    ]
    steps.extend(_verification_steps(config, lint=True, coverage=True))
    steps.append(_build_step())
    return steps


def publish_steps(config: ProjectConfig) -> list[dict[str, Any]]:
    """Ordered publish job steps: CI's test/build gating plus ``npm publish``."""
    steps = [
        _step("Checkout code", uses=CHECKOUT_ACTION),
        _step(
            "Setup Node.js",
            uses=SETUP_NODE_ACTION,
            with_={
                "node-version": PUBLISH_NODE_VERSION,
                "registry-url": "https://registry.npmjs.org",
            },
        ),
        _step("Install dependencies", run="npm install"),
    ]
    steps.extend(_verification_steps(config, lint=False, coverage=False))
    steps.append(_build_step())
    steps.append(
        _step(
            "Publish to npm",
            run="npm publish --provenance --access public",
            env={"NODE_AUTH_TOKEN": "${{ secrets.NPM_TOKEN }}"},
        )
    )
    return steps


def generate_ci_workflow(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str:
    renderer = renderer or default_renderer()
    return _render_checked(
        renderer,
        "github/ci.yml.j2",
        {"node_versions": list(NODE_MATRIX), "steps": ci_steps(config)},
    )


def generate_publish_workflow(
    config: ProjectConfig, renderer: TemplateRenderer | None = None
) -> str:
    renderer = renderer or default_renderer()
    return _render_checked(
        renderer, "github/publish.yml.j2", {"steps": publish_steps(config)}
    )


def generate_dependabot_config(renderer: TemplateRenderer | None = None) -> str:
    renderer = renderer or default_renderer()
    return _render_checked(renderer, "github/dependabot.yml.j2", {})

