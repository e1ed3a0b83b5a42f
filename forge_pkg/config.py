"""forge-pkg configuration.

Two kinds of configuration live here:

* ``ProjectConfig`` -- the immutable description of *one* package being
  scaffolded (language, module format, test runner, CI/CD toggles, metadata).
  It is fully populated by the resolver before any generator runs.
* ``ForgeSettings`` -- runtime knobs for the tool itself (registry URL,
  timeouts, profile directory), read from environment variables.

All models use Pydantic v2 so they validate at construction time and
serialise to/from JSON without boiler-plate.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Choice enums
# ---------------------------------------------------------------------------


class Language(str, Enum):
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"


class ModuleFormat(str, Enum):
    """How the generated package is resolved by Node and bundlers."""

    ESM = "esm"
    COMMONJS = "commonjs"
    DUAL = "dual"


class TestRunner(str, Enum):
    NONE = "none"
    VITEST = "vitest"
    JEST = "jest"

    # Keep pytest from trying to collect this enum as a test class.
    __test__ = False


class PackageManager(str, Enum):
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"


# ---------------------------------------------------------------------------
# Project configuration model
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Everything the generators need to know about one package.

    The model is frozen: generators receive it read-only, which is what makes
    dry-run previews and real materialisation produce identical output.
    Package-name validation happens when the name is acquired (see
    :mod:`forge_pkg.validators`), not here.
    """

    model_config = ConfigDict(frozen=True)

    package_name: str = Field(..., description="npm package identifier, optionally scoped")
    language: Language = Field(default=Language.TYPESCRIPT)
    module_format: ModuleFormat = Field(default=ModuleFormat.DUAL)
    test_runner: TestRunner = Field(default=TestRunner.VITEST)
    linting_enabled: bool = Field(default=True)
    git_init_enabled: bool = Field(default=False)

    ci_enabled: bool = Field(default=True, description="Generate the CI workflow")
    cd_enabled: bool = Field(default=False, description="Generate the publish workflow")
    coverage_upload_enabled: bool = Field(
        default=False, description="Upload coverage to Codecov from CI"
    )
    dependency_bot_enabled: bool = Field(default=False, description="Generate Dependabot config")

    package_manager: PackageManager = Field(default=PackageManager.NPM)

    description: str | None = Field(default=None)
    author_name: str | None = Field(default=None)
    author_email: str | None = Field(default=None)
    github_username: str | None = Field(default=None)

    # ------------------------------------------------------------------
    # Derived flags
    # ------------------------------------------------------------------

    @property
    def is_typescript(self) -> bool:
        return self.language is Language.TYPESCRIPT

    @property
    def has_tests(self) -> bool:
        return self.test_runner is not TestRunner.NONE

    @property
    def source_ext(self) -> str:
        """File extension of the example sources (``ts`` or ``js``)."""
        return "ts" if self.is_typescript else "js"

    @property
    def coverage_active(self) -> bool:
        """Whether coverage is actually uploaded (needs CI and a runner)."""
        return self.ci_enabled and self.has_tests and self.coverage_upload_enabled

    @property
    def project_dir_name(self) -> str:
        """Directory name for the package; scoped names drop the ``@scope/`` part."""
        return self.package_name.rsplit("/", 1)[-1]

    @property
    def repo_slug(self) -> str | None:
        """``<user>/<repo>`` on GitHub, or ``None`` without a username."""
        if not self.github_username:
            return None
        return f"{self.github_username}/{self.project_dir_name}"


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------

APP_NAME = "forge-pkg"


class ForgeSettings(BaseModel):
    """Runtime settings for the scaffolding tool.

    Instances are typically created once by the CLI entry point and passed
    to the pipeline and the lookup clients.
    """

    registry_url: str = Field(default="https://registry.npmjs.org")
    node_dist_url: str = Field(default="https://nodejs.org/dist/index.json")
    http_timeout: int = Field(default=10, ge=1, description="Per-request timeout in seconds")
    install_timeout: int = Field(default=600, ge=10)
    build_timeout: int = Field(default=300, ge=10)
    config_dir: Path | None = Field(
        default=None,
        description="Directory holding the user profile; platform default when unset",
    )

    @classmethod
    def from_env(cls) -> "ForgeSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            FORGE_REGISTRY_URL, FORGE_NODE_DIST_URL, FORGE_HTTP_TIMEOUT,
            FORGE_INSTALL_TIMEOUT, FORGE_BUILD_TIMEOUT, FORGE_CONFIG_DIR.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FORGE_REGISTRY_URL"):
            kwargs["registry_url"] = os.environ["FORGE_REGISTRY_URL"]
        if os.environ.get("FORGE_NODE_DIST_URL"):
            kwargs["node_dist_url"] = os.environ["FORGE_NODE_DIST_URL"]
        if os.environ.get("FORGE_HTTP_TIMEOUT"):
            kwargs["http_timeout"] = int(os.environ["FORGE_HTTP_TIMEOUT"])
        if os.environ.get("FORGE_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["FORGE_INSTALL_TIMEOUT"])
        if os.environ.get("FORGE_BUILD_TIMEOUT"):
            kwargs["build_timeout"] = int(os.environ["FORGE_BUILD_TIMEOUT"])
        if os.environ.get("FORGE_CONFIG_DIR"):
            kwargs["config_dir"] = Path(os.environ["FORGE_CONFIG_DIR"])
        return cls(**kwargs)


def detect_package_manager(user_agent: str | None = None) -> PackageManager:
    """Guess the package manager that launched us from ``npm_config_user_agent``."""
    if user_agent is None:
        user_agent = os.environ.get("npm_config_user_agent", "")
    if "pnpm" in user_agent:
        return PackageManager.PNPM
    if "yarn" in user_agent:
        return PackageManager.YARN
    if "bun" in user_agent:
        return PackageManager.BUN
    return PackageManager.NPM
