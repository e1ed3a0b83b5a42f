"""Project materializer.

Turns a ``ProjectConfig`` plus an assembled manifest into the list of files
to write (the *plan*) and writes that plan under a fresh target directory.
Planning is pure, so a dry-run listing and a real run always agree.

Quick usage::

    generator = ProjectGenerator(config, manifest_result.manifest)
    for planned in generator.plan():
        print(planned.path)
    project_root = await generator.generate(Path.cwd() / config.project_dir_name)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..config import ProjectConfig
from ..utils import dump_json
from .files_gen import (
    generate_example_source,
    generate_gitignore,
    generate_npmignore,
    generate_root_index,
)
from .linting_gen import (
    EDITORCONFIG_FILE,
    ESLINT_FILE,
    PRETTIER_FILE,
    generate_editorconfig,
    generate_eslint_config,
    generate_prettier_config,
)
from .manifest import SOURCE_DIR, root_export_files
from .readme_gen import generate_readme
from .templates import TemplateRenderer, default_renderer
from .testing_gen import generate_example_test, generate_runner_config, runner_config_filename
from .typescript_gen import generate_tsconfig, generate_tsup_config
from .workflows_gen import (
    CI_WORKFLOW_PATH,
    DEPENDABOT_PATH,
    PUBLISH_WORKFLOW_PATH,
    generate_ci_workflow,
    generate_dependabot_config,
    generate_publish_workflow,
)


class TargetExistsError(FileExistsError):
    """Raised when the target directory already exists; nothing was written."""

    def __init__(self, path: Path) -> None:
        super().__init__(f'Directory "{path}" already exists')
        self.path = path


class PlannedFile(BaseModel):
    """One file of the plan: a POSIX path relative to the project root."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str


class ProjectGenerator:
    """Plans and writes every file of one generated package.

    Each generator whose precondition flag is off is simply skipped.
    """

    def __init__(
        self,
        config: ProjectConfig,
        manifest: dict[str, Any],
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.manifest = manifest
        self.renderer = renderer or default_renderer()

    # -- Public API --------------------------------------------------------

    def plan(self) -> list[PlannedFile]:
        """Every file to write, sorted by path."""
        files: dict[str, str] = {}
        config = self.config
        r = self.renderer
        ext = config.source_ext

        files["package.json"] = dump_json(self.manifest)
        files["README.md"] = generate_readme(config, r)
        files[".gitignore"] = generate_gitignore(r)
        files[f"{SOURCE_DIR}/index.{ext}"] = generate_example_source(config, r)

        if config.is_typescript:
            files["tsconfig.json"] = dump_json(generate_tsconfig(config))
            files["tsup.config.ts"] = generate_tsup_config(config, r)
            files[".npmignore"] = generate_npmignore(config, r) or ""
            for filename in root_export_files(config):
                files[filename] = generate_root_index(config, filename, r)

        runner_file = runner_config_filename(config)
        if runner_file is not None:
            files[runner_file] = generate_runner_config(config, r) or ""
            files[f"{SOURCE_DIR}/index.test.{ext}"] = generate_example_test(config, r)

        if config.linting_enabled:
            files[ESLINT_FILE] = dump_json(generate_eslint_config(config))
            files[PRETTIER_FILE] = dump_json(generate_prettier_config())
            files[EDITORCONFIG_FILE] = generate_editorconfig(r)

        if config.ci_enabled:
            files[CI_WORKFLOW_PATH] = generate_ci_workflow(config, r)
            if config.cd_enabled:
                files[PUBLISH_WORKFLOW_PATH] = generate_publish_workflow(config, r)
            if config.dependency_bot_enabled:
                files[DEPENDABOT_PATH] = generate_dependabot_config(r)

        return [PlannedFile(path=p, content=files[p]) for p in sorted(files)]

    def planned_paths(self) -> list[str]:
        return [planned.path for planned in self.plan()]

    async def generate(self, target_dir: str | Path) -> Path:
        """Create *target_dir* and write the plan into it.

        Raises:
            TargetExistsError: If *target_dir* already exists.  Checked
                before anything is created or written.
        """
        root = Path(target_dir)
        if await asyncio.to_thread(root.exists):
            raise TargetExistsError(root)

        planned = self.plan()
        await asyncio.to_thread(root.mkdir, parents=True)
        for item in planned:
            await asyncio.to_thread(_write_file, root / item.path, item.content)
        return root


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
