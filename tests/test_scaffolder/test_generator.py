"""Tests for the project materializer (forge_pkg.scaffolder.generator).

Covers:
- The file plan for each feature toggle
- Plan determinism and ordering
- Writing the plan to disk
- Refusing an existing target directory before any write
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from forge_pkg.scaffolder.generator import PlannedFile, ProjectGenerator, TargetExistsError
from forge_pkg.scaffolder.manifest import assemble_manifest

pytestmark = pytest.mark.unit


@pytest.fixture
def make_generator(make_config):
    def factory(**overrides) -> ProjectGenerator:
        config = make_config(**overrides)
        return ProjectGenerator(config, assemble_manifest(config, {"typescript": "5.0.0"}))

    return factory


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class TestPlan:
    def test_defaults(self, make_generator):
        assert make_generator().planned_paths() == [
            ".editorconfig",
            ".eslintrc.json",
            ".github/workflows/ci.yml",
            ".gitignore",
            ".npmignore",
            ".prettierrc",
            "README.md",
            "index.d.ts",
            "index.js",
            "index.mjs",
            "package.json",
            "src/index.test.ts",
            "src/index.ts",
            "tsconfig.json",
            "tsup.config.ts",
            "vitest.config.ts",
        ]

    def test_minimal_javascript(self, make_generator):
        generator = make_generator(
            language="javascript",
            module_format="commonjs",
            test_runner="none",
            linting_enabled=False,
            ci_enabled=False,
        )
        assert generator.planned_paths() == [
            ".gitignore",
            "README.md",
            "package.json",
            "src/index.js",
        ]

    def test_jest_javascript(self, make_generator):
        paths = make_generator(language="javascript", test_runner="jest").planned_paths()
        assert "jest.config.js" in paths
        assert "src/index.test.js" in paths
        assert "vitest.config.ts" not in paths

    def test_esm_has_no_mjs(self, make_generator):
        paths = make_generator(module_format="esm").planned_paths()
        assert "index.js" in paths
        assert "index.mjs" not in paths

    def test_all_workflows(self, make_generator):
        paths = make_generator(cd_enabled=True, dependency_bot_enabled=True).planned_paths()
        assert ".github/workflows/publish.yml" in paths
        assert ".github/dependabot.yml" in paths

    def test_no_ci_no_github_dir(self, make_generator):
        paths = make_generator(ci_enabled=False).planned_paths()
        assert not any(p.startswith(".github/") for p in paths)

    def test_json_files_are_json(self, make_generator):
        plan = {f.path: f.content for f in make_generator().plan()}
        for name in ("package.json", "tsconfig.json", ".eslintrc.json", ".prettierrc"):
            assert isinstance(json.loads(plan[name]), dict)
            assert plan[name].endswith("\n")

    def test_plan_is_deterministic(self, make_generator):
        generator = make_generator(github_username="ada", cd_enabled=True)
        assert generator.plan() == generator.plan()

    def test_planned_file_is_frozen(self):
        planned = PlannedFile(path="a", content="b")
        with pytest.raises(ValidationError):
            planned.path = "c"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Generate
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.asyncio
    async def test_writes_every_planned_file(self, make_generator, tmp_path: Path):
        generator = make_generator(cd_enabled=True)
        root = await generator.generate(tmp_path / "sample-lib")

        assert root == tmp_path / "sample-lib"
        for planned in generator.plan():
            assert (root / planned.path).read_text(encoding="utf-8") == planned.content

    @pytest.mark.asyncio
    async def test_existing_directory_rejected_before_write(
        self, make_generator, tmp_path: Path
    ):
        target = tmp_path / "sample-lib"
        target.mkdir()

        with pytest.raises(TargetExistsError) as exc_info:
            await make_generator().generate(target)

        assert exc_info.value.path == target
        assert str(exc_info.value) == f'Directory "{target}" already exists'
        assert list(target.iterdir()) == []

    @pytest.mark.asyncio
    async def test_creates_missing_parents(self, make_generator, tmp_path: Path):
        root = await make_generator().generate(tmp_path / "nested" / "sample-lib")
        assert (root / "package.json").is_file()

    def test_target_exists_is_file_exists_error(self, tmp_path: Path):
        assert isinstance(TargetExistsError(tmp_path), FileExistsError)
