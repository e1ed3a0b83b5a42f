"""package.json assembly.

The manifest is built as plain data (nested dicts and lists) and only turned
into JSON at write time.  Every module-resolution-sensitive field (``type``,
``main``/``module``/``types``, the ``exports`` map and the ``files``
allow-list) branches on the {language} x {module format} cross-product:

================  ===========  ==================================================
language          format       exports["."]
================  ===========  ==================================================
javascript        any          "./src/index.js"
typescript        esm          {types: ./index.d.ts, import: ./index.js}
typescript        commonjs     {types: ./index.d.ts, require: ./index.js}
typescript        dual         {types, import: ./index.mjs, require: ./index.js}
================  ===========  ==================================================

The root ``index.*`` files are hand-written re-exports of ``dist/`` (see
:mod:`forge_pkg.scaffolder.files_gen`).  Dependency versions come from the
registry client and are passed in as an opaque ``{name: version}`` mapping.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from pydantic import BaseModel, Field

from ..config import Language, ModuleFormat, PackageManager, ProjectConfig, TestRunner
from ..registry import EngineLookup, VersionLookup

MANIFEST_VERSION = "0.1.0"
LICENSE = "MIT"

SOURCE_DIR = "src"
BUILD_DIR = "dist"

ROOT_INDEX_JS = "index.js"
ROOT_INDEX_MJS = "index.mjs"
ROOT_INDEX_DTS = "index.d.ts"


# ---------------------------------------------------------------------------
# Dependency tables
# ---------------------------------------------------------------------------

TYPESCRIPT_TOOLCHAIN: tuple[str, ...] = (
    "typescript",
    "tsup",
    "@types/node",
    "@arethetypeswrong/cli",
)
VITEST_PACKAGES: tuple[str, ...] = ("vitest",)
VITEST_COVERAGE_PACKAGE = "@vitest/coverage-v8"
JEST_PACKAGES: tuple[str, ...] = ("jest", "@jest/globals")
JEST_TYPESCRIPT_PACKAGES: tuple[str, ...] = ("ts-jest", "ts-node", "@types/jest")
LINT_TYPESCRIPT_PACKAGES: tuple[str, ...] = (
    "@typescript-eslint/eslint-plugin",
    "@typescript-eslint/parser",
)
LINT_PACKAGES: tuple[str, ...] = ("eslint", "prettier", "eslint-config-prettier")


# ---------------------------------------------------------------------------
# Entry points & files
# ---------------------------------------------------------------------------


def package_type(config: ProjectConfig) -> str:
    """``"commonjs"`` for CommonJS packages, ``"module"`` for ESM and dual.

    Dual packages are ESM-first at the top level; CommonJS consumers reach
    the ``.js`` build through the ``require`` export condition.
    """
    return "commonjs" if config.module_format is ModuleFormat.COMMONJS else "module"


def entry_points(config: ProjectConfig) -> dict[str, Any]:
    """Return the ``main``/``module``/``types``/``exports`` fields."""
    fmt = config.module_format

    if config.language is Language.JAVASCRIPT:
        source_entry = f"./{SOURCE_DIR}/index.js"
        fields: dict[str, Any] = {"main": source_entry}
        if fmt in (ModuleFormat.ESM, ModuleFormat.DUAL):
            fields["module"] = source_entry
        fields["exports"] = {".": source_entry}
        return fields

    index_js = f"./{ROOT_INDEX_JS}"
    index_mjs = f"./{ROOT_INDEX_MJS}"
    index_dts = f"./{ROOT_INDEX_DTS}"

    if fmt is ModuleFormat.ESM:
        return {
            "main": index_js,
            "types": index_dts,
            "exports": {".": {"types": index_dts, "import": index_js}},
        }
    if fmt is ModuleFormat.COMMONJS:
        return {
            "main": index_js,
            "types": index_dts,
            "exports": {".": {"types": index_dts, "require": index_js}},
        }
    return {
        "main": index_js,
        "module": index_mjs,
        "types": index_dts,
        "exports": {
            ".": {"types": index_dts, "import": index_mjs, "require": index_js},
        },
    }


def files_list(config: ProjectConfig) -> list[str]:
    """The ``files`` allow-list of what gets published."""
    if config.language is Language.JAVASCRIPT:
        return [SOURCE_DIR]
    files = [BUILD_DIR, ROOT_INDEX_JS, ROOT_INDEX_DTS]
    if config.module_format is ModuleFormat.DUAL:
        files.append(ROOT_INDEX_MJS)
    return files


def root_export_files(config: ProjectConfig) -> list[str]:
    """Hand-written root re-export files this config needs (none for JavaScript)."""
    if config.language is Language.JAVASCRIPT:
        return []
    return [f for f in files_list(config) if f != BUILD_DIR]


# ---------------------------------------------------------------------------
# Scripts
# ---------------------------------------------------------------------------


def run_script(package_manager: PackageManager, script: str) -> str:
    """Command that runs a package script with the chosen package manager."""
    if package_manager is PackageManager.YARN:
        return f"yarn {script}"
    return f"{package_manager.value} run {script}"


def scripts(config: ProjectConfig) -> dict[str, str]:
    """Build the ``scripts`` block."""
    result: dict[str, str] = {}

    if config.is_typescript:
        result["build"] = "tsup"
        result["typecheck"] = "tsc --noEmit"

    with_coverage = config.ci_enabled
    if config.test_runner is TestRunner.VITEST:
        result["test"] = "vitest run"
        result["test:watch"] = "vitest"
        if with_coverage:
            result["test:coverage"] = "vitest run --coverage"
    elif config.test_runner is TestRunner.JEST:
        result["test"] = "jest"
        result["test:watch"] = "jest --watch"
        if with_coverage:
            result["test:coverage"] = "jest --coverage"

    if config.linting_enabled:
        ext = config.source_ext
        result["lint"] = f"eslint . --ext .{ext}"
        result["lint:fix"] = f"eslint . --ext .{ext} --fix"
        result["format"] = 'prettier --write "src/**/*.{ts,js,json,md}"'
        result["format:check"] = 'prettier --check "src/**/*.{ts,js,json,md}"'

    if config.is_typescript:
        result["check:exports"] = "attw --pack"
        result["prepublishOnly"] = run_script(config.package_manager, "build")

    if config.dependency_bot_enabled:
        result["deps:check"] = "npx npm-check-updates"
        result["deps:update"] = "npx npm-check-updates -u"

    if config.cd_enabled:
        result["release"] = "npm version patch && git push --follow-tags"

    return result


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def required_dev_dependencies(config: ProjectConfig) -> list[str]:
    """Every devDependency name the config needs, in manifest order."""
    names: list[str] = []

    if config.is_typescript:
        names.extend(TYPESCRIPT_TOOLCHAIN)

    if config.test_runner is TestRunner.VITEST:
        names.extend(VITEST_PACKAGES)
        if config.ci_enabled:
            names.append(VITEST_COVERAGE_PACKAGE)
    elif config.test_runner is TestRunner.JEST:
        names.extend(JEST_PACKAGES)
        if config.is_typescript:
            names.extend(JEST_TYPESCRIPT_PACKAGES)

    if config.linting_enabled:
        if config.is_typescript:
            names.extend(LINT_TYPESCRIPT_PACKAGES)
        names.extend(LINT_PACKAGES)

    return names


def dev_dependencies(config: ProjectConfig, versions: dict[str, str]) -> dict[str, str]:
    """Pin every required package found in *versions* as ``^<version>``.

    Names with no resolved version are left out; the caller reports them.
    """
    pinned: dict[str, str] = {}
    for name in required_dev_dependencies(config):
        version = versions.get(name)
        if version:
            pinned[name] = version if version[0] in "^~><=" else f"^{version}"
    return pinned


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def author_field(config: ProjectConfig) -> str | None:
    """``Name <email> (https://github.com/handle)``, each part optional."""
    parts: list[str] = []
    if config.author_name:
        parts.append(config.author_name)
    if config.author_email:
        parts.append(f"<{config.author_email}>")
    if config.github_username:
        parts.append(f"(https://github.com/{config.github_username})")
    return " ".join(parts) or None


def repository_fields(config: ProjectConfig) -> dict[str, Any]:
    """``repository``, ``bugs`` and ``homepage`` together, or nothing."""
    slug = config.repo_slug
    if slug is None:
        return {}
    base = f"https://github.com/{slug}"
    return {
        "repository": {"type": "git", "url": f"{base}.git"},
        "bugs": {"url": f"{base}/issues"},
        "homepage": f"{base}#readme",
    }


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def assemble_manifest(
    config: ProjectConfig,
    versions: dict[str, str],
    node_range: str | None = None,
) -> dict[str, Any]:
    """Build the complete ``package.json`` structure.

    Pure: identical inputs always give an identical (and identically ordered)
    dict.
    """
    manifest: dict[str, Any] = {
        "name": config.package_name,
        "version": MANIFEST_VERSION,
    }
    if config.description:
        manifest["description"] = config.description
    manifest["type"] = package_type(config)
    manifest.update(entry_points(config))
    manifest["files"] = files_list(config)
    if node_range:
        manifest["engines"] = {"node": node_range}
    manifest["scripts"] = scripts(config)
    manifest["keywords"] = []
    author = author_field(config)
    if author:
        manifest["author"] = author
    manifest["license"] = LICENSE
    manifest.update(repository_fields(config))
    manifest["devDependencies"] = dev_dependencies(config, versions)
    return manifest


class ManifestResult(BaseModel):
    """An assembled manifest plus the advisory warnings raised on the way."""

    manifest: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)
    missing_dependencies: list[str] = Field(default_factory=list)


class VersionSource(Protocol):
    async def resolve_versions(self, names: list[str]) -> list[VersionLookup]: ...

    async def node_engine_range(self) -> EngineLookup: ...


async def build_manifest(config: ProjectConfig, source: VersionSource) -> ManifestResult:
    """Resolve versions and the engine range, then assemble the manifest.

    A failed lookup drops only that one pin and adds a warning.
    """
    lookups, engine = await asyncio.gather(
        source.resolve_versions(required_dev_dependencies(config)),
        source.node_engine_range(),
    )

    versions: dict[str, str] = {}
    warnings: list[str] = []
    missing: list[str] = []
    for lookup in lookups:
        if lookup.success and lookup.version:
            versions[lookup.name] = lookup.version
        else:
            missing.append(lookup.name)
            warnings.append(
                f"Could not resolve a version for {lookup.name} ({lookup.error}); "
                f"add it manually with: npm install -D {lookup.name}"
            )

    if not engine.success:
        warnings.append(f"Could not determine supported Node.js versions ({engine.error})")

    return ManifestResult(
        manifest=assemble_manifest(config, versions, engine.node_range),
        warnings=warnings,
        missing_dependencies=missing,
    )
