"""forge-pkg scaffolding pipeline.

Drives one run from start to finish:

1. Acquire and validate the package name, check it on the registry.
2. Refuse an existing target directory.
3. Resolve the configuration (flags, prompts, defaults).
4. Resolve dependency versions and assemble the manifest.
5. Plan the files; list them (dry run) or write them.
6. Install dependencies, then run the independent post-install tasks and
   the build verification.
7. Save the user profile if asked to, print the next steps.

This is the only layer (besides the CLI) that prints; everything below it
returns values and warning strings.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Awaitable, Callable

from pydantic import BaseModel, Field

from .config import ForgeSettings, ProjectConfig
from .profile import (
    GitIdentity,
    ProfileError,
    ProfileStore,
    UserProfile,
    default_profile_path,
    read_git_identity,
)
from .registry import RegistryClient
from .resolver import (
    ConfigResolver,
    Prompter,
    Resolution,
    ResolveOptions,
    RichPrompter,
    confirm_or_cancel,
    summary_rows,
)
from .scaffolder.generator import ProjectGenerator, TargetExistsError
from .scaffolder.manifest import ManifestResult, build_manifest, run_script
from .tasks import (
    TaskResult,
    install_command,
    install_dependencies,
    post_install_tasks,
    settle_all,
    verify_build,
)
from .utils import (
    console,
    create_progress,
    format_duration,
    print_debug,
    print_header,
    print_info,
    print_rule,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    use_default_sigint,
)

# ---------------------------------------------------------------------------
# Exceptions and results
# ---------------------------------------------------------------------------


class PipelineError(Exception):
    """Raised when a step fails in a way the run cannot recover from."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")


class PipelineResult(BaseModel):
    """What one run did.  ``project_dir`` is ``None`` for a dry run."""

    config: ProjectConfig
    project_dir: Path | None = None
    dry_run: bool = False
    planned_files: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    installed: bool = False
    task_results: list[TaskResult] = Field(default_factory=list)
    build: TaskResult | None = None
    profile_saved: bool = False


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """Runs one scaffolding invocation.

    Collaborators are injectable so tests can swap in a scripted prompter,
    a fake registry and a temporary profile location.
    """

    def __init__(
        self,
        settings: ForgeSettings,
        options: ResolveOptions,
        *,
        dry_run: bool = False,
        skip_install: bool = False,
        verbose: bool = False,
        cwd: Path | None = None,
        prompter: Prompter | None = None,
        registry: RegistryClient | None = None,
        profile_store: ProfileStore | None = None,
        git_identity: Callable[[], Awaitable[GitIdentity | None]] = read_git_identity,
    ) -> None:
        self.settings = settings
        self.options = options
        self.dry_run = dry_run
        self.skip_install = skip_install
        self.verbose = verbose
        self.cwd = cwd or Path.cwd()
        self.prompter = prompter or RichPrompter(console)
        self.registry = registry or RegistryClient.from_settings(settings)
        self.profile_store = profile_store or ProfileStore(
            default_profile_path(settings.config_dir)
        )
        self.resolver = ConfigResolver(self.prompter, self.profile_store, git_identity)

    @property
    def interactive(self) -> bool:
        return not self.options.accept_defaults

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Execute the run.

        Raises:
            PromptCancelled: The user backed out; nothing was written.
            InvalidPackageNameError: A positional name failed validation.
            TargetExistsError: The target directory already exists.
            PipelineError: Writing the project failed.
        """
        use_default_sigint()
        started = time.monotonic()
        print_header("forge-pkg", "Scaffold a new npm package")
        if self.verbose:
            print_debug(f"Registry: {self.settings.registry_url}")
            print_debug(f"Node release feed: {self.settings.node_dist_url}")
            print_debug(f"Profile: {self.profile_store.path}")

        name = self.resolver.acquire_package_name(self.options)
        await self._check_availability(name)

        probe = ProjectConfig(package_name=name)
        target = self.cwd / probe.project_dir_name
        if target.exists():
            raise TargetExistsError(target)

        resolution = await self.resolver.resolve(name, self.options)
        config = resolution.config
        self._confirm_configuration(resolution)

        manifest_result = await self._build_manifest(config)
        result = PipelineResult(config=config, warnings=list(manifest_result.warnings))
        generator = ProjectGenerator(config, manifest_result.manifest)

        if self.dry_run:
            result.dry_run = True
            result.planned_files = generator.planned_paths()
            self._print_dry_run(target, result.planned_files)
            return result

        result.project_dir = await self._write_project(generator, target)
        result.planned_files = generator.planned_paths()

        if self._should_install(config):
            install = await self._install(config, target)
            result.installed = install.success
            if install.success:
                result.task_results = await self._run_post_install(config, target)
                if config.is_typescript:
                    result.build = await self._verify_build(config, target)

        if resolution.save_profile and resolution.profile is not None:
            result.profile_saved = self._save_profile(resolution.profile)

        self._print_next_steps(config, target, result)
        print_success(f"Done in {format_duration(time.monotonic() - started)}")
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _check_availability(self, name: str) -> None:
        with create_progress() as progress:
            progress.add_task("Checking package name availability on npm", total=None)
            availability = await self.registry.check_availability(name)

        if not availability.checked:
            if self.verbose:
                print_debug(f"Availability check skipped: {availability.error}")
            return
        if availability.available:
            print_success("Package name is available")
            return

        print_warning(
            f'The package "{name}" already exists on npm. You can still create it '
            "locally, but you won't be able to publish it under this name."
        )
        if self.interactive:
            confirm_or_cancel(self.prompter, "Continue anyway?", default=False)

    def _confirm_configuration(self, resolution: Resolution) -> None:
        config = resolution.config
        if resolution.used_stored_profile:
            print_info(f"Using stored author info from {self.profile_store.path}")
        if not self.interactive:
            print_info(f"Creating {config.package_name} with the recommended defaults")
            return
        print_summary_table(summary_rows(config), title="Configuration Summary")
        confirm_or_cancel(self.prompter, "Proceed with this configuration?", default=True)

    async def _build_manifest(self, config: ProjectConfig) -> ManifestResult:
        with create_progress() as progress:
            progress.add_task("Resolving dependency versions", total=None)
            manifest_result = await build_manifest(config, self.registry)

        for warning in manifest_result.warnings:
            print_warning(warning)
        if self.verbose:
            for dep, version in manifest_result.manifest.get("devDependencies", {}).items():
                print_debug(f"{dep}: {version}")
        return manifest_result

    def _print_dry_run(self, target: Path, paths: list[str]) -> None:
        print_rule("Dry run")
        print_info("No files will be created. Files that would be created:")
        print_info(f"  {target.name}/")
        for path in paths:
            print_info(f"    {path}")

    async def _write_project(self, generator: ProjectGenerator, target: Path) -> Path:
        try:
            with create_progress() as progress:
                progress.add_task("Creating project structure", total=None)
                project_dir = await generator.generate(target)
        except TargetExistsError:
            raise
        except OSError as exc:
            raise PipelineError("write", f"Failed to write project files: {exc}") from exc
        print_success(f"Project structure created in {project_dir}")
        return project_dir

    def _should_install(self, config: ProjectConfig) -> bool:
        if self.skip_install:
            return False
        if not self.interactive:
            return True
        return self.prompter.confirm(
            f"Install dependencies now with {config.package_manager.value}?", default=True
        )

    async def _install(self, config: ProjectConfig, target: Path) -> TaskResult:
        print_step(f"Installing dependencies with {config.package_manager.value}...")
        result = await install_dependencies(
            target, config.package_manager, timeout=self.settings.install_timeout
        )
        if result.success:
            print_success("Dependencies installed")
        else:
            print_warning(f"Dependency installation failed: {result.error}")
            print_info(
                f"Run it manually with: cd {target.name} && "
                f"{' '.join(install_command(config.package_manager))}"
            )
        return result

    async def _run_post_install(self, config: ProjectConfig, target: Path) -> list[TaskResult]:
        results = await settle_all(post_install_tasks(config, target))
        for task in results:
            if task.success:
                print_success(f"{task.name}: done")
            else:
                print_warning(f"{task.name} failed: {task.error}")
        return results

    async def _verify_build(self, config: ProjectConfig, target: Path) -> TaskResult:
        with create_progress() as progress:
            progress.add_task("Verifying the build", total=None)
            result = await verify_build(
                target, config.package_manager, timeout=self.settings.build_timeout
            )
        if result.success:
            print_success("Build verified")
        else:
            print_warning("Build verification failed; the project files were kept.")
            if self.verbose and result.error:
                print_debug(result.error)
            print_info(f"Check it with: {run_script(config.package_manager, 'build')}")
        return result

    def _save_profile(self, profile: UserProfile) -> bool:
        try:
            path = self.profile_store.save(profile)
        except ProfileError as exc:
            print_warning(str(exc))
            return False
        print_success(f"Author info saved to {path}")
        return True

    def _print_next_steps(self, config: ProjectConfig, target: Path, result: PipelineResult) -> None:
        pm = config.package_manager
        steps = [f"cd {target.name}"]
        if not result.installed:
            steps.append(" ".join(install_command(pm)))
        if config.has_tests:
            steps.append(run_script(pm, "test"))
        if config.is_typescript:
            steps.append(run_script(pm, "build"))
        if config.cd_enabled:
            steps.append("Add an NPM_TOKEN secret to the GitHub repository")

        print_rule("Next steps")
        for step in steps:
            console.print(f"  [cyan]{step}[/cyan]")
        console.print()
