"""Subprocess steps run after the project is written.

Every step returns a :class:`TaskResult` instead of raising, so the pipeline
can report failures as warnings and keep going.  Independent post-install
tasks are joined with a settle-all barrier: one failing task never hides
another's result.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable

from pydantic import BaseModel, Field

from .config import PackageManager, ProjectConfig
from .scaffolder.manifest import run_script
from .utils import run_command

INITIAL_COMMIT_MESSAGE = "chore: initial commit"


class TaskResult(BaseModel):
    """Outcome of one named subprocess step."""

    name: str
    success: bool
    error: str | None = Field(default=None)
    output: str = Field(default="")


def install_command(package_manager: PackageManager) -> list[str]:
    """``yarn`` on its own, ``<pm> install`` for everything else."""
    if package_manager is PackageManager.YARN:
        return ["yarn"]
    return [package_manager.value, "install"]


def _failure_text(rc: int, stdout: str, stderr: str) -> str:
    detail = stderr or stdout
    return detail if detail else f"exited with code {rc}"


async def install_dependencies(
    project_dir: Path, package_manager: PackageManager, timeout: int = 600
) -> TaskResult:
    """Run the install with output streamed straight to the terminal."""
    cmd = install_command(package_manager)
    rc, stdout, stderr = await run_command(cmd, cwd=project_dir, timeout=timeout, capture=False)
    if rc != 0:
        return TaskResult(name="install", success=False, error=_failure_text(rc, stdout, stderr))
    return TaskResult(name="install", success=True)


async def init_git_repository(project_dir: Path) -> TaskResult:
    """``git init``, ``git add .`` and the initial commit, stopping at the first failure."""
    steps = [
        ["git", "init"],
        ["git", "add", "."],
        ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
    ]
    for cmd in steps:
        rc, stdout, stderr = await run_command(cmd, cwd=project_dir, timeout=60)
        if rc != 0:
            return TaskResult(
                name="git",
                success=False,
                error=f"{' '.join(cmd)}: {_failure_text(rc, stdout, stderr)}",
            )
    return TaskResult(name="git", success=True)


async def verify_build(
    project_dir: Path, package_manager: PackageManager, timeout: int = 300
) -> TaskResult:
    """Run the package's build script and report pass/fail."""
    cmd = run_script(package_manager, "build").split()
    rc, stdout, stderr = await run_command(cmd, cwd=project_dir, timeout=timeout)
    if rc != 0:
        return TaskResult(name="build", success=False, error=_failure_text(rc, stdout, stderr))
    return TaskResult(name="build", success=True, output=stdout)


def post_install_tasks(config: ProjectConfig, project_dir: Path) -> dict[str, Awaitable[TaskResult]]:
    """The independent tasks to launch once dependencies are installed."""
    tasks: dict[str, Awaitable[TaskResult]] = {}
    if config.git_init_enabled:
        tasks["git"] = init_git_repository(project_dir)
    return tasks


async def settle_all(tasks: dict[str, Awaitable[TaskResult]]) -> list[TaskResult]:
    """Run *tasks* concurrently and collect every outcome.

    An exception escaping a task is converted into a failed result for that
    task alone.
    """
    if not tasks:
        return []
    names = list(tasks)
    outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)

    results: list[TaskResult] = []
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            results.append(TaskResult(name=name, success=False, error=str(outcome) or repr(outcome)))
        else:
            results.append(outcome)
    return results
