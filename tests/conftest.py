"""Shared pytest fixtures for the forge-pkg test suite.

Provides reusable fixtures for:
- ``ProjectConfig`` construction with overrides
- A fake registry client (no network)
- A scripted prompter that answers questions by message
- A temporary profile store
- Mock subprocess helpers
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from forge_pkg.config import ProjectConfig
from forge_pkg.profile import ProfileStore
from forge_pkg.registry import AvailabilityResult, EngineLookup, VersionLookup
from forge_pkg.resolver import PromptCancelled

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config() -> Callable[..., ProjectConfig]:
    """Factory for ``ProjectConfig`` with defaults matching the default bundle.

    Usage:
        config = make_config(language="javascript", test_runner="none")
    """

    def factory(**overrides: Any) -> ProjectConfig:
        values: dict[str, Any] = {"package_name": "sample-lib"}
        values.update(overrides)
        return ProjectConfig(**values)

    return factory


# ---------------------------------------------------------------------------
# Fake registry
# ---------------------------------------------------------------------------


class FakeRegistry:
    """Stands in for ``RegistryClient``; every package resolves to ``1.0.0``.

    Names in ``failing`` fail their lookup; ``taken`` names are reported as
    already published.
    """

    def __init__(
        self,
        failing: set[str] | None = None,
        taken: set[str] | None = None,
        engine_range: str | None = ">=20",
        availability_error: bool = False,
    ) -> None:
        self.failing = failing or set()
        self.taken = taken or set()
        self.engine_range = engine_range
        self.availability_error = availability_error
        self.resolved: list[str] = []
        self.availability_checks: list[str] = []

    async def resolve_versions(self, names: list[str]) -> list[VersionLookup]:
        self.resolved.extend(names)
        return [
            VersionLookup(name=n, success=False, error="Cannot connect to the npm registry")
            if n in self.failing
            else VersionLookup(name=n, version="1.0.0")
            for n in names
        ]

    async def node_engine_range(self) -> EngineLookup:
        if self.engine_range is None:
            return EngineLookup(success=False, error="Cannot connect to the Node.js release feed")
        return EngineLookup(node_range=self.engine_range, lts_majors=[20, 22, 24])

    async def check_availability(self, name: str) -> AvailabilityResult:
        self.availability_checks.append(name)
        if self.availability_error:
            return AvailabilityResult(name=name, available=True, checked=False, error="offline")
        return AvailabilityResult(name=name, available=name not in self.taken)


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def make_registry() -> Callable[..., FakeRegistry]:
    """Factory for a ``FakeRegistry`` with failing or taken names."""
    return FakeRegistry


# ---------------------------------------------------------------------------
# Scripted prompter
# ---------------------------------------------------------------------------

CANCEL = object()


class ScriptedPrompter:
    """Answers prompts from a ``{message: answer}`` script.

    Unscripted prompts take their default.  A list answer is consumed one
    item per ask (useful for re-prompt loops); :data:`CANCEL` raises
    ``PromptCancelled``.  Every message asked is recorded in ``asked``.
    """

    def __init__(self, answers: dict[str, Any] | None = None) -> None:
        self.answers = dict(answers or {})
        self.asked: list[str] = []
        self.errors: list[str] = []

    def _next(self, message: str, default: Any) -> Any:
        self.asked.append(message)
        if message not in self.answers:
            return default
        answer = self.answers[message]
        if isinstance(answer, list):
            answer = answer.pop(0) if answer else default
        if answer is CANCEL:
            raise PromptCancelled()
        return answer

    def text(self, message: str, default: str = "", validate=None) -> str:
        while True:
            value = self._next(message, default)
            error = validate(value) if validate else None
            if error is None:
                return value
            self.errors.append(error)
            if not isinstance(self.answers.get(message), list) or not self.answers[message]:
                raise AssertionError(f"Prompt {message!r} ran out of answers after: {error}")

    def confirm(self, message: str, default: bool = True) -> bool:
        return bool(self._next(message, default))

    def select(self, message: str, choices: list[tuple[str, str]], default: str) -> str:
        value = self._next(message, default)
        assert value in [c for c, _ in choices], f"{value!r} is not a choice for {message!r}"
        return value


@pytest.fixture
def cancel() -> object:
    """Scripted answer that cancels the prompt it is given to."""
    return CANCEL


@pytest.fixture
def scripted_prompter() -> Callable[..., ScriptedPrompter]:
    def factory(answers: dict[str, Any] | None = None) -> ScriptedPrompter:
        return ScriptedPrompter(answers)

    return factory


# ---------------------------------------------------------------------------
# Profile store & git identity
# ---------------------------------------------------------------------------


@pytest.fixture
def profile_store(tmp_path: Path) -> ProfileStore:
    """Profile store rooted in a temp config directory."""
    return ProfileStore(tmp_path / "config" / "config.json")


@pytest.fixture
def no_git_identity() -> AsyncMock:
    return AsyncMock(return_value=None)


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """

    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
