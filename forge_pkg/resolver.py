"""Configuration resolver.

Folds command-line flags, interactive answers and the fixed default bundle
into one ``ProjectConfig``.  The interactive flow is an ordered list of
:class:`Question` definitions, each with an optional ``when`` predicate over
the answers collected so far; a question whose predicate is false is never
asked and takes its default.

Precedence, highest first: force-flags (``overrides``), then interactive
answers, then :data:`DEFAULT_ANSWERS`.  A force-flag always short-circuits
its question, in both interactive and accept-defaults mode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from pydantic import BaseModel
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .config import (
    Language,
    ModuleFormat,
    PackageManager,
    ProjectConfig,
    TestRunner,
    detect_package_manager,
)
from .profile import GitIdentity, ProfileStore, UserProfile, read_git_identity
from .validators import ensure_valid_package_name, validate_package_name

Answers = dict[str, Any]
Choice = tuple[str, str]


class PromptCancelled(Exception):
    """The user abandoned a prompt or declined a confirmation gate."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------


class Prompter(Protocol):
    def text(
        self,
        message: str,
        default: str = "",
        validate: Callable[[str], str | None] | None = None,
    ) -> str: ...

    def confirm(self, message: str, default: bool = True) -> bool: ...

    def select(self, message: str, choices: list[Choice], default: str) -> str: ...


class RichPrompter:
    """Terminal prompts built on ``rich.prompt``.

    Ctrl-C and end-of-input both surface as :class:`PromptCancelled`.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def text(
        self,
        message: str,
        default: str = "",
        validate: Callable[[str], str | None] | None = None,
    ) -> str:
        while True:
            try:
                value = Prompt.ask(
                    message,
                    default=default,
                    show_default=bool(default),
                    console=self.console,
                )
            except (KeyboardInterrupt, EOFError) as exc:
                raise PromptCancelled() from exc
            value = (value or "").strip()
            error = validate(value) if validate else None
            if error is None:
                return value
            self.console.print(f"[red]{error}[/red]")

    def confirm(self, message: str, default: bool = True) -> bool:
        try:
            return Confirm.ask(message, default=default, console=self.console)
        except (KeyboardInterrupt, EOFError) as exc:
            raise PromptCancelled() from exc

    def select(self, message: str, choices: list[Choice], default: str) -> str:
        table = Table(show_header=False, box=None)
        for index, (_, label) in enumerate(choices, 1):
            table.add_row(f"[cyan]{index})[/cyan]", label)
        self.console.print(f"[bold]{message}[/bold]")
        self.console.print(table)

        values = [value for value, _ in choices]
        default_index = values.index(default) + 1 if default in values else 1
        try:
            picked = Prompt.ask(
                "Select",
                choices=[str(i) for i in range(1, len(values) + 1)],
                default=str(default_index),
                show_choices=False,
                console=self.console,
            )
        except (KeyboardInterrupt, EOFError) as exc:
            raise PromptCancelled() from exc
        return values[int(picked) - 1]


def confirm_or_cancel(prompter: Prompter, message: str, default: bool = True) -> None:
    """Ask a yes/no gate; a "no" cancels the run."""
    if not prompter.confirm(message, default=default):
        raise PromptCancelled()


# ---------------------------------------------------------------------------
# Question list
# ---------------------------------------------------------------------------


@dataclass
class Question:
    """One interactive question.

    ``default`` may be a callable over the answers so far, for defaults that
    depend on earlier choices.
    """

    key: str
    kind: str  # "select", "confirm" or "text"
    message: str
    default: Any = None
    choices: list[Choice] = field(default_factory=list)
    when: Callable[[Answers], bool] | None = None

    def applies(self, answers: Answers) -> bool:
        return self.when is None or self.when(answers)

    def default_for(self, answers: Answers) -> Any:
        return self.default(answers) if callable(self.default) else self.default

    def ask(self, prompter: Prompter, answers: Answers) -> Any:
        default = self.default_for(answers)
        if self.kind == "select":
            return prompter.select(self.message, self.choices, default)
        if self.kind == "confirm":
            return prompter.confirm(self.message, default=bool(default))
        return prompter.text(self.message, default=default or "")


def _ci(answers: Answers) -> bool:
    return bool(answers.get("ci_enabled"))


def _has_runner(answers: Answers) -> bool:
    return answers.get("test_runner", TestRunner.NONE.value) != TestRunner.NONE.value


CONFIG_QUESTIONS: list[Question] = [
    Question(
        key="language",
        kind="select",
        message="Which language?",
        default=Language.TYPESCRIPT.value,
        choices=[
            (Language.TYPESCRIPT.value, "TypeScript (recommended)"),
            (Language.JAVASCRIPT.value, "JavaScript (no type definitions)"),
        ],
    ),
    Question(
        key="module_format",
        kind="select",
        message="Which module format?",
        default=ModuleFormat.DUAL.value,
        choices=[
            (ModuleFormat.DUAL.value, "Dual (ESM + CommonJS, recommended)"),
            (ModuleFormat.ESM.value, "ESM only"),
            (ModuleFormat.COMMONJS.value, "CommonJS only"),
        ],
    ),
    Question(
        key="test_runner",
        kind="select",
        message="Which test runner?",
        default=TestRunner.VITEST.value,
        choices=[
            (TestRunner.VITEST.value, "Vitest (fast, modern)"),
            (TestRunner.JEST.value, "Jest"),
            (TestRunner.NONE.value, "None"),
        ],
    ),
    Question(
        key="linting_enabled",
        kind="confirm",
        message="Set up ESLint + Prettier?",
        default=True,
    ),
    Question(
        key="git_init_enabled",
        kind="confirm",
        message="Initialize a git repository?",
        default=False,
    ),
    Question(
        key="ci_enabled",
        kind="confirm",
        message="Set up GitHub Actions CI?",
        default=_has_runner,
    ),
    Question(
        key="cd_enabled",
        kind="confirm",
        message="Set up automated npm publishing on version tags?",
        default=False,
        when=_ci,
    ),
    Question(
        key="coverage_upload_enabled",
        kind="confirm",
        message="Upload test coverage to Codecov?",
        default=False,
        when=lambda a: _ci(a) and _has_runner(a),
    ),
    Question(
        key="dependency_bot_enabled",
        kind="confirm",
        message="Set up Dependabot for dependency updates?",
        default=False,
        when=_ci,
    ),
]

DEFAULT_ANSWERS: Answers = {
    "language": Language.TYPESCRIPT.value,
    "module_format": ModuleFormat.DUAL.value,
    "test_runner": TestRunner.VITEST.value,
    "linting_enabled": True,
    "git_init_enabled": False,
    "ci_enabled": True,
    "cd_enabled": False,
    "coverage_upload_enabled": False,
    "dependency_bot_enabled": False,
}


def apply_dependency_rules(answers: Answers) -> Answers:
    """Force the CI-dependent toggles off when their prerequisites are off."""
    result = dict(answers)
    if not result.get("ci_enabled"):
        result["cd_enabled"] = False
        result["coverage_upload_enabled"] = False
        result["dependency_bot_enabled"] = False
    if not _has_runner(result):
        result["coverage_upload_enabled"] = False
    return result


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


@dataclass
class ResolveOptions:
    """What the invocation surface hands the resolver."""

    package_name: str | None = None
    accept_defaults: bool = False
    no_save: bool = False
    # Force-flag answers keyed like ``CONFIG_QUESTIONS``, plus "package_manager".
    overrides: Answers = field(default_factory=dict)


class Resolution(BaseModel):
    config: ProjectConfig
    save_profile: bool = False
    profile: UserProfile | None = None
    used_stored_profile: bool = False


class _Metadata(BaseModel):
    description: str | None = None
    author_name: str | None = None
    author_email: str | None = None
    github_username: str | None = None
    save_profile: bool = False
    used_stored_profile: bool = False

    def profile(self) -> UserProfile:
        return UserProfile(
            author=self.author_name, email=self.author_email, github=self.github_username
        )


class ConfigResolver:
    """Produces a ``ProjectConfig`` from flags, answers and defaults."""

    def __init__(
        self,
        prompter: Prompter,
        profile_store: ProfileStore,
        git_identity: Callable[[], Awaitable[GitIdentity | None]] = read_git_identity,
        user_agent: str | None = None,
    ) -> None:
        self.prompter = prompter
        self.profile_store = profile_store
        self.git_identity = git_identity
        self.user_agent = user_agent

    # -- Package name ------------------------------------------------------

    def acquire_package_name(self, options: ResolveOptions) -> str:
        """Return a valid package name.

        A positional name is validated once and raises
        :class:`InvalidPackageNameError` if bad; in interactive mode it is
        then confirmed.  Without one, the user is prompted until the name
        passes validation.
        """
        if options.package_name is not None:
            name = ensure_valid_package_name(options.package_name.strip())
            if not options.accept_defaults:
                confirm_or_cancel(self.prompter, f'Create package "{name}"?', default=True)
            return name

        # Asked even in accept-defaults mode: there is no default name.
        return self.prompter.text("What is your package name?", validate=validate_package_name)

    # -- Configuration -----------------------------------------------------

    def collect_answers(self, options: ResolveOptions) -> Answers:
        """Walk the question list, skipping overridden and inapplicable ones."""
        answers: Answers = {}
        for question in CONFIG_QUESTIONS:
            if question.key in options.overrides:
                answers[question.key] = options.overrides[question.key]
            elif options.accept_defaults:
                answers[question.key] = DEFAULT_ANSWERS[question.key]
            elif question.applies(answers):
                answers[question.key] = question.ask(self.prompter, answers)
            else:
                answers[question.key] = question.default_for(answers)
        return apply_dependency_rules(answers)

    async def collect_metadata(self, options: ResolveOptions) -> _Metadata:
        """Description and author identity, from profile, git or prompts."""
        stored = self.profile_store.load()
        if options.accept_defaults:
            if stored is None:
                return _Metadata()
            return _Metadata(
                author_name=stored.author,
                author_email=stored.email,
                github_username=stored.github,
                used_stored_profile=True,
            )

        description = self.prompter.text("Package description (optional):") or None

        if stored is not None:
            return _Metadata(
                description=description,
                author_name=stored.author,
                author_email=stored.email,
                github_username=stored.github,
                used_stored_profile=True,
            )

        identity = await self.git_identity()
        if identity is not None and self.prompter.confirm(
            f"Use git config: {identity.describe()}?", default=True
        ):
            name, email = identity.name, identity.email
        else:
            defaults = identity or GitIdentity()
            name = self.prompter.text("Author name (optional):", default=defaults.name or "") or None
            email = (
                self.prompter.text("Author email (optional):", default=defaults.email or "")
                or None
            )
        github = self.prompter.text("GitHub username (optional):") or None

        metadata = _Metadata(
            description=description,
            author_name=name,
            author_email=email,
            github_username=github,
        )
        if not options.no_save and not metadata.profile().is_empty():
            metadata.save_profile = self.prompter.confirm(
                "Save this information for future projects?", default=True
            )
        return metadata

    def choose_package_manager(self, options: ResolveOptions) -> PackageManager:
        detected = detect_package_manager(self.user_agent)
        if "package_manager" in options.overrides:
            return PackageManager(options.overrides["package_manager"])
        if options.accept_defaults:
            return detected
        picked = self.prompter.select(
            "Which package manager?",
            [(pm.value, pm.value) for pm in PackageManager],
            default=detected.value,
        )
        return PackageManager(picked)

    async def resolve(self, package_name: str, options: ResolveOptions) -> Resolution:
        """Run the whole question flow for an already-acquired name."""
        answers = self.collect_answers(options)
        metadata = await self.collect_metadata(options)
        package_manager = self.choose_package_manager(options)

        config = ProjectConfig(
            package_name=package_name,
            package_manager=package_manager,
            description=metadata.description,
            author_name=metadata.author_name,
            author_email=metadata.author_email,
            github_username=metadata.github_username,
            **answers,
        )
        return Resolution(
            config=config,
            save_profile=metadata.save_profile,
            profile=metadata.profile() if metadata.save_profile else None,
            used_stored_profile=metadata.used_stored_profile,
        )


def summary_rows(config: ProjectConfig) -> dict[str, str]:
    """Rows of the configuration summary shown before the final gate."""
    if config.ci_enabled:
        ci = "CI + CD" if config.cd_enabled else "CI only"
    else:
        ci = "No"
    rows = {
        "Package": config.package_name,
        "Language": "TypeScript" if config.is_typescript else "JavaScript",
        "Module format": config.module_format.value.upper(),
        "Test runner": config.test_runner.value if config.has_tests else "None",
        "Linting": "Yes (ESLint + Prettier)" if config.linting_enabled else "No",
        "Git": "Yes" if config.git_init_enabled else "No",
        "CI/CD": ci,
    }
    if config.ci_enabled and config.has_tests:
        rows["Codecov"] = "Yes" if config.coverage_upload_enabled else "No"
    if config.ci_enabled:
        rows["Dependabot"] = "Yes" if config.dependency_bot_enabled else "No"
    rows["Package manager"] = config.package_manager.value
    if config.description:
        rows["Description"] = config.description
    if config.author_name or config.author_email:
        author = config.author_name or ""
        if config.author_email:
            author = f"{author} <{config.author_email}>".strip()
        rows["Author"] = author
    if config.github_username:
        rows["GitHub"] = f"@{config.github_username}"
    return rows
