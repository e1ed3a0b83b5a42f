"""Command-line entry point for ``forge-pkg``.

Exit codes: 0 on success or cancellation, 1 on an invalid name, an existing
target directory, a profile I/O failure or any unexpected error.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import traceback
from typing import Any

from . import __version__
from .config import ForgeSettings, Language, ModuleFormat, PackageManager, TestRunner
from .pipeline import PipelineError, ScaffoldPipeline
from .profile import ProfileError, ProfileStore, default_profile_path
from .resolver import PromptCancelled, ResolveOptions
from .scaffolder.generator import TargetExistsError
from .utils import console, dump_json, print_error, print_info, print_success, print_warning
from .validators import InvalidPackageNameError

# Mutually exclusive force-flags per question: (flag, answer, help).
_CHOICE_FLAGS: dict[str, list[tuple[str, str, str]]] = {
    "language": [
        ("--typescript", Language.TYPESCRIPT.value, "Use TypeScript"),
        ("--javascript", Language.JAVASCRIPT.value, "Use JavaScript"),
    ],
    "module_format": [
        ("--esm", ModuleFormat.ESM.value, "Publish ESM only"),
        ("--commonjs", ModuleFormat.COMMONJS.value, "Publish CommonJS only"),
        ("--dual", ModuleFormat.DUAL.value, "Publish both ESM and CommonJS"),
    ],
    "test_runner": [
        ("--vitest", TestRunner.VITEST.value, "Use Vitest"),
        ("--jest", TestRunner.JEST.value, "Use Jest"),
        ("--no-tests", TestRunner.NONE.value, "No test runner"),
    ],
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forge-pkg",
        description="Scaffold a new npm package with TypeScript/JavaScript, tests, linting and CI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  forge-pkg my-lib\n"
            "  forge-pkg my-lib --yes\n"
            "  forge-pkg @scope/my-lib --javascript --commonjs --no-tests\n"
            "  forge-pkg my-lib --dry-run\n"
        ),
    )
    parser.add_argument("name", nargs="?", default=None, help="Package name (prompted if omitted)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Skip the questions and use the recommended defaults",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the files that would be created without writing anything",
    )
    parser.add_argument(
        "--skip-install",
        action="store_true",
        help="Do not install dependencies (also skips git init and build check)",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not offer to save author info for future projects",
    )
    parser.add_argument(
        "--reset-config",
        action="store_true",
        help="Delete the saved author info and exit",
    )
    parser.add_argument(
        "--show-config", "--config",
        dest="show_config",
        action="store_true",
        help="Print the saved author info and exit",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Print debug detail")

    for dest, flags in _CHOICE_FLAGS.items():
        group = parser.add_mutually_exclusive_group()
        for flag, value, help_text in flags:
            group.add_argument(flag, dest=dest, action="store_const", const=value, help=help_text)

    parser.add_argument(
        "--no-lint", dest="linting_enabled", action="store_const", const=False,
        help="Skip ESLint and Prettier",
    )
    parser.add_argument(
        "--no-git", dest="git_init_enabled", action="store_const", const=False,
        help="Do not initialize a git repository",
    )
    parser.add_argument(
        "--package-manager", "--pm",
        dest="package_manager",
        choices=[pm.value for pm in PackageManager],
        help="Package manager to install with (detected from the invoking tool if omitted)",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Force-flag answers, keyed like the resolver's questions."""
    keys = (
        "language",
        "module_format",
        "test_runner",
        "linting_enabled",
        "git_init_enabled",
        "package_manager",
    )
    return {key: getattr(args, key) for key in keys if getattr(args, key) is not None}


def show_config(store: ProfileStore) -> int:
    profile = store.load()
    if profile is None:
        print_info("No saved configuration found.")
    else:
        print_info(f"Saved configuration ({store.path}):")
        console.print_json(dump_json(profile.to_record()))
    return 0


def reset_config(store: ProfileStore) -> int:
    try:
        existed = store.reset()
    except ProfileError as exc:
        print_error(str(exc))
        return 1
    if existed:
        print_success(f"Configuration reset ({store.path} removed)")
    else:
        print_info("No saved configuration to reset.")
    return 0


def run(argv: list[str] | None = None) -> int:
    """Parse *argv*, run, and return the exit code."""
    args = build_parser().parse_args(argv)
    settings = ForgeSettings.from_env()
    store = ProfileStore(default_profile_path(settings.config_dir))

    if args.reset_config:
        return reset_config(store)
    if args.show_config:
        return show_config(store)

    options = ResolveOptions(
        package_name=args.name,
        accept_defaults=args.yes,
        no_save=args.no_save,
        overrides=overrides_from_args(args),
    )
    pipeline = ScaffoldPipeline(
        settings,
        options,
        dry_run=args.dry_run,
        skip_install=args.skip_install,
        verbose=args.verbose,
        profile_store=store,
    )

    try:
        asyncio.run(pipeline.run())
    except PromptCancelled as exc:
        print_warning(str(exc))
        return 0
    except KeyboardInterrupt:
        print_warning("Operation cancelled")
        return 0
    except InvalidPackageNameError as exc:
        print_error(f"Invalid package name: {exc.message}")
        return 1
    except TargetExistsError as exc:
        print_error(str(exc))
        return 1
    except PipelineError as exc:
        print_error(f"Error: {exc}")
        return 1
    except Exception as exc:  # noqa: BLE001
        print_error(f"Unexpected error: {exc}")
        if args.verbose:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
