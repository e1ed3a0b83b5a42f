"""Validation of npm package identifiers.

The grammar follows the npm registry rules: lowercase, URL-safe characters,
an optional ``@scope/`` prefix, at most 214 characters, and a couple of
reserved names.
"""

from __future__ import annotations

import re

NPM_NAME_MAX_LENGTH = 214

RESERVED_NAMES: frozenset[str] = frozenset({"node_modules", "favicon.ico"})

_PACKAGE_NAME_RE = re.compile(r"^(@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*$")

NAME_REQUIRED_MESSAGE = "Package name is required"
NAME_TOO_LONG_MESSAGE = f"Package name must be {NPM_NAME_MAX_LENGTH} characters or less"
NAME_CHARSET_MESSAGE = (
    "Package name must be lowercase and can only contain letters, numbers, "
    "hyphens, underscores, and @/ for scoped packages"
)


class InvalidPackageNameError(ValueError):
    """Raised when a package name supplied on the command line is invalid."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(message)


def validate_package_name(name: str) -> str | None:
    """Return an error message for *name*, or ``None`` when it is valid."""
    if not name:
        return NAME_REQUIRED_MESSAGE
    if len(name) > NPM_NAME_MAX_LENGTH:
        return NAME_TOO_LONG_MESSAGE
    if not _PACKAGE_NAME_RE.fullmatch(name):
        return NAME_CHARSET_MESSAGE
    if name in RESERVED_NAMES:
        return f'"{name}" is a reserved package name'
    return None


def ensure_valid_package_name(name: str) -> str:
    """Return *name* unchanged or raise :class:`InvalidPackageNameError`."""
    error = validate_package_name(name)
    if error is not None:
        raise InvalidPackageNameError(name, error)
    return name
