"""User profile persistence and source-control identity.

The user profile is the small author record (name, email, GitHub handle)
reused across scaffolding runs.  It lives in a single JSON file under the
OS-appropriate per-user config directory (via ``platformdirs``); there is
exactly one profile slot.
"""

from __future__ import annotations

import json
from pathlib import Path

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import APP_NAME
from .utils import dump_json, run_command


class ProfileError(Exception):
    """Raised when the profile file cannot be written or removed."""


class UserProfile(BaseModel):
    """Stored author identity.  Serialised as ``{author?, email?, github?}``."""

    model_config = ConfigDict(frozen=True)

    author: str | None = Field(default=None)
    email: str | None = Field(default=None)
    github: str | None = Field(default=None)

    def is_empty(self) -> bool:
        return not (self.author or self.email or self.github)

    def to_record(self) -> dict[str, str]:
        """Plain JSON record; absent fields are left out, not nulled."""
        return self.model_dump(exclude_none=True)


class GitIdentity(BaseModel):
    """``user.name`` / ``user.email`` from the global git config."""

    name: str | None = None
    email: str | None = None

    def describe(self) -> str:
        """Format as ``Name <email>`` (or whichever half is set)."""
        if self.name and self.email:
            return f"{self.name} <{self.email}>"
        return self.name or self.email or ""


def default_profile_path(config_dir: Path | None = None) -> Path:
    base = config_dir if config_dir is not None else platformdirs.user_config_path(APP_NAME)
    return Path(base) / "config.json"


class ProfileStore:
    """Reads, writes and deletes the single stored :class:`UserProfile`."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else default_profile_path()

    def load(self) -> UserProfile | None:
        """Return the stored profile, or ``None`` if missing or unreadable.

        A corrupted file is treated the same as a missing one.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return UserProfile.model_validate(data)
        except (OSError, ValueError, ValidationError):
            return None

    def save(self, profile: UserProfile) -> Path:
        """Overwrite the stored profile wholesale."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(dump_json(profile.to_record()), encoding="utf-8")
        except OSError as exc:
            raise ProfileError(f"Failed to save config: {exc}") from exc
        return self.path

    def reset(self) -> bool:
        """Delete the stored profile.  Returns whether one existed."""
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as exc:
            raise ProfileError(f"Failed to reset config: {exc}") from exc
        return True


async def read_git_identity() -> GitIdentity | None:
    """Read the global git identity; ``None`` if git is missing or unset."""
    name_rc, name, _ = await run_command(["git", "config", "--global", "user.name"], timeout=10)
    email_rc, email, _ = await run_command(["git", "config", "--global", "user.email"], timeout=10)

    identity = GitIdentity(
        name=name if name_rc == 0 and name else None,
        email=email if email_rc == 0 and email else None,
    )
    if identity.name is None and identity.email is None:
        return None
    return identity
