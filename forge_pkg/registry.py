"""Async client for the advisory network lookups.

Wraps the npm registry (``/<name>`` and ``/<name>/latest``) and the Node.js
release feed (``dist/index.json``).  Every lookup is *advisory*: failures are
returned as structured results with ``success=False`` and an ``error``
message, never raised, so a flaky network can't stop a scaffolding run.

Typical usage::

    client = RegistryClient()
    lookups = await client.resolve_versions(["typescript", "tsup"])
    for lookup in lookups:
        print(lookup.name, lookup.version or lookup.error)
"""

from __future__ import annotations

import asyncio
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from .config import ForgeSettings


class VersionLookup(BaseModel):
    """Result of a latest-version lookup for one package."""

    name: str
    version: str | None = Field(default=None, description="Latest published version")
    success: bool = Field(default=True)
    error: str | None = Field(default=None)


class AvailabilityResult(BaseModel):
    """Result of a package-name availability check.

    ``available`` is ``True`` both when the registry confirmed the name is
    free and when the check itself failed (fail-open); ``checked`` tells the
    two apart.
    """

    name: str
    available: bool = Field(default=True)
    checked: bool = Field(default=True)
    error: str | None = Field(default=None)


class EngineLookup(BaseModel):
    """Result of deriving the ``engines.node`` range from the release feed."""

    node_range: str | None = Field(default=None, description="e.g. '>=18'")
    lts_majors: list[int] = Field(default_factory=list)
    success: bool = Field(default=True)
    error: str | None = Field(default=None)


class RegistryClient:
    """Async client for the npm registry and the Node.js release feed.

    The client uses ``httpx.AsyncClient`` for non-blocking HTTP; a fresh
    client is opened per lookup so concurrent lookups never share state.
    """

    def __init__(
        self,
        registry_url: str = "https://registry.npmjs.org",
        node_dist_url: str = "https://nodejs.org/dist/index.json",
        timeout: int = 10,
    ) -> None:
        self.registry_url = registry_url.rstrip("/")
        self.node_dist_url = node_dist_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: ForgeSettings) -> "RegistryClient":
        return cls(
            registry_url=settings.registry_url,
            node_dist_url=settings.node_dist_url,
            timeout=settings.http_timeout,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our timeout."""
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    @staticmethod
    def _encode_name(name: str) -> str:
        """Encode a package name for a registry URL (``@scope/x`` -> ``@scope%2Fx``)."""
        return quote(name, safe="@")

    @staticmethod
    def _describe_error(exc: Exception, target: str) -> str:
        if isinstance(exc, httpx.ConnectError):
            return f"Cannot connect to {target}"
        if isinstance(exc, httpx.TimeoutException):
            return f"Request to {target} timed out"
        if isinstance(exc, httpx.HTTPStatusError):
            return f"{target} returned HTTP {exc.response.status_code}"
        return f"Unexpected error contacting {target}: {exc}"

    @staticmethod
    def _lts_engine_range(releases: list[dict]) -> tuple[str | None, list[int]]:
        """Derive ``>=<major>`` from the release feed.

        Takes the three most recent LTS major lines and returns the lowest of
        them, so the generated package supports every maintained LTS.
        """
        majors: set[int] = set()
        for release in releases:
            if not release.get("lts"):
                continue
            version = str(release.get("version", "")).lstrip("v")
            head = version.split(".", 1)[0]
            if head.isdigit():
                majors.add(int(head))
        if not majors:
            return None, []
        recent = sorted(majors, reverse=True)[:3]
        return f">={min(recent)}", sorted(recent)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def latest_version(self, name: str) -> VersionLookup:
        """Look up the ``latest`` dist-tag of *name*."""
        url = f"{self.registry_url}/{self._encode_name(name)}/latest"
        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()
        except Exception as exc:  # noqa: BLE001
            return VersionLookup(
                name=name,
                success=False,
                error=self._describe_error(exc, "the npm registry"),
            )

        version = data.get("version") if isinstance(data, dict) else None
        if not version:
            return VersionLookup(
                name=name,
                success=False,
                error="Registry response did not include a version",
            )
        return VersionLookup(name=name, version=str(version))

    async def resolve_versions(self, names: list[str]) -> list[VersionLookup]:
        """Look up every name concurrently; results keep the input order.

        One failed lookup never cancels its siblings.
        """
        return list(await asyncio.gather(*(self.latest_version(n) for n in names)))

    async def check_availability(self, name: str) -> AvailabilityResult:
        """Check whether *name* is still unclaimed on the registry.

        A 404 means available, a 200 means taken, anything else is treated
        as available (the check is advisory only).
        """
        url = f"{self.registry_url}/{self._encode_name(name)}"
        try:
            async with self._client() as client:
                response = await client.get(url)
        except Exception as exc:  # noqa: BLE001
            return AvailabilityResult(
                name=name,
                available=True,
                checked=False,
                error=self._describe_error(exc, "the npm registry"),
            )

        if response.status_code == 404:
            return AvailabilityResult(name=name, available=True)
        if response.status_code == 200:
            return AvailabilityResult(name=name, available=False)
        return AvailabilityResult(
            name=name,
            available=True,
            checked=False,
            error=f"the npm registry returned HTTP {response.status_code}",
        )

    async def node_engine_range(self) -> EngineLookup:
        """Fetch the Node release feed and derive the supported engine range."""
        try:
            async with self._client() as client:
                response = await client.get(self.node_dist_url)
                response.raise_for_status()
                releases = response.json()
        except Exception as exc:  # noqa: BLE001
            return EngineLookup(
                success=False,
                error=self._describe_error(exc, "the Node.js release feed"),
            )

        if not isinstance(releases, list):
            return EngineLookup(success=False, error="Unexpected Node.js release feed format")

        node_range, majors = self._lts_engine_range(releases)
        if node_range is None:
            return EngineLookup(success=False, error="No LTS releases found in the Node.js feed")
        return EngineLookup(node_range=node_range, lts_majors=majors)
