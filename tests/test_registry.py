"""Unit tests for RegistryClient (forge_pkg.registry).

Tests cover:
- RegistryClient.__init__ / from_settings
- Static helpers: _encode_name, _lts_engine_range
- latest_version (success, missing version, connect error, timeout, HTTP error)
- resolve_versions (ordering, partial failure)
- check_availability (404, 200, other status, network error)
- node_engine_range (success, bad feed, no LTS, connect error)
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from forge_pkg.config import ForgeSettings
from forge_pkg.registry import RegistryClient


def _mock_client(get: AsyncMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get = get
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _response(status_code: int = 200, payload=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                "error", request=MagicMock(), response=MagicMock(status_code=status_code)
            )
        )
    else:
        response.raise_for_status = MagicMock()
    return response


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestRegistryClientInit:
    @pytest.mark.unit
    def test_defaults(self):
        client = RegistryClient()
        assert client.registry_url == "https://registry.npmjs.org"
        assert client.node_dist_url == "https://nodejs.org/dist/index.json"
        assert client.timeout == 10

    @pytest.mark.unit
    def test_trailing_slash_stripped(self):
        client = RegistryClient(registry_url="https://npm.example.com/")
        assert client.registry_url == "https://npm.example.com"

    @pytest.mark.unit
    def test_from_settings(self):
        settings = ForgeSettings(
            registry_url="https://npm.example.com",
            node_dist_url="https://nodejs.example.com/index.json",
            http_timeout=4,
        )
        client = RegistryClient.from_settings(settings)
        assert client.registry_url == "https://npm.example.com"
        assert client.node_dist_url == "https://nodejs.example.com/index.json"
        assert client.timeout == 4


# ---------------------------------------------------------------------------
# Static helpers
# ---------------------------------------------------------------------------


class TestStaticHelpers:
    @pytest.mark.unit
    def test_encode_plain_name(self):
        assert RegistryClient._encode_name("typescript") == "typescript"

    @pytest.mark.unit
    def test_encode_scoped_name(self):
        assert RegistryClient._encode_name("@types/node") == "@types%2Fnode"

    @pytest.mark.unit
    def test_lts_engine_range_uses_lowest_of_three_latest_lts(self):
        releases = [
            {"version": "v23.1.0", "lts": False},
            {"version": "v22.11.0", "lts": "Jod"},
            {"version": "v22.10.0", "lts": False},
            {"version": "v20.18.0", "lts": "Iron"},
            {"version": "v18.20.4", "lts": "Hydrogen"},
            {"version": "v16.20.2", "lts": "Gallium"},
        ]
        node_range, majors = RegistryClient._lts_engine_range(releases)
        assert node_range == ">=18"
        assert majors == [18, 20, 22]

    @pytest.mark.unit
    def test_lts_engine_range_with_fewer_lines(self):
        node_range, majors = RegistryClient._lts_engine_range(
            [{"version": "v20.1.0", "lts": "Iron"}]
        )
        assert node_range == ">=20"
        assert majors == [20]

    @pytest.mark.unit
    def test_lts_engine_range_without_lts(self):
        assert RegistryClient._lts_engine_range([{"version": "v23.0.0", "lts": False}]) == (
            None,
            [],
        )


# ---------------------------------------------------------------------------
# latest_version / resolve_versions
# ---------------------------------------------------------------------------


class TestLatestVersion:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self):
        get = AsyncMock(return_value=_response(200, {"name": "tsup", "version": "8.3.0"}))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().latest_version("tsup")

        assert result.success is True
        assert result.version == "8.3.0"
        assert get.call_args[0][0] == "https://registry.npmjs.org/tsup/latest"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_scoped_name_is_encoded(self):
        get = AsyncMock(return_value=_response(200, {"version": "22.0.0"}))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            await RegistryClient().latest_version("@types/node")

        assert get.call_args[0][0] == "https://registry.npmjs.org/@types%2Fnode/latest"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_version(self):
        get = AsyncMock(return_value=_response(200, {"name": "tsup"}))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().latest_version("tsup")

        assert result.success is False
        assert "did not include a version" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_error(self):
        get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().latest_version("tsup")

        assert result.success is False
        assert result.version is None
        assert "Cannot connect" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self):
        get = AsyncMock(side_effect=httpx.TimeoutException("timed out"))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().latest_version("tsup")

        assert result.success is False
        assert "timed out" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error(self):
        get = AsyncMock(return_value=_response(404, {"error": "Not found"}))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().latest_version("no-such-package")

        assert result.success is False
        assert "HTTP 404" in result.error


class TestResolveVersions:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keeps_input_order_and_isolates_failures(self):
        versions = {"typescript": "5.6.3", "vitest": "2.1.4"}

        async def fake_get(url):
            name = url.rsplit("/", 2)[-2]
            if name not in versions:
                raise httpx.ConnectError("Connection refused")
            return _response(200, {"version": versions[name]})

        get = AsyncMock(side_effect=fake_get)
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            results = await RegistryClient().resolve_versions(["typescript", "broken", "vitest"])

        assert [r.name for r in results] == ["typescript", "broken", "vitest"]
        assert results[0].version == "5.6.3"
        assert results[1].success is False
        assert results[2].version == "2.1.4"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty(self):
        assert await RegistryClient().resolve_versions([]) == []


# ---------------------------------------------------------------------------
# check_availability
# ---------------------------------------------------------------------------


class TestCheckAvailability:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_404_means_available(self):
        get = AsyncMock(return_value=_response(404))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().check_availability("sample-lib")

        assert result.available is True
        assert result.checked is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_200_means_taken(self):
        get = AsyncMock(return_value=_response(200, {"name": "react"}))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().check_availability("react")

        assert result.available is False
        assert result.checked is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_other_status_fails_open(self):
        get = AsyncMock(return_value=_response(503))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().check_availability("sample-lib")

        assert result.available is True
        assert result.checked is False
        assert "503" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error_fails_open(self):
        get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().check_availability("sample-lib")

        assert result.available is True
        assert result.checked is False
        assert "Cannot connect" in result.error


# ---------------------------------------------------------------------------
# node_engine_range
# ---------------------------------------------------------------------------


class TestNodeEngineRange:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self):
        feed = [
            {"version": "v22.11.0", "lts": "Jod"},
            {"version": "v20.18.0", "lts": "Iron"},
            {"version": "v18.20.4", "lts": "Hydrogen"},
        ]
        get = AsyncMock(return_value=_response(200, feed))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().node_engine_range()

        assert result.success is True
        assert result.node_range == ">=18"
        assert result.lts_majors == [18, 20, 22]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_feed_format(self):
        get = AsyncMock(return_value=_response(200, {"not": "a list"}))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().node_engine_range()

        assert result.success is False
        assert result.node_range is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_lts_releases(self):
        get = AsyncMock(return_value=_response(200, [{"version": "v23.0.0", "lts": False}]))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().node_engine_range()

        assert result.success is False
        assert "No LTS" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_error(self):
        get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        with patch("httpx.AsyncClient", return_value=_mock_client(get)):
            result = await RegistryClient().node_engine_range()

        assert result.success is False
        assert "Node.js release feed" in result.error
