"""Unit tests for package-name validation (forge_pkg.validators)."""

from __future__ import annotations

import pytest

from forge_pkg.validators import (
    NAME_CHARSET_MESSAGE,
    NAME_REQUIRED_MESSAGE,
    NAME_TOO_LONG_MESSAGE,
    NPM_NAME_MAX_LENGTH,
    InvalidPackageNameError,
    ensure_valid_package_name,
    validate_package_name,
)

pytestmark = pytest.mark.unit


class TestValidatePackageName:
    @pytest.mark.parametrize(
        "name",
        [
            "sample-lib",
            "lib",
            "my_lib",
            "my.lib",
            "lib2",
            "a",
            "@scope/pkg",
            "@my-org/my-pkg.js",
            "~tilde",
        ],
    )
    def test_accepts_valid_names(self, name):
        assert validate_package_name(name) is None

    def test_rejects_empty(self):
        assert validate_package_name("") == NAME_REQUIRED_MESSAGE

    def test_length_ceiling_is_inclusive(self):
        assert validate_package_name("a" * NPM_NAME_MAX_LENGTH) is None

    def test_rejects_over_length_ceiling(self):
        assert validate_package_name("a" * (NPM_NAME_MAX_LENGTH + 1)) == NAME_TOO_LONG_MESSAGE

    @pytest.mark.parametrize(
        "name",
        [
            "My-Package",
            "UPPER",
            "My Package!",
            "has space",
            "bang!",
            "slash/name",
            "@scope",
            "@Scope/pkg",
            ".leading-dot",
            "_leading-underscore",
            "trailing\n",
        ],
    )
    def test_rejects_bad_characters(self, name):
        assert validate_package_name(name) == NAME_CHARSET_MESSAGE

    def test_charset_message_mentions_lowercase(self):
        assert "lowercase" in validate_package_name("My Package!")

    @pytest.mark.parametrize("name", ["node_modules", "favicon.ico"])
    def test_rejects_reserved_names(self, name):
        assert validate_package_name(name) == f'"{name}" is a reserved package name'


class TestEnsureValidPackageName:
    def test_returns_valid_name(self):
        assert ensure_valid_package_name("sample-lib") == "sample-lib"

    def test_raises_with_message(self):
        with pytest.raises(InvalidPackageNameError) as exc_info:
            ensure_valid_package_name("My Package!")
        assert exc_info.value.name == "My Package!"
        assert exc_info.value.message == NAME_CHARSET_MESSAGE
        assert isinstance(exc_info.value, ValueError)
