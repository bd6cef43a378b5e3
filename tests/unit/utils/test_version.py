"""Tests for unitemplate.utils.version module."""

import pytest

from unitemplate.utils.version import (
    SemVer,
    is_unity_compatible,
    parse_unity_version,
    sort_versions,
)


class TestSemVer:
    """Tests for SemVer class."""

    def test_parse(self):
        version = SemVer.parse("1.0.0-pre.5")

        assert (version.major, version.minor, version.patch) == (1, 0, 0)
        assert version.prerelease == "pre.5"
        assert str(version) == "1.0.0-pre.5"

    def test_parse_ignores_build_metadata(self):
        assert str(SemVer.parse("2.1.0+build.7")) == "2.1.0"

    @pytest.mark.parametrize("value", ["1.0", "v1.0.0", "latest", ""])
    def test_parse_invalid(self, value: str):
        with pytest.raises(ValueError, match="Invalid semver"):
            SemVer.parse(value)

    def test_release_sorts_above_prerelease(self):
        assert SemVer.parse("1.0.0-pre.5") < SemVer.parse("1.0.0")
        assert SemVer.parse("1.0.0") < SemVer.parse("1.0.1-exp.1")


class TestSortVersions:
    """Tests for sort_versions function."""

    def test_newest_first(self):
        assert sort_versions(["1.6.3", "1.11.2", "1.7.0"]) == ["1.11.2", "1.7.0", "1.6.3"]

    def test_oldest_first_drops_invalid(self):
        assert sort_versions(["2.0.0", "junk", "1.0.0"], newest_first=False) == ["1.0.0", "2.0.0"]


class TestUnityVersions:
    """Tests for Unity editor version helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2022.3.10f1", (2022, 3)),
            ("6000.0.23f1", (6000, 0)),
            ("2019", (2019, 0)),
            ("unknown", None),
        ],
    )
    def test_parse_unity_version(self, value: str, expected: tuple[int, int] | None):
        assert parse_unity_version(value) == expected

    @pytest.mark.parametrize(
        ("required", "editor", "expected"),
        [
            ("2019.4", "2022.3.10f1", True),
            ("6000.0", "2022.3.10f1", False),
            ("2022.3", "2022.3.10f1", True),
            (None, "2022.3.10f1", True),
            ("2019.4", None, True),
            ("garbage", "2022.3.10f1", True),
        ],
    )
    def test_is_unity_compatible(self, required: str | None, editor: str | None, expected: bool):
        assert is_unity_compatible(required, editor) is expected
