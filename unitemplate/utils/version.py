"""Version parsing for registry packages and Unity editor versions."""

import re
from dataclasses import dataclass
from functools import total_ordering

_SEMVER_PATTERN = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)
_UNITY_PATTERN = re.compile(r"^(?P<major>\d+)(?:\.(?P<minor>\d+))?")


@total_ordering
@dataclass(frozen=True)
class SemVer:
    """Semantic version of a registry package."""

    major: int
    minor: int
    patch: int
    prerelease: str | None = None

    @classmethod
    def parse(cls, version_str: str) -> "SemVer":
        """Parse a semver string such as "3.0.6" or "1.0.0-pre.5".

        Raises:
            ValueError: If the string is not valid semver
        """
        match = _SEMVER_PATTERN.match(version_str.strip())
        if not match:
            raise ValueError(f"Invalid semver: {version_str}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
        )

    def _key(self) -> tuple[int, int, int, int, str]:
        # Releases sort above any prerelease of the same version
        return (
            self.major,
            self.minor,
            self.patch,
            0 if self.prerelease else 1,
            self.prerelease or "",
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        return version


def sort_versions(versions: list[str], newest_first: bool = True) -> list[str]:
    """Sort version strings, dropping ones that are not valid semver."""
    parsed = []
    for v in versions:
        try:
            parsed.append((SemVer.parse(v), v))
        except ValueError:
            continue
    parsed.sort(key=lambda item: item[0], reverse=newest_first)
    return [v for _, v in parsed]


def parse_unity_version(version: str) -> tuple[int, int] | None:
    """Get (major, minor) from a Unity version such as "2022.3.10f1" or "6000.0".

    Returns:
        The version tuple, or None if the string is not a Unity version
    """
    match = _UNITY_PATTERN.match(version.strip())
    if not match:
        return None
    return int(match.group("major")), int(match.group("minor") or 0)


def is_unity_compatible(required: str | None, editor_version: str | None) -> bool:
    """Check whether an editor satisfies a package's minimum Unity version.

    Unknown requirements or editor versions are treated as compatible.
    """
    if not required or not editor_version:
        return True
    required_tuple = parse_unity_version(required)
    editor_tuple = parse_unity_version(editor_version)
    if required_tuple is None or editor_tuple is None:
        return True
    return editor_tuple >= required_tuple
