"""Desired-state diff between the template manifest and installed packages.

The diff is a flat membership check: there is no version resolution. Git
packages are compared by a canonical `owner/repo[/subpath]` identity because
the same package is often recorded under different literal URLs.
"""

import logging
import re

from unitemplate.config.schemas import HostManifest, TemplateManifest

logger = logging.getLogger(__name__)

DEFAULT_BUILTIN_PACKAGES = frozenset({"com.unity.textmeshpro", "com.unity.ugui"})

_REPO_PATTERN = re.compile(r"github\.com/([^/]+/[^/?.#]+)")
_PATH_PATTERN = re.compile(r"path=([^&#]+)")


def is_git_package(identifier: str) -> bool:
    """Check whether an identifier is a git URL rather than a registry name."""
    return "github.com" in identifier or identifier.startswith(("git+", "git@", "https://"))


def is_unity6_or_newer(unity_version: str | None) -> bool:
    """Check whether the editor version is Unity 6 (6000.x) or newer.

    Args:
        unity_version: Editor version string, e.g. "6000.0.23f1" or "2022.3.10f1"

    Returns:
        True for Unity 6 and later, False for older or unknown versions
    """
    if not unity_version:
        return False
    return unity_version.startswith("6") or unity_version >= "6000"


def extract_git_package_path(git_url: str) -> str:
    """Get the canonical identity of a git package URL.

    "https://github.com/owner/repo.git?path=/some/path#v1" becomes
    "owner/repo/some/path". URLs that are not recognised are returned as-is.
    """
    repo_match = _REPO_PATTERN.search(git_url)
    if not repo_match:
        return git_url

    repo = repo_match.group(1)

    path_match = _PATH_PATTERN.search(git_url)
    if path_match:
        path = path_match.group(1).strip("/")
        if path:
            return f"{repo}/{path}"

    return repo


def is_same_git_package(installed_url: str, target_url: str) -> bool:
    """Check whether two git URLs refer to the same package."""
    return extract_git_package_path(installed_url) == extract_git_package_path(target_url)


def _installed_git_urls(installed: HostManifest) -> list[str]:
    # UPM records git packages as name -> url, but keys may hold URLs too
    urls = [key for key in installed.dependencies if "github.com" in key]
    urls.extend(value for value in installed.dependencies.values() if "github.com" in value)
    return urls


def packages_to_install(
    desired: TemplateManifest,
    installed: HostManifest,
    unity_version: str | None = None,
    builtin_packages: frozenset[str] | set[str] = DEFAULT_BUILTIN_PACKAGES,
) -> list[str]:
    """Compute the packages needed to reach the desired state.

    Args:
        desired: Template manifest
        installed: Current host manifest (re-read by the caller, never cached)
        unity_version: Editor version; Unity 6+ skips packages it ships built in
        builtin_packages: Packages absorbed into Unity 6

    Returns:
        Identifiers to install, registry packages first, in manifest order
    """
    to_install: list[str] = []
    skip_builtins = is_unity6_or_newer(unity_version)

    for package_id in desired.packages:
        if skip_builtins and package_id in builtin_packages:
            logger.debug("Skipping %s: built into Unity %s", package_id, unity_version)
            continue
        if package_id in installed.dependencies:
            logger.debug("Skipping %s: already installed", package_id)
            continue
        to_install.append(package_id)

    installed_urls = _installed_git_urls(installed)
    for git_url in desired.git_packages:
        if any(is_same_git_package(url, git_url) for url in installed_urls):
            logger.debug("Skipping %s: already installed", git_url)
            continue
        to_install.append(git_url)

    logger.info("%d package(s) to install", len(to_install))
    return to_install


def display_name(identifier: str) -> str:
    """Get a short human-readable name for a package identifier.

    Git URLs show their repository (or the last sub-path segment), registry
    names drop the "com.unity." / "com." prefix.
    """
    if "github.com" in identifier:
        canonical = extract_git_package_path(identifier)
        if canonical != identifier:
            return canonical.rstrip("/").split("/")[-1]
        return identifier

    if identifier.startswith("com.unity."):
        return identifier[len("com.unity.") :]
    if identifier.startswith("com."):
        return identifier[len("com.") :]
    return identifier
