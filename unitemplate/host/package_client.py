"""Package client that installs UPM packages by editing Packages/manifest.json.

Registry packages are resolved against the Unity package registry; git
packages are identified by reading the package.json they point at. The
network work runs on a single worker thread, and the returned AddRequest is
polled from the scheduler thread, so only one request is active at a time.
"""

from __future__ import annotations

import json
import logging
import ssl
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, quote, urlparse
from urllib.request import Request, urlopen

from unitemplate.config.parser import load_host_manifest, save_host_manifest
from unitemplate.core.differ import display_name, is_git_package, is_same_git_package
from unitemplate.host.base import PackageInfo, RequestStatus
from unitemplate.utils.version import is_unity_compatible, sort_versions

logger = logging.getLogger(__name__)


class PackageClientError(Exception):
    """Error resolving or recording a package."""

    def __init__(self, message: str, identifier: str | None = None):
        self.identifier = identifier
        super().__init__(message)


class FutureAddRequest:
    """AddRequest backed by a concurrent.futures.Future."""

    def __init__(self, identifier: str, future: Future[PackageInfo]) -> None:
        self._identifier = identifier
        self._future = future

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def is_completed(self) -> bool:
        return self._future.done()

    @property
    def status(self) -> RequestStatus:
        if not self._future.done():
            return RequestStatus.IN_PROGRESS
        if self._future.cancelled() or self._future.exception() is not None:
            return RequestStatus.FAILURE
        return RequestStatus.SUCCESS

    @property
    def error(self) -> str | None:
        if not self._future.done():
            return None
        if self._future.cancelled():
            return "Request was cancelled"
        exc = self._future.exception()
        return str(exc) if exc is not None else None

    @property
    def result(self) -> PackageInfo | None:
        if self.status is not RequestStatus.SUCCESS:
            return None
        return self._future.result()


class ManifestPackageClient:
    """PackageClient that records packages in Packages/manifest.json."""

    DEFAULT_TIMEOUT = 30  # seconds
    RAW_CONTENT_URL = "https://raw.githubusercontent.com"

    def __init__(
        self,
        project_root: Path,
        registry_url: str = "https://packages.unity.com",
        unity_version: str | None = None,
        timeout: int | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            project_root: Unity project root containing Packages/manifest.json
            registry_url: Base URL of the UPM registry
            unity_version: Editor version used to filter compatible releases
            timeout: Request timeout in seconds (default: 30)
        """
        self.project_root = project_root
        self.registry_url = registry_url.rstrip("/")
        self.unity_version = unity_version
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._ssl_context = ssl.create_default_context()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="upm")
        self._manifest_lock = threading.Lock()

    def add(self, identifier: str) -> FutureAddRequest:
        """Start installing a package by registry name or git URL."""
        logger.debug("Queueing package request for %s", identifier)
        future = self._executor.submit(self._install, identifier)
        return FutureAddRequest(identifier, future)

    def shutdown(self) -> None:
        """Stop the worker thread, abandoning queued requests."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _install(self, identifier: str) -> PackageInfo:
        if is_git_package(identifier):
            name, version = self._resolve_git(identifier)
            self._record(name, identifier, git=True)
            return PackageInfo(name=name, version=version, display_name=display_name(identifier))

        version = self._resolve_registry(identifier)
        self._record(identifier, version, git=False)
        return PackageInfo(name=identifier, version=version, display_name=display_name(identifier))

    def _record(self, name: str, value: str, git: bool) -> None:
        with self._manifest_lock:
            manifest = load_host_manifest(self.project_root)
            existing = manifest.dependencies.get(name)
            if existing is not None and (
                existing == value or (git and is_same_git_package(existing, value))
            ):
                logger.debug("%s already recorded in manifest", name)
                return
            if existing is not None and not git:
                logger.debug("%s already installed at %s", name, existing)
                return
            manifest.dependencies[name] = value
            save_host_manifest(self.project_root, manifest)
            logger.debug("Recorded %s -> %s", name, value)

    def _fetch_json(self, url: str) -> dict[str, Any]:
        """Fetch and parse a JSON document.

        Raises:
            PackageClientError: If the request fails or returns invalid JSON
        """
        logger.debug("Making GET request to %s", url)
        try:
            request = Request(url, headers={"Accept": "application/json"})
            with urlopen(request, timeout=self._timeout, context=self._ssl_context) as response:
                body: bytes = response.read()
        except HTTPError as e:
            raise PackageClientError(f"HTTP {e.code}: {e.reason} for {url}") from e
        except URLError as e:
            raise PackageClientError(f"Failed to connect to {url}: {e.reason}") from e
        except TimeoutError as e:
            raise PackageClientError(f"Request timed out for {url}") from e

        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PackageClientError(f"Invalid JSON from {url}: {e}") from e
        if not isinstance(data, dict):
            raise PackageClientError(f"Unexpected response from {url}")
        return data

    def _resolve_registry(self, name: str) -> str:
        """Pick the newest release of a registry package the editor supports."""
        try:
            data = self._fetch_json(f"{self.registry_url}/{quote(name)}")
        except PackageClientError as e:
            raise PackageClientError(f"Unable to add package [{name}]: {e}", name) from e

        versions: dict[str, Any] = data.get("versions") or {}
        latest = (data.get("dist-tags") or {}).get("latest")
        candidates = sort_versions(list(versions))
        if latest in candidates:
            candidates.remove(latest)
            candidates.insert(0, latest)

        for version in candidates:
            info = versions.get(version) or {}
            if is_unity_compatible(info.get("unity"), self.unity_version):
                return version

        raise PackageClientError(
            f"Cannot find a version of package [{name}] compatible with this Unity version "
            f"({self.unity_version or 'unknown'})",
            name,
        )

    def _resolve_git(self, url: str) -> tuple[str, str]:
        """Read the package name and version from the package.json a git URL points at."""
        parsed = urlparse(url.removeprefix("git+"))
        if parsed.netloc != "github.com":
            raise PackageClientError(f"Unsupported git host in {url}", url)

        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) < 2:
            raise PackageClientError(f"Invalid git package URL: {url}", url)
        owner, repo = parts[0], parts[1].removesuffix(".git")

        sub_path = (parse_qs(parsed.query).get("path") or [""])[0].strip("/")
        ref = parsed.fragment or "HEAD"
        package_json = "/".join(p for p in (sub_path, "package.json") if p)
        raw_url = f"{self.RAW_CONTENT_URL}/{owner}/{repo}/{quote(ref)}/{package_json}"

        try:
            data = self._fetch_json(raw_url)
        except PackageClientError as e:
            raise PackageClientError(f"Unable to add package [{url}]: {e}", url) from e

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise PackageClientError(f"package.json at {raw_url} has no name", url)

        required_unity = data.get("unity")
        if not is_unity_compatible(required_unity, self.unity_version):
            raise PackageClientError(
                f"Package [{name}] requires Unity {required_unity} and is not "
                f"compatible with this Unity version",
                url,
            )
        return name, str(data.get("version", ""))
