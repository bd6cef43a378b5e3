"""Tests for unitemplate.host.package_client module."""

import json
from collections.abc import Generator
from concurrent.futures import Future
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from conftest import write_host_manifest
from unitemplate.host.base import RequestStatus
from unitemplate.host.package_client import (
    FutureAddRequest,
    ManifestPackageClient,
    PackageClientError,
)

NUGET_URL = "https://github.com/GlitchEnzo/NuGetForUnity.git?path=/src/NuGetForUnity"

REGISTRY_DOC = {
    "name": "com.unity.inputsystem",
    "dist-tags": {"latest": "1.11.2"},
    "versions": {
        "1.6.3": {"unity": "2019.4"},
        "1.7.0": {"unity": "2019.4"},
        "1.11.2": {"unity": "6000.0"},
        "not-a-version": {},
    },
}


@pytest.fixture
def client(unity_project: Path) -> Generator[ManifestPackageClient, None, None]:
    client = ManifestPackageClient(unity_project, unity_version="2022.3.10f1")
    yield client
    client.shutdown()


def fake_fetch(documents: dict[str, Any]):
    """Build a _fetch_json replacement serving documents by URL."""

    def fetch(url: str) -> dict[str, Any]:
        if url not in documents:
            raise PackageClientError(f"HTTP 404: Not Found for {url}")
        return documents[url]

    return fetch


def read_dependencies(project_root: Path) -> dict[str, str]:
    return json.loads((project_root / "Packages" / "manifest.json").read_text())["dependencies"]


class TestFutureAddRequest:
    """Tests for FutureAddRequest class."""

    def test_in_progress(self):
        request = FutureAddRequest("com.a", Future())

        assert not request.is_completed
        assert request.status is RequestStatus.IN_PROGRESS
        assert request.error is None
        assert request.result is None

    def test_failure_exposes_error(self):
        future: Future = Future()
        future.set_exception(PackageClientError("Cannot find a version of package [com.a]"))
        request = FutureAddRequest("com.a", future)

        assert request.is_completed
        assert request.status is RequestStatus.FAILURE
        assert request.error == "Cannot find a version of package [com.a]"


class TestRegistryPackages:
    """Tests for installing registry packages."""

    def test_picks_newest_compatible_version(self, client: ManifestPackageClient, unity_project: Path):
        """The latest tag is skipped when it needs a newer editor."""
        docs = {"https://packages.unity.com/com.unity.inputsystem": REGISTRY_DOC}
        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            info = client._install("com.unity.inputsystem")

        assert info.version == "1.7.0"
        assert info.display_name == "inputsystem"
        assert read_dependencies(unity_project) == {"com.unity.inputsystem": "1.7.0"}

    def test_no_compatible_version(self, unity_project: Path):
        client = ManifestPackageClient(unity_project, unity_version="2018.4.1f1")
        docs = {"https://packages.unity.com/com.unity.inputsystem": REGISTRY_DOC}

        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            with pytest.raises(PackageClientError, match="Cannot find a version of package"):
                client._install("com.unity.inputsystem")
        client.shutdown()

        assert read_dependencies(unity_project) == {}

    def test_existing_entry_is_kept(self, client: ManifestPackageClient, unity_project: Path):
        write_host_manifest(unity_project, {"com.unity.inputsystem": "1.6.3"})
        docs = {"https://packages.unity.com/com.unity.inputsystem": REGISTRY_DOC}

        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            client._install("com.unity.inputsystem")

        assert read_dependencies(unity_project) == {"com.unity.inputsystem": "1.6.3"}

    def test_fetch_failure(self, client: ManifestPackageClient):
        with patch.object(client, "_fetch_json", side_effect=fake_fetch({})):
            with pytest.raises(PackageClientError, match="Unable to add package"):
                client._install("com.unity.missing")


class TestGitPackages:
    """Tests for installing git packages."""

    def test_reads_package_json_from_sub_path(self, client: ManifestPackageClient, unity_project: Path):
        raw = f"{ManifestPackageClient.RAW_CONTENT_URL}/GlitchEnzo/NuGetForUnity/HEAD/src/NuGetForUnity/package.json"
        docs = {raw: {"name": "com.github-glitchenzo.nugetforunity", "version": "4.1.1"}}

        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            info = client._install(NUGET_URL)

        assert info.name == "com.github-glitchenzo.nugetforunity"
        assert read_dependencies(unity_project) == {"com.github-glitchenzo.nugetforunity": NUGET_URL}

    def test_fragment_selects_ref(self, client: ManifestPackageClient):
        url = "https://github.com/Cysharp/R3.git?path=src/R3.Unity/Assets/R3.Unity#1.2.9"
        raw = f"{ManifestPackageClient.RAW_CONTENT_URL}/Cysharp/R3/1.2.9/src/R3.Unity/Assets/R3.Unity/package.json"
        docs = {raw: {"name": "com.cysharp.r3", "version": "1.2.9"}}

        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            info = client._install(url)

        assert info.version == "1.2.9"

    def test_incompatible_git_package(self, client: ManifestPackageClient):
        raw = f"{ManifestPackageClient.RAW_CONTENT_URL}/owner/repo/HEAD/package.json"
        docs = {raw: {"name": "com.owner.repo", "unity": "6000.0"}}

        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            with pytest.raises(PackageClientError, match="compatible with this Unity version"):
                client._install("https://github.com/owner/repo.git")

    def test_unsupported_host(self, client: ManifestPackageClient):
        with pytest.raises(PackageClientError, match="Unsupported git host"):
            client._install("https://gitlab.com/owner/repo.git")


class TestAdd:
    """Tests for the asynchronous add()."""

    def test_add_completes_in_background(self, client: ManifestPackageClient, unity_project: Path):
        docs = {"https://packages.unity.com/com.unity.inputsystem": REGISTRY_DOC}

        with patch.object(client, "_fetch_json", side_effect=fake_fetch(docs)):
            request = client.add("com.unity.inputsystem")
            request._future.result(timeout=5)

        assert request.is_completed
        assert request.status is RequestStatus.SUCCESS
        assert request.result is not None
        assert request.result.version == "1.7.0"
