"""Tests for unitemplate.core.nuget module."""

from pathlib import Path
from unittest.mock import patch

import pytest

from unitemplate.config.schemas import HostManifest, NugetPackageSpec
from unitemplate.core.nuget import (
    CommandNugetInstaller,
    NugetError,
    NugetResult,
    has_bridge,
    install_nuget_packages,
)
from unitemplate.utils.command import CommandResult

BRIDGE = HostManifest(
    dependencies={
        "com.github-glitchenzo.nugetforunity": "https://github.com/GlitchEnzo/NuGetForUnity.git?path=/src/NuGetForUnity"
    }
)
PACKAGES = [
    NugetPackageSpec(id="R3", version="1.2.9"),
    NugetPackageSpec(id="ObservableCollections", version="3.3.3"),
]


class StubInstaller:
    def __init__(self, failing: dict[str, Exception | str] | None = None) -> None:
        self.failing = failing or {}
        self.calls: list[str] = []

    def install_package(self, package_id: str, version: str) -> NugetResult:
        self.calls.append(package_id)
        failure = self.failing.get(package_id)
        if isinstance(failure, Exception):
            raise failure
        if failure:
            return NugetResult(package_id, version, False, failure)
        return NugetResult(package_id, version, True, "Installed")


class TestHasBridge:
    """Tests for has_bridge function."""

    def test_matches_name_case_insensitively(self):
        assert has_bridge(BRIDGE)

    def test_matches_url_value(self):
        manifest = HostManifest(
            dependencies={"nuget": "https://github.com/GlitchEnzo/NuGetForUnity.git"}
        )
        assert has_bridge(manifest)

    def test_absent(self):
        assert not has_bridge(HostManifest(dependencies={"com.unity.inputsystem": "1.7.0"}))


class TestInstallNugetPackages:
    """Tests for install_nuget_packages function."""

    def test_installs_each_package(self):
        installer = StubInstaller()

        summary = install_nuget_packages(PACKAGES, installer, BRIDGE)

        assert installer.calls == ["R3", "ObservableCollections"]
        assert summary.ok
        assert not summary.skipped

    def test_skipped_without_bridge(self):
        """Nothing is attempted until NuGetForUnity is installed."""
        installer = StubInstaller()

        summary = install_nuget_packages(PACKAGES, installer, HostManifest())

        assert summary.skipped
        assert "NuGetForUnity is not installed" in (summary.skipped_reason or "")
        assert installer.calls == []

    def test_no_packages_declared(self):
        summary = install_nuget_packages([], StubInstaller(), HostManifest())

        assert not summary.skipped
        assert summary.results == []

    def test_failure_does_not_stop_later_packages(self):
        installer = StubInstaller(failing={"R3": NugetError("nuget executable not found on PATH")})

        summary = install_nuget_packages(PACKAGES, installer, BRIDGE)

        assert installer.calls == ["R3", "ObservableCollections"]
        assert not summary.ok
        assert [r.package_id for r in summary.failed] == ["R3"]
        assert "not found" in summary.failed[0].message


class TestCommandNugetInstaller:
    """Tests for CommandNugetInstaller class."""

    def test_missing_executable(self, temp_dir: Path):
        installer = CommandNugetInstaller(temp_dir)

        with patch("unitemplate.core.nuget.find_executable", return_value=None):
            with pytest.raises(NugetError, match="not found on PATH"):
                installer.install_package("R3", "1.2.9")

    def test_runs_nuget_install(self, temp_dir: Path):
        installer = CommandNugetInstaller(temp_dir)

        with (
            patch("unitemplate.core.nuget.find_executable", return_value="/usr/bin/nuget"),
            patch("unitemplate.core.nuget.run_command") as run,
        ):
            run.return_value = CommandResult(["nuget"], 0, "Added package", "")
            result = installer.install_package("R3", "1.2.9")

        assert result.success
        argv = run.call_args.args[0]
        assert argv == [
            "/usr/bin/nuget",
            "install",
            "R3",
            "-Version",
            "1.2.9",
            "-OutputDirectory",
            str(temp_dir / "Assets" / "Packages"),
            "-NonInteractive",
        ]

    def test_failed_install_reports_stderr(self, temp_dir: Path):
        installer = CommandNugetInstaller(temp_dir)

        with (
            patch("unitemplate.core.nuget.find_executable", return_value="nuget"),
            patch(
                "unitemplate.core.nuget.run_command",
                return_value=CommandResult(["nuget"], 1, "", "Unable to find package 'R4'"),
            ),
        ):
            result = installer.install_package("R4", "0.0.1")

        assert not result.success
        assert result.message == "Unable to find package 'R4'"
