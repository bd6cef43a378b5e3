"""Shared fixtures for unitemplate tests."""

import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from unitemplate.core.scheduler import Scheduler
from unitemplate.core.state import InstallStateStore
from unitemplate.host.base import PackageInfo, RequestStatus
from unitemplate.utils.command import CommandResult

# =============================================================================
# Fakes for host collaborators
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAddRequest:
    """AddRequest that completes after a fixed number of polls."""

    def __init__(self, identifier: str, error: str | None = None, polls: int = 1) -> None:
        self.identifier = identifier
        self._error = error
        self._polls_left = polls

    @property
    def is_completed(self) -> bool:
        if self._polls_left > 0:
            self._polls_left -= 1
            return False
        return True

    @property
    def status(self) -> RequestStatus:
        if self._polls_left > 0:
            return RequestStatus.IN_PROGRESS
        return RequestStatus.FAILURE if self._error else RequestStatus.SUCCESS

    @property
    def error(self) -> str | None:
        return self._error if self._polls_left <= 0 else None

    @property
    def result(self) -> PackageInfo | None:
        if self.status is not RequestStatus.SUCCESS:
            return None
        return PackageInfo(name=self.identifier, version="1.0.0", display_name=self.identifier)


class FakePackageClient:
    """PackageClient recording every add() call.

    Args:
        errors: Failure message per identifier; others succeed
        polls: Polls before each request completes
        raise_on: Identifiers whose add() raises
    """

    def __init__(
        self,
        errors: dict[str, str] | None = None,
        polls: int = 1,
        raise_on: set[str] | None = None,
    ) -> None:
        self.errors = errors or {}
        self.polls = polls
        self.raise_on = raise_on or set()
        self.added: list[str] = []
        self.requests: list[FakeAddRequest] = []

    def add(self, identifier: str) -> FakeAddRequest:
        if identifier in self.raise_on:
            raise RuntimeError(f"Cannot add {identifier}")
        self.added.append(identifier)
        request = FakeAddRequest(identifier, self.errors.get(identifier), self.polls)
        self.requests.append(request)
        return request


class ManifestRecordingClient(FakePackageClient):
    """FakePackageClient that records successful adds in Packages/manifest.json."""

    def __init__(self, project_root: Path, **kwargs) -> None:
        super().__init__(**kwargs)
        self.project_root = project_root
        self.shut_down = False

    def add(self, identifier: str) -> FakeAddRequest:
        request = super().add(identifier)
        if identifier not in self.errors:
            path = self.project_root / "Packages" / "manifest.json"
            data = json.loads(path.read_text())
            name = "com.github-glitchenzo.nugetforunity" if "NuGetForUnity" in identifier else identifier
            data["dependencies"][name] = identifier
            path.write_text(json.dumps(data))
        return request

    def shutdown(self) -> None:
        self.shut_down = True


class MemoryPreferenceStore:
    """PreferenceStore backed by a dict."""

    def __init__(self) -> None:
        self.data: dict[str, object] = {}

    def get_string(self, key: str, default: str = "") -> str:
        value = self.data.get(key, default)
        return value if isinstance(value, str) else default

    def set_string(self, key: str, value: str) -> None:
        self.data[key] = value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.data.get(key, default)
        return value if isinstance(value, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        self.data[key] = value

    def has_key(self, key: str) -> bool:
        return key in self.data

    def delete_key(self, key: str) -> None:
        self.data.pop(key, None)


class RecordingProgress:
    """ProgressReporter keeping every update."""

    def __init__(self) -> None:
        self.updates: list[tuple[str, str, float]] = []
        self.clears = 0

    def update(self, title: str, label: str, fraction: float) -> None:
        self.updates.append((title, label, fraction))

    def clear(self) -> None:
        self.clears += 1

    @property
    def labels(self) -> list[str]:
        return [label for _, label, _ in self.updates]


class RecordingPrompter:
    """Prompter answering every confirmation with a fixed value."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.confirms: list[tuple[str, str]] = []
        self.notifications: list[tuple[str, str]] = []

    def confirm(self, title: str, message: str, default: bool = False) -> bool:
        self.confirms.append((title, message))
        return self.answer

    def notify(self, title: str, message: str) -> None:
        self.notifications.append((title, message))


RunHandler = Callable[[list[str], Path | None], CommandResult | None]


class FakeRunner:
    """Command runner recording calls.

    A handler may return a CommandResult to override the default success, and
    may create files to simulate the command's side effects.
    """

    def __init__(self, handler: RunHandler | None = None) -> None:
        self.handler = handler
        self.calls: list[list[str]] = []

    def run(self, argv: list[str], cwd: Path | None = None) -> CommandResult:
        argv = [str(a) for a in argv]
        self.calls.append(argv)
        if self.handler is not None:
            result = self.handler(argv, cwd)
            if result is not None:
                return result
        return CommandResult(argv, 0, "", "")

    def git_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == "git"]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="unitemplate_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def unity_project(temp_dir: Path) -> Path:
    """Create a minimal Unity project with an empty package manifest."""
    root = temp_dir / "MyGame"
    (root / "Packages").mkdir(parents=True)
    (root / "Assets").mkdir()
    (root / "ProjectSettings").mkdir()
    (root / "Packages" / "manifest.json").write_text(json.dumps({"dependencies": {}}))
    (root / "ProjectSettings" / "ProjectVersion.txt").write_text(
        "m_EditorVersion: 2022.3.10f1\nm_EditorVersionWithRevision: 2022.3.10f1 (abc)\n"
    )
    return root


@pytest.fixture
def template_dir(temp_dir: Path) -> Path:
    """Create a template directory with config, license and script templates."""
    root = temp_dir / "templates"
    (root / "ConfigTemplates").mkdir(parents=True)
    (root / "LicenseTemplates").mkdir()
    (root / "ScriptTemplates").mkdir()

    (root / "template-manifest.json").write_text(json.dumps({"packages": ["com.unity.inputsystem"]}))
    (root / "ConfigTemplates" / ".editorconfig").write_text("root = true\n")
    (root / "ConfigTemplates" / "csc.rsp").write_text("-nullable:enable\n")
    (root / "LicenseTemplates" / "R3.asset").write_text("libraryName: R3\n")
    (root / "LicenseTemplates" / "UniTask.asset").write_text("libraryName: UniTask\n")
    (root / "LicenseTemplates" / "README.txt").write_text("not a license\n")
    (root / "ScriptTemplates" / "GameManager.cs.template").write_text("class GameManager {}\n")
    (root / "ScriptTemplates" / "InputHandler.cs.template").write_text("class InputHandler {}\n")
    (root / "ScriptTemplates" / "SceneSwitchLeftButton.cs.template").write_text("class S {}\n")
    (root / "ScriptTemplates" / "CreateTutorialScenes.cs.template").write_text("class C {}\n")
    return root


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> Scheduler:
    """Scheduler on a fake clock; sleeping advances the clock."""
    return Scheduler(clock=clock, sleep=clock.advance)


@pytest.fixture
def prefs() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def store(prefs: MemoryPreferenceStore) -> InstallStateStore:
    return InstallStateStore(prefs)


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()


@pytest.fixture
def prompter() -> RecordingPrompter:
    return RecordingPrompter()


def write_host_manifest(project_root: Path, dependencies: dict[str, str]) -> None:
    """Overwrite Packages/manifest.json with the given dependencies."""
    (project_root / "Packages" / "manifest.json").write_text(
        json.dumps({"dependencies": dependencies})
    )
