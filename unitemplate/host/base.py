"""Interfaces for the host environment the orchestrator drives.

The orchestrator only talks to the package manager, asset index, preference
store, progress indicator and user prompts through these protocols, so the
core can run against real implementations or in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol


class RequestStatus(Enum):
    """Final status of a package manager request."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class PackageInfo:
    """Information about an installed package."""

    name: str
    version: str
    display_name: str


class AddRequest(Protocol):
    """An in-flight package install started by PackageClient.add()."""

    @property
    def identifier(self) -> str: ...

    @property
    def is_completed(self) -> bool: ...

    @property
    def status(self) -> RequestStatus: ...

    @property
    def error(self) -> str | None: ...

    @property
    def result(self) -> PackageInfo | None: ...


class PackageClient(Protocol):
    """Package manager client. Supports one active request at a time."""

    def add(self, identifier: str) -> AddRequest:
        """Start installing a package by name or git URL."""
        ...


class AssetIndex(Protocol):
    """Lookup of project and package files."""

    def find_assets(self, name: str) -> list[Path]:
        """Find files with the given file name."""
        ...

    def refresh(self) -> None:
        """Pick up files created or removed outside the index."""
        ...


class PreferenceStore(Protocol):
    """Persistent key-value store that survives process restarts."""

    def get_string(self, key: str, default: str = "") -> str: ...

    def set_string(self, key: str, value: str) -> None: ...

    def get_bool(self, key: str, default: bool = False) -> bool: ...

    def set_bool(self, key: str, value: bool) -> None: ...

    def has_key(self, key: str) -> bool: ...

    def delete_key(self, key: str) -> None: ...


class ProgressReporter(Protocol):
    """Host-visible progress indicator."""

    def update(self, title: str, label: str, fraction: float) -> None: ...

    def clear(self) -> None: ...


class Prompter(Protocol):
    """User interaction layer kept apart from decision logic."""

    def confirm(self, title: str, message: str, default: bool = False) -> bool: ...

    def notify(self, title: str, message: str) -> None: ...
