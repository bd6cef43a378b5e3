"""Git submodule provisioning.

Each declared submodule is checked out under the project root and exposed to
Unity through a link in the scripts folder:

    <root>/<name>                     git submodule
    <root>/<scripts_dir>/<link_name>  junction (Windows) or relative symlink

Every step is idempotent; re-running on a finished setup performs no git
operations at all.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from unitemplate.config.schemas import SubmoduleSpec
from unitemplate.host.base import Prompter
from unitemplate.utils.command import CommandResult, format_argv
from unitemplate.utils.filesystem import ensure_directory, is_link, points_to, remove_path
from unitemplate.utils.platform import is_windows

logger = logging.getLogger(__name__)

GITMODULES_FILE = ".gitmodules"


class Runner(Protocol):
    """Anything that can run a command and report its result."""

    def run(self, argv: list[str], cwd: Path | None = None) -> CommandResult: ...


class SubmoduleError(Exception):
    """Error provisioning a submodule or its link."""

    def __init__(self, message: str, name: str | None = None, hint: str | None = None):
        self.name = name
        self.hint = hint
        super().__init__(message)


@dataclass
class ProvisionResult:
    """Outcome of setting up one submodule."""

    name: str
    success: bool
    message: str = ""
    hint: str | None = None
    cancelled: bool = False
    actions: list[str] = field(default_factory=list)


class SubmoduleProvisioner:
    """Adds submodules and links them into the scripts folder."""

    def __init__(
        self,
        project_root: Path,
        runner: Runner,
        prompter: Prompter,
        scripts_dir: str = "Assets/Scripts",
        windows: bool | None = None,
    ) -> None:
        """Initialize the provisioner.

        Args:
            project_root: Unity project root (also the git work tree)
            runner: Command runner used for git and link creation
            prompter: Asked before an existing directory is replaced
            scripts_dir: Folder the links are created in, relative to the root
            windows: Create junctions instead of symlinks (defaults to the host OS)
        """
        self.project_root = project_root
        self.runner = runner
        self.prompter = prompter
        self.scripts_dir = scripts_dir
        self.windows = is_windows() if windows is None else windows

    def submodule_path(self, spec: SubmoduleSpec) -> Path:
        return self.project_root / spec.name

    def link_path(self, spec: SubmoduleSpec) -> Path:
        return self.project_root / self.scripts_dir / spec.link_name

    def is_provisioned(self, spec: SubmoduleSpec) -> bool:
        """Check whether the link already resolves to the submodule."""
        return points_to(self.link_path(spec), self.submodule_path(spec))

    def setup_submodule(self, spec: SubmoduleSpec) -> ProvisionResult:
        """Check out a submodule and link it into the project.

        Args:
            spec: Submodule to provision

        Returns:
            ProvisionResult; failures carry the error text and a hint with
            the commands to run by hand
        """
        if self.is_provisioned(spec):
            logger.info("Submodule %s is already set up", spec.name)
            return ProvisionResult(spec.name, True, "Already set up")

        actions: list[str] = []
        try:
            if self._is_registered(spec):
                logger.info("Submodule %s is registered; updating", spec.name)
                self._git(spec, ["submodule", "sync", "--", spec.name])
                self._git(spec, ["submodule", "update", "--init", "--recursive"])
                actions.append("updated")
            else:
                path = self.submodule_path(spec)
                if path.exists() or is_link(path):
                    confirmed = self.prompter.confirm(
                        "Replace existing directory",
                        f"'{spec.name}' already exists but is not a registered submodule.\n"
                        "Delete it and add the submodule?",
                        default=False,
                    )
                    if not confirmed:
                        logger.info("Setup of %s cancelled by user", spec.name)
                        return ProvisionResult(
                            spec.name, False, "Cancelled", cancelled=True, actions=actions
                        )
                    self._purge(spec)
                    actions.append("purged")

                self._git(spec, ["submodule", "add", spec.url, spec.name])
                self._git(spec, ["submodule", "update", "--init", "--recursive"])
                actions.append("added")

            if self.ensure_link(spec):
                actions.append("linked")
        except SubmoduleError as e:
            return ProvisionResult(spec.name, False, str(e), hint=e.hint, actions=actions)

        logger.info("Submodule %s set up (%s)", spec.name, ", ".join(actions) or "no changes")
        return ProvisionResult(spec.name, True, "Set up", actions=actions)

    def ensure_link(self, spec: SubmoduleSpec) -> bool:
        """Create the scripts-folder link for a submodule.

        A link that already points at the submodule is left alone and a stale
        link is replaced. A real file or directory in the way is an error.

        Returns:
            True if a link was created

        Raises:
            SubmoduleError: If the link cannot be created
        """
        link = self.link_path(spec)
        target = self.submodule_path(spec)

        if points_to(link, target):
            return False
        if is_link(link):
            logger.info("Replacing stale link %s", link)
            remove_path(link)
        elif link.exists():
            raise SubmoduleError(
                f"{link.relative_to(self.project_root)} already exists and is not a link",
                spec.name,
                f"Remove it manually and re-run, or create the link yourself:\n"
                f"  {self._link_command(spec)}",
            )

        ensure_directory(link.parent)
        if self.windows:
            argv = ["cmd", "/c", "mklink", "/J", str(link), str(target)]
            result = self.runner.run(argv, cwd=self.project_root)
            if not result.ok:
                raise SubmoduleError(
                    f"Failed to create junction: {result.stderr.strip() or result.stdout.strip()}",
                    spec.name,
                    f"Run manually:\n  {self._link_command(spec)}",
                )
        else:
            try:
                link.symlink_to(os.path.relpath(target, link.parent), target_is_directory=True)
            except OSError as e:
                raise SubmoduleError(
                    f"Failed to create symbolic link: {e}",
                    spec.name,
                    f"Run manually:\n  {self._link_command(spec)}",
                ) from e

        logger.info("Linked %s -> %s", link.relative_to(self.project_root), spec.name)
        return True

    def manual_hint(self, spec: SubmoduleSpec) -> str:
        """Commands that set up a submodule by hand."""
        return "\n".join(
            [
                format_argv(["git", "submodule", "add", spec.url, spec.name]),
                "git submodule update --init --recursive",
                self._link_command(spec),
            ]
        )

    def _is_registered(self, spec: SubmoduleSpec) -> bool:
        gitmodules = self.project_root / GITMODULES_FILE
        if not gitmodules.is_file():
            return False
        try:
            text = gitmodules.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", gitmodules, e)
            return False
        pattern = rf"^\s*path\s*=\s*{re.escape(spec.name)}\s*$"
        return re.search(pattern, text, re.MULTILINE) is not None

    def _purge(self, spec: SubmoduleSpec) -> None:
        remove_path(self.submodule_path(spec))
        modules_dir = self.project_root / ".git" / "modules" / spec.name
        if remove_path(modules_dir):
            logger.debug("Removed %s", modules_dir)

    def _git(self, spec: SubmoduleSpec, args: list[str]) -> CommandResult:
        result = self.runner.run(["git", *args], cwd=self.project_root)
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
            raise SubmoduleError(
                f"git {' '.join(args[:2])} failed for {spec.name}: {detail}",
                spec.name,
                "Check that the project is a git repository, then run:\n  "
                + self.manual_hint(spec).replace("\n", "\n  "),
            )
        return result

    def _link_command(self, spec: SubmoduleSpec) -> str:
        link = self.link_path(spec)
        target = self.submodule_path(spec)
        if self.windows:
            return f'mklink /J "{link}" "{target}"'
        rel_link = link.relative_to(self.project_root).as_posix()
        return format_argv(["ln", "-s", Path(os.path.relpath(target, link.parent)).as_posix(), rel_link])
