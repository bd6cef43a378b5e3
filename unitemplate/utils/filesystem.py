"""Filesystem utilities for unitemplate."""

import os
import shutil
import stat
import sys
from collections.abc import Callable
from pathlib import Path


def ensure_directory(path: Path) -> bool:
    """Ensure a directory exists, creating parents as needed.

    Args:
        path: Directory path to ensure exists

    Returns:
        True if the directory was created, False if it already existed
    """
    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    return True


def copy_file(src: Path, dest: Path, overwrite: bool = True) -> bool:
    """Copy a file to a destination path.

    Args:
        src: Source file path
        dest: Destination file path
        overwrite: Replace an existing destination

    Returns:
        True if the file was copied, False if it was left alone
    """
    if dest.exists() and not overwrite:
        return False
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)
    return True


def _make_writable(func: Callable[[str], object], path: str, _exc: object) -> None:
    # git object files are read-only on Windows
    os.chmod(path, stat.S_IWRITE)
    func(path)


def remove_path(path: Path) -> bool:
    """Remove a file, link or directory tree.

    Links are removed without touching their target.

    Args:
        path: Path to remove

    Returns:
        True if something was removed, False if nothing existed
    """
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        if is_junction(path):
            path.rmdir()
        else:
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=_make_writable)
            else:
                shutil.rmtree(path, onerror=_make_writable)
        return True
    return False


def is_junction(path: Path) -> bool:
    """Check whether a path is a Windows directory junction."""
    checker = getattr(os.path, "isjunction", None)
    return bool(checker and checker(path))


def is_link(path: Path) -> bool:
    """Check whether a path is a symbolic link or junction."""
    return path.is_symlink() or is_junction(path)


def points_to(link: Path, target: Path) -> bool:
    """Check whether a link resolves to the given target directory."""
    if not is_link(link):
        return False
    try:
        return link.resolve(strict=True) == target.resolve(strict=True)
    except (OSError, RuntimeError):
        return False
