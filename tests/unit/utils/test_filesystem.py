"""Tests for unitemplate.utils.filesystem module."""

from pathlib import Path

from unitemplate.utils.filesystem import (
    copy_file,
    ensure_directory,
    is_link,
    points_to,
    remove_path,
)


class TestEnsureDirectory:
    """Tests for ensure_directory function."""

    def test_creates_parents(self, temp_dir: Path):
        path = temp_dir / "a" / "b" / "c"

        assert ensure_directory(path) is True
        assert path.is_dir()

    def test_existing_directory(self, temp_dir: Path):
        assert ensure_directory(temp_dir) is False


class TestCopyFile:
    """Tests for copy_file function."""

    def test_copies_into_new_directory(self, temp_dir: Path):
        src = temp_dir / "src.txt"
        src.write_text("content")
        dest = temp_dir / "out" / "dest.txt"

        assert copy_file(src, dest) is True
        assert dest.read_text() == "content"

    def test_no_overwrite(self, temp_dir: Path):
        src = temp_dir / "src.txt"
        src.write_text("new")
        dest = temp_dir / "dest.txt"
        dest.write_text("old")

        assert copy_file(src, dest, overwrite=False) is False
        assert dest.read_text() == "old"


class TestRemovePath:
    """Tests for remove_path function."""

    def test_removes_tree(self, temp_dir: Path):
        tree = temp_dir / "tree"
        (tree / "nested").mkdir(parents=True)
        (tree / "nested" / "file.txt").write_text("x")
        (tree / "nested" / "file.txt").chmod(0o444)

        assert remove_path(tree) is True
        assert not tree.exists()

    def test_link_target_is_kept(self, temp_dir: Path):
        """Removing a link leaves the directory it points at."""
        target = temp_dir / "target"
        target.mkdir()
        (target / "keep.txt").write_text("x")
        link = temp_dir / "link"
        link.symlink_to(target, target_is_directory=True)

        assert remove_path(link) is True
        assert not link.exists()
        assert (target / "keep.txt").exists()

    def test_missing_path(self, temp_dir: Path):
        assert remove_path(temp_dir / "missing") is False


class TestLinks:
    """Tests for is_link and points_to."""

    def test_points_to(self, temp_dir: Path):
        target = temp_dir / "target"
        target.mkdir()
        link = temp_dir / "link"
        link.symlink_to("target", target_is_directory=True)

        assert is_link(link)
        assert points_to(link, target)
        assert not points_to(link, temp_dir)

    def test_real_directory_is_not_a_link(self, temp_dir: Path):
        assert not is_link(temp_dir)
        assert not points_to(temp_dir, temp_dir)

    def test_dangling_link(self, temp_dir: Path):
        link = temp_dir / "dangling"
        link.symlink_to(temp_dir / "gone", target_is_directory=True)

        assert is_link(link)
        assert not points_to(link, temp_dir / "gone")
