"""Tests for unitemplate.core.queue module."""

import pytest

from unitemplate.config.schemas import InstallationState
from unitemplate.core.queue import InstallQueue, prioritize_bridge

NUGET_URL = "https://github.com/GlitchEnzo/NuGetForUnity.git?path=/src/NuGetForUnity"


class TestPrioritizeBridge:
    """Tests for prioritize_bridge function."""

    def test_moves_bridge_to_front(self):
        """The bridge package goes first; the rest keep their order."""
        items = ["com.a", "com.b", "https://github.com/x/r3.git", NUGET_URL, "https://github.com/y/z.git"]

        result = prioritize_bridge(items, "NuGetForUnity")

        assert result == [NUGET_URL, "com.a", "com.b", "https://github.com/x/r3.git", "https://github.com/y/z.git"]

    def test_only_first_match_moves(self):
        result = prioritize_bridge(["a", "NuGetForUnity-1", "NuGetForUnity-2"], "NuGetForUnity")

        assert result == ["NuGetForUnity-1", "a", "NuGetForUnity-2"]

    def test_no_bridge_keeps_order(self):
        assert prioritize_bridge(["c", "a", "b"], "NuGetForUnity") == ["c", "a", "b"]

    def test_match_is_case_sensitive(self):
        assert prioritize_bridge(["a", "nugetforunity"], "NuGetForUnity") == ["a", "nugetforunity"]


class TestInstallQueue:
    """Tests for InstallQueue class."""

    def test_build_and_dequeue(self):
        queue = InstallQueue.build(["com.a", NUGET_URL], "NuGetForUnity")

        assert queue.total == 2
        assert queue.dequeue() == NUGET_URL
        assert queue.completed_count == 1
        assert queue.remaining == ["com.a"]
        assert queue.progress() == 0.5

    def test_dequeue_empty_raises(self):
        with pytest.raises(IndexError):
            InstallQueue().dequeue()

    def test_snapshot_is_suffix_of_queued_order(self):
        """Every snapshot holds exactly the not-yet-dequeued tail."""
        items = ["a", "b", "c", "d"]
        queue = InstallQueue.build(items)

        for done in range(1, len(items) + 1):
            queue.dequeue()
            snapshot = queue.snapshot(is_installing=True)
            assert snapshot.remaining_packages == items[done:]
            assert snapshot.total_packages == 4

    def test_from_state_preserves_order_and_total(self):
        state = InstallationState(remaining_packages=["c", "d"], is_installing=True, total_packages=4)

        queue = InstallQueue.from_state(state)

        assert queue.remaining == ["c", "d"]
        assert queue.total == 4
        assert queue.completed_count == 2

    def test_from_state_repairs_short_total(self):
        state = InstallationState(remaining_packages=["a", "b"], total_packages=1)

        assert InstallQueue.from_state(state).total == 2

    def test_empty_queue_progress_is_complete(self):
        queue = InstallQueue()

        assert not queue
        assert len(queue) == 0
        assert queue.progress() == 1.0

    def test_clear(self):
        queue = InstallQueue.build(["a", "b"])

        queue.clear()

        assert queue.remaining == []
