"""Scan progress tracker tests."""

from __future__ import annotations

import json

from reporg.scan import ScanProgress, ScanProgressTracker, format_progress_event


def test_lifecycle_notifies_listeners_with_copies() -> None:
    tracker = ScanProgressTracker()
    seen: list[ScanProgress] = []
    tracker.subscribe(seen.append)

    tracker.start(2)
    tracker.update(current_directory="/code")
    tracker.update(current_directory_index=1, repos_found=3)
    tracker.complete(3)

    assert [event.status for event in seen] == ["scanning", "scanning", "scanning", "completed"]
    assert seen[1].current_directory == "/code"
    assert seen[2].current_directory_index == 1
    assert seen[-1].repos_found == 3
    assert seen[-1].completed_at is not None
    assert seen[0] is not seen[1]
    assert seen[0].current_directory == ""


def test_failing_listener_does_not_block_others() -> None:
    tracker = ScanProgressTracker()
    received: list[str] = []

    def _broken(progress: ScanProgress) -> None:
        raise RuntimeError("listener exploded")

    tracker.subscribe(_broken)
    tracker.subscribe(lambda progress: received.append(progress.status))

    tracker.start(1)
    tracker.fail("disk vanished")

    assert received == ["scanning", "error"]
    assert tracker.snapshot().error == "disk vanished"


def test_unsubscribe_stops_delivery() -> None:
    tracker = ScanProgressTracker()
    received: list[ScanProgress] = []
    unsubscribe = tracker.subscribe(received.append)

    tracker.start(1)
    unsubscribe()
    tracker.complete(0)
    tracker.unsubscribe(received.append)

    assert len(received) == 1


def test_cancel_only_applies_to_running_scans() -> None:
    tracker = ScanProgressTracker()

    assert tracker.cancel() is False
    assert tracker.is_cancelled is False

    tracker.start(1)
    assert tracker.cancel() is True
    assert tracker.is_cancelled is True
    assert tracker.is_scanning is False
    assert tracker.snapshot().status == "cancelled"

    tracker.start(1)
    assert tracker.is_cancelled is False


def test_snapshot_is_detached() -> None:
    tracker = ScanProgressTracker()
    tracker.start(4)

    snapshot = tracker.snapshot()
    snapshot.total_directories = 99

    assert tracker.snapshot().total_directories == 4


def test_reset_returns_to_idle() -> None:
    tracker = ScanProgressTracker()
    tracker.start(1)
    tracker.reset()

    assert tracker.snapshot() == ScanProgress()


def test_format_progress_event() -> None:
    frame = format_progress_event(ScanProgress(status="scanning", repos_found=2))

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    payload = json.loads(frame[len("data: ") :])
    assert payload["status"] == "scanning"
    assert payload["repos_found"] == 2
