from __future__ import annotations

import os
import threading

import pytest

from jobtracker.storage.files import read_snapshot, write_snapshot
from jobtracker.sync.watcher import ChangeWatcher

from tests.factories import make_job


@pytest.fixture
def snapshot_path(tmp_path):
    path = str(tmp_path / "JobTracker.json")
    write_snapshot(path, [make_job("1")])
    return path


def _watcher(path, received, **kwargs):
    kwargs.setdefault("debounce_s", 0.5)
    return ChangeWatcher(path, read_snapshot, callback=received.append, **kwargs)


def test_change_is_delivered_after_debounce(snapshot_path):
    received = []
    watcher = _watcher(snapshot_path, received)

    write_snapshot(snapshot_path, [make_job("1"), make_job("2")])

    assert watcher.poll_once(now=0.0) is False
    assert watcher.poll_once(now=0.2) is False
    assert watcher.poll_once(now=0.6) is True
    assert [[job.id for job in snap] for snap in received] == [["1", "2"]]
    assert watcher.poll_once(now=1.5) is False


def test_burst_of_writes_collapses_into_one_notification(snapshot_path):
    received = []
    watcher = _watcher(snapshot_path, received)

    write_snapshot(snapshot_path, [make_job("1"), make_job("2")])
    watcher.poll_once(now=0.0)
    write_snapshot(snapshot_path, [make_job("1"), make_job("2"), make_job("3")])
    watcher.poll_once(now=0.3)

    assert watcher.poll_once(now=0.6) is False
    assert watcher.poll_once(now=0.9) is True
    assert len(received) == 1
    assert [job.id for job in received[0]] == ["1", "2", "3"]


def test_unchanged_file_delivers_nothing(snapshot_path):
    received = []
    watcher = _watcher(snapshot_path, received)

    for now in (0.0, 1.0, 2.0):
        assert watcher.poll_once(now=now) is False
    assert received == []


def test_unparseable_write_delivers_nothing(snapshot_path):
    received = []
    watcher = _watcher(snapshot_path, received)

    with open(snapshot_path, "w", encoding="utf-8") as f:
        f.write("{half written")
    watcher.poll_once(now=0.0)

    assert watcher.poll_once(now=1.0) is False
    assert received == []


def test_deleted_file_delivers_nothing(snapshot_path):
    received = []
    watcher = _watcher(snapshot_path, received)

    os.remove(snapshot_path)

    assert watcher.poll_once(now=0.0) is False
    assert watcher.poll_once(now=1.0) is False
    assert received == []


def test_no_location_is_tolerated():
    received = []
    watcher = _watcher(None, received)

    assert watcher.start() is False
    assert watcher.poll_once(now=1.0) is False
    watcher.stop()


def test_callback_errors_are_contained(snapshot_path):
    def boom(snapshot):
        raise RuntimeError("handler bug")

    watcher = ChangeWatcher(snapshot_path, read_snapshot, callback=boom, debounce_s=0.5)
    write_snapshot(snapshot_path, [make_job("1"), make_job("2")])
    watcher.poll_once(now=0.0)

    assert watcher.poll_once(now=1.0) is False


def test_stop_is_idempotent_and_silences_callbacks(snapshot_path):
    received = []
    watcher = _watcher(snapshot_path, received)

    watcher.stop()
    watcher.stop()
    write_snapshot(snapshot_path, [make_job("1"), make_job("2")])
    watcher.poll_once(now=0.0)

    assert watcher.poll_once(now=1.0) is False
    assert received == []


def test_background_thread_delivers_changes(snapshot_path):
    delivered = threading.Event()
    received = []

    def on_change(snapshot):
        received.append(snapshot)
        delivered.set()

    watcher = ChangeWatcher(snapshot_path, read_snapshot, debounce_s=0.05, poll_interval_s=0.01)
    assert watcher.start(on_change) is True
    try:
        write_snapshot(snapshot_path, [make_job("1"), make_job("2")])
        assert delivered.wait(timeout=5)
    finally:
        watcher.stop()

    assert not watcher.is_running
    assert [job.id for job in received[-1]] == ["1", "2"]


def test_stop_can_be_called_from_the_callback(snapshot_path):
    done = threading.Event()
    watcher = ChangeWatcher(snapshot_path, read_snapshot, debounce_s=0.05, poll_interval_s=0.01)

    def on_change(snapshot):
        watcher.stop()
        done.set()

    watcher.start(on_change)
    write_snapshot(snapshot_path, [make_job("1"), make_job("2")])

    assert done.wait(timeout=5)
    watcher.stop()


def test_failed_load_is_retried_on_next_poll(snapshot_path):
    received = []
    attempts = []

    def flaky_load(path):
        attempts.append(path)
        if len(attempts) == 1:
            return None
        return read_snapshot(path)

    watcher = ChangeWatcher(snapshot_path, flaky_load, callback=received.append, debounce_s=0.5)
    write_snapshot(snapshot_path, [make_job("1"), make_job("2")])
    watcher.poll_once(now=0.0)

    assert watcher.poll_once(now=0.6) is False
    assert watcher.poll_once(now=0.9) is True
    assert [job.id for job in received[0]] == ["1", "2"]
    assert len(attempts) == 2
