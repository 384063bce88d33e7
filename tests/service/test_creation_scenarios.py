"""
Service-level tests for creation recording with a real watchdog observer.

Each test builds a small tree, walks it with the registrar, runs the event
loop on its own thread and checks what reaches the sink.
"""

import shutil
import threading
import time

import pytest

from domains.file_activity.recorder import CreationRecorder
from domains.file_activity.watchers.notifier import DirectoryWatcher
from domains.file_activity.watchers.tree import watch_tree

pytestmark = pytest.mark.service


class RecordingSink:
    def __init__(self):
        self.records = []

    def insert_record(self, record):
        self.records.append(record)

    def names(self):
        return [r.name for r in self.records]


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("a")
    (root / "sub" / "b.txt").write_text("b")
    return root


@pytest.fixture
def running(tree):
    """Watch ``tree`` and run the event loop until the test ends."""

    def start(follow_new_directories: bool = False):
        watcher = DirectoryWatcher()
        installed = watch_tree(watcher, str(tree))
        sink = RecordingSink()
        recorder = CreationRecorder(
            watcher, sink, follow_new_directories=follow_new_directories, poll_interval=0.05
        )
        loop = threading.Thread(target=recorder.run, args=(stop,), daemon=True)
        loop.start()
        started.append((watcher, loop))
        return watcher, sink, installed

    stop = threading.Event()
    started = []
    yield start
    stop.set()
    for watcher, loop in started:
        loop.join(5)
        watcher.close()


def test_existing_files_are_not_recorded_and_new_file_is(running, tree):
    watcher, sink, installed = running()

    assert installed == 2
    assert sorted(watcher.watched_paths) == sorted([str(tree), str(tree / "sub")])

    time.sleep(0.3)
    assert sink.records == []

    (tree / "c.txt").write_text("c")

    assert wait_for(lambda: sink.records)
    time.sleep(0.3)
    assert sink.names() == [str(tree / "c.txt")]
    assert sink.records[0].date


def test_file_in_existing_subdirectory_is_recorded(running, tree):
    _, sink, _ = running()

    (tree / "sub" / "d.txt").write_text("d")

    assert wait_for(lambda: str(tree / "sub" / "d.txt") in sink.names())


def test_directory_created_after_walk_is_not_watched(running, tree):
    watcher, sink, _ = running()

    (tree / "sub2").mkdir()
    time.sleep(0.3)
    (tree / "sub2" / "inside.txt").write_text("x")
    (tree / "marker.txt").write_text("m")

    assert wait_for(lambda: str(tree / "marker.txt") in sink.names())
    time.sleep(0.3)
    assert str(tree / "sub2") not in watcher.watched_paths
    assert sink.names() == [str(tree / "marker.txt")]


def test_directory_created_after_walk_is_watched_when_following(running, tree):
    watcher, sink, _ = running(follow_new_directories=True)

    (tree / "sub2").mkdir()
    assert wait_for(lambda: str(tree / "sub2") in watcher.watched_paths)
    (tree / "sub2" / "inside.txt").write_text("x")

    assert wait_for(lambda: str(tree / "sub2" / "inside.txt") in sink.names())
    assert str(tree / "sub2") not in sink.names()


def test_recreated_directory_is_watched_again_when_following(running, tree):
    watcher, sink, _ = running(follow_new_directories=True)
    sub = tree / "sub"

    shutil.rmtree(sub)
    assert wait_for(lambda: not watcher.is_watching(str(sub)))

    sub.mkdir()
    assert wait_for(lambda: watcher.is_watching(str(sub)))
    (sub / "x.txt").write_text("x")

    assert wait_for(lambda: str(sub / "x.txt") in sink.names())
