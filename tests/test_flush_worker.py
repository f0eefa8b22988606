import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from PySide6.QtCore import QCoreApplication

from roster_manager.gui.flush_worker import FlushJob, ThreadedFlushExecutor
from roster_manager.logic.synchronizer import CLEAN, SAVING, SaveSynchronizer

from conftest import FakeTimer


@pytest.fixture(scope="module")
def qapp():
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def executor(qapp):
    ex = ThreadedFlushExecutor()
    yield ex
    ex.shutdown()


def _drain(qapp, until, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not until() and time.monotonic() < deadline:
        qapp.processEvents()
        time.sleep(0.01)


def test_wait_then_deliver_reports_once():
    calls = []
    with ThreadPoolExecutor(max_workers=1) as pool:
        job = FlushJob(pool.submit(lambda: None), calls.append)
        job.wait()
        job.deliver()
    assert calls == [None]


def test_task_error_is_passed_through():
    def save():
        raise OSError("disk full")

    calls = []
    with ThreadPoolExecutor(max_workers=1) as pool:
        job = FlushJob(pool.submit(save), calls.append)
        job.wait()
    assert len(calls) == 1
    assert isinstance(calls[0], OSError)


def test_completion_arrives_on_the_event_loop(qapp, executor):
    calls = []
    job = executor.submit(lambda: None, calls.append)
    job.future.result(timeout=5)
    _drain(qapp, lambda: calls)
    assert calls == [None]

    # a late wait() after the signal has been handled reports nothing new
    job.wait()
    assert calls == [None]


def test_forced_flush_during_background_save_writes_latest(qapp, executor):
    release = threading.Event()
    model = {"value": 0}
    saved = []

    def save(payload):
        release.wait(5)
        saved.append(payload)

    timer = FakeTimer()
    sync = SaveSynchronizer(lambda: dict(model), save, timer, executor)
    timer.callback = sync.on_timer_elapsed

    model["value"] = 1
    sync.notify_edit()
    timer.fire()
    assert sync.state == SAVING

    model["value"] = 2
    sync.notify_edit()
    release.set()
    sync.flush_now()

    assert saved == [{"value": 1}, {"value": 2}]
    assert sync.state == CLEAN

    # queued completions still in flight must not disturb the clean state
    qapp.processEvents()
    assert sync.state == CLEAN
    assert not timer.isActive()
