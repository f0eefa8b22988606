import pytest

from roster_manager.models.physician import Physician
from roster_manager.models.roster import MonthConfig

# August 2025: the 1st is a Friday, the 2nd/3rd a weekend
YEAR, MONTH = 2025, 8
FRIDAY = "2025-08-01"
SATURDAY = "2025-08-02"
MONDAY = "2025-08-04"


def make_physicians(n, **overrides):
    return [Physician(f"p{i}", f"Dr {chr(ord('A') + i)}", **overrides) for i in range(n)]


@pytest.fixture
def august():
    return MonthConfig(YEAR, MONTH, [])


@pytest.fixture
def two():
    return make_physicians(2)


@pytest.fixture
def four():
    return make_physicians(4)


class FakeTimer:
    """start/stop/isActive like a single-shot QTimer; fire() simulates expiry."""

    def __init__(self):
        self.active = False
        self.starts = 0
        self.callback = None

    def start(self):
        self.active = True
        self.starts += 1

    def stop(self):
        self.active = False

    def isActive(self):
        return self.active

    def fire(self):
        if self.active:
            self.active = False
            self.callback()


class DeferredJob:
    def __init__(self, task, on_done):
        self.task = task
        self.on_done = on_done
        self.done = False

    def run(self):
        if self.done:
            return
        self.done = True
        try:
            self.task()
        except Exception as exc:
            self.on_done(exc)
        else:
            self.on_done(None)

    def wait(self):
        self.run()


class DeferredExecutor:
    """Holds submitted flushes until the test completes them."""

    def __init__(self):
        self.jobs = []

    def submit(self, task, on_done):
        job = DeferredJob(task, on_done)
        self.jobs.append(job)
        return job


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def deferred():
    return DeferredExecutor()
