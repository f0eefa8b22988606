from concurrent.futures import ThreadPoolExecutor

from PySide6.QtCore import QObject, Signal


class FlushJob:
    def __init__(self, future, on_done):
        self.future = future
        self.on_done = on_done
        self._delivered = False

    def deliver(self):
        if self._delivered:
            return
        self._delivered = True
        self.on_done(self.future.exception())

    def wait(self):
        """Block until the write is done and report it right away."""
        self.future.exception()
        self.deliver()


class ThreadedFlushExecutor(QObject):
    """
    Runs roster writes on one worker thread (never two at once).
    Completion is reported back on the Qt thread through a queued signal.
    """
    finished = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="roster-flush")
        self.finished.connect(self._deliver)

    def submit(self, task, on_done) -> FlushJob:
        job = FlushJob(self._pool.submit(task), on_done)
        job.future.add_done_callback(lambda _f: self.finished.emit(job))
        return job

    def _deliver(self, job: FlushJob):
        job.deliver()

    def shutdown(self):
        self._pool.shutdown(wait=True)
