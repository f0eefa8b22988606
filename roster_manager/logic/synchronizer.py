"""
Autosave state machine for the in-memory month roster.

    clean --edit--> dirty --debounce--> saving --ok--> clean
                      ^                   |
                      |                   +--error--> save_failed
                      +-- edit while saving (re-marked after the flush returns)

Only one flush is in flight at a time. Edits arriving while saving are
queued: the roster goes back to dirty once that flush completes, whatever
its outcome, so the dirty flag is never cleared by a flush that started
before the latest edit.

The debounce timer and the flush executor are injected. The GUI uses a
single-shot QTimer and a worker thread; tests use fakes.
"""
import logging
from typing import Callable, List, Literal, Optional

from roster_manager.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

SaveState = Literal["clean", "dirty", "saving", "save_failed"]

CLEAN: SaveState = "clean"
DIRTY: SaveState = "dirty"
SAVING: SaveState = "saving"
SAVE_FAILED: SaveState = "save_failed"


class InlineJob:
    def wait(self):
        pass


class InlineExecutor:
    """Runs the flush on the caller's thread; the job is finished when submit returns."""

    def submit(self, task: Callable[[], None],
               on_done: Callable[[Optional[BaseException]], None]):
        try:
            task()
        except Exception as exc:
            on_done(exc)
        else:
            on_done(None)
        return InlineJob()


class SaveSynchronizer:
    """
    snapshot() -> payload handed to save(payload); the payload is taken when
    the flush starts so later edits cannot leak into an in-flight write.
    timer: start()/stop()/isActive(); its expiry must call on_timer_elapsed().
    executor: submit(task, on_done) -> job with wait().
    """

    def __init__(self, snapshot: Callable[[], object], save: Callable[[object], None],
                 timer, executor=None):
        self._snapshot = snapshot
        self._save = save
        self._timer = timer
        self._executor = executor or InlineExecutor()
        self._state: SaveState = CLEAN
        self._revision = 0
        self._token = 0
        self._inflight = None          # (token, revision) of the running flush
        self._job = None
        self._edited_while_saving = False
        self.last_error: Optional[BaseException] = None
        self.listeners: List[Callable[[SaveState], None]] = []

    # ---------- state ----------
    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def is_dirty(self) -> bool:
        """True while there is unflushed state."""
        if self._state == SAVING:
            return self._edited_while_saving
        return self._state in (DIRTY, SAVE_FAILED)

    @property
    def has_pending_work(self) -> bool:
        return self._state != CLEAN

    def _set_state(self, state: SaveState):
        if state == self._state:
            return
        logger.debug("save state %s -> %s", self._state, state)
        self._state = state
        for fn in list(self.listeners):
            fn(state)

    # ---------- events ----------
    def notify_edit(self):
        """Call after every edit or successful generation."""
        self._revision += 1
        if self._state == SAVING:
            self._edited_while_saving = True
            return
        self._set_state(DIRTY)
        self._restart_timer()

    def on_timer_elapsed(self):
        if self._state != DIRTY:
            return
        self._start_flush()

    def flush_now(self):
        """
        Forced flush before the roster is replaced (month switch, logout).
        Blocks until nothing is pending; raises PersistenceFailure if the
        store refused the write. The state stays save_failed in that case.
        """
        self._timer.stop()
        if self._job is not None:
            self._job.wait()
        if self._state in (DIRTY, SAVE_FAILED):
            self._timer.stop()
            self._start_flush()
            if self._job is not None:
                self._job.wait()
        self._timer.stop()
        if self._state == SAVE_FAILED:
            raise PersistenceFailure(f"could not save roster: {self.last_error}") from self.last_error
        if self._state != CLEAN:
            # executor did not finish the job on wait()
            raise PersistenceFailure(f"flush did not complete (state {self._state})")

    def reset(self, snapshot: Optional[Callable[[], object]] = None):
        """Point at a freshly loaded roster. Refuses while work is pending."""
        if self.has_pending_work:
            raise PersistenceFailure(f"cannot reset while {self._state}")
        if snapshot is not None:
            self._snapshot = snapshot
        self.last_error = None

    def discard(self):
        """Explicit user override: drop unsaved changes."""
        self._timer.stop()
        if self._job is not None:
            self._job.wait()
        if self.is_dirty:
            logger.warning("discarding unsaved roster changes")
        self._edited_while_saving = False
        self._set_state(CLEAN)

    # ---------- internals ----------
    def _restart_timer(self):
        self._timer.stop()
        self._timer.start()

    def _start_flush(self):
        payload = self._snapshot()
        self._token += 1
        token, revision = self._token, self._revision
        self._inflight = (token, revision)
        self._edited_while_saving = False
        self._set_state(SAVING)
        logger.debug("flush #%d started (revision %d)", token, revision)
        job = self._executor.submit(
            lambda: self._save(payload),
            lambda error: self._finish_flush(token, error),
        )
        # an inline executor has already finished the job at this point
        if self._inflight is not None and self._inflight[0] == token:
            self._job = job

    def _finish_flush(self, token: int, error: Optional[BaseException]):
        if self._inflight is None or self._inflight[0] != token:
            return   # already handled
        _, revision = self._inflight
        self._inflight = None
        self._job = None
        edited = self._edited_while_saving or self._revision != revision
        self._edited_while_saving = False

        if error is not None:
            self.last_error = error
            logger.warning("flush #%d failed: %s", token, error)
            self._set_state(SAVE_FAILED)
        else:
            self.last_error = None
            logger.debug("flush #%d done", token)
            self._set_state(CLEAN)

        if edited:
            self._set_state(DIRTY)
            self._restart_timer()
