import queue
import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable for tests
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from style_guide_core import SessionState, StatusReporter  # noqa: E402


class FakeScheduler:
    """Manual clock with the ``after``/``after_cancel`` surface of a Tk root."""

    def __init__(self, honor_cancel: bool = True) -> None:
        self.now = 0
        self.honor_cancel = honor_cancel
        self.cancelled = []
        self._jobs = {}
        self._seq = 0

    def after(self, ms, func):
        self._seq += 1
        job_id = f"after#{self._seq}"
        self._jobs[job_id] = (self.now + ms, self._seq, func)
        return job_id

    def after_cancel(self, job_id):
        self.cancelled.append(job_id)
        if self.honor_cancel:
            self._jobs.pop(job_id, None)

    @property
    def pending(self):
        return len(self._jobs)

    def advance(self, ms):
        self.now += ms
        due = sorted(
            (when, seq, job_id)
            for job_id, (when, seq, _) in self._jobs.items()
            if when <= self.now
        )
        for _, _, job_id in due:
            entry = self._jobs.pop(job_id, None)
            if entry is not None:
                entry[2]()


class RecordingView:
    def __init__(self) -> None:
        self.busy_calls = []
        self.document = None
        self.hidden = 0

    @property
    def busy(self):
        return bool(self.busy_calls) and self.busy_calls[-1]

    def set_busy(self, busy):
        self.busy_calls.append(busy)

    def show_document(self, text):
        self.document = text

    def hide_document(self):
        self.hidden += 1
        self.document = None


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def session():
    return SessionState()


@pytest.fixture
def rendered():
    return []


@pytest.fixture
def status(session, scheduler, rendered):
    return StatusReporter(session, scheduler, rendered.append)


@pytest.fixture
def view():
    return RecordingView()


@pytest.fixture
def event_queue():
    return queue.Queue()


@pytest.fixture
def log_lines():
    return []
