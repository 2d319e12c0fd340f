import threading

from interview_engine.persistence import SnapshotWriter
from storage.interviews import SqliteInterviewStore


class SlowStore:
    def __init__(self):
        self.release = threading.Event()
        self.patches = []

    def get(self, interview_id):
        return {}

    def patch(self, interview_id, partial):
        self.release.wait(5)
        self.patches.append(dict(partial))
        return dict(partial)


class FailingStore:
    def get(self, interview_id):
        return {}

    def patch(self, interview_id, partial):
        raise OSError("read-only database")


def test_writes_apply_in_order(interview_record):
    store = SqliteInterviewStore()
    store.create(interview_record)
    writer = SnapshotWriter("room-1", store)
    try:
        for step in range(5):
            writer.submit({"engineStatus": f"step-{step}"})
        assert writer.wait_idle(5) is True
        assert store.get("room-1")["engineStatus"] == "step-4"
        assert writer.writes == 5
        assert writer.last_error is None
    finally:
        writer.close()


def test_wait_idle_times_out_while_write_pending():
    store = SlowStore()
    writer = SnapshotWriter("room-1", store)
    try:
        writer.submit({"n": 1})
        assert writer.wait_idle(0.05) is False
        store.release.set()
        assert writer.wait_idle(5) is True
        assert store.patches == [{"n": 1}]
    finally:
        writer.close()


def test_failures_are_kept_not_raised():
    writer = SnapshotWriter("room-1", FailingStore())
    try:
        writer.submit({"n": 1}).result(5)
        assert writer.last_error == "OSError: read-only database"
        assert writer.write_now({"n": 2}) is False
        assert writer.writes == 0
    finally:
        writer.close()
