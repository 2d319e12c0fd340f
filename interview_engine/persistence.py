"""Background snapshot writer for one interview session.

Writes are detached tasks on a single worker thread, so they apply in
submission order and never block turn generation. Failures are logged and kept
on ``last_error``; the in-memory state stays authoritative.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Mapping, Optional

from observability import log_event
from storage.interviews import InterviewStore


class SnapshotWriter:
    def __init__(self, session_id: str, store: InterviewStore) -> None:
        self.session_id = session_id
        self._store = store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"snapshot-{session_id}")
        self._pending: List[Future] = []
        self._guard = threading.Lock()
        self.last_error: Optional[str] = None
        self.writes = 0

    def _write(self, partial: Dict[str, Any]) -> bool:
        try:
            self._store.patch(self.session_id, partial)
        except Exception as exc:  # noqa: BLE001
            self.last_error = f"{type(exc).__name__}: {exc}"
            log_event("persist_failed", self.session_id, level=logging.WARNING, error=self.last_error)
            return False
        self.writes += 1
        self.last_error = None
        return True

    def submit(self, partial: Mapping[str, Any]) -> Future:
        """Queue a patch without waiting for it."""

        future = self._executor.submit(self._write, dict(partial))
        with self._guard:
            self._pending = [item for item in self._pending if not item.done()]
            self._pending.append(future)
        return future

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until queued writes finish; returns False when the timeout expired first."""

        with self._guard:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            log_event("persist_wait_timeout", self.session_id, level=logging.WARNING, outcome=len(not_done))
            return False
        return True

    def write_now(self, partial: Mapping[str, Any], timeout: Optional[float] = None) -> bool:
        """Flush queued writes, then write ``partial`` on the caller's thread."""

        self.wait_idle(timeout)
        return self._write(dict(partial))

    def close(self) -> None:
        self._executor.shutdown(wait=True)


__all__ = ["SnapshotWriter"]
