# SPDX-License-Identifier: MIT

import threading


class NoteLocks:
    """One lock per note identity, so two syncs of the same note never interleave."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def for_note(self, note_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(note_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[note_id] = lock
            return lock
