"""Directory of which repository last supplied each gem.

Written after every successful aggregate query and read by the download
redirect path. Entries are never removed or expired.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Union

from .errors import NotFoundError
from .models import PackageIdentity, PackageRecord, Repository


class _ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers wait for active readers to drain and block new readers while
    waiting, so a steady stream of lookups cannot starve an update.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class GemDirectory:
    """Concurrency-safe map from gem identity to source repository."""

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._entries: Dict[str, Repository] = {}

    def update(self, records: Iterable[PackageRecord]) -> None:
        """Point each record's identity at the repository that supplied it.

        Existing entries for the same identity are overwritten.
        """
        pending = [(str(record.identity), record.repository) for record in records]
        if not pending:
            return
        with self._lock.write():
            for key, repository in pending:
                self._entries[key] = repository

    def lookup(self, identity: Union[PackageIdentity, str]) -> Repository:
        """Return the repository holding identity.

        Args:
            identity: A PackageIdentity or its canonical string form,
                e.g. ``"nokogiri-1.15.4-x86_64-linux"``.

        Raises:
            NotFoundError: If identity was never recorded.
        """
        key = str(identity)
        with self._lock.read():
            repository = self._entries.get(key)
        if repository is None:
            raise NotFoundError(key)
        return repository

    def __contains__(self, identity: object) -> bool:
        with self._lock.read():
            return str(identity) in self._entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get directory statistics."""
        with self._lock.read():
            per_repository: Dict[str, int] = {}
            for repository in self._entries.values():
                per_repository[str(repository)] = per_repository.get(str(repository), 0) + 1
            return {
                "total_entries": len(self._entries),
                "entries_per_repository": per_repository,
            }
