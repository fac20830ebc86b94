"""
Local Storage Implementations

JsonFileStorage keeps the state document in a single UTF-8 JSON file on the
device. Writes go to a temporary file in the same directory which then
replaces the target with os.replace, so a crash mid-write never leaves a
half-written document behind.

InMemoryStorage and InMemoryAuditStorage back the tests and serve as a
fallback when the data directory cannot be written.
"""

import os
import tempfile
from collections import deque
from pathlib import Path
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from khata.models.audit import AuditEvent
from khata.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
    StorageReadError,
    StorageWriteError,
)


class JsonFileStorage(StateStorageInterface):
    """State slot backed by one JSON file."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def description(self) -> str:
        return str(self._path)

    def exists(self) -> bool:
        return self._path.is_file()

    def read(self) -> Optional[str]:
        if not self.exists():
            return None
        try:
            return self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Cannot read {self._path}: {e}") from e

    def write(self, text: str) -> None:
        try:
            self._write_atomic(text)
        except OSError as e:
            raise StorageWriteError(f"Cannot write {self._path}: {e}") from e

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        reraise=True,
    )
    def _write_atomic(self, text: str) -> None:
        """Write to a sibling temp file, then swap it into place."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class InMemoryStorage(StateStorageInterface):
    """State slot held in memory. Counts writes so tests can assert on them."""

    def __init__(self, initial: Optional[str] = None):
        self._text = initial
        self.write_count = 0

    def exists(self) -> bool:
        return self._text is not None

    def read(self) -> Optional[str]:
        return self._text

    def write(self, text: str) -> None:
        self._text = text
        self.write_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """Bounded append-only audit sink."""

    def __init__(self, max_events: int = 500):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
