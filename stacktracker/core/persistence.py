"""
Session persistence: the store interface used by the core and two stores.

Changes are staged with insert()/delete() and become durable on save().
Child observations live inside their session record, so deleting a
record removes its stack entries, hand notes and blind levels with it.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError

from ..models.session import SessionKind, SessionRecord, SessionStatus
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class PersistencePort(Protocol):
    """What the session core needs from a store."""

    def insert(self, record: SessionRecord) -> None:
        ...

    def delete(self, record: SessionRecord) -> None:
        ...

    def save(self) -> None:
        ...


class InMemorySessionStore:
    """Store that keeps records in a dict. Used for tests and embedding."""

    def __init__(self):
        self.records: Dict[str, SessionRecord] = {}
        self.save_count = 0

    def insert(self, record: SessionRecord) -> None:
        self.records[record.id] = record

    def delete(self, record: SessionRecord) -> None:
        self.records.pop(record.id, None)

    def save(self) -> None:
        self.save_count += 1

    def get(self, record_id: str) -> Optional[SessionRecord]:
        return self.records.get(record_id)

    def all(self) -> List[SessionRecord]:
        return list(self.records.values())


class JsonSessionStore:
    """Store that writes one JSON file per session record."""

    def __init__(self, sessions_dir: Path):
        self.sessions_dir = Path(sessions_dir)
        self._records: Dict[str, SessionRecord] = {}
        self._pending_deletes: Dict[str, SessionRecord] = {}
        self._written: Dict[str, str] = {}

    def insert(self, record: SessionRecord) -> None:
        self._records[record.id] = record
        self._pending_deletes.pop(record.id, None)

    def delete(self, record: SessionRecord) -> None:
        self._records.pop(record.id, None)
        self._pending_deletes[record.id] = record

    def save(self) -> None:
        """Write changed records and remove deleted ones."""
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)

            for record_id, record in list(self._pending_deletes.items()):
                self._path_for(record).unlink(missing_ok=True)
                self._written.pop(record_id, None)
                del self._pending_deletes[record_id]
                logger.debug("Deleted session file for %s", record_id)

            for record_id, record in self._records.items():
                data = record.model_dump_json(indent=2)
                if self._written.get(record_id) == data:
                    continue
                self._path_for(record).write_text(data, encoding='utf-8')
                self._written[record_id] = data
                logger.debug("Session saved: %s", self._path_for(record))

        except OSError as e:
            raise PersistenceError(f"Could not save sessions to {self.sessions_dir}: {e}") from e

    def load_session(self, file_path: Path) -> Optional[SessionRecord]:
        """Load a session from file, or None if it cannot be read."""
        try:
            return SessionRecord.model_validate_json(Path(file_path).read_text(encoding='utf-8'))
        except (OSError, ValidationError) as e:
            logger.warning("Error loading session %s: %s", file_path, e)
            return None

    def load_all(self) -> List[SessionRecord]:
        """Load every session file in the sessions directory."""
        if not self.sessions_dir.exists():
            return []

        loaded = []
        for file_path in sorted(self.sessions_dir.glob("*.json")):
            record = self.load_session(file_path)
            if record is None:
                continue
            self._records[record.id] = record
            self._written[record.id] = record.model_dump_json(indent=2)
            loaded.append(record)

        logger.info("Loaded %d sessions from %s", len(loaded), self.sessions_dir)
        return loaded

    def get(self, record_id: str) -> Optional[SessionRecord]:
        return self._records.get(record_id)

    def list_records(self, kind: Optional[SessionKind] = None,
                     status: Optional[SessionStatus] = None) -> List[SessionRecord]:
        """Records with optional filtering, newest first."""
        records = [
            r for r in self._records.values()
            if (kind is None or r.kind == kind) and (status is None or r.status == status)
        ]
        records.sort(key=lambda r: r.start_time or r.created_at, reverse=True)
        return records

    def in_progress(self) -> List[SessionRecord]:
        """Records left active or paused, e.g. after a crash."""
        return [
            r for r in self._records.values()
            if r.status in (SessionStatus.ACTIVE, SessionStatus.PAUSED)
        ]

    def _path_for(self, record: SessionRecord) -> Path:
        return self.sessions_dir / record.session_filename()
