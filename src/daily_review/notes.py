"""Manual log entries ("notes") stored as a JSON file."""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ValidationError

from daily_review.config import default_config_dir
from daily_review.errors import NoteStoreError

logger = logging.getLogger(__name__)

NOTE_KINDS = ("task", "note", "problem")

NoteKind = Literal["task", "note", "problem"]


class LogEntry(BaseModel):
    """One manual log entry."""

    id: int
    content: str
    kind: NoteKind = "note"
    timestamp: datetime

    @property
    def day(self) -> date:
        return self.timestamp.astimezone().date()


class NotesFile(BaseModel):
    """On-disk layout of the notes file.

    ``last_id`` only grows, so ids of deleted entries are never handed out again.
    """

    last_id: int = 0
    entries: list[LogEntry] = []


class NoteStore:
    """Append, list and delete manual log entries."""

    def __init__(self, notes_file: Path | None = None) -> None:
        self.notes_file = notes_file or default_config_dir() / "notes.json"

    def _read(self) -> NotesFile:
        """Read the notes file.

        Raises:
            NoteStoreError: If the file exists but cannot be read or parsed
        """
        if not self.notes_file.exists():
            return NotesFile()
        try:
            return NotesFile.model_validate_json(self.notes_file.read_bytes())
        except (OSError, ValidationError) as e:
            raise NoteStoreError(f"cannot read notes file {self.notes_file}: {e}") from e

    def _save(self, notes: NotesFile) -> None:
        self.notes_file.parent.mkdir(parents=True, exist_ok=True)
        self.notes_file.write_text(
            json.dumps(notes.model_dump(mode="json"), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def add(self, content: str, kind: str = "note") -> LogEntry:
        """Append a new entry timestamped now.

        Raises:
            ValueError: If content is empty or kind is unknown
            NoteStoreError: If the existing notes file is unreadable (it is left untouched)
        """
        if not content.strip():
            raise ValueError("note content must not be empty")
        if kind not in NOTE_KINDS:
            raise ValueError(f"Unknown note kind '{kind}'. Use one of: {', '.join(NOTE_KINDS)}")

        notes = self._read()
        next_id = max([notes.last_id, *(e.id for e in notes.entries)]) + 1
        entry = LogEntry(
            id=next_id,
            content=content.strip(),
            kind=kind,
            timestamp=datetime.now().astimezone(),
        )
        self._save(NotesFile(last_id=next_id, entries=[*notes.entries, entry]))
        logger.debug(f"Added note {entry.id}")
        return entry

    def list_for_day(self, day: date | None = None) -> list[LogEntry]:
        """Entries written on the local calendar ``day`` (default today), oldest first.

        An unreadable notes file is reported and read as empty.
        """
        day = day or datetime.now().astimezone().date()
        try:
            entries = self._read().entries
        except NoteStoreError as e:
            logger.warning(str(e))
            return []
        return sorted((e for e in entries if e.day == day), key=lambda e: e.id)

    def delete(self, entry_id: int) -> bool:
        """Delete an entry; returns False if no entry has that id.

        Raises:
            NoteStoreError: If the existing notes file is unreadable (it is left untouched)
        """
        notes = self._read()
        remaining = [e for e in notes.entries if e.id != entry_id]
        if len(remaining) == len(notes.entries):
            return False
        self._save(notes.model_copy(update={"entries": remaining}))
        logger.debug(f"Deleted note {entry_id}")
        return True
