"""
Interpretation Store
Saves finished interpretations as JSON files keyed by document identity.

Each record is one file, <key>.json, in INTERPRETATIONS_DIR:

    {
        "file_path": "/papers/attention.pdf",
        "timestamp": "2026-03-02T10:15:00+00:00",
        "content": "## Overview ...",
        "key": "5c0f..."
    }

Writes go to a temporary file first and replace the record atomically, so
a reader never sees a half-written record. The last write for a key wins.
"""

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from paperlens.config import INTERPRETATIONS_DIR
from paperlens.logging_config import debug_log, warning

from .document_identity import DocumentIdentity


@dataclass(frozen=True)
class StoredInterpretation:
    """A saved interpretation record."""

    content: str
    timestamp: datetime
    file_path: str
    key: str


class InterpretationStore:
    """
    JSON-file store for interpretation results.

    Example:
        store = InterpretationStore()
        store.put(identity, "## Overview ...", datetime.now(timezone.utc))
        saved = store.get(identity)
    """

    def __init__(self, directory: Path | None = None):
        """
        Args:
            directory: Folder holding the records (defaults to INTERPRETATIONS_DIR)
        """
        self.directory = Path(directory) if directory else INTERPRETATIONS_DIR

    def _record_path(self, identity: DocumentIdentity) -> Path:
        return self.directory / f"{identity.key}.json"

    def get(self, identity: DocumentIdentity) -> StoredInterpretation | None:
        """
        Load the record for identity.

        Returns:
            StoredInterpretation, or None when there is no usable record
        """
        record_path = self._record_path(identity)

        try:
            with open(record_path, encoding='utf-8') as f:
                record = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            warning(f"[STORE] Ignoring unreadable record {record_path.name}: {e}")
            return None

        try:
            stored = StoredInterpretation(
                content=record['content'],
                timestamp=datetime.fromisoformat(record['timestamp']),
                file_path=record.get('file_path', identity.path),
                key=identity.key,
            )
        except (KeyError, TypeError, ValueError) as e:
            warning(f"[STORE] Ignoring malformed record {record_path.name}: {e}")
            return None

        if not stored.content:
            return None

        debug_log(f"[STORE] Found saved interpretation for {stored.file_path} "
                  f"from {stored.timestamp.isoformat()}")
        return stored

    def put(self, identity: DocumentIdentity, content: str, timestamp: datetime) -> Path:
        """
        Save (or overwrite) the record for identity.

        Returns:
            Path of the written record

        Raises:
            OSError: If the record could not be written
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        record_path = self._record_path(identity)
        record = {
            'file_path': identity.path,
            'timestamp': timestamp.isoformat(),
            'content': content,
            'key': identity.key,
        }

        fd, temp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{identity.key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(record, f, ensure_ascii=False, indent=2)
            os.replace(temp_name, record_path)
        except BaseException:
            try:
                os.unlink(temp_name)
            except OSError:
                pass
            raise

        debug_log(f"[STORE] Saved interpretation for {identity.path} ({len(content)} chars)")
        return record_path
