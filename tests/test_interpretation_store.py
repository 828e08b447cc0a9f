"""
Tests for document identity and the JSON interpretation store.
"""

import json
import os
from datetime import datetime, timezone

import pytest

from paperlens.storage import DocumentIdentity, InterpretationStore


@pytest.fixture
def identity(document_file):
    return DocumentIdentity.from_path(document_file)


class TestDocumentIdentity:
    def test_captures_size_and_mtime(self, document_file, identity):
        stat = os.stat(document_file)
        assert identity.size == stat.st_size
        assert identity.mtime_ns == stat.st_mtime_ns
        assert identity.path == str(document_file.resolve())

    def test_key_is_stable(self, document_file, identity):
        assert DocumentIdentity.from_path(document_file).key == identity.key
        assert len(identity.key) == 32

    def test_key_changes_with_mtime(self, document_file, identity):
        stat = os.stat(document_file)
        os.utime(document_file, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
        assert DocumentIdentity.from_path(document_file).key != identity.key

    def test_key_changes_with_size(self, document_file, identity):
        document_file.write_text("a different length of text", encoding="utf-8")
        assert DocumentIdentity.from_path(document_file).key != identity.key

    def test_missing_file_falls_back_to_path(self, tmp_path):
        identity = DocumentIdentity.from_path(tmp_path / "gone.pdf")
        assert identity.size is None and identity.mtime_ns is None
        assert identity.key == DocumentIdentity.from_path(tmp_path / "gone.pdf").key


class TestInterpretationStore:
    def test_round_trip(self, store, identity):
        timestamp = datetime(2026, 3, 2, 10, 15, tzinfo=timezone.utc)

        store.put(identity, "## Overview\n中文内容", timestamp)
        saved = store.get(identity)

        assert saved.content == "## Overview\n中文内容"
        assert saved.timestamp == timestamp
        assert saved.file_path == identity.path
        assert saved.key == identity.key

    def test_missing_record_is_none(self, store, identity):
        assert store.get(identity) is None

    def test_last_write_wins(self, store, identity):
        store.put(identity, "first", datetime(2026, 1, 1, tzinfo=timezone.utc))
        store.put(identity, "second", datetime(2026, 1, 2, tzinfo=timezone.utc))

        assert store.get(identity).content == "second"
        assert [p.suffix for p in store.directory.iterdir()] == [".json"]

    def test_record_format(self, store, identity):
        path = store.put(identity, "text", datetime(2026, 1, 1, tzinfo=timezone.utc))

        with open(path, encoding="utf-8") as f:
            record = json.load(f)

        assert record == {
            "file_path": identity.path,
            "timestamp": "2026-01-01T00:00:00+00:00",
            "content": "text",
            "key": identity.key,
        }

    def test_corrupted_record_is_ignored(self, store, identity):
        store.directory.mkdir(parents=True, exist_ok=True)
        (store.directory / f"{identity.key}.json").write_text("{not json", encoding="utf-8")
        assert store.get(identity) is None

    def test_record_missing_fields_is_ignored(self, store, identity):
        store.directory.mkdir(parents=True, exist_ok=True)
        (store.directory / f"{identity.key}.json").write_text('{"content": "x"}', encoding="utf-8")
        assert store.get(identity) is None
