"""Shared fixtures and in-memory stores for miskit tests."""

import itertools
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List

import pytest

from miskit.exceptions import DocumentStoreError, FolderExistsError, RecordStoreError
from miskit.ingest.attachments import AttachmentBinder
from miskit.ingest.orchestrator import IngestionOrchestrator
from miskit.ingest.stores import (
    DocumentStore,
    RecordStore,
    RevisionEntry,
    StoredFile,
    StoredRecord,
)
from miskit.ingest.upsert import RecordUpsertEngine
from miskit.normalizer import CostRow


# =============================================================================
# IN-MEMORY STORES
# =============================================================================

class InMemoryRecordStore(RecordStore):
    """Record store that behaves like the remote one: version per write."""

    def __init__(self):
        self.records: Dict[int, StoredRecord] = {}
        self.history: Dict[int, List[RevisionEntry]] = {}
        self.calls: List[tuple] = []
        self.fail_keys = set()
        self.duplicates: Dict[str, List[StoredRecord]] = {}
        self.on_write = None
        self.find_delay = 0.0
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, 9, 0, 0)
        self._write_lock = threading.Lock()

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def _check(self, key: str) -> None:
        if key in self.fail_keys:
            raise RecordStoreError(f"service unavailable for {key}")

    def find_by_key(self, key: str) -> List[StoredRecord]:
        self.calls.append(("find_by_key", key))
        self._check(key)
        if self.find_delay:
            # Widens the window between lookup and write
            time.sleep(self.find_delay)
        if key in self.duplicates:
            return list(self.duplicates[key])
        return [
            StoredRecord(id=r.id, key=r.key, fields=dict(r.fields), revision=r.revision)
            for r in self.records.values() if r.key == key
        ]

    def insert(self, key: str, fields: Dict[str, Any]) -> StoredRecord:
        self.calls.append(("insert", key))
        self._check(key)
        with self._write_lock:
            # Same constraint as mis_records.ndc_code UNIQUE
            if any(r.key == key for r in self.records.values()):
                raise RecordStoreError(f"duplicate key value violates unique constraint: {key}")
            record = StoredRecord(id=next(self._ids), key=key, fields=dict(fields), revision=1)
            self.records[record.id] = record
            self.history[record.id] = [RevisionEntry("1.0", self._tick(), dict(fields))]
        if self.on_write:
            self.on_write(key)
        return StoredRecord(id=record.id, key=key, fields=dict(fields), revision=1)

    def update_by_id(self, record_id: Any, fields: Dict[str, Any]) -> int:
        record = self.records[record_id]
        self.calls.append(("update_by_id", record.key))
        self._check(record.key)
        with self._write_lock:
            record.fields = dict(fields)
            record.revision += 1
            self.history[record_id].append(
                RevisionEntry(f"{record.revision}.0", self._tick(), dict(fields))
            )
        if self.on_write:
            self.on_write(record.key)
        return record.revision

    def get_revision_history(self, record_id: Any) -> List[RevisionEntry]:
        self.calls.append(("get_revision_history", record_id))
        return list(self.history.get(record_id, []))

    def list_keys(self) -> List[str]:
        return sorted(r.key for r in self.records.values())

    def close(self):
        self.closed = True


class InMemoryDocumentStore(DocumentStore):
    """Folder/file store with hooks for races and failures."""

    def __init__(self):
        self.folders: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.race_on_create = False
        self.fail_add_file = False
        self.fail_list = False

    def folder_exists(self, path: str) -> bool:
        self.calls.append(("folder_exists", path))
        return path in self.folders

    def create_folder(self, path: str) -> None:
        self.calls.append(("create_folder", path))
        if self.race_on_create:
            # Another writer got there first
            self.folders.setdefault(path, {})
            self.files.setdefault(path, {})
        if path in self.folders:
            raise FolderExistsError(f"Folder '{path}' already exists")
        self.folders[path] = {}
        self.files[path] = {}

    def list_files(self, path: str) -> List[StoredFile]:
        self.calls.append(("list_files", path))
        if self.fail_list:
            raise DocumentStoreError("listing timed out")
        return [
            StoredFile(name=name, path=f"{path}/{name}",
                       attributes=dict(entry["attributes"]), size=len(entry["payload"]))
            for name, entry in sorted(self.files.get(path, {}).items())
        ]

    def add_file(self, path: str, name: str, payload: bytes, overwrite: bool) -> StoredFile:
        self.calls.append(("add_file", path, name, overwrite))
        if self.fail_add_file:
            raise DocumentStoreError("upload rejected")
        if path not in self.folders:
            raise DocumentStoreError(f"Folder '{path}' does not exist")
        folder = self.files[path]
        if name in folder and not overwrite:
            raise DocumentStoreError(f"File '{name}' already exists")
        if name in folder:
            folder[name]["payload"] = payload
            folder[name]["version"] += 1
        else:
            folder[name] = {"payload": payload, "attributes": {}, "version": 1}
        return StoredFile(name=name, path=f"{path}/{name}", size=len(payload))

    def get_folder_attributes(self, path: str) -> Dict[str, Any]:
        return dict(self.folders.get(path, {}))

    def set_folder_attribute(self, path: str, name: str, value: Any) -> None:
        self.calls.append(("set_folder_attribute", path, name, value))
        if path not in self.folders:
            raise DocumentStoreError(f"Folder '{path}' does not exist")
        self.folders[path][name] = value

    def set_file_attribute(self, path: str, filename: str, name: str, value: Any) -> None:
        self.calls.append(("set_file_attribute", path, filename, name, value))
        self.files[path][filename]["attributes"][name] = value

    def put_file(self, path: str, name: str, attributes: Dict[str, Any]) -> None:
        """Seed a file directly, bypassing the binder."""
        self.folders.setdefault(path, {})
        self.files.setdefault(path, {})[name] = {
            "payload": b"seed", "attributes": dict(attributes), "version": 1
        }

    def close(self):
        self.closed = True


# =============================================================================
# HELPERS AND FIXTURES
# =============================================================================

def make_row(key: str = "ABC123", row_index: int = 0, **overrides) -> CostRow:
    """Helper to create a CostRow with realistic defaults."""
    values = dict(
        ndc_code=key,
        plant="P1",
        dosage_form="Tablet",
        material_code="400123",
        description="Film coated tablet",
        product="Examplin",
        strength="10 mg",
        pack_size="30",
        rmc=1.25,
        pmc=0.4,
        cogs=2.1,
        remarks_on_changes="",
        row_index=row_index,
    )
    values.update(overrides)
    return CostRow(**values)


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def upsert_engine(record_store):
    return RecordUpsertEngine(record_store)


@pytest.fixture
def binder(document_store):
    return AttachmentBinder(document_store, library="MIS_Attachement")


@pytest.fixture
def orchestrator(upsert_engine, binder):
    return IngestionOrchestrator(upsert_engine, binder)
