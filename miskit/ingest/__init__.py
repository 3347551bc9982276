"""Record upsert, attachment binding and submission orchestration."""

from .stores import (
    RecordStore,
    DocumentStore,
    StoredRecord,
    RevisionEntry,
    StoredFile,
)
from .upsert import RecordUpsertEngine, UpsertResult, UpsertAction
from .attachments import AttachmentBinder, Attachment, BindResult
from .orchestrator import (
    IngestionOrchestrator,
    SubmissionReport,
    RowOutcome,
    RowStatus,
)
from .supabase_client import SupabaseRecordStore, SupabaseDocumentStore

__all__ = [
    "RecordStore",
    "DocumentStore",
    "StoredRecord",
    "RevisionEntry",
    "StoredFile",
    "RecordUpsertEngine",
    "UpsertResult",
    "UpsertAction",
    "AttachmentBinder",
    "Attachment",
    "BindResult",
    "IngestionOrchestrator",
    "SubmissionReport",
    "RowOutcome",
    "RowStatus",
    "SupabaseRecordStore",
    "SupabaseDocumentStore",
]
