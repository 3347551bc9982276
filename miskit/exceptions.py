"""Exception taxonomy for MIS record ingestion and revision lookup."""

from typing import Optional


class MisError(Exception):
    """Base class for all miskit errors."""


class ParseError(MisError, ValueError):
    """Raised when input bytes cannot be decoded for the declared format.

    A parse error fails the whole batch before any remote call is made.
    """


class RowValidationError(MisError):
    """Raised when a parsed row is not eligible for upsert (e.g. blank key)."""

    def __init__(self, message: str, row_index: Optional[int] = None):
        super().__init__(message)
        self.row_index = row_index


class UpsertError(MisError):
    """Raised when the record store rejects or fails a write for one row."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Upsert failed for '{key}': {message}")
        self.key = key


class BindError(MisError):
    """Raised when the folder or file step of an attachment bind fails."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Attachment bind failed for '{key}': {message}")
        self.key = key


class ResolveError(MisError):
    """Raised when revision history cannot be resolved for a key."""


class NotFoundError(ResolveError):
    """Raised when no record exists for the requested key."""

    def __init__(self, key: str):
        super().__init__(f"No record found for key '{key}'")
        self.key = key


class SubmissionLockedError(MisError):
    """Raised when a batch is resubmitted without resetting the orchestrator."""


class StoreError(MisError):
    """Raised by store implementations when a remote call fails."""


class RecordStoreError(StoreError):
    """Keyed record store failure (unavailable, rejected, timed out)."""


class DocumentStoreError(StoreError):
    """Hierarchical document store failure."""


class FolderExistsError(DocumentStoreError):
    """Raised by create_folder when another writer created the folder first."""
