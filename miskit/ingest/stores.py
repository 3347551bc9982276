"""
Store interfaces consumed by the ingestion and history components.

The keyed record store and the hierarchical document store are external
collaborators. Implement these interfaces over your actual backend; the
package ships Postgres-backed implementations in supabase_client.py.

Key principles:
- Exactly one record per key (the store enforces uniqueness)
- Every record write appends an immutable revision entry
- Records are replaced in full on update, never merged
- Folders are created lazily and never deleted here
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List


@dataclass
class StoredRecord:
    """A persisted record as returned by find_by_key."""
    id: Any
    key: str
    fields: Dict[str, Any]
    revision: int  # Store-assigned revision marker, advanced on every write


@dataclass
class RevisionEntry:
    """
    One historical snapshot of a record.

    Labels have the form "<major>.<minor>"; only the major part is used to
    correlate a revision with an attachment.
    """
    label: str
    created_at: Optional[datetime] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def major(self) -> Optional[int]:
        head = str(self.label).strip().split(".", 1)[0]
        try:
            return int(head)
        except ValueError:
            return None


@dataclass
class StoredFile:
    """A file inside an attachment folder."""
    name: str
    path: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    size: Optional[int] = None


class RecordStore:
    """
    Abstract keyed record store interface.

    Implementations raise RecordStoreError for any remote failure, including
    timeouts, so callers can treat them as row-level failures.
    """

    def find_by_key(self, key: str) -> List[StoredRecord]:
        """
        Find records whose key matches exactly.

        Args:
            key: Business key (NDC code)

        Returns:
            Matching records; at most one is expected
        """
        raise NotImplementedError

    def insert(self, key: str, fields: Dict[str, Any]) -> StoredRecord:
        """
        Insert a new record.

        Args:
            key: Business key
            fields: Full field map

        Returns:
            The stored record, carrying its id and first revision marker
        """
        raise NotImplementedError

    def update_by_id(self, record_id: Any, fields: Dict[str, Any]) -> int:
        """
        Replace every field of an existing record.

        Args:
            record_id: Server-assigned record id
            fields: Full field map

        Returns:
            The revision marker assigned to this write
        """
        raise NotImplementedError

    def get_revision_history(self, record_id: Any) -> List[RevisionEntry]:
        """
        Get the full revision history of a record, oldest first.

        Args:
            record_id: Server-assigned record id

        Returns:
            Revision entries in chronological order
        """
        raise NotImplementedError

    def list_keys(self) -> List[str]:
        """Get every stored key, sorted."""
        raise NotImplementedError


class DocumentStore:
    """
    Abstract hierarchical document store interface.

    Implementations raise DocumentStoreError for remote failures and
    FolderExistsError when create_folder loses a creation race.
    """

    def folder_exists(self, path: str) -> bool:
        """Check whether a folder exists. Never raises for a missing folder."""
        raise NotImplementedError

    def create_folder(self, path: str) -> None:
        """Create a folder. Raises FolderExistsError if it already exists."""
        raise NotImplementedError

    def list_files(self, path: str) -> List[StoredFile]:
        """
        List the files of a folder.

        Returns an empty list when the folder does not exist.
        """
        raise NotImplementedError

    def add_file(self, path: str, name: str, payload: bytes, overwrite: bool) -> StoredFile:
        """
        Write a file into a folder.

        Args:
            path: Folder path
            name: File name
            payload: File content
            overwrite: Replace an existing file of the same name; when False an
                existing file is an error

        Returns:
            The written file
        """
        raise NotImplementedError

    def get_folder_attributes(self, path: str) -> Dict[str, Any]:
        """Get a folder's attributes (empty when the folder is absent)."""
        raise NotImplementedError

    def set_folder_attribute(self, path: str, name: str, value: Any) -> None:
        """Set one attribute on a folder."""
        raise NotImplementedError

    def set_file_attribute(self, path: str, filename: str, name: str, value: Any) -> None:
        """Set one attribute on a file inside a folder."""
        raise NotImplementedError
