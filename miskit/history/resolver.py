"""
Revision history resolution for a single key.

Pairs every stored revision of a record with the attachment whose revision
tag equals the revision's major number:

    history:  1.0        2.0        3.0
    files:               doc.pdf(2)
    result:   (1.0, -)   (2.0, doc.pdf)   (3.0, -)

The correlation is soft. Nothing at write time prevents two files from
carrying the same tag; when that happens the first file by name wins and a
warning is logged.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from ..exceptions import NotFoundError, ResolveError, StoreError
from ..ingest.attachments import folder_path, is_folder_name, parse_tag
from ..ingest.stores import DocumentStore, RecordStore, StoredFile
from ..schema import REVISION_TAG_ATTRIBUTE

logger = logging.getLogger(__name__)


@dataclass
class AttachmentRef:
    name: str
    path: str
    tag: int


@dataclass
class ResolvedRevision:
    label: str
    created_at: Optional[datetime]
    attachment: Optional[AttachmentRef]


class RevisionResolver:
    """Builds the revision -> attachment mapping for a key."""

    def __init__(
        self,
        records: RecordStore,
        documents: DocumentStore,
        library: str = "MIS_Attachement",
        tag_attribute: str = REVISION_TAG_ATTRIBUTE
    ):
        self.records = records
        self.documents = documents
        self.library = library
        self.tag_attribute = tag_attribute

    def _file_tag(self, stored: StoredFile, folder_tag: Optional[int]) -> Optional[int]:
        if self.tag_attribute in stored.attributes:
            return parse_tag(stored.attributes[self.tag_attribute])
        return folder_tag

    def _files_by_tag(self, key: str) -> Dict[int, List[AttachmentRef]]:
        path = folder_path(self.library, key)
        files = self.documents.list_files(path)
        if not files:
            return {}

        folder_tag = parse_tag(
            self.documents.get_folder_attributes(path).get(self.tag_attribute)
        )

        by_tag: Dict[int, List[AttachmentRef]] = {}
        for stored in sorted(files, key=lambda f: f.name):
            tag = self._file_tag(stored, folder_tag)
            if tag is None:
                logger.debug(f"File '{stored.name}' in '{path}' has no usable revision tag")
                continue
            by_tag.setdefault(tag, []).append(
                AttachmentRef(name=stored.name, path=stored.path, tag=tag)
            )
        return by_tag

    def resolve(self, key: str) -> List[ResolvedRevision]:
        """
        Resolve the revision history of a key against its attachments.

        Args:
            key: Business key (NDC code)

        Returns:
            One ResolvedRevision per revision entry, oldest first; attachment
            is None when no file carries the revision's major number

        Raises:
            NotFoundError: If no record exists for the key
            ResolveError: If a store call fails
        """
        key = (key or "").strip()
        if not key:
            raise NotFoundError(key)

        try:
            matches = self.records.find_by_key(key)
            if not matches:
                raise NotFoundError(key)
            if len(matches) > 1:
                logger.warning(
                    f"Key '{key}' matched {len(matches)} records; resolving the first"
                )

            history = self.records.get_revision_history(matches[0].id)
            if is_folder_name(key):
                by_tag = self._files_by_tag(key)
            else:
                logger.warning(f"Key '{key}' cannot name an attachment folder; no attachments")
                by_tag = {}
        except StoreError as e:
            raise ResolveError(f"Could not resolve history for '{key}': {e}") from e

        resolved = []
        for entry in history:
            major = entry.major
            candidates = by_tag.get(major, []) if major is not None else []

            if len(candidates) > 1:
                logger.warning(
                    f"{len(candidates)} attachments of '{key}' carry tag {major}; "
                    f"using '{candidates[0].name}'"
                )

            resolved.append(ResolvedRevision(
                label=entry.label,
                created_at=entry.created_at,
                attachment=candidates[0] if candidates else None
            ))

        return resolved

    def suggest_keys(self, text: str, limit: int = 10) -> List[str]:
        """Stored keys containing text, case-insensitively (autocomplete source)."""
        needle = (text or "").strip().lower()
        try:
            keys = self.records.list_keys()
        except StoreError as e:
            raise ResolveError(f"Could not list keys: {e}") from e
        return [k for k in keys if needle in k.lower()][:limit]
