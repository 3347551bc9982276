"""
Keyed upsert of parsed cost rows into the record store.

Each row either replaces every field of the record stored under its key or
creates that record. The revision marker comes back from the store; it is
never computed here.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..exceptions import RecordStoreError, UpsertError
from ..normalizer import CostRow
from .stores import RecordStore

logger = logging.getLogger(__name__)


class UpsertAction(Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class UpsertResult:
    key: str
    action: UpsertAction
    record_id: Any
    revision: int


class RecordUpsertEngine:
    """Looks up a record by key, then updates it in place or inserts it."""

    def __init__(self, store: RecordStore, debug: bool = False):
        self.store = store
        self.debug = debug

    def upsert(self, row: CostRow) -> UpsertResult:
        """
        Write one row to the record store.

        Args:
            row: Parsed row; its key must be non-empty

        Returns:
            UpsertResult with the action taken and the store's revision marker

        Raises:
            RowValidationError: If the row has no key (nothing is written)
            UpsertError: If the store is unavailable or rejects the write
        """
        row.validate()
        key = row.key
        fields = row.to_fields()

        try:
            matches = self.store.find_by_key(key)

            if len(matches) > 1:
                # The store should keep keys unique; take the first and carry on
                logger.warning(
                    f"Key '{key}' matched {len(matches)} records; "
                    f"updating the first ({matches[0].id})"
                )

            if matches:
                existing = matches[0]
                revision = self.store.update_by_id(existing.id, fields)
                result = UpsertResult(
                    key=key,
                    action=UpsertAction.UPDATED,
                    record_id=existing.id,
                    revision=revision
                )
            else:
                created = self.store.insert(key, fields)
                result = UpsertResult(
                    key=key,
                    action=UpsertAction.CREATED,
                    record_id=created.id,
                    revision=created.revision
                )
        except RecordStoreError as e:
            logger.error(f"Record write for '{key}' failed: {e}")
            raise UpsertError(key, str(e)) from e

        if self.debug:
            logger.info(
                f"Record '{key}' {result.action.value} → id {result.record_id} "
                f"(revision {result.revision})"
            )

        return result
