"""
Submission orchestration for one batch of parsed rows.

For each row, in input order:
1. Upsert the record (RecordUpsertEngine)
2. If an attachment was supplied for the row's key, bind it with the
   revision marker the upsert returned (AttachmentBinder)

Rows are independent: a failure is recorded in the SubmissionReport and the
batch carries on. The record write and the attachment write are separate
operations; a failed bind leaves the record update in place.

A completed batch locks the orchestrator until reset() so that the same
batch cannot be submitted twice by accident.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..exceptions import (
    BindError,
    RowValidationError,
    SubmissionLockedError,
    UpsertError,
)
from ..normalizer import CostRow
from ..parser import RecordParser
from .attachments import Attachment, AttachmentBinder, BindResult
from .upsert import RecordUpsertEngine, UpsertResult

logger = logging.getLogger(__name__)


class RowStatus(Enum):
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"            # Failed validation, nothing written
    UPSERT_FAILED = "upsert_failed"  # Record write failed, no bind attempted
    BIND_FAILED = "bind_failed"      # Record written, attachment not
    CANCELLED = "cancelled"          # Never scheduled


@dataclass
class RowOutcome:
    row_index: int
    key: str
    status: RowStatus
    upsert: Optional[UpsertResult] = None
    bind: Optional[BindResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == RowStatus.SUCCEEDED


@dataclass
class SubmissionReport:
    outcomes: List[RowOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> List[RowOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[RowOutcome]:
        return [o for o in self.outcomes if o.status != RowStatus.SUCCEEDED]

    def by_status(self) -> Dict[RowStatus, List[RowOutcome]]:
        grouped: Dict[RowStatus, List[RowOutcome]] = {}
        for outcome in self.outcomes:
            grouped.setdefault(outcome.status, []).append(outcome)
        return grouped

    def summary(self) -> str:
        counts = {status: len(items) for status, items in self.by_status().items()}
        parts = [f"{len(self.outcomes)} rows"]
        for status in RowStatus:
            if counts.get(status):
                parts.append(f"{counts[status]} {status.value}")
        return ", ".join(parts)


class IngestionOrchestrator:
    """Drives one submission through upsert and attachment binding."""

    def __init__(
        self,
        upsert_engine: RecordUpsertEngine,
        binder: AttachmentBinder,
        parser: Optional[RecordParser] = None,
        max_workers: int = 1
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.upsert_engine = upsert_engine
        self.binder = binder
        self.parser = parser or RecordParser()
        self.max_workers = max_workers

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._in_progress = False
        self._submitted = False

    @property
    def submitted(self) -> bool:
        with self._lock:
            return self._submitted

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._in_progress

    def reset(self) -> None:
        """Unlock the orchestrator for a new batch."""
        with self._lock:
            if self._in_progress:
                raise SubmissionLockedError("Cannot reset while a batch is in progress")
            self._submitted = False
            self._cancel.clear()

    def cancel(self) -> None:
        """Stop scheduling rows. Rows already running finish and are reported."""
        self._cancel.set()

    def _begin(self) -> None:
        with self._lock:
            if self._in_progress:
                raise SubmissionLockedError("A batch is already in progress")
            if self._submitted:
                raise SubmissionLockedError(
                    "Batch already submitted; call reset() before submitting again"
                )
            self._in_progress = True
            self._cancel.clear()

    def _finish(self) -> None:
        with self._lock:
            self._in_progress = False
            self._submitted = True

    def _process_row(
        self,
        row: CostRow,
        attachments_by_key: Dict[str, Attachment]
    ) -> RowOutcome:
        key = row.key

        try:
            upsert = self.upsert_engine.upsert(row)
        except RowValidationError as e:
            logger.warning(f"Row {row.row_index} rejected: {e}")
            return RowOutcome(row.row_index, key, RowStatus.REJECTED, error=str(e))
        except UpsertError as e:
            return RowOutcome(row.row_index, key, RowStatus.UPSERT_FAILED, error=str(e))

        attachment = attachments_by_key.get(key)
        if attachment is None:
            logger.debug(f"No attachment for '{key}', skipping folder")
            return RowOutcome(row.row_index, key, RowStatus.SUCCEEDED, upsert=upsert)

        try:
            bind = self.binder.bind(key, attachment.filename, attachment.payload, upsert.revision)
        except BindError as e:
            return RowOutcome(
                row.row_index, key, RowStatus.BIND_FAILED, upsert=upsert, error=str(e)
            )

        return RowOutcome(row.row_index, key, RowStatus.SUCCEEDED, upsert=upsert, bind=bind)

    def _cancelled_outcome(self, row: CostRow) -> RowOutcome:
        return RowOutcome(
            row.row_index, row.key, RowStatus.CANCELLED, error="Submission cancelled"
        )

    def submit(
        self,
        rows: List[CostRow],
        attachments_by_key: Optional[Dict[str, Attachment]] = None
    ) -> SubmissionReport:
        """
        Submit a batch of parsed rows.

        Args:
            rows: Parsed rows, processed in input order
            attachments_by_key: At most one attachment per key

        Returns:
            SubmissionReport with one outcome per row, in input order

        Raises:
            SubmissionLockedError: If a batch is running or was already submitted
        """
        attachments_by_key = {
            k.strip(): v for k, v in (attachments_by_key or {}).items()
        }
        self._begin()
        report = SubmissionReport()

        try:
            if self.max_workers == 1:
                outcomes = self._run_sequential(rows, attachments_by_key)
            else:
                outcomes = self._run_pooled(rows, attachments_by_key)
            with self._lock:
                report.outcomes = outcomes
                report.cancelled = self._cancel.is_set()
        finally:
            self._finish()

        logger.info(f"Submission complete: {report.summary()}")
        return report

    def _run_sequential(self, rows, attachments_by_key) -> List[RowOutcome]:
        outcomes = []
        for row in rows:
            if self._cancel.is_set():
                outcomes.append(self._cancelled_outcome(row))
                continue
            outcomes.append(self._process_row(row, attachments_by_key))
        return outcomes

    def _run_pooled(self, rows, attachments_by_key) -> List[RowOutcome]:
        outcomes: List[Optional[RowOutcome]] = [None] * len(rows)

        # Rows sharing a key stay on one worker, in input order
        positions_by_key: Dict[str, List[int]] = {}
        for position, row in enumerate(rows):
            positions_by_key.setdefault(row.key, []).append(position)

        def work(positions: List[int]) -> None:
            for position in positions:
                row = rows[position]
                # Rows not started before cancel() are skipped
                if self._cancel.is_set():
                    outcome = self._cancelled_outcome(row)
                else:
                    outcome = self._process_row(row, attachments_by_key)
                with self._lock:
                    outcomes[position] = outcome

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(work, positions) for positions in positions_by_key.values()]
            for future in futures:
                future.result()

        return outcomes

    def ingest(
        self,
        data: bytes,
        fmt: str,
        attachments_by_key: Optional[Dict[str, Attachment]] = None
    ) -> SubmissionReport:
        """
        Parse an upload and submit its rows.

        Raises:
            ParseError: If the upload is malformed; no store call is made
            SubmissionLockedError: If the orchestrator is locked
        """
        rows = self.parser.parse(data, fmt)
        return self.submit(rows, attachments_by_key)
