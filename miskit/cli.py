"""
Command line entry point.

Usage:
    miskit ingest costs.xlsx --attach ABC123=docs/abc123.pdf
    miskit history ABC123
    miskit codes abc
    miskit init-db
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config import Settings, load_settings
from .exceptions import MisError, NotFoundError, ParseError
from .history import RevisionResolver
from .ingest import (
    Attachment,
    AttachmentBinder,
    IngestionOrchestrator,
    RecordUpsertEngine,
    RowStatus,
    SupabaseDocumentStore,
    SupabaseRecordStore,
)
from .logging_setup import configure_logging
from .parser import RecordParser

logger = logging.getLogger(__name__)


def _parse_attachments(items: List[str]) -> Dict[str, Attachment]:
    attachments = {}
    for item in items:
        key, sep, path = item.partition("=")
        if not sep or not key.strip() or not path.strip():
            raise argparse.ArgumentTypeError(f"Expected KEY=PATH, got '{item}'")
        file_path = Path(path.strip())
        try:
            payload = file_path.read_bytes()
        except OSError as e:
            raise argparse.ArgumentTypeError(
                f"Cannot read attachment '{file_path}' for {key.strip()}: {e.strerror or e}"
            ) from e
        attachments[key.strip()] = Attachment(filename=file_path.name, payload=payload)
    return attachments


def _stores(settings: Settings):
    kwargs = dict(
        db_url=settings.db_url,
        statement_timeout_ms=settings.statement_timeout_ms,
        connect_timeout=settings.connect_timeout,
        maxconn=max(settings.max_workers, 1) + 1,
    )
    return SupabaseRecordStore(**kwargs), SupabaseDocumentStore(**kwargs)


def _cmd_ingest(args, settings: Settings) -> int:
    path = Path(args.file)
    fmt = args.format or RecordParser.format_for_filename(path.name)
    if fmt is None:
        print(f"Cannot tell the format of '{path.name}'; pass --format", file=sys.stderr)
        return 2

    attachments = _parse_attachments(args.attach or [])
    records, documents = _stores(settings)
    try:
        orchestrator = IngestionOrchestrator(
            RecordUpsertEngine(records, debug=args.debug),
            AttachmentBinder(
                documents,
                library=settings.attachment_library,
                tag_attribute=settings.tag_attribute,
                debug=args.debug
            ),
            max_workers=settings.max_workers
        )
        try:
            report = orchestrator.ingest(path.read_bytes(), fmt, attachments)
        except ParseError as e:
            print(f"Could not parse '{path.name}': {e}", file=sys.stderr)
            return 1
    finally:
        records.close()
        documents.close()

    for outcome in report.outcomes:
        if outcome.ok:
            detail = f"{outcome.upsert.action.value} (revision {outcome.upsert.revision})"
            if outcome.bind:
                detail += f", attached {outcome.bind.filename}"
        else:
            detail = f"{outcome.status.value}: {outcome.error}"
        print(f"row {outcome.row_index:>4}  {outcome.key or '-':<16} {detail}")

    print(report.summary())
    return 0 if not report.failed else 1


def _cmd_history(args, settings: Settings) -> int:
    records, documents = _stores(settings)
    try:
        resolver = RevisionResolver(
            records,
            documents,
            library=settings.attachment_library,
            tag_attribute=settings.tag_attribute
        )
        try:
            revisions = resolver.resolve(args.key)
        except NotFoundError as e:
            print(str(e), file=sys.stderr)
            return 1
    finally:
        records.close()
        documents.close()

    for revision in revisions:
        created = revision.created_at.isoformat() if revision.created_at else "-"
        attachment = revision.attachment.path if revision.attachment else "-"
        print(f"{revision.label:<8} {created:<32} {attachment}")
    return 0


def _cmd_codes(args, settings: Settings) -> int:
    records, documents = _stores(settings)
    try:
        resolver = RevisionResolver(records, documents, library=settings.attachment_library)
        for key in resolver.suggest_keys(args.text, limit=args.limit):
            print(key)
    finally:
        records.close()
        documents.close()
    return 0


def _cmd_init_db(args, settings: Settings) -> int:
    records, documents = _stores(settings)
    try:
        records.ensure_schema()
        documents.ensure_schema()
    finally:
        records.close()
        documents.close()
    print("Schema ready")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="miskit", description="MIS cost record uploads")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Upload a CSV or xlsx cost sheet")
    ingest.add_argument("file")
    ingest.add_argument("--format", choices=["csv", "spreadsheet"])
    ingest.add_argument(
        "--attach", action="append", metavar="KEY=PATH",
        help="Attachment for one NDC code (repeatable)"
    )
    ingest.add_argument("--debug", action="store_true", help="Log every write decision")
    ingest.set_defaults(handler=_cmd_ingest)

    history = sub.add_parser("history", help="Show revisions and their attachments")
    history.add_argument("key")
    history.set_defaults(handler=_cmd_history)

    codes = sub.add_parser("codes", help="List stored NDC codes containing TEXT")
    codes.add_argument("text", nargs="?", default="")
    codes.add_argument("--limit", type=int, default=20)
    codes.set_defaults(handler=_cmd_codes)

    init_db = sub.add_parser("init-db", help="Create the record and attachment tables")
    init_db.set_defaults(handler=_cmd_init_db)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.env_file)
    configure_logging(args.log_level or settings.log_level, debug=getattr(args, "debug", False))

    try:
        return args.handler(args, settings)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except MisError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        # Missing connection settings
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
