"""Revision history lookup with attachment correlation."""

from .resolver import (
    RevisionResolver,
    ResolvedRevision,
    AttachmentRef,
)

__all__ = [
    "RevisionResolver",
    "ResolvedRevision",
    "AttachmentRef",
]
