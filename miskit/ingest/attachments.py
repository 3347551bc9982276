"""
Attachment binding: one folder per key, files tagged with a record revision.

The binding contract is that a folder's revision tag always equals the
record revision active at the most recent attachment write for that key,
not the revision at which the file was first created.

Flow for one bind:
1. Resolve the folder named after the key, creating it when absent
2. Write the file, overwriting when the name already exists
3. Stamp the revision tag on the folder and on the written file

A lost folder-creation race is the only failure that is retried away; the
file write is never retried because an overwrite is not idempotent.
"""

import logging
import posixpath
from dataclasses import dataclass
from typing import Optional

from ..exceptions import BindError, DocumentStoreError, FolderExistsError
from ..schema import REVISION_TAG_ATTRIBUTE
from .stores import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    """A binary payload supplied for one key in a submission."""
    filename: str
    payload: bytes


@dataclass
class BindResult:
    key: str
    folder: str
    filename: str
    overwritten: bool
    folder_created: bool
    revision: int


def is_folder_name(key: str) -> bool:
    """True when a key can name exactly one folder directly under the library."""
    return bool(key) and key not in (".", "..") and "/" not in key and "\\" not in key


def folder_path(library: str, key: str) -> str:
    """Path of the attachment folder for a key inside a library.

    Raises:
        ValueError: If the key would nest, escape or replace the library path
    """
    if not is_folder_name(key):
        raise ValueError(f"Key '{key}' cannot be used as a folder name")
    return posixpath.join(library.rstrip("/") or "/", key)


class AttachmentBinder:
    """Writes attachments into per-key folders of a document store."""

    def __init__(
        self,
        store: DocumentStore,
        library: str = "MIS_Attachement",
        tag_attribute: str = REVISION_TAG_ATTRIBUTE,
        debug: bool = False
    ):
        self.store = store
        self.library = library
        self.tag_attribute = tag_attribute
        self.debug = debug

    def folder_for(self, key: str) -> str:
        return folder_path(self.library, key)

    def _ensure_folder(self, path: str) -> bool:
        """Create the folder when missing. Returns True if this call created it."""
        if self.store.folder_exists(path):
            if self.debug:
                logger.info(f"Folder '{path}' already exists")
            return False

        try:
            self.store.create_folder(path)
        except FolderExistsError:
            # A concurrent submission created it between the check and the create
            logger.debug(f"Folder '{path}' was created concurrently; reusing it")
            return False

        logger.info(f"Folder '{path}' created")
        return True

    def bind(self, key: str, filename: str, payload: bytes, revision: int) -> BindResult:
        """
        Store an attachment for a key and tag it with a record revision.

        Args:
            key: Business key; also the folder name
            filename: Destination file name inside the folder
            payload: File content
            revision: Revision marker returned by the upsert of the same key

        Returns:
            BindResult describing what was written

        Raises:
            BindError: If any folder, file or attribute call fails
        """
        if not key or not key.strip():
            raise BindError(key or "", "attachment key is blank")
        if not filename or not filename.strip():
            raise BindError(key, "attachment file name is blank")
        if not is_folder_name(key):
            raise BindError(key, "key cannot be used as a folder name")
        if not is_folder_name(filename):
            raise BindError(key, f"attachment file name '{filename}' contains a path")

        path = self.folder_for(key)

        try:
            folder_created = self._ensure_folder(path)

            existing = {f.name for f in self.store.list_files(path)}
            overwritten = filename in existing

            if overwritten:
                logger.info(
                    f"File '{filename}' already exists in '{path}', uploading as a new version"
                )
            else:
                logger.info(f"Uploading file '{filename}' to '{path}'")

            self.store.add_file(path, filename, payload, overwrite=overwritten)

            self.store.set_folder_attribute(path, self.tag_attribute, revision)
            self.store.set_file_attribute(path, filename, self.tag_attribute, revision)
        except DocumentStoreError as e:
            logger.error(f"Attachment write for '{key}' failed: {e}")
            raise BindError(key, str(e)) from e

        if self.debug:
            logger.info(f"{self.tag_attribute} of '{path}' set to {revision}")

        return BindResult(
            key=key,
            folder=path,
            filename=filename,
            overwritten=overwritten,
            folder_created=folder_created,
            revision=revision
        )

    def current_tag(self, key: str) -> Optional[int]:
        """Revision tag currently stamped on a key's folder, if any."""
        if not is_folder_name(key):
            return None
        try:
            value = self.store.get_folder_attributes(self.folder_for(key)).get(self.tag_attribute)
        except DocumentStoreError as e:
            raise BindError(key, str(e)) from e
        return parse_tag(value)


def parse_tag(value) -> Optional[int]:
    """Read a stored revision tag as an integer; anything else is no tag."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
