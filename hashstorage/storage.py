"""Module for HashStorage class."""

import json
import logging
import os
import re
from collections import namedtuple
from contextlib import closing
from datetime import datetime
from typing import Iterator, Optional, Union

import fs as pyfs
import fs.errors
import fs.path
from fs.base import FS
from fs.permissions import Permissions

from . import utils as u
from .exceptions import (DuplicateHashError, InvalidArgumentError,
                         NotFoundError, ResourceIOError, StorageLogicError)
from .file import FileResource
from .resource import BaseResource

logger = logging.getLogger(__name__)

META_FILENAME = "meta.json"
STAGING_SUFFIX = ".tmp"
SHARD_DEPTH = 1
SHARD_WIDTH = 2

HASH_RE = re.compile(r"^[A-Za-z0-9_-]{2,}$")


class EntryMeta(namedtuple("EntryMeta", ["filename",
                                         "last_modified",
                                         "length",
                                         "attributes",
                                         "mimetype",
                                         "content_filename"])):
    """Metadata of a stored resource, written as a JSON array next to the
    content.
    """

    @classmethod
    def from_resource(cls, resource: BaseResource) -> "EntryMeta":
        mimetype = resource.mimetype
        return cls(resource.filename,
                   resource.last_modified,
                   resource.length,
                   resource.attributes,
                   mimetype,
                   u.make_content_filename(mimetype))

    def dumps(self) -> bytes:
        record = self._replace(last_modified=self.last_modified.isoformat())
        return json.dumps(list(record)).encode("utf8")

    @classmethod
    def loads(cls, data: bytes) -> "EntryMeta":
        record = cls(*json.loads(data.decode("utf8")))
        return record._replace(
            last_modified=datetime.fromisoformat(record.last_modified))


class HashStorage(object):
    """Content addressable resource storage.

    Each resource is stored in its own directory,
    ``<root>/<hash[0:2]>/<hash>/``, holding ``meta.json`` and the content
    file ``content[.<ext>]``. Entries are written to a staging directory
    first and renamed into place, so an entry either exists completely or
    not at all.

    Attributes:
        root: Directory path, PyFilesystem2 FS URL (e.g. ``mem://``) or
            :class:`fs.base.FS` used as root of the storage space. The
            directory is created on first use.
        ensure_root (bool, optional): Open (and create) the root right away
            instead of on the first operation. Defaults to ``False``.
        dmode (int, optional): Directory mode permission to set for
            created directories. Defaults to ``0o755``.
    """

    def __init__(self,
                 root: Union[FS, str],
                 ensure_root: bool = False,
                 dmode: Optional[int] = 0o755):
        self.root = root
        self.dmode = dmode
        self._fs = None
        self._owns_fs = False

        if ensure_root:
            self._ensure_root()

    @property
    def fs(self) -> FS:
        """The backing filesystem, opened on first access."""
        self._ensure_root()
        return self._fs

    def put(self, resource: BaseResource) -> None:
        """Store `resource` under its hash.

        Raises:
            DuplicateHashError: If the hash is already present.
            ResourceIOError: If the entry could not be written. Nothing is
                left behind in that case.
        """
        hashid = resource.hash
        entry = self._entry_path(hashid)
        filesystem = self.fs

        if filesystem.exists(entry):
            raise DuplicateHashError(
                'Resource with the same hash "{0}" is already present.'.format(
                    hashid))

        staging = entry + STAGING_SUFFIX
        if filesystem.exists(staging):
            logger.warning("Removing stale staging directory %s", staging)
            self._delete_entry_dir(staging)

        try:
            self._makedirs(staging)
        except pyfs.errors.FSError as exc:
            raise ResourceIOError(
                'Failed to store resource. Unable to create directory "{0}".'
                .format(staging)) from exc

        try:
            meta = EntryMeta.from_resource(resource)
            filesystem.writebytes(pyfs.path.join(staging, META_FILENAME),
                                  meta.dumps())

            content_path = pyfs.path.join(staging, meta.content_filename)
            with closing(resource.get_stream()) as source, \
                    filesystem.openbin(content_path, "w") as target:
                u.copy_stream(source, target)

            self._commit(staging, entry)

        except Exception as exc:
            try:
                if filesystem.exists(staging):
                    self._delete_entry_dir(staging, reason=exc)
            except ResourceIOError as cleanup:
                raise ResourceIOError("Failed to store resource.") from cleanup
            raise ResourceIOError("Failed to store resource.") from exc

        logger.debug("Stored %s as %s", resource, hashid)

    def get(self, hashid: str) -> FileResource:
        """Return the stored resource for `hashid`.

        The facets of the returned resource are the ones recorded by
        :meth:`put`, not the ones derived from the content file.

        Raises:
            NotFoundError: If the hash is not present.
            StorageLogicError: If the entry has no readable metadata.
        """
        entry = self._entry_path(hashid)
        filesystem = self.fs

        if not filesystem.isdir(entry):
            raise NotFoundError('The hash "{0}" is not present.'.format(hashid))

        meta_path = pyfs.path.join(entry, META_FILENAME)
        if not filesystem.isfile(meta_path):
            raise StorageLogicError(
                'Missing meta file "{0}".'.format(meta_path))

        with u.convert_fs_errors(meta_path, "read meta file"):
            data = filesystem.readbytes(meta_path)

        try:
            meta = EntryMeta.loads(data)
        except (TypeError, ValueError) as exc:
            raise StorageLogicError(
                'Corrupt meta file "{0}".'.format(meta_path)) from exc

        content_path = pyfs.path.join(entry, meta.content_filename)
        if not filesystem.isfile(content_path):
            raise StorageLogicError(
                'Missing content file "{0}".'.format(content_path))

        return FileResource(content_path,
                            filesystem=filesystem,
                            filename=meta.filename,
                            mimetype=meta.mimetype,
                            length=meta.length,
                            last_modified=meta.last_modified,
                            attributes=meta.attributes,
                            hash=hashid)

    def has(self, hashid: str) -> bool:
        """Check whether a committed entry exists for `hashid`."""
        meta_path = pyfs.path.join(self._entry_path(hashid), META_FILENAME)
        return self.fs.isfile(meta_path)

    def find(self, hashid: str) -> Optional[FileResource]:
        """Return the stored resource for `hashid`, or ``None``."""
        return self.get(hashid) if self.has(hashid) else None

    def remove(self, hashid: str) -> None:
        """Delete the entry for `hashid`. Shard directories are kept.

        Raises:
            NotFoundError: If the hash is not present.
        """
        entry = self._entry_path(hashid)
        if not self.fs.isdir(entry):
            raise NotFoundError('The hash "{0}" is not present.'.format(hashid))

        self._delete_entry_dir(entry)
        logger.debug("Removed %s", hashid)

    def list_hashes(self) -> Iterator[str]:
        """Return generator that yields the hash of every entry."""
        filesystem = self.fs
        for prefix in filesystem.scandir("/"):
            if not prefix.is_dir:
                continue
            for entry in filesystem.scandir(prefix.name):
                if entry.is_dir and not entry.name.endswith(STAGING_SUFFIX):
                    yield entry.name

    def count(self) -> int:
        """Return count of the number of entries in the storage."""
        return sum(1 for _ in self.list_hashes())

    def size(self) -> int:
        """Return the total size in bytes of all stored content."""
        return sum(info.size
                   for path, info in self.fs.walk.info(namespaces=["details"])
                   if info.is_file and info.name != META_FILENAME
                   and STAGING_SUFFIX + "/" not in path)

    def close(self) -> None:
        """Close the backing filesystem if this storage opened it."""
        if self._fs is not None and self._owns_fs:
            self._fs.close()
        self._fs = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __contains__(self, hashid: str) -> bool:
        return self.has(hashid)

    def __iter__(self) -> Iterator[str]:
        return self.list_hashes()

    def __len__(self) -> int:
        return self.count()

    def __repr__(self):
        return "{0}({1!r})".format(type(self).__name__, self.root)

    def _ensure_root(self) -> None:
        """Open the root filesystem, creating the directory if it does not
        exist.
        """
        if self._fs is not None:
            return

        if isinstance(self.root, FS):
            self._fs = self.root
            return

        try:
            self._fs = pyfs.open_fs(self.root, create=True)
        except pyfs.errors.CreateFailed as exc:
            raise ResourceIOError(
                'The storage directory "{0}" could not be created.'.format(
                    self.root)) from exc
        self._owns_fs = True

    def _entry_path(self, hashid: str) -> str:
        """Build the path of the entry directory of `hashid`."""
        if not isinstance(hashid, str) or not HASH_RE.match(hashid):
            raise InvalidArgumentError('Invalid hash "{0}".'.format(hashid))
        return pyfs.path.join(
            "/", *u.shard(hashid, SHARD_DEPTH, SHARD_WIDTH), hashid)

    def _makedirs(self, dir_path: str) -> None:
        """Physically create the folder path on disk."""
        perms = Permissions.create(self.dmode)
        self.fs.makedirs(dir_path, permissions=perms, recreate=True)

    def _commit(self, staging: str, entry: str) -> None:
        """Rename the staging directory to the entry directory."""
        filesystem = self.fs
        if filesystem.hassyspath(staging):
            os.rename(filesystem.getsyspath(staging),
                      filesystem.getsyspath(entry))
        else:
            filesystem.movedir(staging, entry, create=True)

    def _delete_entry_dir(self,
                          entry: str,
                          reason: Optional[BaseException] = None) -> None:
        """Delete the known files of an entry directory, then the directory.
        Failures are raised as :class:`ResourceIOError` caused by `reason`
        when given.
        """
        filesystem = self.fs
        try:
            for name in filesystem.listdir(entry):
                if name == META_FILENAME or name.startswith(u.CONTENT_BASENAME):
                    filesystem.remove(pyfs.path.join(entry, name))
        except pyfs.errors.FSError as exc:
            raise ResourceIOError(
                'Failed to delete files in resource directory "{0}".'.format(
                    entry)) from (reason or exc)

        try:
            filesystem.removedir(entry)
        except pyfs.errors.FSError as exc:
            raise ResourceIOError(
                'Failed to delete resource directory "{0}".'.format(
                    entry)) from (reason or exc)
