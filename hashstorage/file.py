# -*- coding: utf-8 -*-
"""Resources backed by a file, either on disk or inside a PyFilesystem2 FS."""

import io
import logging
import os
import weakref
from contextlib import closing
from datetime import datetime
from typing import Any, Dict, Optional

import fs as pyfs
import fs.path
from fs.base import FS
from fs.osfs import OSFS

from . import utils as u
from .exceptions import InvalidArgumentError
from .options import deny_remaining_options, take_option, validate_optional
from .resource import BaseResource, now

logger = logging.getLogger(__name__)

DEFAULT_TEMP_FILENAME = "temp"

# Served before asking `mimetypes`, which differs between platforms here.
FAST_MIMETYPES = {
    ".css": "text/css",
    ".js": "text/javascript",
}


class FileResource(BaseResource):
    """Resource wrapping an existing file.

    Args:
        path (str): Path of the file. An OS path, or a path inside
            `filesystem` if one is given.
        filesystem (fs.base.FS, optional): Filesystem holding `path`.
        filename, mimetype, length, last_modified, hash, attributes:
            Optional overrides of the facets otherwise derived from the
            file.

    Raises:
        InvalidArgumentError: If `path` does not exist or is a directory.
    """

    @classmethod
    def from_resource(cls, resource: BaseResource, path: str) -> "FileResource":
        """Write `resource` to the local file `path` and return it as a
        :class:`FileResource`. File resources are returned unchanged.
        """
        if isinstance(resource, FileResource):
            return resource

        with closing(resource.get_stream()) as source, open(path, "wb") as target:
            u.copy_stream(source, target)

        return FileResource(path,
                            filename=resource.filename,
                            mimetype=resource.mimetype,
                            last_modified=resource.last_modified,
                            attributes=resource.attributes)

    def __init__(self, path: str, filesystem: Optional[FS] = None, **options):
        if filesystem is None:
            syspath = os.path.abspath(path)
            self._check_path(path, os.path.exists(syspath), os.path.isdir(syspath))
            self._fs = OSFS(os.path.dirname(syspath))
            self._fspath = os.path.basename(syspath)
            self._path = path
        else:
            self._check_path(path, filesystem.exists(path), filesystem.isdir(path))
            self._fs = filesystem
            self._fspath = path
            self._path = (filesystem.getsyspath(path)
                          if filesystem.hassyspath(path) else path)

        self._filename = take_option("filename", options)
        self._mimetype = take_option("mimetype", options)
        self._length = take_option("length", options)
        self._last_modified = take_option("last_modified", options)
        self._hash = take_option("hash", options)
        self._attributes = take_option("attributes", options, {})
        deny_remaining_options(options)

    @staticmethod
    def _check_path(path: str, exists: bool, isdir: bool) -> None:
        if not exists:
            raise InvalidArgumentError(
                "Input file does not exist: {0}".format(path))
        if isdir:
            raise InvalidArgumentError(
                "Input path is a directory: {0}".format(path))

    @property
    def path(self) -> str:
        """System path of the file, or its path inside the backing FS if
        that FS has no system paths.
        """
        return self._path

    @property
    def filesystem(self) -> FS:
        return self._fs

    def open(self, mode: str = "rb") -> io.IOBase:
        """Open the file in `mode`."""
        with u.convert_fs_errors(self._path, "open"):
            return self._fs.open(self._fspath, mode)

    @property
    def filename(self) -> str:
        if self._filename is None:
            self._filename = pyfs.path.basename(self._fspath)
        return self._filename

    @property
    def mimetype(self) -> str:
        if self._mimetype is None:
            ext = pyfs.path.splitext(self._fspath)[1].lower()
            self._mimetype = FAST_MIMETYPES.get(ext) or u.guess_type(self._fspath)
        return self._mimetype

    @property
    def length(self) -> Optional[int]:
        if self._length is None:
            self._length = self._stat_size()
        return self._length

    @property
    def last_modified(self) -> datetime:
        if self._last_modified is None:
            self._last_modified = self._stat_modified()
        return self._last_modified

    @property
    def hash(self) -> str:
        if self._hash is None:
            self._hash = self._compute_hash()
        return self._hash

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._attributes

    def get_stream(self, context: Any = None) -> io.IOBase:
        with u.convert_fs_errors(self._path, "open"):
            return self._fs.openbin(self._fspath, "r")

    def _stat_size(self) -> int:
        with u.convert_fs_errors(self._path, "stat"):
            return self._fs.getsize(self._fspath)

    def _stat_modified(self) -> datetime:
        with u.convert_fs_errors(self._path, "stat"):
            info = self._fs.getinfo(self._fspath, namespaces=["details"])
        return info.modified or now()

    def _compute_hash(self) -> str:
        with closing(self.get_stream()) as stream:
            return u.computehash(stream)

    def __str__(self):
        return u.describe(self, self.path)


class TemporaryFileResource(FileResource):
    """File resource that owns a fresh file in its own temp directory.

    The file starts empty and may be written through :meth:`open`. Call
    :meth:`dispose` (or use the resource as a context manager) to delete the
    file and its directory. Disposal also happens when the object is garbage
    collected or the interpreter exits, as a last resort only.

    Args:
        filename (str, optional): Defaults to ``temp`` plus an extension
            guessed from `mimetype`.
        mimetype (str, optional): Guessed from the filename if absent.
        last_modified (datetime, optional): Defaults to the file's mtime.
        attributes (dict, optional): Auxiliary metadata.
    """

    @classmethod
    def from_resource(cls, resource: BaseResource) -> "TemporaryFileResource":
        """Copy `resource` into a new temporary file."""
        if isinstance(resource, TemporaryFileResource):
            return resource

        temp = cls(resource.filename, resource.mimetype,
                   resource.last_modified, resource.attributes)
        with closing(resource.get_stream()) as source, temp.open("wb") as target:
            u.copy_stream(source, target)
        return temp

    def __init__(self,
                 filename: Optional[str] = None,
                 mimetype: Optional[str] = None,
                 last_modified: Optional[datetime] = None,
                 attributes: Optional[dict] = None):
        filename = validate_optional("filename", filename, DEFAULT_TEMP_FILENAME)
        mimetype = validate_optional("mimetype", mimetype)

        if mimetype and filename == DEFAULT_TEMP_FILENAME:
            ext = u.guess_extension(mimetype)
            if ext:
                filename += os.extsep + ext

        path = u.create_temp_file(filename)
        self._finalizer = weakref.finalize(
            self, u.remove_temp, path, os.path.dirname(path))

        options = {"filename": filename}
        if mimetype is not None:
            options["mimetype"] = mimetype
        if attributes is not None:
            options["attributes"] = attributes
        super(TemporaryFileResource, self).__init__(path, **options)

        self._fixed_last_modified = validate_optional("last_modified", last_modified)
        self._hash_signature = None
        logger.debug("Created temporary file %s", path)

    @property
    def disposed(self) -> bool:
        return not self._finalizer.alive

    def dispose(self) -> None:
        """Delete the file and its directory. Safe to call repeatedly."""
        if self._finalizer.alive:
            self._finalizer()
            logger.debug("Disposed temporary file %s", self.path)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.dispose()

    @property
    def length(self) -> Optional[int]:
        return self._stat_size()

    @property
    def last_modified(self) -> datetime:
        if self._fixed_last_modified is not None:
            return self._fixed_last_modified
        return self._stat_modified()

    @property
    def hash(self) -> str:
        # Rehash whenever the file was written after the last computation.
        with u.convert_fs_errors(self.path, "stat"):
            stat = os.stat(self.path)
        signature = (stat.st_mtime_ns, stat.st_size)
        if self._hash is None or signature != self._hash_signature:
            self._hash = self._compute_hash()
            self._hash_signature = signature
        return self._hash

    def __str__(self):
        return u.describe(self)
