# -*- coding: utf-8 -*-
"""The resource contract and its in-memory implementation."""

import inspect
import io
from abc import ABC, abstractmethod
from contextlib import closing
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from . import utils as u
from .exceptions import InvalidArgumentError
from .options import (deny_remaining_options, mutually_exclusive_options,
                      require_either_option, require_options, take_option)


def now() -> datetime:
    return datetime.now(timezone.utc)


def open_stream(stream_fn: Callable, context: Any = None):
    """Call a stream producer, passing `context` if it accepts an argument."""
    try:
        params = inspect.signature(stream_fn).parameters
    except (TypeError, ValueError):
        params = None

    stream = stream_fn() if params is not None and not params else stream_fn(context)

    if not hasattr(stream, "read"):
        raise InvalidArgumentError(
            "Expected the stream function to return a readable object "
            "but got {0}.".format(type(stream).__name__))
    return stream


class BaseResource(ABC):
    """Read-only view over a byte sequence and its identity.

    Attributes:
        filename (str): Sanitized file name of the resource.
        mimetype (str): MIME type of the content.
        length (int, optional): Size in bytes, ``None`` when unknown.
        last_modified (datetime): Modification time, "now" when unknown.
        hash (str): Lowercase hex SHA-1 of the content unless supplied.
        attributes (dict): Auxiliary metadata, stored along with the
            resource by :class:`hashstorage.HashStorage`.
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        pass

    @property
    @abstractmethod
    def mimetype(self) -> str:
        pass

    @property
    @abstractmethod
    def length(self) -> Optional[int]:
        pass

    @property
    @abstractmethod
    def last_modified(self) -> datetime:
        pass

    @property
    @abstractmethod
    def hash(self) -> str:
        pass

    @property
    @abstractmethod
    def attributes(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_stream(self, context: Any = None) -> io.IOBase:
        """Return a new binary stream positioned at the start of the
        content. Every call returns an independent stream; the caller
        closes it.
        """

    def read(self) -> bytes:
        """Return the full content."""
        with closing(self.get_stream()) as stream:
            return stream.read()

    def __str__(self):
        return u.describe(self)


class Resource(BaseResource):
    """Resource backed by inline content or a stream producing function.

    Args:
        filename (str): Required.
        mimetype (str): Required.
        content (bytes|str): The content. ``str`` is UTF-8 encoded. Sets
            the length. Exclusive with `stream`.
        stream (callable): Returns a new readable binary stream on every
            call. May accept one argument, the context passed to
            :meth:`get_stream`. Requires `length`.
        length (int, optional): Size in bytes.
        last_modified (datetime, optional): Defaults to the time of access.
        hash (str, optional): Skips hashing of the content.
        attributes (dict, optional): Auxiliary metadata.
    """

    @classmethod
    def from_file(cls, path: str, **options) -> BaseResource:
        from .file import FileResource

        return FileResource(path, **options)

    @classmethod
    def from_url(cls, url: str, **options) -> BaseResource:
        from .url import UrlResource

        return UrlResource(url, **options)

    @classmethod
    def create_temp(cls,
                    filename: Optional[str] = None,
                    mimetype: Optional[str] = None,
                    last_modified: Optional[datetime] = None,
                    attributes: Optional[dict] = None) -> BaseResource:
        from .file import TemporaryFileResource

        return TemporaryFileResource(filename, mimetype, last_modified,
                                     attributes)

    def __init__(self, **options):
        require_options(options, ("filename", "mimetype"))
        mutually_exclusive_options(options, "content", "stream")
        require_either_option(options, "content", "stream")
        if "stream" in options:
            require_options(options, ("length",))

        self._content = take_option("content", options)
        self._stream_fn = take_option("stream", options)
        self._filename = take_option("filename", options)
        self._mimetype = take_option("mimetype", options)
        self._length = take_option("length", options)
        self._last_modified = take_option("last_modified", options)
        self._hash = take_option("hash", options)
        self._attributes = take_option("attributes", options, {})
        deny_remaining_options(options)

        if self._content is not None:
            self._content = u.to_bytes(self._content)
            self._length = len(self._content)

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def mimetype(self) -> str:
        return self._mimetype

    @property
    def length(self) -> Optional[int]:
        return self._length

    @property
    def last_modified(self) -> datetime:
        if self._last_modified is None:
            return now()
        return self._last_modified

    @property
    def hash(self) -> str:
        if self._hash is None:
            with closing(self.get_stream()) as stream:
                self._hash = u.computehash(stream)
        return self._hash

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._attributes

    def get_stream(self, context: Any = None) -> io.IOBase:
        if self._content is not None:
            return io.BytesIO(self._content)
        return open_stream(self._stream_fn, context)
