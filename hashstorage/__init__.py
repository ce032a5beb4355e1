# -*- coding: utf-8 -*-
"""hashstorage persists byte resources keyed by their content hash. What does
that mean? Any resource, be it a local file, in-memory content or a remote
URL, is saved in a directory named after its SHA-1 hash, together with its
filename, MIME type, modification time and attributes.

Typical use cases for this kind of system are ones where:

- Resources are written once and never change (e.g. uploads, assets).
- Identical content must be detected (e.g. user uploads).
- Files must keep their original name and type when served again.
"""

from .__meta__ import (
    __title__,
    __summary__,
    __url__,
    __version__,
    __author__,
    __email__,
    __license__,
)

from .decorated import DecoratedResource
from .exceptions import (
    DuplicateHashError,
    InvalidArgumentError,
    NotFoundError,
    ResourceError,
    ResourceIOError,
    StorageLogicError,
)
from .file import FileResource, TemporaryFileResource
from .resource import BaseResource, Resource
from .response import ResourceResponse
from .storage import EntryMeta, HashStorage
from .url import UrlResource


__all__ = (
    "BaseResource",
    "DecoratedResource",
    "DuplicateHashError",
    "EntryMeta",
    "FileResource",
    "HashStorage",
    "InvalidArgumentError",
    "NotFoundError",
    "Resource",
    "ResourceError",
    "ResourceIOError",
    "ResourceResponse",
    "StorageLogicError",
    "TemporaryFileResource",
    "UrlResource",
)
