# -*- coding: utf-8 -*-
"""Exception types raised by hashstorage.

Each type also derives from the matching builtin so that callers catching
``ValueError``, ``LookupError`` or ``IOError`` keep working.
"""


class ResourceError(Exception):
    """Base class for all hashstorage errors."""


class InvalidArgumentError(ResourceError, ValueError):
    """Malformed, missing or unknown construction option or argument."""


class DuplicateHashError(InvalidArgumentError):
    """A resource with the same hash is already present in the storage."""


class NotFoundError(ResourceError, LookupError):
    """No entry exists for the requested hash."""


class ResourceIOError(ResourceError, IOError):
    """A filesystem or network operation failed."""


class StorageLogicError(ResourceError, RuntimeError):
    """The storage is in a state that committed writes cannot produce."""
