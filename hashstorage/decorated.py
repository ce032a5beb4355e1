# -*- coding: utf-8 -*-
"""Resource that overrides selected facets of another resource."""

import io
from contextlib import closing
from datetime import datetime
from typing import Any, Dict, Optional

from . import utils as u
from .exceptions import InvalidArgumentError
from .options import mutually_exclusive_options, validate_options
from .resource import BaseResource, open_stream

OVERRIDABLE = ("content", "stream", "filename", "mimetype", "length",
               "last_modified", "hash", "attributes")


class DecoratedResource(BaseResource):
    """Wrap `resource`, replacing the facets given as options.

    A facet is overridden when its option is passed, even with a value like
    ``None`` for `length`; every other facet is read from the wrapped
    resource on each access. No bytes are copied.

    `content` takes precedence over `stream`, which takes precedence over
    the wrapped resource's stream. Overriding the bytes also derives the
    hash from them (and the length, for `content`) unless those are
    overridden as well. `attributes` replaces the wrapped attributes.
    """

    def __init__(self, resource: BaseResource, **options):
        if not isinstance(resource, BaseResource):
            raise InvalidArgumentError(
                "Expected a resource but got {0}.".format(
                    type(resource).__name__))
        mutually_exclusive_options(options, "content", "stream")

        self.resource = resource
        self._overrides = validate_options(options, OVERRIDABLE)
        self._derived_hash = None

        if "content" in self._overrides:
            self._overrides["content"] = u.to_bytes(self._overrides["content"])
            self._overrides.setdefault("length", len(self._overrides["content"]))

    def is_overridden(self, key: str) -> bool:
        return key in self._overrides

    def _get(self, key: str, inherited):
        if key in self._overrides:
            return self._overrides[key]
        return inherited()

    @property
    def filename(self) -> str:
        return self._get("filename", lambda: self.resource.filename)

    @property
    def mimetype(self) -> str:
        return self._get("mimetype", lambda: self.resource.mimetype)

    @property
    def length(self) -> Optional[int]:
        return self._get("length", lambda: self.resource.length)

    @property
    def last_modified(self) -> datetime:
        return self._get("last_modified", lambda: self.resource.last_modified)

    @property
    def hash(self) -> str:
        if "hash" in self._overrides or not self._overrides_bytes():
            return self._get("hash", lambda: self.resource.hash)
        if self._derived_hash is None:
            with closing(self.get_stream()) as stream:
                self._derived_hash = u.computehash(stream)
        return self._derived_hash

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._get("attributes", lambda: self.resource.attributes)

    def _overrides_bytes(self) -> bool:
        return "content" in self._overrides or "stream" in self._overrides

    def get_stream(self, context: Any = None) -> io.IOBase:
        if "content" in self._overrides:
            return io.BytesIO(self._overrides["content"])
        if "stream" in self._overrides:
            return open_stream(self._overrides["stream"], context)
        return self.resource.get_stream(context)

    def __str__(self):
        return "[DecoratedResource {0} of {1}]".format(
            self.filename, self.resource)
