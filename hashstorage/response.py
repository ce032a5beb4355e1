# -*- coding: utf-8 -*-
"""Serialization of a resource as an HTTP response.

:class:`ResourceResponse` computes status, headers and body for a resource
without depending on a web framework: hand it the request headers in
:meth:`ResourceResponse.prepare` and send :attr:`status`, :attr:`headers` and
the chunks of :meth:`ResourceResponse.iter_content`.
"""

import re
from contextlib import closing
from datetime import timezone
from email.utils import format_datetime
from typing import Iterator, Mapping, Optional
from urllib.parse import quote

from requests.structures import CaseInsensitiveDict

from . import utils as u
from .exceptions import InvalidArgumentError
from .resource import BaseResource

DISPOSITION_ATTACHMENT = "attachment"
DISPOSITION_INLINE = "inline"

SAFE_METHODS = ("GET", "HEAD", "OPTIONS", "TRACE")

PRINTABLE_ASCII_RE = re.compile(r"^[\x20-\x7e]*$")


def http_date(value) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def _quote_param(value: str) -> str:
    return '"{0}"'.format(value.replace("\\", "\\\\").replace('"', '\\"'))


def make_disposition(disposition: str, filename: str, fallback: str = "") -> str:
    """Build a ``Content-Disposition`` header value.

    `fallback` is the ASCII filename for clients without RFC 5987 support;
    when it differs from `filename`, the UTF-8 name is added as
    ``filename*``.
    """
    if disposition not in (DISPOSITION_ATTACHMENT, DISPOSITION_INLINE):
        raise InvalidArgumentError(
            'The disposition must be either "{0}" or "{1}".'.format(
                DISPOSITION_ATTACHMENT, DISPOSITION_INLINE))

    if not fallback:
        fallback = filename

    if not PRINTABLE_ASCII_RE.match(fallback):
        raise InvalidArgumentError(
            "The filename fallback must only contain ASCII characters.")
    if "%" in fallback:
        raise InvalidArgumentError(
            'The filename fallback cannot contain the "%" character.')
    if any(sep in name for name in (filename, fallback) for sep in ("/", "\\")):
        raise InvalidArgumentError(
            'The filename and the fallback cannot contain the "/" and "\\" '
            "characters.")

    header = "{0}; filename={1}".format(disposition, _quote_param(fallback))
    if filename != fallback:
        header += "; filename*=utf-8''{0}".format(quote(filename, safe=""))
    return header


def make_filename_fallback(filename: str) -> str:
    """Replace ``%`` and characters outside printable ASCII by ``_``, or
    return ``""`` if `filename` needs no fallback.
    """
    if PRINTABLE_ASCII_RE.match(filename) and "%" not in filename:
        return ""
    return "".join(
        "_" if char == "%" or not 0x20 <= ord(char) <= 0x7E else char
        for char in filename)


class ResourceResponse(object):
    """HTTP response serving a resource, with range request support.

    Args:
        resource (BaseResource): Resource to send.
        status (int, optional): Defaults to ``200``.
        headers (dict, optional): Initial response headers.
        public (bool, optional): Mark the response as publicly cacheable.
        content_disposition (str, optional): ``attachment`` or ``inline``.
        auto_etag (bool, optional): Set the ETag from the resource hash.
        auto_last_modified (bool, optional): Set Last-Modified from the
            resource.
    """

    def __init__(self,
                 resource: BaseResource,
                 status: int = 200,
                 headers: Optional[Mapping[str, str]] = None,
                 public: bool = True,
                 content_disposition: Optional[str] = None,
                 auto_etag: bool = False,
                 auto_last_modified: bool = True):
        self.status = status
        self.headers = CaseInsensitiveDict(headers or {})
        self.protocol = "HTTP/1.0"
        self.offset = 0
        self.maxlen = -1
        self.set_resource(resource, content_disposition, auto_etag,
                          auto_last_modified)

        if public:
            self.headers["Cache-Control"] = "public"

    def set_resource(self,
                     resource: BaseResource,
                     content_disposition: Optional[str] = None,
                     auto_etag: bool = False,
                     auto_last_modified: bool = True) -> "ResourceResponse":
        self.resource = resource

        if auto_etag:
            self.set_auto_etag()
        if auto_last_modified:
            self.set_auto_last_modified()
        if content_disposition:
            self.set_content_disposition(content_disposition)
        return self

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get("ETag")

    @property
    def last_modified(self) -> Optional[str]:
        return self.headers.get("Last-Modified")

    def set_auto_etag(self) -> "ResourceResponse":
        self.headers["ETag"] = '"{0}"'.format(self.resource.hash)
        return self

    def set_auto_last_modified(self) -> "ResourceResponse":
        self.headers["Last-Modified"] = http_date(self.resource.last_modified)
        return self

    def set_content_disposition(self, disposition: str) -> "ResourceResponse":
        filename = self.resource.filename
        self.headers["Content-Disposition"] = make_disposition(
            disposition, filename, make_filename_fallback(filename))
        return self

    @property
    def is_successful(self) -> bool:
        return 200 <= self.status < 300

    def prepare(self,
                request_headers: Optional[Mapping[str, str]] = None,
                method: str = "GET",
                protocol: str = "HTTP/1.1") -> "ResourceResponse":
        """Complete the headers for the request and select the byte range to
        send.
        """
        request_headers = CaseInsensitiveDict(request_headers or {})
        length = self.resource.length

        if length is not None:
            self.headers["Content-Length"] = str(length)

        if "Accept-Ranges" not in self.headers:
            safe = method.upper() in SAFE_METHODS
            self.headers["Accept-Ranges"] = "bytes" if safe else "none"

        if "Content-Type" not in self.headers:
            self.headers["Content-Type"] = (self.resource.mimetype
                                            or u.DEFAULT_MIMETYPE)

        if protocol != "HTTP/1.0":
            self.protocol = "HTTP/1.1"

        self.offset = 0
        self.maxlen = -1

        range_header = request_headers.get("Range")
        if range_header and length is not None and (
                "If-Range" not in request_headers
                or self._has_valid_if_range(request_headers["If-Range"])):
            self._select_range(range_header, length)

        return self

    def _select_range(self, range_header: str, length: int) -> None:
        match = re.match(r"^bytes=(\d*)-(\d*)$", range_header.strip())
        if not match or match.groups() == ("", ""):
            return

        start, end = match.groups()
        end = length - 1 if end == "" else int(end)
        if start == "":
            start = length - end
            end = length - 1
        else:
            start = int(start)

        if start > end:
            return

        if start < 0 or end > length - 1:
            self.status = 416
            self.headers["Content-Range"] = "bytes */{0}".format(length)
        elif start != 0 or end != length - 1:
            self.offset = start
            self.maxlen = end - start + 1
            self.status = 206
            self.headers["Content-Range"] = "bytes {0}-{1}/{2}".format(
                start, end, length)
            self.headers["Content-Length"] = str(self.maxlen)

    def _has_valid_if_range(self, header: str) -> bool:
        if self.etag is not None and self.etag == header:
            return True
        return self.last_modified is not None and self.last_modified == header

    def iter_content(self, chunk_size: int = u.CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the selected bytes of the resource. Yields nothing for an
        unsuccessful or empty response.
        """
        if not self.is_successful or self.maxlen == 0:
            return

        with closing(self.resource.get_stream()) as stream:
            self._skip(stream, self.offset)
            remaining = self.maxlen
            while remaining != 0:
                size = chunk_size if remaining < 0 else min(chunk_size, remaining)
                data = stream.read(size)
                if not data:
                    break
                if remaining > 0:
                    remaining -= len(data)
                yield data

    @staticmethod
    def _skip(stream, offset: int) -> None:
        if not offset:
            return
        seekable = getattr(stream, "seekable", None)
        if seekable is not None and seekable():
            stream.seek(offset)
            return
        while offset > 0:
            data = stream.read(min(u.CHUNK_SIZE, offset))
            if not data:
                break
            offset -= len(data)
