# -*- coding: utf-8 -*-
"""Resource backed by a remote URL, fetched lazily with requests."""

import io
import logging
import os
import posixpath
import re
import weakref
from contextlib import closing
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit

import requests

from . import utils as u
from .exceptions import InvalidArgumentError, ResourceIOError
from .file import FileResource
from .options import (deny_remaining_options, sanitize_filename,
                      sanitize_mimetype, take_option, validate_option)
from .resource import BaseResource, now

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 20

FALLBACK_FILENAME = "download"

CONTENT_DISPOSITION_RE = re.compile(
    r'(?:attachment|inline);\s*filename="([^"]*)"', re.IGNORECASE)


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


class UrlResource(BaseResource):
    """Resource wrapping a URL. Nothing is fetched on construction.

    Facets not given as options are read from the response headers of a
    single HEAD request. The body is downloaded once, by a GET streamed into
    a temp file, when the content, the hash, or a length the HEAD response
    did not reveal is needed. Dispose the resource (or use it as a context
    manager) to delete the downloaded file.

    Args:
        url (str): The URL.
        connect_timeout (int|float, optional): Connect timeout in seconds.
            Defaults to ``20``.
        session (requests.Session, optional): Session used for requests.
            A session created here is closed by :meth:`dispose`.
        filename, mimetype, last_modified, hash, attributes: Optional
            overrides. They always win over response headers.
    """

    def __init__(self,
                 url: str,
                 connect_timeout=DEFAULT_CONNECT_TIMEOUT,
                 session: Optional[requests.Session] = None,
                 **options):
        if not isinstance(url, str) or not url.strip():
            raise InvalidArgumentError("Expected a non-empty URL.")

        self.url = url
        self.connect_timeout = validate_option("timeout", connect_timeout)
        self._owns_session = session is None
        self.session = requests.Session() if session is None else session

        self._filename = take_option("filename", options)
        self._mimetype = take_option("mimetype", options)
        self._last_modified = take_option("last_modified", options)
        self._hash = take_option("hash", options)
        self._attributes = take_option("attributes", options, {})
        deny_remaining_options(options)

        self._length = None
        self._head_requested = False
        self._head_error = None
        self._body_requested = False
        self._body_error = None
        self._body_path = None
        self._finalizer = None
        self._disposed = False

    def download(self, directory: str) -> FileResource:
        """Save the content as ``<directory>/<filename>``.

        Raises:
            InvalidArgumentError: If the destination file already exists.
        """
        path = os.path.join(directory, self.filename)
        self._write_to(path)
        return FileResource(path,
                            mimetype=self.mimetype,
                            last_modified=self.last_modified,
                            attributes=self.attributes)

    def download_as(self, path: str) -> FileResource:
        """Save the content as `path`, keeping the resource's filename.

        Raises:
            InvalidArgumentError: If `path` already exists.
        """
        self._write_to(path)
        return FileResource(path,
                            filename=self.filename,
                            mimetype=self.mimetype,
                            last_modified=self.last_modified,
                            attributes=self.attributes)

    def _write_to(self, path: str) -> None:
        try:
            target = open(path, "xb")
        except FileExistsError:
            raise InvalidArgumentError(
                'File "{0}" already exists.'.format(path)) from None
        except OSError as exc:
            raise ResourceIOError(
                'Failed to create file "{0}".'.format(path)) from exc

        try:
            with target, closing(self.get_stream()) as source:
                u.copy_stream(source, target)
        except Exception:
            os.remove(path)
            raise

    @property
    def filename(self) -> str:
        if self._filename is None:
            self._request_head()
        if self._filename is None:
            filename = self._filename_from_url()
            if not posixpath.splitext(filename)[1]:
                ext = u.guess_extension(self.mimetype)
                if ext:
                    filename += os.extsep + ext
            self._filename = filename
        return self._filename

    def _filename_from_url(self) -> str:
        name = posixpath.basename(unquote(urlsplit(self.url).path))
        return sanitize_filename(name) or FALLBACK_FILENAME

    @property
    def mimetype(self) -> str:
        if self._mimetype is None:
            self._request_head()
        return self._mimetype or u.DEFAULT_MIMETYPE

    @property
    def length(self) -> Optional[int]:
        if self._length is None:
            self._request_head()
        if self._length is None:
            self._request_body()
        return self._length

    @property
    def last_modified(self) -> datetime:
        if self._last_modified is None:
            self._request_head()
        if self._last_modified is None:
            self._last_modified = now()
        return self._last_modified

    @property
    def hash(self) -> str:
        if self._hash is None:
            self._request_body()
            with open(self._body_path, "rb") as stream:
                self._hash = u.computehash(stream)
        return self._hash

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._attributes

    def get_stream(self, context: Any = None) -> io.IOBase:
        self._request_body()
        return open(self._body_path, "rb")

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Delete the downloaded file and its directory, and close the
        session if this resource created it. Safe to call repeatedly.
        """
        if self._finalizer is not None and self._finalizer.alive:
            self._finalizer()
            logger.debug("Disposed download of %s", self.url)
        if self._owns_session and not self._disposed:
            self.session.close()
        self._disposed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.dispose()

    def __str__(self):
        return "[UrlResource {0}]".format(self.url)

    def _send(self, method: str, **kwargs) -> requests.Response:
        logger.debug("%s %s", method.upper(), self.url)
        try:
            response = self.session.request(
                method, self.url, timeout=(self.connect_timeout, None), **kwargs)
        except requests.RequestException as exc:
            raise ResourceIOError(
                'Failed to request URL "{0}".'.format(self.url)) from exc

        if not 200 <= response.status_code < 300:
            response.close()
            raise ResourceIOError('Got HTTP {0} for URL "{1}".'.format(
                response.status_code, self.url))
        return response

    def _request_head(self) -> None:
        if self._head_error is not None:
            raise self._head_error
        if self._head_requested:
            return
        self._head_requested = True

        try:
            response = self._send("head", allow_redirects=True)
        except ResourceIOError as exc:
            self._head_error = exc
            raise
        with closing(response):
            self._accept_headers(response.headers)

    def _accept_headers(self, headers) -> None:
        if self._filename is None:
            match = CONTENT_DISPOSITION_RE.search(
                headers.get("Content-Disposition", ""))
            if match:
                self._filename = sanitize_filename(match.group(1)) or None

        if self._last_modified is None:
            self._last_modified = (parse_http_date(headers.get("Last-Modified"))
                                   or parse_http_date(headers.get("Date")))

        if self._mimetype is None:
            self._mimetype = sanitize_mimetype(headers.get("Content-Type", "")) or None

        if self._length is None:
            length = headers.get("Content-Length", "").strip()
            if length.isdigit():
                self._length = int(length)

    def _request_body(self) -> None:
        if self._disposed:
            raise ResourceIOError(
                'The download of "{0}" has been disposed.'.format(self.url))
        if self._body_error is not None:
            raise self._body_error
        if self._body_requested:
            return

        try:
            self._download_body()
        except ResourceIOError as exc:
            self._body_error = exc
            raise
        self._body_requested = True

    def _download_body(self) -> None:
        path = u.create_temp_file(self.filename)
        self._body_path = path
        self._finalizer = weakref.finalize(
            self, u.remove_temp, path, os.path.dirname(path))

        response = self._send("get", stream=True)
        try:
            with closing(response), open(path, "wb") as target:
                for chunk in response.iter_content(chunk_size=u.CHUNK_SIZE):
                    target.write(chunk)
        except (requests.RequestException, OSError) as exc:
            raise ResourceIOError(
                'Failed to download URL "{0}" to "{1}".'.format(
                    self.url, path)) from exc

        if self._length is None:
            self._length = os.path.getsize(path)
        logger.debug("Downloaded %s to %s", self.url, path)
