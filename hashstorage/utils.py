# -*- coding: utf-8 -*-


"""
common utils for hashstorage
"""


import base64
import hashlib
import mimetypes
import os
import shutil
import tempfile
from contextlib import closing, contextmanager
from typing import List, Optional

import fs as pyfs
import fs.errors

from .exceptions import ResourceIOError


CHUNK_SIZE = 64 * 1024

DATA_URI_MAX_SIZE = 102400

DEFAULT_MIMETYPE = "application/octet-stream"

CONTENT_BASENAME = "content"

# Extensions that `mimetypes` resolves ambiguously across platforms.
PREFERRED_EXTENSIONS = {
    "text/plain": "txt",
    "text/html": "html",
    "text/javascript": "js",
    "application/javascript": "js",
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
    "audio/mpeg": "mp3",
}

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def compact(items):
    """Return only truthy elements of `items`."""
    return [item for item in items if item]


def shard(digest: str, depth: int, width: int) -> List[str]:
    # This creates a list of `depth` number of tokens with width
    # `width` from the first part of the digest.
    return compact([digest[i * width:width * (i + 1)] for i in range(depth)])


def to_bytes(text):
    if not isinstance(text, bytes):
        text = bytes(text, "utf8")
    return text


def computehash(stream, algorithm: str = "sha1") -> str:
    """Compute the lowercase hex digest of a readable binary `stream`."""
    digest = hashlib.new(algorithm)
    for data in iter(lambda: stream.read(CHUNK_SIZE), b""):
        digest.update(to_bytes(data))
    return digest.hexdigest()


def copy_stream(source, target) -> None:
    shutil.copyfileobj(source, target, CHUNK_SIZE)


def guess_type(path: str) -> str:
    """Guess the MIME type of `path` from its name."""
    mimetype, _ = mimetypes.guess_type(os.path.basename(path), strict=False)
    return mimetype or DEFAULT_MIMETYPE


def guess_extension(mimetype: Optional[str]) -> Optional[str]:
    """Return the canonical extension (without dot) for `mimetype`, or
    ``None`` if there is none.
    """
    if not mimetype:
        return None
    essence = mimetype.split(";")[0].strip().lower()
    if essence in PREFERRED_EXTENSIONS:
        return PREFERRED_EXTENSIONS[essence]
    ext = mimetypes.guess_extension(essence, strict=False)
    return ext.lstrip(".") if ext else None


def make_content_filename(mimetype: Optional[str]) -> str:
    name = CONTENT_BASENAME
    ext = guess_extension(mimetype)
    if ext:
        name += os.extsep + ext
    return name


def make_data_uri(resource, max_size: int = DATA_URI_MAX_SIZE) -> Optional[str]:
    """Return the content of `resource` as a base64 ``data:`` URI, or
    ``None`` if the resource is larger than `max_size` bytes.
    """
    length = resource.length
    if length is not None and length > max_size:
        return None
    with closing(resource.get_stream()) as stream:
        content = stream.read(max_size + 1)
    if len(content) > max_size:
        return None
    return "data:{0};base64,{1}".format(
        resource.mimetype, base64.b64encode(content).decode("ascii"))


def format_size(num_bytes: int, precision: int = 2) -> str:
    """Format a byte count for humans, e.g. ``10B`` or ``1.5KB``."""
    power = (int(num_bytes).bit_length() - 1) // 10 if num_bytes > 0 else 0
    power = min(power, len(SIZE_UNITS) - 1)
    value = round(num_bytes / (1 << (10 * power)), precision)
    text = "{0:.{1}f}".format(value, precision)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text + SIZE_UNITS[power]


def describe(resource, identity: Optional[str] = None) -> str:
    """Render ``[ClassName identity mimetype size]`` for `resource`."""
    length = resource.length
    return "[{0} {1} {2} {3}]".format(
        type(resource).__name__,
        identity if identity is not None else resource.filename,
        resource.mimetype,
        "?" if length is None else format_size(length),
    )


def create_temp_dir() -> str:
    return tempfile.mkdtemp(prefix="hashstorage-")


def create_temp_file(filename: str) -> str:
    """Create an empty file named `filename` in a fresh temp directory and
    return its path.
    """
    path = os.path.join(create_temp_dir(), filename)
    with open(path, "ab"):
        pass
    return path


def remove_temp(path: Optional[str], directory: Optional[str]) -> None:
    """Delete a temp file and the directory that holds it, along with
    anything else written into that directory.
    """
    if directory and os.path.isdir(directory):
        shutil.rmtree(directory)
    elif path and os.path.lexists(path):
        os.remove(path)


@contextmanager
def convert_fs_errors(path: str, action: str = "access"):
    """Re-raise PyFilesystem2 and OS errors as :class:`ResourceIOError`."""
    try:
        yield
    except ResourceIOError:
        raise
    except (pyfs.errors.FSError, OSError) as exc:
        raise ResourceIOError(
            'Failed to {0} "{1}".'.format(action, path)) from exc
