# -*- coding: utf-8 -*-

from datetime import datetime, timezone
from io import BytesIO

import pytest

from hashstorage import (FileResource, InvalidArgumentError, Resource,
                         TemporaryFileResource, UrlResource)


PLAIN_TEXT_SHA1 = "9f9443b8f3d8361541f8792562b3050f721ee534"


def plaintext_stream():
    return BytesIO(b"plain text")


@pytest.mark.parametrize(
    "options",
    [
        {},
        {"mimetype": "text/plain"},
        {"filename": "plaintext.txt"},
        {"filename": "plaintext.txt", "mimetype": "text/plain"},
    ],
)
def test_resource_missing_options(options):
    with pytest.raises(InvalidArgumentError):
        Resource(**options)


def test_resource_content():
    res = Resource(filename="plaintext.txt",
                   mimetype="text/plain",
                   content="plain text")

    assert res.length == 10
    assert res.hash == PLAIN_TEXT_SHA1
    assert res.get_stream().read() == b"plain text"
    assert res.mimetype == "text/plain"
    assert res.filename == "plaintext.txt"
    assert res.attributes == {}


def test_resource_content_length_is_byte_length():
    res = Resource(filename="u.txt", mimetype="text/plain", content=u"ä")
    assert res.length == 2


def test_resource_stream():
    res = Resource(filename="plaintext.txt",
                   mimetype="text/plain",
                   stream=plaintext_stream,
                   length=10)

    assert res.length == 10
    assert res.hash == PLAIN_TEXT_SHA1
    assert res.get_stream().read() == b"plain text"


def test_resource_stream_is_repeatable():
    res = Resource(filename="plaintext.txt",
                   mimetype="text/plain",
                   stream=plaintext_stream,
                   length=10)

    assert res.read() == b"plain text"
    assert res.hash == PLAIN_TEXT_SHA1
    assert res.read() == b"plain text"


def test_resource_stream_receives_context():
    contexts = []

    def stream(context):
        contexts.append(context)
        return plaintext_stream()

    res = Resource(filename="a.txt", mimetype="text/plain", stream=stream,
                   length=10)
    res.get_stream("ctx").close()

    assert contexts == ["ctx"]


def test_resource_stream_missing_length():
    with pytest.raises(InvalidArgumentError):
        Resource(filename="plaintext.txt",
                 mimetype="text/plain",
                 stream=plaintext_stream)


def test_resource_stream_and_content_exclusive():
    with pytest.raises(InvalidArgumentError, match="mutually exclusive"):
        Resource(filename="plaintext.txt",
                 mimetype="text/plain",
                 content="plain text",
                 stream=plaintext_stream,
                 length=10)


def test_resource_stream_must_return_readable():
    res = Resource(filename="a.txt", mimetype="text/plain",
                   stream=lambda: b"bytes", length=5)

    with pytest.raises(InvalidArgumentError):
        res.get_stream()


def test_resource_unknown_option():
    with pytest.raises(InvalidArgumentError, match='Unknown options "colour"'):
        Resource(filename="a.txt", mimetype="text/plain", content="a",
                 colour="red")


@pytest.mark.parametrize("length", [-1, "10", 1.5, True])
def test_resource_invalid_length(length):
    with pytest.raises(InvalidArgumentError):
        Resource(filename="a.txt", mimetype="text/plain",
                 stream=plaintext_stream, length=length)


def test_resource_last_modified():
    then = datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)
    res = Resource(filename="a.txt", mimetype="text/plain", content="a",
                   last_modified=then)

    assert res.last_modified == then


def test_resource_last_modified_defaults_to_now():
    before = datetime.now(timezone.utc)
    res = Resource(filename="a.txt", mimetype="text/plain", content="a")

    assert res.last_modified >= before


def test_resource_invalid_last_modified():
    with pytest.raises(InvalidArgumentError):
        Resource(filename="a.txt", mimetype="text/plain", content="a",
                 last_modified="2015-10-21")


def test_resource_hash_override():
    res = Resource(filename="a.txt", mimetype="text/plain", content="a",
                   hash="31bc5c2b8fd4f20cd747347b7504a385")

    assert res.hash == "31bc5c2b8fd4f20cd747347b7504a385"


def test_resource_filename_sanitized():
    res = Resource(filename="../bad\n\0.txt", mimetype="text/plain",
                   content="a")

    assert res.filename == "bad.txt"


def test_resource_attributes_copied():
    attributes = {"owner": "alice"}
    res = Resource(filename="a.txt", mimetype="text/plain", content="a",
                   attributes=attributes)
    attributes["owner"] = "bob"

    assert res.attributes == {"owner": "alice"}


def test_resource_str():
    res = Resource(filename="plaintext.txt", mimetype="text/plain",
                   content="plain text")

    assert str(res) == "[Resource plaintext.txt text/plain 10B]"


def test_resource_factories(plaintext_path, session):
    assert isinstance(Resource.from_file(plaintext_path), FileResource)
    assert isinstance(Resource.from_url("http://localhost/", session=session),
                      UrlResource)

    temp = Resource.create_temp("foo.txt", "text/plain")
    try:
        assert isinstance(temp, TemporaryFileResource)
    finally:
        temp.dispose()


def test_resource_attributes_not_serializable():
    with pytest.raises(InvalidArgumentError, match="JSON serializable"):
        Resource(filename="a.txt", mimetype="text/plain", content="x",
                 attributes={"when": datetime(2020, 1, 1)})


def test_resource_mimetype_empty_after_sanitizing():
    with pytest.raises(InvalidArgumentError, match="empty after sanitizing"):
        Resource(filename="a.txt", mimetype="\x01\x02", content="x")
