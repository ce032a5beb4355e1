# -*- coding: utf-8 -*-

import os
from datetime import datetime, timezone

import pytest

from hashstorage import InvalidArgumentError, ResourceIOError, UrlResource


PLAIN_TEXT_SHA1 = "9f9443b8f3d8361541f8792562b3050f721ee534"


@pytest.fixture
def make_url(base_url, session):
    created = []

    def _make_url(path, **options):
        res = UrlResource(base_url + path, session=session, **options)
        created.append(res)
        return res

    yield _make_url

    for res in created:
        res.dispose()


def test_url_plaintext(make_url):
    res = make_url("plaintext.txt")

    assert res.mimetype == "text/plain; charset=UTF-8"
    assert res.filename == "plaintext.txt"
    assert res.length == 10
    assert res.last_modified == datetime(2015, 10, 21, 7, 28,
                                         tzinfo=timezone.utc)
    assert res.hash == PLAIN_TEXT_SHA1
    assert res.read() == b"plain text"


def test_url_lazy(make_url):
    res = make_url("does-not-exist")
    assert res.attributes == {}
    assert str(res).startswith("[UrlResource http://")


def test_url_no_content_length(make_url):
    res = make_url("foo-no-content-length")

    assert res.mimetype == "application/x-foo"
    assert res.filename == "foo-no-content-length"
    assert res.length == 3
    assert isinstance(res.last_modified, datetime)
    assert res.read() == b"foo"


@pytest.mark.parametrize(
    "path,status",
    [
        ("does-not-exist", 404),
        ("foo-error", 500),
    ],
)
def test_url_http_error(make_url, path, status):
    res = make_url(path)

    with pytest.raises(ResourceIOError, match="Got HTTP {0} for URL".format(status)):
        res.filename
    with pytest.raises(ResourceIOError, match="Got HTTP {0} for URL".format(status)):
        res.mimetype


def test_url_connection_error(session):
    res = UrlResource("http://127.0.0.1:1/plaintext.txt", session=session,
                      connect_timeout=1)

    with pytest.raises(ResourceIOError, match="Failed to request URL"):
        res.length


def test_url_overrides(make_url):
    then = datetime(2000, 1, 1, tzinfo=timezone.utc)
    res = make_url("plaintext.txt",
                   filename="dummy.foo",
                   mimetype="application/x-foo",
                   last_modified=then,
                   hash="foo",
                   attributes={"a": 1})

    assert res.filename == "dummy.foo"
    assert res.mimetype == "application/x-foo"
    assert res.last_modified == then
    assert res.hash == "foo"
    assert res.attributes == {"a": 1}
    assert res.length == 10


def test_url_attachment_filename(make_url):
    res = make_url("attachment")

    assert res.filename == "report.pdf"
    assert res.mimetype == "application/pdf"


def test_url_filename_extension_from_mimetype(make_url):
    assert make_url("noext").filename == "noext.txt"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("http://localhost/", "download"),
        ("http://localhost/..", "download"),
        ("http://localhost/a/b%20c.txt?q=1", "b c.txt"),
    ],
)
def test_url_filename_from_url(session, url, expected):
    assert UrlResource(url, session=session)._filename_from_url() == expected


@pytest.mark.parametrize(
    "url,options",
    [
        ("", {}),
        (None, {}),
        ("http://localhost/", {"connect_timeout": 0}),
        ("http://localhost/", {"colour": "red"}),
    ],
)
def test_url_invalid_arguments(url, options):
    with pytest.raises(InvalidArgumentError):
        UrlResource(url, **options)


def test_url_download(make_url, tmpdir):
    res = make_url("plaintext.txt")

    local = res.download(str(tmpdir))

    assert local.path == os.path.join(str(tmpdir), "plaintext.txt")
    assert local.mimetype == "text/plain; charset=UTF-8"
    assert local.read() == b"plain text"

    with pytest.raises(InvalidArgumentError, match="already exists"):
        res.download(str(tmpdir))


def test_url_download_as(make_url, tmpdir):
    res = make_url("plaintext.txt")
    path = str(tmpdir.join("saved"))

    local = res.download_as(path)

    assert local.path == path
    assert local.filename == "plaintext.txt"
    assert local.hash == PLAIN_TEXT_SHA1

    with pytest.raises(InvalidArgumentError):
        res.download_as(path)


def test_url_download_failure_leaves_nothing(make_url, tmpdir):
    res = make_url("does-not-exist", filename="missing.txt")

    with pytest.raises(ResourceIOError, match="Got HTTP 404"):
        res.download(str(tmpdir))

    assert tmpdir.listdir() == []


def test_url_dispose(make_url):
    res = make_url("plaintext.txt")
    stream = res.get_stream()
    stream.close()
    body_path = res._body_path

    assert os.path.isfile(body_path)

    res.dispose()
    res.dispose()

    assert res.disposed
    assert not os.path.exists(body_path)
    with pytest.raises(ResourceIOError, match="disposed"):
        res.get_stream()


def test_url_context_manager(base_url, session):
    with UrlResource(base_url + "plaintext.txt", session=session) as res:
        assert res.read() == b"plain text"
        body_path = res._body_path

    assert not os.path.exists(body_path)


def count_calls(monkeypatch, obj, name):
    calls = []
    monkeypatch.setattr(obj, name, lambda: calls.append(name))
    return calls


def test_url_dispose_closes_own_session(monkeypatch):
    res = UrlResource("http://localhost/plaintext.txt")
    calls = count_calls(monkeypatch, res.session, "close")

    res.dispose()
    res.dispose()

    assert calls == ["close"]


def test_url_dispose_keeps_given_session(monkeypatch, session):
    calls = count_calls(monkeypatch, session, "close")

    with UrlResource("http://localhost/plaintext.txt", session=session):
        pass

    assert calls == []
