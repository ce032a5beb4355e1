# -*- coding: utf-8 -*-

import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests


DATA_DIR = os.path.join(os.path.dirname(__file__), "data")

LAST_MODIFIED = "Wed, 21 Oct 2015 07:28:00 GMT"


class ResourceHandler(BaseHTTPRequestHandler):
    """Serves the routes used by the URL resource tests."""

    def do_HEAD(self):
        self.respond(body=False)

    def do_GET(self):
        self.respond(body=True)

    def respond(self, body):
        route = self.path.split("?")[0]

        if route == "/plaintext.txt":
            with open(os.path.join(DATA_DIR, "plaintext.txt"), "rb") as fileobj:
                content = fileobj.read()
            self.send(200, content, body, {
                "Content-Type": "text/plain; charset=UTF-8",
                "Last-Modified": LAST_MODIFIED,
            })
        elif route == "/attachment":
            self.send(200, b"%PDF-1.4", body, {
                "Content-Type": "application/pdf",
                "Content-Disposition": 'attachment; filename="report.pdf"',
            })
        elif route == "/noext":
            self.send(200, b"no extension", body, {
                "Content-Type": "text/plain",
            })
        elif route == "/foo-no-content-length":
            self.send(200, b"foo", body, {
                "Content-Type": "application/x-foo",
            }, content_length=False)
        elif route == "/foo-error":
            self.send(500, b"foo", body, {"Content-Type": "text/plain"})
        else:
            self.send(404, b"not found", body, {"Content-Type": "text/plain"})

    def send(self, status, content, body, headers, content_length=True):
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        if content_length:
            self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        if body:
            self.wfile.write(content)

    def log_message(self, format, *args):
        pass


@pytest.fixture(scope="session")
def base_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), ResourceHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield "http://127.0.0.1:{0}/".format(server.server_address[1])

    server.shutdown()
    server.server_close()


@pytest.fixture
def session():
    # Keep proxy settings from the environment away from the local server.
    sess = requests.Session()
    sess.trust_env = False
    yield sess
    sess.close()


@pytest.fixture
def plaintext_path():
    return os.path.join(DATA_DIR, "plaintext.txt")
