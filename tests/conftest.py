"""Pytest configuration - loads .env for live tests and provides a fake API server."""

import re
import socket
import threading
from dataclasses import dataclass, field
from email.message import Message
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

API_PREFIX = "/issuetracker/api/v2/"


# =============================================================================
# Fake API server
# =============================================================================


@dataclass
class RecordedRequest:
    """A request as received by the fake server."""

    method: str
    path: str
    headers: Message
    body: bytes

    @property
    def relative_path(self) -> str:
        """Path with the API prefix removed."""
        return self.path[len(API_PREFIX) :] if self.path.startswith(API_PREFIX) else self.path


@dataclass
class CannedResponse:
    status: int = 200
    body: bytes = b'{"ok": true}'
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json; charset=utf-8"})


class FakeServer:
    """Local HTTP server that records requests and replays canned responses."""

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self._responses: list[CannedResponse] = []
        self._lock = threading.Lock()
        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), self._make_handler())
        self.httpd.daemon_threads = True
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}{API_PREFIX}"

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]

    def respond(
        self,
        status: int = 200,
        body: str | bytes = '{"ok": true}',
        headers: dict[str, str] | None = None,
    ) -> None:
        """Queue a response for the next request."""
        data = body.encode("utf-8") if isinstance(body, str) else body
        canned = CannedResponse(status=status, body=data)
        if headers is not None:
            canned.headers = headers
        with self._lock:
            self._responses.append(canned)

    def _next_response(self) -> CannedResponse:
        with self._lock:
            return self._responses.pop(0) if self._responses else CannedResponse()

    def _make_handler(self):
        server = self

        class Handler(BaseHTTPRequestHandler):
            protocol_version = "HTTP/1.1"

            def _handle(self) -> None:
                length = int(self.headers.get("Content-Length") or 0)
                body = self.rfile.read(length) if length else b""
                with server._lock:
                    server.requests.append(RecordedRequest(self.command, self.path, self.headers, body))

                canned = server._next_response()
                self.send_response(canned.status)
                for key, value in canned.headers.items():
                    self.send_header(key, value)
                self.send_header("Content-Length", str(len(canned.body)))
                self.end_headers()
                self.wfile.write(canned.body)

            do_GET = _handle
            do_POST = _handle
            do_PUT = _handle
            do_DELETE = _handle

            def log_message(self, format, *args):  # noqa: A002
                pass

        return Handler

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture
def fake_server():
    """Fake DoneDone API running in a background thread."""
    server = FakeServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, request):
    """Keep real credentials away from unit tests."""
    if request.node.get_closest_marker("live"):
        return
    for name in (
        "DONEDONE_SUBDOMAIN",
        "DONEDONE_USERNAME",
        "DONEDONE_API_TOKEN",
        "DONEDONE_BASE_URL",
        "DONEDONE_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Multipart parsing (inverse of the client's framing)
# =============================================================================


@dataclass
class Part:
    headers: dict[str, str]
    content: bytes

    @property
    def disposition(self) -> dict[str, str]:
        return dict(re.findall(r'(\w+)="([^"]*)"', self.headers.get("Content-Disposition", "")))

    @property
    def name(self) -> str | None:
        return self.disposition.get("name")

    @property
    def filename(self) -> str | None:
        return self.disposition.get("filename")


def parse_multipart(body: bytes, boundary: str) -> list[Part]:
    """Split a body produced by MultipartBody back into its parts."""
    delimiter = b"\r\n--" + boundary.encode("utf-8")
    closing = delimiter + b"--"
    assert body.endswith(closing), "body must end with the closing delimiter"

    sections = body[: -len(closing)].split(delimiter)
    assert sections[0] == b"", "nothing may precede the first delimiter"

    parts = []
    for section in sections[1:]:
        assert section.startswith(b"\r\n")
        head, sep, content = section[2:].partition(b"\r\n\r\n")
        assert sep, "part headers must end with a blank line"
        headers = dict(line.split(": ", 1) for line in head.decode("utf-8").split("\r\n"))
        parts.append(Part(headers, content))
    return parts


def boundary_of(content_type: str) -> str:
    match = re.match(r"multipart/form-data; boundary=(.+)$", content_type)
    assert match, f"not a multipart content type: {content_type}"
    return match.group(1)


@pytest.fixture
def multipart():
    """Multipart helpers: ``multipart.parse(body, boundary)``, ``multipart.boundary_of(ct)``."""

    class Helpers:
        parse = staticmethod(parse_multipart)
        boundary_of = staticmethod(boundary_of)

    return Helpers
