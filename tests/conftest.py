"""Shared fixtures: an in-memory WebDAV server behind httpx.MockTransport."""

import base64
import json
from urllib.parse import quote

import httpx
import pytest

from navette.webdav import RemoteEndpoint, WebDavClient

BASE_URL = "https://dav.test/dav"
USERNAME = "user"
PASSWORD = "secret"


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0]


class FakeDav:
    """Minimal WebDAV server keeping collections and files in memory.

    Paths are stored decoded and without a trailing slash, e.g.
    "/dav/navette/codex". ``failures`` maps (method, path) to a status code
    returned instead of the normal answer.
    """

    def __init__(self):
        self.collections: set[str] = {"/dav"}
        self.files: dict[str, bytes] = {}
        self.failures: dict[tuple[str, str], int] = {}
        self.requests: list[httpx.Request] = []

    def _authorized(self, request: httpx.Request) -> bool:
        token = base64.b64encode(f"{USERNAME}:{PASSWORD}".encode()).decode()
        return request.headers.get("Authorization") == f"Basic {token}"

    def _multistatus(self, path: str, depth: str) -> str:
        def response(href: str, is_collection: bool) -> str:
            resource = "<d:collection/>" if is_collection else ""
            return (
                f"<d:response><d:href>{quote(href)}</d:href><d:propstat><d:prop>"
                f"<d:resourcetype>{resource}</d:resourcetype>"
                f"</d:prop><d:status>HTTP/1.1 200 OK</d:status></d:propstat></d:response>"
            )

        parts = [response(path + "/", True)]
        if depth != "0":
            for child in sorted(self.collections):
                if child != path and _parent(child) == path:
                    parts.append(response(child + "/", True))
            for child in sorted(self.files):
                if _parent(child) == path:
                    parts.append(response(child, False))

        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            '<d:multistatus xmlns:d="DAV:">' + "".join(parts) + "</d:multistatus>"
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if not self._authorized(request):
            return httpx.Response(401)

        method = request.method
        path = request.url.path.rstrip("/")

        forced = self.failures.get((method, path))
        if forced is not None:
            return httpx.Response(forced, text="forced failure")

        if method == "MKCOL":
            if path in self.collections:
                return httpx.Response(405)
            if _parent(path) not in self.collections:
                return httpx.Response(409)
            self.collections.add(path)
            return httpx.Response(201)

        if method == "PUT":
            if _parent(path) not in self.collections:
                return httpx.Response(409)
            existed = path in self.files
            self.files[path] = request.content
            return httpx.Response(204 if existed else 201)

        if method == "GET":
            if path not in self.files:
                return httpx.Response(404)
            return httpx.Response(200, content=self.files[path])

        if method == "PROPFIND":
            if path not in self.collections:
                return httpx.Response(404)
            depth = request.headers.get("Depth", "1")
            return httpx.Response(207, text=self._multistatus(path, depth))

        return httpx.Response(405)

    def put_file(self, path: str, content: bytes | str) -> None:
        """Seed a file, creating its parent collections."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        parent = _parent(path)
        while parent and parent not in self.collections:
            self.collections.add(parent)
            parent = _parent(parent)
        self.files[path] = content


@pytest.fixture
def fake_dav() -> FakeDav:
    """Empty in-memory WebDAV server."""
    return FakeDav()


@pytest.fixture
def dav_client(fake_dav: FakeDav) -> WebDavClient:
    """WebDavClient wired to the fake server."""
    return WebDavClient(transport=httpx.MockTransport(fake_dav.handler))


@pytest.fixture
def endpoint() -> RemoteEndpoint:
    """Endpoint for /dav/navette/ on the fake server."""
    return RemoteEndpoint(BASE_URL, USERNAME, PASSWORD, "navette")


def make_jwt(claims: dict) -> str:
    """Build an unsigned JWT with the given payload."""

    def segment(data: dict) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return f"{segment({'alg': 'none'})}.{segment(claims)}.signature"


def make_credential(account_id: str = "acct-1", email: str = "me@example.com") -> dict:
    """Credential file content (auth.json format) for tests."""
    id_token = make_jwt(
        {
            "email": email,
            "exp": 1767225600,
            "https://api.openai.com/auth": {
                "chatgpt_plan_type": "plus",
                "chatgpt_subscription_active_until": "2026-12-31",
            },
        }
    )
    return {
        "OPENAI_API_KEY": None,
        "last_refresh": "2025-01-01T00:00:00Z",
        "tokens": {
            "access_token": "access-old",
            "account_id": account_id,
            "id_token": id_token,
            "refresh_token": "refresh-old",
        },
    }
