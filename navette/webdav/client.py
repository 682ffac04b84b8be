"""Async WebDAV client.

Wraps ``httpx.AsyncClient`` with the four verbs navette needs: PUT, GET,
PROPFIND and MKCOL. Every call takes a RemoteEndpoint, which carries both
the target collection and the Basic auth credentials.

Timeouts are longer than a typical API client: some WebDAV providers are
slow to answer PROPFIND on large collections.
"""

import logging

import httpx

from navette.errors import AuthenticationError, RemoteStatusError, TransportError

from .listing import parse_multistatus
from .models import ListingEntry, RemoteEndpoint

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 15.0
TOTAL_TIMEOUT = 60.0

UPLOAD_CONTENT_TYPE = "application/json; charset=utf-8"

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<propfind xmlns="DAV:"><prop><displayname/><resourcetype/></prop></propfind>'
)

# MKCOL answers that mean the collection is there afterwards.
# 405: already exists, 301: server redirects to the existing collection.
MKCOL_OK_STATUSES = {201, 301, 405}


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class WebDavClient:
    """WebDAV client for one sync or refresh run.

    Use as an async context manager so the connection pool is closed:

        async with WebDavClient() as client:
            entries = await client.list(endpoint)

    Failures raise:
    - TransportError for network errors and timeouts
    - AuthenticationError for HTTP 401
    - RemoteStatusError for any other unexpected status
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the client.

        Args:
            transport: Optional httpx transport (tests pass a MockTransport).

        Raises:
            TransportError: If the HTTP client cannot be created.
        """
        try:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(TOTAL_TIMEOUT, connect=CONNECT_TIMEOUT),
                transport=transport,
                follow_redirects=False,
            )
        except Exception as e:
            raise TransportError(f"cannot create WebDAV client: {e}") from e

    async def __aenter__(self) -> "WebDavClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        endpoint: RemoteEndpoint,
        headers: dict[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> httpx.Response:
        """Send one authenticated request; only network errors raise here."""
        logger.debug("%s %s", method, url)
        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                content=content,
                auth=httpx.BasicAuth(endpoint.username, endpoint.password),
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    @staticmethod
    def _status_error(action: str, response: httpx.Response) -> RemoteStatusError:
        status = response.status_code
        message = f"{action} failed: HTTP {status}"
        if status == 401:
            return AuthenticationError(message, status, response.text)
        return RemoteStatusError(message, status, response.text)

    async def upload(
        self, endpoint: RemoteEndpoint, filename: str, content: str | bytes
    ) -> None:
        """PUT a file into the endpoint's collection."""
        response = await self._request(
            "PUT",
            endpoint.file_url(filename),
            endpoint,
            headers={"Content-Type": UPLOAD_CONTENT_TYPE},
            content=content,
        )
        if not _is_success(response.status_code):
            raise self._status_error("upload", response)

    async def _get(self, endpoint: RemoteEndpoint, filename: str) -> httpx.Response:
        response = await self._request(
            "GET",
            endpoint.file_url(filename),
            endpoint,
            headers={"Accept": "*/*"},
        )
        if not _is_success(response.status_code):
            raise self._status_error("download", response)

        logger.debug("downloaded %s (%d bytes)", filename, len(response.content))
        return response

    async def download_bytes(self, endpoint: RemoteEndpoint, filename: str) -> bytes:
        """GET a file from the endpoint's collection as raw bytes."""
        response = await self._get(endpoint, filename)
        return response.content

    async def download(self, endpoint: RemoteEndpoint, filename: str) -> str:
        """GET a file from the endpoint's collection as UTF-8 text.

        Raises:
            RemoteStatusError: If the content is not valid UTF-8.
        """
        response = await self._get(endpoint, filename)
        try:
            return response.content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RemoteStatusError(
                f"download failed: {filename} is not UTF-8 text",
                response.status_code,
            ) from e

    async def list(self, endpoint: RemoteEndpoint, depth: int = 1) -> list[ListingEntry]:
        """List the children of the endpoint's collection with PROPFIND.

        Returns:
            Child entries; the collection itself is not included.
        """
        response = await self._request(
            "PROPFIND",
            endpoint.listing_url,
            endpoint,
            headers={
                "Depth": str(depth),
                "Content-Type": "application/xml; charset=utf-8",
                "Accept": "*/*",
            },
            content=PROPFIND_BODY,
        )
        # 207 Multi-Status is the normal answer; any 2xx is tolerated
        if not _is_success(response.status_code):
            raise self._status_error("list", response)

        entries = parse_multistatus(response.text)
        logger.debug("listed %s: %d entries", endpoint.remote_path, len(entries))
        return entries

    async def ensure_collection(self, endpoint: RemoteEndpoint) -> None:
        """Create the endpoint's collection if it does not exist yet.

        "Already exists" answers (405, 301) count as success, so calling
        this twice is harmless.
        """
        response = await self._request("MKCOL", endpoint.collection_url, endpoint)
        status = response.status_code
        if status in MKCOL_OK_STATUSES or _is_success(status):
            return
        raise self._status_error("create directory", response)

    async def probe(self, endpoint: RemoteEndpoint) -> int:
        """PROPFIND the collection with Depth: 0 and return the HTTP status."""
        response = await self._request(
            "PROPFIND",
            endpoint.listing_url,
            endpoint,
            headers={"Depth": "0"},
        )
        return response.status_code
