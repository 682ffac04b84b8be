"""WebDAV transport and PROPFIND listing parser.

Usage:
    from navette.webdav import RemoteEndpoint, WebDavClient

    endpoint = RemoteEndpoint("https://dav.example.com/dav", "me", "secret", "navette")
    async with WebDavClient() as client:
        await client.ensure_collection(endpoint)
        await client.upload(endpoint, "work.json", content)
"""

from .client import WebDavClient
from .listing import parse_multistatus
from .models import ListingEntry, RemoteEndpoint, normalize_remote_path

__all__ = [
    "WebDavClient",
    "ListingEntry",
    "RemoteEndpoint",
    "normalize_remote_path",
    "parse_multistatus",
]
