"""Value types for WebDAV endpoints and listings."""

from dataclasses import dataclass, replace
from urllib.parse import quote


def normalize_remote_path(path: str) -> str:
    """Make sure a remote directory path starts and ends with "/".

    Examples:
        normalize_remote_path("navette")    -> "/navette/"
        normalize_remote_path(" /a/b ")     -> "/a/b/"
        normalize_remote_path("")           -> "/"
    """
    path = path.strip()
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path += "/"
    return path


@dataclass(frozen=True)
class RemoteEndpoint:
    """A remote WebDAV collection plus the credentials to reach it.

    ``remote_path`` is normalized on construction. Endpoints are never
    mutated: recursion into a sub-collection builds a new endpoint with
    ``child()``.
    """

    base_url: str
    username: str
    password: str
    remote_path: str = "/"

    def __post_init__(self):
        object.__setattr__(self, "remote_path", normalize_remote_path(self.remote_path))

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks
        return (
            f"RemoteEndpoint(base_url={self.base_url!r}, "
            f"username={self.username!r}, remote_path={self.remote_path!r})"
        )

    def child(self, name: str) -> "RemoteEndpoint":
        """Endpoint for the sub-collection ``name`` of this one."""
        return replace(self, remote_path=f"{self.remote_path}{name.strip('/')}/")

    @property
    def _root(self) -> str:
        return self.base_url.rstrip("/")

    @property
    def listing_url(self) -> str:
        """Collection URL with a trailing slash (PROPFIND target)."""
        return self._root + quote(self.remote_path, safe="/")

    @property
    def collection_url(self) -> str:
        """Collection URL without the trailing slash (MKCOL target)."""
        return self._root + quote(self.remote_path.rstrip("/"), safe="/")

    def file_url(self, filename: str) -> str:
        """URL of a file inside this collection.

        The filename is fully percent-encoded; account names may contain
        non-ASCII characters.
        """
        return self.listing_url + quote(filename, safe="")


@dataclass(frozen=True)
class ListingEntry:
    """One child of a PROPFIND listing.

    Attributes:
        name: URL-decoded leaf name.
        is_collection: True for sub-collections (directories).
    """

    name: str
    is_collection: bool = False
