"""Exception types raised by navette.

Library code raises these; the sync engine turns per-item failures into
entries of ``SyncResult.errors`` and the CLI prints them.
"""


class NavetteError(Exception):
    """Base class for all navette errors."""


class MalformedToken(NavetteError):
    """A JWT could not be split, base64-decoded or parsed as JSON."""


class InvalidCredentialFormat(NavetteError):
    """A credential file does not match the expected auth.json schema."""


class LocalIOError(NavetteError):
    """Reading or writing a local file failed."""


class TransportError(NavetteError):
    """Network-level failure: connection refused, DNS, timeout."""


class RemoteStatusError(NavetteError):
    """The server answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationError(RemoteStatusError):
    """The server rejected our credentials (HTTP 401)."""


class TokenRefreshRejected(NavetteError):
    """The identity provider refused a refresh token with a known error code.

    These are terminal: the user has to sign in again outside navette.
    """

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code
