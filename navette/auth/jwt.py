"""JWT payload decoding.

Only the payload (middle) segment is decoded. Signatures are NOT verified:
the tokens come from the same OAuth flow that wrote the credential file,
and the claims are only used for display (email, plan, expiry).
"""

import base64
import binascii
import json
from dataclasses import dataclass

from navette.errors import MalformedToken

# Custom claim namespace used by the OpenAI identity provider
AUTH_CLAIM = "https://api.openai.com/auth"

UNKNOWN_EMAIL = "unknown"
UNKNOWN_PLAN = "unknown"

# Padding needed for each possible remainder of len(payload) % 4.
# A remainder of 1 can never come out of a valid base64 encoding.
_PADDING = {0: 0, 2: 2, 3: 1}


@dataclass(frozen=True)
class AccountIdentity:
    """Identity details derived from an id token.

    Attributes:
        email: Account email, or "unknown".
        plan_type: Subscription plan (e.g. "plus", "pro"), or "unknown".
        subscription_end: ISO date the subscription is active until.
        expires_at: Token expiry as a Unix timestamp.
    """

    email: str = UNKNOWN_EMAIL
    plan_type: str = UNKNOWN_PLAN
    subscription_end: str | None = None
    expires_at: int | None = None


def decode_jwt_payload(token: str) -> dict:
    """Decode the payload segment of a compact JWT.

    Args:
        token: Token in ``header.payload.signature`` form.

    Returns:
        The payload claims.

    Raises:
        MalformedToken: On any failure (wrong segment count, bad padding,
            invalid base64, payload not a JSON object).
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedToken(f"expected 3 segments, got {len(parts)}")

    payload = parts[1].replace("-", "+").replace("_", "/")

    padding = _PADDING.get(len(payload) % 4)
    if padding is None:
        raise MalformedToken("invalid base64 length in payload")

    try:
        decoded = base64.b64decode(payload + "=" * padding, validate=True)
        claims = json.loads(decoded)
    except (binascii.Error, ValueError) as e:
        raise MalformedToken(f"cannot decode payload: {e}") from e

    if not isinstance(claims, dict):
        raise MalformedToken("payload is not a JSON object")

    return claims


def extract_identity(id_token: str) -> AccountIdentity:
    """Read email, plan and expiry from an id token.

    A token that cannot be decoded yields the "unknown" identity rather
    than an error.
    """
    try:
        claims = decode_jwt_payload(id_token)
    except MalformedToken:
        return AccountIdentity()

    auth_data = claims.get(AUTH_CLAIM)
    if not isinstance(auth_data, dict):
        auth_data = {}

    expires_at = claims.get("exp")
    # bool is an int subclass
    if not isinstance(expires_at, int) or isinstance(expires_at, bool):
        expires_at = None

    subscription_end = auth_data.get("chatgpt_subscription_active_until")

    return AccountIdentity(
        email=str(claims.get("email") or UNKNOWN_EMAIL),
        plan_type=str(auth_data.get("chatgpt_plan_type") or UNKNOWN_PLAN),
        subscription_end=subscription_end if isinstance(subscription_end, str) else None,
        expires_at=expires_at,
    )
