"""
Request signing for the Aliyun content moderation API.

The remote service authenticates every call with an HMAC-SHA1 signature
over a canonical form of the request parameters. The construction below
must match the service byte for byte.
"""

import base64
import hashlib
import hmac
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Mapping, Optional
from urllib.parse import quote_plus

from app.core.exceptions import RequestSigningException

SIGNATURE_METHOD = "HMAC-SHA1"
SIGNATURE_VERSION = "1.0"
HTTP_METHOD = "POST"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class SignedApiCall:
    """Parameters of one remote call together with their signature."""

    params: Dict[str, str]
    canonical_query: str
    signature: str
    request_params: Dict[str, str] = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, "request_params", {**self.params, "Signature": self.signature}
        )


def percent_encode(value: str) -> str:
    """Form-encode ``value`` with spaces written as ``%20``."""
    return quote_plus(value, safe="").replace("+", "%20")


def canonicalize(params: Mapping[str, Any]) -> str:
    """
    Build the canonicalized query string.

    Args:
        params: Flat request parameters, values are stringified

    Returns:
        ``key=value`` pairs sorted by key and joined with ``&``
    """
    pairs = [
        f"{percent_encode(str(key))}={percent_encode(str(value))}"
        for key, value in sorted(params.items())
    ]
    return "&".join(pairs)


def build_string_to_sign(canonical_query: str, method: str = HTTP_METHOD) -> str:
    # %2F is the encoded resource path "/"
    return f"{method}&%2F&{quote_plus(canonical_query, safe='')}"


def compute_signature(string_to_sign: str, access_key_secret: str) -> str:
    digest = hmac.new(
        f"{access_key_secret}&".encode("utf-8"),
        string_to_sign.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def sign_request(params: Mapping[str, Any], access_key_secret: str) -> SignedApiCall:
    """
    Sign a set of request parameters.

    Args:
        params: Request parameters without a ``Signature`` entry
        access_key_secret: Secret half of the access key

    Returns:
        SignedApiCall ready to be sent

    Raises:
        RequestSigningException: If the secret is missing or a value cannot be encoded
    """
    if not access_key_secret:
        raise RequestSigningException("Access key secret is not configured")

    try:
        normalized = {str(key): str(value) for key, value in params.items()}
        canonical_query = canonicalize(normalized)
        signature = compute_signature(build_string_to_sign(canonical_query), access_key_secret)
    except (TypeError, UnicodeError) as e:
        raise RequestSigningException(f"Failed to sign request: {e}") from e

    return SignedApiCall(params=normalized, canonical_query=canonical_query, signature=signature)


def build_common_params(
    action: str,
    version: str,
    access_key_id: str,
    timestamp: Optional[datetime] = None,
    nonce: Optional[str] = None,
) -> Dict[str, str]:
    """Public parameters shared by every RPC-style call."""
    timestamp = timestamp or datetime.now(timezone.utc)
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return {
        "Action": action,
        "Version": version,
        "AccessKeyId": access_key_id,
        "Format": "JSON",
        "SignatureMethod": SIGNATURE_METHOD,
        "Timestamp": timestamp.strftime(TIMESTAMP_FORMAT),
        "SignatureVersion": SIGNATURE_VERSION,
        "SignatureNonce": nonce or str(uuid.uuid4()),
    }


def encode_service_parameters(service_parameters: Mapping[str, Any]) -> str:
    return json.dumps(dict(service_parameters), separators=(",", ":"), ensure_ascii=False)
