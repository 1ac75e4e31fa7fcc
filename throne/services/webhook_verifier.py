"""
Payment webhook authenticity.

Signature header format: ``t=<unix seconds>,v1=<hex digest>[,v1=...]``
where each digest is HMAC-SHA256 over ``"<t>." + raw body`` keyed with the
endpoint secret.
"""

import json
import logging
import time
from typing import Any, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from throne.exceptions import AuthenticityError, MalformedEventError

logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "v1"


def _mac(payload: bytes, secret: str, timestamp: int) -> hmac.HMAC:
    mac = hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())
    mac.update(f"{timestamp}.".encode("utf-8") + payload)
    return mac


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    return _mac(payload, secret, timestamp).finalize().hex()


def build_signature_header(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Header value a processor would send for this payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(payload, secret, timestamp)}"


def _parse_header(header: str) -> tuple[int, list[bytes]]:
    timestamp: Optional[int] = None
    signatures: list[bytes] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise AuthenticityError("Malformed signature timestamp")
        elif key == SIGNATURE_SCHEME:
            try:
                signatures.append(bytes.fromhex(value))
            except ValueError:
                continue
    if timestamp is None:
        raise AuthenticityError("Signature header has no timestamp")
    if not signatures:
        raise AuthenticityError(f"Signature header has no {SIGNATURE_SCHEME} signature")
    return timestamp, signatures


def verify_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance_seconds: int = 300,
    now: Optional[float] = None,
) -> None:
    """Raise AuthenticityError unless one signature matches within the tolerance window."""
    if not secret:
        raise AuthenticityError("Webhook secret is not configured")
    if not header:
        raise AuthenticityError("Missing signature header")

    timestamp, signatures = _parse_header(header)

    current = time.time() if now is None else now
    if tolerance_seconds > 0 and abs(current - timestamp) > tolerance_seconds:
        raise AuthenticityError("Signature timestamp outside tolerance window")

    for signature in signatures:
        try:
            _mac(payload, secret, timestamp).verify(signature)
            return
        except InvalidSignature:
            continue

    raise AuthenticityError("No signature matches the payload")


def construct_event(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance_seconds: int = 300,
) -> dict[str, Any]:
    """Verify then decode a webhook body."""
    verify_signature(payload, header, secret, tolerance_seconds)
    try:
        event = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedEventError(f"Webhook body is not JSON: {e}") from e
    if not isinstance(event, dict) or "type" not in event:
        raise MalformedEventError("Webhook body is not an event object")
    return event
