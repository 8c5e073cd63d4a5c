import hashlib
import hmac
import json
import logging
import secrets

from walletpass.core.config import settings

logger = logging.getLogger(__name__)

HASH_PREFIX = "hash_"
SIGNATURE_PREFIX = "sig_"
MARKER_LENGTH = 32

_EXCLUDED_FIELDS = {"hash", "signature"}


def hash_event(record: dict) -> str:
    """
    Compute a fresh integrity marker for a pass record.

    The digest covers the canonical JSON of the record (minus any previous
    markers) plus a random nonce, so every call yields a new value even when
    the record did not change.
    """
    payload = {k: v for k, v in record.items() if k not in _EXCLUDED_FIELDS}
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    nonce = secrets.token_hex(8)
    digest = hashlib.sha256(f"{canonical}:{nonce}".encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest[:MARKER_LENGTH]}"


def sign_credential(hash_value: str, secret: str | None = None) -> str:
    """Derive the signature marker for a hash marker."""
    key = (secret or settings.integrity_secret).encode("utf-8")
    mac = hmac.new(key, hash_value.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{mac[:MARKER_LENGTH]}"


def verify_signature(hash_value: str, signature: str, secret: str | None = None) -> bool:
    return hmac.compare_digest(sign_credential(hash_value, secret), signature)


def generate_auth_token() -> str:
    """Generate the per-pass token Apple Wallet sends back to the web service."""
    return secrets.token_hex(16)


def verify_auth_token(authorization: str | None) -> str | None:
    """Extract auth token from Authorization header (Apple Wallet passes)."""
    if not authorization:
        return None
    if authorization.startswith("ApplePass "):
        return authorization[10:]
    return None
