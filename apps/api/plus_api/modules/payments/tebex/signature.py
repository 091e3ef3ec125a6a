"""
Tebex webhook signature verification.

Scheme (bit-exact, provider-defined):
    X-Signature = hex(HMAC-SHA256(key=secret, msg=hex(SHA256(raw_body))))

The body must be the bytes as received; re-serialized JSON will not verify.
Every failure is its own error class so the router can map it to a status.
"""
from __future__ import annotations

import hashlib
import hmac
import string
from typing import Optional

from plus_api.core.errors import ApiError
from plus_api.core.logs import emit

SIGNATURE_HEADER = "X-Signature"
SHA256_BYTES = 256 // 8

_LOWER_HEX = frozenset(string.digits + "abcdef")


class WebhookValidationError(ApiError):
    status_code = 400
    error = "invalid_webhook"


class SignatureMissingError(WebhookValidationError):
    error = "signature_missing"


class InvalidSignatureFormatError(WebhookValidationError):
    error = "invalid_signature_format"


class InvalidSignatureLengthError(WebhookValidationError):
    error = "invalid_signature_length"


class SignatureMismatchError(WebhookValidationError):
    status_code = 403
    error = "signature_mismatch"


def compute_signature(body: bytes, secret: str) -> str:
    body_hash = hashlib.sha256(body).hexdigest().encode("ascii")
    return hmac.new(secret.encode("utf-8"), body_hash, hashlib.sha256).hexdigest()


def _decode_signature(signature: str) -> bytes:
    if not signature.isascii():
        raise InvalidSignatureFormatError(f"{SIGNATURE_HEADER} header not valid ASCII")
    if not set(signature) <= _LOWER_HEX or len(signature) % 2 != 0:
        raise InvalidSignatureFormatError("provided signature string was incorrectly formatted as hex")
    decoded = bytes.fromhex(signature)
    if len(decoded) != SHA256_BYTES:
        raise InvalidSignatureLengthError(
            f"provided signature decodes to {len(decoded)} bytes, expected {SHA256_BYTES}",
        )
    return decoded


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bytes:
    """Return body unchanged when the signature authenticates it, raise otherwise."""
    if signature is None:
        raise SignatureMissingError(f"{SIGNATURE_HEADER} header missing")

    decoded = _decode_signature(signature)

    if not secret:
        emit("warning", "payments.webhook.secret_missing", "TEBEX_WEBHOOK_SECRET not set - rejecting webhook", __name__)
        raise SignatureMismatchError("validation with HMAC failed")

    expected = bytes.fromhex(compute_signature(body, secret))
    if not hmac.compare_digest(expected, decoded):
        raise SignatureMismatchError("validation with HMAC failed")
    return body
