"""Tebex webhook signature verification."""

from __future__ import annotations

import hashlib
import hmac

import pytest

from plus_api.modules.payments.tebex.signature import (
    InvalidSignatureFormatError,
    InvalidSignatureLengthError,
    SignatureMismatchError,
    SignatureMissingError,
    compute_signature,
    verify_signature,
)

SECRET = "tebex-secret"
BODY = b'{"id":"wh-1","type":"validation.webhook","date":"2025-10-01T12:00:00+00:00","subject":{}}'


def _reference_signature(body: bytes, secret: str) -> str:
    body_hash = hashlib.sha256(body).hexdigest()
    return hmac.new(secret.encode(), body_hash.encode(), hashlib.sha256).hexdigest()


class TestComputeSignature:
    def test_hmac_over_hex_digest_of_body(self):
        assert compute_signature(BODY, SECRET) == _reference_signature(BODY, SECRET)

    def test_not_hmac_over_raw_body(self):
        raw = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert compute_signature(BODY, SECRET) != raw

    def test_lowercase_hex_of_32_bytes(self):
        sig = compute_signature(BODY, SECRET)
        assert len(sig) == 64
        assert sig == sig.lower()


class TestVerifySignature:
    def test_valid_signature_returns_body(self):
        assert verify_signature(BODY, compute_signature(BODY, SECRET), SECRET) == BODY

    def test_tampered_body(self):
        sig = compute_signature(BODY, SECRET)
        tampered = BODY.replace(b"wh-1", b"wh-2")
        with pytest.raises(SignatureMismatchError):
            verify_signature(tampered, sig, SECRET)

    def test_every_body_byte_matters(self):
        sig = compute_signature(BODY, SECRET)
        for i in range(0, len(BODY), 7):
            flipped = bytearray(BODY)
            flipped[i] ^= 0x01
            with pytest.raises(SignatureMismatchError):
                verify_signature(bytes(flipped), sig, SECRET)

    def test_flipped_signature_nibble(self):
        sig = compute_signature(BODY, SECRET)
        bad = ("1" if sig[0] != "1" else "2") + sig[1:]
        with pytest.raises(SignatureMismatchError):
            verify_signature(BODY, bad, SECRET)

    def test_wrong_secret(self):
        with pytest.raises(SignatureMismatchError):
            verify_signature(BODY, compute_signature(BODY, "other"), SECRET)

    def test_missing_header(self):
        with pytest.raises(SignatureMissingError):
            verify_signature(BODY, None, SECRET)

    def test_non_hex(self):
        with pytest.raises(InvalidSignatureFormatError):
            verify_signature(BODY, "zz" * 32, SECRET)

    def test_uppercase_hex_rejected(self):
        with pytest.raises(InvalidSignatureFormatError):
            verify_signature(BODY, compute_signature(BODY, SECRET).upper(), SECRET)

    def test_odd_length(self):
        with pytest.raises(InvalidSignatureFormatError):
            verify_signature(BODY, compute_signature(BODY, SECRET)[:-1], SECRET)

    def test_non_ascii(self):
        with pytest.raises(InvalidSignatureFormatError):
            verify_signature(BODY, "é" * 64, SECRET)

    def test_wrong_length(self):
        with pytest.raises(InvalidSignatureLengthError):
            verify_signature(BODY, compute_signature(BODY, SECRET)[:62], SECRET)

    def test_empty_secret_fails_closed(self):
        sig = compute_signature(BODY, "")
        with pytest.raises(SignatureMismatchError):
            verify_signature(BODY, sig, "")

    def test_status_codes(self):
        assert SignatureMissingError.status_code == 400
        assert InvalidSignatureFormatError.status_code == 400
        assert InvalidSignatureLengthError.status_code == 400
        assert SignatureMismatchError.status_code == 403
