"""Two-step HMAC-SHA256 signing for launch-data credentials.

The protocol is fixed by the issuing platform:

1. ``derived_key = HMAC_SHA256(key=b"WebAppData", msg=secret)``, raw digest.
2. ``hash = hex(HMAC_SHA256(key=derived_key, msg=check_string))``.

The intermediate key must stay in raw bytes. Feeding its hex form into the
second step produces signatures nobody else will accept.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Iterable

from resigner.core.credential import (
    HASH_FIELD,
    Pair,
    build_check_string,
    encode_credential,
    parse_credential,
    split_signature,
)

KEY_DERIVATION_LABEL = b"WebAppData"


def _to_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def derive_key(secret: str | bytes) -> bytes:
    """Derive the signing key for ``secret`` (raw 32-byte digest)."""
    return hmac.new(KEY_DERIVATION_LABEL, _to_bytes(secret), hashlib.sha256).digest()


def sign(check_string: str, derived_key: bytes) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``check_string``."""
    return hmac.new(derived_key, check_string.encode("utf-8"), hashlib.sha256).hexdigest()


def verify(check_string: str, derived_key: bytes, candidate: str) -> bool:
    """Check ``candidate`` against the signature of ``check_string``.

    Uses a constant-time comparison. Candidates that are not ASCII strings
    can never match and are rejected without raising.
    """
    if not isinstance(candidate, str) or not candidate.isascii():
        return False
    return hmac.compare_digest(sign(check_string, derived_key), candidate)


def sign_credential(pairs: Iterable[Pair], secret: str | bytes) -> str:
    """Sign ``pairs`` under ``secret`` and return the wire form.

    Any existing ``hash`` pair is dropped; the new one is appended last.
    """
    rest, _ = split_signature(pairs)
    signature = sign(build_check_string(rest), derive_key(secret))
    return encode_credential([*rest, (HASH_FIELD, signature)])


def verify_credential(raw: str, secret: str | bytes) -> bool:
    """Verify a wire-form credential against ``secret``.

    Raises:
        MalformedInputError: ``raw`` cannot be decoded.
    """
    rest, signature = split_signature(parse_credential(raw))
    return verify(build_check_string(rest), derive_key(secret), signature)
