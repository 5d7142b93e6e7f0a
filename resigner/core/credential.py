"""Credential wire codec and canonical check string.

A credential is an ordered multiset of ``(key, value)`` string pairs carried
as a form-urlencoded query string. One key, ``hash``, is reserved for the
signature. Duplicate keys are kept as given and never merged.

The check string that gets signed is built from the decoded pairs::

    auth_date=1700000000
    query_id=AAA
    user={"id":1}

i.e. the non-signature pairs stable-sorted by key (code-point order),
rendered ``key=value`` and joined by a single newline, with no trailing
newline.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import quote_plus, unquote_plus

from resigner.exceptions import MalformedInputError

HASH_FIELD = "hash"
CLIENT_ID_FIELD = "client_id"

Pair = tuple[str, str]

# Characters left literal by form-urlencoding besides ASCII alphanumerics.
_FORM_SAFE = "*"
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _decode_component(text: str) -> str:
    if _BAD_ESCAPE.search(text):
        raise MalformedInputError("Malformed InitData: invalid percent-escape")
    try:
        return unquote_plus(text, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise MalformedInputError("Malformed InitData: escapes are not valid UTF-8") from exc


def _encode_component(text: str) -> str:
    # quote_plus treats "~" as unreserved; form encoding escapes it.
    return quote_plus(text, safe=_FORM_SAFE).replace("~", "%7E")


def parse_credential(raw: str) -> list[Pair]:
    """Decode a wire-form credential into its ordered pairs.

    Raises:
        MalformedInputError: the input is not a string, or a key or value
            carries an invalid percent-escape, or the text holds
            characters with no UTF-8 encoding (lone surrogates).
    """
    if not isinstance(raw, str):
        raise MalformedInputError("Malformed InitData: expected a string")
    try:
        raw.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise MalformedInputError("Malformed InitData: not encodable as UTF-8") from exc
    if raw.startswith("?"):
        raw = raw[1:]

    pairs: list[Pair] = []
    for segment in raw.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        pairs.append((_decode_component(key), _decode_component(value)))
    return pairs


def encode_credential(pairs: Iterable[Pair]) -> str:
    """Encode pairs to wire form, preserving their order."""
    return "&".join(f"{_encode_component(k)}={_encode_component(v)}" for k, v in pairs)


def split_signature(pairs: Iterable[Pair]) -> tuple[list[Pair], str]:
    """Separate the signature from the other pairs.

    Every ``hash`` pair is removed. The first one supplies the returned
    value; a credential with no ``hash`` yields ``""``.
    """
    rest: list[Pair] = []
    signature: str | None = None
    for key, value in pairs:
        if key == HASH_FIELD:
            if signature is None:
                signature = value
            continue
        rest.append((key, value))
    return rest, signature or ""


def build_check_string(pairs: Iterable[Pair], exclude: str | None = HASH_FIELD) -> str:
    """Build the canonical check string for ``pairs``.

    Pairs whose key equals ``exclude`` are skipped. ``sorted`` is stable, so
    duplicate keys keep their relative order.
    """
    kept = [(k, v) for k, v in pairs if exclude is None or k != exclude]
    return "\n".join(f"{k}={v}" for k, v in sorted(kept, key=lambda pair: pair[0]))
