"""Verify-then-re-sign hand-off between two trust authorities.

A credential signed by the upstream platform is checked under the upstream
secret. Only if that check passes is a ``client_id`` pair bound in and the
result signed under the downstream secret. An invalid input never produces
output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from resigner.core.credential import (
    CLIENT_ID_FIELD,
    HASH_FIELD,
    build_check_string,
    encode_credential,
    parse_credential,
    split_signature,
)
from resigner.core.signing import derive_key, sign, verify
from resigner.exceptions import InvalidSignatureError, MisconfiguredServerError

if TYPE_CHECKING:
    from resigner.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResignerSecrets:
    """Immutable secret material for one re-signing deployment."""

    upstream_secret: str = field(repr=False)
    downstream_secret: str = field(repr=False)
    downstream_client_id: str

    def validate(self) -> None:
        """Raise MisconfiguredServerError unless every value is non-empty."""
        missing = [
            name
            for name, value in (
                ("upstream secret", self.upstream_secret),
                ("downstream secret", self.downstream_secret),
                ("downstream client id", self.downstream_client_id),
            )
            if not value
        ]
        if missing:
            raise MisconfiguredServerError(f"Missing configuration: {', '.join(missing)}")


def _resign(raw: str, upstream_key: bytes, downstream_key: bytes, client_id: str) -> str:
    pairs, candidate = split_signature(parse_credential(raw))

    if not verify(build_check_string(pairs), upstream_key, candidate):
        raise InvalidSignatureError()

    pairs.append((CLIENT_ID_FIELD, client_id))
    pairs.sort(key=lambda pair: pair[0])
    pairs.append((HASH_FIELD, sign(build_check_string(pairs), downstream_key)))
    return encode_credential(pairs)


def reissue(
    raw_credential: str,
    upstream_secret: str,
    downstream_secret: str,
    downstream_client_id: str,
) -> str:
    """Verify ``raw_credential`` upstream and re-sign it for downstream.

    Returns the re-issued credential in wire form: the original pairs plus
    ``client_id``, sorted by key, followed by the new ``hash``.

    Raises:
        MisconfiguredServerError: a secret or the client id is empty.
        MalformedInputError: the wire form cannot be decoded.
        InvalidSignatureError: the upstream signature does not match.
    """
    ResignerSecrets(upstream_secret, downstream_secret, downstream_client_id).validate()
    return _resign(
        raw_credential,
        derive_key(upstream_secret),
        derive_key(downstream_secret),
        downstream_client_id,
    )


class CredentialResigner:
    """Re-signer bound to one set of secrets.

    Derived keys are computed once at construction. Instances hold no
    mutable state and can be shared across concurrent requests.
    """

    def __init__(self, secrets: ResignerSecrets) -> None:
        secrets.validate()
        self._client_id = secrets.downstream_client_id
        self._upstream_key = derive_key(secrets.upstream_secret)
        self._downstream_key = derive_key(secrets.downstream_secret)

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialResigner:
        """Build from application settings; raises if anything is missing."""
        return cls(
            ResignerSecrets(
                upstream_secret=settings.bot_token.get_secret_value(),
                downstream_secret=settings.client_secret.get_secret_value(),
                downstream_client_id=settings.client_id,
            )
        )

    @property
    def client_id(self) -> str:
        return self._client_id

    def reissue(self, raw_credential: str) -> str:
        """See :func:`reissue`."""
        result = _resign(raw_credential, self._upstream_key, self._downstream_key, self._client_id)
        logger.debug("Re-issued credential for client %s", self._client_id)
        return result
