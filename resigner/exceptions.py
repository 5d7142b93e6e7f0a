"""Custom exception hierarchy for the re-signing service.

Provides structured error types that the centralized error handler
translates into consistent JSON responses.
"""

from __future__ import annotations


class ResignerError(Exception):
    """Base exception for all re-signer errors."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str = "An internal error occurred") -> None:
        self.message = message
        super().__init__(message)


class VerificationError(ResignerError):
    """A credential could not be re-issued. Terminal for the request."""

    error_type = "verification_error"


class MalformedInputError(VerificationError):
    """Wire form could not be decoded into key/value pairs."""

    status_code = 400
    error_type = "malformed_input"

    def __init__(self, message: str = "Malformed InitData") -> None:
        super().__init__(message)


class InvalidSignatureError(VerificationError):
    """Upstream HMAC check failed."""

    status_code = 401
    error_type = "invalid_signature"

    def __init__(self, message: str = "Invalid InitData") -> None:
        super().__init__(message)


class MisconfiguredServerError(VerificationError):
    """Required secret material is absent or empty."""

    status_code = 503
    error_type = "misconfigured_server"

    def __init__(self, message: str = "Server is not configured for re-signing") -> None:
        super().__init__(message)
