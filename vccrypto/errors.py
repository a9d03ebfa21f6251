from __future__ import annotations

from typing import Any, Dict, Optional


class CredentialError(Exception):
    """Base class for every error raised while issuing or converting credentials."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(CredentialError):
    """
    Issuance or conversion was asked for without the options the target
    signing mode needs (e.g. Raw mode without a verification key).
    Raised before anything is canonicalized or signed.
    """


class CryptographicError(CredentialError):
    """The crypto provider could not sign (malformed key, bad digest length...)."""


class CanonicalizationError(CredentialError, ValueError):
    """A value has no canonical JSON form (NaN, sets, non-string keys...)."""
