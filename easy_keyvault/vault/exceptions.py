"""
Vault Exceptions — Error types raised by the key cache and token provider.

Exception Hierarchy:
    KeyVaultError (base)
    └── AuthenticationError - identity authority issued no token

Errors raised by the Azure SDK (``azure.core.exceptions``) while talking to
the vault are not wrapped; they reach the caller unchanged.
"""
from typing import Any, Optional


class KeyVaultError(Exception):
    """Base exception for easy_keyvault errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error context (never secrets).
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class AuthenticationError(KeyVaultError):
    """The identity authority could not issue an access token."""
