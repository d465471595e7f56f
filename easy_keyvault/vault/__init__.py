"""Vault — Cached resolution of Azure Key Vault keys.

Security Note (Threat Model):
    The client secret is held in process memory for the lifetime of the
    key cache, wrapped in a pydantic ``SecretStr``. Resolved key handles do
    not carry private key material; cryptographic operations run inside
    the vault. A memory dump of the process could expose the client secret.
    This is an accepted limitation. Use a managed identity where the
    secret must not live in the process.
"""

from .key_cache import KeyCache, KeyState
from .resolver import AzureKeyResolver, KeyResolver, SupplierCredential
from .credential import (
    ClientCredential,
    ClientSecretTokenProvider,
    TokenSupplier,
    parse_authority,
)
from .config import VaultConfig
from .exceptions import KeyVaultError, AuthenticationError

__all__ = [
    "KeyCache",
    "KeyState",
    "AzureKeyResolver",
    "KeyResolver",
    "SupplierCredential",
    "ClientCredential",
    "ClientSecretTokenProvider",
    "TokenSupplier",
    "parse_authority",
    "VaultConfig",
    "KeyVaultError",
    "AuthenticationError",
]
