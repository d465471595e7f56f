"""Easy KeyVault.

Resolve Azure Key Vault keys by URI and keep the resolved handles cached.
"""
from .version import __version__
from .vault import (
    KeyCache,
    KeyState,
    AzureKeyResolver,
    ClientCredential,
    ClientSecretTokenProvider,
    VaultConfig,
    KeyVaultError,
    AuthenticationError,
)

__all__ = [
    "__version__",
    "KeyCache",
    "KeyState",
    "AzureKeyResolver",
    "ClientCredential",
    "ClientSecretTokenProvider",
    "VaultConfig",
    "KeyVaultError",
    "AuthenticationError",
]
