"""
Vault Key Resolver — Turns a key URI into a usable key handle.

``AzureKeyResolver`` asks Azure Key Vault for the key identified by a URI
such as ``https://myvault.vault.azure.net/keys/mykey/<version>`` and returns
an async ``CryptographyClient`` bound to it. Authentication goes through a
token supplier: the vault's authentication challenge names the tenant, the
requested scope names the resource, and the supplier turns both into a
bearer token.

A key that does not exist is a legitimate outcome, reported as ``None``.
Every other failure propagates to the caller.
"""
import time
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from azure.core.credentials import AccessToken
from azure.core.exceptions import ResourceNotFoundError
from azure.keyvault.keys import KeyVaultKeyIdentifier
from azure.keyvault.keys.aio import KeyClient
from azure.keyvault.keys.crypto.aio import CryptographyClient

from .config import DEFAULT_AUTHORITY_HOST, DEFAULT_TOKEN_LIFETIME
from .credential import DEFAULT_SCOPE_SUFFIX, TokenSupplier
from .exceptions import AuthenticationError

logger = logging.getLogger("easy_keyvault.vault")


@runtime_checkable
class KeyResolver(Protocol):
    """Resolve a key URI into a key handle, or None when no such key exists."""

    async def resolve(self, uri: str, token_supplier: TokenSupplier) -> Optional[Any]:
        ...


class SupplierCredential:
    """Async ``azure.core`` token credential backed by a token supplier.

    Each ``get_token`` call goes to the supplier; tokens are not cached here.
    """

    def __init__(
        self,
        token_supplier: TokenSupplier,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        tenant_id: Optional[str] = None,
        token_lifetime: int = DEFAULT_TOKEN_LIFETIME,
    ):
        self._supplier = token_supplier
        self._authority_host = authority_host
        self._tenant_id = tenant_id
        self._lifetime = token_lifetime

    def authority_for(self, tenant_id: Optional[str] = None) -> str:
        tenant = tenant_id or self._tenant_id
        if not tenant:
            raise AuthenticationError(
                "No tenant for the identity authority: the vault sent no "
                "challenge tenant and no tenant_id is configured",
                {"authority_host": self._authority_host},
            )
        return f"https://{self._authority_host}/{tenant}"

    async def get_token(
        self,
        *scopes: str,
        claims: Optional[str] = None,
        tenant_id: Optional[str] = None,
        **kwargs: Any,
    ) -> AccessToken:
        if not scopes:
            raise ValueError("At least one scope is required")
        scope = scopes[0]
        resource = scope
        if resource.endswith(DEFAULT_SCOPE_SUFFIX):
            resource = resource[:-len(DEFAULT_SCOPE_SUFFIX)]
        token = await self._supplier(self.authority_for(tenant_id), resource, scope)
        return AccessToken(token, int(time.time()) + self._lifetime)

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "SupplierCredential":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class AzureKeyResolver:
    """Resolve Azure Key Vault key URIs into ``CryptographyClient`` handles.

    Extra keyword arguments (``transport``, ``api_version``, retry settings)
    are passed to the ``KeyClient`` and ``CryptographyClient`` it creates.
    """

    def __init__(
        self,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        tenant_id: Optional[str] = None,
        token_lifetime: int = DEFAULT_TOKEN_LIFETIME,
        **client_options: Any,
    ):
        self.authority_host = authority_host
        self.tenant_id = tenant_id
        self.token_lifetime = token_lifetime
        self.client_options = client_options

    def __repr__(self) -> str:
        return (
            f"<AzureKeyResolver authority_host={self.authority_host} "
            f"tenant={self.tenant_id}>"
        )

    def credential(self, token_supplier: TokenSupplier) -> SupplierCredential:
        return SupplierCredential(
            token_supplier,
            authority_host=self.authority_host,
            tenant_id=self.tenant_id,
            token_lifetime=self.token_lifetime,
        )

    async def resolve(
        self,
        uri: str,
        token_supplier: TokenSupplier,
    ) -> Optional[CryptographyClient]:
        """Fetch the key at ``uri`` and return a handle for it.

        Args:
            uri: Key identifier, with or without a version.
            token_supplier: Supplies access tokens for the vault.

        Returns:
            A ``CryptographyClient`` for the key, or None if the vault
            reports that the key does not exist.

        Raises:
            ValueError: If ``uri`` is not a key vault key identifier.
            AuthenticationError: If no access token could be obtained.
        """
        identifier = KeyVaultKeyIdentifier(uri)
        credential = self.credential(token_supplier)
        async with KeyClient(
            identifier.vault_url, credential, **self.client_options
        ) as client:
            try:
                key = await client.get_key(identifier.name, identifier.version)
            except ResourceNotFoundError:
                logger.info("Key not found in vault: %s", uri)
                return None
        logger.debug("Resolved key %s as %s", uri, key.id)
        return CryptographyClient(key, credential, **self.client_options)
