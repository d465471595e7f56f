"""
Vault Credential — Client credential value object and access token supplier.

The token supplier is the only piece of code that ever reads the client
secret. It builds an Azure AD client-secret credential bound to the
requested authority and exchanges the secret for a short-lived access token.

Security Note:
    Never log the client secret or issued tokens. ``ClientCredential`` keeps
    the secret in a pydantic ``SecretStr`` so it is masked in repr and str.
"""
import logging
from typing import Annotated, Awaitable, Callable, Optional
from urllib.parse import urlsplit

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, SecretStr
from azure.core.exceptions import ClientAuthenticationError
from azure.identity.aio import ClientSecretCredential

from .exceptions import AuthenticationError

logger = logging.getLogger("easy_keyvault.vault")

DEFAULT_SCOPE_SUFFIX = "/.default"

# (authority, resource, scope) -> access token
TokenSupplier = Callable[[str, str, Optional[str]], Awaitable[str]]


def require_secret(value: SecretStr) -> SecretStr:
    """Reject an empty client secret."""
    if not value.get_secret_value():
        raise ValueError("client_secret cannot be empty")
    return value


# non-empty client secret, masked in repr and str
ClientSecret = Annotated[SecretStr, AfterValidator(require_secret)]


class ClientCredential(BaseModel):
    """Immutable client id / client secret pair."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: ClientSecret


def parse_authority(authority: str) -> tuple[str, str]:
    """Split an authority URL into (host, tenant).

    ``https://login.microsoftonline.com/<tenant>`` gives
    ``("login.microsoftonline.com", "<tenant>")``.

    Raises:
        AuthenticationError: If the authority has no host or no tenant.
    """
    parts = urlsplit(authority if "://" in authority else f"https://{authority}")
    segments = [s for s in parts.path.split("/") if s]
    if not parts.netloc or not segments:
        raise AuthenticationError(
            "Invalid identity authority", {"authority": authority}
        )
    return parts.netloc, segments[0]


def resource_scope(resource: str) -> str:
    """Map a resource identifier to its ``.default`` scope."""
    if resource.endswith(DEFAULT_SCOPE_SUFFIX):
        return resource
    return resource.rstrip("/") + DEFAULT_SCOPE_SUFFIX


class ClientSecretTokenProvider:
    """Acquire access tokens for a client credential.

    Instances are callable with the token supplier signature
    ``(authority, resource, scope) -> token``. There is no mutable state
    besides the read-only credential, so a provider can be shared between
    concurrent resolutions.
    """

    def __init__(self, credential: ClientCredential):
        self._credential = credential

    def __repr__(self) -> str:
        return f"<ClientSecretTokenProvider client_id={self._credential.client_id}>"

    @property
    def client_id(self) -> str:
        return self._credential.client_id

    async def acquire_token(
        self,
        authority: str,
        resource: str,
        scope: Optional[str] = None,
    ) -> str:
        """Request an access token for ``resource`` from ``authority``.

        Args:
            authority: Identity authority URL, ``https://<host>/<tenant>``.
            resource: Target resource, e.g. ``https://vault.azure.net``.
            scope: Accepted for signature compatibility, not used; vault
                tokens are requested for the resource ``.default`` scope.

        Returns:
            The access token string.

        Raises:
            AuthenticationError: If the authority returns no token.
        """
        host, tenant = parse_authority(authority)
        logger.debug(
            "Requesting token: client_id=%s authority=%s/%s resource=%s",
            self._credential.client_id, host, tenant, resource,
        )
        credential = ClientSecretCredential(
            tenant,
            self._credential.client_id,
            self._credential.client_secret.get_secret_value(),
            authority=host,
        )
        async with credential:
            try:
                result = await credential.get_token(resource_scope(resource))
            except ClientAuthenticationError as err:
                raise AuthenticationError(
                    "Failed to obtain the access token",
                    {"authority": f"{host}/{tenant}", "resource": resource},
                ) from err
        if result is None or not result.token:
            raise AuthenticationError(
                "Failed to obtain the access token",
                {"authority": f"{host}/{tenant}", "resource": resource},
            )
        return result.token

    async def __call__(
        self,
        authority: str,
        resource: str,
        scope: Optional[str] = None,
    ) -> str:
        return await self.acquire_token(authority, resource, scope)
