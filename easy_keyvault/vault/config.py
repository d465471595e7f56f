"""
Vault Configuration — Client credential loading and validated settings.

Reads the service principal from the conventional Azure environment variables:
    AZURE_CLIENT_ID = <application (client) id>
    AZURE_CLIENT_SECRET = <client secret>
    AZURE_TENANT_ID = <directory (tenant) id, optional>
    AZURE_AUTHORITY_HOST = <authority host, optional>

Cache tuning:
    KEYVAULT_RESOLVE_TIMEOUT = <seconds, optional>
    KEYVAULT_TOKEN_LIFETIME = <seconds, optional>

Loading is opt-in through ``VaultConfig.from_env()``; the key cache itself
never reads the environment.

Security Note:
    Never log the client secret. Only log client ids and tenant ids.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .credential import ClientCredential, ClientSecret

logger = logging.getLogger("easy_keyvault.vault")

DEFAULT_AUTHORITY_HOST = "login.microsoftonline.com"
DEFAULT_TOKEN_LIFETIME = 300


def get_required_env(name: str) -> str:
    """Read a required environment variable.

    Raises:
        RuntimeError: If the variable is not set or empty.
    """
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(
            f"{name} environment variable is not set"
        )
    return value


def get_timeout_env(name: str = "KEYVAULT_RESOLVE_TIMEOUT") -> Optional[float]:
    """Read an optional timeout (seconds) from the environment.

    Returns:
        Timeout as float, or None when unset.

    Raises:
        ValueError: If the value is not a valid number.
    """
    raw = os.environ.get(name)
    if not raw:
        return None
    return float(raw)


class VaultConfig(BaseModel):
    """Validated key vault client configuration."""

    client_id: str = Field(min_length=1)
    client_secret: ClientSecret
    tenant_id: Optional[str] = None
    authority_host: str = Field(default=DEFAULT_AUTHORITY_HOST)
    token_lifetime: int = Field(default=DEFAULT_TOKEN_LIFETIME, ge=60)
    resolve_timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("authority_host")
    @classmethod
    def validate_authority_host(cls, v: str) -> str:
        """Normalize to a bare host name, e.g. login.microsoftonline.com."""
        v = v.strip()
        if "://" in v:
            v = v.split("://", 1)[1]
        v = v.rstrip("/")
        if not v:
            raise ValueError("authority_host cannot be empty")
        if "/" in v:
            raise ValueError(
                f"authority_host must be a host name without path: {v}"
            )
        return v

    def credential(self) -> ClientCredential:
        """Return the client credential held by this configuration."""
        return ClientCredential(
            client_id=self.client_id,
            client_secret=self.client_secret,
        )

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            client_id=get_required_env("AZURE_CLIENT_ID"),
            client_secret=get_required_env("AZURE_CLIENT_SECRET"),
            tenant_id=os.environ.get("AZURE_TENANT_ID") or None,
            authority_host=os.environ.get(
                "AZURE_AUTHORITY_HOST", DEFAULT_AUTHORITY_HOST
            ),
            token_lifetime=int(
                os.environ.get("KEYVAULT_TOKEN_LIFETIME", DEFAULT_TOKEN_LIFETIME)
            ),
            resolve_timeout=get_timeout_env(),
        )
        logger.debug(
            "Loaded vault config: client_id=%s tenant=%s authority_host=%s",
            config.client_id, config.tenant_id, config.authority_host,
        )
        return config
