"""
KeyCache — In-memory cache of resolved key vault key handles.

Provides the public API of the package:
- ``get_key(uri)`` — return a cached handle or resolve it from the vault
- ``invalidate(uri)`` / ``clear()`` — drop resolved entries
- ``state(uri)`` / ``keys()`` — inspect the cache
- ``from_client_secret()`` — factory wiring a client credential, token
  provider and Azure resolver together

Each URI moves through three states:

    ABSENT --get_key--> PENDING --resolved--> RESOLVED(handle | None)
    PENDING --error or abandoned--> ABSENT
    RESOLVED(None) --next get_key--> PENDING

Concurrent callers asking for a URI that is PENDING wait on the same
resolution task, so the vault is called once per URI. A ``None`` result is
parked in the cache and evicted by the next access, which resolves again
exactly once. Failed resolutions leave nothing behind.

Security Note:
    The client secret stays inside the token provider. Only key URIs are
    logged.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from pydantic import SecretStr

from .config import DEFAULT_AUTHORITY_HOST, DEFAULT_TOKEN_LIFETIME, VaultConfig
from .credential import ClientCredential, ClientSecretTokenProvider, TokenSupplier
from .resolver import AzureKeyResolver, KeyResolver

logger = logging.getLogger("easy_keyvault.vault")


class KeyState(str, Enum):
    """Cache state of a key URI."""

    ABSENT = "absent"
    PENDING = "pending"
    RESOLVED = "resolved"


# get_key() default: use the timeout the cache was built with
CACHE_TIMEOUT: Any = object()


def _check_timeout(timeout: Optional[float]) -> None:
    if timeout is not None and timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")


class _CacheEntry:
    __slots__ = ("state", "handle", "flight", "waiters")

    def __init__(self) -> None:
        self.state = KeyState.PENDING
        self.handle: Optional[Any] = None
        self.flight: Optional[asyncio.Task] = None
        self.waiters = 0


class KeyCache:
    """Resolve key vault keys by URI and keep the handles in memory.

    Args:
        token_supplier: Coroutine function ``(authority, resource, scope)``
            returning an access token.
        resolver: Key resolver; defaults to ``AzureKeyResolver()``.
        timeout: Default deadline (seconds) for ``get_key`` calls; None
            means no deadline.
    """

    def __init__(
        self,
        token_supplier: TokenSupplier,
        resolver: Optional[KeyResolver] = None,
        timeout: Optional[float] = None,
    ):
        self._token_supplier = token_supplier
        self._resolver = resolver if resolver is not None else AzureKeyResolver()
        _check_timeout(timeout)
        self._timeout = timeout
        self._entries: dict[str, _CacheEntry] = {}

    def __repr__(self) -> str:
        return (
            f"<KeyCache resolved={len(self)} "
            f"pending={self._count(KeyState.PENDING)} resolver={self._resolver!r}>"
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_client_secret(
        cls,
        client_id: str,
        client_secret: str,
        *,
        tenant_id: Optional[str] = None,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        token_lifetime: int = DEFAULT_TOKEN_LIFETIME,
        timeout: Optional[float] = None,
        resolver: Optional[KeyResolver] = None,
    ) -> "KeyCache":
        """Build a cache authenticating with an Azure AD client secret.

        Args:
            client_id: Application (client) id. Required.
            client_secret: Client secret. Required.
            tenant_id: Tenant used when the vault challenge names none.
            authority_host: Identity authority host.
            token_lifetime: Lifetime (seconds) reported for supplied tokens.
            timeout: Default deadline for ``get_key``.
            resolver: Custom resolver; defaults to ``AzureKeyResolver``.

        Raises:
            pydantic.ValidationError: If client_id or client_secret is empty.
        """
        credential = ClientCredential(
            client_id=client_id,
            client_secret=SecretStr(client_secret),
        )
        if resolver is None:
            resolver = AzureKeyResolver(
                authority_host=authority_host,
                tenant_id=tenant_id,
                token_lifetime=token_lifetime,
            )
        return cls(
            ClientSecretTokenProvider(credential),
            resolver=resolver,
            timeout=timeout,
        )

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        resolver: Optional[KeyResolver] = None,
    ) -> "KeyCache":
        """Build a cache from a validated ``VaultConfig``."""
        if resolver is None:
            resolver = AzureKeyResolver(
                authority_host=config.authority_host,
                tenant_id=config.tenant_id,
                token_lifetime=config.token_lifetime,
            )
        return cls(
            ClientSecretTokenProvider(config.credential()),
            resolver=resolver,
            timeout=config.resolve_timeout,
        )

    @property
    def key_resolver(self) -> KeyResolver:
        """Resolver used to fetch keys on cache misses."""
        return self._resolver

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _start_flight(self, uri: str) -> _CacheEntry:
        entry = _CacheEntry()
        self._entries[uri] = entry
        entry.flight = asyncio.create_task(self._resolve(uri, entry))
        return entry

    async def _resolve(self, uri: str, entry: _CacheEntry) -> Optional[Any]:
        logger.debug("Key cache miss, resolving %s", uri)
        try:
            handle = await self._resolver.resolve(uri, self._token_supplier)
        except BaseException:
            if self._entries.get(uri) is entry:
                del self._entries[uri]
            raise
        entry.state = KeyState.RESOLVED
        entry.handle = handle
        entry.flight = None
        if handle is None:
            logger.info("No key found for %s; cached until next access", uri)
        return handle

    async def _wait(
        self,
        uri: str,
        entry: _CacheEntry,
        timeout: Optional[float],
    ) -> Optional[Any]:
        flight = entry.flight
        entry.waiters += 1
        try:
            return await asyncio.wait_for(asyncio.shield(flight), timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            # last waiter gone: stop the remote calls too
            if entry.waiters == 1 and not flight.done():
                logger.debug("Abandoning key resolution for %s", uri)
                if self._entries.get(uri) is entry:
                    del self._entries[uri]
                flight.cancel()
            raise
        finally:
            entry.waiters -= 1

    async def get_key(
        self,
        uri: str,
        timeout: Optional[float] = CACHE_TIMEOUT,
    ) -> Optional[Any]:
        """Return the key handle for ``uri``.

        Lookup order: resolved entry → in-flight resolution → vault.

        Args:
            uri: Key identifier in the vault.
            timeout: Deadline in seconds. Omitted, the cache timeout
                applies; None waits without a deadline.

        Returns:
            The key handle, or None if the vault has no such key. A None
            result is cached and retried once on the next call.

        Raises:
            ValueError: If ``uri`` is empty or ``timeout`` is not positive.
            AuthenticationError: If no access token could be obtained.
            asyncio.TimeoutError: If the deadline passes first.
        """
        if not uri:
            raise ValueError("Key URI cannot be empty")
        if timeout is CACHE_TIMEOUT:
            timeout = self._timeout
        else:
            _check_timeout(timeout)
        entry = self._entries.get(uri)
        if entry is not None and entry.state is KeyState.RESOLVED:
            if entry.handle is not None:
                logger.debug("Key cache hit: %s", uri)
                return entry.handle
            logger.info("Evicting cached empty result for %s", uri)
            del self._entries[uri]
            entry = None
        if entry is None:
            entry = self._start_flight(uri)
        return await self._wait(uri, entry, timeout)

    # ------------------------------------------------------------------
    # Inspection and maintenance
    # ------------------------------------------------------------------

    def _count(self, state: KeyState) -> int:
        return sum(1 for e in self._entries.values() if e.state is state)

    def state(self, uri: str) -> KeyState:
        """Return the cache state of ``uri``."""
        entry = self._entries.get(uri)
        if entry is None:
            return KeyState.ABSENT
        return entry.state

    def keys(self) -> list[str]:
        """List URIs with a resolved entry (including cached empty results)."""
        return [
            uri for uri, e in self._entries.items() if e.state is KeyState.RESOLVED
        ]

    def invalidate(self, uri: str) -> bool:
        """Drop the resolved entry for ``uri``.

        In-flight resolutions are left alone.

        Returns:
            True if an entry was removed.
        """
        entry = self._entries.get(uri)
        if entry is None or entry.state is not KeyState.RESOLVED:
            return False
        del self._entries[uri]
        logger.debug("Invalidated key %s", uri)
        return True

    def clear(self) -> None:
        """Drop every resolved entry."""
        for uri in self.keys():
            del self._entries[uri]

    async def close(self) -> None:
        """Cancel in-flight resolutions and empty the cache.

        Handles already returned to callers stay usable; their lifecycle
        belongs to the caller.
        """
        flights = [
            e.flight for e in self._entries.values()
            if e.state is KeyState.PENDING and e.flight is not None
        ]
        for flight in flights:
            flight.cancel()
        if flights:
            await asyncio.gather(*flights, return_exceptions=True)
        self._entries.clear()
        logger.debug("Key cache closed")

    def __len__(self) -> int:
        return self._count(KeyState.RESOLVED)

    def __contains__(self, uri: object) -> bool:
        return self.state(str(uri)) is KeyState.RESOLVED

    async def __aenter__(self) -> "KeyCache":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
