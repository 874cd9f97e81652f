"""Credential store backends and the process-wide store accessor."""

from __future__ import annotations

import threading
from typing import Any, Optional, Protocol

import httpx
from loguru import logger

from mcpbridge.config.schema import SupabaseSettings
from mcpbridge.utils.exceptions import sanitize_error_message

CREDENTIAL_COLUMNS = ("access_token", "refresh_token", "expires_at")


class CredentialStore(Protocol):
    """Read-only lookup of a user's stored connection for a provider."""

    async def fetch(self, user_id: str, provider: str) -> dict[str, Any] | None:
        ...


class SupabaseCredentialStore:
    """Reads user connections from a Supabase table through its PostgREST API."""

    def __init__(
        self,
        url: str,
        service_role_key: str,
        table: str = "user_connections",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url.rstrip("/")
        self.table = table
        self.timeout = timeout
        self._service_role_key = service_role_key
        self._client = http_client

    @classmethod
    def from_settings(cls, settings: SupabaseSettings) -> "SupabaseCredentialStore":
        return cls(
            settings.url,
            settings.service_role_key,
            table=settings.table,
            timeout=settings.timeout_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, user_id: str, provider: str) -> dict[str, Any] | None:
        """Return the stored row, or None when missing or the store is unreachable."""
        client = await self._get_client()
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Accept": "application/json",
        }
        params = {
            "select": ",".join(CREDENTIAL_COLUMNS),
            "user_id": f"eq.{user_id}",
            "provider": f"eq.{provider}",
            "limit": "1",
        }
        try:
            resp = await client.get(f"{self.url}/rest/v1/{self.table}", params=params, headers=headers)
            resp.raise_for_status()
            rows = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                f"Credential store query failed for provider '{provider}'. Falling back to env-only tokens: "
                f"{sanitize_error_message(str(e))}"
            )
            return None
        if not isinstance(rows, list) or not rows:
            logger.debug(f"No stored connection for provider '{provider}'")
            return None
        row = rows[0]
        return dict(row) if isinstance(row, dict) else None


_store_lock = threading.Lock()
_store: CredentialStore | None = None
_store_initialized = False


def get_credential_store(settings: SupabaseSettings | None = None) -> CredentialStore | None:
    """
    Return the process-wide credential store, building it on first call.

    Returns None (env-only mode) when the store is not configured. The handle
    lives until reset_credential_store() is called.
    """
    global _store, _store_initialized
    with _store_lock:
        if _store_initialized:
            return _store
        if settings is None:
            from mcpbridge.config.access import get_config

            settings = get_config().supabase
        if settings.configured:
            _store = SupabaseCredentialStore.from_settings(settings)
        else:
            logger.warning(
                "Credential store is not configured (missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY). "
                "Using env-only tokens."
            )
            _store = None
        _store_initialized = True
        return _store


def set_credential_store(store: CredentialStore | None) -> None:
    """Install an explicit store (startup wiring or tests)."""
    global _store, _store_initialized
    with _store_lock:
        _store = store
        _store_initialized = True


def reset_credential_store() -> None:
    """Forget the current store; the next get_credential_store() rebuilds it."""
    global _store, _store_initialized
    with _store_lock:
        _store = None
        _store_initialized = False
