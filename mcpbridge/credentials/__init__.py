"""User credential lookup with environment-variable fallback."""

from mcpbridge.credentials.store import (
    CredentialStore,
    SupabaseCredentialStore,
    get_credential_store,
    reset_credential_store,
    set_credential_store,
)
from mcpbridge.credentials.tokens import TokenRequirements, UserTokens, get_user_tokens

__all__ = [
    "CredentialStore",
    "SupabaseCredentialStore",
    "TokenRequirements",
    "UserTokens",
    "get_credential_store",
    "get_user_tokens",
    "reset_credential_store",
    "set_credential_store",
]
