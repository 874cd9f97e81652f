"""Provider integrations (Gmail, Brave Search)."""

from mcpbridge.providers.registry import (
    BRAVE,
    GMAIL,
    PROVIDERS,
    ProviderSpec,
    call_provider_tool,
    get_provider,
)

__all__ = ["BRAVE", "GMAIL", "PROVIDERS", "ProviderSpec", "call_provider_tool", "get_provider"]
