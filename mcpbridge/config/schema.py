"""Configuration schema using Pydantic.

Single data model and defaults for the bridge, optionally persisted to
~/.mcpbridge/config.json and overridable with MCPBRIDGE_* environment variables.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class McpSettings(BaseModel):
    """How MCP modules are launched and supervised."""
    runner: list[str] = Field(default_factory=lambda: ["npx", "-y"])  # Module id is appended
    timeout_ms: int = Field(default=60_000, ge=0)  # 0 disables the timeout
    debug: bool = False  # Line-level logging of every message (DEBUG_MCP=1)
    max_buffer_size: int = Field(default=16 * 1024 * 1024, gt=0)  # Cap on an unterminated output line
    kill_grace_seconds: float = Field(default=2.0, ge=0)  # Wait for reap after kill
    stderr_tail_lines: int = Field(default=50, ge=0)


class SupabaseSettings(BaseModel):
    """Credential store (Supabase/PostgREST) connection."""
    url: str = ""
    service_role_key: str = ""
    table: str = "user_connections"
    timeout_seconds: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.url.strip() and self.service_role_key.strip())


class ServerSettings(BaseModel):
    """HTTP API server."""
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "production"  # "development" exposes stack traces in error bodies


class Config(BaseSettings):
    """Root configuration for mcpbridge."""
    mcp: McpSettings = Field(default_factory=McpSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    model_config = ConfigDict(
        env_prefix="MCPBRIDGE_",
        env_nested_delimiter="__",
    )
