"""FastAPI server exposing provider tool calls over HTTP.

Each route resolves the caller's credentials, runs one MCP tool call in a
fresh module process, and returns the tool result as JSON.
"""

from typing import Any

import uvicorn
from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from mcpbridge import __version__
from mcpbridge.api.http.provider_methods import provider_tool_response
from mcpbridge.config.access import get_config as get_cached_config
from mcpbridge.credentials.store import get_credential_store
from mcpbridge.providers.registry import BRAVE, GMAIL, ProviderSpec


class ToolCallBody(BaseModel):
    userId: str | None = None
    args: dict[str, Any] | None = None


async def _run_provider_tool(spec: ProviderSpec, tool_name: str, body: ToolCallBody) -> JSONResponse:
    config = get_cached_config()
    store = get_credential_store(config.supabase)
    status, payload = await provider_tool_response(
        spec=spec,
        tool_name=tool_name,
        user_id=body.userId,
        args=body.args,
        store=store,
        config=config,
    )
    return JSONResponse(status_code=status, content=payload)


gmail_router = APIRouter()
brave_router = APIRouter()


@gmail_router.post("/read")
async def gmail_read(body: ToolCallBody):
    """Read emails through the Gmail MCP module."""
    return await _run_provider_tool(GMAIL, "readEmails", body)


@gmail_router.post("/send")
async def gmail_send(body: ToolCallBody):
    """Send an email through the Gmail MCP module."""
    return await _run_provider_tool(GMAIL, "sendEmail", body)


@brave_router.post("/search")
async def brave_search(body: ToolCallBody):
    """Web search through the Brave Search MCP module."""
    return await _run_provider_tool(BRAVE, "brave_web_search", body)


app = FastAPI(
    title="mcpbridge API",
    description="Run MCP tool modules on behalf of users",
    version=__version__,
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "mcpbridge-api",
        "version": __version__,
        "status": "running",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"ok": True, "service": "mcpbridge-api"}


app.include_router(gmail_router, prefix="/gmail")
app.include_router(brave_router, prefix="/brave")


def create_app() -> FastAPI:
    """Create and return the FastAPI application."""
    return app


def run_server(host: str = "0.0.0.0", port: int = 3000):
    """Run the API server."""
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
        log_level="warning",
    )
