"""CLI commands for mcpbridge.

serve runs the HTTP API; call runs one tool call directly from the shell;
search is a smoke test against a running bridge.
"""

import asyncio
import json

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from mcpbridge import __logo__, __version__
from mcpbridge.cli.shared.logging_utils import configure_logging, ensure_rotating_log_file
from mcpbridge.utils.exceptions import McpBridgeError

app = typer.Typer(
    name="mcpbridge",
    help=f"{__logo__} mcpbridge - run MCP tool modules over stdio",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool):
    if value:
        console.print(f"{__logo__} mcpbridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """mcpbridge - run MCP tool modules over stdio."""
    load_dotenv()


def _parse_env_pairs(pairs: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key.strip()] = value
    return env


def _parse_args_json(raw: str) -> dict:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON: {e}", param_hint="--args")
    if not isinstance(parsed, dict):
        raise typer.BadParameter("Tool arguments must be a JSON object", param_hint="--args")
    return parsed


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind host (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from config / PORT)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the HTTP API (/gmail/*, /brave/*, /health)."""
    from mcpbridge.api.server import run_server
    from mcpbridge.config.access import get_config as get_cached_config

    config = get_cached_config()
    configure_logging(debug=verbose or config.mcp.debug)
    log_path = ensure_rotating_log_file("serve", level="DEBUG" if verbose else "INFO")

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    console.print(f"{__logo__} MCP bridge running on http://{bind_host}:{bind_port}/ (logs: {log_path})")
    run_server(host=bind_host, port=bind_port)


@app.command()
def call(
    module: str = typer.Argument(..., help="MCP module identifier, e.g. @modelcontextprotocol/server-brave-search"),
    tool: str = typer.Argument(..., help="Tool name exposed by the module"),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object"),
    env: list[str] = typer.Option(None, "--env", "-e", help="KEY=VALUE passed to the module (repeatable)"),
    token: str = typer.Option(None, "--token", "-t", help="Access token exported as ACCESS_TOKEN"),
    timeout_ms: int = typer.Option(None, "--timeout-ms", help="Timeout in ms (0 disables; default from config)"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Log every protocol line"),
):
    """Run a single tool call and print its result as JSON."""
    from mcpbridge.config.access import get_config as get_cached_config
    from mcpbridge.mcp.client import McpClient

    arguments = _parse_args_json(args)
    environment = _parse_env_pairs(env or [])
    config = get_cached_config()
    settings = config.mcp.model_copy(update={"debug": True}) if debug else config.mcp
    configure_logging(debug=settings.debug, quiet=not settings.debug)

    client = McpClient(settings=settings)
    try:
        result = asyncio.run(
            client.invoke(
                module,
                tool,
                arguments,
                access_token=token,
                environment=environment,
                timeout_ms=timeout_ms,
            )
        )
    except McpBridgeError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        console.print_json(json.dumps(e.to_dict(), default=str))
        raise typer.Exit(1)
    console.print_json(json.dumps(result, default=str))


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    base_url: str = typer.Option("http://127.0.0.1:3000", "--base-url", "-u", help="Bridge base URL"),
    user_id: str = typer.Option("local-user", "--user-id", help="User id (env TEST_USER_ID)", envvar="TEST_USER_ID"),
    timeout: float = typer.Option(90.0, "--timeout", help="HTTP timeout in seconds"),
):
    """Smoke test: POST a Brave search to a running bridge."""
    import httpx

    url = f"{base_url.rstrip('/')}/brave/search"
    console.print(f"[dim]POST {url}[/dim]")
    try:
        response = httpx.post(url, json={"userId": user_id, "args": {"query": query}}, timeout=timeout)
    except httpx.HTTPError as e:
        console.print(f"[red]Request failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if response.is_error:
        console.print(f"[red]Request failed: {response.status_code} {response.reason_phrase}[/red]")
        console.print(escape(response.text))
        raise typer.Exit(1)
    try:
        console.print_json(json.dumps(response.json()))
    except ValueError:
        console.print(escape(response.text))


if __name__ == "__main__":
    app()
