"""dingbridge CLI — Typer-based command-line interface."""

from __future__ import annotations

import asyncio
import sys

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dingbridge import __version__

app = typer.Typer(
    name="dingbridge",
    help="dingbridge - DingTalk robot relay for a command-line agent",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dingbridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
) -> None:
    """dingbridge - DingTalk robot relay for a command-line agent."""


# ════════════════════════════════════════════════════════════
# run — start webhook server
# ════════════════════════════════════════════════════════════


@app.command()
def run(
    port: int | None = typer.Option(None, "--port", "-p", help="Port number (default: server.port)"),
    host: str | None = typer.Option(None, "--host", "-h", help="Host address (default: server.host)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Start the webhook server (uvicorn)."""
    import uvicorn

    from dingbridge.core.config.loader import load_config

    config = load_config()
    host = host or config.server.host
    port = port or config.server.port

    logger.remove()
    logger.add(sys.stderr, level=config.logging.level.upper())

    console.print(f"[green]Starting dingbridge on {host}:{port}[/green]")
    console.print(f"  [dim]Webhook: http://localhost:{port}/webhook/dingtalk[/dim]")
    console.print(f"  [dim]Health:  http://localhost:{port}/health[/dim]")
    uvicorn.run("dingbridge.api.app:app", host=host, port=port, reload=reload)


# ════════════════════════════════════════════════════════════
# status — effective configuration
# ════════════════════════════════════════════════════════════


@app.command()
def status() -> None:
    """Show the effective configuration (secrets masked)."""
    from dingbridge.core.config.loader import load_config

    config = load_config()

    table = Table(title="dingbridge status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Agent", config.agent.path)
    table.add_row("Agent timeout", f"{config.agent.timeout_s}s (+{config.agent.kill_grace_s}s grace)")
    table.add_row("Webhook URL", "set" if config.has_webhook_url else "missing")
    table.add_row("Sign key", "set" if config.has_sign_key else "off")
    table.add_row("Keyword", config.dingtalk.keyword or "-")
    table.add_row("Session TTL", f"{config.session.ttl_s}s")
    table.add_row("Listen", f"{config.server.host}:{config.server.port}")

    console.print(table)


# ════════════════════════════════════════════════════════════
# ask — one-off agent call
# ════════════════════════════════════════════════════════════


@app.command()
def ask(
    message: str = typer.Argument(help="Message to send to the agent"),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Agent timeout in seconds"),
) -> None:
    """Invoke the agent once and print the reply it would get in DingTalk."""
    from dingbridge.agent.invoker import AgentInvoker, AgentSuccess, reply_text
    from dingbridge.core.config.loader import load_config

    config = load_config()
    invoker = AgentInvoker(
        config.agent.path,
        kill_grace_s=config.agent.kill_grace_s,
        extra_args=config.agent.extra_args,
    )
    result = asyncio.run(invoker.invoke(message, timeout or config.agent.timeout_s))
    console.print(f"\n[bold cyan]agent:[/bold cyan] {escape(reply_text(result, config.replies))}\n")
    if not isinstance(result, AgentSuccess):
        raise typer.Exit(code=1)
