"""CLI interface for Flint connection recovery."""

import asyncio
import logging
import click
import httpx
from pathlib import Path
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from flint.errors.classifier import ErrorClassifier
from flint.errors.recovery import RecoveryActionDispatcher
from flint.models.config import FlintConfig
from flint.models.connection import ConnectionRecord, check_connection_status
from flint.models.directive import RecoveryDirective
from flint.models.error import ErrorCode, ErrorResponse, ApiError, FlintError
from flint.portal.client import PortalClient


console = Console()


def load_config(config: str | None, debug: bool) -> FlintConfig:
    """Load configuration from a file, ./config.yaml, or the environment."""
    if config and Path(config).exists():
        flint_config = FlintConfig.from_yaml(config)
    elif Path("config.yaml").exists():
        flint_config = FlintConfig.from_yaml("config.yaml")
    else:
        flint_config = FlintConfig.from_env()

    if debug:
        flint_config.debug = True

    logging.basicConfig(
        level=logging.DEBUG if flint_config.debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    return flint_config


def render_directive(directive: RecoveryDirective) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_row("action", directive.action.value)
    table.add_row("retry", str(directive.should_retry))
    table.add_row("reconnect", str(directive.should_reconnect))
    table.add_row("register", str(directive.should_register))
    if directive.retry_delay_ms is not None:
        table.add_row("delay", f"{directive.retry_delay_ms}ms")
    style = "yellow" if directive.should_retry else "red"
    return Panel(table, title=directive.user_message, border_style=style)


def open_in_browser(url: str, viewport: tuple[int, int]) -> None:
    """Presenter that opens the portal in the default browser."""
    console.print(f"[dim]Opening portal ({viewport[0]}x{viewport[1]})[/dim]")
    click.launch(url)


@click.group()
@click.option("--config", help="Path to config file")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str | None, debug: bool):
    """Flint - connection error recovery for linked brokerage accounts."""
    ctx.obj = load_config(config, debug)


@main.command()
@click.argument("code", required=False, default=None)
@click.option("-m", "--message", default="", help="Raw provider error message")
@click.option("--network", is_flag=True, help="Classify as a transport failure")
def classify(code: str | None, message: str, network: bool):
    """Show the recovery directive for an error CODE."""
    if network or code is None:
        error = ConnectionError(message or "network failure")
    else:
        error = ErrorResponse(error=ApiError(code=ErrorCode.parse(code.upper()), message=message))

    directive = ErrorClassifier.classify(error)
    console.print(render_directive(directive))

    toast = ErrorClassifier.toast_message(error)
    console.print(f"[bold]{toast.title}[/bold] ({toast.variant})")


@main.command("portal-url")
@click.option("--reconnect", "account_id", default=None, help="Connection ID to reconnect")
@click.option("--open", "open_browser", is_flag=True, help="Open the portal in a browser")
@click.pass_obj
def portal_url(config: FlintConfig, account_id: str | None, open_browser: bool):
    """Request a reconnect/registration portal URL."""

    async def run() -> str:
        async with PortalClient(config.portal) as portal:
            if not open_browser:
                return await portal.get_portal_url(account_id)
            async with RecoveryActionDispatcher.from_config(
                config, presenter=open_in_browser, portal=portal
            ) as dispatcher:
                return await dispatcher.open_portal(account_id)

    try:
        url = asyncio.run(run())
    except (FlintError, httpx.TransportError) as e:
        directive = ErrorClassifier.classify(e)
        console.print(render_directive(directive))
        raise click.ClickException(str(e))

    console.print(url)


@main.command()
@click.argument("connection_id")
@click.argument("name")
@click.option("--disabled", is_flag=True, help="Provider disabled the connection")
@click.option("--needs-reconnect", is_flag=True, help="Sync flagged the connection")
@click.option("--status", default=None, help="Raw provider status")
def status(connection_id: str, name: str, disabled: bool, needs_reconnect: bool, status: str | None):
    """Show the health of a connection."""
    record = ConnectionRecord(
        id=connection_id,
        name=name,
        disabled=disabled,
        needs_reconnect=needs_reconnect,
        status=status,
    )
    result = check_connection_status(record)

    if result.needs_reconnect:
        console.print(f"[red]● {record.name}: Disconnected[/red]")
        console.print(f"  Reconnect: {result.reconnect_url}")
    else:
        console.print(f"[green]● {record.name}: Connected[/green]")


if __name__ == "__main__":
    main()
