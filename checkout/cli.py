"""CLI for the checkout backend.

Runs the API server and shows the effective configuration.
"""

from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from checkout.config import get_settings

app = typer.Typer(
    name="checkout-backend",
    help="Checkout backend - Mercado Pago preferences and order reconciliation",
    add_completion=False,
)

console = Console()

SECRET_FIELDS = {"mp_access_token", "admin_token"}


def mask(value: str) -> str:
    """Hide all but the last four characters of a secret."""
    if not value:
        return "(not set)"
    if len(value) <= 4:
        return "****"
    return "*" * max(len(value) - 4, 4) + value[-4:]


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind address (defaults to API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (defaults to API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "checkout.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload or settings.debug,
        log_level=settings.log_level.lower(),
    )


@app.command("settings")
def show_settings() -> None:
    """Show the effective configuration with secrets masked."""
    settings = get_settings()

    table = Table(title="Checkout settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.model_dump().items():
        shown = mask(value) if name in SECRET_FIELDS else str(value)
        table.add_row(name, shown)

    console.print(table)
    if not settings.has_provider_credential:
        console.print("[yellow]MP_ACCESS_TOKEN is not set: order creation will fail with 500.[/yellow]")
    if not settings.admin_gate_enabled:
        console.print("[yellow]ADMIN_TOKEN is not set: admin endpoints are open.[/yellow]")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
