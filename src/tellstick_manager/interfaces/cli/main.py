"""Command line interface for the Tellstick device manager."""

from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from ...devices.library import DeviceLibrary
from ...devices.mock import MockDeviceLibrary
from ...exceptions import DeviceEnumerationError, TellstickManagerError
from ...grouping.group_manager import GroupManager
from ...models.device_schema import DeviceStatus
from ...utils.logging import LogConfig, get_logger
from ...utils.logging_config import setup_logging
from ..api.server import build_server, create_device_library, load_config

# Create Typer app
app = typer.Typer(help="Manage Telldus radio-controlled devices")

# Create console for rich output
console = Console()

# Get logger for this module
logger = get_logger(__name__)


def configure_logging(debug: bool) -> None:
    LogConfig.setup(
        app_name="tellstick_manager",
        debug=debug,
        log_to_file=False,
        log_to_console=debug
    )


def display_devices(devices: DeviceLibrary, device_ids: List[int]) -> None:
    """Display a table of device status."""
    table = Table(show_header=True, header_style="bold magenta", box=box.DOUBLE_EDGE)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("On/Off")
    table.add_column("Dim")
    table.add_column("Learn")
    table.add_column("Last Command")
    table.add_column("Dim Level", justify="right")

    for device_id in device_ids:
        status = DeviceStatus.from_library(devices, device_id)
        table.add_row(
            str(status.id),
            status.name,
            "yes" if status.supports_on_off else "",
            "yes" if status.supports_dim else "",
            "yes" if status.supports_learn else "",
            "on" if status.on else "off",
            str(status.dim_level_last) if status.supports_dim else ""
        )

    console.print(table)


@app.command("serve")
def serve(
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to config file"),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind the server to"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind the server to"),
    mock: bool = typer.Option(False, "--mock", help="Use the in-memory mock backend"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Run the REST API server."""
    config = load_config(config_file)
    if host:
        config.set("server", "host", host)
    if port:
        config.set("server", "port", str(port))
    if mock:
        config.set("devices", "backend", "mock")
    if debug:
        config.set("server", "log_level", "debug")

    setup_logging(config.get("server", "log_level"))
    try:
        server = build_server(config)
    except (TellstickManagerError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(code=1)
    server.serve_forever()


@app.command("devices")
def list_devices(
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to config file"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """List devices known to the Telldus service."""
    configure_logging(debug)
    config = load_config(config_file)
    try:
        devices = create_device_library(
            config.get("devices", "backend"),
            config.get("devices", "library_path")
        )
        try:
            device_ids = devices.get_device_ids()
        except DeviceEnumerationError as e:
            console.print(f"[yellow]Warning:[/yellow] {str(e)}")
            device_ids = e.device_ids
    except (TellstickManagerError, ValueError) as e:
        logger.error(f"Failed to list devices: {str(e)}")
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(code=1)

    if not device_ids:
        console.print("[yellow]No devices found[/yellow]")
        return
    display_devices(devices, device_ids)


@app.command("groups")
def show_groups(
    groups_file: str = typer.Argument(..., help="File of GROUP configuration lines"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Validate a group file and show the groups it defines."""
    configure_logging(debug)
    try:
        # No devices are touched, the manager only parses and holds the groups
        group_manager = GroupManager(MockDeviceLibrary(), groups_file=groups_file)
    except (TellstickManagerError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(code=1)

    groups = group_manager.list_groups()
    if not groups:
        console.print("[yellow]No groups found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta", box=box.DOUBLE_EDGE)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Devices")
    for group in groups:
        table.add_row(str(group.id), group.name, " ".join(str(i) for i in group.device_ids))
    console.print(table)


if __name__ == "__main__":
    app()
