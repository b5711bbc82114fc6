"""
Command-line interface for the Insaion installer.

Provides commands for detecting the host platform and installing the agent.
"""

from __future__ import annotations

import logging
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from insaion_installer import __version__
from insaion_installer.config import Config
from insaion_installer.core import Installer
from insaion_installer.environment import PlatformDetector
from insaion_installer.errors import InstallerError

console = Console()
err_console = Console(stderr=True)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

TERMINATION_SIGNALS = ("SIGTERM", "SIGHUP")


def setup_logging(level: str, log_file: str | None = None) -> None:
    """Configure logging with rich handler."""
    handlers: list[logging.Handler] = [RichHandler(console=err_console, rich_tracebacks=True)]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def _fail(error: InstallerError) -> None:
    err_console.print(f"[red]ERROR: {error.message}[/]")
    if error.hint:
        err_console.print(error.hint)
    sys.exit(error.exit_code)


def _exit_on_signal(signum: int, frame: object) -> None:
    sys.exit(128 + signum)


@contextmanager
def exit_on_termination() -> Iterator[None]:
    """
    Turn SIGTERM and SIGHUP into SystemExit while the block runs.

    The default action kills the process outright, which would skip the
    cleanup of the installer's temporary directory.
    """
    previous = {}
    for name in TERMINATION_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is not None:
            previous[signum] = signal.signal(signum, _exit_on_signal)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="insaion-install")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "-V",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """
    Insaion Installer - Agent installer for ROS hosts.

    Always installs the newest published release of the agent.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["config"] = Config.load(config)
    else:
        ctx.obj["config"] = Config.load()

    log_level = "DEBUG" if verbose else ctx.obj["config"].log_level
    setup_logging(log_level, ctx.obj["config"].log_file)
    ctx.obj["verbose"] = verbose


@main.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--url",
    "base_url",
    metavar="BASE_URL",
    help="Base URL that release assets are downloaded from",
)
@click.option(
    "--ros",
    "--ros-distro",
    "ros_distro",
    metavar="ROS_DISTRO",
    help="ROS distribution to install for (skips auto-detection)",
)
@click.option(
    "--telemetry/--no-telemetry",
    default=None,
    help="Set up the optional monitoring component",
)
@click.pass_context
def install(
    ctx: click.Context,
    base_url: str | None,
    ros_distro: str | None,
    telemetry: bool | None,
) -> None:
    """
    Install the newest release of the agent.

    \b
    Examples:
      insaion-install install
      insaion-install install --ros humble
    """
    config: Config = ctx.obj["config"]

    console.print("Starting Insaion Agent installation...")
    installer = Installer(config, on_step=console.print)

    try:
        with exit_on_termination():
            report = installer.install(
                ros_override=ros_distro, base_url=base_url, telemetry=telemetry
            )
    except InstallerError as e:
        _fail(e)
        return

    if ctx.obj["verbose"]:
        console.print_json(data=report.to_dict())
    for warning in report.warnings:
        console.print(f"[yellow]{warning}[/]")
    console.print("[green]Insaion Agent installation completed.[/]")


@main.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--ros",
    "--ros-distro",
    "ros_distro",
    metavar="ROS_DISTRO",
    help="ROS distribution override",
)
@click.pass_context
def detect(ctx: click.Context, ros_distro: str | None) -> None:
    """Show the detected platform without installing anything."""
    config: Config = ctx.obj["config"]

    try:
        identity = PlatformDetector().detect(ros_distro or config.ros_distro)
    except InstallerError as e:
        _fail(e)
        return

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    table.add_row("ROS Distribution", identity.ros_distro or "[dim]Not found[/]")
    table.add_row("OS", identity.os_id or "[dim]Unknown[/]")
    table.add_row("Codename", identity.codename or "[dim]Unknown[/]")
    table.add_row("Architecture", identity.architecture)
    table.add_row("Detected From", identity.source)

    console.print()
    console.print(Panel.fit("[bold]Platform[/]", border_style="blue"))
    console.print(table)


@main.command("version", short_help="Display version information")
def version() -> None:
    """Display version information for the installer."""
    console.print()
    console.print(
        Panel.fit(
            f"[bold blue]Insaion Installer[/]\nVersion: [cyan]{__version__}[/]",
            border_style="blue",
            title="Version Information",
        )
    )
    console.print()


@main.command("init-config")
@click.argument("output_path", type=click.Path(path_type=Path))
def init_config(output_path: Path) -> None:
    """
    Generate a sample configuration file.

    Creates a YAML configuration file with all available options.
    """
    Config().save(output_path)
    console.print(f"[green]✓ Configuration file created: {output_path}[/]")
    console.print()
    console.print("Next steps:")
    console.print("  1. Edit the configuration file if you mirror the release assets")
    console.print("  2. Optionally set a token: [cyan]export GITHUB_TOKEN=your-token[/]")
    console.print("  3. Run the installer: [cyan]sudo insaion-install install[/]")


if __name__ == "__main__":
    main()
