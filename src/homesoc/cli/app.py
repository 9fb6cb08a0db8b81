"""Main CLI application using Typer."""

import typer
from rich.console import Console

from homesoc import __version__

app = typer.Typer(
    name="homesoc",
    help="Homesoc - Lightweight host-security monitor",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show homesoc version."""
    console.print(f"homesoc version {__version__}")


@app.command()
def scan(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.homesoc/homesoc.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run one network snapshot cycle: collect, detect, alert, persist."""
    from homesoc.cli.scan_cmd import scan_command

    raise typer.Exit(scan_command(config_path=config_path, verbose=verbose))


@app.command()
def aggregate(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.homesoc/homesoc.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run one threat-intelligence aggregation cycle and refresh the cache."""
    from homesoc.cli.intel_cmd import aggregate_command

    raise typer.Exit(aggregate_command(config_path=config_path, verbose=verbose))


@app.command()
def summary(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.homesoc/homesoc.yaml)",
    ),
):
    """Show the summary stored in the threat cache."""
    from homesoc.cli.intel_cmd import summary_command

    raise typer.Exit(summary_command(config_path=config_path))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
