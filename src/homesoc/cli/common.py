"""Helpers shared by CLI commands."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from homesoc.config.loader import ConfigError, load_config
from homesoc.config.schema import HomeSocConfig

console = Console()

LOG_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure operator-visible logging for one CLI invocation."""
    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    ]
    if log_file:
        log_file = log_file.expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def prepare(config_path: str | None, verbose: bool = False) -> HomeSocConfig | None:
    """Load configuration and set up logging for a cycle command.

    Returns:
        Configuration, or None after printing the error if it is invalid
    """
    config = load_cli_config(config_path)
    if config is not None:
        setup_logging("DEBUG" if verbose else config.logging.level, config.logging.file)
    return config


def load_cli_config(config_path: str | None) -> HomeSocConfig | None:
    """Load configuration, printing the error and returning None if invalid."""
    path = Path(config_path) if config_path else None
    try:
        return load_config(path)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return None
