"""Config command group for tracker-sync.

- `tracker-sync config verify`: Validate a configuration file
- `tracker-sync config show`: Print the effective configuration

Example:
    $ tracker-sync config verify
    $ tracker-sync config verify ~/sync/tracker-sync.yaml
    $ tracker-sync config show --config ~/sync/tracker-sync.yaml
"""

import logging
from pathlib import Path

import typer
import yaml

from tracker_sync.cli_utils import EXIT_CONFIG_ERROR, EXIT_SUCCESS, console
from tracker_sync.core.config import DEFAULT_CONFIG_FILENAME, load_config
from tracker_sync.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

config_app = typer.Typer(
    name="config",
    help="Configuration management commands",
    no_args_is_help=True,
)


@config_app.command(name="verify")
def verify_command(
    config: Path = typer.Argument(
        None,
        help=f"Path to config file (default: ./{DEFAULT_CONFIG_FILENAME})",
    ),
) -> None:
    """Verify a configuration file.

    Exits with code 0 if the file is valid, 2 otherwise.
    """
    if config is None:
        config = Path(DEFAULT_CONFIG_FILENAME)

    config_path = config.resolve()

    if not config_path.exists():
        console.print(f"[red][ERR][/red] Config file not found: {config_path}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    if not config_path.is_file():
        console.print(f"[red][ERR][/red] Not a file: {config_path}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red][ERR][/red] {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    console.print(f"[green][OK][/green] {config_path}")
    console.print(f"  syncable columns: {', '.join(loaded.columns.syncable) or '(none)'}")
    console.print(f"  display-only columns: {', '.join(loaded.columns.display_only) or '(none)'}")
    if not loaded.columns.syncable:
        console.print("[yellow][WARN][/yellow] No syncable columns: no task will be reported missing")
    raise typer.Exit(code=EXIT_SUCCESS)


@config_app.command(name="show")
def show_command(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file to load (default: built-in defaults)",
    ),
) -> None:
    """Print the effective configuration as YAML."""
    try:
        loaded = load_config(config)
    except ConfigError as e:
        console.print(f"[red][ERR][/red] {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    # Plain print: Rich markup would mangle YAML brackets
    print(yaml.safe_dump(loaded.model_dump(mode="json"), sort_keys=False), end="")
    raise typer.Exit(code=EXIT_SUCCESS)
