"""Command-line interface for sizelog."""

import json
import sys
from pathlib import Path

import click

from .config.manager import ConfigManager
from .config.models import LoggerConfig
from .core.exceptions import SizeLogError
from .core.logging import StructuredLogger
from .core.models import Level, MessageKind

LEVEL_CHOICES = [level.name.lower() for level in Level if level is not Level.OFF]


def _build_config(ctx: click.Context, **overrides: object) -> LoggerConfig:
    config_manager: ConfigManager = ctx.obj["config_manager"]
    return config_manager.load_config(**overrides)


def _logger_options(func):  # type: ignore[no-untyped-def]
    """Options shared by commands that write log files."""
    options = [
        click.option(
            "--directory",
            type=click.Path(file_okay=False, path_type=Path),
            help="Directory for log files",
        ),
        click.option("--prefix", type=str, help="Log file name prefix"),
        click.option("--extension", type=str, help="Log file extension"),
        click.option("--limit-size", type=int, help="Rotate after this many bytes"),
        click.option("--header", type=str, help="Header template"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(package_name="sizelog")
@click.option(
    "--config-dir", type=click.Path(path_type=Path), help="Configuration directory path"
)
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None) -> None:
    """sizelog - structured logging into size-rotated files."""
    ctx.ensure_object(dict)
    ctx.obj["config_manager"] = ConfigManager(config_dir)


@cli.command()
@_logger_options
@click.option(
    "--level",
    type=click.Choice(LEVEL_CHOICES, case_sensitive=False),
    default="info",
    help="Level every line is logged at",
)
@click.option("--as-json", is_flag=True, help="Treat each input line as a JSON value")
@click.pass_context
def pipe(
    ctx: click.Context,
    directory: Path | None,
    prefix: str | None,
    extension: str | None,
    limit_size: int | None,
    header: str | None,
    level: str,
    as_json: bool,
) -> None:
    """Log every line read from stdin into rotating files."""
    try:
        config = _build_config(
            ctx,
            directory=directory,
            prefix=prefix,
            extension=extension,
            limit_size=limit_size,
            header=header,
        )
        logger = StructuredLogger.from_config(config)
    except SizeLogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    lvl = Level.parse(level)
    stdin = click.get_text_stream("stdin")
    failures = 0

    try:
        for raw in stdin:
            line = raw.rstrip("\n")
            if not line:
                continue

            if as_json:
                try:
                    value = json.loads(line)
                except json.JSONDecodeError:
                    result = logger.log(lvl, MessageKind.TEXT, (line,))
                else:
                    result = logger.log(lvl, MessageKind.JSON, (value,))
            else:
                result = logger.log(lvl, MessageKind.TEXT, (line,))

            if result.error is not None:
                failures += 1
                click.echo(f"Error: {result.error}", err=True)
    finally:
        logger.close()

    if failures:
        sys.exit(1)


@cli.command()
@_logger_options
@click.option(
    "--level",
    type=click.Choice(LEVEL_CHOICES, case_sensitive=False),
    default="info",
    help="Level of the line",
)
@click.argument("message", nargs=-1, required=True)
@click.pass_context
def write(
    ctx: click.Context,
    directory: Path | None,
    prefix: str | None,
    extension: str | None,
    limit_size: int | None,
    header: str | None,
    level: str,
    message: tuple[str, ...],
) -> None:
    """Write a single log line."""
    try:
        config = _build_config(
            ctx,
            directory=directory,
            prefix=prefix,
            extension=extension,
            limit_size=limit_size,
            header=header,
        )
        logger = StructuredLogger.from_config(config)
    except SizeLogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        result = logger.log(Level.parse(level), MessageKind.TEXT, message)
    finally:
        logger.close()

    if result.dropped:
        click.echo(f"Dropped: {level} is below the configured level", err=True)
    elif result.error is not None:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)


@cli.group()
def config() -> None:
    """Manage the configuration file."""
    pass


@config.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    try:
        current = config_manager.load_config()
    except SizeLogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Config file: {config_manager.config_file}")
    for key, value in current.model_dump(mode="json").items():
        click.echo(f"  {key}: {value}")


@config.command()
@click.confirmation_option(prompt="Reset configuration to defaults?")
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Reset the configuration file to defaults."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    config_manager.reset_to_defaults()
    click.echo("Configuration reset to defaults")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
