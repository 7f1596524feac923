"""
CLI module for track analyzer commands.
"""

import asyncio
import json
import logging
import sys

import click

from track_analyzer.analyzer import AudioAnalyzer, set_analyzer
from track_analyzer.config import Config, set_config
from track_analyzer.decoder import DecodeError
from track_analyzer.sources import AudioSourceError


def setup_logging(level: str = "INFO", fmt: str = None) -> None:
    """Setup logging configuration.

    Args:
        level: Logging level.
        fmt: Log record format.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.option(
    "--log-level",
    "-l",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (defaults to the configured level)"
)
@click.pass_context
def cli(ctx, config: str, log_level: str):
    """Track Analyzer - tempo, key and energy extraction for audio tracks."""
    # Load configuration
    cfg = Config(config) if config else Config()
    set_config(cfg)

    # Setup logging
    setup_logging(
        log_level or cfg.get("logging.level", "INFO"),
        cfg.get("logging.format"),
    )

    # Store config in context
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command()
@click.argument("source")
@click.option(
    "--json/--no-json",
    "as_json",
    default=False,
    help="Print the result as JSON"
)
@click.pass_context
def analyze(ctx, source: str, as_json: bool):
    """Analyze SOURCE (file path, URL or data URL)."""
    config = ctx.obj["config"]
    analyzer = AudioAnalyzer(config)

    try:
        result = asyncio.run(analyzer.analyze_reference(source))
    except (AudioSourceError, DecodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(f"BPM:    {result.bpm} (confidence {result.confidence.bpm:.2f})")
    click.echo(f"Key:    {result.musical_key} (confidence {result.confidence.key:.2f})")
    click.echo(f"Energy: {result.energy:.2f}")


@cli.command("engine-status")
@click.pass_context
def engine_status(ctx):
    """Initialize the primary engine and report its state."""
    config = ctx.obj["config"]
    analyzer = AudioAnalyzer(config)

    analyzer.engine_handle.initialize()

    click.echo(f"Backend: {config.engine_backend}")
    click.echo(f"State:   {analyzer.engine_state.value}")
    if analyzer.engine_handle.error is not None:
        click.echo(f"Error:   {analyzer.engine_handle.error}")


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Host to bind to"
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to"
)
@click.option(
    "--reload/--no-reload",
    default=False,
    help="Enable auto-reload"
)
@click.pass_context
def serve(ctx, host: str, port: int, reload: bool):
    """Start the API server."""
    import uvicorn

    config = ctx.obj["config"]
    host = host or config.get("api.host", "0.0.0.0")
    port = port or config.get("api.port", 8000)
    config.set("api.host", host)
    config.set("api.port", port)
    config.set("api.reload", reload)

    # The app builds its analyzer from the configuration set above
    set_analyzer(None)

    click.echo(f"Starting API server at http://{host}:{port}")

    from track_analyzer.api import app

    # Reload needs an import string
    uvicorn.run(
        "track_analyzer.api:app" if reload else app,
        host=host,
        port=port,
        reload=reload,
    )


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
