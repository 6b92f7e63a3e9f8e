"""Click CLI for running and checking the relay."""

from __future__ import annotations

import json
import logging
import sys

import click
import uvicorn

from src.config import LOG_LEVELS, ConfigurationError, RelaySettings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)


def _load_settings() -> RelaySettings:
    try:
        return RelaySettings.from_env()
    except ConfigurationError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


@click.group()
def cli() -> None:
    """Instagram AI reply relay."""


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address.")
@click.option("--port", default=3000, envvar="PORT", show_default=True, help="Bind port.")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Overrides LOG_LEVEL.",
)
def serve(host: str, port: int, log_level: str | None) -> None:
    """Run the webhook server."""
    settings = _load_settings()
    level = log_level or settings.log_level
    configure_logging(level)

    from src.api.app import create_app

    app = create_app(settings)
    logging.getLogger(__name__).info(
        "Starting relay on %s:%d (search %s)",
        host, port, "enabled" if settings.search_enabled else "disabled",
    )
    uvicorn.run(app, host=host, port=port, log_level=level.lower())


@cli.command("check-config")
def check_config() -> None:
    """Validate environment configuration and print a masked summary."""
    settings = _load_settings()
    click.echo(json.dumps(settings.masked_summary(), indent=2))
