"""Click CLI: run the relay server and helper commands."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click
import uvicorn

from src.analysis.fetcher import AnalysisFetcher, AnalysisFetchError
from src.api.app import create_app
from src.config import AppConfig, ConfigError
from src.webhook.signature import canonical_json, compute_signature


def _load_config() -> AppConfig:
    try:
        return AppConfig.from_env()
    except ConfigError as e:
        for problem in e.problems:
            click.echo(f"config error: {problem}", err=True)
        sys.exit(2)


@click.group()
@click.option("--log-level", default="INFO", help="Root log level.")
def cli(log_level: str) -> None:
    """Audio analysis webhook relay."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind.")
def serve(host: str) -> None:
    """Validate configuration and run the server on $PORT."""
    config = _load_config()
    uvicorn.run(create_app(config), host=host, port=config.port)


@cli.command()
@click.argument("payload_file", type=click.File("rb"))
@click.option("--secret", envvar="SECRET", required=True, help="Webhook signing secret.")
def sign(payload_file, secret: str) -> None:  # noqa: ANN001
    """Print the signature header value for a JSON payload file."""
    payload = json.loads(payload_file.read())
    click.echo(compute_signature(secret, canonical_json(payload)))


@cli.command()
@click.argument("track_id")
def fetch(track_id: str) -> None:
    """Run the analysis query for TRACK_ID and print the JSON result."""
    config = _load_config()
    fetcher = AnalysisFetcher(
        config.api_url, config.access_token, timeout=config.fetch_timeout,
    )
    try:
        result = asyncio.run(fetcher.fetch_analysis(track_id))
    except AnalysisFetchError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(json.dumps(result, indent=2))
