"""smee-relay CLI: subscribe to a smee.io channel and print every relayed event."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from smee_relay import __version__
from smee_relay._config import RelaySettings
from smee_relay._errors import SmeeError
from smee_relay._sse import SSEEvent
from smee_relay.relay import SmeeClient

LOG_FORMAT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _load_env(env_file: str | None) -> None:
    if env_file == "":
        return
    path = Path(env_file or ".env")
    if not path.is_file():
        if env_file:
            raise click.BadParameter(f"file not found: {env_file}", param_hint="--env-file")
        return
    load_dotenv(path)


def _build_client(url: str | None, settings: RelaySettings) -> SmeeClient:
    return SmeeClient(source=url, settings=settings)


def format_event(event: SSEEvent) -> str:
    return f"Received event: id={event.id}, name={event.name}, payload={event.text}"


async def _relay(client: SmeeClient) -> None:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in STOP_SIGNALS:
        # Not available on Windows event loops or outside the main thread.
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, stop.set)

    try:
        config = await client.aresolve_source()
        click.echo(f"Subscribing to smee source ({config.describe()}): {config.url}")

        sub = await client.start(config, cancel=stop)
        async for event in sub:
            click.echo(format_event(event))

        await sub.wait()
        sub.raise_for_error()
    finally:
        for sig in STOP_SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                loop.remove_signal_handler(sig)
        client.close()
        await client.aclose()


@click.command()
@click.version_option(version=__version__, prog_name="smee-relay")
@click.argument("url", required=False)
@click.option(
    "--env-file",
    "-e",
    default=None,
    help="Path to the .env file to load. Defaults to .env in the current directory. "
    "Set explicitly to empty to skip loading.",
)
@click.option("--lenient", is_flag=True, help="Ignore SSE comment and retry: lines instead of failing.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(url: str | None, env_file: str | None, lenient: bool, verbose: bool) -> None:
    """Receive webhook events from a smee.io channel.

    URL is the channel to subscribe to. If not provided, SMEE_SOURCE is used,
    and a new channel is created when neither is set.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    _load_env(env_file)

    try:
        settings = RelaySettings.from_env()
    except ValidationError as exc:
        click.echo(f"Invalid configuration: {exc}", err=True)
        sys.exit(1)

    if lenient:
        settings = settings.model_copy(update={"strict": False})

    client = _build_client(url, settings)
    try:
        asyncio.run(_relay(client))
    except SmeeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
