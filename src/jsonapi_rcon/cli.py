"""JSONAPI Rcon CLI.

Connection options can also be given through JSONAPI_RCON_* environment
variables.

Usage:
    jsonapi-rcon call players.online.names          # Call a method
    jsonapi-rcon call chat.broadcast '"Hello"'      # JSON arguments
    jsonapi-rcon subscribe chat console             # Stream pushes
    jsonapi-rcon subscribe chat --show-previous     # Include backlog
    jsonapi-rcon key players.online.names           # Print derived key
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from .client import RconClient
from .config import DEFAULT_PORT, ENV_PREFIX, RconConfig
from .errors import RconError


def parse_argument(value: str) -> Any:
    """Parse a CLI argument as JSON, falling back to the raw string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _dump(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


@click.group()
@click.option("--host", envvar=f"{ENV_PREFIX}HOST", default="localhost", help="Server host")
@click.option("--port", envvar=f"{ENV_PREFIX}PORT", default=DEFAULT_PORT, help="WebSocket port")
@click.option("--username", "-u", envvar=f"{ENV_PREFIX}USERNAME", default="admin", help="Account")
@click.option("--password", "-p", envvar=f"{ENV_PREFIX}PASSWORD", default="", help="Password")
@click.option("--salt", envvar=f"{ENV_PREFIX}SALT", default="", help="Salt")
@click.option("--timeout", default=1.0, show_default=True, help="Command timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Log connection activity to stderr")
@click.pass_context
def main(
    ctx: click.Context,
    host: str,
    port: int,
    username: str,
    password: str,
    salt: str,
    timeout: float,
    verbose: bool,
) -> None:
    """Talk to a JSONAPI server over its WebSocket API."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = RconConfig(
        host=host,
        port=port,
        username=username,
        password=password,
        salt=salt,
        command_timeout=timeout,
    )


@main.command("call")
@click.argument("method")
@click.argument("arguments", nargs=-1)
@click.option("--pretty", is_flag=True, help="Indent JSON output")
@click.pass_obj
def call_command(config: RconConfig, method: str, arguments: tuple[str, ...], pretty: bool) -> None:
    """Call METHOD with ARGUMENTS and print the result as JSON.

    Each argument is parsed as JSON when possible, otherwise sent as a
    string.

    Examples:

        jsonapi-rcon call players.online.names

        jsonapi-rcon call players.name.kick Steve '"Bye"'
    """
    parsed = [parse_argument(a) for a in arguments]

    try:
        result = asyncio.run(_run_call(config, method, parsed))
    except RconError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if pretty:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    else:
        click.echo(_dump(result))


async def _run_call(config: RconConfig, method: str, arguments: list[Any]) -> Any:
    client = RconClient(config)
    try:
        return await client.call(method, arguments)
    finally:
        await client.close()


@main.command("subscribe")
@click.argument("sources", nargs=-1, required=True)
@click.option("--show-previous", is_flag=True, help="Replay recent messages first")
@click.pass_obj
def subscribe_command(config: RconConfig, sources: tuple[str, ...], show_previous: bool) -> None:
    """Print pushes from SOURCES as JSON lines until interrupted.

    Examples:

        jsonapi-rcon subscribe chat

        jsonapi-rcon subscribe chat connections --show-previous
    """
    try:
        asyncio.run(_run_subscribe(config, list(sources), show_previous))
    except KeyboardInterrupt:
        click.echo("\nStopped", err=True)
    except RconError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


async def _run_subscribe(config: RconConfig, sources: list[str], show_previous: bool) -> None:
    def on_push(payload: Any) -> None:
        click.echo(_dump(payload))

    client = RconClient(config, listener=on_push)
    try:
        for source in sources:
            await client.registry.register(source, show_previous)
        await asyncio.Event().wait()
    finally:
        await client.close()


@main.command("key")
@click.argument("name")
@click.pass_obj
def key_command(config: RconConfig, name: str) -> None:
    """Print the key for method or source NAME."""
    click.echo(config.credentials.key_for(name))


if __name__ == "__main__":
    main()
