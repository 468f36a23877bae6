"""casesync CLI — watch the real-time channel from a terminal.

Usage:
    casesync watch --url wss://api.example.com --token JWT   # Stream status, toasts, invalidations
    casesync schedule                                       # Retry delay table for current settings
    casesync events                                         # Recognised server events and their effects
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import signal
import sys
from typing import Optional

import click
import structlog

from casesync import __version__
from casesync.cache.base import Notification
from casesync.cache.keys import CacheKey
from casesync.cache.memory import MemoryQueryCache
from casesync.client import create_client
from casesync.config import Settings, settings
from casesync.realtime.backoff import BackoffPolicy
from casesync.realtime.indicator import describe
from casesync.realtime.router import ROUTES
from casesync.realtime.session import AuthTokenSource
from casesync.realtime.state import ConnectionState

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Badge colors → click colors
_CLICK_COLORS = {"green": "green", "amber": "yellow", "gray": "white", "red": "red"}


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _configure_logging(cfg: Settings) -> None:
    """Configure structlog once for the CLI process."""
    level = logging.getLevelName(cfg.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    renderer = (
        structlog.processors.JSONRenderer()
        if cfg.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _format_key(key: CacheKey) -> str:
    return "[" + ", ".join(repr(part) for part in key) + "]"


def _echo_status(state: ConnectionState) -> None:
    badge, tooltip = describe(state)
    line = f"● {badge.label}"
    if state.reconnect_attempts:
        line += f" (failures: {state.reconnect_attempts})"
    click.secho(line, fg=_CLICK_COLORS.get(badge.color, "white"), bold=True)
    if state.error:
        click.secho(f"  {tooltip}", fg="red")


class _EchoNotifier:
    def notify(self, notification: Notification) -> None:
        click.secho(f"  🔔 {notification.title}", fg="cyan", bold=True)
        if notification.message:
            click.echo(f"     {notification.message}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="casesync")
def main():
    """casesync — real-time update client for the case management dashboard."""


# ---------------------------------------------------------------------------
# casesync watch
# ---------------------------------------------------------------------------


@main.command()
@click.option("--url", "-u", help="Event stream URL (or set CASESYNC_WS_URL)")
@click.option("--token", "-t", envvar="CASESYNC_TOKEN", help="Auth token (or set CASESYNC_TOKEN)")
@click.option("--max-attempts", type=click.IntRange(min=1), help="Override the reconnect attempt cap")
def watch(url: Optional[str], token: Optional[str], max_attempts: Optional[int]):
    """Connect and print status changes, toasts and cache invalidations."""
    url = url or settings.ws_url
    if not url:
        click.secho("Error: --url required (or set CASESYNC_WS_URL env var)", fg="red", err=True)
        sys.exit(1)
    if not token:
        click.secho("Error: --token required (or set CASESYNC_TOKEN env var)", fg="red", err=True)
        sys.exit(1)

    overrides: dict = {"ws_url": url}
    if max_attempts:
        overrides["max_reconnect_attempts"] = max_attempts
    cfg = Settings(**{**settings.model_dump(), **overrides})

    _configure_logging(cfg)
    _run(_watch_impl(cfg, token))


async def _watch_impl(cfg: Settings, token: str):
    cache = MemoryQueryCache()
    cache.on_invalidate(lambda key: click.echo(f"  ↻ invalidated {_format_key(key)}"))

    client = create_client(
        cache=cache,
        notifier=_EchoNotifier(),
        tokens=AuthTokenSource(token),
        settings=cfg,
    )
    client.store.subscribe(_echo_status)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not available off the main thread / on some platforms
            pass

    click.secho(f"Watching {cfg.ws_url} (Ctrl+C to stop)", bold=True)
    client.start()
    try:
        await stop.wait()
    finally:
        await client.stop()
        click.echo(f"Stopped. {len(cache.invalidations)} invalidation(s) received.")


# ---------------------------------------------------------------------------
# casesync schedule
# ---------------------------------------------------------------------------


@main.command()
@click.option("--attempts", type=click.IntRange(min=1), help="Attempt cap (default: CASESYNC_MAX_RECONNECT_ATTEMPTS)")
def schedule(attempts: Optional[int]):
    """Show the reconnect delays the client will use."""
    policy = BackoffPolicy.from_settings(settings)
    if attempts:
        policy.max_attempts = attempts

    click.secho(f"{'Failure':<10}{'Next retry in':<16}", bold=True)
    click.echo("-" * 26)
    for failures in range(1, policy.max_attempts + 1):
        if policy.exhausted(failures):
            click.secho(f"{failures:<10}{'gives up (reload required)':<16}", fg="red")
        else:
            click.echo(f"{failures:<10}{policy.delay_for(failures):g}s")


# ---------------------------------------------------------------------------
# casesync events
# ---------------------------------------------------------------------------


@main.command()
def events():
    """List the server events the client reacts to."""
    width = max(len(name) for name in ROUTES) + 2
    click.secho(f"{'Event':<{width}}Effect", bold=True)
    click.echo("-" * (width + 40))
    for name, route in ROUTES.items():
        click.echo(f"{name:<{width}}{route.summary}")


if __name__ == "__main__":
    main()
