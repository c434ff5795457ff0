"""
peermon entry point.

Usage:
    peermon                                   Poll $GETH_RPC_URL, serve :8080/metrics
    peermon --url http://localhost:8545       Poll a specific node
    peermon --mock                            Simulated node, no RPC needed
    peermon peers                             One-shot peer table
    peermon probe --min-peers 3               Liveness check against a running exporter
"""

from __future__ import annotations

import logging
import signal
import sys

import click
import httpx

from peermon import __version__
from peermon.collector.base import PeerSource
from peermon.collector.mock_collector import MockCollector
from peermon.collector.rpc_client import (
    DEFAULT_TIMEOUT_SECONDS,
    GethRPCClient,
    RemoteQueryError,
    RPCConnectError,
)
from peermon.dashboard.formatter import format_jsonl
from peermon.exporter.registry import PEER_COUNT_METRIC, PeerMetrics
from peermon.exporter.server import DEFAULT_METRICS_PORT, MetricsBindError, MetricsExposer
from peermon.scheduler import DEFAULT_INTERVAL_SECONDS, PollingScheduler


log = logging.getLogger("peermon")

DEFAULT_RPC_URL = "http://geth.ethereum.svc.cluster.local:8545"


def _open_source(mock: bool, url: str, timeout: float) -> PeerSource:
    if mock:
        return MockCollector()
    try:
        return GethRPCClient(url, timeout_seconds=timeout)
    except RPCConnectError as e:
        log.error("Failed to connect to Geth: %s", e)
        raise SystemExit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="peermon")
@click.option("--url", envvar="GETH_RPC_URL", default=DEFAULT_RPC_URL, show_default=True,
              help="Geth JSON-RPC URL (env: GETH_RPC_URL)")
@click.option("--mock", is_flag=True, default=False, help="Use a simulated node instead of RPC")
@click.option("--host", default="", help="Metrics listener address (default: all interfaces)")
@click.option("--port", envvar="PEERMON_METRICS_PORT", default=DEFAULT_METRICS_PORT,
              show_default=True, help="Metrics listener port")
@click.option("--interval", default=DEFAULT_INTERVAL_SECONDS, show_default=True,
              help="Poll interval in seconds")
@click.option("--timeout", default=DEFAULT_TIMEOUT_SECONDS, show_default=True,
              help="admin_peers call timeout in seconds")
@click.option("--output", type=click.Choice(["text", "jsonl"]), default="text",
              help="Snapshot format: text (readable block) or jsonl (one JSON line per poll)")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, url: str, mock: bool, host: str, port: int, interval: float,
        timeout: float, output: str, verbose: bool):
    """peermon - Geth peer connectivity monitor."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["mock"] = mock
    ctx.obj["timeout"] = timeout

    if ctx.invoked_subcommand is not None:
        return

    source = _open_source(mock, url, timeout)
    metrics = PeerMetrics()
    exposer = MetricsExposer(metrics, host=host, port=port)

    try:
        exposer.start()
    except MetricsBindError as e:
        log.error("Failed to start metrics server: %s", e)
        source.close()
        raise SystemExit(1)

    if output == "jsonl":
        def emit(line: str):
            sys.stdout.write(line + "\n")
            sys.stdout.flush()

        scheduler = PollingScheduler(
            source, metrics, interval=interval,
            render=lambda snapshot: format_jsonl(snapshot, source.name()),
            emit=emit,
        )
    else:
        scheduler = PollingScheduler(source, metrics, interval=interval)

    signal.signal(signal.SIGTERM, lambda signum, frame: scheduler.stop())

    try:
        scheduler.run()
    except KeyboardInterrupt:
        pass
    finally:
        exposer.stop()
        source.close()


@cli.command()
@click.pass_context
def peers(ctx):
    """Take a single admin_peers reading and print it as a table."""
    from rich.console import Console
    from rich.table import Table

    source = _open_source(ctx.obj["mock"], ctx.obj["url"], ctx.obj["timeout"])
    try:
        snapshot = source.fetch()
    except RemoteQueryError as e:
        log.error("Error fetching peers: %s", e)
        raise SystemExit(1)
    finally:
        source.close()

    console = Console()
    console.print(f"\n[bold]{source.name()}[/bold]  Total Peers: [cyan]{len(snapshot)}[/cyan]")

    if not len(snapshot):
        console.print("\n[yellow]No peers connected.[/yellow]\n")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", width=4)
    table.add_column("ID", max_width=18, no_wrap=True)
    table.add_column("Name")
    table.add_column("Remote Address")
    table.add_column("Capabilities")
    table.add_column("eth", justify="center")

    for index, peer in enumerate(snapshot, start=1):
        eth = peer.protocols.get("eth")
        if isinstance(eth, dict) and "version" in eth:
            eth_label = f"[green]{eth['version']}[/green]"
        elif eth is None:
            eth_label = "[dim]-[/dim]"
        else:
            eth_label = f"[yellow]{eth}[/yellow]"

        table.add_row(
            str(index),
            f"[cyan]{peer.id[:16]}[/cyan]",
            peer.name,
            peer.remote_address,
            " ".join(peer.caps),
            eth_label,
        )

    console.print(table)
    console.print()


@cli.command()
@click.option("--endpoint", default=f"http://127.0.0.1:{DEFAULT_METRICS_PORT}", show_default=True,
              help="Base URL of a running peermon exporter")
@click.option("--min-peers", default=1, show_default=True,
              help="Fail unless the exported peer count is at least this")
def probe(endpoint: str, min_peers: int):
    """Check a running exporter's peer count (exit 0 ok, 1 too few, 2 unreachable)."""
    from prometheus_client.parser import text_string_to_metric_families

    metrics_url = endpoint.rstrip("/")
    if not metrics_url.endswith("/metrics"):
        metrics_url += "/metrics"

    try:
        response = httpx.get(metrics_url, timeout=5.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        click.echo(f"UNKNOWN: cannot scrape {metrics_url}: {e}")
        raise SystemExit(2)

    count = None
    try:
        for family in text_string_to_metric_families(response.text):
            if family.name == PEER_COUNT_METRIC and family.samples:
                count = family.samples[0].value
    except ValueError as e:
        click.echo(f"UNKNOWN: unparseable metrics from {metrics_url}: {e}")
        raise SystemExit(2)

    if count is None:
        click.echo(f"UNKNOWN: {PEER_COUNT_METRIC} not found at {metrics_url}")
        raise SystemExit(2)

    if count < min_peers:
        click.echo(f"FAIL: {PEER_COUNT_METRIC}={count:g} (want >= {min_peers})")
        raise SystemExit(1)

    click.echo(f"OK: {PEER_COUNT_METRIC}={count:g}")


if __name__ == "__main__":
    cli()
