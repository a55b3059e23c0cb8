"""CLI entry point for the event_pinner daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from event_pinner.config import load_config
from event_pinner.daemon import PinnerDaemon, run_daemon
from event_pinner.errors import ConfigurationError
from event_pinner.models.records import CycleReport
from event_pinner.storage.sqlite import SQLiteStateStore


def _require_contract(cfg):
    """Exit with error if the contract is not configured."""
    if not cfg.contract_address:
        click.echo("Error: No contract address configured.", err=True)
        click.echo("Set EVENT_PINNER_CONTRACT_ADDRESS or [contract] address.", err=True)
        sys.exit(1)
    if not cfg.abi_path:
        click.echo("Error: No contract ABI configured.", err=True)
        click.echo("Set EVENT_PINNER_ABI_PATH or [contract] abi_path.", err=True)
        sys.exit(1)


def _echo_report(report: CycleReport) -> None:
    line = (
        f"  {report.event_name:<20} logs={report.records_seen:<6} "
        f"desired={report.desired:<6} +{report.pinned} -{report.unpinned} "
        f"failed={report.failed} {report.duration_ms}ms"
    )
    if report.overlap_skipped:
        line += " (skipped: already running)"
    if report.error:
        line += f" ERROR: {report.error}"
    click.echo(line)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """event_pinner - keeps IPFS pins in sync with contract events."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    try:
        cfg = load_config(config_path)
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    ctx.obj["config"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the pinning daemon."""
    cfg = ctx.obj["config"]
    _require_contract(cfg)

    click.echo(f"Starting event_pinner daemon ({len(cfg.events)} event types)")
    try:
        asyncio.run(run_daemon(cfg))
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration, pin counts and recent cycles."""
    cfg = ctx.obj["config"]
    click.echo(f"Contract:   {cfg.contract_address or '(not set)'}")
    click.echo(f"ABI:        {cfg.abi_path or '(not set)'}")
    click.echo(f"Kubo RPC:   {cfg.kubo_rpc_url}")
    click.echo(f"Schedule:   {cfg.schedule}")
    click.echo(f"DB path:    {cfg.db_path}")
    click.echo("Events:")
    for event_type in cfg.events:
        click.echo(
            f"  {event_type.event_name:<20} new={event_type.new_hash_field} "
            f"old={event_type.old_hash_field or '-'} "
            f"schedule={cfg.schedule_for(event_type)}"
        )

    async def _status():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            click.echo(f"Pins:       {await store.count_pins()}")
            history = await store.get_cycle_history(10)
            if history:
                click.echo("Recent cycles:")
                for report in history:
                    _echo_report(report)
        finally:
            await store.close()

    asyncio.run(_status())


@cli.command()
@click.pass_context
def reconcile(ctx: click.Context) -> None:
    """Run one reconcile cycle for every event type and exit."""
    cfg = ctx.obj["config"]
    _require_contract(cfg)

    async def _reconcile():
        daemon = PinnerDaemon(cfg)
        try:
            await daemon.setup()
            for name, reason in daemon.excluded.items():
                click.echo(f"  {name:<20} EXCLUDED: {reason}", err=True)
            for report in await daemon.reconcile_once():
                _echo_report(report)
        finally:
            await daemon.store.close()

    try:
        asyncio.run(_reconcile())
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
