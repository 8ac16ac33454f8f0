"""
Trusted-state commands: init, status, sync
"""

import os
from typing import Optional

import typer
from rich.table import Table

from lightclient import metrics
from lightclient.checkpoint import CheckpointStore
from lightclient.core.errors import ConfigError, DuplicateEpoch, MalformedInput, SourceError
from lightclient.sync import SyncDriver, source_from_url
from lightclient.tracker import (
    SNAPSHOT_FILENAME,
    ChainTracker,
    TrustedState,
    load_genesis,
    save_genesis,
    save_snapshot,
)

from cli.common import (
    EXIT_USAGE,
    EXIT_VERIFICATION_FAILED,
    console,
    fail,
    get_config,
    load_tracker,
    print_json,
)


def init_command(
    ctx: typer.Context,
    genesis: str = typer.Option(..., "--genesis", "-g", help="Genesis trusted-state JSON file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing snapshot"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Bootstrap the state directory from a genesis file.

    Examples:
        lightclient init --genesis genesis.json
        lightclient --state-dir /var/lib/lightclient init --genesis genesis.json --force
    """
    config = get_config(ctx)
    state_dir = config.state_path
    snapshot_path = os.path.join(state_dir, SNAPSHOT_FILENAME)

    if os.path.exists(snapshot_path) and not force:
        fail(f"{snapshot_path} already exists (use --force to overwrite)", EXIT_USAGE, json_output)

    try:
        state = load_genesis(genesis)
        tracker = ChainTracker(state, policy=config.quorum_policy())
    except FileNotFoundError as e:
        fail(f"genesis file not found: {e.filename}", EXIT_USAGE, json_output)
    except (MalformedInput, ConfigError, DuplicateEpoch) as e:
        fail(f"invalid genesis: {e}", EXIT_USAGE, json_output)

    try:
        save_genesis(state, config.resolved_genesis_path)
        save_snapshot(tracker, snapshot_path)
    except OSError as e:
        fail(f"cannot write state: {e}", EXIT_USAGE, json_output)

    if json_output:
        print_json({
            "success": True,
            "state_dir": state_dir,
            "sequence_number": state.sequence_number,
            "epoch": state.epoch,
            "digest": state.checkpoint.digest,
        })
    else:
        console.print("[green]✓ Light client initialised[/green]")
        console.print(f"  State dir: [cyan]{state_dir}[/cyan]")
        console.print(f"  Genesis checkpoint: {state.sequence_number} (epoch {state.epoch})")
        console.print(f"  Committee: {len(state.committee)} validators, stake {state.committee.total_stake}")


def _state_summary(tracker: ChainTracker) -> dict:
    state: TrustedState = tracker.current_trusted_state()
    return {
        "sequence_number": state.sequence_number,
        "epoch": state.epoch,
        "digest": state.checkpoint.digest,
        "timestamp_ms": state.checkpoint.timestamp_ms,
        "committee_epoch": state.committee.epoch,
        "committee_size": len(state.committee),
        "total_stake": state.committee.total_stake,
        "stored_epochs": tracker.store.epochs(),
    }


def status_command(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show the trusted checkpoint and committee.

    Examples:
        lightclient status
        lightclient status --json
    """
    config = get_config(ctx)
    tracker = load_tracker(config, json_output)

    summary = _state_summary(tracker)
    if json_output:
        print_json(summary)
        return

    table = Table(title="Trusted State", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Sequence number", str(summary["sequence_number"]))
    table.add_row("Epoch", str(summary["epoch"]))
    table.add_row("Digest", summary["digest"])
    table.add_row("Committee epoch", str(summary["committee_epoch"]))
    table.add_row("Validators", str(summary["committee_size"]))
    table.add_row("Total stake", str(summary["total_stake"]))
    table.add_row("Stored epochs", ", ".join(str(e) for e in summary["stored_epochs"]))
    console.print(table)


def sync_command(
    ctx: typer.Context,
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Checkpoint source URL (file:///dir or s3://bucket/prefix)",
    ),
    to: Optional[int] = typer.Option(None, "--to", help="Stop at this sequence number"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Concurrent fetches"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Verify and apply checkpoints from a source, then save the snapshot.

    Examples:
        lightclient sync --source file:///data/checkpoints
        lightclient sync --source s3://checkpoints/mainnet --to 1200 --json
    """
    config = get_config(ctx)
    source_url = source or config.source_url
    if not source_url:
        fail("no checkpoint source (use --source or LIGHTCLIENT_SOURCE)", EXIT_USAGE, json_output)

    tracker = load_tracker(config, json_output)
    try:
        checkpoint_source = source_from_url(
            source_url,
            s3_endpoint_url=config.s3_endpoint_url,
            s3_region=config.s3_region,
        )
    except (ConfigError, SourceError) as e:
        fail(str(e), EXIT_USAGE, json_output)

    if not json_output:
        tracker.set_apply_hook(
            lambda cert, state: console.print(
                f"  [green]✓[/green] checkpoint {state.sequence_number} (epoch {state.epoch})"
            )
        )

    metrics.start_metrics_server_from_env()
    driver = SyncDriver(
        tracker,
        checkpoint_source,
        max_workers=workers or config.max_workers,
        max_retries=config.max_retries,
        backoff_base=config.backoff_base_seconds,
        archive=CheckpointStore(config.checkpoints_dir),
        keep_checkpoints=config.keep_checkpoints,
    )

    snapshot_path = os.path.join(config.state_path, SNAPSHOT_FILENAME)
    try:
        result = driver.sync(target=to)
    except SourceError as e:
        # keep whatever was verified before the source failed
        save_snapshot(tracker, snapshot_path)
        fail(f"source error: {e}", EXIT_USAGE, json_output)

    save_snapshot(tracker, snapshot_path)

    if json_output:
        payload = result.to_dict()
        payload["success"] = result.ok
        print_json(payload)
    elif result.ok:
        console.print(
            f"[green]✓ Synced {result.applied} checkpoint(s)[/green], "
            f"trusted checkpoint {result.last_sequence_number}"
        )
    else:
        rejected = result.rejected
        console.print(
            f"[red]✗ Checkpoint {rejected.sequence_number} rejected:[/red] "
            f"{rejected.reason}: {rejected}"
        )
        console.print(f"  Applied {result.applied}, trusted checkpoint {result.last_sequence_number}")

    if not result.ok:
        raise typer.Exit(EXIT_VERIFICATION_FAILED)
