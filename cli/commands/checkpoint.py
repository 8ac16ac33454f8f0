"""
Checkpoint commands: verify, list
"""

import os

import typer
from rich.table import Table

from lightclient.checkpoint import (
    CheckpointCertificate,
    CheckpointStore,
    VerificationResult,
    check_certificate,
    verify_with_committee,
)
from lightclient.core.errors import CommitteeNotFound, MalformedInput, VerificationError

from cli.common import (
    EXIT_USAGE,
    EXIT_VERIFICATION_FAILED,
    console,
    fail,
    get_config,
    load_tracker,
    print_json,
)

app = typer.Typer()


def _verify_historical(certificate: CheckpointCertificate, tracker) -> VerificationResult:
    """Checkpoints at or below the trusted one are checked against their epoch's committee."""
    seq = certificate.sequence_number
    try:
        committee = tracker.committee_for(certificate.header.epoch)
        verified = verify_with_committee(certificate, committee, tracker.policy)
    except VerificationError as e:
        return VerificationResult(valid=False, sequence_number=seq, error=str(e), error_type=e.reason)
    return VerificationResult(valid=True, sequence_number=seq, signed_stake=verified.signed_stake)


@app.command()
def verify(
    ctx: typer.Context,
    checkpoint_path: str = typer.Argument(..., help="Path to certificate file"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Verify a checkpoint certificate against the trusted state without applying it.

    A certificate beyond the trusted checkpoint must be its direct successor.
    One at or below it is checked against the stored committee of its epoch.

    Examples:
        lightclient checkpoint verify 1201.json
        lightclient checkpoint verify 1201.json --json
    """
    config = get_config(ctx)
    tracker = load_tracker(config, json_output)

    try:
        with open(checkpoint_path, "r") as f:
            raw = f.read()
    except OSError as e:
        fail(f"cannot read {checkpoint_path}: {e}", EXIT_USAGE, json_output)

    try:
        certificate = CheckpointCertificate.from_json(raw)
    except MalformedInput as e:
        fail(f"malformed certificate: {e}", EXIT_VERIFICATION_FAILED, json_output,
             {"error_type": e.reason})

    trusted = tracker.current_trusted_state()
    if certificate.sequence_number <= trusted.sequence_number:
        try:
            result = _verify_historical(certificate, tracker)
        except CommitteeNotFound as e:
            fail(str(e), EXIT_USAGE, json_output)
    else:
        result = check_certificate(certificate, trusted, tracker.policy)

    if json_output:
        print_json({
            "success": result.valid,
            "sequence_number": result.sequence_number,
            "signed_stake": result.signed_stake,
            "error": result.error,
            "error_type": result.error_type,
        })
    elif result.valid:
        console.print(f"[green]✓ Checkpoint {result.sequence_number} verified[/green]")
        console.print(f"  Signed stake: {result.signed_stake}")
    else:
        console.print(f"[red]✗ Checkpoint {result.sequence_number} rejected:[/red] {result.error_type}")
        console.print(f"  {result.error}")

    if not result.valid:
        raise typer.Exit(EXIT_VERIFICATION_FAILED)


@app.command("list")
def list_checkpoints(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List archived checkpoints.

    Examples:
        lightclient checkpoint list
    """
    config = get_config(ctx)
    store = CheckpointStore(config.checkpoints_dir)
    boundaries = set(store.epoch_boundaries())

    rows = []
    for path in store.list_checkpoints():
        try:
            header = store.load(path).header
        except MalformedInput as e:
            fail(f"corrupt archive entry {path}: {e}", EXIT_USAGE, json_output)
        rows.append({
            "sequence_number": header.sequence_number,
            "epoch": header.epoch,
            "digest": header.digest,
            "epoch_boundary": header.sequence_number in boundaries,
            "file": os.path.basename(path),
        })

    if json_output:
        print_json({"checkpoints": rows})
        return

    if not rows:
        console.print("[yellow]No archived checkpoints[/yellow]")
        return

    table = Table(title="Archived Checkpoints")
    table.add_column("Seq", justify="right", style="cyan")
    table.add_column("Epoch", justify="right")
    table.add_column("Digest")
    table.add_column("Boundary")
    for row in rows:
        table.add_row(
            str(row["sequence_number"]),
            str(row["epoch"]),
            row["digest"][:16] + "...",
            "yes" if row["epoch_boundary"] else "",
        )
    console.print(table)
