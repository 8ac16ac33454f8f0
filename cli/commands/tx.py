"""
Transaction proof commands: verify
"""

import typer

from lightclient.checkpoint import CheckpointStore
from lightclient.core.digest import is_digest
from lightclient.core.errors import CheckpointNotAvailable, CommitteeNotFound, VerificationError
from lightclient.proof import ProofVerifier

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


@app.command()
def verify(
    ctx: typer.Context,
    seq: int = typer.Option(..., "--seq", help="Checkpoint sequence number"),
    tx: str = typer.Option(..., "--tx", help="Transaction digest"),
    effects: str = typer.Option(..., "--effects", help="Claimed effects digest"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Prove that a transaction executed with the given effects in a trusted checkpoint.

    Examples:
        lightclient tx verify --seq 1200 --tx 3f1a... --effects 9bc0...
    """
    for name, value in (("--tx", tx), ("--effects", effects)):
        if not is_digest(value):
            fail(f"{name}: not a 64-character hex digest", EXIT_USAGE, json_output)

    config = get_config(ctx)
    tracker = load_tracker(config, json_output)

    verifier = ProofVerifier(tracker, CheckpointStore(config.checkpoints_dir))
    try:
        result = verifier.check_transaction(seq, tx, effects)
    except (CheckpointNotAvailable, CommitteeNotFound) as e:
        fail(str(e), EXIT_USAGE, json_output)
    except VerificationError as e:
        fail(str(e), EXIT_VERIFICATION_FAILED, json_output, {"error_type": e.reason})

    if json_output:
        payload = result.to_dict()
        payload["success"] = result.included
        print_json(payload)
    elif result.included:
        console.print(f"[green]✓ Transaction included in checkpoint {seq}[/green]")
        console.print(f"  Transaction: {tx[:16]}...")
        console.print(f"  Effects: {effects[:16]}...")
    else:
        console.print(f"[red]✗ Transaction {result.status.value} in checkpoint {seq}[/red]")

    if not result.included:
        raise typer.Exit(EXIT_VERIFICATION_FAILED)
