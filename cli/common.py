"""
Shared helpers for CLI commands: config lookup, tracker opening, output.
"""

import json
from typing import Any, Dict, NoReturn, Optional

import typer
from rich.console import Console

from lightclient.config import LightClientConfig
from lightclient.core.errors import ConfigError, DuplicateEpoch, MalformedInput
from lightclient.tracker import ChainTracker, open_tracker

console = Console()

EXIT_OK = 0
EXIT_VERIFICATION_FAILED = 1
EXIT_USAGE = 2


def get_config(ctx: typer.Context) -> LightClientConfig:
    """Config resolved by the root callback (env/file plus global flags)."""
    if ctx.obj is None:
        ctx.obj = LightClientConfig.from_env()
    return ctx.obj


def load_tracker(config: LightClientConfig, json_output: bool = False) -> ChainTracker:
    """
    Open the tracker from the state dir (snapshot first, then genesis).

    Exits with EXIT_USAGE if the client was never initialised or its state
    does not decode.
    """
    try:
        return open_tracker(
            config.state_path,
            genesis_path=config.resolved_genesis_path,
            policy=config.quorum_policy(),
        )
    except FileNotFoundError:
        fail(f"not initialised: no snapshot or genesis in {config.state_path}", EXIT_USAGE, json_output)
    except (MalformedInput, ConfigError, DuplicateEpoch) as e:
        fail(f"corrupt state in {config.state_path}: {e}", EXIT_USAGE, json_output)


def print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def fail(message: str, code: int, json_output: bool, details: Optional[Dict[str, Any]] = None) -> NoReturn:
    """Report an error in the selected output mode and exit with code."""
    if json_output:
        payload: Dict[str, Any] = {"success": False, "error": message}
        if details:
            payload.update(details)
        print_json(payload)
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)
