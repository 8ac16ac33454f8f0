"""
Light client CLI

Commands:
- lightclient init/status - Bootstrap and inspect the trusted state
- lightclient sync - Advance the trusted state from a checkpoint source
- lightclient checkpoint verify/list - Checkpoint certificates
- lightclient tx verify - Transaction inclusion proofs
"""

from lightclient import __version__

__all__ = ["__version__"]
