"""
Checkpoint Light Client

Verifies validator-signed checkpoints, tracks committee rotation across epochs
and proves transaction inclusion without replaying consensus.
"""

__version__ = "0.1.0"
