"""
Committee storage: epoch -> Committee.
"""

from .store import CommitteeStore

__all__ = ["CommitteeStore"]
