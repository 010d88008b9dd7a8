"""Zonekeeper - DNS-01 challenge provider and certificate store for ACME engines."""

from zonekeeper.challenges import Dns01ChallengeProvider
from zonekeeper.store import Store

__all__ = ["Dns01ChallengeProvider", "Store"]
__version__ = "0.1.0"
