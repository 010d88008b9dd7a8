"""DNS-01 challenge provider plugin."""

from typing import Any

from zonekeeper.challenges.dns01 import RECORD_TTL, get_fqdn, reconcile
from zonekeeper.challenges.provider import Dns01ChallengeProvider
from zonekeeper.config import ChallengeOptions
from zonekeeper.crypto import compute_dns_txt_value


def create(options: ChallengeOptions | dict[str, Any]) -> Dns01ChallengeProvider:
    """Plugin entry point: build a challenge provider from options."""
    return Dns01ChallengeProvider.create(options)


__all__ = [
    "RECORD_TTL",
    "Dns01ChallengeProvider",
    "compute_dns_txt_value",
    "create",
    "get_fqdn",
    "reconcile",
]
