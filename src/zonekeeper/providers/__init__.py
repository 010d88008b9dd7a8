"""DNS-hosting providers for ACME DNS-01 challenges."""

from zonekeeper.providers.base import DnsProvider
from zonekeeper.providers.cloudflare import CloudflareProvider

__all__ = ["CloudflareProvider", "DnsProvider"]
