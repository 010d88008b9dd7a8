"""Zone and TXT record resolution against a DNS-hosting provider."""

from enum import StrEnum

from zonekeeper._logging import get_logger
from zonekeeper.models import DnsRecord, Zone
from zonekeeper.pagination import walk_pages
from zonekeeper.providers.base import DnsProvider

logger = get_logger(__name__)


class ZoneMatch(StrEnum):
    """How a domain is matched against the provider's zones.

    ``FIRST_MATCH`` returns the first listed zone whose name is a plain
    string suffix of the domain, which depends on listing order and can
    pick ``example.com`` over ``sub.example.com``. ``LONGEST_SUFFIX``
    walks every zone and picks the most specific label-aligned match.
    """

    FIRST_MATCH = "first"
    LONGEST_SUFFIX = "longest"


def _normalize(name: str) -> str:
    return name.rstrip(".").lower()


class ZoneResolver:
    """Finds zones and TXT records through a provider's paged listings.

    Args:
        provider: DNS-hosting provider client.
        match: Zone matching strategy (default: longest suffix).
        page_size: Page size used for every listing.
    """

    def __init__(
        self,
        provider: DnsProvider,
        match: ZoneMatch = ZoneMatch.LONGEST_SUFFIX,
        page_size: int = 10,
    ):
        self.provider = provider
        self.match = match
        self.page_size = page_size

    def resolve_zone(self, domain: str) -> Zone | None:
        """Find the hosted zone that owns ``domain``.

        Args:
            domain: Domain name (no ACME prefix).

        Returns:
            The owning zone, or None if no zone matches.
        """
        zones = (
            Zone.model_validate(item)
            for item in walk_pages(self.provider.browse_zones, self.page_size)
        )

        if self.match is ZoneMatch.FIRST_MATCH:
            for zone in zones:
                if domain.endswith(zone.name):
                    return zone
            return None

        wanted = _normalize(domain)
        best: Zone | None = None
        for zone in zones:
            name = _normalize(zone.name)
            if wanted != name and not wanted.endswith(f".{name}"):
                continue
            if best is None or len(name) > len(_normalize(best.name)):
                best = zone

        if best is not None:
            logger.debug("Zone found", extra={"zone": best.name, "zone_id": best.id})
        return best

    def resolve_txt_records(self, zone: Zone, name: str) -> list[DnsRecord]:
        """List the TXT records named exactly ``name`` in ``zone``.

        The server-side name filter is only trusted to narrow the listing;
        results are re-checked for exact name equality.

        Returns:
            Matching records, possibly empty.
        """

        def fetch(cursor):
            return self.provider.browse_records(zone.id, cursor, type="TXT", name=name)

        records = [
            DnsRecord.model_validate(item)
            for item in walk_pages(fetch, self.page_size)
            if item.get("name") == name
        ]
        logger.debug(
            "Resolved TXT records",
            extra={"zone": zone.name, "record_name": name, "count": len(records)},
        )
        return records
