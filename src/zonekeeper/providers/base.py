"""Abstract base class for DNS-hosting providers."""

from abc import ABC, abstractmethod
from typing import Any

from zonekeeper.models import DnsRecord, PageCursor


class DnsProvider(ABC):
    """Abstract interface to a DNS-hosting provider's record API.

    Listing calls return the raw paged envelope
    (``{success, result, errors, result_info}``) so the page walker can
    decide whether to continue; mutating calls raise on failure.
    """

    @abstractmethod
    def browse_zones(self, cursor: PageCursor) -> dict[str, Any]:
        """Fetch one page of hosted zones.

        Args:
            cursor: Page number and page size to request.

        Returns:
            The provider's paged response envelope.
        """
        ...

    @abstractmethod
    def browse_records(
        self,
        zone_id: str,
        cursor: PageCursor,
        *,
        type: str | None = None,
        name: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of records in a zone.

        Args:
            zone_id: Provider id of the zone.
            cursor: Page number and page size to request.
            type: Optional record type filter (e.g. "TXT").
            name: Optional record name filter. Providers may treat it
                as a prefix match; callers re-filter on exact name.

        Returns:
            The provider's paged response envelope.
        """
        ...

    @abstractmethod
    def add_record(self, zone_id: str, record: DnsRecord) -> DnsRecord:
        """Create a record and return it as stored by the provider."""
        ...

    @abstractmethod
    def edit_record(self, zone_id: str, record: DnsRecord) -> DnsRecord:
        """Overwrite the record with ``record.id`` and return the result."""
        ...

    @abstractmethod
    def delete_record(self, zone_id: str, record_id: str) -> None:
        """Delete the record with ``record_id``."""
        ...

    def close(self) -> None:
        """Release any connections held by the provider."""
