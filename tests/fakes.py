"""In-memory stand-ins for the DNS provider and the TXT resolver."""

import math
from typing import Any

from zonekeeper.models import DnsRecord, PageCursor
from zonekeeper.providers.base import DnsProvider


class FakeDnsProvider(DnsProvider):
    """In-memory DNS provider that pages like the real API and records calls.

    The record name filter is a prefix match, like some real providers,
    so callers have to re-filter on exact names.
    """

    def __init__(self, zones: list[dict[str, Any]], records: dict[str, list[dict]] | None = None):
        self.zones = zones
        self.records: dict[str, list[dict[str, Any]]] = {
            zone["id"]: [dict(r) for r in (records or {}).get(zone["id"], [])] for zone in zones
        }
        self.calls: list[tuple] = []
        self._next_id = 0

    @staticmethod
    def _page(items: list[dict[str, Any]], cursor: PageCursor) -> dict[str, Any]:
        total_pages = max(1, math.ceil(len(items) / cursor.per_page))
        start = (cursor.page - 1) * cursor.per_page
        return {
            "success": True,
            "errors": [],
            "result": [dict(i) for i in items[start : start + cursor.per_page]],
            "result_info": {
                "page": cursor.page,
                "per_page": cursor.per_page,
                "total_pages": total_pages,
            },
        }

    def browse_zones(self, cursor: PageCursor) -> dict[str, Any]:
        self.calls.append(("browse_zones", cursor.page))
        return self._page(self.zones, cursor)

    def browse_records(self, zone_id, cursor, *, type=None, name=None):
        self.calls.append(("browse_records", zone_id, cursor.page))
        items = [
            r
            for r in self.records[zone_id]
            if (type is None or r["type"] == type) and (name is None or r["name"].startswith(name))
        ]
        return self._page(items, cursor)

    def add_record(self, zone_id: str, record: DnsRecord) -> DnsRecord:
        self._next_id += 1
        stored = {**record.model_dump(exclude_none=True), "id": f"new-{self._next_id}"}
        self.records[zone_id].append(stored)
        self.calls.append(("add_record", zone_id, stored["id"]))
        return DnsRecord.model_validate(stored)

    def edit_record(self, zone_id: str, record: DnsRecord) -> DnsRecord:
        stored = record.model_dump(exclude_none=True)
        self.records[zone_id] = [
            stored if r["id"] == record.id else r for r in self.records[zone_id]
        ]
        self.calls.append(("edit_record", zone_id, record.id))
        return DnsRecord.model_validate(stored)

    def delete_record(self, zone_id: str, record_id: str) -> None:
        self.records[zone_id] = [r for r in self.records[zone_id] if r["id"] != record_id]
        self.calls.append(("delete_record", zone_id, record_id))

    def txt(self, zone_id: str, name: str) -> list[dict[str, Any]]:
        """Current TXT records named exactly ``name``."""
        return [r for r in self.records[zone_id] if r["type"] == "TXT" and r["name"] == name]

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class StubTxtResolver:
    """TXT resolver returning scripted answers in order.

    Each answer is either a list of TXT values or an exception to raise.
    The last answer repeats once the script is exhausted.
    """

    def __init__(self, *answers: list[str] | Exception):
        self.answers = list(answers) or [[]]
        self.lookups: list[str] = []

    def resolve(self, fqdn: str) -> list[str]:
        self.lookups.append(fqdn)
        index = min(len(self.lookups), len(self.answers)) - 1
        answer = self.answers[index]
        if isinstance(answer, Exception):
            raise answer
        return list(answer)


