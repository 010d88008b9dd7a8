"""Cloudflare DNS provider."""

from typing import Any

import httpx

from zonekeeper._logging import get_logger
from zonekeeper.config import CLOUDFLARE_API_URL
from zonekeeper.exceptions import ProviderApiError
from zonekeeper.models import DnsRecord, PageCursor
from zonekeeper.providers.base import DnsProvider

logger = get_logger(__name__)


class CloudflareProvider(DnsProvider):
    """DNS provider for the Cloudflare v4 API.

    Credentials are passed through as request headers: either the legacy
    email + global API key pair or a scoped API token.

    Args:
        email: Account email for ``X-Auth-Email``.
        key: Global API key for ``X-Auth-Key``.
        token: API token, sent as a bearer token (takes precedence).
        api_url: Base URL of the API.
        timeout: HTTP request timeout in seconds (default: 30).
    """

    def __init__(
        self,
        email: str | None = None,
        key: str | None = None,
        token: str | None = None,
        api_url: str = CLOUDFLARE_API_URL,
        timeout: int = 30,
    ):
        self.api_url = api_url.rstrip("/")
        self.email = email
        self.timeout = timeout

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            if email:
                headers["X-Auth-Email"] = email
            if key:
                headers["X-Auth-Key"] = key

        self._http = httpx.Client(base_url=self.api_url, headers=headers, timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> "CloudflareProvider":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _envelope(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a response body into the API envelope.

        Raises:
            ProviderApiError: If the body is not a JSON object.
        """
        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            logger.error(
                "Cloudflare API returned a non-JSON body",
                extra={"status_code": response.status_code, "url": str(response.url)},
            )
            raise ProviderApiError(
                [{"code": response.status_code, "message": response.text or "Unknown error"}],
                status_code=response.status_code,
            )
        return data

    def _checked(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a response and raise unless it reports success."""
        data = self._envelope(response)
        if not data.get("success"):
            logger.error(
                "Cloudflare API error",
                extra={"status_code": response.status_code, "errors": data.get("errors")},
            )
            raise ProviderApiError(data.get("errors"), status_code=response.status_code)
        return data

    def browse_zones(self, cursor: PageCursor) -> dict[str, Any]:
        response = self._http.get("/zones", params=cursor.model_dump())
        return self._envelope(response)

    def browse_records(
        self,
        zone_id: str,
        cursor: PageCursor,
        *,
        type: str | None = None,
        name: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = cursor.model_dump()
        if type:
            params["type"] = type
        if name:
            params["name"] = name

        response = self._http.get(f"/zones/{zone_id}/dns_records", params=params)
        return self._envelope(response)

    def add_record(self, zone_id: str, record: DnsRecord) -> DnsRecord:
        payload = record.model_dump(exclude={"id"}, exclude_none=True)
        response = self._http.post(f"/zones/{zone_id}/dns_records", json=payload)
        created = DnsRecord.model_validate(self._checked(response)["result"])
        logger.debug(
            "DNS record created",
            extra={"zone_id": zone_id, "record_id": created.id, "record_name": created.name},
        )
        return created

    def edit_record(self, zone_id: str, record: DnsRecord) -> DnsRecord:
        if record.id is None:
            raise ValueError("Cannot edit a record without an id")

        payload = record.model_dump(exclude_none=True)
        response = self._http.put(f"/zones/{zone_id}/dns_records/{record.id}", json=payload)
        updated = DnsRecord.model_validate(self._checked(response)["result"])
        logger.debug(
            "DNS record updated",
            extra={"zone_id": zone_id, "record_id": updated.id, "record_name": updated.name},
        )
        return updated

    def delete_record(self, zone_id: str, record_id: str) -> None:
        response = self._http.delete(f"/zones/{zone_id}/dns_records/{record_id}")
        self._checked(response)
        logger.debug("DNS record deleted", extra={"zone_id": zone_id, "record_id": record_id})
