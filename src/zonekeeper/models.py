"""Pydantic models for DNS resources, challenges and the store snapshot."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from zonekeeper.crypto import compute_dns_txt_value

# =============================================================================
# DNS-hosting provider resources
# =============================================================================


class Zone(BaseModel):
    """A DNS zone hosted by the provider."""

    id: str
    name: str

    model_config = {"extra": "allow", "frozen": True}


class DnsRecord(BaseModel):
    """A DNS record as listed by the provider.

    Provider-specific fields (proxied, zone_id, meta, ...) are kept as
    extras so an in-place update sends them back unchanged.
    """

    id: str | None = None
    type: str = "TXT"
    name: str
    content: str
    ttl: int = 1

    model_config = {"extra": "allow"}


class PageCursor(BaseModel):
    """Position requested from a paged listing endpoint."""

    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1)


class ResultInfo(BaseModel):
    """Paging metadata of a listing response."""

    page: int | None = None
    per_page: int | None = None
    total_pages: int = 1
    count: int | None = None
    total_count: int | None = None

    model_config = {"extra": "allow"}


class PageResult(BaseModel):
    """Envelope of one fetched page.

    Failed responses carry ``"result": null``.
    """

    success: bool
    result: list[dict[str, Any]] | None = None
    errors: list[dict[str, Any]] = Field(default_factory=list)
    result_info: ResultInfo | None = None

    model_config = {"extra": "allow"}


# =============================================================================
# DNS-01 challenge
# =============================================================================


class ChallengeState(StrEnum):
    """Lifecycle of one DNS-01 challenge record."""

    IDLE = "idle"
    SETTING = "setting"
    AWAITING_PROPAGATION = "awaiting_propagation"
    VERIFIED = "verified"
    PROPAGATION_FAILED = "propagation_failed"
    REMOVING = "removing"
    REMOVED = "removed"


class ChallengeContext(BaseModel):
    """Names and content for a single set/remove call."""

    domain: str
    acme_prefix: str = "_acme-challenge"
    key_authorization: str | None = None

    model_config = {"frozen": True}

    @property
    def fqdn(self) -> str:
        return f"{self.acme_prefix}.{self.domain}"

    @property
    def auth_content(self) -> str | None:
        if self.key_authorization is None:
            return None
        return compute_dns_txt_value(self.key_authorization)


class ReconcilePlan(BaseModel):
    """Record changes needed to converge on a single challenge record.

    ``to_upsert`` carries an ``id`` when an existing record is updated
    in place and no ``id`` when a new record must be created.
    """

    to_delete: list[DnsRecord] = Field(default_factory=list)
    to_upsert: DnsRecord

    @property
    def creates(self) -> bool:
        return self.to_upsert.id is None


class Outcome(BaseModel):
    """Result of a challenge operation: a value or the error that stopped it."""

    value: Any = None
    error: Exception | None = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Outcome":
        return cls(error=error)


# =============================================================================
# Store snapshot
# =============================================================================


class StoreSnapshot(BaseModel):
    """The complete persisted state of the store.

    Serialised with camelCase aliases; the JSON layout is shared with
    existing deployments and carries no schema version.
    """

    account_indices: dict[str, str] = Field(default_factory=dict, alias="accountIndices")
    account_keypairs: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="accountKeypairs"
    )
    accounts: dict[str, dict[str, Any]] = Field(default_factory=dict)
    cert_indices: dict[str, str] = Field(default_factory=dict, alias="certIndices")
    certificate_keypairs: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="certificateKeypairs"
    )
    certificates: dict[str, dict[str, Any]] = Field(default_factory=dict)
    account_certs: dict[str, dict[str, str]] = Field(default_factory=dict, alias="accountCerts")
    last_update: datetime | None = Field(default=None, alias="_lastUpdate")

    model_config = {"populate_by_name": True}
