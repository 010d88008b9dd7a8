"""Configuration models for the challenge provider and the store."""

import os
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"


class Environment(StrEnum):
    """Deployment environment; selects which snapshot blob is used."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"


class PropagationPolicy(BaseModel):
    """Retry budget for propagation polling.

    ``retries`` counts attempts after the first, so at most
    ``retries + 1`` lookups are made.
    """

    wait_for_ms: int = Field(default=5000, alias="waitFor", ge=0)
    retries: int = Field(default=20, ge=0)

    model_config = {"populate_by_name": True, "frozen": True}


class ChallengeOptions(BaseModel):
    """Options accepted by ``Dns01ChallengeProvider.create``."""

    email: str | None = None
    key: str | None = None
    token: str | None = None
    api_url: str = CLOUDFLARE_API_URL
    timeout: int = 30
    acme_prefix: str = Field(default="_acme-challenge", alias="acmePrefix")
    verify_propagation: PropagationPolicy | None = Field(
        default_factory=PropagationPolicy, alias="verifyPropagation"
    )
    nameservers: list[str] | None = None
    authoritative: bool = False

    model_config = {"populate_by_name": True}

    @field_validator("verify_propagation", mode="before")
    @classmethod
    def _coerce_toggle(cls, value: Any) -> Any:
        # Engines pass a bare boolean to switch verification on or off
        if value is False:
            return None
        if value is True:
            return PropagationPolicy()
        return value


class StoreOptions(BaseModel):
    """Options accepted by ``zonekeeper.store.create``.

    Exactly one of ``path`` (a local directory) or ``container_url``
    (a SAS-authorised blob container URL) selects the backend.
    """

    environment: Environment = Environment.PRODUCTION
    path: Path | None = None
    container_url: str | None = None
    blob_name: str | None = None
    timeout: int = 10

    @property
    def resolved_blob_name(self) -> str:
        if self.blob_name:
            return self.blob_name
        if self.environment is Environment.PRODUCTION:
            return "greenlock.json"
        return f"greenlock-{self.environment.value}.json"


class Settings(BaseModel):
    """Process-level settings, usually read from the environment."""

    challenge: ChallengeOptions = Field(default_factory=ChallengeOptions)
    store: StoreOptions = Field(default_factory=StoreOptions)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``ZONEKEEPER_*`` environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``).

        Returns:
            Settings with unset variables left at their defaults.
        """
        env = os.environ if environ is None else environ

        challenge: dict[str, Any] = {}
        for field, var in (
            ("email", "ZONEKEEPER_DNS_EMAIL"),
            ("key", "ZONEKEEPER_DNS_KEY"),
            ("token", "ZONEKEEPER_DNS_TOKEN"),
            ("api_url", "ZONEKEEPER_DNS_API_URL"),
            ("acme_prefix", "ZONEKEEPER_ACME_PREFIX"),
        ):
            if env.get(var):
                challenge[field] = env[var]

        if env.get("ZONEKEEPER_VERIFY_PROPAGATION", "true").lower() in ("0", "false", "no"):
            challenge["verify_propagation"] = None
        else:
            policy: dict[str, Any] = {}
            if env.get("ZONEKEEPER_PROPAGATION_WAIT_MS"):
                policy["wait_for_ms"] = int(env["ZONEKEEPER_PROPAGATION_WAIT_MS"])
            if env.get("ZONEKEEPER_PROPAGATION_RETRIES"):
                policy["retries"] = int(env["ZONEKEEPER_PROPAGATION_RETRIES"])
            challenge["verify_propagation"] = PropagationPolicy(**policy)

        if env.get("ZONEKEEPER_NAMESERVERS"):
            challenge["nameservers"] = [
                ns.strip() for ns in env["ZONEKEEPER_NAMESERVERS"].split(",") if ns.strip()
            ]

        store: dict[str, Any] = {
            "environment": env.get("ZONEKEEPER_ENVIRONMENT", Environment.PRODUCTION.value),
        }
        if env.get("ZONEKEEPER_STORE_PATH"):
            store["path"] = env["ZONEKEEPER_STORE_PATH"]
        if env.get("ZONEKEEPER_STORE_CONTAINER_URL"):
            store["container_url"] = env["ZONEKEEPER_STORE_CONTAINER_URL"]
        if env.get("ZONEKEEPER_STORE_BLOB_NAME"):
            store["blob_name"] = env["ZONEKEEPER_STORE_BLOB_NAME"]

        return cls(challenge=ChallengeOptions(**challenge), store=StoreOptions(**store))
