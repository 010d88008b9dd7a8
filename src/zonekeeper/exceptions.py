"""Exceptions raised by the challenge provider and the store."""

from typing import Any


class ZonekeeperError(Exception):
    """Base exception for all zonekeeper errors."""

    pass


# =============================================================================
# Challenge provider errors
# =============================================================================


class ChallengeProviderError(ZonekeeperError):
    """Error while publishing, verifying or removing a DNS-01 record."""

    pass


class ZoneNotFoundError(ChallengeProviderError):
    """No hosted zone is a suffix of the requested domain."""

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Could not find a zone for '{domain}'.")


class NoTxtRecordError(ChallengeProviderError):
    """Removal was requested but no TXT record exists at the name."""

    def __init__(self, fqdn: str):
        self.fqdn = fqdn
        super().__init__(f"Could not find a TXT record for '{fqdn}'.")


class TxtRecordMismatchError(ChallengeProviderError):
    """A TXT lookup succeeded but did not contain the expected value."""

    def __init__(self, fqdn: str, expected: str, found: list[str]):
        self.fqdn = fqdn
        self.expected = expected
        self.found = found
        super().__init__(f"Could not verify '{fqdn}': expected '{expected}', found {found}")


class PropagationTimeoutError(ChallengeProviderError):
    """The retry budget ran out before the record was publicly visible."""

    def __init__(self, domain: str, attempts: int):
        self.domain = domain
        self.attempts = attempts
        super().__init__(f"Could not verify challenge for '{domain}' after {attempts} attempts.")


class ProviderApiError(ChallengeProviderError):
    """The DNS-hosting provider API reported a failure.

    Carries the provider's error list unchanged so callers can inspect
    the provider-specific codes.
    """

    def __init__(
        self,
        errors: list[dict[str, Any]] | None = None,
        status_code: int | None = None,
        message: str = "DNS provider API error.",
    ):
        self.errors = errors or []
        self.status_code = status_code
        detail = "; ".join(str(e.get("message", e)) for e in self.errors)
        super().__init__(f"{message} {detail}".strip())


# =============================================================================
# Store errors
# =============================================================================


class StoreError(ZonekeeperError):
    """Error raised by the account/certificate store."""

    pass


class ValidationError(StoreError):
    """A required field is missing from a store call."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"MUST use {field} when setting Keypair")


class IntegrityError(StoreError):
    """A store mutation needs a keypair or account that does not exist."""

    pass


class UnsupportedKeyFormatError(StoreError, NotImplementedError):
    """Deriving an account id from a public JWK is not supported."""

    def __init__(self) -> None:
        super().__init__("id from publicKeyJwk not yet implemented")


class StorageError(StoreError):
    """The durable snapshot blob could not be read or written."""

    def __init__(self, message: str, blob_name: str | None = None):
        self.blob_name = blob_name
        super().__init__(message)


class BlobNotFoundError(StorageError):
    """The durable snapshot blob does not exist yet."""

    pass
