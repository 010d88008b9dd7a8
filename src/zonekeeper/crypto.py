"""Digest helpers shared by the challenge provider and the store."""

import base64
import hashlib


def base64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def compute_dns_txt_value(key_authorization: str) -> str:
    """Compute the DNS TXT record value for a DNS-01 challenge.

    The TXT record value is the base64url-encoded SHA-256 digest
    of the key authorization string. The ACME server recomputes it
    independently, so the output must be byte-exact.

    Args:
        key_authorization: The key authorization string.

    Returns:
        The base64url-encoded SHA-256 digest (without padding).

    Raises:
        TypeError: If key_authorization is not a string.
    """
    if not isinstance(key_authorization, str):
        raise TypeError("Expected key_authorization to be a string.")
    return base64url_encode(hashlib.sha256(key_authorization.encode()).digest())


def account_id(public_key_pem: str) -> str:
    """Derive the store's account id from a PEM-encoded public key.

    Returns:
        Lowercase hex SHA-256 of the PEM text.
    """
    return hashlib.sha256(public_key_pem.encode()).hexdigest()
