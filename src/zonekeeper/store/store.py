"""Account and certificate store for the ACME engine."""

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from zonekeeper._logging import Timer, get_logger
from zonekeeper.crypto import account_id
from zonekeeper.exceptions import (
    IntegrityError,
    StorageError,
    UnsupportedKeyFormatError,
    ValidationError,
)
from zonekeeper.models import StoreSnapshot
from zonekeeper.store.backends import BlobStorage
from zonekeeper.store.index import SecondaryIndex

logger = get_logger(__name__)

KEYPAIR_FIELDS = ("privateKeyJwk", "privateKeyPem", "publicKeyPem")


def _require_keypair(keypair: dict[str, Any] | None) -> dict[str, Any]:
    keypair = keypair or {}
    for field in KEYPAIR_FIELDS:
        if not keypair.get(field):
            raise ValidationError(field)
    return keypair


def _keypair_id(keypair: dict[str, Any]) -> str | None:
    """Account id derived from a keypair, or None if it carries no public key."""
    if keypair.get("publicKeyPem"):
        return account_id(keypair["publicKeyPem"])
    if keypair.get("publicKeyJwk"):
        raise UnsupportedKeyFormatError()
    return None


class Store:
    """Indexed account/certificate store persisted as one snapshot blob.

    The whole snapshot is written back after every mutation. Mutations
    are applied to a copy which only replaces the live snapshot once it
    has been written, so a failed call leaves the store unchanged.

    There is no locking: one issuance run at a time is assumed.

    Args:
        storage: Durable blob backend.
    """

    def __init__(self, storage: BlobStorage):
        self.storage = storage
        self._snapshot = StoreSnapshot()
        self.accounts = AccountStore(self)
        self.certificates = CertificateStore(self)

    @property
    def snapshot(self) -> StoreSnapshot:
        """A copy of the current in-memory state."""
        return self._snapshot.model_copy(deep=True)

    def load(self) -> "Store":
        """Load the snapshot, bootstrapping an empty one if that fails.

        A missing, unreadable or malformed blob is replaced by an empty
        snapshot, which is persisted immediately.
        """
        try:
            raw = self.storage.read()
            self._snapshot = StoreSnapshot.model_validate_json(raw)
            logger.info(
                "Loaded store snapshot",
                extra={
                    "blob_name": self.storage.blob_name,
                    "last_update": self._snapshot.last_update,
                },
            )
        except (StorageError, ValueError) as exc:
            logger.warning(
                "Could not load store snapshot, initializing an empty one",
                extra={"blob_name": self.storage.blob_name, "error": str(exc)},
            )
            snapshot = StoreSnapshot()
            self._persist(snapshot)
            self._snapshot = snapshot
        return self

    def _persist(self, snapshot: StoreSnapshot) -> None:
        snapshot.last_update = datetime.now(UTC)
        content = snapshot.model_dump_json(by_alias=True).encode()
        with Timer() as timer:
            self.storage.write(content)
        logger.debug(
            "Persisted store snapshot",
            extra={
                "blob_name": self.storage.blob_name,
                "bytes": len(content),
                **timer.extra,
            },
        )

    @contextmanager
    def transaction(self) -> Iterator[StoreSnapshot]:
        """Yield a draft snapshot; persist and publish it if the block succeeds."""
        draft = self._snapshot.model_copy(deep=True)
        yield draft
        self._persist(draft)
        self._snapshot = draft

    def dangling_keys(self) -> dict[str, list[str]]:
        """Index keys that do not resolve to a stored record, per index."""
        snap = self._snapshot
        return {
            "accountIndices": account_index(snap).dangling(),
            "certIndices": cert_index(snap).dangling(),
        }

    def close(self) -> None:
        """Close the storage backend."""
        self.storage.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def get_options(self) -> dict[str, Any]:
        return {"blob_name": self.storage.blob_name}


def account_index(snapshot: StoreSnapshot) -> SecondaryIndex:
    return SecondaryIndex(snapshot.account_indices, snapshot.account_keypairs, snapshot.accounts)


def cert_index(snapshot: StoreSnapshot) -> SecondaryIndex:
    return SecondaryIndex(
        snapshot.cert_indices, snapshot.certificate_keypairs, snapshot.certificates
    )


class AccountStore:
    """ACME account keypairs and registrations, indexed by id and email."""

    def __init__(self, store: Store):
        self._store = store

    def _lookup_key(
        self, opts: dict[str, Any], keypair: dict[str, Any], fallback: str | None = None
    ) -> str:
        key = _keypair_id(keypair) or opts.get("email") or fallback
        if not key:
            raise ValidationError(
                "email", "MUST supply email or keypair.publicKeyPem or keypair.publicKeyJwk"
            )
        return key

    def set_keypair(self, opts: dict[str, Any], keypair: dict[str, Any]) -> dict[str, Any]:
        """Store an account keypair under its id and the account email.

        Raises:
            ValidationError: If the email or a keypair field is missing.
        """
        if not opts.get("email"):
            raise ValidationError("email")
        keypair = _require_keypair(keypair)

        aid = account_id(keypair["publicKeyPem"])
        with self._store.transaction() as snap:
            snap.account_keypairs[aid] = copy.deepcopy(keypair)
            account_index(snap).link(aid, opts["email"])

        logger.info("Account keypair stored", extra={"account_id": aid})
        return copy.deepcopy(keypair)

    def check_keypair(self, opts: dict[str, Any]) -> dict[str, Any] | None:
        """Return the keypair for the account identified by ``opts``."""
        snap = self._store._snapshot
        key = self._lookup_key(opts, opts.get("keypair") or {})
        aid = account_index(snap).resolve(key)
        keypair = snap.account_keypairs.get(aid) if aid else None
        return copy.deepcopy(keypair)

    def set(self, opts: dict[str, Any], reg: dict[str, Any]) -> dict[str, Any]:
        """Record an account registration.

        The keypair must have been stored with ``set_keypair`` first.

        Raises:
            IntegrityError: If no keypair is known for the account.
        """
        keypair = reg.get("keypair") or opts.get("keypair") or {}
        key = self._lookup_key(opts, keypair)

        with self._store.transaction() as snap:
            aid = account_index(snap).resolve(key)
            if aid is None or aid not in snap.account_keypairs:
                raise IntegrityError(
                    "keypair was not previously set with email and keypair.publicKeyPem"
                )

            previous = snap.accounts.get(aid, {})
            account = {
                "id": aid,
                "accountId": aid,
                "email": opts.get("email") or previous.get("email"),
                "keypair": keypair or snap.account_keypairs[aid],
                "agreeTos": opts.get("agreeTos") or reg.get("agreeTos"),
            }
            account.update(copy.deepcopy(reg))
            snap.accounts[aid] = account

        logger.info("Account stored", extra={"account_id": aid})
        return copy.deepcopy(account)

    def check(self, opts: dict[str, Any]) -> dict[str, Any] | None:
        """Return the account identified by ``opts`` with its keypair, or None."""
        snap = self._store._snapshot
        index = account_index(snap)

        if opts.get("accountId"):
            aid = index.resolve(opts["accountId"])
        else:
            # domains[0] is the last lookup key tried
            domains = opts.get("domains") or [None]
            aid = index.resolve(self._lookup_key(opts, opts.get("keypair") or {}, domains[0]))

        if aid is None or aid not in snap.accounts:
            return None

        account = copy.deepcopy(snap.accounts[aid])
        account["keypair"] = copy.deepcopy(snap.account_keypairs.get(aid))
        return account


class CertificateStore:
    """Issued certificates and their keypairs, indexed by every domain."""

    def __init__(self, store: Store):
        self._store = store

    def set_keypair(self, opts: dict[str, Any], keypair: dict[str, Any]) -> dict[str, Any]:
        """Store a certificate keypair under the first domain.

        Raises:
            ValidationError: If domains, email or a keypair field is missing.
        """
        domains = opts.get("domains") or []
        if not domains:
            raise ValidationError("domains")
        if not opts.get("email"):
            raise ValidationError("email")
        keypair = _require_keypair(keypair)

        subject = domains[0]
        with self._store.transaction() as snap:
            snap.certificate_keypairs[subject] = copy.deepcopy(keypair)
            cert_index(snap).link(subject, *domains)

        logger.info("Certificate keypair stored", extra={"subject": subject})
        return copy.deepcopy(keypair)

    def check_keypair(self, opts: dict[str, Any]) -> dict[str, Any] | None:
        """Return the certificate keypair for ``opts['domains'][0]``."""
        domains = opts.get("domains") or []
        if not domains:
            raise ValidationError("domains", "MUST use domains when checking Keypair")

        snap = self._store._snapshot
        subject = cert_index(snap).resolve(domains[0])
        keypair = snap.certificate_keypairs.get(subject) if subject else None
        return copy.deepcopy(keypair)

    def set(self, opts: dict[str, Any]) -> dict[str, Any]:
        """Store an issued certificate and link it to its account.

        ``opts['certs']`` holds the certificate payload; the account is
        found through ``accountId`` or ``email``.

        Returns:
            The ``certs`` payload, unchanged.

        Raises:
            ValidationError: If certs or the account identifier is missing.
            IntegrityError: If the account does not exist.
        """
        certs = opts.get("certs")
        if not certs:
            raise ValidationError("certs", "MUST supply certs")

        key = opts.get("accountId") or opts.get("email")
        if not key:
            raise ValidationError("email", "MUST supply email or accountId")

        domains = opts.get("domains") or []
        subject = certs.get("subject") or (domains[0] if domains else None)
        if not subject:
            raise ValidationError("domains", "MUST supply certs.subject or domains")
        altnames = certs.get("altnames") or domains

        with self._store.transaction() as snap:
            aid = account_index(snap).resolve(key)
            if aid is None or aid not in snap.accounts:
                raise IntegrityError("account must exist")

            snap.certificates[subject] = copy.deepcopy(certs)
            cert_index(snap).link(subject, *altnames)
            snap.account_certs.setdefault(aid, {})[subject] = subject

        logger.info(
            "Certificate stored",
            extra={"subject": subject, "altnames": altnames, "account_id": aid},
        )
        return certs

    def check(self, opts: dict[str, Any]) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Find certificates by domain, or list every certificate of an account.

        Returns:
            With ``domains``: the certificate for the first domain or None.
            Otherwise: the account's certificates, or None if the account
            is unknown.
        """
        snap = self._store._snapshot
        index = cert_index(snap)

        if opts.get("domains"):
            subject = index.resolve(opts["domains"][0])
            return copy.deepcopy(snap.certificates.get(subject)) if subject else None

        key = opts.get("accountId") or opts.get("email")
        if not key:
            raise ValidationError("email", "MUST supply domains, email or accountId")

        aid = account_index(snap).resolve(key)
        if aid is None:
            return None

        certs = []
        for linked in snap.account_certs.get(aid, {}):
            subject = index.resolve(linked)
            if subject in snap.certificates:
                certs.append(copy.deepcopy(snap.certificates[subject]))
        return certs
