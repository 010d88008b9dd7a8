"""DNS-01 challenge provider plugin."""

import time
from collections.abc import Callable
from typing import Any

import dns.exception

from zonekeeper._logging import Timer, domain_context, get_domain_extra, get_logger
from zonekeeper.challenges.dns01 import RECORD_TTL, get_fqdn, reconcile
from zonekeeper.config import ChallengeOptions, PropagationPolicy
from zonekeeper.crypto import compute_dns_txt_value
from zonekeeper.dnslookup import TxtResolver
from zonekeeper.exceptions import (
    NoTxtRecordError,
    PropagationTimeoutError,
    TxtRecordMismatchError,
    ZoneNotFoundError,
)
from zonekeeper.models import (
    ChallengeContext,
    ChallengeState,
    DnsRecord,
    Outcome,
    ReconcilePlan,
    Zone,
)
from zonekeeper.providers.base import DnsProvider
from zonekeeper.providers.cloudflare import CloudflareProvider
from zonekeeper.resolver import ZoneMatch, ZoneResolver

logger = get_logger(__name__)

Done = Callable[[Exception | None], Any]


class Dns01ChallengeProvider:
    """Publishes, verifies and removes DNS-01 TXT records.

    The ACME engine drives this object through ``set`` and ``remove``;
    both report through a ``done(error)`` callback and never raise.
    The ``*_challenge`` methods hold the actual logic and return an
    ``Outcome`` instead.

    Args:
        provider: DNS-hosting provider client, owned by this instance.
        acme_prefix: Label prepended to the domain for the record name.
        verify_propagation: Retry budget for public DNS verification,
            or None to return as soon as the record is written.
        txt_resolver: Resolver used for public DNS verification.
        zone_match: Zone matching strategy.
    """

    def __init__(
        self,
        provider: DnsProvider,
        acme_prefix: str = "_acme-challenge",
        verify_propagation: PropagationPolicy | None = PropagationPolicy(),
        txt_resolver: TxtResolver | None = None,
        zone_match: ZoneMatch = ZoneMatch.LONGEST_SUFFIX,
    ):
        self.provider = provider
        self.acme_prefix = acme_prefix
        self.verify_propagation_policy = verify_propagation
        self.txt_resolver = txt_resolver or TxtResolver()
        self.zones = ZoneResolver(provider, match=zone_match)
        self._states: dict[str, ChallengeState] = {}

    @classmethod
    def create(cls, options: ChallengeOptions | dict[str, Any]) -> "Dns01ChallengeProvider":
        """Build a provider with a Cloudflare client from plugin options.

        Args:
            options: ``{email, key, acmePrefix?, verifyPropagation?}`` or
                a ChallengeOptions instance.
        """
        if not isinstance(options, ChallengeOptions):
            options = ChallengeOptions.model_validate(options)

        logger.info(
            "Creating DNS-01 challenge provider",
            extra={
                "acme_prefix": options.acme_prefix,
                "verify_propagation": options.verify_propagation is not None,
                "email": options.email,
            },
        )
        client = CloudflareProvider(
            email=options.email,
            key=options.key,
            token=options.token,
            api_url=options.api_url,
            timeout=options.timeout,
        )
        return cls(
            client,
            acme_prefix=options.acme_prefix,
            verify_propagation=options.verify_propagation,
            txt_resolver=TxtResolver(
                nameservers=options.nameservers, authoritative=options.authoritative
            ),
        )

    def close(self) -> None:
        """Close the DNS provider client."""
        self.provider.close()

    def __enter__(self) -> "Dns01ChallengeProvider":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def get_options(self) -> dict[str, Any]:
        """Return the defaults the engine merges into each call's options."""
        policy = self.verify_propagation_policy
        return {
            "acmePrefix": self.acme_prefix,
            "verifyPropagation": policy.model_dump(by_alias=True) if policy else None,
        }

    def _call_options(self, opts: dict[str, Any] | None) -> ChallengeOptions:
        merged = self.get_options()
        for key in ("acmePrefix", "verifyPropagation"):
            if opts and key in opts:
                merged[key] = opts[key]
        return ChallengeOptions.model_validate(merged)

    def state_of(self, domain: str, acme_prefix: str | None = None) -> ChallengeState:
        """Return the last known state of the challenge record for ``domain``.

        Only challenges in flight are tracked; once removed (or reset after
        a failed set) a record reports ``IDLE`` again.
        """
        fqdn = get_fqdn(domain, acme_prefix or self.acme_prefix)
        return self._states.get(fqdn, ChallengeState.IDLE)

    def _transition(self, ctx: ChallengeContext, state: ChallengeState) -> None:
        previous = self._states.get(ctx.fqdn, ChallengeState.IDLE)
        if state in (ChallengeState.IDLE, ChallengeState.REMOVED):
            self._states.pop(ctx.fqdn, None)
        else:
            self._states[ctx.fqdn] = state
        logger.debug(
            "Challenge state changed",
            extra={"fqdn": ctx.fqdn, "from_state": previous, "to_state": state},
        )

    # -------------------------------------------------------------------------
    # Plugin contract
    # -------------------------------------------------------------------------

    def set(
        self,
        opts: dict[str, Any] | None,
        domain: str,
        challenge_token: str,
        key_authorization: str,
        done: Done,
    ) -> None:
        """Publish the challenge record and report through ``done``."""
        outcome = self.set_challenge(opts, domain, key_authorization)
        done(outcome.error)

    def remove(
        self,
        opts: dict[str, Any] | None,
        domain: str,
        challenge_token: str,
        done: Done,
    ) -> None:
        """Remove every challenge record and report through ``done``."""
        outcome = self.remove_challenge(opts, domain)
        done(outcome.error)

    # -------------------------------------------------------------------------
    # Result-based operations
    # -------------------------------------------------------------------------

    def set_challenge(
        self,
        opts: dict[str, Any] | None,
        domain: str,
        key_authorization: str,
    ) -> Outcome:
        """Converge the record set on one record holding the digest.

        Returns:
            Outcome with the written DnsRecord, or the error that stopped it.
        """
        with domain_context(domain):
            ctx: ChallengeContext | None = None
            try:
                options = self._call_options(opts)
                auth_content = compute_dns_txt_value(key_authorization)
                ctx = ChallengeContext(
                    domain=domain,
                    acme_prefix=options.acme_prefix,
                    key_authorization=key_authorization,
                )
                logger.info("Setting ACME challenge", extra=get_domain_extra())
                self._transition(ctx, ChallengeState.SETTING)

                zone = self.zones.resolve_zone(domain)
                if zone is None:
                    raise ZoneNotFoundError(domain)

                existing = self.zones.resolve_txt_records(zone, ctx.fqdn)
                plan = reconcile(existing, ctx.fqdn, auth_content, ttl=RECORD_TTL)
                record = self._apply(zone, plan)

                self._transition(ctx, ChallengeState.AWAITING_PROPAGATION)
                if options.verify_propagation is not None:
                    try:
                        self.verify_propagation(ctx, options.verify_propagation)
                    except PropagationTimeoutError:
                        self._transition(ctx, ChallengeState.PROPAGATION_FAILED)
                        raise
                    self._transition(ctx, ChallengeState.VERIFIED)

                return Outcome.success(record)
            except Exception as exc:
                if ctx is not None and self._states.get(ctx.fqdn) is ChallengeState.SETTING:
                    self._transition(ctx, ChallengeState.IDLE)
                logger.error(
                    "Failed to set ACME challenge",
                    exc_info=True,
                    extra=get_domain_extra(error=str(exc)),
                )
                return Outcome.failure(exc)

    def _apply(self, zone: Zone, plan: ReconcilePlan) -> DnsRecord:
        if plan.to_delete:
            logger.info(
                "Deleting surplus TXT records",
                extra={"zone": zone.name, "count": len(plan.to_delete)},
            )
        for surplus in plan.to_delete:
            self.provider.delete_record(zone.id, surplus.id)

        if plan.creates:
            logger.info(
                "Creating TXT record",
                extra={"record_name": plan.to_upsert.name, "content": plan.to_upsert.content},
            )
            return self.provider.add_record(zone.id, plan.to_upsert)

        logger.info(
            "Updating existing TXT record",
            extra={"record_name": plan.to_upsert.name, "content": plan.to_upsert.content},
        )
        return self.provider.edit_record(zone.id, plan.to_upsert)

    def remove_challenge(self, opts: dict[str, Any] | None, domain: str) -> Outcome:
        """Delete every TXT record at the challenge name.

        Returns:
            Outcome with the number of records deleted, or the error.
        """
        with domain_context(domain):
            try:
                options = self._call_options(opts)
                ctx = ChallengeContext(domain=domain, acme_prefix=options.acme_prefix)
                logger.info("Removing ACME challenge", extra=get_domain_extra())

                zone = self.zones.resolve_zone(domain)
                if zone is None:
                    raise ZoneNotFoundError(domain)

                records = self.zones.resolve_txt_records(zone, ctx.fqdn)
                if not records:
                    raise NoTxtRecordError(ctx.fqdn)

                self._transition(ctx, ChallengeState.REMOVING)
                for record in records:
                    self.provider.delete_record(zone.id, record.id)
                self._transition(ctx, ChallengeState.REMOVED)

                logger.info(
                    "Removed ACME challenge",
                    extra=get_domain_extra(count=len(records)),
                )
                return Outcome.success(len(records))
            except Exception as exc:
                logger.error(
                    "Failed to remove ACME challenge",
                    exc_info=True,
                    extra=get_domain_extra(error=str(exc)),
                )
                return Outcome.failure(exc)

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def loopback(
        self,
        domain: str,
        acme_prefix: str | None = None,
        auth_content: str | None = None,
    ) -> list[str]:
        """Look up the challenge name in public DNS.

        Without ``auth_content`` this only checks that some TXT record
        resolves.

        Returns:
            The TXT values found.

        Raises:
            TxtRecordMismatchError: If ``auth_content`` is not among them.
            dns.exception.DNSException: If the lookup itself fails.
        """
        fqdn = get_fqdn(domain, acme_prefix or self.acme_prefix)
        records = self.txt_resolver.resolve(fqdn)
        if auth_content and auth_content not in records:
            raise TxtRecordMismatchError(fqdn, auth_content, records)
        return records

    def verify_propagation(self, ctx: ChallengeContext, policy: PropagationPolicy) -> None:
        """Poll public DNS until the digest is visible.

        Makes up to ``policy.retries + 1`` lookups, sleeping
        ``policy.wait_for_ms`` after each failed one.

        Raises:
            PropagationTimeoutError: If the budget runs out.
        """
        attempts = policy.retries + 1
        logger.info(
            "Awaiting propagation of TXT record",
            extra={"fqdn": ctx.fqdn, "attempts": attempts, "wait_for_ms": policy.wait_for_ms},
        )

        with Timer() as timer:
            verified = False
            for attempt in range(1, attempts + 1):
                try:
                    self.loopback(ctx.domain, ctx.acme_prefix, ctx.auth_content)
                    verified = True
                    break
                except (dns.exception.DNSException, TxtRecordMismatchError, OSError) as exc:
                    logger.info(
                        "Propagation check failed",
                        extra={"fqdn": ctx.fqdn, "attempt": attempt, "error": str(exc)},
                    )
                    if attempt < attempts:
                        time.sleep(policy.wait_for_ms / 1000)

        if not verified:
            logger.warning(
                "TXT record did not propagate",
                extra=get_domain_extra(fqdn=ctx.fqdn, attempts=attempts, **timer.extra),
            )
            raise PropagationTimeoutError(ctx.domain, attempts)

        logger.info(
            "Challenge propagated",
            extra=get_domain_extra(fqdn=ctx.fqdn, attempt=attempt, **timer.extra),
        )
