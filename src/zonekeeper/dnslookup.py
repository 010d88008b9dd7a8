"""TXT lookups through public DNS, independent of the provider API."""

import dns.exception
import dns.resolver

from zonekeeper._logging import get_logger

logger = get_logger(__name__)


class TxtResolver:
    """Resolves TXT records the way the ACME server will see them.

    Args:
        nameservers: Resolver addresses to query instead of the system
            configuration.
        authoritative: Query the zone's own NS hosts directly so caches
            in between do not delay verification.
        lifetime: Total time budget per lookup in seconds.
    """

    def __init__(
        self,
        nameservers: list[str] | None = None,
        authoritative: bool = False,
        lifetime: float = 10.0,
    ):
        self.nameservers = nameservers
        self.authoritative = authoritative
        self.lifetime = lifetime

    def _base_resolver(self) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver()
        if self.nameservers:
            resolver.nameservers = list(self.nameservers)
        resolver.lifetime = self.lifetime
        return resolver

    def _authoritative_resolver(self, fqdn: str) -> dns.resolver.Resolver:
        """Build a resolver pointed at the authoritative servers for ``fqdn``.

        Falls back to the base resolver when the NS hosts cannot be found.
        """
        base = self._base_resolver()
        try:
            zone = dns.resolver.zone_for_name(fqdn, resolver=base)
            ns_answer = base.resolve(zone, "NS")
        except dns.exception.DNSException as exc:
            logger.warning(
                "Authoritative NS lookup failed, using recursive resolver",
                extra={"fqdn": fqdn, "error": str(exc)},
            )
            return base

        addresses: list[str] = []
        for rdata in ns_answer:
            for rdtype in ("A", "AAAA"):
                try:
                    answer = base.resolve(rdata.target, rdtype)
                except dns.exception.DNSException:
                    continue
                addresses.extend(a.address for a in answer)

        if not addresses:
            logger.warning(
                "Authoritative NS lookup yielded no addresses, using recursive resolver",
                extra={"fqdn": fqdn},
            )
            return base

        resolver = dns.resolver.Resolver(configure=False)
        resolver.nameservers = addresses
        resolver.lifetime = self.lifetime
        return resolver

    def resolve(self, fqdn: str) -> list[str]:
        """Return every TXT value published at ``fqdn``.

        Multi-string records are joined with a single space.

        Raises:
            dns.exception.DNSException: If the lookup fails (NXDOMAIN,
                no answer, timeout, ...).
        """
        if self.authoritative:
            resolver = self._authoritative_resolver(fqdn)
        else:
            resolver = self._base_resolver()
        answer = resolver.resolve(fqdn, "TXT")
        values = [
            " ".join(part.decode("utf-8", errors="replace") for part in rdata.strings)
            for rdata in answer
        ]
        logger.debug("Resolved TXT", extra={"fqdn": fqdn, "count": len(values)})
        return values
