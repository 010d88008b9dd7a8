"""DNS-01 naming and record reconciliation."""

from zonekeeper.models import DnsRecord, ReconcilePlan

RECORD_TTL = 120


def get_fqdn(domain: str, acme_prefix: str = "_acme-challenge") -> str:
    """Return the challenge record name for ``domain``."""
    return f"{acme_prefix}.{domain}"


def reconcile(
    existing: list[DnsRecord],
    name: str,
    desired_content: str,
    ttl: int = RECORD_TTL,
) -> ReconcilePlan:
    """Decide how to converge ``existing`` on exactly one challenge record.

    - No records: create one.
    - One record: update it in place, keeping its other fields.
    - Several records: delete all but the first, then update the first.

    Args:
        existing: TXT records currently published at ``name``.
        name: Fully-qualified record name.
        desired_content: TXT value that must remain.
        ttl: TTL of the remaining record.

    Returns:
        The records to delete and the record to create or update.
    """
    if not existing:
        return ReconcilePlan(
            to_upsert=DnsRecord(type="TXT", name=name, content=desired_content, ttl=ttl),
        )

    first, *surplus = existing
    return ReconcilePlan(
        to_delete=list(surplus),
        to_upsert=first.model_copy(update={"content": desired_content, "ttl": ttl}),
    )
