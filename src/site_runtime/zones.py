"""Route 53 hosted zone and record lookups."""

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from .domains import ensure_trailing_dot, normalize_domain, zone_candidates
from .errors import ConflictError, ZoneNotFoundError, from_client_error

logger = logging.getLogger(__name__)

# Alias records for CloudFront distributions always target this zone.
CLOUDFRONT_HOSTED_ZONE_ID = "Z2FDTNDATAQYW2"


@dataclass(frozen=True)
class HostedZone:
  """A public Route 53 hosted zone."""

  id: str
  name: str


def _zone_id(raw_id: str) -> str:
  return raw_id.rsplit("/", 1)[-1]


def resolve_hosted_zone(route53: Any, domain: str) -> HostedZone:
  """Find the public hosted zone serving a domain.

  Walks from the domain itself up to its apex (app.example.com -> example.com)
  and returns the nearest public zone. Private zones are ignored.

  Raises:
    ZoneNotFoundError: no public zone exists for the domain or any parent.
  """
  for candidate in zone_candidates(domain):
    try:
      response = route53.list_hosted_zones_by_name(DNSName=candidate, MaxItems="10")
    except ClientError as e:
      raise from_client_error(e, resource="hosted-zone", domain=domain) from e
    for zone in response.get("HostedZones", []):
      if zone.get("Config", {}).get("PrivateZone", False):
        continue
      if normalize_domain(zone["Name"]) == candidate:
        hosted_zone = HostedZone(id=_zone_id(zone["Id"]), name=candidate)
        logger.info("Found hosted zone %s (%s) for %s", candidate, hosted_zone.id, domain)
        return hosted_zone
  raise ZoneNotFoundError(normalize_domain(domain))


def find_record(
  route53: Any,
  zone_id: str,
  name: str,
  record_type: str,
) -> dict[str, Any] | None:
  """Return the record set with exactly this name and type, if any."""
  fqdn = ensure_trailing_dot(normalize_domain(name))
  try:
    response = route53.list_resource_record_sets(
      HostedZoneId=zone_id,
      StartRecordName=fqdn,
      StartRecordType=record_type,
      MaxItems="1",
    )
  except ClientError as e:
    raise from_client_error(e, resource=f"record {fqdn}", domain=name) from e
  for record in response.get("ResourceRecordSets", []):
    # Route 53 escapes '*' as \052 in returned names.
    returned = record["Name"].replace("\\052", "*").lower()
    if returned == fqdn and record["Type"] == record_type:
      return dict(record)
  return None


def ensure_record_absent(route53: Any, zone_id: str, name: str, record_type: str = "A") -> None:
  """Raise ConflictError when a record with this name and type already exists.

  Existing records are never overwritten; they must be removed or imported by
  an operator.
  """
  existing = find_record(route53, zone_id, name, record_type)
  if existing is None:
    return
  target = existing.get("AliasTarget", {}).get("DNSName") or ", ".join(
    r["Value"] for r in existing.get("ResourceRecords", [])
  )
  raise ConflictError(
    f"{record_type} record already exists and will not be overwritten",
    resource=f"record {ensure_trailing_dot(normalize_domain(name))} in zone {zone_id}",
    domain=normalize_domain(name),
    provider_message=f"current target: {target}" if target else None,
  )
