"""Checks run against the live account before a site stack is synthesized."""

from typing import Any

from botocore.exceptions import ClientError
from site_runtime.errors import error_code, from_client_error
from site_runtime.zones import HostedZone, ensure_record_absent, resolve_hosted_zone

from infrastructure.config import SiteConfig


def stack_exists(cloudformation: Any, stack_name: str) -> bool:
  """Whether a live (not deleted) stack with this name exists."""
  try:
    response = cloudformation.describe_stacks(StackName=stack_name)
  except ClientError as e:
    if error_code(e) == "ValidationError":
      return False
    raise from_client_error(e, resource=f"stack {stack_name}") from e
  return any(stack.get("StackStatus") != "DELETE_COMPLETE" for stack in response.get("Stacks", []))


def run_preflight(session: Any, site: SiteConfig, stack_name: str) -> HostedZone:
  """Resolve the hosted zone and refuse to clobber an existing alias record.

  The record check only applies before the first deployment; afterwards the
  record belongs to the stack.

  Raises:
    ZoneNotFoundError: no public hosted zone serves the domain.
    ConflictError: an A record for the domain exists outside the stack.
  """
  route53 = session.client("route53")
  if site.hosted_zone_id:
    zone = HostedZone(id=site.hosted_zone_id, name=site.domain_name)
  else:
    zone = resolve_hosted_zone(route53, site.domain_name)

  cloudformation = session.client("cloudformation", region_name=site.region)
  if not stack_exists(cloudformation, stack_name):
    ensure_record_absent(route53, zone.id, site.domain_name, "A")
  return zone
