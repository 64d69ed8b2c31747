"""Route 53 hosted zone reference and the site alias record."""

from aws_cdk import aws_route53 as route53
from constructs import Construct
from site_runtime.zones import CLOUDFRONT_HOSTED_ZONE_ID

from .distribution import CloudFrontDistribution


class DnsRecords(Construct):
  """Existing public hosted zone and the alias record pointing at CloudFront."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    domain_name: str,
    hosted_zone_id: str,
    zone_name: str | None = None,
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    self.domain_name = domain_name
    self._resource_prefix = resource_prefix

    self.hosted_zone = route53.HostedZone.from_hosted_zone_attributes(
      self,
      f"{resource_prefix}-hosted-zone" if resource_prefix else "HostedZone",
      hosted_zone_id=hosted_zone_id,
      zone_name=zone_name or domain_name,
    )

  def create_alias_record(
    self,
    distribution: CloudFrontDistribution,
    resource_prefix: str = "",
  ) -> route53.CfnRecordSet:
    """Create the A alias record for the domain.

    Target health evaluation is off: CloudFront's own health signaling is
    authoritative. CloudFormation refuses to create a record that already
    exists, so an existing record is never overwritten.
    """
    prefix = resource_prefix or self._resource_prefix
    record = route53.CfnRecordSet(
      self,
      f"{prefix}-alias-record" if prefix else "AliasRecord",
      hosted_zone_id=self.hosted_zone.hosted_zone_id,
      name=self.domain_name,
      type="A",
      alias_target=route53.CfnRecordSet.AliasTargetProperty(
        dns_name=distribution.distribution_domain_name,
        hosted_zone_id=CLOUDFRONT_HOSTED_ZONE_ID,
        evaluate_target_health=False,
      ),
    )
    record.node.add_dependency(distribution.distribution)
    return record
