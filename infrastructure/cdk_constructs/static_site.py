"""Main composite construct for complete static website infrastructure."""

from pathlib import Path

from aws_cdk import CfnOutput, Duration, Stack
from constructs import Construct
from site_runtime.certificates import DEFAULT_VALIDATION_TIMEOUT

from infrastructure.config import DistributionSettings

from .certificate import DnsValidatedCertificate
from .distribution import CloudFrontDistribution
from .dns import DnsRecords
from .site_assets import SiteAssets
from .storage import StorageBucket


class StaticSiteConstruct(Construct):
  """Complete static website infrastructure.

  Creates, in dependency order:
  - Private S3 bucket and the synchronized site assets
  - ACM certificate, DNS validated and awaited (independent of storage)
  - CloudFront distribution with Origin Access Control, after both
  - Bucket policy scoped to that distribution, after the distribution
  - Route 53 alias record, after the distribution

  Each step hands its resources to the next; nothing is looked up globally.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    domain_name: str,
    website_bucket_name: str,
    asset_dir: Path | str,
    hosted_zone_id: str,
    zone_name: str | None = None,
    distribution_settings: DistributionSettings | None = None,
    force_destroy: bool = True,
    tags: dict[str, str] | None = None,
    validation_timeout: Duration = Duration.seconds(int(DEFAULT_VALIDATION_TIMEOUT)),
  ) -> None:
    super().__init__(scope, id)

    # Get the stack name for resource prefixing
    stack_name = Stack.of(self).stack_name

    # Storage
    self.storage = StorageBucket(
      self,
      f"{stack_name}-bucket",
      bucket_name=website_bucket_name,
      force_destroy=force_destroy,
    )
    self.assets = SiteAssets(
      self,
      f"{stack_name}-assets",
      bucket=self.storage.bucket,
      source_dir=asset_dir,
      force_destroy=force_destroy,
      resource_prefix=stack_name,
    )

    # Hosted zone (resolved before synthesis)
    self.dns = DnsRecords(
      self,
      f"{stack_name}-dns",
      domain_name=domain_name,
      hosted_zone_id=hosted_zone_id,
      zone_name=zone_name,
      resource_prefix=stack_name,
    )

    # Certificate (DNS validated, blocks until issued)
    self.certificate = DnsValidatedCertificate(
      self,
      f"{stack_name}-certificate",
      domain_name=domain_name,
      hosted_zone=self.dns.hosted_zone,
      tags=tags,
      validation_timeout=validation_timeout,
      resource_prefix=stack_name,
    )

    # CloudFront Distribution
    self.distribution = CloudFrontDistribution(
      self,
      f"{stack_name}-distribution",
      bucket=self.storage.bucket,
      certificate=self.certificate,
      domain_name=domain_name,
      settings=distribution_settings,
      resource_prefix=stack_name,
    )
    self.access_policy = self.distribution.restrict_bucket_access(self.storage.bucket)

    # DNS alias pointing to CloudFront
    self.alias_record = self.dns.create_alias_record(self.distribution)

    # The principal output, under a fixed name for operators and scripts
    self.distribution_id_output = CfnOutput(
      self,
      "DistributionId",
      value=self.distribution.distribution_id,
      description="CloudFront distribution ID",
    )
    self.distribution_id_output.override_logical_id("DistributionId")
