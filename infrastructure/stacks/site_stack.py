"""CDK stack for a single static website."""

from pathlib import Path
from typing import Any

import aws_cdk as cdk
from constructs import Construct
from site_runtime.zones import HostedZone

from infrastructure.cdk_constructs import StaticSiteConstruct
from infrastructure.config import SiteConfig


def stack_name_for(domain_name: str) -> str:
  """Deterministic stack name; one stack (and one state lock) per domain."""
  return f"StaticSite-{domain_name.replace('.', '-')}"


class StaticSiteStack(cdk.Stack):
  """Stack for a single static website."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    site_config: SiteConfig,
    hosted_zone: HostedZone,
    base_dir: Path | None = None,
    **kwargs: Any,
  ) -> None:
    super().__init__(scope, id, **kwargs)

    asset_dir = Path(site_config.asset_dir)
    if base_dir is not None and not asset_dir.is_absolute():
      asset_dir = base_dir / asset_dir

    tags = {**site_config.tags, "Domain": site_config.domain_name}

    self.site = StaticSiteConstruct(
      self,
      "Site",
      domain_name=site_config.domain_name,
      website_bucket_name=site_config.website_bucket_name,
      asset_dir=asset_dir,
      hosted_zone_id=hosted_zone.id,
      zone_name=hosted_zone.name,
      distribution_settings=site_config.distribution,
      force_destroy=site_config.force_destroy,
      tags=tags,
      validation_timeout=cdk.Duration.seconds(site_config.certificate_validation_timeout),
    )

    # Tag every taggable resource
    for key, value in tags.items():
      cdk.Tags.of(self).add(key, value)
