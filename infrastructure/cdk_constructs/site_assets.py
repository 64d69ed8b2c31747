"""Synchronization of the local asset tree into the site bucket."""

from pathlib import Path

from aws_cdk import CustomResource, Duration, Size
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_s3_assets as s3_assets
from aws_cdk import custom_resources as cr
from constructs import Construct

from .runtime_function import runtime_function


class SiteAssets(Construct):
  """Mirrors a local directory into the bucket, one object per file.

  The directory is packaged as a CDK file asset; a custom resource then
  uploads only the files whose content fingerprint changed. With
  force_destroy, deleting this resource empties the bucket so the bucket
  itself can be deleted.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    bucket: s3.IBucket,
    source_dir: Path | str,
    force_destroy: bool = True,
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    self.source = s3_assets.Asset(
      self,
      f"{resource_prefix}-asset-bundle" if resource_prefix else "Source",
      path=str(source_dir),
    )

    self.handler = runtime_function(
      self,
      f"{resource_prefix}-assets-lambda" if resource_prefix else "Handler",
      handler="site_runtime.handlers.site_assets.on_event",
      description="Synchronizes site assets into the website bucket",
      timeout=Duration.minutes(15),
      memory_size=1024,
      ephemeral_storage=Size.gibibytes(2),
    )

    # Identity-based grants only; the bucket policy stays reserved for CloudFront.
    self.source.grant_read(self.handler)
    bucket.grant_read_write(self.handler)

    provider = cr.Provider(
      self,
      f"{resource_prefix}-assets-provider" if resource_prefix else "Provider",
      on_event_handler=self.handler,
    )

    self.custom_resource = CustomResource(
      self,
      f"{resource_prefix}-assets-resource" if resource_prefix else "Resource",
      service_token=provider.service_token,
      resource_type="Custom::SiteAssets",
      properties={
        "DestinationBucket": bucket.bucket_name,
        "SourceBucket": self.source.s3_bucket_name,
        "SourceKey": self.source.s3_object_key,
        "AssetHash": self.source.asset_hash,
        "ForceDestroy": "true" if force_destroy else "false",
      },
    )
    # Objects can only be written once the bucket exists.
    self.custom_resource.node.add_dependency(bucket)
