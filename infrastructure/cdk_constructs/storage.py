"""Private S3 bucket holding the site assets."""

from aws_cdk import RemovalPolicy
from aws_cdk import aws_s3 as s3
from constructs import Construct


class StorageBucket(Construct):
  """S3 bucket readable only through the site's CloudFront distribution.

  No public access and no bucket policy of its own: read access is granted
  later, by the distribution, once its identifier is known.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    bucket_name: str,
    force_destroy: bool = True,
  ) -> None:
    super().__init__(scope, id)

    self.force_destroy = force_destroy

    self.bucket = s3.Bucket(
      self,
      "Bucket",
      bucket_name=bucket_name,
      block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
      object_ownership=s3.ObjectOwnership.BUCKET_OWNER_ENFORCED,
      encryption=s3.BucketEncryption.S3_MANAGED,
      removal_policy=RemovalPolicy.DESTROY if force_destroy else RemovalPolicy.RETAIN,
    )
