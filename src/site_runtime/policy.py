"""Bucket policy that scopes object reads to a single CloudFront distribution."""

from typing import Any

CLOUDFRONT_SERVICE_PRINCIPAL = "cloudfront.amazonaws.com"
READ_OBJECT_ACTION = "s3:GetObject"
SOURCE_ARN_CONDITION_KEY = "AWS:SourceArn"
POLICY_VERSION = "2012-10-17"


def distribution_arn(account_id: str, distribution_id: str, partition: str = "aws") -> str:
  """ARN of a CloudFront distribution (CloudFront ARNs carry no region)."""
  return f"arn:{partition}:cloudfront::{account_id}:distribution/{distribution_id}"


def bucket_policy_document(
  bucket_name: str,
  source_arn: str,
  partition: str = "aws",
) -> dict[str, Any]:
  """Build the site bucket policy.

  Exactly one Allow statement: the CloudFront service principal may read
  objects, and only on behalf of the distribution identified by source_arn.
  """
  return {
    "Version": POLICY_VERSION,
    "Statement": [
      {
        "Sid": "AllowCloudFrontServicePrincipalReadOnly",
        "Effect": "Allow",
        "Principal": {"Service": CLOUDFRONT_SERVICE_PRINCIPAL},
        "Action": READ_OBJECT_ACTION,
        "Resource": f"arn:{partition}:s3:::{bucket_name}/*",
        "Condition": {"StringEquals": {SOURCE_ARN_CONDITION_KEY: source_arn}},
      }
    ],
  }

