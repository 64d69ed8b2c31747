"""CloudFront distribution serving the private bucket through Origin Access Control."""

from aws_cdk import Aws, Stack
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_s3 as s3
from constructs import Construct
from site_runtime.policy import bucket_policy_document, distribution_arn

from infrastructure.config import DistributionSettings

from .certificate import DnsValidatedCertificate

ORIGIN_ID = "s3-website-origin"


class CloudFrontDistribution(Construct):
  """CloudFront distribution with a signed (OAC) S3 origin and a validated certificate."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    bucket: s3.IBucket,
    certificate: DnsValidatedCertificate,
    domain_name: str,
    settings: DistributionSettings | None = None,
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    settings = settings or DistributionSettings()
    cache = settings.cache_behavior

    self.origin_access_control = cloudfront.CfnOriginAccessControl(
      self,
      f"{resource_prefix}-oac" if resource_prefix else "OriginAccessControl",
      origin_access_control_config=cloudfront.CfnOriginAccessControl.OriginAccessControlConfigProperty(
        name=f"{domain_name}-oac"[:64],
        description=f"Origin access control for {domain_name}",
        origin_access_control_origin_type="s3",
        signing_behavior="always",
        signing_protocol="sigv4",
      ),
    )

    self.distribution = cloudfront.CfnDistribution(
      self,
      f"{resource_prefix}-distribution" if resource_prefix else "Distribution",
      distribution_config=cloudfront.CfnDistribution.DistributionConfigProperty(
        enabled=True,
        aliases=[domain_name],
        ipv6_enabled=True,
        default_root_object=settings.default_root_object,
        price_class=settings.price_class,
        origins=[
          cloudfront.CfnDistribution.OriginProperty(
            id=ORIGIN_ID,
            domain_name=bucket.bucket_regional_domain_name,
            origin_access_control_id=self.origin_access_control.attr_id,
            # Required with OAC; an empty identity means no legacy OAI.
            s3_origin_config=cloudfront.CfnDistribution.S3OriginConfigProperty(
              origin_access_identity="",
            ),
          )
        ],
        default_cache_behavior=cloudfront.CfnDistribution.DefaultCacheBehaviorProperty(
          target_origin_id=ORIGIN_ID,
          viewer_protocol_policy="redirect-to-https",
          allowed_methods=list(cache.allowed_methods),
          cached_methods=list(cache.cached_methods),
          forwarded_values=cloudfront.CfnDistribution.ForwardedValuesProperty(
            query_string=cache.forward_query_string,
            cookies=cloudfront.CfnDistribution.CookiesProperty(forward=cache.forward_cookies),
          ),
          min_ttl=cache.min_ttl,
          default_ttl=cache.default_ttl,
          max_ttl=cache.max_ttl,
          compress=cache.compress,
        ),
        custom_error_responses=[
          cloudfront.CfnDistribution.CustomErrorResponseProperty(
            error_code=rule.error_code,
            response_code=rule.response_code,
            response_page_path=rule.response_page_path,
          )
          for rule in settings.error_responses
        ],
        restrictions=cloudfront.CfnDistribution.RestrictionsProperty(
          geo_restriction=cloudfront.CfnDistribution.GeoRestrictionProperty(
            restriction_type=settings.geo_restriction.mode,
            locations=list(settings.geo_restriction.locations),
          )
        ),
        viewer_certificate=cloudfront.CfnDistribution.ViewerCertificateProperty(
          acm_certificate_arn=certificate.certificate_arn,
          ssl_support_method="sni-only",
          minimum_protocol_version=settings.minimum_protocol_version,
        ),
      ),
    )

    # Explicit edges: the OAC must exist and the certificate must be validated.
    self.distribution.node.add_dependency(self.origin_access_control)
    self.distribution.node.add_dependency(certificate.custom_resource)

    self.distribution_id = self.distribution.ref
    self.distribution_domain_name = self.distribution.attr_domain_name
    self.distribution_arn = distribution_arn(Stack.of(self).account, self.distribution_id, partition=Aws.PARTITION)

  def restrict_bucket_access(self, bucket: s3.IBucket) -> s3.CfnBucketPolicy:
    """Grant object reads to CloudFront, on behalf of this distribution only.

    Second phase of the bucket/distribution forward reference: the policy
    needs the distribution ARN, so it is applied after the distribution.
    """
    policy = s3.CfnBucketPolicy(
      self,
      "OriginAccessPolicy",
      bucket=bucket.bucket_name,
      policy_document=bucket_policy_document(
        bucket.bucket_name,
        self.distribution_arn,
        partition=Aws.PARTITION,
      ),
    )
    policy.node.add_dependency(self.distribution)
    return policy
