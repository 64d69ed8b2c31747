"""ACM certificate with DNS validation, created and awaited by a custom resource."""

from aws_cdk import CustomResource, Duration
from aws_cdk import aws_certificatemanager as acm
from aws_cdk import aws_iam as iam
from aws_cdk import aws_route53 as route53
from aws_cdk import custom_resources as cr
from constructs import Construct
from site_runtime.certificates import CERTIFICATE_REGION, DEFAULT_VALIDATION_TIMEOUT

from .runtime_function import runtime_function


class DnsValidatedCertificate(Construct):
  """ACM certificate that is only usable once validated.

  The custom resource requests the certificate, publishes the validation
  CNAME (TTL 60) in the hosted zone and polls ACM until the certificate is
  issued. Its CertificateArn attribute therefore only resolves for a
  validated certificate; depending on it means depending on validation.

  The whole wait runs inside a single Lambda invocation, which is capped at
  15 minutes, so validation_timeout cannot exceed 840 seconds. When DNS
  propagation is slower than that the deployment fails with
  ValidationTimeoutError; the next deployment adopts the still pending
  certificate and resumes waiting instead of requesting a new one.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    domain_name: str,
    hosted_zone: route53.IHostedZone,
    tags: dict[str, str] | None = None,
    validation_timeout: Duration = Duration.seconds(int(DEFAULT_VALIDATION_TIMEOUT)),
    resource_prefix: str = "",
  ) -> None:
    super().__init__(scope, id)

    handler_timeout = Duration.seconds(min(validation_timeout.to_seconds() + 60, 900))

    self.handler = runtime_function(
      self,
      f"{resource_prefix}-certificate-lambda" if resource_prefix else "Handler",
      handler="site_runtime.handlers.certificate.on_event",
      description=f"Requests and validates the certificate for {domain_name}",
      timeout=handler_timeout,
    )

    self.handler.add_to_role_policy(
      iam.PolicyStatement(
        actions=[
          "acm:RequestCertificate",
          "acm:DescribeCertificate",
          "acm:DeleteCertificate",
          "acm:AddTagsToCertificate",
          "acm:ListCertificates",
        ],
        resources=["*"],  # ACM ARNs are unknown until the request is made
      )
    )
    self.handler.add_to_role_policy(
      iam.PolicyStatement(
        actions=["route53:ChangeResourceRecordSets"],
        resources=[hosted_zone.hosted_zone_arn],
      )
    )

    provider = cr.Provider(
      self,
      f"{resource_prefix}-certificate-provider" if resource_prefix else "Provider",
      on_event_handler=self.handler,
    )

    self.custom_resource = CustomResource(
      self,
      f"{resource_prefix}-certificate-resource" if resource_prefix else "Resource",
      service_token=provider.service_token,
      resource_type="Custom::DnsValidatedCertificate",
      properties={
        "DomainName": domain_name,
        "HostedZoneId": hosted_zone.hosted_zone_id,
        "Region": CERTIFICATE_REGION,
        "ValidationTimeoutSeconds": str(int(validation_timeout.to_seconds())),
        "Tags": [{"Key": key, "Value": value} for key, value in sorted((tags or {}).items())],
      },
    )

    self.certificate_arn = self.custom_resource.get_att_string("CertificateArn")
    self.certificate = acm.Certificate.from_certificate_arn(
      self,
      f"{resource_prefix}-certificate" if resource_prefix else "Certificate",
      self.certificate_arn,
    )
