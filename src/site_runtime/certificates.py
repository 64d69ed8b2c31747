"""ACM certificate request, DNS validation record and validation wait."""

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError

from .backoff import wait_until
from .domains import normalize_domain
from .errors import (
  TRANSIENT_ERROR_CODES,
  CertificateRejectedError,
  ValidationTimeoutError,
  error_code,
  from_client_error,
)
from .zones import resolve_hosted_zone

logger = logging.getLogger(__name__)

# CloudFront only accepts certificates issued in us-east-1.
CERTIFICATE_REGION = "us-east-1"

# The validation record is transient, keep its TTL short.
VALIDATION_RECORD_TTL = 60

DEFAULT_VALIDATION_TIMEOUT = 780.0

# Certificates in these states are adopted instead of requesting another one.
REUSABLE_STATUSES = ("PENDING_VALIDATION", "ISSUED")

# ACM statuses that can never turn into ISSUED.
_TERMINAL_STATUSES = frozenset({"FAILED", "VALIDATION_TIMED_OUT", "REVOKED", "EXPIRED", "INACTIVE"})


class CertificateStatus(Enum):
  PENDING = "Pending"
  VALIDATED = "Validated"
  FAILED = "Failed"

  @classmethod
  def from_acm(cls, status: str) -> "CertificateStatus":
    if status == "ISSUED":
      return cls.VALIDATED
    if status in _TERMINAL_STATUSES:
      return cls.FAILED
    return cls.PENDING


@dataclass(frozen=True)
class ValidationRecord:
  """DNS record ACM wants to see before it issues the certificate."""

  name: str
  type: str
  value: str


@dataclass(frozen=True)
class CertificateRequest:
  domain: str
  arn: str
  validation_method: str = "DNS"
  validation_record: ValidationRecord | None = None
  status: CertificateStatus = CertificateStatus.PENDING


def idempotency_token(domain: str) -> str:
  """Deterministic ACM idempotency token (alphanumeric, at most 32 chars)."""
  return hashlib.sha256(normalize_domain(domain).encode()).hexdigest()[:32]


class CertificateProvisioner:
  """Request a DNS-validated certificate and block until ACM issues it."""

  def __init__(
    self,
    acm: Any,
    route53: Any,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
  ) -> None:
    self._acm = acm
    self._route53 = route53
    self._sleep = sleep
    self._clock = clock

  def find_existing(self, domain: str) -> str | None:
    """ARN of a pending or issued certificate for exactly this domain, if any."""
    domain = normalize_domain(domain)
    paginator = self._acm.get_paginator("list_certificates")
    try:
      for page in paginator.paginate(CertificateStatuses=list(REUSABLE_STATUSES)):
        for summary in page.get("CertificateSummaryList", []):
          if normalize_domain(summary.get("DomainName", "")) == domain:
            return str(summary["CertificateArn"])
    except ClientError as e:
      raise from_client_error(e, resource="certificate", domain=domain) from e
    return None

  def request(self, domain: str, tags: dict[str, str] | None = None) -> CertificateRequest:
    """Submit the certificate request, or adopt the one already requested.

    The idempotency token only deduplicates requests within one hour, so a
    pending certificate left by an earlier timed-out run is looked up first.
    """
    domain = normalize_domain(domain)
    existing = self.find_existing(domain)
    if existing is not None:
      logger.info("Reusing certificate %s for %s", existing, domain)
      if tags:
        try:
          self._acm.add_tags_to_certificate(
            CertificateArn=existing,
            Tags=[{"Key": key, "Value": value} for key, value in sorted(tags.items())],
          )
        except ClientError as e:
          raise from_client_error(e, resource=existing, domain=domain) from e
      return CertificateRequest(domain=domain, arn=existing)

    kwargs: dict[str, Any] = {
      "DomainName": domain,
      "ValidationMethod": "DNS",
      "IdempotencyToken": idempotency_token(domain),
    }
    if tags:
      kwargs["Tags"] = [{"Key": key, "Value": value} for key, value in sorted(tags.items())]
    try:
      response = self._acm.request_certificate(**kwargs)
    except ClientError as e:
      if error_code(e) in TRANSIENT_ERROR_CODES:
        raise from_client_error(e, resource="certificate", domain=domain) from e
      raise CertificateRejectedError(
        "certificate request rejected",
        resource="certificate",
        domain=domain,
        provider_message=e.response.get("Error", {}).get("Message") or str(e),
      ) from e
    arn = response["CertificateArn"]
    logger.info("Requested certificate %s for %s", arn, domain)
    return CertificateRequest(domain=domain, arn=arn)

  def describe(self, arn: str) -> dict[str, Any]:
    try:
      response = self._acm.describe_certificate(CertificateArn=arn)
    except ClientError as e:
      raise from_client_error(e, resource=arn) from e
    return dict(response["Certificate"])

  def validation_record(self, request: CertificateRequest, timeout: float = 120.0) -> ValidationRecord:
    """Wait for ACM to publish the validation record details."""

    def record() -> ValidationRecord | None:
      for option in self.describe(request.arn).get("DomainValidationOptions", []):
        resource_record = option.get("ResourceRecord")
        if normalize_domain(option.get("DomainName", "")) == request.domain and resource_record:
          return ValidationRecord(
            name=resource_record["Name"],
            type=resource_record["Type"],
            value=resource_record["Value"],
          )
      return None

    found = wait_until(
      record,
      timeout=timeout,
      base_delay=1.0,
      max_delay=10.0,
      description=f"validation record of {request.arn}",
      sleep=self._sleep,
      clock=self._clock,
    )
    if found is None:
      raise ValidationTimeoutError(
        "ACM did not publish DNS validation details in time",
        resource=request.arn,
        domain=request.domain,
      )
    return found

  def publish_validation_record(self, zone_id: str, record: ValidationRecord, domain: str | None = None) -> None:
    """UPSERT the validation CNAME; repeated publication is harmless."""
    try:
      self._route53.change_resource_record_sets(
        HostedZoneId=zone_id,
        ChangeBatch={
          "Comment": f"ACM DNS validation for {domain or record.name}",
          "Changes": [
            {
              "Action": "UPSERT",
              "ResourceRecordSet": {
                "Name": record.name,
                "Type": record.type,
                "TTL": VALIDATION_RECORD_TTL,
                "ResourceRecords": [{"Value": record.value}],
              },
            }
          ],
        },
      )
    except ClientError as e:
      raise from_client_error(e, resource=f"validation record {record.name}", domain=domain) from e
    logger.info("Published validation record %s %s in zone %s", record.type, record.name, zone_id)

  def wait_for_validation(
    self,
    request: CertificateRequest,
    timeout: float = DEFAULT_VALIDATION_TIMEOUT,
    max_attempts: int = 120,
  ) -> CertificateRequest:
    """Poll ACM with exponential backoff until the certificate is issued."""

    def status() -> CertificateStatus | None:
      certificate = self.describe(request.arn)
      current = CertificateStatus.from_acm(certificate.get("Status", ""))
      if current is CertificateStatus.FAILED:
        raise CertificateRejectedError(
          f"certificate validation ended in status {certificate.get('Status')}",
          resource=request.arn,
          domain=request.domain,
          provider_message=certificate.get("FailureReason"),
        )
      return current if current is CertificateStatus.VALIDATED else None

    result = wait_until(
      status,
      timeout=timeout,
      max_attempts=max_attempts,
      base_delay=5.0,
      max_delay=60.0,
      description=f"validation of {request.arn}",
      sleep=self._sleep,
      clock=self._clock,
    )
    if result is None:
      raise ValidationTimeoutError(
        f"certificate not validated within {timeout:.0f}s",
        resource=request.arn,
        domain=request.domain,
      )
    logger.info("Certificate %s validated", request.arn)
    return replace(request, status=CertificateStatus.VALIDATED)

  def provision(
    self,
    domain: str,
    *,
    zone_id: str | None = None,
    tags: dict[str, str] | None = None,
    timeout: float = DEFAULT_VALIDATION_TIMEOUT,
  ) -> CertificateRequest:
    """Request, publish the validation record, and wait for validation."""
    started = self._clock()
    if zone_id is None:
      zone_id = resolve_hosted_zone(self._route53, domain).id
    request = self.request(domain, tags)
    record = self.validation_record(request)
    request = replace(request, validation_record=record)
    self.publish_validation_record(zone_id, record, domain=request.domain)
    remaining = max(timeout - (self._clock() - started), 0.0)
    return self.wait_for_validation(request, timeout=remaining)

  def delete(self, arn: str) -> None:
    """Delete a certificate.

    The validation CNAME stays: ACM reuses the same record for every
    certificate of the domain in the account.
    """
    try:
      self._acm.delete_certificate(CertificateArn=arn)
    except ClientError as e:
      if error_code(e) == "ResourceNotFoundException":
        logger.info("Certificate %s already deleted", arn)
        return
      raise from_client_error(e, resource=arn) from e
    logger.info("Deleted certificate %s", arn)
