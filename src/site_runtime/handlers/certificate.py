"""Custom resource: DNS-validated ACM certificate.

Create blocks until ACM reports the certificate as issued, so anything that
references the CertificateArn attribute only proceeds with a validated
certificate.
"""

import logging
from typing import Any

import boto3

from ..certificates import (
  CERTIFICATE_REGION,
  DEFAULT_VALIDATION_TIMEOUT,
  CertificateProvisioner,
)
from ..domains import normalize_domain

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Seconds kept back from the Lambda deadline to report the outcome.
DEADLINE_MARGIN = 30.0


def _provisioner(region: str) -> CertificateProvisioner:
  return CertificateProvisioner(
    boto3.client("acm", region_name=region),
    boto3.client("route53"),
  )


def _tags(props: dict[str, Any]) -> dict[str, str]:
  return {tag["Key"]: tag["Value"] for tag in props.get("Tags", [])}


def _timeout(props: dict[str, Any], context: Any) -> float:
  timeout = float(props.get("ValidationTimeoutSeconds", DEFAULT_VALIDATION_TIMEOUT))
  if context is not None:
    remaining = context.get_remaining_time_in_millis() / 1000.0 - DEADLINE_MARGIN
    timeout = min(timeout, remaining)
  return max(timeout, 0.0)


def _response(arn: str, domain: str) -> dict[str, Any]:
  return {
    "PhysicalResourceId": arn,
    "Data": {"CertificateArn": arn, "DomainName": domain},
  }


def _create(props: dict[str, Any], context: Any) -> dict[str, Any]:
  region = props.get("Region", CERTIFICATE_REGION)
  request = _provisioner(region).provision(
    props["DomainName"],
    zone_id=props.get("HostedZoneId") or None,
    tags=_tags(props),
    timeout=_timeout(props, context),
  )
  return _response(request.arn, request.domain)


def _update(event: dict[str, Any], context: Any) -> dict[str, Any]:
  props = event["ResourceProperties"]
  old = event.get("OldResourceProperties", {})
  same_domain = normalize_domain(old.get("DomainName", "")) == normalize_domain(props["DomainName"])
  same_region = old.get("Region", CERTIFICATE_REGION) == props.get("Region", CERTIFICATE_REGION)
  if not (same_domain and same_region):
    # New physical id; CloudFormation deletes the old certificate afterwards.
    return _create(props, context)

  arn = event["PhysicalResourceId"]
  tags = _tags(props)
  if tags:
    acm = boto3.client("acm", region_name=props.get("Region", CERTIFICATE_REGION))
    acm.add_tags_to_certificate(
      CertificateArn=arn,
      Tags=[{"Key": key, "Value": value} for key, value in sorted(tags.items())],
    )
  return _response(arn, normalize_domain(props["DomainName"]))


def _delete(event: dict[str, Any]) -> dict[str, Any]:
  physical_id = event["PhysicalResourceId"]
  # A failed create leaves a physical id that is not a certificate ARN.
  if physical_id.startswith("arn:") and ":acm:" in physical_id:
    props = event["ResourceProperties"]
    _provisioner(props.get("Region", CERTIFICATE_REGION)).delete(physical_id)
  return {"PhysicalResourceId": physical_id}


def on_event(event: dict[str, Any], context: Any) -> dict[str, Any]:
  request_type = event["RequestType"]
  logger.info("%s certificate for %s", request_type, event["ResourceProperties"].get("DomainName"))
  if request_type == "Create":
    return _create(event["ResourceProperties"], context)
  if request_type == "Update":
    return _update(event, context)
  if request_type == "Delete":
    return _delete(event)
  raise ValueError(f"Unknown request type: {request_type}")
