"""Error taxonomy for static site provisioning.

Every fatal error carries enough context (resource, domain, provider message)
to be diagnosed from its string form alone.
"""

from botocore.exceptions import ClientError

# Error codes that signal rate limiting or a temporary provider failure.
TRANSIENT_ERROR_CODES = frozenset(
  {
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "RequestLimitExceeded",
    "PriorRequestNotComplete",
    "SlowDown",
    "ServiceUnavailable",
    "InternalError",
    "InternalFailure",
  }
)


class ProvisioningError(Exception):
  """Base class for all provisioning failures."""

  def __init__(
    self,
    message: str,
    *,
    resource: str | None = None,
    domain: str | None = None,
    provider_message: str | None = None,
  ) -> None:
    super().__init__(message)
    self.message = message
    self.resource = resource
    self.domain = domain
    self.provider_message = provider_message

  def __str__(self) -> str:
    context = [
      f"{label}={value}"
      for label, value in (("resource", self.resource), ("domain", self.domain))
      if value
    ]
    text = self.message
    if context:
      text = f"{text} [{', '.join(context)}]"
    if self.provider_message:
      text = f"{text}: {self.provider_message}"
    return text


class ConfigurationError(ProvisioningError):
  """Missing or invalid input, detected before anything is provisioned."""


class ValidationTimeoutError(ProvisioningError):
  """The certificate was not validated before the deadline."""


class ZoneNotFoundError(ProvisioningError):
  """No public hosted zone exists for the domain."""

  def __init__(self, domain: str, **kwargs: str | None) -> None:
    super().__init__("no such hosted zone", domain=domain, **kwargs)


class ConflictError(ProvisioningError):
  """A pre-existing resource blocks creation; needs operator intervention."""


class TransientProviderError(ProvisioningError):
  """Rate limiting or a temporary API failure; safe to retry."""


class CertificateRejectedError(ProvisioningError):
  """The certificate authority refused or failed the request."""


class ProviderError(ProvisioningError):
  """Any other fatal provider API failure."""


class AssetReadError(ProvisioningError):
  """A single local asset could not be read. Recoverable."""

  def __init__(self, path: str, reason: str) -> None:
    super().__init__("cannot read asset", resource=path, provider_message=reason)
    self.path = path
    self.reason = reason


def error_code(error: ClientError) -> str:
  return str(error.response.get("Error", {}).get("Code", ""))


def from_client_error(
  error: ClientError,
  *,
  resource: str,
  domain: str | None = None,
) -> ProvisioningError:
  """Convert a botocore ClientError into the provisioning taxonomy."""
  code = error_code(error)
  provider_message = error.response.get("Error", {}).get("Message") or str(error)
  operation = getattr(error, "operation_name", "") or "request"
  if code in TRANSIENT_ERROR_CODES:
    return TransientProviderError(
      f"{operation} throttled or temporarily unavailable ({code})",
      resource=resource,
      domain=domain,
      provider_message=provider_message,
    )
  return ProviderError(
    f"{operation} failed ({code or 'unknown'})",
    resource=resource,
    domain=domain,
    provider_message=provider_message,
  )
