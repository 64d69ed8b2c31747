"""Domain name and bucket name helpers.

Pure functions; no AWS calls.
"""

import re

from .errors import ConfigurationError

_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_BUCKET_NAME = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_IP_ADDRESS = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def normalize_domain(domain: str) -> str:
  """Lower-case a domain and drop the trailing root dot."""
  return domain.strip().lower().rstrip(".")


def ensure_trailing_dot(domain: str) -> str:
  """Return domain with a single trailing dot, as Route 53 reports names."""
  return domain if domain.endswith(".") else f"{domain}."


def validate_domain_name(domain: str | None) -> str:
  """Return the normalized FQDN or raise ConfigurationError."""
  if not domain or not domain.strip():
    raise ConfigurationError("domain name is required")
  name = normalize_domain(domain)
  labels = name.split(".")
  if len(name) > 253 or len(labels) < 2:
    raise ConfigurationError("domain name must be a fully-qualified name", domain=domain)
  if not all(_LABEL.match(label) for label in labels):
    raise ConfigurationError("domain name contains an invalid label", domain=domain)
  if labels[-1].isdigit():
    raise ConfigurationError("domain name must not end in a numeric label", domain=domain)
  return name


def validate_bucket_name(bucket_name: str | None) -> str:
  """Return the bucket name or raise ConfigurationError (S3 naming rules)."""
  if not bucket_name or not bucket_name.strip():
    raise ConfigurationError("website bucket name is required")
  name = bucket_name.strip()
  if (
    not _BUCKET_NAME.match(name)
    or ".." in name
    or _IP_ADDRESS.match(name)
    or name.startswith("xn--")
    or name.endswith("-s3alias")
  ):
    raise ConfigurationError("invalid S3 bucket name", resource=bucket_name)
  return name


def zone_candidates(domain: str) -> list[str]:
  """List the zone names that may hold records for a domain, nearest first.

  'app.example.com' -> ['app.example.com', 'example.com']. The bare top-level
  label is never a candidate.
  """
  labels = normalize_domain(domain).split(".")
  return [".".join(labels[i:]) for i in range(len(labels) - 1)]
