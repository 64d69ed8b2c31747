"""Configuration loader for static site provisioning."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from site_runtime.certificates import DEFAULT_VALIDATION_TIMEOUT
from site_runtime.domains import validate_bucket_name, validate_domain_name
from site_runtime.errors import ConfigurationError

# Applied to every taggable resource of every site.
DEFAULT_TAGS: dict[str, str] = {
  "ManagedBy": "cdk",
  "Project": "static-site",
}

PRICE_CLASSES = ("PriceClass_100", "PriceClass_200", "PriceClass_All")

# CloudFront security policies without legacy protocol fallback.
MODERN_TLS_POLICIES = ("TLSv1.2_2018", "TLSv1.2_2019", "TLSv1.2_2021")

# The certificate custom resource Lambda runs at most 15 minutes.
MAX_VALIDATION_TIMEOUT = 840

# Origin statuses that must fall back to the single-page app entry point.
SPA_FALLBACK_STATUSES = (403, 404)
SPA_FALLBACK = (200, "/index.html")


@dataclass(frozen=True)
class CacheBehaviorSettings:
  """Default cache behavior of the distribution."""

  allowed_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
  cached_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
  min_ttl: int = 0
  default_ttl: int = 3600
  max_ttl: int = 86400
  compress: bool = True
  forward_query_string: bool = False
  forward_cookies: str = "none"


@dataclass(frozen=True)
class ErrorResponseRule:
  """Rewrite an origin error status to a page and response code."""

  error_code: int
  response_code: int = 200
  response_page_path: str = "/index.html"


@dataclass(frozen=True)
class GeoRestrictionSettings:
  """Edge-level allow-list of country codes."""

  mode: str = "whitelist"
  locations: tuple[str, ...] = ("US", "VI", "PR")


@dataclass(frozen=True)
class DistributionSettings:
  """CloudFront distribution settings for a site."""

  cache_behavior: CacheBehaviorSettings = field(default_factory=CacheBehaviorSettings)
  error_responses: tuple[ErrorResponseRule, ...] = (
    ErrorResponseRule(error_code=403),
    ErrorResponseRule(error_code=404),
  )
  geo_restriction: GeoRestrictionSettings = field(default_factory=GeoRestrictionSettings)
  price_class: str = "PriceClass_100"
  minimum_protocol_version: str = "TLSv1.2_2021"
  default_root_object: str = "index.html"

  def validate(self) -> None:
    cache = self.cache_behavior
    if not 0 <= cache.min_ttl <= cache.default_ttl <= cache.max_ttl:
      raise ConfigurationError("cache TTLs must satisfy 0 <= min <= default <= max")
    if self.geo_restriction.mode != "whitelist":
      raise ConfigurationError("geo restriction must be an allow-list (mode: whitelist)")
    if not self.geo_restriction.locations:
      raise ConfigurationError("geo restriction allow-list must not be empty")
    if self.price_class not in PRICE_CLASSES:
      raise ConfigurationError(f"unknown price class {self.price_class!r}")
    if self.minimum_protocol_version not in MODERN_TLS_POLICIES:
      raise ConfigurationError(
        f"minimum protocol version {self.minimum_protocol_version!r} allows legacy TLS"
      )
    for rule in self.error_responses:
      if not rule.response_page_path.startswith("/"):
        raise ConfigurationError(f"error response path for {rule.error_code} must start with '/'")
    for status in SPA_FALLBACK_STATUSES:
      if resolve_error_response(self.error_responses, status) != SPA_FALLBACK:
        raise ConfigurationError(f"origin status {status} must be served as /index.html with status 200")


def resolve_error_response(
  rules: tuple[ErrorResponseRule, ...],
  status: int,
) -> tuple[int, str | None]:
  """Status code and page a viewer receives when the origin answers status.

  Returns (status, None) when no rule applies and the origin response passes
  through unchanged.
  """
  for rule in rules:
    if rule.error_code == status:
      return rule.response_code, rule.response_page_path
  return status, None


@dataclass
class SiteConfig:
  """Configuration for a single static site."""

  domain_name: str
  website_bucket_name: str
  asset_dir: str = "dist"
  hosted_zone_id: str | None = None
  region: str = "us-east-1"
  force_destroy: bool = True
  certificate_validation_timeout: int = int(DEFAULT_VALIDATION_TIMEOUT)
  tags: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TAGS))
  distribution: DistributionSettings = field(default_factory=DistributionSettings)

  def validate(self) -> None:
    """Normalize names and reject invalid settings."""
    self.domain_name = validate_domain_name(self.domain_name)
    self.website_bucket_name = validate_bucket_name(self.website_bucket_name)
    if not 60 <= self.certificate_validation_timeout <= MAX_VALIDATION_TIMEOUT:
      raise ConfigurationError(
        f"certificate_validation_timeout must be between 60 and {MAX_VALIDATION_TIMEOUT} seconds",
        domain=self.domain_name,
      )
    self.distribution.validate()


def _int(value: Any, name: str) -> int:
  try:
    return int(value)
  except (TypeError, ValueError) as e:
    raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _distribution_settings(data: dict[str, Any]) -> DistributionSettings:
  defaults = DistributionSettings()
  cache_data = data.get("cache_behavior") or {}
  cache = CacheBehaviorSettings(
    min_ttl=_int(cache_data.get("min_ttl", defaults.cache_behavior.min_ttl), "min_ttl"),
    default_ttl=_int(cache_data.get("default_ttl", defaults.cache_behavior.default_ttl), "default_ttl"),
    max_ttl=_int(cache_data.get("max_ttl", defaults.cache_behavior.max_ttl), "max_ttl"),
    compress=bool(cache_data.get("compress", defaults.cache_behavior.compress)),
  )
  geo_data = data.get("geo_restriction") or {}
  geo = GeoRestrictionSettings(
    mode=geo_data.get("mode", defaults.geo_restriction.mode),
    locations=tuple(geo_data.get("locations", defaults.geo_restriction.locations)),
  )
  error_responses = defaults.error_responses
  if "error_responses" in data:
    error_responses = tuple(
      ErrorResponseRule(
        error_code=_int(rule.get("error_code"), "error_code"),
        response_code=_int(rule.get("response_code", 200), "response_code"),
        response_page_path=rule.get("response_page_path", "/index.html"),
      )
      for rule in data["error_responses"]
    )
  return DistributionSettings(
    cache_behavior=cache,
    error_responses=error_responses,
    geo_restriction=geo,
    price_class=data.get("price_class", defaults.price_class),
    minimum_protocol_version=data.get("minimum_protocol_version", defaults.minimum_protocol_version),
  )


def _site_from_dict(merged: dict[str, Any]) -> SiteConfig:
  missing = [key for key in ("domain_name", "website_bucket_name") if not merged.get(key)]
  if missing:
    raise ConfigurationError(f"site is missing required setting(s): {', '.join(missing)}")

  site = SiteConfig(
    domain_name=merged["domain_name"],
    website_bucket_name=merged["website_bucket_name"],
    asset_dir=merged.get("asset_dir", "dist"),
    hosted_zone_id=merged.get("hosted_zone_id"),
    region=merged.get("region", "us-east-1"),
    force_destroy=merged.get("force_destroy", True),
    certificate_validation_timeout=_int(
      merged.get("certificate_validation_timeout", DEFAULT_VALIDATION_TIMEOUT), "certificate_validation_timeout"
    ),
    tags={**DEFAULT_TAGS, **(merged.get("tags") or {})},
    distribution=_distribution_settings(merged.get("distribution") or {}),
  )
  site.validate()
  return site


@dataclass
class Config:
  """Multi-site configuration."""

  sites: list[SiteConfig] = field(default_factory=list)
  profile: str | None = None

  @classmethod
  def from_yaml(cls, path: Path | str = "sites.yaml") -> "Config":
    """Load configuration from YAML file."""
    try:
      with open(path) as f:
        data = yaml.safe_load(f) or {}
    except OSError as e:
      raise ConfigurationError("cannot read configuration", resource=str(path), provider_message=str(e)) from e
    except yaml.YAMLError as e:
      raise ConfigurationError("invalid configuration", resource=str(path), provider_message=str(e)) from e

    if not isinstance(data, dict):
      raise ConfigurationError("configuration must be a mapping", resource=str(path))
    defaults = data.get("defaults") or {}
    sites: list[SiteConfig] = []
    for site_data in data.get("sites") or []:
      # Merge defaults with site-specific config
      sites.append(_site_from_dict({**defaults, **site_data}))

    domains = [site.domain_name for site in sites]
    duplicates = sorted({domain for domain in domains if domains.count(domain) > 1})
    if duplicates:
      raise ConfigurationError(f"domain configured more than once: {', '.join(duplicates)}")

    return cls(sites=sites, profile=os.environ.get("AWS_PROFILE"))

  @classmethod
  def from_context(cls, get_context: Any) -> "Config | None":
    """Single-site configuration from CDK context, or None when not given.

    Reads -c domainName=... -c websiteBucketName=... (and optional assetDir,
    hostedZoneId) through get_context, typically app.node.try_get_context.
    """
    domain_name = get_context("domainName")
    bucket_name = get_context("websiteBucketName")
    if domain_name is None and bucket_name is None:
      return None
    site = _site_from_dict(
      {
        "domain_name": domain_name,
        "website_bucket_name": bucket_name,
        "asset_dir": get_context("assetDir") or "dist",
        "hosted_zone_id": get_context("hostedZoneId"),
      }
    )
    return cls(sites=[site], profile=os.environ.get("AWS_PROFILE"))
