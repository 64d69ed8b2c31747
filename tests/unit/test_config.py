"""Tests for the configuration loader."""

import tempfile
from pathlib import Path

import aws_cdk as cdk
import pytest
from site_runtime.errors import ConfigurationError

from infrastructure.app import load_config
from infrastructure.config import (
  DEFAULT_TAGS,
  Config,
  DistributionSettings,
  ErrorResponseRule,
  SiteConfig,
  resolve_error_response,
)


def _load(yaml_content: str) -> Config:
  with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
    f.write(yaml_content)
    f.flush()

    return Config.from_yaml(Path(f.name))


class TestSiteConfig:
  """Test SiteConfig dataclass."""

  def test_default_values(self) -> None:
    """Verify default values are set correctly."""
    config = SiteConfig(domain_name="example.com", website_bucket_name="example-com-site")

    assert config.asset_dir == "dist"
    assert config.hosted_zone_id is None
    assert config.region == "us-east-1"
    assert config.force_destroy is True
    assert config.certificate_validation_timeout == 780
    assert config.tags == DEFAULT_TAGS

  def test_distribution_defaults(self) -> None:
    """Verify the distribution defaults serve a single-page app."""
    settings = DistributionSettings()

    assert settings.cache_behavior.allowed_methods == ("GET", "HEAD", "OPTIONS")
    assert (settings.cache_behavior.min_ttl, settings.cache_behavior.default_ttl, settings.cache_behavior.max_ttl) == (
      0,
      3600,
      86400,
    )
    assert settings.geo_restriction.locations == ("US", "VI", "PR")
    assert settings.price_class == "PriceClass_100"
    assert settings.minimum_protocol_version == "TLSv1.2_2021"

  def test_validate_normalizes_domain(self) -> None:
    config = SiteConfig(domain_name="Example.COM.", website_bucket_name="example-com-site")
    config.validate()
    assert config.domain_name == "example.com"

  def test_validation_timeout_bounds(self) -> None:
    config = SiteConfig(
      domain_name="example.com",
      website_bucket_name="example-com-site",
      certificate_validation_timeout=3600,
    )
    with pytest.raises(ConfigurationError, match="certificate_validation_timeout"):
      config.validate()


class TestErrorResponses:
  """Test origin error rewriting."""

  def test_missing_objects_serve_index(self) -> None:
    """Verify 403 and 404 become index.html with 200."""
    rules = DistributionSettings().error_responses

    assert resolve_error_response(rules, 403) == (200, "/index.html")
    assert resolve_error_response(rules, 404) == (200, "/index.html")

  def test_other_errors_pass_through(self) -> None:
    assert resolve_error_response(DistributionSettings().error_responses, 500) == (500, None)

  def test_relative_page_path_is_rejected(self) -> None:
    settings = DistributionSettings(error_responses=(ErrorResponseRule(error_code=404, response_page_path="index.html"),))
    with pytest.raises(ConfigurationError):
      settings.validate()

  @pytest.mark.parametrize(
    "rules",
    [
      (ErrorResponseRule(error_code=403), ErrorResponseRule(error_code=404, response_code=404, response_page_path="/404.html")),
      (ErrorResponseRule(error_code=404),),
      (),
    ],
  )
  def test_spa_fallback_cannot_be_replaced(self, rules: tuple[ErrorResponseRule, ...]) -> None:
    """Verify 403 and 404 must keep serving index.html with 200."""
    with pytest.raises(ConfigurationError, match="must be served as /index.html"):
      DistributionSettings(error_responses=rules).validate()

  def test_extra_error_rules_are_allowed(self) -> None:
    rules = DistributionSettings().error_responses + (
      ErrorResponseRule(error_code=500, response_code=500, response_page_path="/500.html"),
    )
    DistributionSettings(error_responses=rules).validate()


class TestConfigFromYaml:
  """Test Config.from_yaml loading."""

  def test_load_simple_config(self) -> None:
    """Test loading a simple configuration."""
    config = _load(
      """
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
"""
    )

    assert len(config.sites) == 1
    assert config.sites[0].domain_name == "example.com"
    assert config.sites[0].website_bucket_name == "example-com-site"
    assert config.profile is None

  def test_load_with_defaults(self) -> None:
    """Test loading configuration with defaults."""
    config = _load(
      """
defaults:
  asset_dir: build
  force_destroy: false
  tags:
    Owner: web

sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
"""
    )

    site = config.sites[0]
    assert site.asset_dir == "build"
    assert site.force_destroy is False
    assert site.tags == {**DEFAULT_TAGS, "Owner": "web"}

  def test_site_overrides_defaults(self) -> None:
    """Test that site-specific config overrides defaults."""
    config = _load(
      """
defaults:
  asset_dir: build

sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
    asset_dir: public
    hosted_zone_id: Z123
"""
    )

    assert config.sites[0].asset_dir == "public"
    assert config.sites[0].hosted_zone_id == "Z123"

  def test_distribution_settings(self) -> None:
    config = _load(
      """
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
    distribution:
      price_class: PriceClass_All
      cache_behavior:
        default_ttl: 60
      geo_restriction:
        locations: [US, CA]
      error_responses:
        - error_code: 403
        - error_code: 404
        - error_code: 500
          response_code: 500
          response_page_path: /500.html
"""
    )

    settings = config.sites[0].distribution
    assert settings.price_class == "PriceClass_All"
    assert settings.cache_behavior.default_ttl == 60
    assert settings.cache_behavior.max_ttl == 86400
    assert settings.geo_restriction.locations == ("US", "CA")
    assert resolve_error_response(settings.error_responses, 404) == (200, "/index.html")
    assert resolve_error_response(settings.error_responses, 403) == (200, "/index.html")
    assert resolve_error_response(settings.error_responses, 500) == (500, "/500.html")

  @pytest.mark.parametrize(
    ("distribution", "message"),
    [
      ("geo_restriction: {mode: blacklist}", "allow-list"),
      ("minimum_protocol_version: TLSv1", "legacy TLS"),
      ("price_class: PriceClass_Cheap", "price class"),
      ("cache_behavior: {min_ttl: 100, default_ttl: 10}", "TTL"),
    ],
  )
  def test_invalid_distribution_settings(self, distribution: str, message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
      _load(
        f"""
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
    distribution: {{{distribution}}}
"""
      )

  def test_missing_required_settings(self) -> None:
    """Verify both names are required before anything is provisioned."""
    with pytest.raises(ConfigurationError, match="website_bucket_name"):
      _load(
        """
sites:
  - domain_name: example.com
"""
      )

  def test_invalid_bucket_name(self) -> None:
    with pytest.raises(ConfigurationError, match="invalid S3 bucket name"):
      _load(
        """
sites:
  - domain_name: example.com
    website_bucket_name: Example_Site
"""
      )

  def test_duplicate_domains(self) -> None:
    with pytest.raises(ConfigurationError, match="more than once"):
      _load(
        """
sites:
  - domain_name: example.com
    website_bucket_name: site-one
  - domain_name: Example.com
    website_bucket_name: site-two
"""
      )

  def test_missing_file(self, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="cannot read configuration"):
      Config.from_yaml(tmp_path / "missing.yaml")

  def test_not_found_page_override_is_rejected(self) -> None:
    """Verify YAML cannot turn the 404 fallback into a 404 page."""
    with pytest.raises(ConfigurationError, match="origin status 404"):
      _load(
        """
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
    distribution:
      error_responses:
        - error_code: 403
        - error_code: 404
          response_code: 404
          response_page_path: /404.html
"""
      )

  def test_empty_tags_keep_defaults(self) -> None:
    config = _load(
      """
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
    tags:
    distribution:
"""
    )
    assert config.sites[0].tags == DEFAULT_TAGS
    assert config.sites[0].distribution == DistributionSettings()

  @pytest.mark.parametrize(
    ("setting", "name"),
    [
      ("certificate_validation_timeout: soon", "certificate_validation_timeout"),
      ("distribution: {cache_behavior: {max_ttl: forever}}", "max_ttl"),
      ("distribution: {error_responses: [{response_code: 200}]}", "error_code"),
    ],
  )
  def test_non_integer_setting(self, setting: str, name: str) -> None:
    with pytest.raises(ConfigurationError, match=f"{name} must be an integer"):
      _load(
        f"""
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
    {setting}
"""
      )

  def test_malformed_yaml(self, tmp_path: Path) -> None:
    """Verify parser errors surface as configuration errors with the file name."""
    path = tmp_path / "sites.yaml"
    path.write_text("sites:\n  - domain_name: [example.com\n")

    with pytest.raises(ConfigurationError, match="invalid configuration") as excinfo:
      Config.from_yaml(path)

    assert excinfo.value.resource == str(path)

  def test_top_level_list_is_rejected(self, tmp_path: Path) -> None:
    path = tmp_path / "sites.yaml"
    path.write_text("- example.com\n")

    with pytest.raises(ConfigurationError, match="mapping"):
      Config.from_yaml(path)

  def test_profile_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_PROFILE", "site-admin")
    config = _load(
      """
sites:
  - domain_name: example.com
    website_bucket_name: example-com-site
"""
    )
    assert config.profile == "site-admin"


class TestConfigFromContext:
  """Test single-site configuration from CDK context."""

  def test_no_context(self) -> None:
    assert Config.from_context(cdk.App().node.try_get_context) is None

  def test_context_site(self) -> None:
    app = cdk.App(
      context={
        "domainName": "example.com",
        "websiteBucketName": "example-com-site",
        "assetDir": "public",
      }
    )

    config = load_config(app)

    assert len(config.sites) == 1
    assert config.sites[0].domain_name == "example.com"
    assert config.sites[0].asset_dir == "public"

  def test_context_requires_bucket(self) -> None:
    app = cdk.App(context={"domainName": "example.com"})
    with pytest.raises(ConfigurationError, match="website_bucket_name"):
      load_config(app)

  def test_yaml_path_from_context(self, tmp_path: Path) -> None:
    path = tmp_path / "sites.yaml"
    path.write_text("sites:\n  - domain_name: example.com\n    website_bucket_name: example-com-site\n")

    config = load_config(cdk.App(context={"config": str(path)}))

    assert config.sites[0].website_bucket_name == "example-com-site"
