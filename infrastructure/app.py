#!/usr/bin/env python3
"""CDK application entry point for static website infrastructure."""

import sys
from pathlib import Path

# Add the project root and the runtime sources to the Python path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))
sys.path.insert(0, str(PROJECT_ROOT))

import aws_cdk as cdk  # noqa: E402
import boto3  # noqa: E402
from site_runtime.errors import ProvisioningError  # noqa: E402

from infrastructure.config import Config  # noqa: E402
from infrastructure.preflight import run_preflight  # noqa: E402
from infrastructure.stacks.site_stack import StaticSiteStack, stack_name_for  # noqa: E402


def get_account_id(session: boto3.Session) -> str:
  """Get AWS account ID from current credentials."""
  sts = session.client("sts")
  return str(sts.get_caller_identity()["Account"])


def load_config(app: cdk.App) -> Config:
  """Configuration from CDK context when given, else from the YAML file."""
  config = Config.from_context(app.node.try_get_context)
  if config is not None:
    return config
  config_path = app.node.try_get_context("config") or "sites.yaml"
  return Config.from_yaml(Path(config_path))


def main() -> None:
  """Create CDK app with a stack for each configured site."""
  app = cdk.App()

  try:
    config = load_config(app)
    session = boto3.Session(profile_name=config.profile)

    # Get account ID from credentials
    account_id = get_account_id(session)

    for site in config.sites:
      stack_name = stack_name_for(site.domain_name)
      hosted_zone = run_preflight(session, site, stack_name)
      StaticSiteStack(
        app,
        stack_name,
        site_config=site,
        hosted_zone=hosted_zone,
        base_dir=Path.cwd(),
        env=cdk.Environment(
          account=account_id,
          region=site.region,
        ),
        description=f"Static website infrastructure for {site.domain_name}",
      )
  except ProvisioningError as e:
    print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
    sys.exit(1)

  app.synth()


if __name__ == "__main__":
  main()
