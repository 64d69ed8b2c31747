"""Lambda functions running handlers from the site_runtime package."""

from pathlib import Path

from aws_cdk import Duration, Size
from aws_cdk import aws_lambda as lambda_
from constructs import Construct

# Shipped as-is: site_runtime only needs boto3, which the Lambda runtime provides.
RUNTIME_SOURCE_DIR = Path(__file__).resolve().parent.parent.parent / "src"


def runtime_function(
  scope: Construct,
  id: str,
  *,
  handler: str,
  description: str,
  timeout: Duration,
  memory_size: int = 256,
  ephemeral_storage: Size | None = None,
) -> lambda_.Function:
  """Create a Python Lambda whose code is the src/ directory."""
  return lambda_.Function(
    scope,
    id,
    runtime=lambda_.Runtime.PYTHON_3_12,
    handler=handler,
    code=lambda_.Code.from_asset(
      str(RUNTIME_SOURCE_DIR),
      exclude=["**/__pycache__", "**/*.pyc", "*.egg-info"],
    ),
    description=description,
    timeout=timeout,
    memory_size=memory_size,
    ephemeral_storage_size=ephemeral_storage,
  )
