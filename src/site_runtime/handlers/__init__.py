"""CloudFormation custom resource handlers (CDK provider framework)."""
