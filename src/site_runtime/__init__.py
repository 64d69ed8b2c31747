"""Provider-facing runtime for static site provisioning.

Shipped as the Lambda code of the custom resources declared by the CDK app,
and used directly by the command-line scripts.
"""
