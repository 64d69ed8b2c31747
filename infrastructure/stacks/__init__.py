"""CDK stacks for static website infrastructure."""

from .site_stack import StaticSiteStack, stack_name_for

__all__ = ["StaticSiteStack", "stack_name_for"]
