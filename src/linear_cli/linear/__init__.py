"""Linear GraphQL API access."""

from linear_cli.linear.client import LinearClient

__all__ = ["LinearClient"]
