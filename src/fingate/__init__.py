"""fingate: authenticated, resilient access to financial provider APIs."""

__version__ = "0.1.0"
