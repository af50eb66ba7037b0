"""HTTP access: retry policy and the resilient fetch client."""

from .fetch_client import ResilientFetchClient
from .retry import NonRetryableError, RetryableError, RetryConfig, with_retry

__all__ = ["ResilientFetchClient", "NonRetryableError", "RetryableError", "RetryConfig", "with_retry"]
