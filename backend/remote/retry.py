"""Reconnect policy for the command channel.

The channel does not retry by default; a policy can be passed in to
retry failed connection attempts with exponential backoff.
"""

from pydantic import BaseModel


class RetryPolicy(BaseModel):
    """Configurable retry policy with exponential backoff."""
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0

    def get_delay(self, attempt: int) -> float:
        """Delay in seconds before retry ``attempt`` (0 = first retry)."""
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)


def no_retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=0)


def default_retry_policy() -> RetryPolicy:
    """3 retries, 1s initial delay, 2x backoff, 30s max."""
    return RetryPolicy()
