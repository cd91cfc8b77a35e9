from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from franchisehub.core.errors import DependencyFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    max_retries: int = 3
    base_backoff_s: float = 0.2
    max_backoff_s: float = 2.0

    def backoff(self, attempt: int) -> float:
        return min(self.max_backoff_s, self.base_backoff_s * (2**attempt))


def retry_read(
    fn: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    op: str = "read",
) -> T:
    """
    Retry an idempotent read on DependencyFailureError with bounded exponential backoff.

    Never wrap writes with this helper: a retried write may duplicate side effects.
    """
    policy = policy or RetryPolicy()
    last_err: Optional[DependencyFailureError] = None
    for attempt in range(policy.max_retries + 1):
        try:
            return fn()
        except DependencyFailureError as e:
            last_err = e
            if attempt >= policy.max_retries:
                break
            backoff = policy.backoff(attempt)
            logger.warning(f"{op} failed ({e}); retry {attempt + 1}/{policy.max_retries} in {backoff:.2f}s")
            sleep(backoff)
    assert last_err is not None
    raise last_err
