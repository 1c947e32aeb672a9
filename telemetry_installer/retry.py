# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/retry.py
# Author: Elven Observability
# Details of functionality of this file: Single bounded-retry combinator with fixed delay used by fetcher, registrar and health verifier

"""
Bounded retry with a fixed inter-attempt delay.

No adaptive backoff and no cancellation: the operation runs at most
`max_attempts` times and the delay is slept only between attempts.
"""

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def with_retry(operation: Callable[[int], T],
               max_attempts: int,
               delay: float,
               retry_on: Tuple[Type[BaseException], ...] = (Exception,),
               sleep: Callable[[float], None] = time.sleep,
               describe: Optional[str] = None) -> T:
    """
    Run `operation(attempt)` until it succeeds or attempts are exhausted.

    Args:
        operation: Callable receiving the 1-based attempt number
        max_attempts: Upper bound on calls (>= 1)
        delay: Seconds to sleep between failed attempts
        retry_on: Exception types that count as a failed attempt; anything else propagates at once
        sleep: Sleep function (injectable for tests)
        describe: Label used in log lines

    Returns:
        Return value of the first successful attempt

    Raises:
        The last exception raised once `max_attempts` attempts have failed
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    label = describe or getattr(operation, '__name__', 'operation')
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return operation(attempt)
        except retry_on as e:
            last_error = e
            logger.warning(f"{label}: attempt {attempt} of {max_attempts} failed: {e}")
            if attempt < max_attempts:
                sleep(delay)

    logger.error(f"{label}: giving up after {max_attempts} attempts")
    raise last_error
