"""Bounded polling with exponential backoff."""

import logging
import time
from collections.abc import Callable, Iterator
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_delays(
  base_delay: float,
  max_delay: float,
  factor: float = 2.0,
) -> Iterator[float]:
  """Yield base_delay, base_delay * factor, ... capped at max_delay."""
  delay = base_delay
  while True:
    yield min(delay, max_delay)
    delay *= factor


def wait_until(
  check: Callable[[], T | None],
  *,
  timeout: float,
  max_attempts: int = 60,
  base_delay: float = 2.0,
  max_delay: float = 30.0,
  description: str = "condition",
  sleep: Callable[[float], None] = time.sleep,
  clock: Callable[[], float] = time.monotonic,
) -> T | None:
  """Call check until it returns a value, the deadline passes or attempts run out.

  Returns the first non-None result of check, or None when the wait gave up.
  Exceptions raised by check propagate immediately.
  """
  deadline = clock() + timeout
  delays = exponential_delays(base_delay, max_delay)
  for attempt in range(1, max_attempts + 1):
    result = check()
    if result is not None:
      return result
    remaining = deadline - clock()
    if remaining <= 0 or attempt == max_attempts:
      break
    delay = min(next(delays), remaining)
    logger.info(
      "Waiting for %s (attempt %d/%d, next check in %.1fs)",
      description,
      attempt,
      max_attempts,
      delay,
    )
    sleep(delay)
  return None
