"""PollBackoff: Per-subscription failure tracking with exponential backoff.

A subscription whose poll fails (RPC error, revert, malformed round) is held
out of the next cycles for a while. Each consecutive failure doubles the
delay until it hits the cap; one good poll clears it.

.. code-block:: python

    >>> backoff = PollBackoff()
    >>> backoff.is_due("eth-usd")
    True
    >>> backoff.record_failure("eth-usd")
    5.0
    >>> backoff.record_failure("eth-usd")
    10.0
    >>> backoff.record_success("eth-usd")
    >>> backoff.get_status("eth-usd").consecutive_failures
    0
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class PollStatus:
    """Poll health of one subscription.

    :ivar consecutive_failures: Failed polls since the last good one.
    :ivar backoff_until: Wall-clock time before which the subscription is skipped.
    :ivar total_failures: Failed polls over the process lifetime.
    :ivar total_successes: Good polls over the process lifetime.
    """

    consecutive_failures: int = 0
    backoff_until: float = 0.0
    total_failures: int = 0
    total_successes: int = 0


class PollBackoff:
    """Backoff bookkeeping keyed by subscription name.

    The delay after the n-th consecutive failure is
    ``base_backoff_seconds * 2**(n - 1)``, never more than
    ``max_backoff_seconds``. Subscriptions never seen are always due.

    :ivar base_backoff_seconds: Delay after a first failure.
    :ivar max_backoff_seconds: Upper bound on the delay.
    """

    DEFAULT_BASE_BACKOFF_SECONDS = 5
    DEFAULT_MAX_BACKOFF_SECONDS = 300

    def __init__(
        self,
        base_backoff_seconds: float = DEFAULT_BASE_BACKOFF_SECONDS,
        max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS,
    ) -> None:
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._status: dict[str, PollStatus] = {}

    def record_failure(self, name: str) -> float:
        """Count a failed poll and push the subscription's next poll back.

        :param name: Subscription name.
        :returns: Delay applied, in seconds.
        """
        status = self._status.setdefault(name, PollStatus())
        status.consecutive_failures += 1
        status.total_failures += 1

        exponent = status.consecutive_failures - 1
        delay = float(min(self.base_backoff_seconds * 2**exponent, self.max_backoff_seconds))
        status.backoff_until = time.time() + delay
        return delay

    def record_success(self, name: str) -> None:
        """Count a good poll and clear any pending backoff."""
        status = self._status.setdefault(name, PollStatus())
        status.total_successes += 1
        status.consecutive_failures = 0
        status.backoff_until = 0.0

    def is_due(self, name: str) -> bool:
        """True unless the subscription is still backing off."""
        status = self._status.get(name)
        if status is None:
            return True
        return time.time() >= status.backoff_until

    def get_status(self, name: str) -> PollStatus | None:
        return self._status.get(name)

    def get_backoff_remaining(self, name: str) -> float:
        """Seconds until the subscription is due again (0 when already due)."""
        status = self._status.get(name)
        if status is None:
            return 0.0
        return max(0.0, status.backoff_until - time.time())
