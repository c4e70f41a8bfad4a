"""FeedWatcher: Main loop polling subscriptions and delivering events.

Architecture:
    - One ledger client per process, shared by every subscription
    - Each cycle polls all due subscriptions concurrently in worker threads
    - A subscription is polled at most once per cycle; cycles never overlap
    - Failed polls leave the cursor untouched and put the subscription in
      exponential backoff
    - Events from a cycle are handed to every sink in subscription order
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .EventSink import EventSink, LogSink
from .FeedReader import FeedReader
from .LedgerClient import LedgerClient
from .PollBackoff import PollBackoff
from .Subscription import Subscription

logger = logging.getLogger(__name__)


class FeedWatcher:
    """Orchestrates periodic polling of subscriptions.

    :ivar ledger: Ledger client shared by all subscriptions.
    :ivar reader: Feed reader over the ledger client.
    :ivar subscriptions: Subscriptions to poll.
    :ivar sinks: Event sinks.
    :ivar poll_interval: Seconds between cycles.
    :ivar backoff: Per-subscription backoff tracker.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        subscriptions: list[Subscription],
        sinks: list[EventSink] | None = None,
        poll_interval: int = 60,
        backoff: PollBackoff | None = None,
    ) -> None:
        """Initialize the watcher.

        :param ledger: Ledger client.
        :param subscriptions: Subscriptions to poll.
        :param sinks: Event sinks (default: a single LogSink).
        :param poll_interval: Seconds between cycles (default: 60, minimum 1).
        :param backoff: Backoff tracker (default: 5 s doubling up to 300 s).
        :raises ValueError: If no subscriptions are given or names repeat.
        """
        if not subscriptions:
            raise ValueError("At least one subscription must be specified")
        names = [s.name for s in subscriptions]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate subscription names: {names}")

        self.ledger = ledger
        self.reader = FeedReader(ledger)
        self.subscriptions = subscriptions
        self.sinks = sinks if sinks is not None else [LogSink()]
        self.poll_interval = max(1, poll_interval)
        self.backoff = backoff or PollBackoff()

        logger.info(
            f"FeedWatcher initialized: network={ledger.network_name}, "
            f"subscriptions={[str(s.key) for s in subscriptions]}, "
            f"poll_interval={self.poll_interval}s"
        )

    async def poll_once(self) -> list[dict[str, Any]]:
        """Run one polling cycle.

        :returns: Events emitted in this cycle.
        """
        due = [s for s in self.subscriptions if self.backoff.is_due(s.name)]
        skipped = len(self.subscriptions) - len(due)
        if skipped:
            logger.debug(f"{skipped} subscriptions in backoff this cycle")
        if not due:
            return []

        results = await asyncio.gather(
            *(asyncio.to_thread(s.poll, self.ledger, self.reader) for s in due),
            return_exceptions=True,
        )

        events: list[dict[str, Any]] = []
        for subscription, result in zip(due, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                backoff = self.backoff.record_failure(subscription.name)
                logger.warning(
                    f"{subscription.name}: poll failed ({type(result).__name__}: {result}), "
                    f"backoff {backoff:.1f}s"
                )
                continue
            self.backoff.record_success(subscription.name)
            events.extend(result)

        if events:
            await self._deliver(events)
        return events

    async def _deliver(self, events: list[dict[str, Any]]) -> None:
        for sink in self.sinks:
            try:
                await asyncio.to_thread(sink.deliver, events)
            except (RuntimeError, OSError) as e:
                logger.error(f"{type(sink).__name__} failed to deliver {len(events)} events: {e}")

    async def run(self, max_cycles: int | None = None) -> None:
        """Poll forever (or for ``max_cycles`` cycles), sleeping between cycles."""
        logger.info(f"Starting watch loop for {len(self.subscriptions)} subscriptions")
        cycle = 0
        try:
            while max_cycles is None or cycle < max_cycles:
                events = await self.poll_once()
                cycle += 1
                logger.debug(f"Cycle {cycle}: {len(events)} events")
                if max_cycles is not None and cycle >= max_cycles:
                    break
                await asyncio.sleep(self.poll_interval)
        finally:
            for sink in self.sinks:
                sink.close()
