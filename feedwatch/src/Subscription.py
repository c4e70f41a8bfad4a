"""Subscription: One detector bound to its persisted cursor.

This module handles the per-subscription logic for:
- Reading the cursor from the state store
- Observing the ledger through the detector
- Evaluating the observation into events and the next cursor
- Writing the cursor back, only after the whole poll succeeded

Subscriptions are loaded from a JSON file holding a list of objects:

.. code-block:: json

    [
        {"name": "eth-usd-moves", "event": "priceUpdate", "feed": "ETH/USD", "change_threshold": 0.5},
        {"name": "arb-sequencer", "event": "sequencerChange"}
    ]
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from .detectors import DETECTOR_REGISTRY, BaseDetector, LogScanDetector, get_detector
from .errors import DetectorConfigError
from .PollState import StateStore, subscription_key

if TYPE_CHECKING:
    from .FeedReader import FeedReader
    from .LedgerClient import LedgerClient

logger = logging.getLogger(__name__)


class Subscription:
    """A named detector with its own cursor.

    :ivar name: Unique subscription name.
    :ivar detector: Detector evaluating each poll.
    :ivar store: State store holding the cursor.
    :ivar key: Store key of the cursor (``"<name>:<event>"``).
    """

    def __init__(self, name: str, detector: BaseDetector, store: StateStore) -> None:
        """Initialize the subscription.

        :param name: Unique subscription name.
        :param detector: Configured detector.
        :param store: State store shared by all subscriptions.
        """
        self.name = name
        self.detector = detector
        self.store = store
        self.key = subscription_key(name, detector.event)

    @property
    def event(self) -> str:
        return self.detector.event

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        store: StateStore,
        network: str,
        lookback_blocks: int | None = None,
    ) -> Subscription:
        """Build a subscription from one entry of the subscriptions file.

        :param config: Mapping with ``name``, ``event`` and detector parameters.
        :param store: State store.
        :param network: Network identifier used to resolve presets.
        :param lookback_blocks: Default lookback for log-scan events without one.
        :returns: Subscription.
        :raises DetectorConfigError: If the entry is invalid.
        """
        if not isinstance(config, Mapping):
            raise DetectorConfigError(f"Subscription entry must be an object, got {config!r}")
        params = dict(config)
        name = params.pop("name", None)
        event = params.pop("event", None)
        if not name or not event:
            raise DetectorConfigError(f"Subscription entry needs 'name' and 'event': {config!r}")

        detector_cls = DETECTOR_REGISTRY.get(event)
        if (
            lookback_blocks is not None
            and detector_cls is not None
            and issubclass(detector_cls, LogScanDetector)
        ):
            params.setdefault("lookback_blocks", lookback_blocks)

        try:
            detector = get_detector(event, params, network)
        except DetectorConfigError as e:
            raise DetectorConfigError(f"Subscription '{name}': {e}") from e
        return cls(str(name), detector, store)

    def poll(self, ledger: LedgerClient, reader: FeedReader, now: int | None = None) -> list[dict[str, Any]]:
        """Run one poll.

        The cursor is written exactly once, after observation and evaluation
        both succeeded. Any exception leaves the stored cursor untouched.

        :param ledger: Ledger client.
        :param reader: Feed reader over the same client.
        :param now: Current Unix time (default: wall clock).
        :returns: Emitted events, each tagged with the subscription name.
        """
        now = int(time.time()) if now is None else now
        cursor = self.store.get(self.key)
        observation = self.detector.observe(ledger, reader, cursor)
        result = self.detector.evaluate(observation, cursor, now)
        self.store.set(self.key, result.cursor)

        if result.events:
            logger.debug(f"{self.name}: {len(result.events)} events")
        return [{"subscription": self.name, **event} for event in result.events]

    def __repr__(self) -> str:
        return f"Subscription(name={self.name!r}, event={self.event!r})"


def load_subscriptions(
    path: str | Path,
    store: StateStore,
    network: str,
    lookback_blocks: int | None = None,
) -> list[Subscription]:
    """Load subscriptions from a JSON file.

    :param path: JSON file containing a list of subscription objects.
    :param store: State store shared by all subscriptions.
    :param network: Network identifier.
    :param lookback_blocks: Default lookback for log-scan events.
    :returns: Subscriptions in file order.
    :raises DetectorConfigError: If the file is malformed or names repeat.
    """
    with open(path, "r") as file:
        entries = json.load(file)
    if not isinstance(entries, list):
        raise DetectorConfigError(f"{path}: expected a JSON list of subscriptions")

    subscriptions = [
        Subscription.from_config(entry, store, network, lookback_blocks) for entry in entries
    ]
    names = [s.name for s in subscriptions]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise DetectorConfigError(f"{path}: duplicate subscription names {duplicates}")

    logger.info(f"Loaded {len(subscriptions)} subscriptions from {path}")
    return subscriptions
