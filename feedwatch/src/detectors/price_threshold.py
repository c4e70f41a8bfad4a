"""Price threshold detector: above / below / cross alerts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..errors import DetectorConfigError
from ..FeedReader import FeedSnapshot, timestamp_to_iso
from ..ScaledDecimal import ScaledDecimal
from .base import BaseDetector, DetectorResult, decimal_param, register_detector, resolve_feed_address

if TYPE_CHECKING:
    from ..FeedReader import FeedReader
    from ..LedgerClient import LedgerClient

logger = logging.getLogger(__name__)

THRESHOLD_TYPES = ("above", "below", "cross")


@register_detector
class PriceThresholdDetector(BaseDetector):
    """Emits ``priceThreshold`` when the price reaches a configured level.

    - ``above`` / ``below``: edge-triggered. The ``was_triggered`` latch stays
      set while the condition holds, so one excursion emits one event.
    - ``cross``: compares the previously observed price with the current one
      and fires on a crossing in either direction.

    The first poll only records the price and latch.

    :ivar feed_address: Aggregator address.
    :ivar threshold_type: One of ``above``, ``below``, ``cross``.
    :ivar threshold_price: Threshold level.
    """

    event = "priceThreshold"
    PARAMS = frozenset({"feed", "feed_address", "threshold_type", "threshold_price"})

    def __init__(
        self,
        feed_address: str,
        threshold_type: str,
        threshold_price: ScaledDecimal,
        network: str = "custom",
    ) -> None:
        if threshold_type not in THRESHOLD_TYPES:
            raise DetectorConfigError(
                f"threshold_type must be one of {THRESHOLD_TYPES}, got {threshold_type!r}"
            )
        super().__init__(network)
        self.feed_address = feed_address
        self.threshold_type = threshold_type
        self.threshold_price = threshold_price

    @classmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> PriceThresholdDetector:
        cls.check_params(params)
        return cls(
            feed_address=resolve_feed_address(params, network),
            threshold_type=str(params.get("threshold_type", "above")).lower(),
            threshold_price=decimal_param(params, "threshold_price"),
            network=network,
        )

    def observe(self, ledger: LedgerClient, reader: FeedReader, cursor: Mapping[str, Any]) -> FeedSnapshot:
        return reader.latest(self.feed_address)

    def _check(self, current: ScaledDecimal, cursor: Mapping[str, Any]) -> tuple[str | None, bool | None]:
        """Return (trigger reason or None, new latch value or None to keep)."""
        threshold = self.threshold_price
        seeded = "last_price" in cursor

        if self.threshold_type == "above":
            active = current > threshold
            fire = seeded and active and not cursor.get("was_triggered", False)
            return (f"Price {current} is above threshold {threshold}" if fire else None), active

        if self.threshold_type == "below":
            active = current < threshold
            fire = seeded and active and not cursor.get("was_triggered", False)
            return (f"Price {current} is below threshold {threshold}" if fire else None), active

        if not seeded:
            return None, None
        previous = ScaledDecimal.from_string(cursor["last_price"])
        if previous <= threshold < current:
            return f"Price crossed above {threshold}", None
        if previous >= threshold > current:
            return f"Price crossed below {threshold}", None
        return None, None

    def evaluate(self, observation: FeedSnapshot, cursor: Mapping[str, Any], now: int) -> DetectorResult:
        rnd = observation.round
        if not rnd.is_answered:
            logger.debug(f"{self.feed_address}: round {rnd.round_id} not answered yet")
            return DetectorResult([], dict(cursor))

        current = rnd.price
        reason, latch = self._check(current, cursor)

        next_cursor = {**cursor, "last_price": str(current)}
        if latch is not None:
            next_cursor["was_triggered"] = latch

        if reason is None:
            return DetectorResult([], next_cursor)

        logger.info(f"{observation.description}: {reason}")
        event = self.make_event(
            now,
            pair=observation.description,
            currentPrice=str(current),
            thresholdPrice=str(self.threshold_price),
            thresholdType=self.threshold_type,
            triggerReason=reason,
            roundId=str(rnd.round_id),
            updatedAt=timestamp_to_iso(rnd.updated_at),
            feedAddress=self.feed_address,
        )
        return DetectorResult([event], next_cursor)
