"""Price update detector: fires when a new round moves the price enough."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..errors import DivisionByZeroError
from ..FeedReader import FeedSnapshot, timestamp_to_iso
from ..ScaledDecimal import ScaledDecimal, derive_rate
from .base import BaseDetector, DetectorResult, decimal_param, register_detector, resolve_feed_address

if TYPE_CHECKING:
    from ..FeedReader import FeedReader
    from ..LedgerClient import LedgerClient

logger = logging.getLogger(__name__)

# Fractional digits of the reported changePercent.
CHANGE_PERCENT_DIGITS = 4


@register_detector
class PriceUpdateDetector(BaseDetector):
    """Emits ``priceUpdate`` when a new round changes the price by at least
    ``change_threshold`` percent relative to the previously observed price.

    Polls within the same round never emit.

    :ivar feed_address: Aggregator address.
    :ivar change_threshold: Minimum change in percent.
    """

    event = "priceUpdate"
    PARAMS = frozenset({"feed", "feed_address", "change_threshold"})

    def __init__(
        self,
        feed_address: str,
        change_threshold: ScaledDecimal = ScaledDecimal(1),
        network: str = "custom",
    ) -> None:
        super().__init__(network)
        self.feed_address = feed_address
        self.change_threshold = change_threshold

    @classmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> PriceUpdateDetector:
        cls.check_params(params)
        return cls(
            feed_address=resolve_feed_address(params, network),
            change_threshold=decimal_param(params, "change_threshold", "1"),
            network=network,
        )

    def observe(self, ledger: LedgerClient, reader: FeedReader, cursor: Mapping[str, Any]) -> FeedSnapshot:
        return reader.latest(self.feed_address)

    def evaluate(self, observation: FeedSnapshot, cursor: Mapping[str, Any], now: int) -> DetectorResult:
        rnd = observation.round
        if not rnd.is_answered:
            logger.debug(f"{self.feed_address}: round {rnd.round_id} not answered yet")
            return DetectorResult([], dict(cursor))

        current = rnd.price
        round_id = str(rnd.round_id)
        next_cursor = {**cursor, "last_price": str(current), "last_round_id": round_id}

        if "last_price" not in cursor or cursor.get("last_round_id") == round_id:
            return DetectorResult([], next_cursor)

        previous = ScaledDecimal.from_string(cursor["last_price"])
        delta = abs(current - previous)
        try:
            change_percent = derive_rate(
                delta.mantissa * 100,
                delta.scale,
                abs(previous.mantissa),
                previous.scale,
                CHANGE_PERCENT_DIGITS,
            )
        except DivisionByZeroError:
            logger.warning(
                f"{self.feed_address}: previous price is zero, skipping change check"
            )
            return DetectorResult([], next_cursor)

        # Exact comparison: |P - L| * 100 >= threshold * |L|
        if delta * 100 < self.change_threshold * abs(previous):
            return DetectorResult([], next_cursor)

        event = self.make_event(
            now,
            pair=observation.description,
            currentPrice=str(current),
            previousPrice=str(previous),
            changePercent=str(change_percent),
            direction="up" if current > previous else "down",
            roundId=round_id,
            updatedAt=timestamp_to_iso(rnd.updated_at),
            feedAddress=self.feed_address,
        )
        logger.info(
            f"{observation.description}: {previous} -> {current} ({change_percent}%)"
        )
        return DetectorResult([event], next_cursor)
