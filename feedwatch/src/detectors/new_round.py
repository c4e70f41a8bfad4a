"""New round detector."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..FeedReader import FeedSnapshot, timestamp_to_iso
from .base import BaseDetector, DetectorResult, register_detector, resolve_feed_address

if TYPE_CHECKING:
    from ..FeedReader import FeedReader
    from ..LedgerClient import LedgerClient

logger = logging.getLogger(__name__)


@register_detector
class NewRoundDetector(BaseDetector):
    """Emits ``newRound`` whenever the full round id differs from the last one seen.

    Round ids are compared as full-precision strings, so a phase change
    counts as a new round even if the aggregator round id is lower.
    """

    event = "newRound"
    PARAMS = frozenset({"feed", "feed_address"})

    def __init__(self, feed_address: str, network: str = "custom") -> None:
        super().__init__(network)
        self.feed_address = feed_address

    @classmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> NewRoundDetector:
        cls.check_params(params)
        return cls(resolve_feed_address(params, network), network=network)

    def observe(self, ledger: LedgerClient, reader: FeedReader, cursor: Mapping[str, Any]) -> FeedSnapshot:
        return reader.latest(self.feed_address)

    def evaluate(self, observation: FeedSnapshot, cursor: Mapping[str, Any], now: int) -> DetectorResult:
        rnd = observation.round
        if not rnd.is_answered:
            return DetectorResult([], dict(cursor))

        round_id = str(rnd.round_id)
        previous = cursor.get("last_round_id")
        next_cursor = {**cursor, "last_round_id": round_id}

        if previous is None or previous == round_id:
            return DetectorResult([], next_cursor)

        logger.info(f"{observation.description}: new round {round_id} (was {previous})")
        event = self.make_event(
            now,
            pair=observation.description,
            price=str(rnd.price),
            roundId=round_id,
            previousRoundId=previous,
            phaseId=rnd.phase_id,
            aggregatorRoundId=str(rnd.aggregator_round_id),
            startedAt=timestamp_to_iso(rnd.started_at),
            updatedAt=timestamp_to_iso(rnd.updated_at),
            feedAddress=self.feed_address,
        )
        return DetectorResult([event], next_cursor)
