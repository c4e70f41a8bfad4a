"""L2 sequencer uptime detector."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..errors import DetectorConfigError
from ..FeedReader import RoundSnapshot, timestamp_to_iso
from ..networks import SEQUENCER_FEEDS
from .base import BaseDetector, DetectorResult, address_param, register_detector

if TYPE_CHECKING:
    from ..FeedReader import FeedReader
    from ..LedgerClient import LedgerClient

logger = logging.getLogger(__name__)

# Consumers typically wait this long after the sequencer comes back up.
GRACE_PERIOD_SECONDS = 3600


def grace_period_info(is_up: bool, started_at: int, now: int) -> dict[str, Any]:
    """Grace-period fields shared by the sequencer detector and status action."""
    duration = max(0, now - started_at)
    within = is_up and duration < GRACE_PERIOD_SECONDS
    return {
        "stateDurationSeconds": duration,
        "isWithinGracePeriod": within,
        "gracePeriodSeconds": GRACE_PERIOD_SECONDS,
        "gracePeriodRemainingSeconds": GRACE_PERIOD_SECONDS - duration if within else 0,
    }


@register_detector
class SequencerChangeDetector(BaseDetector):
    """Emits ``sequencerChange`` when the uptime feed flips between up and down.

    An answer of 0 means up; anything else means down.
    """

    event = "sequencerChange"
    PARAMS = frozenset({"sequencer_feed_address"})

    def __init__(self, feed_address: str, network: str = "custom") -> None:
        super().__init__(network)
        self.feed_address = feed_address

    @classmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> SequencerChangeDetector:
        cls.check_params(params)
        if params.get("sequencer_feed_address"):
            return cls(address_param(params, "sequencer_feed_address"), network=network)
        address = SEQUENCER_FEEDS.get(network)
        if not address:
            raise DetectorConfigError(f"L2 sequencer feed not available on {network}")
        return cls(address, network=network)

    def observe(self, ledger: LedgerClient, reader: FeedReader, cursor: Mapping[str, Any]) -> RoundSnapshot:
        return RoundSnapshot.from_raw(ledger.read_latest_round(self.feed_address), 0)

    def evaluate(self, observation: RoundSnapshot, cursor: Mapping[str, Any], now: int) -> DetectorResult:
        is_up = observation.answer == 0
        previous = cursor.get("last_status")
        next_cursor = {**cursor, "last_status": is_up}

        if previous is None or previous == is_up:
            return DetectorResult([], next_cursor)

        status = "UP" if is_up else "DOWN"
        if is_up:
            logger.info(f"Sequencer {self.feed_address} is back UP")
        else:
            logger.warning(f"Sequencer {self.feed_address} is DOWN")

        event = self.make_event(
            now,
            isSequencerUp=is_up,
            previousStatus="UP" if previous else "DOWN",
            currentStatus=status,
            statusCode=observation.answer,
            stateStartedAt=timestamp_to_iso(observation.started_at),
            **grace_period_info(is_up, observation.started_at, now),
            feedAddress=self.feed_address,
            alert=(
                "Sequencer is back online. Grace period may be in effect."
                if is_up
                else "CRITICAL: Sequencer is down. Price feeds may be stale."
            ),
        )
        return DetectorResult([event], next_cursor)
