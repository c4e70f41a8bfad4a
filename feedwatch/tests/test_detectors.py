"""Unit tests for the event detectors."""

import logging

import pytest

from feedwatch.src.detectors import (
    NewRoundDetector,
    PriceThresholdDetector,
    PriceUpdateDetector,
    SequencerChangeDetector,
    UpkeepPerformedDetector,
    VrfFulfilledDetector,
    get_available_detectors,
    get_detector,
)
from feedwatch.src.errors import DetectorConfigError
from feedwatch.src.FeedReader import FeedSnapshot, RoundSnapshot
from feedwatch.src.ScaledDecimal import ScaledDecimal

FEED = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"
COORDINATOR = "0x271682DEB8C4E0901D1a1550aD2e64D568E69909"
REGISTRY = "0x6593c7De001fC8542bB1703532EE1E5aA0D458fD"
SEQUENCER = "0xFdB631F5EE196F0ed6FAa767959853A9F217697D"

NOW = 1_700_000_000


def snap(price: str, round_id: int, updated_at: int = NOW - 60) -> FeedSnapshot:
    """Build an 8-decimal ETH / USD snapshot."""
    rnd = RoundSnapshot(
        round_id=round_id,
        answer=ScaledDecimal.from_string(price, 8).mantissa,
        decimals=8,
        started_at=updated_at,
        updated_at=updated_at,
        answered_in_round=round_id,
    )
    return FeedSnapshot(address=FEED, round=rnd, description="ETH / USD")


def sequencer_round(answer: int, started_at: int) -> RoundSnapshot:
    return RoundSnapshot(
        round_id=1,
        answer=answer,
        decimals=0,
        started_at=started_at,
        updated_at=started_at,
        answered_in_round=1,
    )


class TestPriceUpdateDetector:
    """Test the priceUpdate detector."""

    def setup_method(self) -> None:
        self.detector = PriceUpdateDetector(FEED, ScaledDecimal(5), network="ethereum-mainnet")

    def test_first_poll_seeds_only(self) -> None:
        """The first observation should seed the cursor without emitting."""
        result = self.detector.evaluate(snap("100", 1), {}, NOW)
        assert result.events == []
        assert result.cursor == {"last_price": "100.00000000", "last_round_id": "1"}

    def test_move_above_threshold(self) -> None:
        """A 6% move on a new round should emit with the exact percentage."""
        cursor = self.detector.evaluate(snap("100", 1), {}, NOW).cursor
        result = self.detector.evaluate(snap("106", 2), cursor, NOW)

        assert len(result.events) == 1
        event = result.events[0]
        assert event["event"] == "priceUpdate"
        assert event["changePercent"] == "6.0000"
        assert event["direction"] == "up"
        assert event["currentPrice"] == "106.00000000"
        assert event["previousPrice"] == "100.00000000"
        assert event["roundId"] == "2"
        assert event["network"] == "ethereum-mainnet"
        assert event["timestamp"] == "2023-11-14T22:13:20.000Z"
        assert result.cursor["last_price"] == "106.00000000"

    def test_move_down(self) -> None:
        """A drop should report direction down."""
        cursor = {"last_price": "100.00000000", "last_round_id": "1"}
        event = self.detector.evaluate(snap("90", 2), cursor, NOW).events[0]
        assert event["direction"] == "down"
        assert event["changePercent"] == "10.0000"

    def test_exact_threshold_fires(self) -> None:
        """A move of exactly the threshold should emit."""
        cursor = {"last_price": "100.00000000", "last_round_id": "1"}
        assert len(self.detector.evaluate(snap("105", 2), cursor, NOW).events) == 1

    def test_small_move_advances_cursor(self) -> None:
        """A small move should not emit but should still advance the cursor."""
        cursor = {"last_price": "100.00000000", "last_round_id": "1"}
        result = self.detector.evaluate(snap("104.99999999", 2), cursor, NOW)
        assert result.events == []
        assert result.cursor["last_price"] == "104.99999999"
        assert result.cursor["last_round_id"] == "2"

    def test_same_round_never_emits(self) -> None:
        """A large move within the same round should not emit."""
        cursor = {"last_price": "100.00000000", "last_round_id": "1"}
        assert self.detector.evaluate(snap("200", 1), cursor, NOW).events == []

    def test_zero_previous_price(self, caplog) -> None:
        """A zero previous price should log a warning and skip the check."""
        cursor = {"last_price": "0", "last_round_id": "1"}
        with caplog.at_level(logging.WARNING):
            result = self.detector.evaluate(snap("5", 2), cursor, NOW)
        assert result.events == []
        assert result.cursor["last_price"] == "5.00000000"
        assert "previous price is zero" in caplog.text

    def test_unanswered_round_keeps_cursor(self) -> None:
        """A round that was never answered should leave the cursor alone."""
        cursor = {"last_price": "100.00000000", "last_round_id": "1"}
        result = self.detector.evaluate(snap("0", 2, updated_at=0), cursor, NOW)
        assert result.events == []
        assert result.cursor == cursor

    def test_evaluate_does_not_mutate_cursor(self) -> None:
        """evaluate should return a new cursor and leave the input untouched."""
        cursor = {"last_price": "100.00000000", "last_round_id": "1"}
        self.detector.evaluate(snap("106", 2), cursor, NOW)
        assert cursor == {"last_price": "100.00000000", "last_round_id": "1"}

    def test_observe_reads_feed(self, ledger, reader) -> None:
        """observe should return the latest snapshot of the feed."""
        ledger.set_round(FEED, 9, 250000000000)
        observation = self.detector.observe(ledger, reader, {})
        assert str(observation.round.price) == "2500.00000000"


class TestPriceThresholdDetector:
    """Test the priceThreshold detector."""

    def test_above_latches(self) -> None:
        """'above' should fire once per excursion over the threshold."""
        detector = PriceThresholdDetector(FEED, "above", ScaledDecimal(1000))
        prices = ["900", "1100", "1200", "900", "1100"]
        cursor: dict = {}
        fired = []
        for round_id, price in enumerate(prices, start=1):
            result = detector.evaluate(snap(price, round_id), cursor, NOW)
            fired.append(len(result.events))
            cursor = result.cursor
        assert fired == [0, 1, 0, 0, 1]

    def test_above_reason(self) -> None:
        """The trigger reason should quote the price and threshold."""
        detector = PriceThresholdDetector(FEED, "above", ScaledDecimal(1000))
        cursor = {"last_price": "900.00000000", "was_triggered": False}
        event = detector.evaluate(snap("1100", 2), cursor, NOW).events[0]
        assert event["triggerReason"] == "Price 1100.00000000 is above threshold 1000"
        assert event["thresholdType"] == "above"
        assert event["thresholdPrice"] == "1000"

    def test_first_poll_above_does_not_fire(self) -> None:
        """Starting above the threshold should only set the latch."""
        detector = PriceThresholdDetector(FEED, "above", ScaledDecimal(1000))
        first = detector.evaluate(snap("1100", 1), {}, NOW)
        assert first.events == []
        assert first.cursor["was_triggered"] is True
        assert detector.evaluate(snap("1200", 2), first.cursor, NOW).events == []

    def test_below(self) -> None:
        """'below' should fire when the price drops under the threshold."""
        detector = PriceThresholdDetector(FEED, "below", ScaledDecimal(1000))
        cursor = detector.evaluate(snap("1100", 1), {}, NOW).cursor
        event = detector.evaluate(snap("999.5", 2), cursor, NOW).events[0]
        assert event["triggerReason"] == "Price 999.50000000 is below threshold 1000"

    def test_cross_fires_once(self) -> None:
        """'cross' should fire on the crossing and not while staying above."""
        detector = PriceThresholdDetector(FEED, "cross", ScaledDecimal(1000))
        cursor = detector.evaluate(snap("900", 1), {}, NOW).cursor

        crossed = detector.evaluate(snap("1100", 2), cursor, NOW)
        assert [e["triggerReason"] for e in crossed.events] == ["Price crossed above 1000"]

        again = detector.evaluate(snap("1100", 3), crossed.cursor, NOW)
        assert again.events == []

    def test_cross_below(self) -> None:
        """'cross' should also fire on a downward crossing."""
        detector = PriceThresholdDetector(FEED, "cross", ScaledDecimal(1000))
        cursor = {"last_price": "1100.00000000"}
        event = detector.evaluate(snap("950", 2), cursor, NOW).events[0]
        assert event["triggerReason"] == "Price crossed below 1000"

    def test_cross_from_exact_threshold(self) -> None:
        """Leaving the threshold level upward counts as crossing above."""
        detector = PriceThresholdDetector(FEED, "cross", ScaledDecimal(1000))
        cursor = {"last_price": "1000.00000000"}
        assert len(detector.evaluate(snap("1000.00000001", 2), cursor, NOW).events) == 1

    def test_invalid_type(self) -> None:
        """Unknown threshold types should be rejected."""
        with pytest.raises(DetectorConfigError):
            PriceThresholdDetector(FEED, "sideways", ScaledDecimal(1))


class TestNewRoundDetector:
    """Test the newRound detector."""

    def setup_method(self) -> None:
        self.detector = NewRoundDetector(FEED, network="ethereum-mainnet")

    def test_sequence(self) -> None:
        """Round 5 seeds, 6 emits, a repeated 6 does not."""
        first = self.detector.evaluate(snap("1", 5), {}, NOW)
        assert first.events == []

        second = self.detector.evaluate(snap("1", 6), first.cursor, NOW)
        assert len(second.events) == 1
        assert second.events[0]["roundId"] == "6"
        assert second.events[0]["previousRoundId"] == "5"

        third = self.detector.evaluate(snap("1", 6), second.cursor, NOW)
        assert third.events == []

    def test_phase_change(self) -> None:
        """A new phase with a lower aggregator round should still emit."""
        old = (1 << 64) | 900
        new = (2 << 64) | 1
        cursor = {"last_round_id": str(old)}
        event = self.detector.evaluate(snap("1", new), cursor, NOW).events[0]
        assert event["phaseId"] == 2
        assert event["aggregatorRoundId"] == "1"
        assert event["roundId"] == str(new)


class TestLogScanDetectors:
    """Test the VRF and automation log scanners."""

    def poll(self, detector, ledger, reader, cursor):
        return detector.evaluate(detector.observe(ledger, reader, cursor), cursor, NOW)

    def test_vrf_first_window(self, ledger, reader) -> None:
        """The first poll should emit logs from the lookback window."""
        ledger.block_number = 1000
        ledger.block_timestamps[950] = NOW
        ledger.add_log(COORDINATOR, "RandomWordsFulfilled", 850, {"requestId": 0})
        for block, request_id in [(950, 1), (960, 2), (990, 3)]:
            ledger.add_log(
                COORDINATOR,
                "RandomWordsFulfilled",
                block,
                {"requestId": request_id, "randomWords": [2**200, 7]},
            )
        detector = VrfFulfilledDetector(COORDINATOR, lookback_blocks=100)

        result = self.poll(detector, ledger, reader, {})
        assert [e["requestId"] for e in result.events] == ["1", "2", "3"]
        assert result.events[0]["randomWords"] == [str(2**200), "7"]
        assert result.events[0]["blockNumber"] == 950
        assert result.events[0]["blockTimestamp"] == "2023-11-14T22:13:20.000Z"
        assert result.events[1]["blockTimestamp"] is None
        assert result.cursor == {"last_block": 1000}
        assert ledger.log_queries[-1][2:4] == (900, 1000)

    def test_cursor_advances_without_logs(self, ledger, reader) -> None:
        """last_block should advance to the head even when nothing was found."""
        ledger.block_number = 1005
        detector = VrfFulfilledDetector(COORDINATOR)
        result = self.poll(detector, ledger, reader, {"last_block": 1000})
        assert result.events == []
        assert result.cursor == {"last_block": 1005}
        assert ledger.log_queries[-1][2:4] == (1001, 1005)

    def test_no_query_when_chain_idle(self, ledger, reader) -> None:
        """No log query should be made when no new block exists."""
        ledger.block_number = 1000
        detector = VrfFulfilledDetector(COORDINATOR)
        result = self.poll(detector, ledger, reader, {"last_block": 1000})
        assert ledger.log_queries == []
        assert result.cursor == {"last_block": 1000}

    def test_lagging_head_keeps_cursor(self, ledger, reader) -> None:
        """A node reporting an older head should not cause a rescan."""
        ledger.add_log(COORDINATOR, "RandomWordsFulfilled", 100, {"requestId": 1, "randomWords": [5]})
        detector = VrfFulfilledDetector(COORDINATOR, lookback_blocks=10)

        emitted = []
        cursor: dict = {}
        for head in (100, 98, 101):
            ledger.block_number = head
            result = self.poll(detector, ledger, reader, cursor)
            emitted += result.events
            cursor = result.cursor

        assert [e["requestId"] for e in emitted] == ["1"]
        assert cursor == {"last_block": 101}
        assert [q[2:4] for q in ledger.log_queries] == [(90, 100), (101, 101)]

    def test_bootstrap_clamps_to_genesis(self, ledger, reader) -> None:
        """A lookback past genesis should start at block 0."""
        ledger.block_number = 50
        detector = VrfFulfilledDetector(COORDINATOR, lookback_blocks=1000)
        self.poll(detector, ledger, reader, {})
        assert ledger.log_queries[-1][2:4] == (0, 50)

    def test_upkeep_filter(self, ledger, reader) -> None:
        """An upkeep id should be passed as a log argument filter."""
        ledger.block_number = 100
        ledger.add_log(
            REGISTRY,
            "UpkeepPerformed",
            90,
            {"id": 42, "success": True, "totalPayment": 15 * 10**17, "gasUsed": 81000},
        )
        ledger.add_log(
            REGISTRY,
            "UpkeepPerformed",
            91,
            {"id": 7, "success": False, "totalPayment": 1, "gasUsed": 1},
        )
        detector = UpkeepPerformedDetector(REGISTRY, upkeep_id=42)

        result = self.poll(detector, ledger, reader, {})
        assert len(result.events) == 1
        event = result.events[0]
        assert event["upkeepId"] == "42"
        assert event["success"] is True
        assert event["totalPayment"] == "1.5"
        assert event["gasUsed"] == "81000"
        assert ledger.log_queries[-1][4] == {"id": 42}

    def test_upkeep_without_filter(self, ledger, reader) -> None:
        """Without an upkeep id every upkeep should be reported."""
        ledger.block_number = 100
        ledger.add_log(REGISTRY, "UpkeepPerformed", 90, {"id": 1, "success": True})
        ledger.add_log(REGISTRY, "UpkeepPerformed", 91, {"id": 2, "success": True})
        detector = UpkeepPerformedDetector(REGISTRY)
        assert len(self.poll(detector, ledger, reader, {}).events) == 2
        assert ledger.log_queries[-1][4] is None


class TestSequencerChangeDetector:
    """Test the sequencerChange detector."""

    def setup_method(self) -> None:
        self.detector = SequencerChangeDetector(SEQUENCER, network="arbitrum-mainnet")

    def test_first_poll_seeds(self) -> None:
        """The first poll should only record the status."""
        result = self.detector.evaluate(sequencer_round(0, NOW - 100), {}, NOW)
        assert result.events == []
        assert result.cursor == {"last_status": True}

    def test_goes_down(self) -> None:
        """Up to down should emit a critical alert."""
        result = self.detector.evaluate(sequencer_round(1, NOW - 30), {"last_status": True}, NOW)
        event = result.events[0]
        assert event["isSequencerUp"] is False
        assert event["previousStatus"] == "UP"
        assert event["currentStatus"] == "DOWN"
        assert event["statusCode"] == 1
        assert event["isWithinGracePeriod"] is False
        assert event["alert"].startswith("CRITICAL")
        assert result.cursor == {"last_status": False}

    def test_back_up_in_grace_period(self) -> None:
        """Down to up should report the remaining grace period."""
        result = self.detector.evaluate(sequencer_round(0, NOW - 600), {"last_status": False}, NOW)
        event = result.events[0]
        assert event["currentStatus"] == "UP"
        assert event["stateDurationSeconds"] == 600
        assert event["isWithinGracePeriod"] is True
        assert event["gracePeriodRemainingSeconds"] == 3000

    def test_unchanged(self) -> None:
        """No event while the status holds."""
        result = self.detector.evaluate(sequencer_round(0, NOW - 600), {"last_status": True}, NOW)
        assert result.events == []

    def test_observe(self, ledger, reader) -> None:
        """observe should decode the uptime feed with zero decimals."""
        ledger.set_round(SEQUENCER, 3, 1, decimals=0, started_at=NOW - 10)
        observation = self.detector.observe(ledger, reader, {})
        assert observation.answer == 1
        assert observation.decimals == 0


class TestDetectorConfig:
    """Test building detectors from subscription parameters."""

    def test_registry(self) -> None:
        """All detectors should be registered by event name."""
        assert get_available_detectors() == [
            "newRound",
            "priceThreshold",
            "priceUpdate",
            "sequencerChange",
            "upkeepPerformed",
            "vrfFulfilled",
        ]

    def test_unknown_event(self) -> None:
        """Unknown events should raise DetectorConfigError."""
        with pytest.raises(DetectorConfigError):
            get_detector("gasSpike", {})

    def test_preset_feed(self) -> None:
        """A preset pair should resolve to the network's feed address."""
        detector = get_detector("newRound", {"feed": "eth/usd"}, "ethereum-mainnet")
        assert detector.feed_address == FEED

    def test_feed_address_is_checksummed(self) -> None:
        """Lower-case feed addresses should be checksummed."""
        detector = get_detector("newRound", {"feed_address": FEED.lower()})
        assert detector.feed_address == FEED

    def test_missing_feed(self) -> None:
        """A feed detector without a feed should be rejected."""
        with pytest.raises(DetectorConfigError):
            get_detector("priceUpdate", {"change_threshold": 1})

    def test_unknown_preset(self) -> None:
        """A pair without a preset on the network should be rejected."""
        with pytest.raises(DetectorConfigError):
            get_detector("newRound", {"feed": "DOGE/USD"}, "ethereum-mainnet")

    def test_unknown_parameter(self) -> None:
        """Unrecognized keys should be rejected instead of ignored."""
        with pytest.raises(DetectorConfigError, match="threshold"):
            get_detector("newRound", {"feed_address": FEED, "threshold": 3})

    def test_bad_address(self) -> None:
        """Malformed addresses should be rejected."""
        with pytest.raises(DetectorConfigError):
            get_detector("newRound", {"feed_address": "0x1234"})

    def test_threshold_params(self) -> None:
        """Numeric thresholds may be given as numbers or strings."""
        detector = get_detector(
            "priceThreshold",
            {"feed_address": FEED, "threshold_type": "CROSS", "threshold_price": 2500.5},
        )
        assert detector.threshold_type == "cross"
        assert detector.threshold_price == ScaledDecimal(25005, 1)

        with pytest.raises(DetectorConfigError):
            get_detector("priceThreshold", {"feed_address": FEED, "threshold_price": "lots"})
        with pytest.raises(DetectorConfigError):
            get_detector("priceThreshold", {"feed_address": FEED})

    def test_change_threshold_default(self) -> None:
        """The price update threshold should default to 1%."""
        detector = get_detector("priceUpdate", {"feed_address": FEED})
        assert detector.change_threshold == ScaledDecimal(1)

    def test_vrf_network_default(self) -> None:
        """The VRF coordinator should default to the network's deployment."""
        detector = get_detector("vrfFulfilled", {}, "ethereum-mainnet")
        assert detector.contract_address == COORDINATOR
        assert detector.lookback_blocks == 1000

    def test_vrf_unavailable(self) -> None:
        """Networks without a coordinator need an explicit address."""
        with pytest.raises(DetectorConfigError):
            get_detector("vrfFulfilled", {}, "base-mainnet")

    def test_upkeep_params(self) -> None:
        """upkeep_id should accept decimal and hex strings."""
        detector = get_detector(
            "upkeepPerformed",
            {"registry_address": REGISTRY, "upkeep_id": "0x2a", "lookback_blocks": "50"},
        )
        assert detector.upkeep_id == 42
        assert detector.lookback_blocks == 50

        with pytest.raises(DetectorConfigError):
            get_detector("upkeepPerformed", {"registry_address": REGISTRY, "upkeep_id": "abc"})
        with pytest.raises(DetectorConfigError):
            get_detector("upkeepPerformed", {"registry_address": REGISTRY, "lookback_blocks": -1})

    def test_sequencer_default(self) -> None:
        """The sequencer feed should default per network."""
        detector = get_detector("sequencerChange", {}, "arbitrum-mainnet")
        assert detector.feed_address == SEQUENCER
        with pytest.raises(DetectorConfigError):
            get_detector("sequencerChange", {}, "ethereum-mainnet")
