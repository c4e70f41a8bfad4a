"""Unit tests for FeedReader and round snapshots."""

import pytest

from feedwatch.src.errors import DecodeError, DivisionByZeroError
from feedwatch.src.FeedReader import (
    MAX_TIMESTAMP,
    FeedReader,
    RoundSnapshot,
    snapshot_payload,
    split_pair,
    timestamp_to_iso,
)

ETH_USD = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"
EUR_USD = "0xb49f677943BC038e9857d61E7d053CaA2C1734C1"
BROKEN = "0x000000000000000000000000000000000000dEaD"

PHASE_2_ROUND_5 = (2 << 64) | 5


class TestRoundSnapshot:
    """Test decoding of raw round tuples."""

    def test_from_raw(self) -> None:
        """A well-formed tuple should decode field by field."""
        rnd = RoundSnapshot.from_raw((7, 300000000000, 10, 20, 7), 8)
        assert rnd.round_id == 7
        assert str(rnd.price) == "3000.00000000"
        assert rnd.started_at == 10
        assert rnd.updated_at == 20
        assert rnd.is_answered

    def test_phase_and_aggregator_round(self) -> None:
        """The round id should split into phase and aggregator round."""
        rnd = RoundSnapshot.from_raw((PHASE_2_ROUND_5, 1, 1, 1, PHASE_2_ROUND_5), 8)
        assert rnd.phase_id == 2
        assert rnd.aggregator_round_id == 5

    def test_wrong_length(self) -> None:
        """Tuples without exactly five fields should raise DecodeError."""
        with pytest.raises(DecodeError):
            RoundSnapshot.from_raw((1, 2, 3, 4), 8)

    def test_non_integer_field(self) -> None:
        """Non-integer fields should raise DecodeError."""
        with pytest.raises(DecodeError):
            RoundSnapshot.from_raw((1, "2", 3, 4, 5), 8)
        with pytest.raises(DecodeError):
            RoundSnapshot.from_raw((1, True, 3, 4, 5), 8)

    def test_not_a_sequence(self) -> None:
        """A non-iterable value should raise DecodeError."""
        with pytest.raises(DecodeError):
            RoundSnapshot.from_raw(None, 8)  # type: ignore[arg-type]

    def test_timestamp_out_of_range(self) -> None:
        """Timestamps no calendar date can represent should raise DecodeError."""
        with pytest.raises(DecodeError, match="updatedAt"):
            RoundSnapshot.from_raw((1, 1, 0, 2**64, 1), 8)
        with pytest.raises(DecodeError, match="startedAt"):
            RoundSnapshot.from_raw((1, 1, -1, 0, 1), 8)
        assert RoundSnapshot.from_raw((1, 1, 0, MAX_TIMESTAMP, 1), 8).updated_at == MAX_TIMESTAMP

    def test_unanswered_round(self) -> None:
        """updatedAt of 0 means never answered and no staleness."""
        rnd = RoundSnapshot.from_raw((1, 0, 0, 0, 0), 8)
        assert not rnd.is_answered
        assert rnd.staleness_seconds(1_700_000_000) is None

    def test_staleness_never_negative(self) -> None:
        """Answers from the future should report zero staleness."""
        rnd = RoundSnapshot.from_raw((1, 1, 100, 200, 1), 8)
        assert rnd.staleness_seconds(150) == 0
        assert rnd.staleness_seconds(260) == 60


class TestHelpers:
    """Test formatting helpers."""

    def test_timestamp_to_iso(self) -> None:
        """Timestamps should render as UTC with millisecond suffix."""
        assert timestamp_to_iso(1_700_000_000) == "2023-11-14T22:13:20.000Z"

    def test_timestamp_zero(self) -> None:
        """A zero timestamp should render as None."""
        assert timestamp_to_iso(0) is None

    def test_split_pair(self) -> None:
        """Pair descriptions should split into base and quote."""
        assert split_pair("ETH / USD") == ("ETH", "USD")
        assert split_pair("Total Reserve") == (None, None)


class TestFeedReader:
    """Test FeedReader against the in-memory ledger."""

    def test_latest(self, ledger, reader: FeedReader) -> None:
        """latest should combine round, decimals and description."""
        ledger.set_round(ETH_USD, 42, 301245000000)
        snapshot = reader.latest(ETH_USD)
        assert snapshot.decimals == 8
        assert snapshot.description == "ETH / USD"
        assert str(snapshot.round.price) == "3012.45000000"

    def test_payload(self, ledger, reader: FeedReader) -> None:
        """The payload should carry string prices and staleness."""
        ledger.set_round(ETH_USD, PHASE_2_ROUND_5, 301245000000, started_at=1_700_000_000)
        payload = snapshot_payload(reader.latest(ETH_USD), now=1_700_000_100)
        assert payload["price"] == "3012.45000000"
        assert payload["rawPrice"] == "301245000000"
        assert payload["roundId"] == str(PHASE_2_ROUND_5)
        assert payload["phaseId"] == 2
        assert payload["aggregatorRoundId"] == "5"
        assert payload["updatedAt"] == "2023-11-14T22:13:20.000Z"
        assert payload["stalenessSeconds"] == 100
        assert payload["isStale"] is False

    def test_payload_stale(self, ledger, reader: FeedReader) -> None:
        """Answers older than an hour should be stale."""
        ledger.set_round(ETH_USD, 1, 1, started_at=1_700_000_000)
        payload = snapshot_payload(reader.latest(ETH_USD), now=1_700_003_601)
        assert payload["isStale"] is True

    def test_historical_round(self, ledger, reader: FeedReader) -> None:
        """round should read the requested round, not the latest."""
        ledger.set_round(ETH_USD, 1, 100000000)
        ledger.set_round(ETH_USD, 2, 200000000)
        assert str(reader.round(ETH_USD, 1).round.price) == "1.00000000"
        assert str(reader.latest(ETH_USD).round.price) == "2.00000000"

    def test_metadata(self, ledger, reader: FeedReader) -> None:
        """metadata should parse base and quote assets."""
        ledger.set_round(ETH_USD, 1, 1)
        meta = reader.metadata(ETH_USD)
        assert meta.version == 4
        assert (meta.base_asset, meta.quote_asset) == ("ETH", "USD")

    def test_read_many_isolates_failures(self, ledger, reader: FeedReader) -> None:
        """A failing feed should become an error item; others still succeed."""
        ledger.set_round(ETH_USD, 1, 300000000000)
        ledger.set_round(EUR_USD, 1, 110000000, description="EUR / USD")
        ledger.failing.add(BROKEN.lower())

        results = reader.read_many([ETH_USD, BROKEN, EUR_USD], now=1_700_000_000)
        assert [r["status"] for r in results] == ["success", "error", "success"]
        assert results[1]["feedAddress"] == BROKEN
        assert results[2]["pair"] == "EUR / USD"

    def test_read_many_bad_timestamp(self, ledger, reader: FeedReader) -> None:
        """A feed with an unrenderable timestamp should not abort the batch."""
        ledger.set_round(BROKEN, 1, 1, started_at=0, updated_at=2**64)
        ledger.set_round(EUR_USD, 1, 110000000, description="EUR / USD")

        results = reader.read_many([BROKEN, EUR_USD], now=1_700_000_000)
        assert [r["status"] for r in results] == ["error", "success"]
        assert "out of range" in results[0]["error"]

    def test_derived_price(self, ledger, reader: FeedReader) -> None:
        """ETH/USD over EUR/USD should give a truncated ETH/EUR."""
        ledger.set_round(ETH_USD, 1, 300000000000)
        ledger.set_round(EUR_USD, 1, 110000000, description="EUR / USD")

        result = reader.derived_price(ETH_USD, EUR_USD)
        assert result["derivedPrice"] == "2727.27272727"
        assert result["rawDerivedPrice"] == "272727272727"
        assert result["derivedPair"] == "ETH / EUR"
        assert result["basePrice"] == "3000.00000000"
        assert result["quotePrice"] == "1.10000000"

    def test_derived_price_mixed_decimals(self, ledger, reader: FeedReader) -> None:
        """Feeds with different decimals should be aligned before dividing."""
        ledger.set_round(ETH_USD, 1, 300000000000)
        ledger.set_round(EUR_USD, 1, 2 * 10**18, decimals=18, description="EUR / USD")
        result = reader.derived_price(ETH_USD, EUR_USD, result_scale=2)
        assert result["derivedPrice"] == "1500.00"

    def test_derived_price_unanswered(self, ledger, reader: FeedReader) -> None:
        """An unanswered feed should leave the derived price unknown."""
        ledger.set_round(ETH_USD, 1, 300000000000)
        ledger.set_round(EUR_USD, 1, 0, description="EUR / USD", started_at=0)
        result = reader.derived_price(ETH_USD, EUR_USD)
        assert result["derivedPrice"] is None
        assert result["rawDerivedPrice"] is None

    def test_derived_price_zero_quote(self, ledger, reader: FeedReader) -> None:
        """A zero quote answer should raise DivisionByZeroError."""
        ledger.set_round(ETH_USD, 1, 300000000000)
        ledger.set_round(EUR_USD, 1, 0, description="EUR / USD")
        with pytest.raises(DivisionByZeroError):
            reader.derived_price(ETH_USD, EUR_USD)
