"""FeedReader: Typed snapshots of aggregator rounds.

Wraps a LedgerClient and turns raw ``latestRoundData`` / ``getRoundData``
tuples into :class:`RoundSnapshot` values, with the decimals and description
needed to render them. All price math goes through the decimal engine.

.. code-block:: python

    >>> reader = FeedReader(client)
    >>> snapshot = reader.latest("0x5f4e...8419")
    >>> str(snapshot.round.price)
    '3012.45000000'
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

from .errors import DecodeError, WatcherError
from .LedgerClient import LedgerClient
from .ScaledDecimal import ScaledDecimal, derive_rate, format_scaled

logger = logging.getLogger(__name__)

# Rounds older than this are reported as stale.
STALENESS_LIMIT_SECONDS = 3600

_AGGREGATOR_ROUND_MASK = (1 << 64) - 1

# 9999-12-31T23:59:59Z, the last instant datetime can render.
MAX_TIMESTAMP = 253402300799


def timestamp_to_iso(timestamp: int) -> str | None:
    """Render a Unix timestamp as ``YYYY-MM-DDTHH:MM:SS.000Z``.

    :param timestamp: Seconds since the epoch.
    :returns: ISO-8601 UTC string, or None for 0 (never set).
    """
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%S.000Z"
    )


def now_iso() -> str:
    """Wall-clock time in the same ISO-8601 form as :func:`timestamp_to_iso`."""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@dataclass(frozen=True)
class RoundSnapshot:
    """One aggregator round.

    :ivar round_id: Full 80-bit round id (phase id in the high bits).
    :ivar answer: Signed integer answer.
    :ivar decimals: Fractional digits of ``answer``.
    :ivar started_at: Round start timestamp.
    :ivar updated_at: Answer timestamp; 0 means the round was never answered.
    :ivar answered_in_round: Round in which the answer was computed.
    """

    round_id: int
    answer: int
    decimals: int
    started_at: int
    updated_at: int
    answered_in_round: int

    @classmethod
    def from_raw(cls, raw: Sequence[Any], decimals: int) -> RoundSnapshot:
        """Decode a raw five-field round tuple.

        :param raw: ``(roundId, answer, startedAt, updatedAt, answeredInRound)``.
        :param decimals: Feed decimals.
        :returns: RoundSnapshot.
        :raises DecodeError: If the tuple has the wrong shape or non-integer fields,
            or if a timestamp is outside the renderable range.
        """
        try:
            fields = list(raw)
        except TypeError as e:
            raise DecodeError(f"Round data is not a sequence: {raw!r}") from e
        if len(fields) != 5:
            raise DecodeError(f"Expected 5 round fields, got {len(fields)}")
        for value in [*fields, decimals]:
            if not isinstance(value, int) or isinstance(value, bool):
                raise DecodeError(f"Non-integer round field: {value!r}")
        if decimals < 0:
            raise DecodeError(f"Negative decimals: {decimals}")

        round_id, answer, started_at, updated_at, answered_in_round = fields
        for name, timestamp in (("startedAt", started_at), ("updatedAt", updated_at)):
            if not 0 <= timestamp <= MAX_TIMESTAMP:
                raise DecodeError(f"{name} out of range: {timestamp}")
        return cls(
            round_id=round_id,
            answer=answer,
            decimals=decimals,
            started_at=started_at,
            updated_at=updated_at,
            answered_in_round=answered_in_round,
        )

    @property
    def phase_id(self) -> int:
        return self.round_id >> 64

    @property
    def aggregator_round_id(self) -> int:
        return self.round_id & _AGGREGATOR_ROUND_MASK

    @property
    def price(self) -> ScaledDecimal:
        return ScaledDecimal(self.answer, self.decimals)

    @property
    def is_answered(self) -> bool:
        return self.updated_at != 0

    def staleness_seconds(self, now: int) -> int | None:
        """Seconds since the answer was written, or None if never answered."""
        if not self.is_answered:
            return None
        return max(0, now - self.updated_at)


@dataclass(frozen=True)
class FeedSnapshot:
    """A round together with the feed's address, description and decimals."""

    address: str
    round: RoundSnapshot
    description: str

    @property
    def decimals(self) -> int:
        return self.round.decimals


@dataclass(frozen=True)
class FeedMetadata:
    """Static properties of a feed.

    :ivar base_asset: Parsed from ``"BASE / QUOTE"`` descriptions, else None.
    :ivar quote_asset: Parsed from ``"BASE / QUOTE"`` descriptions, else None.
    """

    address: str
    description: str
    decimals: int
    version: int
    base_asset: str | None = None
    quote_asset: str | None = None


def split_pair(description: str) -> tuple[str | None, str | None]:
    """Split ``"ETH / USD"`` into ``("ETH", "USD")``; anything else gives (None, None)."""
    parts = [p.strip() for p in description.split("/")]
    if len(parts) != 2 or not all(parts):
        return None, None
    return parts[0], parts[1]


def snapshot_payload(snapshot: FeedSnapshot, now: int) -> dict[str, Any]:
    """Render the standard JSON payload of a feed snapshot.

    :param snapshot: Feed snapshot.
    :param now: Current Unix time used for staleness.
    :returns: JSON-serializable dict.
    """
    rnd = snapshot.round
    staleness = rnd.staleness_seconds(now)
    return {
        "price": str(rnd.price),
        "rawPrice": str(rnd.answer),
        "decimals": rnd.decimals,
        "pair": snapshot.description,
        "roundId": str(rnd.round_id),
        "phaseId": rnd.phase_id,
        "aggregatorRoundId": str(rnd.aggregator_round_id),
        "startedAt": timestamp_to_iso(rnd.started_at),
        "startedAtTimestamp": rnd.started_at,
        "updatedAt": timestamp_to_iso(rnd.updated_at),
        "updatedAtTimestamp": rnd.updated_at,
        "answeredInRound": str(rnd.answered_in_round),
        "stalenessSeconds": staleness,
        "isStale": staleness is None or staleness > STALENESS_LIMIT_SECONDS,
        "feedAddress": snapshot.address,
    }


class FeedReader:
    """Reads aggregator feeds through a LedgerClient.

    Holds no per-feed cache; every call goes to the ledger.

    :ivar client: Ledger client used for all reads.
    """

    def __init__(self, client: LedgerClient) -> None:
        self.client = client

    def latest_round(self, address: str) -> RoundSnapshot:
        """Read and decode the latest round of a feed.

        :raises FeedUnavailableError: If the ledger read fails.
        :raises DecodeError: If the round data is malformed.
        """
        raw = self.client.read_latest_round(address)
        decimals = self.client.read_decimals(address)
        return RoundSnapshot.from_raw(raw, decimals)

    def latest(self, address: str) -> FeedSnapshot:
        """Read the latest round plus description of a feed."""
        rnd = self.latest_round(address)
        description = self.client.read_description(address)
        return FeedSnapshot(address=address, round=rnd, description=description)

    def round(self, address: str, round_id: int) -> FeedSnapshot:
        """Read a historical round by its full round id."""
        raw = self.client.read_round(address, round_id)
        decimals = self.client.read_decimals(address)
        description = self.client.read_description(address)
        return FeedSnapshot(
            address=address,
            round=RoundSnapshot.from_raw(raw, decimals),
            description=description,
        )

    def metadata(self, address: str) -> FeedMetadata:
        description = self.client.read_description(address)
        base, quote = split_pair(description)
        return FeedMetadata(
            address=address,
            description=description,
            decimals=self.client.read_decimals(address),
            version=self.client.read_version(address),
            base_asset=base,
            quote_asset=quote,
        )

    def read_many(self, addresses: list[str], now: int | None = None) -> list[dict[str, Any]]:
        """Read several feeds; a failing feed yields an error item instead of raising.

        :param addresses: Feed addresses, in output order.
        :param now: Unix time for staleness (default: current time).
        :returns: One dict per address with ``status`` ``"success"`` or ``"error"``.
        """
        now = int(time.time()) if now is None else now
        results: list[dict[str, Any]] = []
        for address in addresses:
            try:
                snapshot = self.latest(address)
            except WatcherError as e:
                logger.warning(f"Feed {address} failed in batch read: {e}")
                results.append({"feedAddress": address, "status": "error", "error": str(e)})
                continue
            results.append({"status": "success", **snapshot_payload(snapshot, now)})
        return results

    def derived_price(
        self,
        base_address: str,
        quote_address: str,
        result_scale: int = 8,
    ) -> dict[str, Any]:
        """Cross rate of two feeds, e.g. ETH/EUR from ETH/USD and EUR/USD.

        When either feed has never been answered the derived fields are None.

        :param base_address: Numerator feed (e.g. ETH/USD).
        :param quote_address: Denominator feed (e.g. EUR/USD).
        :param result_scale: Fractional digits of the derived price (default: 8).
        :returns: JSON-serializable dict.
        :raises DivisionByZeroError: If the quote feed answered zero.
        """
        base = self.latest(base_address)
        quote = self.latest(quote_address)

        derived: ScaledDecimal | None = None
        if base.round.is_answered and quote.round.is_answered:
            derived = derive_rate(
                base.round.answer,
                base.decimals,
                quote.round.answer,
                quote.decimals,
                result_scale,
            )
        else:
            logger.warning(
                f"Derived price {base_address}/{quote_address} unknown: "
                "feed has no answered round"
            )

        base_asset = split_pair(base.description)[0] or base.description
        quote_asset = split_pair(quote.description)[0] or quote.description
        return {
            "derivedPrice": str(derived) if derived is not None else None,
            "rawDerivedPrice": str(derived.mantissa) if derived is not None else None,
            "derivedDecimals": result_scale,
            "derivedPair": f"{base_asset} / {quote_asset}",
            "basePrice": format_scaled(base.round.answer, base.decimals),
            "basePair": base.description,
            "quotePrice": format_scaled(quote.round.answer, quote.decimals),
            "quotePair": quote.description,
        }
