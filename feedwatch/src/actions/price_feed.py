"""Price feed operations: latest, full round data, history, metadata, batch and cross rates."""

from __future__ import annotations

import logging
import time
from typing import Any

from ..errors import FeedUnavailableError
from ..FeedReader import FeedReader, now_iso, snapshot_payload
from ..LedgerClient import LedgerClient
from ..networks import get_price_feed
from ..Web3LedgerClient import checksum

logger = logging.getLogger(__name__)


def resolve_feed(network: str, feed: str) -> str:
    """Resolve a feed given as an address or a preset pair such as ``"ETH/USD"``.

    :param network: Network identifier.
    :param feed: ``0x`` address or preset pair.
    :returns: Checksummed feed address.
    :raises InvalidAddressError: If ``feed`` looks like an address but is not one.
    :raises FeedUnavailableError: If the preset does not exist on the network.
    """
    if feed.lower().startswith("0x"):
        return checksum(feed)
    info = get_price_feed(network, feed)
    if info is None:
        raise FeedUnavailableError(f"Price feed {feed} not available on {network}")
    return info.address


def get_latest_price(client: LedgerClient, feed: str) -> dict[str, Any]:
    """Latest answer of a feed."""
    reader = FeedReader(client)
    snapshot = reader.latest(resolve_feed(client.network_name, feed))
    payload = snapshot_payload(snapshot, int(time.time()))
    return {
        "price": payload["price"],
        "rawPrice": payload["rawPrice"],
        "decimals": payload["decimals"],
        "pair": payload["pair"],
        "roundId": payload["roundId"],
        "startedAt": payload["startedAt"],
        "updatedAt": payload["updatedAt"],
        "answeredInRound": payload["answeredInRound"],
        "feedAddress": snapshot.address,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_price_feed_data(client: LedgerClient, feed: str) -> dict[str, Any]:
    """Full latest round with phase ids, version and staleness."""
    reader = FeedReader(client)
    address = resolve_feed(client.network_name, feed)
    snapshot = reader.latest(address)
    return {
        **snapshot_payload(snapshot, int(time.time())),
        "version": str(client.read_version(address)),
        "network": client.network_name,
    }


def get_historical_price(client: LedgerClient, feed: str, round_id: int | str) -> dict[str, Any]:
    """Answer of a specific round.

    :param round_id: Full round id, as int or decimal string.
    :raises ValueError: If round_id is not an integer.
    """
    round_id = int(round_id)
    reader = FeedReader(client)
    snapshot = reader.round(resolve_feed(client.network_name, feed), round_id)
    payload = snapshot_payload(snapshot, int(time.time()))
    return {
        "price": payload["price"],
        "rawPrice": payload["rawPrice"],
        "decimals": payload["decimals"],
        "pair": payload["pair"],
        "roundId": payload["roundId"],
        "requestedRoundId": str(round_id),
        "phaseId": payload["phaseId"],
        "aggregatorRoundId": payload["aggregatorRoundId"],
        "startedAt": payload["startedAt"],
        "updatedAt": payload["updatedAt"],
        "answeredInRound": payload["answeredInRound"],
        "feedAddress": snapshot.address,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_feed_description(client: LedgerClient, feed: str) -> dict[str, Any]:
    """Description, decimals, version and parsed assets of a feed."""
    metadata = FeedReader(client).metadata(resolve_feed(client.network_name, feed))
    return {
        "description": metadata.description,
        "decimals": metadata.decimals,
        "version": str(metadata.version),
        "baseAsset": metadata.base_asset,
        "quoteAsset": metadata.quote_asset,
        "feedAddress": metadata.address,
        "network": client.network_name,
    }


def get_multiple_prices(client: LedgerClient, feeds: list[str]) -> dict[str, Any]:
    """Latest answers of several feeds; failures are reported per item.

    Feeds that cannot be resolved are reported as errors too.
    """
    reader = FeedReader(client)
    now = int(time.time())
    prices: list[dict[str, Any]] = []
    for feed in feeds:
        try:
            address = resolve_feed(client.network_name, feed)
        except (FeedUnavailableError, ValueError) as e:
            prices.append({"feed": feed, "status": "error", "error": str(e)})
            continue
        (item,) = reader.read_many([address], now)
        prices.append({"feed": feed, **item})

    succeeded = sum(1 for p in prices if p["status"] == "success")
    return {
        "prices": prices,
        "totalFeeds": len(prices),
        "successCount": succeeded,
        "errorCount": len(prices) - succeeded,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_derived_price(
    client: LedgerClient, base_feed: str, quote_feed: str, result_scale: int = 8
) -> dict[str, Any]:
    """Cross rate, e.g. ETH/EUR from ETH/USD and EUR/USD.

    :raises DivisionByZeroError: If the quote feed answered zero.
    """
    reader = FeedReader(client)
    derived = reader.derived_price(
        resolve_feed(client.network_name, base_feed),
        resolve_feed(client.network_name, quote_feed),
        result_scale,
    )
    return {**derived, "network": client.network_name, "timestamp": now_iso()}
