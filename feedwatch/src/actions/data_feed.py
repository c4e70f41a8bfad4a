"""Specialized data feed operations: L2 sequencer uptime and Proof of Reserve."""

from __future__ import annotations

import time
from typing import Any

from ..detectors.sequencer import grace_period_info
from ..errors import FeedUnavailableError
from ..FeedReader import FeedReader, RoundSnapshot, now_iso, timestamp_to_iso
from ..LedgerClient import LedgerClient
from ..networks import POR_FEEDS, SEQUENCER_FEEDS
from ..ScaledDecimal import format_scaled
from ..Web3LedgerClient import checksum


def get_sequencer_status(
    client: LedgerClient, feed_address: str | None = None, now: int | None = None
) -> dict[str, Any]:
    """Current status of an L2 sequencer uptime feed.

    :param feed_address: Uptime feed; defaults to the network's preset.
    :param now: Current Unix time (default: wall clock).
    :raises FeedUnavailableError: If the network has no preset and none was given.
    """
    network = client.network_name
    if feed_address:
        feed_address = checksum(feed_address)
    else:
        feed_address = SEQUENCER_FEEDS.get(network)
        if not feed_address:
            raise FeedUnavailableError(
                f"L2 Sequencer uptime feed not available on {network}. "
                "This feed is only available on L2 networks (Arbitrum, Optimism, Base)."
            )

    now = int(time.time()) if now is None else now
    rnd = RoundSnapshot.from_raw(client.read_latest_round(feed_address), 0)
    is_up = rnd.answer == 0
    grace = grace_period_info(is_up, rnd.started_at, now)

    if is_up and not grace["isWithinGracePeriod"]:
        recommendation = "Safe to use price feeds"
    elif grace["isWithinGracePeriod"]:
        recommendation = "Grace period active - consider waiting before using stale-sensitive data"
    else:
        recommendation = "Sequencer is down - price feeds may be stale"

    return {
        "isSequencerUp": is_up,
        "status": "UP" if is_up else "DOWN",
        "statusCode": rnd.answer,
        "stateStartedAt": timestamp_to_iso(rnd.started_at),
        "stateStartedAtTimestamp": rnd.started_at,
        **grace,
        "stateDurationMinutes": grace["stateDurationSeconds"] // 60,
        "roundId": str(rnd.round_id),
        "updatedAt": timestamp_to_iso(rnd.updated_at),
        "answeredInRound": str(rnd.answered_in_round),
        "feedAddress": feed_address,
        "network": network,
        "feedType": "L2 Sequencer Uptime",
        "recommendation": recommendation,
        "timestamp": now_iso(),
    }


def get_proof_of_reserve(
    client: LedgerClient, asset: str | None = None, feed_address: str | None = None
) -> dict[str, Any]:
    """Latest reserve reported by a Proof of Reserve feed.

    :param asset: Preset asset symbol (e.g. ``"WBTC"``).
    :param feed_address: Custom PoR feed, used when no asset is given.
    :raises FeedUnavailableError: If the preset does not exist on the network.
    :raises ValueError: If neither asset nor feed_address is given.
    """
    network = client.network_name
    if asset:
        preset = POR_FEEDS.get(network, {}).get(asset.upper())
        if preset is None:
            raise FeedUnavailableError(f"PoR feed for {asset} not available on {network}")
        feed_address, asset_name, _ = preset
    elif feed_address:
        feed_address = checksum(feed_address)
        asset_name = "Custom PoR Feed"
    else:
        raise ValueError("Either asset or feed_address is required")

    snapshot = FeedReader(client).latest(feed_address)
    rnd = snapshot.round
    return {
        "asset": asset_name,
        "reserve": format_scaled(rnd.answer, rnd.decimals),
        "rawReserve": str(rnd.answer),
        "decimals": rnd.decimals,
        "description": snapshot.description,
        "roundId": str(rnd.round_id),
        "startedAt": timestamp_to_iso(rnd.started_at),
        "updatedAt": timestamp_to_iso(rnd.updated_at),
        "answeredInRound": str(rnd.answered_in_round),
        "feedAddress": feed_address,
        "network": network,
        "feedType": "Proof of Reserve",
        "timestamp": now_iso(),
    }
