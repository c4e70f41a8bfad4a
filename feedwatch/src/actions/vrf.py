"""VRF operations: subscriptions, coordinator config, request pricing and status."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import FeedUnavailableError
from ..FeedReader import now_iso, timestamp_to_iso
from ..LedgerClient import LedgerClient
from ..networks import VRF_KEY_HASHES, get_network
from ..ScaledDecimal import trim_scaled
from .network_utils import parse_uint, service_contract

logger = logging.getLogger(__name__)

LINK_DECIMALS = 18

# Request status lookups scan this many blocks back from the head.
REQUEST_LOOKBACK_BLOCKS = 10_000

# Rough gas model used when the coordinator cannot price a request itself.
BASE_REQUEST_GAS = 100_000
GAS_PER_WORD = 20_000


def _coordinator(client: LedgerClient) -> str:
    return service_contract(client, "vrf_coordinator", "VRF Coordinator")


def _key_hashes(network_name: str) -> list[dict[str, str]]:
    return [
        {"keyHash": key_hash, "gasLane": gas_lane}
        for key_hash, gas_lane in VRF_KEY_HASHES.get(network_name, ())
    ]


def get_vrf_subscription(client: LedgerClient, subscription_id: str | int) -> dict[str, Any]:
    """Balance, request count, owner and consumers of a VRF subscription.

    :param subscription_id: Subscription id (decimal or ``0x`` hex).
    :raises FeedUnavailableError: If the network has no coordinator or the
        subscription does not exist (the coordinator reverts).
    """
    coordinator = _coordinator(client)
    sub_id = parse_uint(subscription_id, "subscription_id")
    balance, request_count, owner, consumers = client.read_contract(
        coordinator, "vrf_coordinator", "getSubscription", sub_id
    )
    return {
        "subscriptionId": str(sub_id),
        "balance": trim_scaled(balance, LINK_DECIMALS),
        "balanceRaw": str(balance),
        "requestCount": request_count,
        "owner": owner,
        "consumers": list(consumers),
        "consumerCount": len(consumers),
        "coordinatorAddress": coordinator,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_vrf_coordinator_config(client: LedgerClient) -> dict[str, Any]:
    """Coordinator limits plus the key hashes (gas lanes) published for the network."""
    coordinator = _coordinator(client)
    confirmations, max_gas_limit, staleness, gas_after_payment = client.read_contract(
        coordinator, "vrf_coordinator", "getConfig"
    )
    network = get_network(client.network_name)
    return {
        "coordinatorAddress": coordinator,
        "minimumRequestConfirmations": confirmations,
        "maxGasLimit": max_gas_limit,
        "stalenessSeconds": staleness,
        "gasAfterPaymentCalculation": gas_after_payment,
        "availableKeyHashes": _key_hashes(client.network_name),
        "linkToken": network.link_token if network else None,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def estimate_vrf_request_price(
    client: LedgerClient, callback_gas_limit: int = 100_000, num_words: int = 1
) -> dict[str, Any]:
    """Estimated cost of one randomness request.

    Uses the coordinator's ``estimateRequestPrice`` (LINK) when it exists.
    Otherwise falls back to ``(base + callback + per-word gas) * gas price``
    in the native token, flagged with ``isRoughEstimate``.

    :raises ValueError: If the gas limit or word count is not positive.
    """
    if callback_gas_limit <= 0 or num_words <= 0:
        raise ValueError("callback_gas_limit and num_words must be positive")

    coordinator = _coordinator(client)
    gas_price = client.fee_data().get("gas_price") or 0
    try:
        estimate = client.read_contract(
            coordinator, "vrf_coordinator", "estimateRequestPrice", callback_gas_limit, num_words
        )
    except FeedUnavailableError as e:
        logger.debug(f"estimateRequestPrice unavailable on {client.network_name}: {e}")
        total_gas = BASE_REQUEST_GAS + callback_gas_limit + GAS_PER_WORD * num_words
        cost, unit, rough = total_gas * gas_price, "native", True
    else:
        cost, unit, rough = estimate, "LINK", False

    return {
        "callbackGasLimit": callback_gas_limit,
        "numWords": num_words,
        "estimatedCost": trim_scaled(cost, 18),
        "estimatedCostRaw": str(cost),
        "costUnit": unit,
        "isRoughEstimate": rough,
        "currentGasPriceGwei": trim_scaled(gas_price, 9),
        "recommendedKeyHashes": _key_hashes(client.network_name),
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_vrf_request_status(
    client: LedgerClient,
    request_id: str | int,
    lookback_blocks: int = REQUEST_LOOKBACK_BLOCKS,
) -> dict[str, Any]:
    """Fulfillment status of a randomness request found in recent coordinator logs.

    ``FULFILLED`` when a ``RandomWordsFulfilled`` log exists for the id,
    ``PENDING`` when only its ``RandomWordsRequested`` log exists, and
    ``NOT_FOUND`` when neither is within ``lookback_blocks`` of the head.
    """
    coordinator = _coordinator(client)
    req_id = parse_uint(request_id, "request_id")
    current_block = client.current_block_number()
    from_block = max(current_block - lookback_blocks, 0)

    result: dict[str, Any] = {"requestId": str(req_id), "network": client.network_name}

    fulfilled = client.query_logs(
        coordinator,
        "vrf_coordinator",
        "RandomWordsFulfilled",
        from_block,
        current_block,
        {"requestId": req_id},
    )
    if fulfilled:
        log = fulfilled[0]
        random_words = [str(w) for w in log.args.get("randomWords") or []]
        result.update(
            status="FULFILLED",
            fulfilled=True,
            fulfillmentBlock=log.block_number,
            fulfillmentTimestamp=timestamp_to_iso(log.timestamp() or 0),
            transactionHash=log.transaction_hash,
            randomWords=random_words,
            randomWordsCount=len(random_words),
        )
        result["timestamp"] = now_iso()
        return result

    # requestId is not indexed on RandomWordsRequested, so match it here.
    requested = client.query_logs(
        coordinator, "vrf_coordinator", "RandomWordsRequested", from_block, current_block
    )
    request = next((log for log in requested if log.args.get("requestId") == req_id), None)
    if request is not None:
        args = request.args
        result.update(
            status="PENDING",
            fulfilled=False,
            requestBlock=request.block_number,
            requestTimestamp=timestamp_to_iso(request.timestamp() or 0),
            requestTransactionHash=request.transaction_hash,
            subscriptionId=str(args["subId"]) if args.get("subId") is not None else None,
            callbackGasLimit=args.get("callbackGasLimit"),
            numWords=args.get("numWords"),
            sender=args.get("sender"),
        )
    else:
        result.update(
            status="NOT_FOUND",
            fulfilled=False,
            message=(
                f"Request {req_id} not found in the last {lookback_blocks} blocks; "
                "it may be older or may not exist"
            ),
            searchedBlockRange={"from": from_block, "to": current_block},
        )
    result["timestamp"] = now_iso()
    return result
