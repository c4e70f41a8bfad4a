"""Functions operations: subscriptions, router config, cost estimates and response decoding."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..errors import DecodeError
from ..FeedReader import now_iso
from ..LedgerClient import LedgerClient
from ..networks import functions_don_id
from ..ScaledDecimal import trim_scaled
from .network_utils import parse_uint, service_contract

logger = logging.getLogger(__name__)

LINK_DECIMALS = 18
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

BASE_REQUEST_GAS = 100_000
PREMIUM_PERCENT = 20

RESPONSE_TYPES = ("string", "uint256", "int256", "bytes32", "json", "bytes")


def _router(client: LedgerClient) -> str:
    return service_contract(client, "functions_router", "Chainlink Functions")


def get_functions_subscription(client: LedgerClient, subscription_id: str | int) -> dict[str, Any]:
    """Balance, owner, pending owner transfer and consumers of a Functions subscription."""
    router = _router(client)
    sub_id = parse_uint(subscription_id, "subscription_id")
    balance, owner, requested_owner, consumers = client.read_contract(
        router, "functions_router", "getSubscription", sub_id
    )
    pending = requested_owner if requested_owner != ZERO_ADDRESS else None
    return {
        "subscriptionId": str(sub_id),
        "balance": trim_scaled(balance, LINK_DECIMALS),
        "balanceRaw": str(balance),
        "owner": owner,
        "requestedOwner": pending,
        "hasPendingOwnerTransfer": pending is not None,
        "consumers": list(consumers),
        "consumerCount": len(consumers),
        "donId": functions_don_id(client.network_name),
        "routerAddress": router,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_functions_config(client: LedgerClient) -> dict[str, Any]:
    router = _router(client)
    max_consumers, admin_fee, selector, gas_for_check, callback_limits = client.read_contract(
        router, "functions_router", "getConfig"
    )
    return {
        "maxConsumersPerSubscription": max_consumers,
        "adminFee": trim_scaled(admin_fee, LINK_DECIMALS),
        "handleOracleFulfillmentSelector": "0x" + bytes(selector).hex(),
        "gasForCallExactCheck": gas_for_check,
        "maxCallbackGasLimits": list(callback_limits),
        "donId": functions_don_id(client.network_name),
        "routerAddress": router,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def estimate_functions_cost(client: LedgerClient, callback_gas_limit: int = 300_000) -> dict[str, Any]:
    """Rough request cost: ``(base + callback gas) * gas price`` plus a 20% premium.

    :raises ValueError: If the callback gas limit is not positive.
    """
    if callback_gas_limit <= 0:
        raise ValueError("callback_gas_limit must be positive")
    _router(client)
    gas_price = client.fee_data().get("gas_price") or 0
    total_gas = BASE_REQUEST_GAS + callback_gas_limit
    cost = total_gas * gas_price * (100 + PREMIUM_PERCENT) // 100
    return {
        "callbackGasLimit": callback_gas_limit,
        "gasPriceGwei": trim_scaled(gas_price, 9),
        "estimatedCostNative": trim_scaled(cost, 18),
        "estimatedCostWei": str(cost),
        "breakdown": {
            "baseOverhead": BASE_REQUEST_GAS,
            "callbackGas": callback_gas_limit,
            "totalGas": total_gas,
            "premiumPercent": PREMIUM_PERCENT,
        },
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def _utf8(raw: bytes) -> str | None:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def decode_functions_response(response: str, response_type: str = "string") -> dict[str, Any]:
    """Decode a hex fulfillment payload.

    :param response: ``0x``-prefixed hex returned by the DON.
    :param response_type: One of string, uint256, int256, bytes32, json, bytes.
    :raises ValueError: On an unknown response type.
    :raises DecodeError: If the payload cannot be decoded as that type.
    """
    if response_type not in RESPONSE_TYPES:
        raise ValueError(f"Unknown response type: {response_type}")
    clean = response.removeprefix("0x")
    try:
        raw = bytes.fromhex(clean)
    except ValueError as e:
        raise DecodeError(f"Response is not hex: {response!r}") from e

    text: str | None = None
    value: Any
    if response_type == "string":
        text = _utf8(raw)
        if text is None:
            raise DecodeError("Failed to decode response as string")
        value = text
    elif response_type in ("uint256", "int256"):
        if not raw or len(raw) > 32:
            raise DecodeError(f"Failed to decode response as {response_type}: {len(raw)} bytes")
        number = int.from_bytes(raw, "big")
        if response_type == "int256" and number >= 2**255:
            number -= 2**256
        value = str(number)
    elif response_type == "bytes32":
        value = "0x" + clean[:64].ljust(64, "0")
        decoded = _utf8(raw)
        text = decoded.replace("\0", "") if decoded is not None else None
    elif response_type == "json":
        text = _utf8(raw)
        if text is None:
            raise DecodeError("Failed to decode response as json")
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Failed to decode response as json: {e}") from e
    else:
        value = "0x" + clean

    return {
        "responseType": response_type,
        "rawResponse": response,
        "decodedValue": value,
        "decodedString": text,
        "byteLength": len(raw),
        "timestamp": now_iso(),
    }
