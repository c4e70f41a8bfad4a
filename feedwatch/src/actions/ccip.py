"""CCIP operations: lanes, fee estimates and message tracking."""

from __future__ import annotations

import logging
from typing import Any

from eth_abi import encode
from web3 import Web3

from ..errors import FeedUnavailableError, InvalidAddressError
from ..FeedReader import now_iso
from ..LedgerClient import LedgerClient
from ..networks import CCIP_CHAIN_SELECTORS, CCIP_LANES
from ..ScaledDecimal import trim_scaled
from .network_utils import service_contract

logger = logging.getLogger(__name__)

CCIP_EXPLORER_URL = "https://ccip.chain.link"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_GAS_LIMIT = 200_000

# bytes4(keccak256("CCIP EVMExtraArgsV1"))
EVM_EXTRA_ARGS_V1_TAG = bytes.fromhex("97a657c9")


def _router(client: LedgerClient) -> str:
    return service_contract(client, "ccip_router", "CCIP Router")


def _selector(destination: str) -> int:
    """Chain selector for a network identifier or a raw numeric selector."""
    chain = CCIP_CHAIN_SELECTORS.get(destination)
    if chain is not None:
        return chain.selector
    try:
        return int(destination, 0)
    except ValueError:
        raise ValueError(f"Unknown CCIP destination: {destination}") from None


def extra_args_v1(gas_limit: int) -> bytes:
    """EVMExtraArgsV1 payload: the 4-byte tag followed by the ABI-encoded gas limit."""
    return EVM_EXTRA_ARGS_V1_TAG + encode(["uint256"], [gas_limit])


def list_ccip_chain_selectors(testnets: bool | None = None) -> dict[str, Any]:
    """All known CCIP chain selectors, optionally only main or test networks."""
    chains = [
        {
            "network": key,
            "name": chain.name,
            "chainSelector": str(chain.selector),
            "isTestnet": chain.is_testnet,
        }
        for key, chain in CCIP_CHAIN_SELECTORS.items()
        if testnets is None or chain.is_testnet == testnets
    ]
    return {
        "chains": chains,
        "count": len(chains),
        "explorerUrl": CCIP_EXPLORER_URL,
        "timestamp": now_iso(),
    }


def get_ccip_lanes(client: LedgerClient) -> dict[str, Any]:
    """Published destinations of this network confirmed by the router.

    Destinations whose support check fails are left out rather than
    failing the whole listing.
    """
    router = _router(client)
    lanes = []
    for destination in CCIP_LANES.get(client.network_name, ()):
        chain = CCIP_CHAIN_SELECTORS[destination]
        try:
            supported = client.read_contract(router, "ccip_router", "isChainSupported", chain.selector)
        except FeedUnavailableError as e:
            logger.warning(f"Skipping CCIP lane {client.network_name} -> {destination}: {e}")
            continue
        if supported:
            lanes.append({
                "destination": destination,
                "name": chain.name,
                "chainSelector": str(chain.selector),
            })
    return {
        "source": client.network_name,
        "routerAddress": router,
        "lanes": lanes,
        "laneCount": len(lanes),
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def check_ccip_lane(client: LedgerClient, destination: str) -> dict[str, Any]:
    """Whether the router can send to ``destination``, with its transferable tokens."""
    router = _router(client)
    selector = _selector(destination)
    supported = client.read_contract(router, "ccip_router", "isChainSupported", selector)
    tokens: list[str] = []
    if supported:
        try:
            tokens = list(client.read_contract(router, "ccip_router", "getSupportedTokens", selector))
        except FeedUnavailableError as e:
            logger.debug(f"getSupportedTokens failed for {destination}: {e}")
    return {
        "source": client.network_name,
        "destination": destination,
        "chainSelector": str(selector),
        "isSupported": bool(supported),
        "supportedTokens": tokens,
        "routerAddress": router,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def estimate_ccip_fee(
    client: LedgerClient,
    destination: str,
    receiver: str,
    data: str = "0x",
    gas_limit: int = DEFAULT_GAS_LIMIT,
) -> dict[str, Any]:
    """Router fee for a message to ``receiver`` on ``destination``, paid in the native token.

    :param data: Hex payload of the message.
    :raises InvalidAddressError: If the receiver is not an address.
    :raises ValueError: On an unknown destination, bad payload or gas limit.
    """
    if not Web3.is_address(receiver):
        raise InvalidAddressError(f"Invalid receiver address: {receiver}", receiver)
    if gas_limit <= 0:
        raise ValueError("gas_limit must be positive")
    router = _router(client)
    selector = _selector(destination)
    payload = bytes.fromhex(data.removeprefix("0x"))

    message = (
        encode(["address"], [Web3.to_checksum_address(receiver)]),
        payload,
        (),
        ZERO_ADDRESS,
        extra_args_v1(gas_limit),
    )
    fee = client.read_contract(router, "ccip_router", "getFee", selector, message)
    return {
        "source": client.network_name,
        "destination": destination,
        "chainSelector": str(selector),
        "receiver": Web3.to_checksum_address(receiver),
        "gasLimit": gas_limit,
        "fee": trim_scaled(fee, 18),
        "feeRaw": str(fee),
        "feeToken": "native",
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_ccip_message_status(
    client: LedgerClient, message_id: str, source_tx_hash: str | None = None
) -> dict[str, Any]:
    """Tracking link for a message, plus its source transaction when given.

    Destination execution state lives off-chain in the CCIP explorer.
    """
    result: dict[str, Any] = {
        "messageId": message_id,
        "trackingUrl": f"{CCIP_EXPLORER_URL}/msg/{message_id}",
        "source": None,
        "network": client.network_name,
    }
    if source_tx_hash:
        receipt = client.read_transaction_receipt(source_tx_hash)
        if receipt is None:
            result["source"] = {"transactionHash": source_tx_hash, "status": "NOT_FOUND"}
        else:
            result["source"] = {
                "transactionHash": source_tx_hash,
                "blockNumber": receipt["blockNumber"],
                "status": "SUCCESS" if receipt["status"] == 1 else "FAILED",
            }
    result["timestamp"] = now_iso()
    return result
