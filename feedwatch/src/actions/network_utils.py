"""Network utilities: unit conversion, address checks, gas and chain status."""

from __future__ import annotations

from typing import Any

from web3 import Web3

from ..errors import FeedUnavailableError
from ..FeedReader import FeedReader, now_iso, timestamp_to_iso
from ..LedgerClient import LedgerClient
from ..networks import get_network, get_price_feed, native_pair
from ..ScaledDecimal import convert_unit, trim_scaled


def parse_uint(value: str | int, name: str) -> int:
    """Parse a decimal or ``0x`` hex id (subscription, upkeep, request).

    :raises ValueError: If the value is not a non-negative integer.
    """
    try:
        number = value if isinstance(value, int) else int(str(value).strip(), 0)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e
    if number < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    return number


def service_contract(client: LedgerClient, attribute: str, label: str) -> str:
    """Address of a network service contract such as the VRF coordinator.

    :param attribute: NetworkConfig field, e.g. ``"ccip_router"``.
    :param label: Service name used in the error message.
    :raises FeedUnavailableError: If the network has no such contract.
    """
    network = get_network(client.network_name)
    address = getattr(network, attribute, None) if network else None
    if not address:
        raise FeedUnavailableError(f"{label} not available on {client.network_name}")
    return address


def convert_units(value: str, from_unit: str = "ether", to_unit: str = "wei") -> dict[str, Any]:
    """Convert an amount between EVM denominations.

    :raises InvalidUnitError: If either unit is unknown.
    :raises ValueError: If value is not a decimal number.
    """
    return {
        "input": {"value": value, "unit": from_unit},
        "output": {"value": convert_unit(value, from_unit, to_unit), "unit": to_unit},
        "inWei": convert_unit(value, from_unit, "wei"),
        "timestamp": now_iso(),
    }


def validate_address(address: str, client: LedgerClient | None = None) -> dict[str, Any]:
    """Check an address and return its checksummed form.

    With a client, also reports whether code is deployed at the address.
    """
    is_valid = Web3.is_address(address)
    checksummed = Web3.to_checksum_address(address) if is_valid else None
    is_checksum_valid = is_valid and address == checksummed

    if not is_valid:
        notes = "Invalid Ethereum address format"
    elif is_checksum_valid:
        notes = "Address is valid and properly checksummed"
    else:
        notes = "Address is valid but not checksummed - use checksummed version"

    result: dict[str, Any] = {
        "originalAddress": address,
        "isValid": is_valid,
        "checksummedAddress": checksummed,
        "isProperlyChecksummed": is_checksum_valid,
        "addressType": "EOA or Contract" if is_valid else "Invalid",
        "notes": notes,
    }
    if client is not None and checksummed:
        code = client.get_code(checksummed)
        result["isContract"] = len(code) > 0
        result["codeSize"] = len(code)
        result["addressType"] = "Contract" if code else "EOA"
        result["network"] = client.network_name
    result["timestamp"] = now_iso()
    return result


def get_gas_price(client: LedgerClient) -> dict[str, Any]:
    """Current gas price and EIP-1559 fees, in gwei."""
    fees = client.fee_data()
    gas_price = fees.get("gas_price") or 0
    max_fee = fees.get("max_fee_per_gas")
    max_priority = fees.get("max_priority_fee_per_gas")
    return {
        "gasPrice": {"gwei": trim_scaled(gas_price, 9), "wei": str(gas_price)},
        "eip1559": (
            {
                "maxFeePerGas": trim_scaled(max_fee, 9),
                "maxPriorityFeePerGas": (
                    trim_scaled(max_priority, 9) if max_priority is not None else None
                ),
            }
            if max_fee is not None
            else None
        ),
        "supportsEIP1559": max_fee is not None,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_native_price(client: LedgerClient) -> dict[str, Any]:
    """USD price of the network's native gas token (ETH, MATIC, AVAX or BNB).

    :raises FeedUnavailableError: If the network has no preset feed for the pair.
    """
    symbol, pair = native_pair(client.network_name)
    info = get_price_feed(client.network_name, pair)
    if info is None:
        raise FeedUnavailableError(f"{pair} price feed not available on {client.network_name}")

    rnd = FeedReader(client).latest_round(info.address)
    return {
        "nativeToken": symbol,
        "pair": pair,
        "price": trim_scaled(rnd.answer, rnd.decimals),
        "priceRaw": str(rnd.answer),
        "decimals": rnd.decimals,
        "roundId": str(rnd.round_id),
        "updatedAt": timestamp_to_iso(rnd.updated_at),
        "feedAddress": info.address,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_network_status(client: LedgerClient) -> dict[str, Any]:
    """Chain id, head block and the Chainlink contracts known for the network."""
    network = get_network(client.network_name)
    block_number = client.current_block_number()
    block_timestamp = client.read_block_timestamp(block_number)
    fees = client.fee_data()
    return {
        "network": client.network_name,
        "networkName": network.name if network else "Unknown",
        "chainId": client.chain_id(),
        "isTestnet": network.is_testnet if network else False,
        "currentBlock": block_number,
        "blockTimestamp": timestamp_to_iso(block_timestamp or 0),
        "gasPrice": trim_scaled(fees["gas_price"], 9) if fees.get("gas_price") else None,
        "supportsEIP1559": fees.get("max_fee_per_gas") is not None,
        "chainlinkContracts": {
            "linkToken": network.link_token if network else None,
            "vrfCoordinator": network.vrf_coordinator if network else None,
            "automationRegistry": network.automation_registry if network else None,
            "ccipRouter": network.ccip_router if network else None,
            "functionsRouter": network.functions_router if network else None,
        },
        "explorerUrl": network.explorer_url if network else None,
        "timestamp": now_iso(),
    }
