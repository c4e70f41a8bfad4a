"""LINK token operations: balance, price and transfers."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import FeedUnavailableError, SignerUnavailableError, WatcherError
from ..FeedReader import FeedReader, now_iso, timestamp_to_iso
from ..LedgerClient import LedgerClient
from ..networks import get_network, get_price_feed
from ..ScaledDecimal import ScaledDecimal, format_scaled, parse_scaled, trim_scaled
from ..Web3LedgerClient import checksum

logger = logging.getLogger(__name__)

LINK_DECIMALS = 18


def _link_token(client: LedgerClient) -> str:
    network = get_network(client.network_name)
    if network is None or not network.link_token:
        raise FeedUnavailableError(f"LINK token not configured for {client.network_name}")
    return network.link_token


def get_link_price(client: LedgerClient) -> dict[str, Any]:
    """LINK/USD price from the network's preset feed.

    :raises FeedUnavailableError: If the network has no LINK/USD feed.
    """
    info = get_price_feed(client.network_name, "LINK/USD")
    if info is None:
        raise FeedUnavailableError(f"LINK/USD price feed not available on {client.network_name}")

    rnd = FeedReader(client).latest_round(info.address)
    return {
        "price": trim_scaled(rnd.answer, rnd.decimals),
        "priceRaw": str(rnd.answer),
        "decimals": rnd.decimals,
        "pair": "LINK/USD",
        "roundId": str(rnd.round_id),
        "updatedAt": timestamp_to_iso(rnd.updated_at),
        "feedAddress": info.address,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_link_balance(client: LedgerClient, address: str | None = None) -> dict[str, Any]:
    """LINK balance of an address, valued in USD when a LINK/USD feed exists.

    :param address: Holder; defaults to the configured signer.
    :raises SignerUnavailableError: If no address is given and no signer is set.
    """
    token = _link_token(client)
    if address:
        address = checksum(address)
    else:
        address = client.signer_address()
        if not address:
            raise SignerUnavailableError("No address provided and no private key configured")

    balance = client.read_token_balance(token, address)
    decimals = client.read_token_decimals(token)

    link_price: str | None = None
    balance_usd: str | None = None
    info = get_price_feed(client.network_name, "LINK/USD")
    if info is not None:
        try:
            rnd = FeedReader(client).latest_round(info.address)
        except WatcherError as e:
            logger.debug(f"LINK/USD feed unavailable: {e}")
        else:
            link_price = trim_scaled(rnd.answer, rnd.decimals)
            value = ScaledDecimal(balance, decimals) * rnd.price
            balance_usd = str(value.rescale(2))

    return {
        "address": address,
        "balance": trim_scaled(balance, decimals),
        "balanceRaw": str(balance),
        "decimals": decimals,
        "balanceUSD": balance_usd,
        "linkPriceUSD": link_price,
        "tokenAddress": token,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def transfer_link(client: LedgerClient, to: str, amount: str) -> dict[str, Any]:
    """Transfer LINK from the configured signer.

    :param to: Recipient address.
    :param amount: Decimal LINK amount, e.g. ``"1.5"``.
    :raises SignerUnavailableError: If no private key is configured.
    :raises WatcherError: If the balance is insufficient.
    """
    sender = client.signer_address()
    if not sender:
        raise SignerUnavailableError("Private key required for LINK transfers")

    token = _link_token(client)
    recipient = checksum(to)
    amount_raw = parse_scaled(amount, LINK_DECIMALS)
    if amount_raw <= 0:
        raise ValueError(f"Transfer amount must be positive, got {amount!r}")

    balance = client.read_token_balance(token, sender)
    if balance < amount_raw:
        raise WatcherError(
            f"Insufficient LINK balance. Have: {format_scaled(balance, LINK_DECIMALS)}, "
            f"Need: {amount}"
        )

    logger.info(f"Transferring {amount} LINK from {sender} to {recipient}")
    receipt = client.transfer_token(token, recipient, amount_raw)

    network = get_network(client.network_name)
    explorer_url = (
        f"{network.explorer_url}/tx/{receipt['transactionHash']}" if network else None
    )
    return {
        "success": receipt["status"] == "success",
        "transactionHash": receipt["transactionHash"],
        "from": sender,
        "to": recipient,
        "amount": amount,
        "amountRaw": str(amount_raw),
        "blockNumber": receipt["blockNumber"],
        "gasUsed": str(receipt["gasUsed"]),
        "network": client.network_name,
        "explorerUrl": explorer_url,
        "timestamp": now_iso(),
    }
