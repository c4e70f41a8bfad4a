"""Automation operations: upkeep details and funding health."""

from __future__ import annotations

import logging
from typing import Any

from ..FeedReader import now_iso
from ..LedgerClient import LedgerClient
from ..ScaledDecimal import trim_scaled
from .network_utils import parse_uint, service_contract

logger = logging.getLogger(__name__)

LINK_DECIMALS = 18

# maxValidBlocknumber of an upkeep that was never cancelled.
UINT32_MAX = 2**32 - 1


def _registry(client: LedgerClient) -> str:
    return service_contract(client, "automation_registry", "Automation Registry")


def upkeep_status(paused: bool, max_valid_block: int) -> str:
    """ACTIVE, PAUSED or CANCELLED from the registry's upkeep flags."""
    if 0 < max_valid_block < UINT32_MAX:
        return "CANCELLED"
    return "PAUSED" if paused else "ACTIVE"


def get_upkeep_info(client: LedgerClient, upkeep_id: str | int) -> dict[str, Any]:
    """Registration details of an upkeep.

    :param upkeep_id: Upkeep id (decimal or ``0x`` hex).
    :raises FeedUnavailableError: If the network has no registry or the
        upkeep is unknown.
    """
    registry = _registry(client)
    uid = parse_uint(upkeep_id, "upkeep_id")
    (
        target,
        perform_gas,
        check_data,
        balance,
        admin,
        max_valid_block,
        last_performed_block,
        amount_spent,
        paused,
        offchain_config,
    ) = client.read_contract(registry, "automation_registry", "getUpkeep", uid)

    status = upkeep_status(paused, max_valid_block)
    logger.debug(f"Upkeep {uid} on {client.network_name} is {status}")
    return {
        "upkeepId": str(uid),
        "target": target,
        "admin": admin,
        "performGas": perform_gas,
        "checkData": "0x" + bytes(check_data).hex(),
        "balance": trim_scaled(balance, LINK_DECIMALS),
        "balanceRaw": str(balance),
        "amountSpent": trim_scaled(amount_spent, LINK_DECIMALS),
        "lastPerformedBlock": last_performed_block,
        "maxValidBlocknumber": str(max_valid_block),
        "paused": paused,
        "status": status,
        "offchainConfig": "0x" + bytes(offchain_config).hex(),
        "registryAddress": registry,
        "network": client.network_name,
        "timestamp": now_iso(),
    }


def get_upkeep_balance(client: LedgerClient, upkeep_id: str | int) -> dict[str, Any]:
    """Balance of an upkeep against the registry's minimum.

    ``balanceHealthPercent`` is capped at 100; a zero minimum counts as
    fully healthy. Underfunded upkeeps carry a top-up recommendation.
    """
    registry = _registry(client)
    uid = parse_uint(upkeep_id, "upkeep_id")
    balance = client.read_contract(registry, "automation_registry", "getBalance", uid)
    min_balance = client.read_contract(registry, "automation_registry", "getMinBalance", uid)

    is_healthy = balance >= min_balance
    health = 100 if min_balance == 0 else min(balance * 100 // min_balance, 100)
    deficit = 0 if is_healthy else min_balance - balance

    result: dict[str, Any] = {
        "upkeepId": str(uid),
        "balance": trim_scaled(balance, LINK_DECIMALS),
        "balanceRaw": str(balance),
        "minBalance": trim_scaled(min_balance, LINK_DECIMALS),
        "minBalanceRaw": str(min_balance),
        "isHealthy": is_healthy,
        "balanceHealthPercent": health,
        "deficit": trim_scaled(deficit, LINK_DECIMALS),
        "recommendation": None,
        "network": client.network_name,
        "timestamp": now_iso(),
    }
    if not is_healthy:
        result["recommendation"] = (
            f"Add at least {trim_scaled(deficit, LINK_DECIMALS)} LINK to maintain upkeep"
        )
        logger.warning(f"Upkeep {uid} on {client.network_name} is underfunded by {result['deficit']} LINK")
    return result
