"""Web3LedgerClient: LedgerClient backed by a web3 HTTP provider."""

from __future__ import annotations

import functools
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    TransactionNotFound,
    Web3Exception,
)
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .errors import FeedUnavailableError, InvalidAddressError, SignerUnavailableError
from .LedgerClient import CONTRACT_KINDS, LedgerClient, LogEntry
from .networks import get_network

logger = logging.getLogger(__name__)

# ABI file (under feedwatch/abis) per contract kind.
ABI_FILES = {
    "aggregator": "AggregatorV3",
    "vrf_coordinator": "VRFCoordinator",
    "automation_registry": "AutomationRegistry",
    "link_token": "LinkToken",
    "ccip_router": "CCIPRouter",
    "functions_router": "FunctionsRouter",
}


@functools.lru_cache(maxsize=None)
def get_abi(contract_name: str) -> list:
    """Load a contract ABI from the abis folder.

    :param contract_name: ABI file stem (e.g., "AggregatorV3").
    :returns: Parsed ABI list.
    """
    abi_path = (Path(__file__).parent.parent / "abis" / f"{contract_name}.json").resolve()
    with open(abi_path, "r") as file:
        return json.load(file)


def checksum(address: str) -> str:
    """Validate and checksum an address.

    Mixed-case input is normalized, not checksum-verified; use
    ``actions.validate_address`` to check an EIP-55 checksum.

    :param address: Hex address in any case.
    :returns: EIP-55 checksummed address.
    :raises InvalidAddressError: If the string is not an address.
    """
    if not isinstance(address, str) or not Web3.is_address(address.lower()):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


class Web3LedgerClient(LedgerClient):
    """Ledger client for EVM networks using web3.py.

    One instance holds one HTTP provider; contract objects are created lazily
    and reused per (kind, address).

    :ivar network_name: Network identifier.
    :ivar rpc_url: RPC endpoint in use.
    :ivar w3: Configured Web3 instance.
    :ivar account: Local signer, or None for read-only use.
    """

    def __init__(
        self,
        network_name: str,
        rpc_url: str | None = None,
        private_key: str | None = None,
        w3: Web3 | None = None,
    ) -> None:
        """Initialize the client.

        :param network_name: Network identifier (see ``networks.NETWORKS``).
        :param rpc_url: Explicit RPC URL. Falls back to the ``RPC_URL`` env var,
            then to the network's default endpoint.
        :param private_key: Optional hex private key enabling token transfers.
        :param w3: Pre-built Web3 instance (mainly for tests).
        :raises ValueError: If no RPC URL can be resolved.
        """
        self.network_name = network_name
        network = get_network(network_name)
        self.rpc_url = rpc_url or os.environ.get("RPC_URL") or (network.rpc_url if network else "")
        if w3 is None and not self.rpc_url:
            raise ValueError(f"No RPC URL configured for network {network_name}")

        self.w3 = w3 or Web3(Web3.HTTPProvider(self.rpc_url))
        self.account: LocalAccount | None = None
        if private_key:
            self.account = Account.from_key(private_key)
            self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self.account))
            self.w3.eth.default_account = self.account.address

        self._contracts: dict[tuple[str, str], Contract] = {}

    def _contract(self, kind: str, address: str) -> Contract:
        if kind not in CONTRACT_KINDS:
            raise ValueError(f"Unknown contract kind '{kind}'. Available: {CONTRACT_KINDS}")
        key = (kind, checksum(address))
        if key not in self._contracts:
            self._contracts[key] = self.w3.eth.contract(
                address=key[1], abi=get_abi(ABI_FILES[kind])
            )
        return self._contracts[key]

    @contextmanager
    def _ledger_call(self, what: str, address: str | None = None) -> Iterator[None]:
        """Translate web3 and transport failures into FeedUnavailableError."""
        try:
            yield
        except ContractLogicError as e:
            raise FeedUnavailableError(f"{what} reverted: {e}", address) from e
        except BadFunctionCallOutput as e:
            raise FeedUnavailableError(
                f"{what} returned no data; is there a contract at {address} "
                f"on {self.network_name}?",
                address,
            ) from e
        except (Web3Exception, OSError) as e:
            raise FeedUnavailableError(f"{what} failed: {e}", address) from e

    def read_latest_round(self, address: str) -> Sequence[Any]:
        contract = self._contract("aggregator", address)
        with self._ledger_call("latestRoundData", address):
            return contract.functions.latestRoundData().call()

    def read_round(self, address: str, round_id: int) -> Sequence[Any]:
        contract = self._contract("aggregator", address)
        with self._ledger_call(f"getRoundData({round_id})", address):
            return contract.functions.getRoundData(round_id).call()

    def read_decimals(self, address: str) -> int:
        contract = self._contract("aggregator", address)
        with self._ledger_call("decimals", address):
            return contract.functions.decimals().call()

    def read_description(self, address: str) -> str:
        contract = self._contract("aggregator", address)
        with self._ledger_call("description", address):
            return contract.functions.description().call()

    def read_version(self, address: str) -> int:
        contract = self._contract("aggregator", address)
        with self._ledger_call("version", address):
            return contract.functions.version().call()

    def read_contract(self, address: str, contract_kind: str, function_name: str, *args: Any) -> Any:
        contract = self._contract(contract_kind, address)
        with self._ledger_call(function_name, address):
            return getattr(contract.functions, function_name)(*args).call()

    def read_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        with self._ledger_call(f"eth_getTransactionReceipt({tx_hash})"):
            try:
                receipt = self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                return None
        return {"blockNumber": receipt["blockNumber"], "status": receipt["status"]}

    def current_block_number(self) -> int:
        with self._ledger_call("eth_blockNumber"):
            return self.w3.eth.block_number

    def read_block_timestamp(self, block_number: int) -> int | None:
        with self._ledger_call(f"eth_getBlockByNumber({block_number})"):
            block = self.w3.eth.get_block(block_number)
        return block.get("timestamp") if block else None

    def query_logs(
        self,
        address: str,
        contract_kind: str,
        event_name: str,
        from_block: int,
        to_block: int,
        argument_filters: dict[str, Any] | None = None,
    ) -> list[LogEntry]:
        contract = self._contract(contract_kind, address)
        event = getattr(contract.events, event_name)
        with self._ledger_call(f"{event_name} logs [{from_block}, {to_block}]", address):
            raw_logs = event().get_logs(
                argument_filters=argument_filters,
                from_block=from_block,
                to_block=to_block,
            )

        logger.debug(
            f"{event_name}@{address}: {len(raw_logs)} logs in [{from_block}, {to_block}]"
        )
        return [
            LogEntry(
                block_number=log["blockNumber"],
                transaction_hash=Web3.to_hex(log["transactionHash"]),
                args=dict(log["args"]),
                log_index=log.get("logIndex", 0),
                timestamp_fn=self.read_block_timestamp,
            )
            for log in raw_logs
        ]

    def read_token_balance(self, token: str, owner: str) -> int:
        contract = self._contract("link_token", token)
        owner = checksum(owner)
        with self._ledger_call("balanceOf", token):
            return contract.functions.balanceOf(owner).call()

    def read_token_decimals(self, token: str) -> int:
        contract = self._contract("link_token", token)
        with self._ledger_call("decimals", token):
            return contract.functions.decimals().call()

    def transfer_token(self, token: str, to: str, amount: int) -> dict[str, Any]:
        if self.account is None:
            raise SignerUnavailableError("Token transfer requires a configured private key")

        contract = self._contract("link_token", token)
        recipient = checksum(to)
        with self._ledger_call("transfer", token):
            tx_hash = contract.functions.transfer(recipient, amount).transact(
                {"from": self.account.address}
            )
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)

        logger.info(
            f"Transfer of {amount} to {recipient} mined in block "
            f"{receipt['blockNumber']} (status={receipt['status']})"
        )
        return {
            "transactionHash": Web3.to_hex(receipt["transactionHash"]),
            "blockNumber": receipt["blockNumber"],
            "status": "success" if receipt["status"] == 1 else "failed",
            "gasUsed": receipt["gasUsed"],
        }

    def signer_address(self) -> str | None:
        return self.account.address if self.account else None

    def fee_data(self) -> dict[str, int | None]:
        with self._ledger_call("fee data"):
            gas_price = self.w3.eth.gas_price
            latest = self.w3.eth.get_block("latest")

        base_fee = latest.get("baseFeePerGas")
        max_priority_fee: int | None = None
        max_fee: int | None = None
        if base_fee is not None:
            try:
                max_priority_fee = self.w3.eth.max_priority_fee
            except (Web3Exception, OSError) as e:
                logger.debug(f"eth_maxPriorityFeePerGas unavailable: {e}")
            if max_priority_fee is not None:
                max_fee = base_fee * 2 + max_priority_fee

        return {
            "gas_price": gas_price,
            "max_fee_per_gas": max_fee,
            "max_priority_fee_per_gas": max_priority_fee,
        }

    def get_code(self, address: str) -> bytes:
        address = checksum(address)
        with self._ledger_call("eth_getCode", address):
            return bytes(self.w3.eth.get_code(address))

    def get_balance(self, address: str) -> int:
        address = checksum(address)
        with self._ledger_call("eth_getBalance", address):
            return self.w3.eth.get_balance(address)

    def chain_id(self) -> int:
        with self._ledger_call("eth_chainId"):
            return self.w3.eth.chain_id
