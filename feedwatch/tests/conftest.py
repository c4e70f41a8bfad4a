"""Shared test doubles."""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from feedwatch.src.errors import FeedUnavailableError
from feedwatch.src.FeedReader import FeedReader
from feedwatch.src.LedgerClient import LedgerClient, LogEntry


class FakeLedgerClient(LedgerClient):
    """In-memory LedgerClient with scriptable rounds, logs and failures.

    Addresses are matched case-insensitively.
    """

    def __init__(self, network_name: str = "ethereum-mainnet") -> None:
        self.network_name = network_name
        self.latest: dict[str, tuple[int, int, int, int, int]] = {}
        self.history: dict[tuple[str, int], tuple[int, int, int, int, int]] = {}
        self.decimals: dict[str, int] = {}
        self.descriptions: dict[str, str] = {}
        self.versions: dict[str, int] = {}
        self.block_number = 0
        self.block_timestamps: dict[int, int] = {}
        self.logs: list[tuple[str, str, LogEntry]] = []
        self.log_queries: list[tuple[str, str, int, int, dict | None]] = []
        self.token_balances: dict[tuple[str, str], int] = {}
        self.signer: str | None = None
        self.transfers: list[tuple[str, str, int]] = []
        self.fees: dict[str, int | None] = {
            "gas_price": 25_000_000_000,
            "max_fee_per_gas": 52_000_000_000,
            "max_priority_fee_per_gas": 2_000_000_000,
        }
        self.code: dict[str, bytes] = {}
        self.contract_reads: dict[tuple[str, str, tuple], Any] = {}
        self.receipts: dict[str, dict[str, Any]] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    # Scripting helpers

    def set_round(
        self,
        address: str,
        round_id: int,
        answer: int,
        decimals: int = 8,
        description: str = "ETH / USD",
        started_at: int = 1_700_000_000,
        updated_at: int | None = None,
    ) -> None:
        address = address.lower()
        updated_at = started_at if updated_at is None else updated_at
        raw = (round_id, answer, started_at, updated_at, round_id)
        self.latest[address] = raw
        self.history[(address, round_id)] = raw
        self.decimals[address] = decimals
        self.descriptions[address] = description
        self.versions.setdefault(address, 4)

    def add_log(
        self, address: str, event_name: str, block_number: int, args: dict[str, Any], tx: str = "0xabc"
    ) -> None:
        entry = LogEntry(
            block_number=block_number,
            transaction_hash=tx,
            args=args,
            timestamp_fn=self.read_block_timestamp,
        )
        self.logs.append((address.lower(), event_name, entry))

    def set_read(self, address: str, function_name: str, args: tuple, value: Any) -> None:
        """Script a read_contract result; an exception instance is raised instead."""
        self.contract_reads[(address.lower(), function_name, args)] = value

    def _check(self, address: str) -> str:
        address = address.lower()
        if address in self.failing or "*" in self.failing:
            raise FeedUnavailableError(f"call to {address} failed", address)
        return address

    # LedgerClient

    def read_latest_round(self, address: str) -> Sequence[Any]:
        self.calls.append("read_latest_round")
        address = self._check(address)
        if address not in self.latest:
            raise FeedUnavailableError(f"no contract at {address}", address)
        return self.latest[address]

    def read_round(self, address: str, round_id: int) -> Sequence[Any]:
        address = self._check(address)
        if (address, round_id) not in self.history:
            raise FeedUnavailableError(f"round {round_id} not found", address)
        return self.history[(address, round_id)]

    def read_decimals(self, address: str) -> int:
        return self.decimals[self._check(address)]

    def read_description(self, address: str) -> str:
        return self.descriptions[self._check(address)]

    def read_version(self, address: str) -> int:
        return self.versions[self._check(address)]

    def read_contract(self, address: str, contract_kind: str, function_name: str, *args: Any) -> Any:
        address = self._check(address)
        self.calls.append(f"{contract_kind}.{function_name}")
        key = (address, function_name, args)
        if key not in self.contract_reads:
            raise FeedUnavailableError(f"{function_name}{args} reverted", address)
        value = self.contract_reads[key]
        if isinstance(value, Exception):
            raise value
        return value

    def read_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return self.receipts.get(tx_hash)

    def current_block_number(self) -> int:
        if "*" in self.failing:
            raise FeedUnavailableError("rpc down")
        return self.block_number

    def read_block_timestamp(self, block_number: int) -> int | None:
        self.calls.append(f"block_timestamp:{block_number}")
        return self.block_timestamps.get(block_number)

    def query_logs(
        self,
        address: str,
        contract_kind: str,
        event_name: str,
        from_block: int,
        to_block: int,
        argument_filters: dict[str, Any] | None = None,
    ) -> list[LogEntry]:
        address = self._check(address)
        self.log_queries.append((address, event_name, from_block, to_block, argument_filters))
        return [
            entry
            for log_address, name, entry in self.logs
            if log_address == address
            and name == event_name
            and from_block <= entry.block_number <= to_block
            and all(entry.args.get(k) == v for k, v in (argument_filters or {}).items())
        ]

    def read_token_balance(self, token: str, owner: str) -> int:
        return self.token_balances.get((token.lower(), owner.lower()), 0)

    def read_token_decimals(self, token: str) -> int:
        return 18

    def transfer_token(self, token: str, to: str, amount: int) -> dict[str, Any]:
        self.transfers.append((token, to, amount))
        return {
            "transactionHash": "0x" + "ab" * 32,
            "blockNumber": self.block_number,
            "status": "success",
            "gasUsed": 51_000,
        }

    def signer_address(self) -> str | None:
        return self.signer

    def fee_data(self) -> dict[str, int | None]:
        return dict(self.fees)

    def get_code(self, address: str) -> bytes:
        return self.code.get(address.lower(), b"")

    def get_balance(self, address: str) -> int:
        return 0

    def chain_id(self) -> int:
        return 1


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def reader(ledger: FakeLedgerClient) -> FeedReader:
    return FeedReader(ledger)


@pytest.fixture
def make_ledger() -> type[FakeLedgerClient]:
    """Factory for ledgers on other networks."""
    return FakeLedgerClient
