"""LedgerClient: Abstract capability interface for on-chain reads and writes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

# Contract families with an ABI under feedwatch/abis.
CONTRACT_KINDS = (
    "aggregator",
    "vrf_coordinator",
    "automation_registry",
    "link_token",
    "ccip_router",
    "functions_router",
)


@dataclass(frozen=True)
class LogEntry:
    """A decoded event log.

    The block timestamp is not part of the log itself; it is fetched on first
    access through ``timestamp_fn`` and cached.

    :ivar block_number: Block containing the log.
    :ivar transaction_hash: Hex transaction hash (``0x``-prefixed).
    :ivar args: Decoded event arguments.
    :ivar log_index: Position of the log within its block.
    """

    block_number: int
    transaction_hash: str
    args: dict[str, Any]
    log_index: int = 0
    timestamp_fn: Callable[[int], int | None] | None = field(
        default=None, repr=False, compare=False
    )
    _cache: dict[str, int | None] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def timestamp(self) -> int | None:
        """Return the Unix timestamp of the containing block, fetching it once.

        :returns: Block timestamp, or None if no fetcher was attached.
        """
        if "timestamp" not in self._cache:
            if self.timestamp_fn is None:
                return None
            self._cache["timestamp"] = self.timestamp_fn(self.block_number)
        return self._cache["timestamp"]


class LedgerClient(ABC):
    """Abstract base class for ledger client implementations.

    Provides point-in-time contract reads, historical round lookups, event
    log range queries and token transfers. Implementations translate their
    transport errors into :class:`~feedwatch.src.errors.FeedUnavailableError`.

    Round reads return the raw ``(roundId, answer, startedAt, updatedAt,
    answeredInRound)`` sequence; decoding is done by the FeedReader.

    :ivar network_name: Network identifier used in emitted payloads.
    """

    network_name: str = "custom"

    @abstractmethod
    def read_latest_round(self, address: str) -> Sequence[Any]:
        """Call ``latestRoundData()`` on an aggregator.

        :param address: Aggregator contract address.
        :returns: Raw five-field round tuple.
        """
        pass

    @abstractmethod
    def read_round(self, address: str, round_id: int) -> Sequence[Any]:
        """Call ``getRoundData(roundId)`` on an aggregator.

        :param address: Aggregator contract address.
        :param round_id: Full 80-bit round id.
        :returns: Raw five-field round tuple.
        """
        pass

    @abstractmethod
    def read_decimals(self, address: str) -> int:
        """Return the aggregator's ``decimals()``."""
        pass

    @abstractmethod
    def read_description(self, address: str) -> str:
        """Return the aggregator's ``description()``."""
        pass

    @abstractmethod
    def read_version(self, address: str) -> int:
        """Return the aggregator's ``version()``."""
        pass

    @abstractmethod
    def read_contract(self, address: str, contract_kind: str, function_name: str, *args: Any) -> Any:
        """Call a view function of a service contract.

        Used for VRF, automation, CCIP and Functions reads, whose return
        shapes differ per function. Struct outputs come back as tuples in
        ABI field order.

        :param address: Contract address.
        :param contract_kind: One of :data:`CONTRACT_KINDS` (selects the ABI).
        :param function_name: ABI function name, e.g. ``"getSubscription"``.
        :param args: Positional call arguments.
        :returns: Decoded return value.
        """
        pass

    @abstractmethod
    def read_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Return the receipt summary of a mined transaction.

        :param tx_hash: Hex transaction hash.
        :returns: Dict with ``blockNumber`` and ``status`` (1 success, 0 failure),
            or None if the node does not know the transaction.
        """
        pass

    @abstractmethod
    def current_block_number(self) -> int:
        """Return the latest block number."""
        pass

    @abstractmethod
    def read_block_timestamp(self, block_number: int) -> int | None:
        """Return the timestamp of a block, or None if it is unknown."""
        pass

    @abstractmethod
    def query_logs(
        self,
        address: str,
        contract_kind: str,
        event_name: str,
        from_block: int,
        to_block: int,
        argument_filters: dict[str, Any] | None = None,
    ) -> list[LogEntry]:
        """Fetch decoded logs of one event in an inclusive block range.

        :param address: Emitting contract address.
        :param contract_kind: One of :data:`CONTRACT_KINDS` (selects the ABI).
        :param event_name: Event name, e.g. ``"RandomWordsFulfilled"``.
        :param from_block: First block (inclusive).
        :param to_block: Last block (inclusive).
        :param argument_filters: Optional indexed-argument filters.
        :returns: Logs in chain order.
        """
        pass

    @abstractmethod
    def read_token_balance(self, token: str, owner: str) -> int:
        """Return ``balanceOf(owner)`` of an ERC-20 token."""
        pass

    @abstractmethod
    def read_token_decimals(self, token: str) -> int:
        """Return ``decimals()`` of an ERC-20 token."""
        pass

    @abstractmethod
    def transfer_token(self, token: str, to: str, amount: int) -> dict[str, Any]:
        """Transfer ERC-20 tokens from the configured signer and wait for the receipt.

        :param token: Token contract address.
        :param to: Recipient address.
        :param amount: Raw token amount (mantissa).
        :returns: Dict with ``transactionHash``, ``blockNumber``, ``status``
            and ``gasUsed``.
        """
        pass

    @abstractmethod
    def signer_address(self) -> str | None:
        """Return the configured signer address, or None for read-only clients."""
        pass

    @abstractmethod
    def fee_data(self) -> dict[str, int | None]:
        """Return ``gas_price``, ``max_fee_per_gas`` and ``max_priority_fee_per_gas`` in wei."""
        pass

    @abstractmethod
    def get_code(self, address: str) -> bytes:
        """Return the deployed bytecode at an address (empty for EOAs)."""
        pass

    @abstractmethod
    def get_balance(self, address: str) -> int:
        """Return the native balance of an address in wei."""
        pass

    @abstractmethod
    def chain_id(self) -> int:
        """Return the connected chain id."""
        pass
