"""Log scan detectors: VRF fulfillments and automation upkeeps.

Both scan an inclusive block window for one contract event:

- The window starts at ``last_block + 1`` once a cursor exists, otherwise at
  ``max(current_block - lookback_blocks, 0)``; logs in that first window are
  emitted too.
- The window ends at the current block, and ``last_block`` advances to it
  even when no logs were found. It never moves backward when a node reports
  an older head.
- When the chain has not moved (start past end), no query is made.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from ..errors import DetectorConfigError
from ..FeedReader import timestamp_to_iso
from ..LedgerClient import LogEntry
from ..networks import get_network
from ..ScaledDecimal import trim_scaled
from .base import BaseDetector, DetectorResult, address_param, int_param, register_detector

if TYPE_CHECKING:
    from ..FeedReader import FeedReader
    from ..LedgerClient import LedgerClient

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_BLOCKS = 1000


@dataclass(frozen=True)
class LogWindow:
    """Logs found in ``[from_block, current_block]``."""

    from_block: int
    current_block: int
    logs: list[LogEntry] = field(default_factory=list)


class LogScanDetector(BaseDetector):
    """Shared window logic for event-log detectors.

    :cvar contract_kind: Ledger contract kind selecting the ABI.
    :cvar event_name: Contract event to query.
    :ivar contract_address: Emitting contract.
    :ivar lookback_blocks: Size of the first window.
    """

    contract_kind: ClassVar[str] = ""
    event_name: ClassVar[str] = ""

    def __init__(
        self,
        contract_address: str,
        lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS,
        network: str = "custom",
    ) -> None:
        super().__init__(network)
        self.contract_address = contract_address
        self.lookback_blocks = lookback_blocks

    def argument_filters(self) -> dict[str, Any] | None:
        return None

    def observe(self, ledger: LedgerClient, reader: FeedReader, cursor: Mapping[str, Any]) -> LogWindow:
        current_block = ledger.current_block_number()
        last_block = cursor.get("last_block")
        if last_block is not None:
            from_block = int(last_block) + 1
        else:
            from_block = max(current_block - self.lookback_blocks, 0)

        if from_block > current_block:
            return LogWindow(from_block, current_block)

        logs = ledger.query_logs(
            self.contract_address,
            self.contract_kind,
            self.event_name,
            from_block,
            current_block,
            self.argument_filters(),
        )
        return LogWindow(from_block, current_block, logs)

    def evaluate(self, observation: LogWindow, cursor: Mapping[str, Any], now: int) -> DetectorResult:
        last_block = observation.current_block
        if cursor.get("last_block") is not None:
            # A lagging RPC head must not move the cursor backward.
            last_block = max(int(cursor["last_block"]), last_block)
        next_cursor = {**cursor, "last_block": last_block}
        events = [
            self.make_event(
                now,
                **self.log_fields(log),
                blockNumber=log.block_number,
                transactionHash=log.transaction_hash,
                blockTimestamp=timestamp_to_iso(log.timestamp() or 0),
            )
            for log in observation.logs
        ]
        if events:
            logger.info(
                f"{self.event}: {len(events)} events in blocks "
                f"[{observation.from_block}, {observation.current_block}]"
            )
        return DetectorResult(events, next_cursor)

    @abstractmethod
    def log_fields(self, log: LogEntry) -> dict[str, Any]:
        """Event-specific payload fields extracted from a log."""
        pass


def _contract_address(
    params: Mapping[str, Any], key: str, network: str, attribute: str, label: str
) -> str:
    if params.get(key):
        return address_param(params, key)
    config = get_network(network)
    address = getattr(config, attribute, None) if config else None
    if not address:
        raise DetectorConfigError(f"{label} not available on {network}; set '{key}'")
    return address


@register_detector
class VrfFulfilledDetector(LogScanDetector):
    """Emits ``vrfFulfilled`` for each ``RandomWordsFulfilled`` log of the coordinator."""

    event = "vrfFulfilled"
    contract_kind = "vrf_coordinator"
    event_name = "RandomWordsFulfilled"
    PARAMS = frozenset({"coordinator_address", "lookback_blocks"})

    @classmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> VrfFulfilledDetector:
        cls.check_params(params)
        return cls(
            contract_address=_contract_address(
                params, "coordinator_address", network, "vrf_coordinator", "VRF"
            ),
            lookback_blocks=int_param(params, "lookback_blocks", DEFAULT_LOOKBACK_BLOCKS),
            network=network,
        )

    def log_fields(self, log: LogEntry) -> dict[str, Any]:
        request_id = log.args.get("requestId")
        random_words = log.args.get("randomWords")
        return {
            "requestId": str(request_id) if request_id is not None else None,
            "randomWords": [str(w) for w in random_words] if random_words is not None else None,
        }


@register_detector
class UpkeepPerformedDetector(LogScanDetector):
    """Emits ``upkeepPerformed`` for each ``UpkeepPerformed`` log of the registry.

    :ivar upkeep_id: Upkeep to filter on, or None for every upkeep.
    """

    event = "upkeepPerformed"
    contract_kind = "automation_registry"
    event_name = "UpkeepPerformed"
    PARAMS = frozenset({"registry_address", "upkeep_id", "lookback_blocks"})

    def __init__(
        self,
        contract_address: str,
        upkeep_id: int | None = None,
        lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS,
        network: str = "custom",
    ) -> None:
        super().__init__(contract_address, lookback_blocks, network)
        self.upkeep_id = upkeep_id

    @classmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> UpkeepPerformedDetector:
        cls.check_params(params)
        upkeep_id = params.get("upkeep_id")
        if upkeep_id is not None and upkeep_id != "":
            try:
                upkeep_id = int(str(upkeep_id), 0)
            except ValueError as e:
                raise DetectorConfigError(f"'upkeep_id' must be an integer, got {upkeep_id!r}") from e
        else:
            upkeep_id = None
        return cls(
            contract_address=_contract_address(
                params, "registry_address", network, "automation_registry", "Automation"
            ),
            upkeep_id=upkeep_id,
            lookback_blocks=int_param(params, "lookback_blocks", DEFAULT_LOOKBACK_BLOCKS),
            network=network,
        )

    def argument_filters(self) -> dict[str, Any] | None:
        if self.upkeep_id is None:
            return None
        return {"id": self.upkeep_id}

    def log_fields(self, log: LogEntry) -> dict[str, Any]:
        upkeep_id = log.args.get("id", self.upkeep_id)
        total_payment = log.args.get("totalPayment")
        gas_used = log.args.get("gasUsed")
        return {
            "upkeepId": str(upkeep_id) if upkeep_id is not None else None,
            "success": log.args.get("success"),
            "totalPayment": trim_scaled(total_payment, 18) if total_payment is not None else None,
            "gasUsed": str(gas_used) if gas_used is not None else None,
        }
