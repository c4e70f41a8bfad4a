"""Base detector interface and the detector registry.

A detector turns successive observations of on-chain state into discrete
events. Each poll is split in two halves:

- ``observe()`` performs all ledger I/O and returns an observation.
- ``evaluate()`` is pure: given the observation, the stored cursor and the
  current time it returns the events to emit and the cursor to persist.

An empty cursor means the subscription has never polled; the first poll only
seeds the cursor and never emits.

.. code-block:: python

    @register_detector
    class MyDetector(BaseDetector):
        event = "myEvent"
        PARAMS = frozenset({"feed_address"})

        @classmethod
        def from_params(cls, params, network="custom"):
            cls.check_params(params)
            return cls(resolve_feed_address(params, network), network=network)

        def observe(self, ledger, reader, cursor):
            return reader.latest(self.feed_address)

        def evaluate(self, observation, cursor, now):
            ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from ..errors import DetectorConfigError, InvalidAddressError
from ..FeedReader import timestamp_to_iso
from ..networks import get_price_feed
from ..ScaledDecimal import ScaledDecimal
from ..Web3LedgerClient import checksum

if TYPE_CHECKING:
    from ..FeedReader import FeedReader
    from ..LedgerClient import LedgerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorResult:
    """Outcome of one evaluation.

    :ivar events: Event payloads to deliver, in emission order.
    :ivar cursor: Cursor to persist for the next poll.
    """

    events: list[dict[str, Any]] = field(default_factory=list)
    cursor: dict[str, Any] = field(default_factory=dict)


class BaseDetector(ABC):
    """Abstract base class for event detectors.

    Subclasses must implement:
        - event: Class variable with the emitted event name (e.g., "priceUpdate")
        - PARAMS: Class variable with the recognized configuration keys
        - from_params(): Build an instance from a configuration mapping
        - observe(): Read the ledger
        - evaluate(): Compute events and the next cursor

    :cvar event: Event name, also the registry key.
    :cvar PARAMS: Configuration keys accepted by from_params().
    :ivar network: Network identifier copied into every payload.
    """

    event: ClassVar[str] = ""
    PARAMS: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, network: str = "custom") -> None:
        self.network = network

    @classmethod
    def check_params(cls, params: Mapping[str, Any]) -> None:
        """Reject configuration keys the detector does not recognize.

        :raises DetectorConfigError: On unknown keys.
        """
        unknown = sorted(set(params) - cls.PARAMS)
        if unknown:
            raise DetectorConfigError(
                f"Unknown parameters for {cls.event}: {unknown}. "
                f"Recognized: {sorted(cls.PARAMS)}"
            )

    @classmethod
    @abstractmethod
    def from_params(cls, params: Mapping[str, Any], network: str = "custom") -> BaseDetector:
        """Build a detector from a configuration mapping.

        :param params: Detector parameters (subscription fields minus name/event).
        :param network: Network identifier, used to resolve presets.
        :returns: Configured detector.
        :raises DetectorConfigError: If the configuration is invalid.
        """
        pass

    @abstractmethod
    def observe(self, ledger: LedgerClient, reader: FeedReader, cursor: Mapping[str, Any]) -> Any:
        """Read everything evaluate() needs from the ledger.

        :raises FeedUnavailableError: If a ledger read fails.
        :raises DecodeError: If on-chain data is malformed.
        """
        pass

    @abstractmethod
    def evaluate(self, observation: Any, cursor: Mapping[str, Any], now: int) -> DetectorResult:
        """Compare an observation against the cursor.

        :param observation: Value returned by observe().
        :param cursor: Stored cursor (empty on the first poll). Not mutated.
        :param now: Current Unix time.
        :returns: Events to emit and the cursor to persist.
        """
        pass

    def make_event(self, now: int, **fields: Any) -> dict[str, Any]:
        """Build a payload with the common ``event``, ``network`` and ``timestamp`` keys."""
        return {
            "event": self.event,
            **fields,
            "network": self.network,
            "timestamp": timestamp_to_iso(now),
        }


def address_param(params: Mapping[str, Any], key: str) -> str:
    """Read and checksum an address parameter.

    :raises DetectorConfigError: If the value is not an address.
    """
    try:
        return checksum(params[key])
    except InvalidAddressError as e:
        raise DetectorConfigError(f"'{key}': {e}") from e


def decimal_param(
    params: Mapping[str, Any], key: str, default: str | None = None
) -> ScaledDecimal:
    """Read a decimal parameter given as str, int or float.

    :raises DetectorConfigError: If the value is missing or not a number.
    """
    value = params.get(key, default)
    if value is None:
        raise DetectorConfigError(f"'{key}' is required")
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise DetectorConfigError(f"'{key}' must be a number, got {value!r}")
    try:
        return ScaledDecimal.from_string(str(value))
    except ValueError as e:
        raise DetectorConfigError(f"'{key}' must be a number, got {value!r}") from e


def int_param(params: Mapping[str, Any], key: str, default: int) -> int:
    """Read a non-negative integer parameter.

    :raises DetectorConfigError: If the value is negative or not an integer.
    """
    value = params.get(key, default)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DetectorConfigError(f"'{key}' must be a non-negative integer, got {value!r}")
    return value


def resolve_feed_address(params: Mapping[str, Any], network: str) -> str:
    """Resolve ``feed_address`` or a preset ``feed`` pair (e.g. ``"ETH/USD"``).

    :raises DetectorConfigError: If neither is given or the preset is unknown.
    """
    if params.get("feed_address"):
        return address_param(params, "feed_address")
    pair = params.get("feed")
    if pair:
        info = get_price_feed(network, str(pair))
        if info is None:
            raise DetectorConfigError(f"No preset feed '{pair}' on {network}")
        return info.address
    raise DetectorConfigError("Either 'feed' or 'feed_address' is required")


# Registry of available detectors (populated by subclass imports)
DETECTOR_REGISTRY: dict[str, type[BaseDetector]] = {}


def register_detector(cls: type[BaseDetector]) -> type[BaseDetector]:
    """Decorator to register a detector class in the global registry.

    :param cls: Detector class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If detector has no event name defined.

    .. code-block:: python

        @register_detector
        class NewRoundDetector(BaseDetector):
            event = "newRound"
            ...
    """
    if not cls.event:
        raise ValueError(f"Detector {cls.__name__} must define an 'event' class variable")
    DETECTOR_REGISTRY[cls.event] = cls
    return cls


def get_detector(
    event: str, params: Mapping[str, Any] | None = None, network: str = "custom"
) -> BaseDetector:
    """Build a detector instance by event name.

    :param event: Event name (e.g., "priceUpdate", "newRound").
    :param params: Detector parameters.
    :param network: Network identifier.
    :returns: Detector instance.
    :raises DetectorConfigError: If the event is unknown or params are invalid.
    """
    if event not in DETECTOR_REGISTRY:
        available = ", ".join(sorted(DETECTOR_REGISTRY.keys()))
        raise DetectorConfigError(f"Unknown event '{event}'. Available: {available}")
    return DETECTOR_REGISTRY[event].from_params(params or {}, network)


def get_available_detectors() -> list[str]:
    """Get list of available event names.

    :returns: Sorted list of registered event names.
    """
    return sorted(DETECTOR_REGISTRY.keys())
