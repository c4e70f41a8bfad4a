"""
Event detectors for on-chain oracle state.

Each detector watches one kind of change (price moves, threshold levels,
rounds, contract logs, sequencer uptime) and is registered by event name.

Usage:
    from feedwatch.src.detectors import get_detector, get_available_detectors

    # Get list of available events
    available = get_available_detectors()
    # ['newRound', 'priceThreshold', 'priceUpdate', 'sequencerChange', 'upkeepPerformed', 'vrfFulfilled']

    # Build a detector from subscription parameters
    detector = get_detector(
        "priceUpdate", {"feed": "ETH/USD", "change_threshold": 1}, "ethereum-mainnet"
    )
"""

# Import base classes and utilities
from .base import (
    DETECTOR_REGISTRY,
    BaseDetector,
    DetectorResult,
    get_available_detectors,
    get_detector,
    register_detector,
)

# Import all detector implementations to trigger registration
from .log_scan import LogScanDetector, UpkeepPerformedDetector, VrfFulfilledDetector
from .new_round import NewRoundDetector
from .price_threshold import PriceThresholdDetector
from .price_update import PriceUpdateDetector
from .sequencer import SequencerChangeDetector

__all__ = [
    "BaseDetector",
    "DetectorResult",
    "DETECTOR_REGISTRY",
    "register_detector",
    "get_detector",
    "get_available_detectors",
    "LogScanDetector",
    "NewRoundDetector",
    "PriceThresholdDetector",
    "PriceUpdateDetector",
    "SequencerChangeDetector",
    "UpkeepPerformedDetector",
    "VrfFulfilledDetector",
]
