"""
feedwatch - Oracle Reads and Change Detection

This module provides reads of on-chain oracle feeds and polling-based
event detection on top of them:
- ScaledDecimal: Lossless fixed-point arithmetic over integer mantissas
- LedgerClient / Web3LedgerClient: Contract reads, log queries, transfers
- FeedReader: Typed round snapshots of aggregator feeds
- PollState: Persistent per-subscription cursors
- Subscription / FeedWatcher: Polling loop delivering events to sinks
- detectors: Event detector implementations
- actions: Request/response operations
"""

from .errors import (
    DecodeError,
    DetectorConfigError,
    DivisionByZeroError,
    FeedUnavailableError,
    InvalidAddressError,
    InvalidUnitError,
    SignerUnavailableError,
    WatcherError,
)
from .EventSink import EventSink, LogSink, WebhookSink
from .FeedReader import FeedMetadata, FeedReader, FeedSnapshot, RoundSnapshot
from .FeedWatcher import FeedWatcher
from .LedgerClient import LedgerClient, LogEntry
from .PollBackoff import PollBackoff, PollStatus
from .PollState import JsonFileStateStore, MemoryStateStore, StateStore
from .ScaledDecimal import ScaledDecimal, convert_unit, derive_rate, format_scaled, parse_scaled
from .Subscription import Subscription, load_subscriptions
from .Web3LedgerClient import Web3LedgerClient

__all__ = [
    "DecodeError",
    "DetectorConfigError",
    "DivisionByZeroError",
    "EventSink",
    "FeedMetadata",
    "FeedReader",
    "FeedSnapshot",
    "FeedUnavailableError",
    "FeedWatcher",
    "InvalidAddressError",
    "InvalidUnitError",
    "JsonFileStateStore",
    "LedgerClient",
    "LogEntry",
    "LogSink",
    "MemoryStateStore",
    "PollBackoff",
    "PollStatus",
    "RoundSnapshot",
    "ScaledDecimal",
    "SignerUnavailableError",
    "StateStore",
    "Subscription",
    "WatcherError",
    "Web3LedgerClient",
    "WebhookSink",
    "convert_unit",
    "derive_rate",
    "format_scaled",
    "load_subscriptions",
    "parse_scaled",
]
