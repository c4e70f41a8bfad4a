"""PollState: Persistent per-subscription cursors.

A cursor is a flat bag of primitives (``last_price``, ``last_round_id``,
``last_status``, ``last_block``, ``was_triggered``) stored under the key
``"<subscription name>:<event>"``. A missing key means the subscription has
never polled.

.. code-block:: python

    >>> store = MemoryStateStore()
    >>> store.get("eth-usd:priceUpdate")
    {}
    >>> store.set("eth-usd:priceUpdate", {"last_round_id": "18446744073709551617"})
    >>> store.get("eth-usd:priceUpdate")["last_round_id"]
    '18446744073709551617'
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_PRIMITIVES = (str, int, float, bool, type(None))


def subscription_key(name: str, event: str) -> str:
    """Build the store key of a subscription's cursor."""
    return f"{name}:{event}"


def _validated(bag: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(bag, dict):
        raise TypeError(f"Cursor must be a dict, got {type(bag).__name__}")
    for key, value in bag.items():
        if not isinstance(key, str):
            raise TypeError(f"Cursor keys must be str, got {key!r}")
        if not isinstance(value, _PRIMITIVES):
            raise TypeError(
                f"Cursor value for '{key}' must be a primitive, got {type(value).__name__}"
            )
    return dict(bag)


class StateStore(ABC):
    """Abstract key/value store of poll cursors.

    ``get`` always returns a fresh copy, so callers may mutate it freely;
    ``set`` replaces the whole bag (last write wins).
    """

    @abstractmethod
    def get(self, key: str) -> dict[str, Any]:
        """Return a copy of the cursor, or an empty dict if never written."""
        pass

    @abstractmethod
    def set(self, key: str, bag: dict[str, Any]) -> None:
        """Replace the cursor.

        :raises TypeError: If a value is not str, int, float, bool or None.
        """
        pass


class MemoryStateStore(StateStore):
    """In-process store; cursors are lost on restart."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any]:
        with self._lock:
            return dict(self._data.get(key, {}))

    def set(self, key: str, bag: dict[str, Any]) -> None:
        bag = _validated(bag)
        with self._lock:
            self._data[key] = bag


class JsonFileStateStore(StateStore):
    """Store backed by a single JSON file.

    The whole file is rewritten on every ``set`` through a temp file in the
    same directory followed by ``os.replace``, so readers never observe a
    partially written file. A lock serializes writers within the process.

    :ivar path: Location of the JSON file.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the store, loading existing cursors if the file exists.

        :param path: JSON file path. Parent directories are created on first write.
        :raises ValueError: If the file exists but is not a JSON object.
        """
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, Any]] = {}

        if self.path.exists():
            with open(self.path, "r") as file:
                loaded = json.load(file)
            if not isinstance(loaded, dict):
                raise ValueError(f"State file {self.path} must contain a JSON object")
            self._data = loaded
            logger.info(f"Loaded {len(self._data)} cursors from {self.path}")

    def get(self, key: str) -> dict[str, Any]:
        with self._lock:
            return dict(self._data.get(key, {}))

    def set(self, key: str, bag: dict[str, Any]) -> None:
        bag = _validated(bag)
        with self._lock:
            data = {**self._data, key: bag}
            self._write(data)
            self._data = data

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as file:
                json.dump(data, file, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
