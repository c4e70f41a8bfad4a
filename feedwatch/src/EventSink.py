"""EventSink: Delivery targets for emitted events."""

from __future__ import annotations

import json
import logging
import sys
import time
from abc import ABC, abstractmethod
from typing import Any, TextIO

import httpx

logger = logging.getLogger(__name__)

# Retry configuration for webhook requests
MAX_RETRIES = 5
BACKOFF_BASE = 1.0
BACKOFF_MAX = 5.0


class EventSink(ABC):
    """Abstract base class for event delivery."""

    @abstractmethod
    def deliver(self, events: list[dict[str, Any]]) -> None:
        """Deliver events in order.

        :param events: JSON-serializable event payloads.
        """
        pass

    def close(self) -> None:
        """Release resources held by the sink."""
        pass


class LogSink(EventSink):
    """Writes each event as one JSON line and logs a short summary.

    :ivar stream: Output stream (default: stdout).
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def deliver(self, events: list[dict[str, Any]]) -> None:
        for event in events:
            logger.info(f"[{event.get('subscription', '-')}] {event.get('event')}")
            self.stream.write(json.dumps(event, sort_keys=True) + "\n")
        self.stream.flush()


class WebhookSink(EventSink):
    """POSTs each event as JSON to a webhook URL with retry and backoff.

    :ivar url: Webhook endpoint.
    :ivar max_retries: Attempts per event before giving up.
    """

    def __init__(
        self,
        url: str,
        max_retries: int = MAX_RETRIES,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the webhook sink.

        :param url: Webhook endpoint (http or https).
        :param max_retries: Attempts per event (default: 5).
        :param timeout: Request timeout in seconds (default: 10).
        :param transport: Optional custom httpx transport.
        """
        self.url = url
        self.max_retries = max_retries
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        """POST one payload with retry and backoff.

        :raises RuntimeError: If max retries exceeded.
        """
        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    "POST %s event=%s (attempt %d)", self.url, payload.get("event"), attempt + 1
                )
                response = self._client.post(self.url, json=payload)
                if response.is_success:
                    return response
                logger.warning(
                    "Webhook POST %s failed: %s %s (attempt %d/%d)",
                    self.url,
                    response.status_code,
                    response.reason_phrase,
                    attempt + 1,
                    self.max_retries,
                )
            except httpx.RequestError as exc:
                logger.warning(
                    "Webhook POST %s error: %s (attempt %d/%d)",
                    self.url,
                    exc,
                    attempt + 1,
                    self.max_retries,
                )
            if attempt + 1 < self.max_retries:
                delay = min(BACKOFF_BASE * (1.5 ** attempt), BACKOFF_MAX)
                time.sleep(delay)

        raise RuntimeError(f"Webhook POST {self.url} failed after {self.max_retries} attempts")

    def deliver(self, events: list[dict[str, Any]]) -> None:
        for event in events:
            self._post(event)

    def close(self) -> None:
        self._client.close()
