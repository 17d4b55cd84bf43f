"""Common behaviour of gateway notification senders."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Self

import httpx

from kontur_senders.errors import SerializationError, TransportError
from kontur_senders.models import Contact, Event, Trigger


class DeliveryStatus(str, Enum):
    """Outcome of a send that did not raise."""

    DELIVERED = "delivered"
    # Permanently rejected by the gateway; retrying will not help
    DROPPED = "dropped"


class NotificationSender(ABC):
    """Base class for senders delivering notifications through an HTTP gateway.

    A sender is configured once with ``initialize`` and may then be used by
    several threads at the same time. Each ``send`` performs a single HTTP
    call; retries are left to the caller.
    """

    name: str = "sender"

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the sender.

        Args:
            logger: Logger used by the sender and the composers it creates.
            transport: Optional httpx transport, used to stub the network.
        """
        self._logger = logger or logging.getLogger(__name__)
        self._transport = transport
        self._client: httpx.Client | None = None

    @abstractmethod
    def initialize(self, config: Mapping[str, str]) -> None:
        """Configure the sender from the host's flat settings mapping."""

    @abstractmethod
    def build_request(
        self,
        events: Sequence[Event],
        contact: Contact,
        trigger: Trigger,
        plots: Sequence[bytes] = (),
        throttled: bool = False,
    ) -> dict[str, object]:
        """Compose the JSON request body of the gateway call."""

    @abstractmethod
    def send(
        self,
        events: Sequence[Event],
        contact: Contact,
        trigger: Trigger,
        plots: Sequence[bytes] = (),
        throttled: bool = False,
    ) -> DeliveryStatus:
        """Deliver one notification.

        Raises:
            SendError: If the notification could not be delivered.
        """

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            raise RuntimeError(f"{self.name} sender is not initialized")
        return self._client

    def _open_client(self, timeout: float) -> httpx.Client:
        """Create the HTTP client shared by all sends of this sender."""
        self.close()
        self._client = httpx.Client(timeout=timeout, transport=self._transport)
        return self._client

    def close(self) -> None:
        """Release the HTTP connection pool."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def encode(self, payload: Mapping[str, Any]) -> bytes:
        """Encode a request body as JSON.

        Raises:
            SerializationError: If the payload is not JSON serializable.
        """
        try:
            return json.dumps(payload, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"failed to marshal json request body: {e}") from e

    def post(self, url: str, body: bytes, login: str, password: str) -> httpx.Response:
        """POST a JSON body with basic authentication.

        Raises:
            TransportError: If the request could not be completed.
        """
        self._logger.debug(f"calling {self.name} gateway with body {body.decode('utf-8')}")
        try:
            return self.client.post(
                url,
                content=body,
                auth=httpx.BasicAuth(login, password),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"failed to call {self.name} gateway: {e}") from e
