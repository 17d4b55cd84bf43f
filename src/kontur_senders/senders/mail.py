"""Mail gateway sender."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from kontur_senders.composer.mail import EmailPayloadComposer
from kontur_senders.config import MailSenderConfig
from kontur_senders.errors import GatewayRejectionError
from kontur_senders.models import Contact, Event, Trigger
from kontur_senders.senders.base import DeliveryStatus, NotificationSender

GATEWAY_NAME = "kontur.spam"
SUCCESS_STATUS = 201
# The gateway will never accept a message it answered 400 to
REJECTED_STATUS = 400


class MailSender(NotificationSender):
    """Sends trigger notifications as templated email through kontur.spam."""

    name = "mail"

    config: MailSenderConfig
    composer: EmailPayloadComposer

    def initialize(self, config: Mapping[str, str]) -> None:
        """Configure the sender.

        Args:
            config: Flat settings mapping with ``url``, ``login``, ``password``,
                ``channel``, ``template``, ``front_uri`` and optional
                ``timezone``, ``date_time_format`` and ``timeout``.

        Raises:
            pydantic.ValidationError: If the settings are invalid.
        """
        self.config = MailSenderConfig.from_mapping(config)
        self._open_client(self.config.timeout)
        self.composer = EmailPayloadComposer(
            self.config.front_uri,
            location=self.config.location,
            date_time_format=self.config.date_time_format,
            logger=self._logger,
        )

    def build_request(
        self,
        events: Sequence[Event],
        contact: Contact,
        trigger: Trigger,
        plots: Sequence[bytes] = (),
        throttled: bool = False,
    ) -> dict[str, object]:
        """Build the gateway request body."""
        payload = self.composer.compose(trigger, events, contact, plots, throttled)
        request: dict[str, object] = {
            "channel": self.config.channel,
            "address": contact.address,
            "vars": payload.vars.to_dict(),
            "template": self.config.template,
            "subject": payload.subject,
        }
        if payload.attachments:
            request["contents"] = [content.to_dict() for content in payload.attachments]
        return request

    def send(
        self,
        events: Sequence[Event],
        contact: Contact,
        trigger: Trigger,
        plots: Sequence[bytes] = (),
        throttled: bool = False,
    ) -> DeliveryStatus:
        """Send an email notification.

        Returns:
            DELIVERED on success, DROPPED if the gateway rejected the message
            permanently.

        Raises:
            SerializationError: If the request body cannot be encoded.
            TransportError: If the gateway could not be reached.
            GatewayRejectionError: If the gateway failed with any other status.
        """
        body = self.encode(self.build_request(events, contact, trigger, plots, throttled))
        response = self.post(
            self.config.url,
            body,
            self.config.login,
            self.config.password.get_secret_value(),
        )

        if response.status_code == REJECTED_STATUS:
            self._logger.error(
                f"Delete message! {GATEWAY_NAME} replied with error: "
                f"{response.status_code} {response.reason_phrase}"
            )
            return DeliveryStatus.DROPPED
        if response.status_code != SUCCESS_STATUS:
            raise GatewayRejectionError(GATEWAY_NAME, response.status_code, response.text)

        self._logger.info(f"Email for trigger {trigger.id} delivered to {contact.address}")
        return DeliveryStatus.DELIVERED
