"""SMS gateway sender."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from kontur_senders.composer.sms import SmsComposer
from kontur_senders.config import SmsSenderConfig
from kontur_senders.errors import GatewayRejectionError, ValidationError
from kontur_senders.models import Contact, Event, Trigger, first_event_is_test
from kontur_senders.senders.base import DeliveryStatus, NotificationSender
from kontur_senders.shortener import LinkShortener, trigger_url

GATEWAY_NAME = "kontur.sms"
SUCCESS_STATUS = 201

COUNTRY_CODE = "+7"
PHONE_NUMBER_PATTERN = re.compile(r"^\+79[0-9]{9}$")

# Numbering plan and type of number of the gateway's address objects
SOURCE_NPI, SOURCE_TON = 1, 5
DESTINATION_NPI, DESTINATION_TON = 1, 1


def normalize_phone_number(address: str) -> str:
    """Prefix a bare subscriber number with the country code."""
    address = address.strip()
    if address.startswith("+"):
        return address
    return COUNTRY_CODE + address


def validate_phone_number(address: str) -> str:
    """Return the normalized phone number.

    Raises:
        ValidationError: If the number is not a mobile number of the form
            ``+79XXXXXXXXX``.
    """
    phone_number = normalize_phone_number(address)
    if not PHONE_NUMBER_PATTERN.match(phone_number):
        raise ValidationError(f"invalid phone number: {phone_number}")
    return phone_number


class SmsSender(NotificationSender):
    """Sends trigger notifications as SMS through the kontur.sms gateway."""

    name = "sms"

    config: SmsSenderConfig
    composer: SmsComposer
    shortener: LinkShortener

    def initialize(self, config: Mapping[str, str]) -> None:
        """Configure the sender.

        Args:
            config: Flat settings mapping with ``url``, ``login``, ``password``,
                ``front_uri`` and optional ``shortener_url``, ``shortener_key``,
                ``source_address`` and ``timeout``.

        Raises:
            pydantic.ValidationError: If the settings are invalid.
        """
        self.config = SmsSenderConfig.from_mapping(config)
        client = self._open_client(self.config.timeout)
        self.shortener = LinkShortener(
            self.config.shortener_url,
            self.config.shortener_key.get_secret_value() if self.config.shortener_key else None,
            client=client,
            logger=self._logger,
        )
        self.composer = SmsComposer(logger=self._logger)

    def resolve_link(self, trigger: Trigger, events: Sequence[Event]) -> str:
        """Get the link printed at the end of the SMS.

        Test notifications link to the front-end itself and skip shortening.
        """
        if first_event_is_test(events):
            return self.config.front_uri
        return self.shortener.shorten(trigger_url(self.config.front_uri, trigger.id))

    def build_request(
        self,
        events: Sequence[Event],
        contact: Contact,
        trigger: Trigger,
        plots: Sequence[bytes] = (),
        throttled: bool = False,
    ) -> dict[str, object]:
        """Build the gateway request body. Plots are not sent by SMS.

        Raises:
            ValidationError: If the contact is not a valid phone number.
        """
        phone_number = validate_phone_number(contact.address)
        link = self.resolve_link(trigger, events)
        text = self.composer.compose(trigger.name, events, throttled, link)
        return {
            "text": text,
            "destinationAddress": {
                "address": phone_number,
                "npi": DESTINATION_NPI,
                "ton": DESTINATION_TON,
            },
            "sourceAddress": {
                "address": self.config.source_address,
                "npi": SOURCE_NPI,
                "ton": SOURCE_TON,
            },
            "deliveryControl": True,
        }

    def send(
        self,
        events: Sequence[Event],
        contact: Contact,
        trigger: Trigger,
        plots: Sequence[bytes] = (),
        throttled: bool = False,
    ) -> DeliveryStatus:
        """Send an SMS notification. Plots are ignored.

        Raises:
            ValidationError: If the contact is not a valid phone number.
            SerializationError: If the request body cannot be encoded.
            TransportError: If the gateway could not be reached.
            GatewayRejectionError: If the gateway did not accept the message.
        """
        body = self.encode(self.build_request(events, contact, trigger, plots, throttled))
        response = self.post(
            self.config.url,
            body,
            self.config.login,
            self.config.password.get_secret_value(),
        )

        if response.status_code != SUCCESS_STATUS:
            self._logger.warning(
                f"{GATEWAY_NAME} replied with error {response.status_code} {response.reason_phrase}"
            )
            raise GatewayRejectionError(GATEWAY_NAME, response.status_code, response.text)

        self._logger.debug(f"{GATEWAY_NAME} answer:\n{response.text}")
        self._logger.info(f"SMS for trigger {trigger.id} delivered to {contact.address}")
        return DeliveryStatus.DELIVERED
