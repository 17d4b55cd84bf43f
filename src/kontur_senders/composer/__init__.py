"""Notification payload composers for SMS and email."""

from kontur_senders.composer.mail import (
    EmailPayload,
    EmailPayloadComposer,
    MailVars,
    PlotContent,
)
from kontur_senders.composer.sms import MAX_MESSAGE_SIZE, SmsComposer

__all__ = [
    "MAX_MESSAGE_SIZE",
    "EmailPayload",
    "EmailPayloadComposer",
    "MailVars",
    "PlotContent",
    "SmsComposer",
]
