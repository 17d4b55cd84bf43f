"""Gateway senders for SMS and email notifications."""

from kontur_senders.senders.base import DeliveryStatus, NotificationSender
from kontur_senders.senders.mail import MailSender
from kontur_senders.senders.sms import SmsSender

__all__ = [
    "DeliveryStatus",
    "MailSender",
    "NotificationSender",
    "SmsSender",
]
