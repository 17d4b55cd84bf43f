"""SMS body composer with a fixed byte budget.

The gateway accepts at most 280 bytes per message, so event lines are
added greedily until the remaining budget is exhausted and the rest are
replaced by a single ``...and N`` marker.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from kontur_senders.formatter import SMS_VALUE_PRECISION, format_value
from kontur_senders.models import Event

MAX_MESSAGE_SIZE = 280
TRUNCATED_TEXT = "...and %d\n"
THROTTLED_TEXT = "throttled\n"

MAX_TRIGGER_NAME_LENGTH = 40
MAX_METRIC_NAME_LENGTH = 20
METRIC_ELLIPSIS = ".."


def byte_length(text: str) -> int:
    """Return the UTF-8 encoded size of ``text``."""
    return len(text.encode("utf-8"))


def truncate_metric_name(metric: str) -> str:
    """Shorten a metric name to 18 characters plus ``..`` when longer than 20."""
    if len(metric) > MAX_METRIC_NAME_LENGTH:
        keep = MAX_METRIC_NAME_LENGTH - len(METRIC_ELLIPSIS)
        return metric[:keep] + METRIC_ELLIPSIS
    return metric


def format_event_line(event: Event) -> str:
    """Render one event as ``state metric value`` followed by a newline."""
    value = format_value(event.value, SMS_VALUE_PRECISION)
    return f"{event.state} {truncate_metric_name(event.metric)} {value}\n"


class SmsComposer:
    """Builds a single SMS body from a trigger name, its events and a link."""

    def __init__(
        self,
        max_message_size: int = MAX_MESSAGE_SIZE,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.max_message_size = max_message_size
        self._logger = logger or logging.getLogger(__name__)

    def events_budget(self, link: str, throttled: bool, event_count: int = 0) -> int:
        """Return the number of bytes available for trigger and event lines.

        Room for the truncation marker is always reserved. It is the template
        size unless the event count alone needs more digits.
        """
        reserved = max(len(TRUNCATED_TEXT), byte_length(TRUNCATED_TEXT % event_count))
        budget = self.max_message_size - byte_length(link) - reserved
        if throttled:
            budget -= len(THROTTLED_TEXT)
        return budget

    def compose(
        self,
        trigger_name: str,
        events: Sequence[Event],
        throttled: bool,
        link: str,
    ) -> str:
        """Compose the SMS text.

        The trigger name line is always present and the link always ends the
        message. Event lines are added in order while they fit the budget; the
        first line that does not fit is replaced, together with the rest, by an
        ``...and N`` line. A single event is always emitted in full.

        Args:
            trigger_name: Trigger name, cut to 40 characters.
            events: Events in notification order.
            throttled: Whether to add the throttle marker line.
            link: Trigger link, possibly shortened.

        Returns:
            The message text.
        """
        budget = self.events_budget(link, throttled, len(events))
        parts = [f"{trigger_name[:MAX_TRIGGER_NAME_LENGTH]}\n"]
        size = byte_length(parts[0])

        for i, event in enumerate(events):
            line = format_event_line(event)
            line_size = byte_length(line)
            # An overflowing last event is replaced too; only a lone event may exceed the budget
            if size + line_size > budget and len(events) > 1:
                omitted = len(events) - i
                parts.append(TRUNCATED_TEXT % omitted)
                self._logger.debug(
                    f"SMS for {trigger_name!r} truncated, {omitted} of {len(events)} events omitted"
                )
                break
            parts.append(line)
            size += line_size

        if throttled:
            parts.append(THROTTLED_TEXT)
        parts.append(link)
        return "".join(parts)
