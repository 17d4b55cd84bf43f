"""Email payload composer.

Produces the template variables and inline plot attachments consumed by
the mail gateway's template renderer.
"""

from __future__ import annotations

import base64
import html
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from kontur_senders.formatter import EMAIL_VALUE_PRECISION, format_threshold, format_value
from kontur_senders.models import Contact, Event, State, Trigger, get_subject_state
from kontur_senders.shortener import trigger_url

PLOT_CONTENT_TYPE = "image/png"
DEFAULT_DATE_TIME_FORMAT = "%H:%M %d.%m.%Y"


@dataclass(frozen=True)
class PlotContent:
    """An inline image attachment referenced from the email body by its CID."""

    content_id: str
    name: str
    content_type: str
    data: str

    def to_dict(self) -> dict[str, str]:
        """Serialize to the gateway's ``contents`` entry format."""
        return {
            "id": self.content_id,
            "name": self.name,
            "type": self.content_type,
            "data": self.data,
        }


@dataclass
class MailVars:
    """Template variables of a notification email.

    Attributes:
        link: Front-end link of the trigger.
        throttled: Whether the notification batches suppressed alerts.
        rows: One mapping of rendered fields per event, in event order.
        description: HTML-escaped trigger description.
        description_provided: True only if the trigger has a description.
        trigger_name: Trigger name.
        tags: Tags rendered as ``[tag1][tag2]``.
        trigger_state: Most severe state among the events.
        is_test: True for notifications of a test trigger.
        plot_cids: Content-ids of attached plots, in attachment order.
    """

    link: str
    throttled: bool
    rows: list[dict[str, str]] = field(default_factory=list)
    description: str = ""
    description_provided: bool = False
    trigger_name: str = ""
    tags: str = ""
    trigger_state: str = ""
    is_test: bool = False
    plot_cids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Serialize to the template variable names."""
        return {
            "link": self.link,
            "throttled": self.throttled,
            "rows": self.rows,
            "desc": self.description,
            "desc_provided": self.description_provided,
            "name": self.trigger_name,
            "tags": self.tags,
            "trigger_state": self.trigger_state,
            "is_test": self.is_test,
            "plot_cids": self.plot_cids,
            "plot_cids_provided": bool(self.plot_cids),
        }


@dataclass
class EmailPayload:
    """Subject, template variables and attachments of one email."""

    subject: str
    vars: MailVars
    attachments: list[PlotContent] = field(default_factory=list)


def plot_content_id(index: int) -> str:
    return f"plot{index}.png"


def get_plot_contents(plots: Sequence[bytes]) -> tuple[list[PlotContent], list[str]]:
    """Build one PNG attachment per plot and the matching list of content-ids."""
    contents = []
    cids = []
    for index, plot in enumerate(plots):
        cid = plot_content_id(index)
        contents.append(
            PlotContent(
                content_id=cid,
                name=cid,
                content_type=PLOT_CONTENT_TYPE,
                data=base64.b64encode(plot).decode("ascii"),
            )
        )
        cids.append(cid)
    return contents, cids


def format_description(description: str) -> str:
    """Escape a trigger description and turn newlines into HTML line breaks."""
    return html.escape(description).replace("\n", "\n<br/>")


class EmailPayloadComposer:
    """Builds email payloads for trigger notifications."""

    def __init__(
        self,
        front_uri: str,
        *,
        location: tzinfo | None = None,
        date_time_format: str = DEFAULT_DATE_TIME_FORMAT,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the composer.

        Args:
            front_uri: Base URL of the alerting front-end.
            location: Time zone used to render event timestamps (UTC by default).
            date_time_format: ``strftime`` format of event timestamps.
            logger: Logger for debug output.
        """
        self.front_uri = front_uri
        self.location = location or ZoneInfo("UTC")
        self.date_time_format = date_time_format
        self._logger = logger or logging.getLogger(__name__)

    def format_timestamp(self, timestamp: int) -> str:
        moment = datetime.fromtimestamp(timestamp, tz=self.location)
        return moment.strftime(self.date_time_format)

    def build_row(self, event: Event, trigger: Trigger) -> dict[str, str]:
        """Render the template fields of a single event."""
        return {
            "metric": event.metric,
            "timestamp": self.format_timestamp(event.timestamp),
            "oldstate": str(event.old_state),
            "state": str(event.state),
            "value": format_value(event.value, EMAIL_VALUE_PRECISION),
            "warn_value": format_threshold(trigger.warn_value),
            "error_value": format_threshold(trigger.error_value),
            "message": event.message_or_empty,
        }

    def compose(
        self,
        trigger: Trigger,
        events: Sequence[Event],
        contact: Contact,
        plots: Sequence[bytes],
        throttled: bool,
    ) -> EmailPayload:
        """Compose the email payload for a notification.

        Args:
            trigger: Trigger the events belong to.
            events: Events in notification order.
            contact: Email destination.
            plots: Rendered PNG plots, attached in the given order.
            throttled: Whether the notification batches suppressed alerts.

        Returns:
            EmailPayload with one attachment per plot.
        """
        state = get_subject_state(events)
        tags = trigger.tags_string()

        mail_vars = MailVars(
            link=trigger_url(self.front_uri, trigger.id),
            throttled=throttled,
            rows=[self.build_row(event, trigger) for event in events],
            trigger_name=trigger.name,
            tags=tags,
            trigger_state=state,
            is_test=state == State.TEST.value,
        )

        if trigger.description:
            mail_vars.description = format_description(trigger.description)
            mail_vars.description_provided = True

        attachments, mail_vars.plot_cids = get_plot_contents(plots)
        self._logger.debug(
            f"Composed email for {contact.address}: {len(mail_vars.rows)} rows, "
            f"{len(attachments)} plots"
        )

        return EmailPayload(
            subject=f"{state} {trigger.name} {tags}",
            vars=mail_vars,
            attachments=attachments,
        )
