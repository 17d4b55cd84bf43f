"""Data models for alert notifications received from the host alerting system."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class State(str, Enum):
    """Alert states reported by the host system."""

    OK = "OK"
    WARN = "WARN"
    ERROR = "ERROR"
    NODATA = "NODATA"
    EXCEPTION = "EXCEPTION"
    TEST = "TEST"

    def __str__(self) -> str:
        return self.value


# Ascending severity used to pick the subject state of a notification
STATE_PRIORITY: tuple[State, ...] = (
    State.OK,
    State.WARN,
    State.ERROR,
    State.NODATA,
    State.EXCEPTION,
    State.TEST,
)


def parse_state(raw: str | State) -> State | str:
    """Convert a raw state label into a State, keeping unknown labels as-is."""
    if isinstance(raw, State):
        return raw
    try:
        return State(raw)
    except ValueError:
        return raw


@dataclass(frozen=True)
class Event:
    """A single metric state change included in a notification.

    Attributes:
        metric: Metric name.
        old_state: State before the change.
        state: State after the change.
        timestamp: Unix timestamp of the change, in seconds.
        value: Metric value, if the host reported one.
        message: Optional free-text message attached to the event.
        trigger_id: Identifier of the trigger that produced the event.
    """

    metric: str
    old_state: State | str
    state: State | str
    timestamp: int = 0
    value: float | None = None
    message: str | None = None
    trigger_id: str = ""

    @property
    def value_or_zero(self) -> float:
        """Return the metric value, substituting 0 when absent."""
        return 0.0 if self.value is None else float(self.value)

    @property
    def message_or_empty(self) -> str:
        """Return the event message, substituting an empty string when absent."""
        return self.message or ""

    @property
    def is_test(self) -> bool:
        return str(self.state) == State.TEST.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Create an Event from the host's JSON representation."""
        value = data.get("value")
        message = data.get("message")
        return cls(
            metric=str(data.get("metric", "")),
            old_state=parse_state(str(data.get("old_state", data.get("previousState", "")))),
            state=parse_state(str(data.get("state", data.get("newState", "")))),
            timestamp=int(data.get("timestamp", 0)),
            value=float(value) if value is not None else None,
            message=str(message) if message is not None else None,
            trigger_id=str(data.get("trigger_id", "")),
        )


@dataclass(frozen=True)
class Trigger:
    """Trigger definition that the events belong to."""

    id: str
    name: str
    warn_value: float = 0.0
    error_value: float = 0.0
    tags: tuple[str, ...] = field(default_factory=tuple)
    description: str = ""

    def tags_string(self) -> str:
        """Render tags as ``[tag1][tag2]``, or an empty string without tags."""
        if not self.tags:
            return ""
        return "[" + "][".join(self.tags) + "]"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trigger:
        """Create a Trigger from the host's JSON representation."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            warn_value=float(data.get("warn_value") or 0),
            error_value=float(data.get("error_value") or 0),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            description=str(data.get("desc") or data.get("description") or ""),
        )


@dataclass(frozen=True)
class Contact:
    """Notification destination: a phone number or an email address."""

    address: str
    kind: str = ""


def get_subject_state(events: Iterable[Event]) -> str:
    """Return the most severe state among events, or an empty string.

    Unknown state labels never outrank the known ones.
    """
    seen = {str(event.state) for event in events}
    result = ""
    for state in STATE_PRIORITY:
        if state.value in seen:
            result = state.value
    return result


def first_event_is_test(events: Sequence[Event]) -> bool:
    """Return True if the notification was generated for a test trigger."""
    return bool(events) and events[0].is_test
