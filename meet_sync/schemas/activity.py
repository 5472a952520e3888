# meet_sync/schemas/activity.py
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from meet_sync.schemas.calendar import Attendee


class _CamelModel(BaseModel):
    """
    Base for models whose wire form uses camelCase keys (Google payloads and
    the Tinybird rows) while Python code keeps snake_case attributes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Raw Admin SDK Reports payload
# ---------------------------------------------------------------------------


class ActivityParameter(_CamelModel):
    """
    One named parameter of an audit-log event.

    The Reports API sets at most one of the typed value fields. `intValue`
    is sent as a JSON string and coerced to int here.
    """

    name: str
    value: str | None = None
    int_value: int | None = None
    bool_value: bool | None = None


class ActivityEvent(_CamelModel):
    type: str | None = None
    name: str | None = None
    parameters: List[ActivityParameter] = Field(default_factory=list)


class ActivityId(_CamelModel):
    time: str | None = Field(None, description="ISO-8601 timestamp of the activity.")
    unique_qualifier: str | None = None
    application_name: str | None = None
    customer_id: str | None = None


class RawActivityEntry(_CamelModel):
    """
    A single `admin#reports#activity` item as returned by the Reports API.
    """

    id: ActivityId | None = None
    events: List[ActivityEvent] = Field(default_factory=list)

    @property
    def time(self) -> str | None:
        return self.id.time if self.id is not None else None

    @property
    def qualifier(self) -> str:
        """Best-effort identifier used in log lines."""
        if self.id is not None and self.id.unique_qualifier:
            return self.id.unique_qualifier
        return self.time or "<unknown>"


# ---------------------------------------------------------------------------
# Normalized / enriched records
# ---------------------------------------------------------------------------


class Location(_CamelModel):
    country: str = ""
    region: str = ""


class SimplifiedMeetingActivity(_CamelModel):
    """
    Flat view of one participant session in a Meet conference, derived from
    the first event of a raw audit-log entry.
    """

    meeting_code: str = Field(..., min_length=1, examples=["INZGBSJYMQ"])
    conference_id: str = Field(..., min_length=1)
    calendar_event_id: str = ""
    organizer_email: str = Field(..., min_length=1)
    participant_email: str = ""
    participant_display_name: str = ""
    start_timestamp: str = Field(
        "",
        description="ISO-8601 UTC start of the session, e.g. 2025-02-05T22:49:47.000Z",
    )
    duration_seconds: int = Field(0, ge=0)
    is_external: bool = False
    location: Location = Field(default_factory=Location)


class EnrichedMeetingActivity(SimplifiedMeetingActivity):
    """
    A SimplifiedMeetingActivity with calendar metadata and, once the
    conference aggregator has run, per-conference attendance figures.
    """

    meeting_name: str = ""
    attendees: List[Attendee] = Field(default_factory=list)
    participant_count: int | None = None
    invited_count: int | None = Field(
        None,
        description="Non-bot invitees on the matched calendar event; null when no invite matched.",
    )
    attendee_percentage: int | None = None
    aggregated: bool = Field(False, exclude=True)

    def to_ingestion_row(self) -> Dict[str, Any]:
        """
        Build the Tinybird row for this record.

        - `isExternal` is sent as 0/1.
        - Aggregate columns are only present on aggregated rows; an unresolved
          `invitedCount` is sent as null while an unset `attendeePercentage`
          is left out entirely.
        """
        row = self.model_dump(
            by_alias=True,
            exclude={"attendees", "participant_count", "invited_count", "attendee_percentage"},
        )
        row["isExternal"] = 1 if self.is_external else 0

        if self.aggregated:
            row["attendees"] = [
                {"email": a.email, "responseStatus": a.response_status}
                for a in self.attendees
            ]
            row["participantCount"] = self.participant_count
            row["invitedCount"] = self.invited_count
            if self.attendee_percentage is not None:
                row["attendeePercentage"] = self.attendee_percentage

        return row
