# meet_sync/schemas/calendar.py
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Attendee(BaseModel):
    """
    Calendar invitee as reported by the Calendar API.

    `response_status` is passed through untouched ("accepted", "tentative",
    "needsAction", "declined", ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    email: str = ""
    response_status: str = ""
    display_name: str | None = None


class CalendarEventDetails(BaseModel):
    summary: str = Field("", description="Calendar event title.")
    attendees: List[Attendee] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "CalendarEventDetails":
        return cls(summary="", attendees=[])
