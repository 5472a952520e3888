# tests/test_calendar_enricher.py
import asyncio

import pytest

from meet_sync.schemas.activity import SimplifiedMeetingActivity
from meet_sync.schemas.calendar import CalendarEventDetails
from meet_sync.services.bot_filter import BotHeuristicFilter
from meet_sync.services.calendar_enricher import CalendarEnricher, recurrence_base_id
from meet_sync.services.google_client import GoogleApiError

EVENTS_PATH = "/calendar/v3/calendars/{calendar}/events/{event}"


class FakeCalendarClient:
    """
    Serves calendar events from a dict keyed by request path.

    Values may be a payload dict or an Exception to raise. Missing paths
    raise a 404 GoogleApiError.
    """

    def __init__(self, events=None, delay: float = 0.0):
        self.events = events or {}
        self.delay = delay
        self.paths = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_json(self, path: str, params=None):
        self.paths.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.events.get(path)
            if result is None:
                raise GoogleApiError("Not Found", status_code=404)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1


def _path(calendar: str, event: str) -> str:
    return EVENTS_PATH.format(calendar=calendar.replace("@", "%40"), event=event)


def _event(summary: str, *emails: str) -> dict:
    return {
        "summary": summary,
        "attendees": [
            {"email": e, "displayName": e.split("@")[0], "responseStatus": "accepted"}
            for e in emails
        ],
    }


def _record(conference_id="conf-1", event_id="evt1", participant="jane@example.com"):
    return SimplifiedMeetingActivity(
        meeting_code="abc-defg-hij",
        conference_id=conference_id,
        calendar_event_id=event_id,
        organizer_email="organizer@example.com",
        participant_email=participant,
    )


def _enricher(client, **kwargs) -> CalendarEnricher:
    return CalendarEnricher(client, BotHeuristicFilter(), **kwargs)


def test_recurrence_base_id_strips_first_underscore_suffix():
    assert recurrence_base_id("abc123_20250205T150000Z") == "abc123"
    assert recurrence_base_id("abc_def_ghi") == "abc"
    assert recurrence_base_id("plain") == "plain"


@pytest.mark.asyncio
async def test_get_event_details_direct_hit():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "evt1"): _event("Standup", "a@example.com")}
    )

    details = await _enricher(client).get_event_details("organizer@example.com", "evt1")

    assert details.summary == "Standup"
    assert [a.email for a in details.attendees] == ["a@example.com"]
    assert details.attendees[0].response_status == "accepted"
    assert details.attendees[0].display_name == "a"


@pytest.mark.asyncio
async def test_not_found_instance_falls_back_to_base_id():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "series1"): _event("Weekly sync", "a@example.com")}
    )

    details = await _enricher(client).get_event_details(
        "organizer@example.com", "series1_20250205T150000Z"
    )

    assert details.summary == "Weekly sync"
    assert client.paths == [
        _path("organizer@example.com", "series1_20250205T150000Z"),
        _path("organizer@example.com", "series1"),
    ]


@pytest.mark.asyncio
async def test_not_found_on_both_ids_returns_empty():
    client = FakeCalendarClient()

    details = await _enricher(client).get_event_details("organizer@example.com", "base_suffix")

    assert details == CalendarEventDetails.empty()
    assert len(client.paths) == 2


@pytest.mark.asyncio
async def test_not_found_without_suffix_does_not_retry():
    client = FakeCalendarClient()

    details = await _enricher(client).get_event_details("organizer@example.com", "plainid")

    assert details == CalendarEventDetails.empty()
    assert len(client.paths) == 1


@pytest.mark.asyncio
async def test_other_errors_degrade_without_fallback():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "base_suffix"): GoogleApiError("Forbidden", status_code=403)}
    )

    details = await _enricher(client).get_event_details("organizer@example.com", "base_suffix")

    assert details == CalendarEventDetails.empty()
    assert len(client.paths) == 1


@pytest.mark.asyncio
async def test_malformed_event_payload_degrades():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "evt1"): {"summary": "x", "attendees": [{"email": ["bad"]}]}}
    )

    details = await _enricher(client).get_event_details("organizer@example.com", "evt1")

    assert details == CalendarEventDetails.empty()


@pytest.mark.asyncio
async def test_non_object_event_payload_degrades():
    client = FakeCalendarClient({_path("organizer@example.com", "evt1"): ["unexpected", "shape"]})

    details = await _enricher(client).get_event_details("organizer@example.com", "evt1")

    assert details == CalendarEventDetails.empty()


@pytest.mark.asyncio
async def test_unexpected_client_error_degrades():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "evt1"): ValueError("invalid URL")}
    )

    details = await _enricher(client).get_event_details("organizer@example.com", "evt1")

    assert details == CalendarEventDetails.empty()


@pytest.mark.asyncio
async def test_slow_lookup_times_out_to_empty():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "evt1"): _event("Slow")}, delay=0.5
    )

    details = await _enricher(client, lookup_timeout_seconds=0.01).get_event_details(
        "organizer@example.com", "evt1"
    )

    assert details == CalendarEventDetails.empty()


@pytest.mark.asyncio
async def test_get_event_title_returns_summary_only():
    client = FakeCalendarClient({_path("organizer@example.com", "evt1"): _event("Retro")})

    title = await _enricher(client).get_event_title("organizer@example.com", "evt1")

    assert title == "Retro"


@pytest.mark.asyncio
async def test_enrich_looks_up_each_event_once_and_filters_bot_attendees():
    client = FakeCalendarClient(
        {
            _path("organizer@example.com", "evt1"): _event(
                "Planning", "a@example.com", "b@example.com", "notetaker@fireflies.ai"
            ),
        }
    )
    records = [
        _record(participant="a@example.com"),
        _record(participant="b@example.com"),
        _record(conference_id="conf-2", event_id=""),
    ]

    enriched = await _enricher(client).enrich(records)

    assert len(client.paths) == 1
    assert enriched[0].meeting_name == "Planning"
    assert [a.email for a in enriched[0].attendees] == ["a@example.com", "b@example.com"]
    assert all(a.display_name is None for a in enriched[0].attendees)
    assert enriched[1].attendees == enriched[0].attendees
    assert enriched[2].meeting_name == ""
    assert enriched[2].attendees == []
    assert [r.participant_email for r in enriched] == [r.participant_email for r in records]


@pytest.mark.asyncio
async def test_enrich_looks_up_distinct_events_in_first_seen_order():
    client = FakeCalendarClient(
        {
            _path("organizer@example.com", "evt2"): _event("Second"),
            _path("organizer@example.com", "evt1"): _event("First"),
        }
    )
    records = [
        _record(event_id="evt2"),
        _record(event_id="evt1"),
        _record(event_id="evt2", participant="bob@example.com"),
        _record(event_id=""),
    ]

    enriched = await _enricher(client, max_concurrency=1).enrich(records)

    assert client.paths == [
        _path("organizer@example.com", "evt2"),
        _path("organizer@example.com", "evt1"),
    ]
    assert [r.meeting_name for r in enriched] == ["Second", "First", "Second", ""]


@pytest.mark.asyncio
async def test_enrich_respects_max_concurrency():
    events = {
        _path("organizer@example.com", f"evt{i}"): _event(f"M{i}") for i in range(6)
    }
    client = FakeCalendarClient(events, delay=0.01)
    records = [_record(conference_id=f"c{i}", event_id=f"evt{i}") for i in range(6)]

    enriched = await _enricher(client, max_concurrency=2).enrich(records)

    assert client.max_in_flight <= 2
    assert [r.meeting_name for r in enriched] == [f"M{i}" for i in range(6)]


@pytest.mark.asyncio
async def test_attach_titles_sets_name_without_attendees():
    client = FakeCalendarClient(
        {_path("organizer@example.com", "evt1"): _event("Planning", "a@example.com")}
    )

    enriched = await _enricher(client).attach_titles([_record()])

    assert enriched[0].meeting_name == "Planning"
    assert enriched[0].attendees == []


def test_max_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        _enricher(FakeCalendarClient(), max_concurrency=0)
