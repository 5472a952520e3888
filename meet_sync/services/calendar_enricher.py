# meet_sync/services/calendar_enricher.py
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Sequence, Tuple
from urllib.parse import quote

from pydantic import ValidationError

from meet_sync.schemas.activity import EnrichedMeetingActivity, SimplifiedMeetingActivity
from meet_sync.schemas.calendar import Attendee, CalendarEventDetails
from meet_sync.services.bot_filter import BotHeuristicFilter
from meet_sync.services.google_client import GoogleApiClient, GoogleApiError

logger = logging.getLogger(__name__)

EventKey = Tuple[str, str]
_BASE_FIELDS = set(SimplifiedMeetingActivity.model_fields)


def _base_fields(record: SimplifiedMeetingActivity) -> dict:
    return record.model_dump(include=_BASE_FIELDS)


def recurrence_base_id(event_id: str) -> str:
    """
    Strip the recurrence-instance suffix from a calendar event id.

    Audit logs reference instances of recurring events as
    `<seriesId>_<instanceStart>` (e.g. `abc123_20250205T150000Z`); the
    series id is everything before the first underscore.
    """
    return event_id.split("_", 1)[0]


class CalendarEnricher:
    """
    Attaches Google Calendar metadata (title, invitees) to meeting activities.

    Lookups never raise: a missing or failing calendar event degrades to an
    empty summary and attendee list, logged as a warning, so one bad event
    cannot sink a whole day's ingestion.
    """

    def __init__(
        self,
        google_client: GoogleApiClient,
        bot_filter: BotHeuristicFilter,
        max_concurrency: int = 5,
        lookup_timeout_seconds: float = 15.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.google = google_client
        self.bot_filter = bot_filter
        self.max_concurrency = max_concurrency
        self.lookup_timeout_seconds = lookup_timeout_seconds

    async def get_event_details(self, calendar_id: str, event_id: str) -> CalendarEventDetails:
        """
        Return the event summary and attendees.

        On 404 the lookup is retried once with the recurrence base id when it
        differs from `event_id`. Any other failure, a second 404, or running
        past `lookup_timeout_seconds` yields CalendarEventDetails.empty().
        """
        try:
            return await asyncio.wait_for(
                self._lookup_with_fallback(calendar_id, event_id),
                timeout=self.lookup_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out after %.1fs fetching event=%r from calendar=%r",
                self.lookup_timeout_seconds,
                event_id,
                calendar_id,
            )
            return CalendarEventDetails.empty()
        except Exception:
            logger.warning(
                "Unexpected error fetching event=%r from calendar=%r",
                event_id,
                calendar_id,
                exc_info=True,
            )
            return CalendarEventDetails.empty()

    async def get_event_title(self, calendar_id: str, event_id: str) -> str:
        details = await self.get_event_details(calendar_id, event_id)
        return details.summary or ""

    async def enrich(
        self, records: Sequence[SimplifiedMeetingActivity]
    ) -> List[EnrichedMeetingActivity]:
        """
        Attach meeting name and non-bot invitees to every record.

        Each distinct (organizer, calendar event) pair is looked up once.
        Invitees are reduced to email + response status.
        """
        details_by_key = await self._lookup_all(records)

        enriched: List[EnrichedMeetingActivity] = []
        for record in records:
            details = details_by_key.get(self._event_key(record))
            if details is None:
                enriched.append(EnrichedMeetingActivity(**_base_fields(record)))
                continue

            attendees = [
                Attendee(email=a.email, response_status=a.response_status)
                for a in self.bot_filter.exclude_attendees(details.attendees)
            ]
            enriched.append(
                EnrichedMeetingActivity(
                    **_base_fields(record),
                    meeting_name=details.summary,
                    attendees=attendees,
                )
            )
        return enriched

    async def attach_titles(
        self, records: Sequence[SimplifiedMeetingActivity]
    ) -> List[EnrichedMeetingActivity]:
        """
        Title-only enrichment: sets meeting_name and leaves attendees empty.
        """
        details_by_key = await self._lookup_all(records)
        enriched: List[EnrichedMeetingActivity] = []
        for record in records:
            details = details_by_key.get(self._event_key(record))
            enriched.append(
                EnrichedMeetingActivity(
                    **_base_fields(record),
                    meeting_name=details.summary if details is not None else "",
                )
            )
        return enriched

    async def _lookup_all(
        self, records: Iterable[SimplifiedMeetingActivity]
    ) -> Dict[EventKey, CalendarEventDetails]:
        """
        Look up every distinct event key with at most `max_concurrency`
        requests in flight.
        """
        keys: List[EventKey] = list(
            dict.fromkeys(
                key for key in map(self._event_key, records) if key is not None
            )
        )

        if not keys:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(key: EventKey) -> CalendarEventDetails:
            async with semaphore:
                return await self.get_event_details(*key)

        results = await asyncio.gather(*(_bounded(key) for key in keys))
        logger.info("Resolved %d distinct calendar event(s)", len(keys))
        return dict(zip(keys, results))

    @staticmethod
    def _event_key(record: SimplifiedMeetingActivity) -> EventKey | None:
        if not record.calendar_event_id or not record.organizer_email:
            return None
        return (record.organizer_email, record.calendar_event_id)

    async def _lookup_with_fallback(self, calendar_id: str, event_id: str) -> CalendarEventDetails:
        logger.debug("Fetching event details for event=%r on calendar=%r", event_id, calendar_id)
        try:
            return await self._fetch_event(calendar_id, event_id)
        except GoogleApiError as exc:
            if not exc.is_not_found:
                logger.warning(
                    "Error fetching event=%r from calendar=%r: %s", event_id, calendar_id, exc
                )
                return CalendarEventDetails.empty()

        base_id = recurrence_base_id(event_id)
        if base_id == event_id:
            logger.warning("Event=%r not found on calendar=%r", event_id, calendar_id)
            return CalendarEventDetails.empty()

        logger.info("404 for event=%r; attempting base id=%r", event_id, base_id)
        try:
            return await self._fetch_event(calendar_id, base_id)
        except GoogleApiError as exc:
            logger.warning(
                "Still no event for base id=%r on calendar=%r: %s", base_id, calendar_id, exc
            )
            return CalendarEventDetails.empty()

    async def _fetch_event(self, calendar_id: str, event_id: str) -> CalendarEventDetails:
        path = (
            f"/calendar/v3/calendars/{quote(calendar_id, safe='')}"
            f"/events/{quote(event_id, safe='')}"
        )
        payload = await self.google.get_json(path)
        if not isinstance(payload, dict):
            raise GoogleApiError(
                f"Unexpected calendar event payload for {event_id!r}: {type(payload).__name__}"
            )
        try:
            details = CalendarEventDetails(
                summary=payload.get("summary") or "",
                attendees=[Attendee.model_validate(a) for a in payload.get("attendees") or []],
            )
        except ValidationError as exc:
            raise GoogleApiError(f"Malformed calendar event {event_id!r}: {exc}") from exc
        logger.debug(
            "Fetched summary=%r with %d attendee(s) for event=%r",
            details.summary,
            len(details.attendees),
            event_id,
        )
        return details
