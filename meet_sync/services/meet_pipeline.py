# meet_sync/services/meet_pipeline.py
from __future__ import annotations

import logging
from datetime import date as date_type, datetime, timedelta, timezone
from typing import Iterator, List, Optional

from meet_sync.core.exceptions import (
    ConfigurationError,
    InvalidDateRangeError,
    PipelineError,
)
from meet_sync.schemas.activity import EnrichedMeetingActivity
from meet_sync.schemas.ingestion import IngestionSummary
from meet_sync.services.activity_fetcher import RawActivityFetcher
from meet_sync.services.activity_normalizer import ActivityNormalizer
from meet_sync.services.bot_filter import BotHeuristicFilter
from meet_sync.services.calendar_enricher import CalendarEnricher
from meet_sync.services.conference_aggregator import ConferenceAggregator
from meet_sync.services.tinybird_ingestor import TinybirdIngestor

logger = logging.getLogger(__name__)

DEFAULT_BACKFILL_DAYS = 180


def iter_dates(start: date_type, end: date_type) -> Iterator[date_type]:
    """
    Yield every calendar day from `start` to `end`, both inclusive.

    Raises InvalidDateRangeError when start is after end.
    """
    if start > end:
        raise InvalidDateRangeError(
            f'"start" date {start.isoformat()} cannot be after "end" date {end.isoformat()}.'
        )
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class MeetActivityPipeline:
    """
    Drives the fetch -> normalize -> bot filter -> enrich -> aggregate ->
    ingest flow for one day or a run of days.

    Error policy
    ------------
    - `run_for_date` / `run_single_date` surface every structural error
      (PipelineError) to the caller.
    - `run_range` / `run_past_days` log a failed date and move on to the next
      one. ConfigurationError is the exception: it would fail identically for
      every remaining date, so it aborts the run.
    - Calendar lookups never fail a date (see CalendarEnricher).
    """

    def __init__(
        self,
        fetcher: RawActivityFetcher,
        normalizer: ActivityNormalizer,
        bot_filter: BotHeuristicFilter,
        enricher: CalendarEnricher,
        aggregator: ConferenceAggregator,
        ingestor: TinybirdIngestor,
        default_backfill_days: int = DEFAULT_BACKFILL_DAYS,
    ) -> None:
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.bot_filter = bot_filter
        self.enricher = enricher
        self.aggregator = aggregator
        self.ingestor = ingestor
        self.default_backfill_days = default_backfill_days

    async def process_date(self, day: date_type) -> List[EnrichedMeetingActivity]:
        """
        Build the aggregated, bot-free rows for `day` without ingesting them.
        """
        raw_entries = await self.fetcher.fetch(day)
        simplified = self.normalizer.normalize_many(raw_entries)
        humans = self.bot_filter.exclude_participants(simplified)
        if len(humans) != len(simplified):
            logger.info(
                "Dropped %d bot participant row(s) for %s",
                len(simplified) - len(humans),
                day.isoformat(),
            )
        enriched = await self.enricher.enrich(humans)
        return self.aggregator.aggregate(enriched)

    async def run_for_date(self, day: date_type) -> int:
        """
        Process and ingest one day. Returns the number of rows pushed.
        """
        records = await self.process_date(day)
        if not records:
            logger.info("No relevant (non-bot) data for %s", day.isoformat())
            return 0

        await self.ingestor.push([r.to_ingestion_row() for r in records])
        logger.info(
            "Pushed %d record(s) (excluding bot participants) for %s",
            len(records),
            day.isoformat(),
        )
        return len(records)

    async def run_range(self, start: date_type, end: date_type) -> IngestionSummary:
        """
        Process every day in [start, end], continuing past failed days.
        """
        days = list(iter_dates(start, end))
        total = await self._run_days(days)
        return IngestionSummary(
            message=(
                f"Fetched & pushed data from {start.isoformat()} to {end.isoformat()}, "
                "excluding notetakers, with participantCount, invitedCount and "
                "attendeePercentage."
            ),
            total_activities=total,
        )

    async def run_past_days(
        self, days: Optional[int], today: Optional[date_type] = None
    ) -> IngestionSummary:
        """
        Process the `days` days before `today` (UTC), most recent first.

        A missing or non-positive `days` falls back to the configured default.
        """
        if days is None or days < 1:
            days = self.default_backfill_days
        if today is None:
            today = datetime.now(tz=timezone.utc).date()

        targets = [today - timedelta(days=i) for i in range(1, days + 1)]
        total = await self._run_days(targets)
        return IngestionSummary(
            message=f"Fetched and pushed data for the past {days} day(s).",
            total_activities=total,
        )

    async def run_single_date(self, day: date_type) -> IngestionSummary:
        """
        Title-only ingestion of one day: no bot filtering, no aggregation.

        Any structural error propagates so the caller can fail the request.
        """
        raw_entries = await self.fetcher.fetch(day)
        simplified = self.normalizer.normalize_many(raw_entries)
        if not simplified:
            return IngestionSummary(
                message="No relevant Google Meet activities found for the specified date.",
                total_activities=0,
            )

        records = await self.enricher.attach_titles(simplified)
        await self.ingestor.push([r.to_ingestion_row() for r in records])
        logger.info("Pushed %d record(s) for %s", len(records), day.isoformat())
        return IngestionSummary(
            message="Data pushed to Tinybird successfully.",
            total_activities=len(records),
        )

    async def lookup_conference(self, conference_id: str) -> List[EnrichedMeetingActivity]:
        """
        Normalized, enriched and aggregated rows of one conference. Nothing
        is ingested.
        """
        raw_entries = await self.fetcher.fetch_by_conference_id(conference_id)
        simplified = self.normalizer.normalize_many(raw_entries)
        humans = self.bot_filter.exclude_participants(simplified)
        enriched = await self.enricher.enrich(humans)
        return self.aggregator.aggregate(enriched)

    async def _run_days(self, days: List[date_type]) -> int:
        total = 0
        for day in days:
            logger.info("Fetching data for %s", day.isoformat())
            try:
                total += await self.run_for_date(day)
            except ConfigurationError:
                logger.error("Aborting run at %s: ingestion is not configured", day.isoformat())
                raise
            except PipelineError:
                logger.exception("Error processing date %s", day.isoformat())
        return total
