# meet_sync/api/routes/internal.py
import logging
from datetime import date as date_type, datetime, timedelta, timezone
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Query

from meet_sync.api.dependencies.internal_auth import verify_internal_api_key
from meet_sync.api.dependencies.pipeline import get_pipeline
from meet_sync.core.exceptions import ConfigurationError, InvalidDateRangeError, PipelineError
from meet_sync.schemas.ingestion import ConferenceActivities, IngestionSummary
from meet_sync.services.meet_pipeline import MeetActivityPipeline

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


def _http_error(exc: PipelineError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))
    return HTTPException(
        status_code=HTTPStatus.BAD_GATEWAY,
        detail=f"Upstream call failed: {exc}",
    )


@router.post(
    "/push-meet-activities",
    response_model=IngestionSummary,
    status_code=HTTPStatus.OK,
    summary="Ingest one day of Meet activity with meeting titles",
    description=(
        "Fetches the Meet audit log for `date` (defaults to yesterday, UTC), "
        "attaches the calendar title to every row and pushes the batch to "
        "Tinybird. Intended for the nightly scheduler.\n\n"
        "Any fetch or ingestion failure fails the whole request (502)."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        502: {"description": "Reports API or Tinybird call failed."},
    },
)
async def push_meet_activities(
    date: date_type | None = Query(
        default=None,
        description="UTC day to ingest (YYYY-MM-DD). Defaults to yesterday.",
        examples=["2025-02-07"],
    ),
    pipeline: MeetActivityPipeline = Depends(get_pipeline),
) -> IngestionSummary:
    if date is None:
        date = datetime.now(tz=timezone.utc).date() - timedelta(days=1)

    try:
        return await pipeline.run_single_date(date)
    except PipelineError as exc:
        logger.exception("Single-date ingestion failed for %s", date.isoformat())
        raise _http_error(exc) from exc


@router.post(
    "/fetch-date-range",
    response_model=IngestionSummary,
    status_code=HTTPStatus.OK,
    summary="Ingest an inclusive date range with attendance figures",
    description=(
        "Processes every day from `start` to `end` (inclusive): bot participants "
        "and bot invitees are excluded, and every row carries `participantCount`, "
        "`invitedCount` (null when no invite matched) and `attendeePercentage`.\n\n"
        "A failing day is logged and skipped; the response reports the "
        "best-effort total."
    ),
    responses={
        400: {"description": '"start" is after "end".'},
        401: {"description": "Missing or invalid internal API key (if configured)."},
    },
)
async def fetch_date_range(
    start: date_type = Query(..., description="First UTC day (YYYY-MM-DD).", examples=["2024-11-01"]),
    end: date_type = Query(..., description="Last UTC day (YYYY-MM-DD).", examples=["2024-11-30"]),
    pipeline: MeetActivityPipeline = Depends(get_pipeline),
) -> IngestionSummary:
    try:
        return await pipeline.run_range(start, end)
    except InvalidDateRangeError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/fetch-range",
    response_model=IngestionSummary,
    status_code=HTTPStatus.OK,
    summary="Backfill the past N days",
    description=(
        "Processes the `days` days before today (UTC), most recent first. "
        "Defaults to BACKFILL_DEFAULT_DAYS when omitted or below 1. Same "
        "per-day continue policy as /fetch-date-range."
    ),
)
async def fetch_range(
    days: int | None = Query(default=None, description="Number of past days to process."),
    pipeline: MeetActivityPipeline = Depends(get_pipeline),
) -> IngestionSummary:
    try:
        return await pipeline.run_past_days(days)
    except ConfigurationError as exc:
        raise _http_error(exc) from exc


@router.get(
    "/conference/{conference_id}",
    response_model=ConferenceActivities,
    status_code=HTTPStatus.OK,
    summary="Inspect one conference without ingesting",
    description=(
        "Looks up the audit-log rows of a single conference and returns them "
        "normalized, enriched and aggregated. Nothing is pushed to Tinybird."
    ),
)
async def get_conference(
    conference_id: str,
    pipeline: MeetActivityPipeline = Depends(get_pipeline),
) -> ConferenceActivities:
    try:
        records = await pipeline.lookup_conference(conference_id)
    except PipelineError as exc:
        raise _http_error(exc) from exc

    return ConferenceActivities(
        conference_id=conference_id,
        total_activities=len(records),
        activities=records,
    )
