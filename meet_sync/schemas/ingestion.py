# meet_sync/schemas/ingestion.py
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from meet_sync.schemas.activity import EnrichedMeetingActivity


class IngestionSummary(BaseModel):
    """
    Result returned to callers of the single-date, range and backfill runs.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = Field(..., examples=["Fetched & pushed data from 2025-02-01 to 2025-02-07."])
    total_activities: int = Field(
        0,
        description="Number of rows pushed to the analytics store across all processed dates.",
        examples=[412],
    )


class ConferenceActivities(BaseModel):
    """
    Normalized and enriched rows for a single conference, not ingested.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    conference_id: str
    total_activities: int
    activities: List[EnrichedMeetingActivity]
