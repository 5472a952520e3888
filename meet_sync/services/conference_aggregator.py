# meet_sync/services/conference_aggregator.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from meet_sync.schemas.activity import EnrichedMeetingActivity


@dataclass(frozen=True)
class ConferenceAggregate:
    participant_count: int
    invited_count: Optional[int]
    attendee_percentage: Optional[int]


def attendance_percentage(participant_count: int, invited_count: Optional[int]) -> Optional[int]:
    """
    participant / invited * 100, rounded half up to an int.

    Returns None when there is no resolved invite list.
    """
    if not invited_count:
        return None
    # floor(p * 100 / i + 0.5) in integer arithmetic
    return (2 * participant_count * 100 + invited_count) // (2 * invited_count)


class ConferenceAggregator:
    """
    Computes per-conference attendance figures and broadcasts them to every
    row of the conference.

    Rules
    -----
    - participant_count: distinct participant emails, case-insensitive.
    - invited_count: length of the (already bot-filtered) attendee list of the
      group's calendar match, or None when that list is empty.
    - attendee_percentage: see `attendance_percentage`; None when
      invited_count is None.

    Existing aggregate fields on the input are ignored, so aggregating an
    already aggregated batch gives the same figures.
    """

    def compute(
        self, records: Sequence[EnrichedMeetingActivity]
    ) -> Dict[str, ConferenceAggregate]:
        groups: Dict[str, List[EnrichedMeetingActivity]] = {}
        for record in records:
            groups.setdefault(record.conference_id, []).append(record)

        aggregates: Dict[str, ConferenceAggregate] = {}
        for conference_id, group in groups.items():
            participants = {r.participant_email.lower() for r in group}
            # Every row of a conference shares the same calendar lookup
            invited = len(group[0].attendees) or None
            aggregates[conference_id] = ConferenceAggregate(
                participant_count=len(participants),
                invited_count=invited,
                attendee_percentage=attendance_percentage(len(participants), invited),
            )
        return aggregates

    def aggregate(
        self, records: Sequence[EnrichedMeetingActivity]
    ) -> List[EnrichedMeetingActivity]:
        """
        Return copies of `records`, in input order, annotated with their
        conference's aggregate.
        """
        aggregates = self.compute(records)
        return [
            r.model_copy(
                update={
                    "participant_count": aggregates[r.conference_id].participant_count,
                    "invited_count": aggregates[r.conference_id].invited_count,
                    "attendee_percentage": aggregates[r.conference_id].attendee_percentage,
                    "aggregated": True,
                }
            )
            for r in records
        ]
