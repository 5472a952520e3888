# meet_sync/services/bot_filter.py
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, TypeVar

from meet_sync.schemas.activity import SimplifiedMeetingActivity
from meet_sync.schemas.calendar import Attendee

# Substrings seen in recorder/transcriber identities (Otter, Fireflies,
# Read.ai, tl;dv "meeting" bots, Phantom, Vomo, generic notetakers).
DEFAULT_BOT_KEYWORDS: Sequence[str] = (
    "note",
    "read",
    "meeting",
    "fireflies",
    "phantom",
    "bot",
    "otter",
    "vomo",
)

_RecordT = TypeVar("_RecordT", bound=SimplifiedMeetingActivity)


class BotHeuristicFilter:
    """
    Classifies participant and invitee identities as automated or human.

    The same instance must be used for the participant side and the invitee
    side so both counts are computed against one keyword set.
    """

    def __init__(self, keywords: Sequence[str] = DEFAULT_BOT_KEYWORDS) -> None:
        if not keywords:
            raise ValueError("at least one bot keyword is required")
        self.keywords = tuple(k.lower() for k in keywords)
        self._pattern = re.compile(
            "|".join(re.escape(k) for k in self.keywords), re.IGNORECASE
        )

    def is_automated(
        self,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> bool:
        return bool(
            self._pattern.search(display_name or "") or self._pattern.search(email or "")
        )

    def exclude_participants(self, records: Iterable[_RecordT]) -> List[_RecordT]:
        return [
            r
            for r in records
            if not self.is_automated(r.participant_display_name, r.participant_email)
        ]

    def exclude_attendees(self, attendees: Iterable[Attendee]) -> List[Attendee]:
        return [a for a in attendees if not self.is_automated(a.display_name, a.email)]
