# meet_sync/services/activity_normalizer.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Literal, Optional

from meet_sync.schemas.activity import (
    ActivityParameter,
    Location,
    RawActivityEntry,
    SimplifiedMeetingActivity,
)

logger = logging.getLogger(__name__)

REQUIRED_PARAMETERS = ("meeting_code", "conference_id", "organizer_email")


@dataclass(frozen=True)
class ParameterValue:
    """
    Typed value of one audit-log parameter.

    `kind` tells which of the Reports API value fields carried it, so numeric
    and boolean parameters are never read through their string form.
    """

    kind: Literal["bool", "int", "str"]
    value: bool | int | str

    def as_text(self) -> str:
        if self.kind == "bool":
            return "true" if self.value else "false"
        return str(self.value)

    def as_int(self) -> Optional[int]:
        """
        Integer reading of the value, or None when it has none.

        Numeric strings are accepted ("42", "42.7" -> 42); booleans are not.
        """
        if self.kind == "int":
            return int(self.value)
        if self.kind == "str":
            text = str(self.value).strip()
            if not text:
                return None
            try:
                return int(text)
            except ValueError:
                pass
            try:
                return int(float(text))
            except (ValueError, OverflowError):
                return None
        return None


def to_parameter_value(param: ActivityParameter) -> Optional[ParameterValue]:
    """
    Resolve a raw parameter to its typed value.

    The first present of boolValue, intValue, value wins. Parameters with
    none of them (e.g. multiValue-only) resolve to None.
    """
    if param.bool_value is not None:
        return ParameterValue("bool", param.bool_value)
    if param.int_value is not None:
        return ParameterValue("int", param.int_value)
    if param.value is not None:
        return ParameterValue("str", param.value)
    return None


def flatten_parameters(parameters: Iterable[ActivityParameter]) -> Dict[str, ParameterValue]:
    """
    Reduce an event's parameter list into a name -> typed value mapping.

    Later parameters with the same name overwrite earlier ones.
    """
    flat: Dict[str, ParameterValue] = {}
    for param in parameters:
        resolved = to_parameter_value(param)
        if resolved is None:
            logger.debug("Skipping parameter %r: no bool/int/string value", param.name)
            continue
        flat[param.name] = resolved
    return flat


def decode_flag(value: Optional[ParameterValue]) -> bool:
    """
    Decode a boolean-like parameter.

    Upstream encodes a true flag as boolean true, the string "true" or the
    integer 1. Every other value, including a missing one, is False.
    """
    if value is None:
        return False
    if value.kind == "bool":
        return value.value is True
    if value.kind == "str":
        return value.value == "true"
    return value.value == 1


def epoch_seconds_to_iso(seconds: int) -> str:
    """
    Convert epoch seconds to an ISO-8601 UTC string with millisecond
    precision and a trailing Z, e.g. 2025-02-05T22:49:47.000Z.
    """
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ActivityNormalizer:
    """
    Maps raw Meet audit-log entries to SimplifiedMeetingActivity records.

    Rules
    -----
    - Only the first event of an entry is used; entries with more than one
      event are logged so the dropped events are visible.
    - Entries without events, or missing any of meeting_code, conference_id
      or organizer_email, are discarded (None), never raised.
    - start_timestamp_seconds wins over the entry's own timestamp.
    - duration_seconds defaults to 0 when missing, non-numeric or negative.
    """

    def normalize(self, entry: RawActivityEntry) -> Optional[SimplifiedMeetingActivity]:
        if not entry.events:
            return None

        if len(entry.events) > 1:
            logger.warning(
                "Activity %s has %d events; using the first and ignoring %d",
                entry.qualifier,
                len(entry.events),
                len(entry.events) - 1,
            )

        params = flatten_parameters(entry.events[0].parameters)

        required = {name: self._text(params, name) for name in REQUIRED_PARAMETERS}
        if not all(required.values()):
            return None

        return SimplifiedMeetingActivity(
            meeting_code=required["meeting_code"],
            conference_id=required["conference_id"],
            calendar_event_id=self._text(params, "calendar_event_id"),
            organizer_email=required["organizer_email"],
            participant_email=self._text(params, "identifier"),
            participant_display_name=self._text(params, "display_name"),
            start_timestamp=self._start_timestamp(params, entry),
            duration_seconds=self._duration(params),
            is_external=decode_flag(params.get("is_external")),
            location=Location(
                country=self._text(params, "location_country"),
                region=self._text(params, "location_region"),
            ),
        )

    def normalize_many(self, entries: Iterable[RawActivityEntry]) -> List[SimplifiedMeetingActivity]:
        """
        Normalize a sequence of entries, dropping discarded ones and keeping
        input order.
        """
        records: List[SimplifiedMeetingActivity] = []
        discarded = 0
        for entry in entries:
            record = self.normalize(entry)
            if record is None:
                discarded += 1
                continue
            records.append(record)

        if discarded:
            logger.debug("Discarded %d activities without required meeting fields", discarded)
        return records

    @staticmethod
    def _text(params: Dict[str, ParameterValue], name: str) -> str:
        value = params.get(name)
        return value.as_text() if value is not None else ""

    @staticmethod
    def _duration(params: Dict[str, ParameterValue]) -> int:
        value = params.get("duration_seconds")
        seconds = value.as_int() if value is not None else None
        if seconds is None or seconds < 0:
            return 0
        return seconds

    @staticmethod
    def _start_timestamp(params: Dict[str, ParameterValue], entry: RawActivityEntry) -> str:
        value = params.get("start_timestamp_seconds")
        seconds = value.as_int() if value is not None else None
        if seconds:
            try:
                return epoch_seconds_to_iso(seconds)
            except (OverflowError, OSError, ValueError):
                logger.warning(
                    "Activity %s has an out-of-range start_timestamp_seconds=%r",
                    entry.qualifier,
                    seconds,
                )
        return entry.time or ""
