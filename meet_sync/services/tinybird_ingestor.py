# meet_sync/services/tinybird_ingestor.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from meet_sync.core.exceptions import ConfigurationError, IngestionError

logger = logging.getLogger(__name__)

DEFAULT_TINYBIRD_URL = "https://api.tinybird.co/v0/events"

# Row used to create the data source with the expected column layout.
SAMPLE_ACTIVITY_ROW: Dict[str, Any] = {
    "meetingCode": "INZGBSJYMQ",
    "conferenceId": "8BYeOiDd0iK3ojDY4ntEDxIUOAwLAjIGCIoCIAAYBQg",
    "calendarEventId": "sample_calendar_event_id",
    "organizerEmail": "organizer@example.com",
    "participantEmail": "participant@example.com",
    "participantDisplayName": "Sample Participant",
    "startTimestamp": "2025-02-05T22:49:47.021Z",
    "durationSeconds": 13960,
    "isExternal": 1,
    "location": {"country": "US", "region": "Miami"},
    "meetingName": "Sample meeting",
    "attendees": [{"email": "participant@example.com", "responseStatus": "accepted"}],
    "participantCount": 1,
    "invitedCount": 1,
    "attendeePercentage": 100,
}


def to_ndjson(rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Serialize rows as newline-delimited JSON, one object per line, in order.
    """
    return "\n".join(json.dumps(row, separators=(",", ":"), ensure_ascii=False) for row in rows)


class TinybirdIngestor:
    """
    Pushes rows to a Tinybird data source through the Events API.

    Notes
    -----
    - A batch is one request: it lands entirely or the call raises.
    - Missing token / data source is a configuration error raised before any
      network I/O.
    """

    def __init__(
        self,
        token: Optional[str],
        data_source: Optional[str],
        url: str = DEFAULT_TINYBIRD_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._token = token
        self._data_source = data_source
        self._url = url
        self._timeout_seconds = timeout_seconds

    def _require_config(self) -> None:
        if not self._token:
            raise ConfigurationError("TINYBIRD_TOKEN is not configured")
        if not self._data_source:
            raise ConfigurationError("TINYBIRD_DATA_SOURCE is not configured")

    async def push(self, rows: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Push `rows` as a single NDJSON batch.

        Returns
        -------
        dict
            Tinybird's response payload (e.g. successful/quarantined row
            counts). An empty batch is a no-op returning {}.

        Raises
        ------
        ConfigurationError
            Token or data source not configured.
        IngestionError
            Transport failure or non-2xx response.
        """
        self._require_config()
        if not rows:
            return {}

        payload = await self._post(
            content=to_ndjson(rows),
            content_type="application/x-ndjson",
        )
        logger.info(
            "Ingested %d row(s) into Tinybird data source %s: %s",
            len(rows),
            self._data_source,
            payload,
        )
        return payload

    async def create_data_source(
        self, sample_row: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create (or append to) the data source by sending a single JSON row so
        Tinybird infers the column layout.
        """
        self._require_config()
        row = dict(sample_row or SAMPLE_ACTIVITY_ROW)
        payload = await self._post(content=json.dumps(row), content_type="application/json")
        logger.info("Tinybird data source %s created: %s", self._data_source, payload)
        return payload

    async def _post(self, *, content: str, content_type: str) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": content_type,
        }
        params = {"name": self._data_source}

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.post(
                    self._url,
                    params=params,
                    content=content.encode("utf-8"),
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.error("Error ingesting data into Tinybird: %s", exc)
            raise IngestionError(f"Tinybird request failed: {exc}") from exc

        if resp.status_code // 100 != 2:
            logger.error(
                "Tinybird rejected batch (status=%s): %s", resp.status_code, resp.text
            )
            raise IngestionError(
                f"Tinybird ingestion failed (status={resp.status_code}): {resp.text}"
            )

        try:
            return resp.json()
        except ValueError:
            return {"raw": resp.text}
