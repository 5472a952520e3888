# meet_sync/services/activity_fetcher.py
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Any, Dict, List

from pydantic import ValidationError

from meet_sync.core.exceptions import UpstreamFetchError
from meet_sync.schemas.activity import RawActivityEntry
from meet_sync.services.google_client import GoogleApiClient, GoogleApiError

logger = logging.getLogger(__name__)

ACTIVITIES_PATH = "/admin/reports/v1/activity/users/{user_key}/applications/{application}"


class RawActivityFetcher:
    """
    Retrieves Google Meet audit-log activities from the Admin SDK Reports API.

    A day is queried as the UTC window [day 00:00:00, day 23:59:59] for all
    users. Pages are followed through `nextPageToken` and concatenated in the
    order the API returns them.
    """

    def __init__(
        self,
        google_client: GoogleApiClient,
        application_name: str = "meet",
        user_key: str = "all",
    ) -> None:
        self.google = google_client
        self.path = ACTIVITIES_PATH.format(user_key=user_key, application=application_name)

    async def fetch(self, day: date_type) -> List[RawActivityEntry]:
        """
        Fetch every activity recorded on `day` (UTC).

        Raises
        ------
        UpstreamFetchError
            If any page request fails. Pages already fetched are discarded.
        """
        iso_day = day.isoformat()
        params: Dict[str, Any] = {
            "startTime": f"{iso_day}T00:00:00Z",
            "endTime": f"{iso_day}T23:59:59Z",
        }

        entries: List[RawActivityEntry] = []
        page_token: str | None = None
        page_count = 0

        while True:
            params["pageToken"] = page_token
            payload = await self._get_page(params, context=f"date {iso_day}")
            page_count += 1
            entries.extend(self._parse_items(payload, context=f"date {iso_day}"))

            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        logger.info(
            "Fetched %d Google Meet activities for date %s (%d page(s))",
            len(entries),
            iso_day,
            page_count,
        )
        return entries

    async def fetch_by_conference_id(self, conference_id: str) -> List[RawActivityEntry]:
        """
        Fetch the activities of one conference using the Reports API filter
        syntax. Only the first page is returned.
        """
        params = {"filters": f"conference_id=={conference_id}"}
        context = f"conference {conference_id}"
        payload = await self._get_page(params, context=context)
        entries = self._parse_items(payload, context=context)
        logger.info("Fetched %d activities for conference %s", len(entries), conference_id)
        return entries

    async def _get_page(self, params: Dict[str, Any], *, context: str) -> Dict[str, Any]:
        try:
            return await self.google.get_json(self.path, params=params)
        except GoogleApiError as exc:
            logger.error("Error while paging Google Meet activities for %s: %s", context, exc)
            raise UpstreamFetchError(
                f"Failed to fetch Google Meet activities for {context}: {exc}"
            ) from exc

    @staticmethod
    def _parse_items(payload: Dict[str, Any], *, context: str) -> List[RawActivityEntry]:
        """
        Validate the page's items one by one.

        An item that does not match the activity shape is logged and skipped;
        a page whose `items` is not a list raises UpstreamFetchError.
        """
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise UpstreamFetchError(
                f"Malformed activity page for {context}: items is {type(items).__name__}"
            )

        entries: List[RawActivityEntry] = []
        for index, item in enumerate(items):
            try:
                entries.append(RawActivityEntry.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed activity #%d for %s: %s", index, context, exc
                )
        return entries
