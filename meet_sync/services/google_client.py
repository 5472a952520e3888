# meet_sync/services/google_client.py
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional

import httpx


class GoogleApiError(RuntimeError):
    """
    Raised when a Google REST call fails, either at the transport level
    (status_code is None) or with a non-2xx response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == HTTPStatus.NOT_FOUND


class GoogleApiClient:
    """
    Minimal async client for Google REST APIs (Admin SDK Reports, Calendar).

    Responsibilities
    ----------------
    - Attach the pre-issued bearer token to every request.
    - Join relative paths onto the configured base URL.
    - Translate transport failures and non-2xx responses into GoogleApiError
      so callers never deal with httpx details.

    Notes
    -----
    - Token issuance (service account + domain-wide delegation) happens
      outside this service; the token is supplied as configuration.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://www.googleapis.com",
        timeout_seconds: float = 30.0,
    ) -> None:
        if not access_token:
            raise ValueError("access_token is required")

        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def _build_url(self, path: str) -> str:
        # If path is not an absolute URL, treat it as relative to base_url.
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Low-level helper for issuing an authenticated HTTP request.

        Parameters
        ----------
        method:
            HTTP method (GET, POST, etc.).
        path:
            Either an absolute URL or a path relative to the configured base_url.
        params:
            Optional query string parameters. Keys with a None value are dropped.

        Returns
        -------
        httpx.Response
            The raw HTTP response object.
        """
        url = self._build_url(path)
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        clean_params = (
            {k: v for k, v in params.items() if v is not None} if params else None
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                return await client.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    params=clean_params,
                )
        except httpx.HTTPError as exc:
            raise GoogleApiError(
                f"Google {method.upper()} {url} failed: {exc.__class__.__name__}: {exc}"
            ) from exc

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Issue a GET request and return the JSON payload.

        Raises GoogleApiError on transport errors and non-2xx responses.
        """
        resp = await self._request("GET", path, params=params)
        if resp.status_code // 100 != 2:
            raise GoogleApiError(
                f"Google GET failed (status={resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise GoogleApiError(
                f"Google GET returned a non-JSON body (status={resp.status_code})",
                status_code=resp.status_code,
            ) from exc
