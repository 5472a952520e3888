# meet_sync/api/dependencies/internal_auth.py
from typing import Optional

from fastapi import Header, HTTPException, status

from meet_sync.core.config import get_settings

_OPEN_ENVIRONMENTS = ("local", "test")


async def verify_internal_api_key(
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description="Shared key for the Meet ingestion triggers and conference inspection.",
    ),
) -> None:
    """
    Guard for the ingestion trigger routes under /internal.

    A trigger can push a whole backfill into Tinybird, so outside local/test
    every call must carry the shared key.

    Rules
    -----
    - local/test with no INTERNAL_API_KEY configured: triggers are open.
    - Any environment with INTERNAL_API_KEY configured: the header must match.
    - Other environments without INTERNAL_API_KEY: 500, the deployment is
      misconfigured and no ingestion is started.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = getattr(settings, "INTERNAL_API_KEY", None)

    if not expected:
        if env in _OPEN_ENVIRONMENTS:
            return
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Ingestion triggers are disabled: INTERNAL_API_KEY is not set for APP_ENV={env!r}.",
        )

    if internal_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Internal-Api-Key for Meet ingestion triggers.",
        )
