# meet_sync/api/dependencies/pipeline.py
from functools import lru_cache

from fastapi import HTTPException, status

from meet_sync.core.config import get_settings
from meet_sync.core.exceptions import ConfigurationError
from meet_sync.services.factory import build_pipeline
from meet_sync.services.meet_pipeline import MeetActivityPipeline


@lru_cache()
def _shared_pipeline() -> MeetActivityPipeline:
    return build_pipeline(get_settings())


def get_pipeline() -> MeetActivityPipeline:
    """
    FastAPI dependency returning the process-wide pipeline.

    Overridden in tests through `app.dependency_overrides`.
    """
    try:
        return _shared_pipeline()
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
