from fastapi import APIRouter

from ...core.config import get_settings
from ...schemas.health import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus, summary="Health check")
async def health() -> HealthStatus:
    """Report liveness together with the contest the checker is configured for."""
    settings = get_settings()
    return HealthStatus(
        status="ok",
        app=settings.app_name,
        version=settings.version,
        contest_id=settings.contest_id,
    )
