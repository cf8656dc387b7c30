"""
Health check — /v1/healthcheck
"""
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthcheck")
def healthcheck(request: Request) -> dict:
    """Liveness probe. Reports the running environment and build version."""
    config = request.app.state.settings
    return {
        "status": "available",
        "system_info": {
            "environment": config.APP_ENV,
            "version": config.VERSION,
        },
    }
