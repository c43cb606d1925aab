from fastapi import APIRouter

from invoice_api.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str | bool]:
    return {
        "status": "ok",
        "service": settings.api_name,
        "version": settings.api_version,
        "openai_configured": bool(settings.openai_api_key),
    }
