from typing import Any, Dict

from fastapi import APIRouter, Depends

from .dependencies import ServiceContainer, get_container

router = APIRouter()


@router.get("/healthz")
async def health_check(services: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Liveness plus which credentials are configured. Makes no outbound calls."""

    settings = services.settings
    providers = {
        "llm": {
            "provider": settings.llm_provider,
            "configured": settings.has_llm_key,
        },
        "ledger": {
            "backend": settings.ledger_backend,
            "configured": settings.ledger_backend == "memory" or settings.has_arkiv_key,
        },
    }
    return {
        "status": "healthy" if all(p["configured"] for p in providers.values()) else "degraded",
        "providers": providers,
    }
