from fastapi import APIRouter, Depends

from redirector.core.state import AppContext, get_context

router = APIRouter()


@router.get("/health")
async def health_check(context: AppContext = Depends(get_context)):
    """Lightweight health check"""
    config = context.config
    return {
        "status": "ok",
        "version": config.api.version,
        "ytdlp_version": context.ytdlp_version,
        "cache_enabled": config.cache.enabled,
        "cache_entries": len(context.cache),
        "lock_mode": config.policy.lock_mode,
    }
