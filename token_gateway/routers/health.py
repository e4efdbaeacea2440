"""健康检查路由"""

import time

from fastapi import APIRouter

from token_gateway import __version__
from token_gateway.db import check_health
from token_gateway.layers.cache import get_cache_layer

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health():
    """服务健康检查"""
    db_health = await check_health()
    return {
        "success": True,
        "data": {
            "status": "ok",
            "version": __version__,
            "timestamp": int(time.time()),
            "service": "Token Gateway",
            "cache": {"memory_entries": len(get_cache_layer().memory), **db_health},
        },
        "message": "服务运行正常",
    }


@router.get("/healthz")
async def healthz():
    """Kubernetes liveness probe"""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz():
    """Kubernetes readiness probe"""
    return {"ready": True}
