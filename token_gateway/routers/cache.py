"""
缓存管理路由
GET  /api/cache/stats     - 缓存统计
POST /api/cache/clear     - 清理缓存（指定 key 或全部）
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from token_gateway.layers.cache import get_cache_layer
from token_gateway.models.response import ApiResponse

router = APIRouter(prefix="/api/cache", tags=["缓存管理"])


class ClearRequest(BaseModel):
    key: Optional[str] = None


@router.get("/stats", response_model=ApiResponse)
async def cache_stats():
    """获取缓存统计信息"""
    stats = await get_cache_layer().stats()
    return ApiResponse.ok(data=stats)


@router.post("/clear", response_model=ApiResponse)
async def clear_cache(body: ClearRequest):
    """清理指定缓存条目；未指定 key 时清空进程内缓存"""
    cache = get_cache_layer()
    if body.key:
        await cache.delete(body.key)
        return ApiResponse.ok(message=f"缓存已清理: {body.key}")
    await cache.clear()
    return ApiResponse.ok(message="进程内缓存已清空")
