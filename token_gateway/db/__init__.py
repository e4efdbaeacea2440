"""
共享连接管理模块
统一管理 Redis（异步）连接与上游 HTTP 客户端
"""

import logging
from typing import Optional

import httpx
from redis.asyncio import Redis, ConnectionPool

from token_gateway.config import settings

logger = logging.getLogger(__name__)

# ── 全局连接实例 ─────────────────────────────────────────
_redis_client: Optional[Redis] = None
_redis_pool: Optional[ConnectionPool] = None
_http_client: Optional[httpx.AsyncClient] = None


async def init_redis() -> bool:
    """初始化 Redis 异步连接，返回是否成功"""
    global _redis_client, _redis_pool
    if not settings.REDIS_ENABLED:
        logger.info("Redis 未启用，仅使用进程内缓存")
        return False
    try:
        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=10,
        )
        _redis_client = Redis(connection_pool=_redis_pool)
        await _redis_client.ping()
        logger.info(f"✅ Redis 连接成功: {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        return True
    except Exception as exc:
        logger.warning(f"⚠️ Redis 连接失败（服务将继续以进程内缓存运行）: {exc}")
        _redis_client = None
        _redis_pool = None
        return False


def build_http_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """按配置创建上游 HTTP 客户端（统一超时与请求头）"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout or settings.HTTP_TIMEOUT),
        follow_redirects=True,
        headers={"User-Agent": settings.USER_AGENT, "Accept": "application/json"},
    )


def get_http_client() -> httpx.AsyncClient:
    """获取共享 HTTP 客户端（惰性创建）"""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = build_http_client()
    return _http_client


async def close_connections():
    """关闭 Redis 连接与共享 HTTP 客户端"""
    global _redis_client, _redis_pool, _http_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("Redis 连接已关闭")
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_redis() -> Optional[Redis]:
    """获取 Redis 客户端（可能为 None）"""
    return _redis_client


async def check_health() -> dict:
    """检查共享连接健康状态"""
    result = {"redis": {"status": "disabled"}}
    if _redis_client:
        try:
            await _redis_client.ping()
            result["redis"] = {"status": "healthy", "host": settings.REDIS_HOST}
        except Exception as exc:
            result["redis"] = {"status": "unhealthy", "error": str(exc)}
    elif settings.REDIS_ENABLED:
        result["redis"] = {"status": "disconnected"}
    return result
