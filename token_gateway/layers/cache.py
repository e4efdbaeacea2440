"""
Layer 2 – 缓存层
优先级：进程内 TTL 缓存（1 分钟） → Redis（可选，跨进程共享）
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from token_gateway.config import settings
from token_gateway.db import get_redis

logger = logging.getLogger(__name__)


# ── 缓存键生成 ────────────────────────────────────────────

def uniswap_liquidity_cache_key(chain_id: int, query: str) -> str:
    """Uniswap 流动性数据缓存键"""
    return f"uniswap-liquidity-{chain_id}-{query.strip().lower()}"


def solana_token_data_cache_key(addresses: Iterable[str]) -> str:
    """Solana 代币数据缓存键（地址排序后拼接，保证键稳定）"""
    return f"solana-token-data-{','.join(sorted(addresses))}"


def token_price_cache_key(chain_id: int, address: str) -> str:
    """代币价格缓存键"""
    return f"token-price-{chain_id}-{address.lower()}"


def token_symbol_price_cache_key(symbol: str) -> str:
    return f"token-price-symbol-{symbol.strip().lower()}"


def stock_quote_cache_key(ticker: str) -> str:
    return f"stock-quote-{ticker.upper()}"


def swap_widget_token_lists_cache_key() -> str:
    """兑换组件代币列表地址缓存键"""
    return "token-lists-swap-widget"


class MemoryCache:
    """进程内 TTL 缓存：按写入时间线性判断过期，无容量淘汰策略"""

    def __init__(self, ttl: float = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = settings.CACHE_TTL if ttl is None else ttl
        self._clock = clock
        self._store: Dict[str, Tuple[Any, float]] = {}

    def _is_expired(self, timestamp: float) -> bool:
        return self._clock() - timestamp > self.ttl

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, timestamp = entry
        if self._is_expired(timestamp):
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._store[key] = (value, self._clock())

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear_expired(self) -> int:
        """清理全部过期条目，返回清理数量"""
        expired = [k for k, (_, ts) in self._store.items() if self._is_expired(ts)]
        for key in expired:
            del self._store[key]
        return len(expired)

    def clear_all(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class CacheLayer:
    """两级缓存层：进程内缓存优先，Redis 可用时作为共享二级缓存"""

    def __init__(self, memory: Optional[MemoryCache] = None):
        self.memory = memory or MemoryCache()

    async def get(self, key: str) -> Optional[Any]:
        # L1: 进程内
        value = self.memory.get(key)
        if value is not None:
            logger.debug(f"缓存命中（内存）: {key}")
            return value

        # L2: Redis
        redis = get_redis()
        if redis:
            try:
                raw = await redis.get(key)
                if raw:
                    logger.debug(f"缓存命中（Redis）: {key}")
                    value = json.loads(raw)
                    self.memory.set(key, value)
                    return value
            except Exception as exc:
                logger.debug(f"Redis 读取失败: {exc}")

        return None

    async def set(self, key: str, value: Any, ttl: int = None) -> None:
        if ttl is None:
            ttl = settings.CACHE_TTL
        self.memory.set(key, value)
        logger.debug(f"缓存写入（内存）: {key}")

        redis = get_redis()
        if redis:
            try:
                await redis.setex(key, ttl, json.dumps(value, ensure_ascii=False, default=str))
                logger.debug(f"缓存写入（Redis）: {key}")
            except Exception as exc:
                logger.debug(f"Redis 写入失败: {exc}")

    async def delete(self, key: str) -> None:
        self.memory.delete(key)
        redis = get_redis()
        if redis:
            try:
                await redis.delete(key)
            except Exception as exc:
                logger.debug(f"Redis 删除失败: {exc}")

    async def clear(self) -> None:
        """清空进程内缓存（Redis 中的条目按各自 TTL 自然过期）"""
        self.memory.clear_all()

    def sweep(self) -> int:
        removed = self.memory.clear_expired()
        if removed:
            logger.debug(f"清理过期缓存条目 {removed} 个")
        return removed

    async def stats(self) -> dict:
        """返回各缓存后端统计信息"""
        result: dict = {
            "memory": {"entries": len(self.memory), "ttl": self.memory.ttl, "status": "healthy"},
        }
        redis = get_redis()
        if redis:
            try:
                result["redis"] = {"keys": await redis.dbsize(), "status": "healthy"}
            except Exception as exc:
                result["redis"] = {"status": "error", "error": str(exc)}
        else:
            result["redis"] = {"status": "disabled"}
        return result


# ── 模块级别单例 ──────────────────────────────────────────
_cache: Optional[CacheLayer] = None


def get_cache_layer() -> CacheLayer:
    global _cache
    if _cache is None:
        _cache = CacheLayer()
    return _cache
