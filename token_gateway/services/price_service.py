"""
代币价格服务
基于 CoinGecko，按合约地址或符号查询价格，结果写入 1 分钟缓存
"""

import logging
from typing import Optional

from token_gateway.layers.acquisition import get_acquisition_layer
from token_gateway.layers.cache import (
    get_cache_layer,
    token_price_cache_key,
    token_symbol_price_cache_key,
)
from token_gateway.layers.processing import get_processing_layer
from token_gateway.models.market import CoinGeckoPriceData
from token_gateway.registry import get_chain

logger = logging.getLogger(__name__)


class PriceService:
    """代币价格业务服务"""

    def __init__(self, acquisition=None, cache=None):
        self._acq = acquisition or get_acquisition_layer()
        self._cache = cache or get_cache_layer()
        self._proc = get_processing_layer()

    async def fetch_token_price_by_address(
        self, chain_id: int, address: str
    ) -> Optional[CoinGeckoPriceData]:
        """按链 + 合约地址查询价格，CoinGecko 未收录或链不受支持时返回 None"""
        chain = get_chain(chain_id)
        if chain is None or not chain.coingecko_platform or not address:
            return None

        key = token_price_cache_key(chain_id, address)
        cached = await self._cache.get(key)
        if cached is not None:
            return CoinGeckoPriceData.model_validate(cached)

        doc = await self._acq.get_coingecko_contract(chain.coingecko_platform, address)
        if not doc:
            logger.debug(f"CoinGecko 未收录: chain={chain_id} address={address}")
            return None

        price = self._proc.coingecko_from_contract(doc)
        await self._cache.set(key, price.model_dump())
        return price

    async def fetch_token_price_by_symbol(self, symbol: str) -> Optional[CoinGeckoPriceData]:
        """按符号查询价格：搜索结果中取第一个符号完全一致的币种"""
        if not symbol or not symbol.strip():
            return None

        key = token_symbol_price_cache_key(symbol)
        cached = await self._cache.get(key)
        if cached is not None:
            return CoinGeckoPriceData.model_validate(cached)

        wanted = symbol.strip().lower()
        coins = await self._acq.search_coingecko(wanted)
        match = next((c for c in coins if (c.get("symbol") or "").lower() == wanted), None)
        if match is None:
            return None

        rows = await self._acq.get_coingecko_markets([match["id"]])
        if not rows:
            return None

        price = self._proc.coingecko_from_market_row(rows[0])
        await self._cache.set(key, price.model_dump())
        return price


# ── 模块级别单例 ──────────────────────────────────────────
_price_service: Optional[PriceService] = None


def get_price_service() -> PriceService:
    global _price_service
    if _price_service is None:
        _price_service = PriceService()
    return _price_service
