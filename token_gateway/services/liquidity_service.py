"""
流动性数据服务
EVM 链：Uniswap v3 池 TVL / 24 小时成交量汇总
Solana：DexScreener 交易对汇总
"""

import logging
from typing import List, Optional

from token_gateway.config import settings
from token_gateway.layers.acquisition import get_acquisition_layer
from token_gateway.layers.cache import (
    get_cache_layer,
    solana_token_data_cache_key,
    uniswap_liquidity_cache_key,
)
from token_gateway.layers.processing import get_processing_layer
from token_gateway.models.market import LiquiditySummary, SolanaTokenData
from token_gateway.registry import SOLANA_CHAIN_ID

logger = logging.getLogger(__name__)


class LiquidityService:
    """流动性业务服务"""

    def __init__(self, acquisition=None, cache=None):
        self._acq = acquisition or get_acquisition_layer()
        self._cache = cache or get_cache_layer()
        self._proc = get_processing_layer()

    async def get_pools_for_token(
        self, chain_id: int, address: str, limit: int = None
    ) -> LiquiditySummary:
        """获取代币所在 Uniswap 池并汇总 TVL 与成交量"""
        limit = limit or settings.UNISWAP_POOL_LIMIT
        key = uniswap_liquidity_cache_key(chain_id, address)
        cached = await self._cache.get(key)
        if cached is not None:
            return LiquiditySummary.model_validate(cached)

        raw = await self._acq.get_uniswap_pools(chain_id, address, limit)
        df = self._proc.normalize_pools(raw)
        totals = self._proc.pool_totals(df)
        summary = LiquiditySummary(
            chain_id=chain_id,
            address=address,
            pools=self._proc.to_pool_stats(df),
            **totals,
        )
        logger.info(
            f"Uniswap 流动性汇总: chain={chain_id} address={address} "
            f"pools={summary.pool_count} tvl={summary.tvl_usd:.2f}"
        )
        await self._cache.set(key, summary.model_dump())
        return summary

    async def get_solana_token_data(self, addresses: List[str]) -> List[SolanaTokenData]:
        """批量获取 Solana 代币的流动性与成交量"""
        addresses = [a.strip() for a in addresses if a and a.strip()]
        if not addresses:
            return []

        key = solana_token_data_cache_key(addresses)
        cached = await self._cache.get(key)
        if cached is not None:
            return [SolanaTokenData.model_validate(item) for item in cached]

        pairs = await self._acq.get_dexscreener_pairs(addresses)
        tokens = self._proc.aggregate_solana_pairs(addresses, pairs)
        await self._cache.set(key, [t.model_dump() for t in tokens])
        return tokens

    async def get_liquidity(self, chain_id: int, address: str) -> LiquiditySummary:
        """统一入口：Solana 走 DexScreener，其余链走 Uniswap"""
        if chain_id == SOLANA_CHAIN_ID:
            tokens = await self.get_solana_token_data([address])
            token = tokens[0] if tokens else SolanaTokenData(address=address)
            return LiquiditySummary(
                chain_id=chain_id,
                address=address,
                tvl_usd=token.tvl_usd,
                volume_usd=token.volume_usd,
                pool_count=token.pair_count,
            )
        return await self.get_pools_for_token(chain_id, address)


# ── 模块级别单例 ──────────────────────────────────────────
_liquidity_service: Optional[LiquidityService] = None


def get_liquidity_service() -> LiquidityService:
    global _liquidity_service
    if _liquidity_service is None:
        _liquidity_service = LiquidityService()
    return _liquidity_service
