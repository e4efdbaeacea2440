"""
代币详情服务
整合价格、股票行情、流动性三类数据，生成详情页所需的完整视图数据

数据流：
  URL 参数 → 元数据查询 → 价格依次尝试（地址 → 符号 → 其他链） →
  股票行情（可选） → TVL / 成交量（可选） → 图表符号推导
"""

import logging
from typing import List, Optional

from token_gateway.layers import presentation
from token_gateway.models.market import CoinGeckoPriceData, StockData, TokenDetails
from token_gateway.registry import (
    get_explorer_url,
    get_stock_ticker,
    get_token_metadata,
    is_tokenized_stock,
)
from token_gateway.services.liquidity_service import get_liquidity_service
from token_gateway.services.price_service import get_price_service
from token_gateway.services.stock_service import get_stock_service

logger = logging.getLogger(__name__)

# 主链未查到价格时依次尝试的链
ALTERNATIVE_CHAINS: List[int] = [1, 42161, 10, 8453, 137]

PRICE_ERROR_MESSAGE = "Failed to load token data"


class TokenDetailsService:
    """代币详情聚合服务"""

    def __init__(self, prices=None, stocks=None, liquidity=None):
        self._prices = prices or get_price_service()
        self._stocks = stocks or get_stock_service()
        self._liquidity = liquidity or get_liquidity_service()

    async def _fetch_price(
        self, chain_id: int, address: str, registry_symbol: Optional[str]
    ) -> Optional[CoinGeckoPriceData]:
        price = None
        if address:
            price = await self._prices.fetch_token_price_by_address(chain_id, address)
        if price is None and registry_symbol:
            price = await self._prices.fetch_token_price_by_symbol(registry_symbol)
        if price is None and address:
            for alt_chain in ALTERNATIVE_CHAINS:
                if alt_chain == chain_id:
                    continue
                price = await self._prices.fetch_token_price_by_address(alt_chain, address)
                if price is not None:
                    break
        return price

    async def _fetch_stock(self, ticker: str) -> Optional[StockData]:
        try:
            stock = await self._stocks.get_stock_data(ticker)
            if stock is None:
                logger.warning(f"未获取到股票行情: {ticker}")
            return stock
        except Exception as exc:
            logger.error(f"股票行情获取失败（{ticker}）: {exc}")
            return None

    async def _fetch_liquidity(self, chain_id: int, address: str):
        """返回 (tvl, volume)，仅保留大于 0 的值"""
        try:
            summary = await self._liquidity.get_liquidity(chain_id, address)
        except Exception as exc:
            logger.error(f"TVL / 成交量获取失败（chain={chain_id}）: {exc}")
            return None, None
        tvl = summary.tvl_usd if summary.tvl_usd > 0 else None
        volume = summary.volume_usd if summary.volume_usd > 0 else None
        return tvl, volume

    async def get_token_details(
        self,
        address: str,
        chain_id: Optional[int] = None,
        params: Optional[presentation.SearchParams] = None,
    ) -> TokenDetails:
        params = params or presentation.SearchParams()

        info = get_token_metadata(address)
        token = info.token if info else None
        token_chain_id = params.chain_id or chain_id or (info.chain_id if info else None) or 1
        is_stock = is_tokenized_stock(token) if token else False
        ticker = get_stock_ticker(token) if token else None

        token_symbol = params.symbol or (token.symbol if token else None) or "TOKEN"
        token_name = params.name or (token.name if token else None) or "Token"
        decimals = (token.decimals if token else None) or 18

        tvl_usd = params.tvl
        volume_usd = params.volume
        coingecko: Optional[CoinGeckoPriceData] = None
        stock: Optional[StockData] = None
        error: Optional[str] = None

        try:
            coingecko = await self._fetch_price(
                token_chain_id, address, token.symbol if token else None
            )
        except Exception as exc:
            logger.error(f"代币价格获取失败（{address}）: {exc}")
            error = PRICE_ERROR_MESSAGE

        effective_symbol = params.symbol or (coingecko.symbol if coingecko else None) or token_symbol
        ondo_ticker = presentation.ondo_ticker(effective_symbol)

        if (is_stock and ticker) or ondo_ticker:
            stock = await self._fetch_stock(ticker or ondo_ticker)

        if tvl_usd is None or volume_usd is None:
            tvl, volume = await self._fetch_liquidity(token_chain_id, address)
            if tvl_usd is None:
                tvl_usd = tvl
            if volume_usd is None:
                volume_usd = volume

        return TokenDetails(
            address=address,
            chain_id=token_chain_id,
            name=(coingecko.name if coingecko else None) or token_name,
            symbol=((coingecko.symbol if coingecko else None) or token_symbol).upper(),
            decimals=decimals,
            logo_uri=(token.logo_uri if token else None) or (coingecko.image if coingecko else None),
            price=presentation.display_price(stock, coingecko),
            price_change_24h=presentation.display_price_change(params.price_change_24h, stock, coingecko),
            volume=presentation.display_volume(stock, coingecko),
            market_cap=presentation.display_market_cap(stock, coingecko),
            tvl_usd=tvl_usd,
            volume_usd=volume_usd,
            is_tokenized_stock=is_stock or ondo_ticker is not None,
            chart=presentation.chart_config(effective_symbol, is_stock, ticker),
            explorer_url=get_explorer_url(token_chain_id, address),
            coingecko=coingecko,
            stock=stock,
            error=error,
        )


# ── 模块级别单例 ──────────────────────────────────────────
_details_service: Optional[TokenDetailsService] = None


def get_token_details_service() -> TokenDetailsService:
    global _details_service
    if _details_service is None:
        _details_service = TokenDetailsService()
    return _details_service
