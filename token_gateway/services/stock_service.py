"""
代币化股票行情服务
根据代币元数据（或 Ondo 风格符号）解析股票代码，通过 Yahoo Finance 获取行情
"""

import logging
from typing import Any, Dict, Optional

from token_gateway.layers.acquisition import get_acquisition_layer
from token_gateway.layers.cache import get_cache_layer, stock_quote_cache_key
from token_gateway.layers.presentation import ondo_ticker
from token_gateway.layers.processing import get_processing_layer
from token_gateway.models.market import StockData, StockPctChangeResponse
from token_gateway.registry import get_stock_ticker, get_token_metadata, is_tokenized_stock

logger = logging.getLogger(__name__)


class TickerResolutionError(Exception):
    """无法为代币解析出股票代码，status_code 为对应的 HTTP 状态码"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StockService:
    """代币化股票业务服务"""

    def __init__(self, acquisition=None, cache=None):
        self._acq = acquisition or get_acquisition_layer()
        self._cache = cache or get_cache_layer()
        self._proc = get_processing_layer()

    def resolve_ticker(self, address: str, symbol: Optional[str] = None) -> str:
        """
        解析代币对应的股票代码

        Args:
            address: 代币地址
            symbol: 可选的代币符号，未收录于注册表的 Ondo 代币（如 NVDAon）据此推导

        Raises:
            TickerResolutionError: 地址为空 / 代币不存在 / 非代币化股票 / 无股票代码
        """
        if not address:
            raise TickerResolutionError("Token address is required", 400)

        info = get_token_metadata(address)
        if info is None:
            derived = ondo_ticker(symbol) if symbol else None
            if derived:
                return derived
            raise TickerResolutionError("Token not found", 404)

        if not is_tokenized_stock(info.token):
            derived = ondo_ticker(symbol) if symbol else None
            if derived:
                return derived
            raise TickerResolutionError("Token is not a tokenized stock", 400)

        ticker = get_stock_ticker(info.token)
        if not ticker:
            raise TickerResolutionError("Stock ticker not found for tokenized stock", 400)
        return ticker

    async def get_quote(self, ticker: str) -> Optional[Dict[str, Any]]:
        """获取行情（带缓存），QuoteServiceUnavailable 与其他异常向上抛出"""
        key = stock_quote_cache_key(ticker)
        cached = await self._cache.get(key)
        if cached is not None:
            return cached
        quote = await self._acq.get_stock_quote(ticker)
        if quote:
            await self._cache.set(key, quote)
        return quote

    async def get_price_change_percent(self, ticker: str) -> Optional[StockPctChangeResponse]:
        quote = await self.get_quote(ticker)
        if not quote:
            return None
        return StockPctChangeResponse(
            ticker=ticker,
            price_change_percent=self._proc.price_change_percent(quote),
        )

    async def get_stock_data(self, ticker: str) -> Optional[StockData]:
        quote = await self.get_quote(ticker)
        if not quote:
            return None
        return self._proc.stock_data(ticker, quote)


# ── 模块级别单例 ──────────────────────────────────────────
_stock_service: Optional[StockService] = None


def get_stock_service() -> StockService:
    global _stock_service
    if _stock_service is None:
        _stock_service = StockService()
    return _stock_service
