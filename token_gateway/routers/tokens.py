"""
代币数据路由
GET /api/token/{address}                    - 代币详情（价格 / 流动性 / 图表符号）
GET /api/token/{address}/stock-pct-change   - 代币化股票 24 小时涨跌幅
GET /api/token/{address}/stock-data         - 代币化股票行情
GET /api/token/{address}/liquidity          - TVL / 24 小时成交量
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse

from token_gateway.layers.acquisition import QuoteServiceUnavailable
from token_gateway.layers.presentation import SearchParams
from token_gateway.models.response import ApiResponse, ErrorResponse
from token_gateway.services.liquidity_service import get_liquidity_service
from token_gateway.services.stock_service import TickerResolutionError, get_stock_service
from token_gateway.services.token_details_service import get_token_details_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/token", tags=["代币数据"])

STOCK_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=120"


def _error(message: str, status_code: int, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.get("/{address}", response_model=ApiResponse)
async def get_token_details(
    address: str,
    chain_id: Optional[str] = Query(default=None, alias="chainId", description="链 ID（搜索结果）"),
    tvl: Optional[str] = Query(default=None, description="搜索结果中的 TVL"),
    volume: Optional[str] = Query(default=None, description="搜索结果中的 24 小时成交量"),
    symbol: Optional[str] = Query(default=None),
    name: Optional[str] = Query(default=None),
    price_change_24h: Optional[str] = Query(default=None, alias="priceChange24h"),
):
    """
    获取代币详情

    查询参数通常由搜索结果页透传，优先级高于注册表与 CoinGecko 数据
    """
    params = SearchParams.from_query({
        "chainId": chain_id,
        "tvl": tvl,
        "volume": volume,
        "symbol": symbol,
        "name": name,
        "priceChange24h": price_change_24h,
    })
    details = await get_token_details_service().get_token_details(address, params=params)
    return ApiResponse.ok(
        data=details.model_dump(by_alias=True),
        message="获取代币详情成功" if details.error is None else details.error,
    )


@router.get("/{address}/stock-pct-change")
async def get_stock_pct_change(address: str):
    """获取代币化股票的 24 小时涨跌幅"""
    svc = get_stock_service()
    try:
        ticker = svc.resolve_ticker(address)
    except TickerResolutionError as exc:
        return _error(exc.message, exc.status_code)
    except Exception as exc:
        logger.error(f"stock-pct-change 处理异常: {exc}", exc_info=True)
        return _error("Internal server error", 500, details=str(exc))

    try:
        result = await svc.get_price_change_percent(ticker)
    except QuoteServiceUnavailable as exc:
        logger.error(f"行情组件不可用: {exc}")
        return _error("Stock data service unavailable", 503)
    except Exception as exc:
        logger.error(f"获取股票涨跌幅失败（{ticker}）: {exc}")
        return _error(f"Failed to fetch stock data: {exc or 'Unknown error'}", 500)

    if result is None:
        return _error(f"Stock data not found for ticker: {ticker}", 404)

    return JSONResponse(
        content=result.to_json(),
        headers={"Cache-Control": STOCK_CACHE_CONTROL},
    )


@router.get("/{address}/stock-data")
async def get_stock_data(
    address: str,
    symbol: Optional[str] = Query(default=None, description="代币符号，用于识别 Ondo 代币（如 NVDAon）"),
):
    """获取代币化股票完整行情"""
    svc = get_stock_service()
    try:
        ticker = svc.resolve_ticker(address, symbol=symbol)
    except TickerResolutionError as exc:
        return _error(exc.message, exc.status_code)

    try:
        stock = await svc.get_stock_data(ticker)
    except QuoteServiceUnavailable:
        return _error("Stock data service unavailable", 503)
    except Exception as exc:
        logger.error(f"获取股票行情失败（{ticker}）: {exc}")
        return _error(f"Failed to fetch stock data: {exc or 'Unknown error'}", 500)

    if stock is None:
        return _error(f"Stock data not found for ticker: {ticker}", 404)

    return JSONResponse(
        content=stock.to_json(),
        headers={"Cache-Control": STOCK_CACHE_CONTROL},
    )


@router.get("/{address}/liquidity", response_model=ApiResponse)
async def get_token_liquidity(
    address: str,
    chain_id: int = Query(default=1, alias="chainId"),
):
    """获取代币 TVL 与 24 小时成交量"""
    try:
        summary = await get_liquidity_service().get_liquidity(chain_id, address)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        )
    return ApiResponse.ok(data=summary.model_dump(by_alias=True))
