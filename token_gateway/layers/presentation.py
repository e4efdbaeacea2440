"""
Layer 4 – 展示层
代币详情页的纯计算逻辑：URL 参数解析、代币化股票识别、图表符号推导、展示字段优先级
"""

import math
import re
from typing import Mapping, Optional

from pydantic import BaseModel

from token_gateway.models.market import ChartConfig, CoinGeckoPriceData, StockData

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")

# Ondo 代币在图表组件中需要替换的符号
ONDO_CHART_SYMBOLS = {
    "SPYON": "SPY",
}


def parse_float(raw: Optional[str]) -> Optional[float]:
    """按浏览器 parseFloat 语义解析数值前缀，无法解析返回 None"""
    if not raw:
        return None
    match = _FLOAT_PREFIX.match(raw)
    if not match:
        return None
    return float(match.group(0))


def parse_int(raw: Optional[str]) -> Optional[int]:
    """按浏览器 parseInt(raw, 10) 语义解析整数前缀"""
    if not raw:
        return None
    match = _INT_PREFIX.match(raw)
    if not match:
        return None
    return int(match.group(0))


def parse_finite(raw: Optional[str]) -> Optional[float]:
    """与 parse_float 相同，但 Infinity / -Infinity 视为未提供（JSON 无法表示）"""
    value = parse_float(raw)
    if value is None or not math.isfinite(value):
        return None
    return value


def parse_positive(raw: Optional[str]) -> Optional[float]:
    """TVL / 成交量参数：仅保留大于 0 的有限数值"""
    value = parse_finite(raw)
    if value is None or value <= 0:
        return None
    return value


class SearchParams(BaseModel):
    """来自搜索结果页的 URL 查询参数"""
    tvl: Optional[float] = None
    volume: Optional[float] = None
    symbol: Optional[str] = None
    name: Optional[str] = None
    chain_id: Optional[int] = None
    price_change_24h: Optional[float] = None

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "SearchParams":
        return cls(
            tvl=parse_positive(query.get("tvl")),
            volume=parse_positive(query.get("volume")),
            symbol=query.get("symbol") or None,
            name=query.get("name") or None,
            chain_id=parse_int(query.get("chainId")),
            price_change_24h=parse_finite(query.get("priceChange24h")),
        )


# ── 代币化股票识别 ────────────────────────────────────────

def is_ondo_symbol(symbol: str) -> bool:
    """Ondo 代币化股票：符号以 "on" 结尾（不区分大小写）且长度大于 2"""
    return symbol.upper().endswith("ON") and len(symbol) > 2


def ondo_ticker(symbol: str) -> Optional[str]:
    if not is_ondo_symbol(symbol):
        return None
    return symbol[:-2].upper()


def chart_config(
    effective_symbol: str,
    is_stock: bool,
    ticker: Optional[str],
) -> ChartConfig:
    """
    推导图表组件使用的符号

    - Ondo 代币：使用去掉 "on" 后缀的股票代码（先查特殊映射）
    - 注册表中的代币化股票：NASDAQ:<ticker>
    - 其他：加密货币符号
    """
    base = ondo_ticker(effective_symbol)
    if base:
        return ChartConfig(
            symbol=ONDO_CHART_SYMBOLS.get(effective_symbol.upper(), base),
            type="stock",
        )
    if is_stock and ticker:
        return ChartConfig(symbol=f"NASDAQ:{ticker}", type="stock")
    return ChartConfig(symbol=effective_symbol, type="crypto")


# ── 展示字段优先级 ────────────────────────────────────────

def display_price(stock: Optional[StockData], cg: Optional[CoinGeckoPriceData]) -> float:
    return (stock.current_price if stock else 0) or (cg.current_price if cg else 0) or 0.0


def display_price_change(
    param: Optional[float],
    stock: Optional[StockData],
    cg: Optional[CoinGeckoPriceData],
) -> float:
    if param is not None:
        return param
    return (
        (stock.price_change_percent if stock else 0)
        or (cg.price_change_percentage_24h if cg else 0)
        or 0.0
    )


def display_volume(stock: Optional[StockData], cg: Optional[CoinGeckoPriceData]) -> float:
    return (stock.volume if stock else 0) or (cg.total_volume if cg else 0) or 0.0


def display_market_cap(stock: Optional[StockData], cg: Optional[CoinGeckoPriceData]) -> float:
    return (stock.market_cap if stock else 0) or (cg.market_cap if cg else 0) or 0.0
