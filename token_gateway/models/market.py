"""价格、股票行情、流动性与代币详情模型"""

from typing import List, Optional

from pydantic import BaseModel, Field

from token_gateway.models.base import CamelModel


class CoinGeckoPriceData(BaseModel):
    """CoinGecko 市场数据（沿用 CoinGecko 字段命名）"""
    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    total_volume: Optional[float] = None
    market_cap: Optional[float] = None


class StockData(CamelModel):
    ticker: str
    current_price: float = 0.0
    price_change: float = 0.0
    price_change_percent: float = 0.0
    volume: float = 0.0
    market_cap: Optional[float] = None
    high52w: Optional[float] = None
    low52w: Optional[float] = None
    open: float = 0.0
    previous_close: float = 0.0


class StockPctChangeResponse(CamelModel):
    price_change_percent: float
    ticker: str
    error: Optional[str] = None


# ── 流动性 ────────────────────────────────────────────────

class PoolStats(CamelModel):
    id: str
    fee_tier: Optional[int] = None
    token0: Optional[str] = None
    token1: Optional[str] = None
    tvl_usd: float = Field(default=0.0, alias="tvlUSD")
    volume_usd: float = Field(default=0.0, alias="volumeUSD")


class LiquiditySummary(CamelModel):
    chain_id: int
    address: str
    tvl_usd: float = Field(default=0.0, alias="tvlUSD")
    volume_usd: float = Field(default=0.0, alias="volumeUSD")
    pool_count: int = 0
    pools: List[PoolStats] = Field(default_factory=list)


class SolanaTokenDataRequest(BaseModel):
    addresses: List[str] = Field(default_factory=list)


class SolanaTokenData(CamelModel):
    address: str
    symbol: Optional[str] = None
    name: Optional[str] = None
    price_usd: Optional[float] = Field(default=None, alias="priceUSD")
    tvl_usd: float = Field(default=0.0, alias="tvlUSD")
    volume_usd: float = Field(default=0.0, alias="volumeUSD")
    pair_count: int = 0


# ── 代币详情 ──────────────────────────────────────────────

class ChartConfig(CamelModel):
    symbol: str
    type: str  # stock / crypto


class TokenDetails(CamelModel):
    address: str
    chain_id: int
    name: str
    symbol: str
    decimals: int = 18
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")
    price: float = 0.0
    price_change_24h: float = 0.0
    volume: float = 0.0
    market_cap: float = 0.0
    tvl_usd: Optional[float] = Field(default=None, alias="tvlUSD")
    volume_usd: Optional[float] = Field(default=None, alias="volumeUSD")
    is_tokenized_stock: bool = False
    chart: ChartConfig
    explorer_url: Optional[str] = None
    coingecko: Optional[CoinGeckoPriceData] = None
    stock: Optional[StockData] = None
    error: Optional[str] = None
