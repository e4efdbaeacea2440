"""代币列表、代币元数据与链配置模型"""

from typing import Optional

from pydantic import BaseModel, Field

from token_gateway.models.base import CamelModel


# ── 代币列表校验 ──────────────────────────────────────────

class TokenListValidationResult(CamelModel):
    url: str
    is_valid: bool
    error: Optional[str] = None
    token_count: Optional[int] = None


# ── 代币注册表 ────────────────────────────────────────────

class TokenMetadata(CamelModel):
    address: str
    symbol: str
    name: str
    decimals: int = 18
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")
    category: str = "crypto"            # crypto / stock
    ticker: Optional[str] = None        # 代币化股票对应的股票代码


class TokenInfo(BaseModel):
    token: TokenMetadata
    chain_id: int


class ChainConfig(BaseModel):
    chain_id: int
    name: str
    explorer: Optional[str] = None
    coingecko_platform: Optional[str] = None
