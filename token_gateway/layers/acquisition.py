"""
Layer 1 – 数据获取层
从上游数据提供商（CoinGecko / Yahoo Finance / Uniswap 子图 / DexScreener）
以及代币列表地址拉取原始数据，向上层提供统一接口。
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from token_gateway.config import settings
from token_gateway.db import get_http_client

logger = logging.getLogger(__name__)


class UpstreamError(RuntimeError):
    """上游服务不可达或返回异常状态"""


class QuoteServiceUnavailable(RuntimeError):
    """行情组件（yfinance）不可用"""


_POOLS_QUERY = """
query TokenPools($token: String!, $first: Int!) {
  asToken0: pools(first: $first, where: {token0: $token}, orderBy: totalValueLockedUSD, orderDirection: desc) {
    ...PoolFields
  }
  asToken1: pools(first: $first, where: {token1: $token}, orderBy: totalValueLockedUSD, orderDirection: desc) {
    ...PoolFields
  }
}

fragment PoolFields on Pool {
  id
  feeTier
  totalValueLockedUSD
  token0 { symbol }
  token1 { symbol }
  poolDayData(first: 1, orderBy: date, orderDirection: desc) { volumeUSD }
}
"""

# DexScreener 单次最多查询 30 个代币地址
_DEXSCREENER_BATCH = 30


class AcquisitionLayer:
    """数据获取层：封装多个上游数据源"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    async def _get_json(self, url: str, **kwargs) -> Any:
        try:
            resp = await self.client.get(url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(f"上游请求失败 {url}: {exc}")
            raise UpstreamError(f"请求失败 {url}: {exc}") from exc
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            logger.warning(f"上游返回异常状态 {resp.status_code}: {url}")
            raise UpstreamError(f"HTTP {resp.status_code}: {url}")
        return resp.json()

    # ── CoinGecko ─────────────────────────────────────────

    def _coingecko_headers(self) -> Dict[str, str]:
        if settings.COINGECKO_API_KEY:
            return {"x-cg-demo-api-key": settings.COINGECKO_API_KEY}
        return {}

    async def get_coingecko_contract(self, platform: str, address: str) -> Optional[Dict[str, Any]]:
        """按合约地址获取币种详情（含 market_data），未收录返回 None"""
        url = f"{settings.COINGECKO_API_URL}/coins/{platform}/contract/{address}"
        return await self._get_json(
            url,
            params={
                "localization": "false",
                "tickers": "false",
                "community_data": "false",
                "developer_data": "false",
            },
            headers=self._coingecko_headers(),
        )

    async def search_coingecko(self, query: str) -> List[Dict[str, Any]]:
        data = await self._get_json(
            f"{settings.COINGECKO_API_URL}/search",
            params={"query": query},
            headers=self._coingecko_headers(),
        )
        return (data or {}).get("coins", [])

    async def get_coingecko_markets(self, coin_ids: List[str]) -> List[Dict[str, Any]]:
        data = await self._get_json(
            f"{settings.COINGECKO_API_URL}/coins/markets",
            params={"vs_currency": "usd", "ids": ",".join(coin_ids)},
            headers=self._coingecko_headers(),
        )
        return data or []

    # ── Yahoo Finance ─────────────────────────────────────

    def _yahoo_quote(self, ticker: str) -> Dict[str, Any]:
        try:
            import yfinance as yf
        except ImportError as exc:
            raise QuoteServiceUnavailable(str(exc)) from exc
        return yf.Ticker(ticker).info or {}

    async def get_stock_quote(self, ticker: str) -> Optional[Dict[str, Any]]:
        """获取股票实时行情（yfinance 为同步接口，放到线程中执行）"""
        info = await asyncio.to_thread(self._yahoo_quote, ticker)
        if not info or (
            info.get("regularMarketPrice") is None and info.get("currentPrice") is None
        ):
            return None
        return info

    # ── Uniswap 子图 ──────────────────────────────────────

    async def get_uniswap_pools(
        self, chain_id: int, address: str, limit: int = None
    ) -> List[Dict[str, Any]]:
        """获取包含指定代币的 Uniswap v3 池（按 TVL 降序，去重后截取 limit 个）"""
        limit = limit or settings.UNISWAP_POOL_LIMIT
        url = settings.UNISWAP_SUBGRAPH_URLS.get(chain_id)
        if not url:
            logger.debug(f"链 {chain_id} 未配置 Uniswap 子图")
            return []
        headers = {}
        if settings.GRAPH_API_KEY:
            headers["Authorization"] = f"Bearer {settings.GRAPH_API_KEY}"
        try:
            resp = await self.client.post(
                url,
                json={"query": _POOLS_QUERY, "variables": {"token": address.lower(), "first": limit}},
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Uniswap 子图请求失败: {exc}") from exc
        if resp.status_code >= 400:
            raise UpstreamError(f"Uniswap 子图 HTTP {resp.status_code}")
        body = resp.json()
        if body.get("errors"):
            raise UpstreamError(f"Uniswap 子图查询错误: {body['errors']}")

        data = body.get("data") or {}
        pools: Dict[str, Dict[str, Any]] = {}
        for pool in (data.get("asToken0") or []) + (data.get("asToken1") or []):
            pools.setdefault(pool["id"], pool)
        ordered = sorted(
            pools.values(),
            key=lambda p: float(p.get("totalValueLockedUSD") or 0),
            reverse=True,
        )
        return ordered[:limit]

    # ── DexScreener（Solana） ─────────────────────────────

    async def get_dexscreener_pairs(self, addresses: List[str]) -> List[Dict[str, Any]]:
        """批量获取代币相关交易对"""
        pairs: List[Dict[str, Any]] = []
        for i in range(0, len(addresses), _DEXSCREENER_BATCH):
            batch = addresses[i:i + _DEXSCREENER_BATCH]
            data = await self._get_json(
                f"{settings.DEXSCREENER_API_URL}/latest/dex/tokens/{','.join(batch)}"
            )
            pairs.extend((data or {}).get("pairs") or [])
        return pairs

    # ── 代币列表 ──────────────────────────────────────────

    def _read_static(self, url: str) -> Any:
        """读取静态目录下的 JSON 文件，解析后不在静态目录内的路径一律视为 404"""
        root = os.path.realpath(settings.STATIC_DIR)
        path = os.path.realpath(os.path.join(root, urlparse(url).path.lstrip("/")))
        if os.path.commonpath([root, path]) != root or not os.path.isfile(path):
            raise FileNotFoundError(f"HTTP 404: Not Found ({url})")
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)

    async def get_token_list_document(self, url: str, timeout: float = None) -> Any:
        """
        拉取代币列表 JSON

        无 scheme 的地址（如 /token-list.json）从本地静态目录读取；
        非 2xx 状态抛出 UpstreamError，超时抛出 httpx.TimeoutException，非法 JSON 抛出 ValueError
        """
        if not urlparse(url).scheme:
            return await asyncio.to_thread(self._read_static, url)
        resp = await self.client.get(
            url,
            headers={"Accept": "application/json"},
            timeout=timeout or settings.TOKEN_LIST_TIMEOUT,
        )
        if not resp.is_success:
            raise UpstreamError(f"HTTP {resp.status_code}: {resp.reason_phrase}")
        return resp.json()


# ── 模块级别单例 ──────────────────────────────────────────
_acquisition: Optional[AcquisitionLayer] = None


def get_acquisition_layer() -> AcquisitionLayer:
    global _acquisition
    if _acquisition is None:
        _acquisition = AcquisitionLayer()
    return _acquisition
