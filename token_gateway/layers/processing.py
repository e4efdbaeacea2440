"""
Layer 3 – 数据处理层
将上游原始数据规范化为内部模型，并完成流动性池的聚合统计。
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from token_gateway.models.market import (
    CoinGeckoPriceData,
    PoolStats,
    SolanaTokenData,
    StockData,
)

logger = logging.getLogger(__name__)

_POOL_COLUMNS = ["id", "fee_tier", "token0", "token1", "tvl_usd", "volume_usd"]


def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ProcessingLayer:
    """数据处理层：规范化 + 聚合"""

    # ── CoinGecko ─────────────────────────────────────────

    def coingecko_from_contract(self, doc: Dict[str, Any]) -> CoinGeckoPriceData:
        """/coins/{platform}/contract/{address} 响应 → CoinGeckoPriceData"""
        market = doc.get("market_data") or {}
        image = doc.get("image")
        if isinstance(image, dict):
            image = image.get("large") or image.get("small") or image.get("thumb")
        return CoinGeckoPriceData(
            id=doc.get("id", ""),
            symbol=doc.get("symbol", ""),
            name=doc.get("name", ""),
            image=image,
            current_price=_num((market.get("current_price") or {}).get("usd")),
            price_change_percentage_24h=_num(market.get("price_change_percentage_24h")),
            total_volume=_num((market.get("total_volume") or {}).get("usd")),
            market_cap=_num((market.get("market_cap") or {}).get("usd")),
        )

    def coingecko_from_market_row(self, row: Dict[str, Any]) -> CoinGeckoPriceData:
        """/coins/markets 单行 → CoinGeckoPriceData"""
        return CoinGeckoPriceData(
            id=row.get("id", ""),
            symbol=row.get("symbol", ""),
            name=row.get("name", ""),
            image=row.get("image"),
            current_price=_num(row.get("current_price")),
            price_change_percentage_24h=_num(row.get("price_change_percentage_24h")),
            total_volume=_num(row.get("total_volume")),
            market_cap=_num(row.get("market_cap")),
        )

    # ── 股票行情 ──────────────────────────────────────────

    def price_change_percent(self, quote: Dict[str, Any]) -> float:
        """24 小时涨跌幅：regularMarketChangePercent → changePercent → 0"""
        return _num(quote.get("regularMarketChangePercent")) or _num(quote.get("changePercent")) or 0.0

    def stock_data(self, ticker: str, quote: Dict[str, Any]) -> StockData:
        price = _num(quote.get("regularMarketPrice")) or _num(quote.get("currentPrice")) or 0.0
        prev_close = (
            _num(quote.get("regularMarketPreviousClose"))
            or _num(quote.get("previousClose"))
            or 0.0
        )
        change = _num(quote.get("regularMarketChange"))
        if change is None:
            change = round(price - prev_close, 4) if prev_close else 0.0
        return StockData(
            ticker=ticker,
            current_price=price,
            price_change=change,
            price_change_percent=self.price_change_percent(quote),
            volume=_num(quote.get("regularMarketVolume")) or _num(quote.get("volume")) or 0.0,
            market_cap=_num(quote.get("marketCap")),
            high52w=_num(quote.get("fiftyTwoWeekHigh")),
            low52w=_num(quote.get("fiftyTwoWeekLow")),
            open=_num(quote.get("regularMarketOpen")) or _num(quote.get("open")) or 0.0,
            previous_close=prev_close,
        )

    # ── Uniswap 池 ────────────────────────────────────────

    def normalize_pools(self, raw_pools: List[Dict[str, Any]]) -> pd.DataFrame:
        """
        将子图返回的池列表标准化为 DataFrame

        标准列：id, fee_tier, token0, token1, tvl_usd, volume_usd（缺失数值记为 0）
        """
        if not raw_pools:
            return pd.DataFrame(columns=_POOL_COLUMNS)

        rows = []
        for pool in raw_pools:
            day_data = pool.get("poolDayData") or []
            rows.append({
                "id": pool.get("id"),
                "fee_tier": pool.get("feeTier"),
                "token0": (pool.get("token0") or {}).get("symbol"),
                "token1": (pool.get("token1") or {}).get("symbol"),
                "tvl_usd": pool.get("totalValueLockedUSD"),
                "volume_usd": day_data[0].get("volumeUSD") if day_data else None,
            })
        df = pd.DataFrame(rows, columns=_POOL_COLUMNS)
        for col in ["tvl_usd", "volume_usd"]:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
        df["fee_tier"] = pd.to_numeric(df["fee_tier"], errors="coerce")
        df = df.dropna(subset=["id"]).drop_duplicates(subset=["id"], keep="first")
        return df.reset_index(drop=True)

    def pool_totals(self, df: pd.DataFrame) -> Dict[str, float]:
        """全部池的 TVL 与 24 小时成交量合计"""
        if df.empty:
            return {"tvl_usd": 0.0, "volume_usd": 0.0, "pool_count": 0}
        return {
            "tvl_usd": float(df["tvl_usd"].sum()),
            "volume_usd": float(df["volume_usd"].sum()),
            "pool_count": int(len(df)),
        }

    def to_pool_stats(self, df: pd.DataFrame) -> List[PoolStats]:
        if df.empty:
            return []
        return [
            PoolStats(
                id=row["id"],
                fee_tier=None if pd.isna(row["fee_tier"]) else int(row["fee_tier"]),
                token0=row["token0"],
                token1=row["token1"],
                tvl_usd=float(row["tvl_usd"]),
                volume_usd=float(row["volume_usd"]),
            )
            for row in df.to_dict(orient="records")
        ]

    # ── DexScreener 交易对 ────────────────────────────────

    def aggregate_solana_pairs(
        self, addresses: List[str], pairs: List[Dict[str, Any]]
    ) -> List[SolanaTokenData]:
        """按基础代币地址汇总交易对流动性与 24 小时成交量，保持请求地址顺序"""
        rows = []
        for pair in pairs:
            if pair.get("chainId") not in (None, "solana"):
                continue
            base = pair.get("baseToken") or {}
            rows.append({
                "address": base.get("address"),
                "symbol": base.get("symbol"),
                "name": base.get("name"),
                "price_usd": pair.get("priceUsd"),
                "liquidity": (pair.get("liquidity") or {}).get("usd"),
                "volume": (pair.get("volume") or {}).get("h24"),
            })

        df = pd.DataFrame(rows, columns=["address", "symbol", "name", "price_usd", "liquidity", "volume"])
        for col in ["liquidity", "volume"]:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
        df["price_usd"] = pd.to_numeric(df["price_usd"], errors="coerce")

        results: List[SolanaTokenData] = []
        for address in addresses:
            token_pairs = df[df["address"] == address]
            if token_pairs.empty:
                results.append(SolanaTokenData(address=address))
                continue
            top = token_pairs.sort_values("liquidity", ascending=False).iloc[0]
            results.append(SolanaTokenData(
                address=address,
                symbol=top["symbol"],
                name=top["name"],
                price_usd=None if pd.isna(top["price_usd"]) else float(top["price_usd"]),
                tvl_usd=float(token_pairs["liquidity"].sum()),
                volume_usd=float(token_pairs["volume"].sum()),
                pair_count=int(len(token_pairs)),
            ))
        return results


# ── 模块级别单例 ──────────────────────────────────────────
_processor: Optional[ProcessingLayer] = None


def get_processing_layer() -> ProcessingLayer:
    global _processor
    if _processor is None:
        _processor = ProcessingLayer()
    return _processor
