"""
代币网关单元测试

覆盖范围：
  - 配置模块（服务发现、环境变量解析）
  - 缓存层（TTL 过期、过期清理、缓存键生成）
  - 代币列表（格式校验、指数退避重试、主备回退）
  - 数据获取层（CoinGecko / 代币列表，基于 httpx.MockTransport）
  - 数据处理层（CoinGecko 规范化、流动性池聚合）
  - 展示层（URL 参数解析、Ondo 识别、图表符号推导）
  - 代币注册表
  - 代币详情聚合服务
"""

import asyncio
import json
import os
import sys
from unittest.mock import AsyncMock, patch

import httpx
import pytest

# 确保项目根目录在 sys.path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


# ─────────────────────────────────────────────────────────
# 辅助对象
# ─────────────────────────────────────────────────────────

class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _token_list(n: int = 2) -> dict:
    return {
        "name": "Test List",
        "tokens": [
            {
                "chainId": 1,
                "address": f"0x{i:040x}",
                "symbol": f"T{i}",
                "name": f"Token {i}",
                "decimals": 18,
            }
            for i in range(n)
        ],
    }


class FakeTokenListSource:
    """按 URL 返回预设结果；值为异常实例时抛出，为列表时按调用次数依次取值"""

    def __init__(self, responses: dict):
        self.responses = responses
        self.calls = []

    async def get_token_list_document(self, url, timeout=None):
        self.calls.append(url)
        outcome = self.responses[url]
        if isinstance(outcome, list):
            outcome = outcome[min(self.calls.count(url) - 1, len(outcome) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ─────────────────────────────────────────────────────────
# 1. 配置模块测试
# ─────────────────────────────────────────────────────────

class TestConfig:
    def test_defaults(self):
        from token_gateway.config import GatewaySettings
        s = GatewaySettings()
        assert s.PORT == 8002
        assert s.CACHE_TTL == 60
        assert s.TOKEN_LIST_MAX_RETRIES == 3
        assert s.TOKEN_LIST_RETRY_DELAYS == [1.0, 2.0, 4.0]
        assert s.TOKEN_LIST_FALLBACK_URL == "/token-list.json"

    def test_redis_url_no_auth(self):
        from token_gateway.config import GatewaySettings
        s = GatewaySettings(REDIS_PASSWORD="")
        assert s.REDIS_URL.startswith("redis://")
        assert "@" not in s.REDIS_URL

    def test_redis_url_with_auth(self):
        from token_gateway.config import GatewaySettings
        s = GatewaySettings(REDIS_PASSWORD="secret", REDIS_HOST="cache", REDIS_PORT=6379)
        assert ":secret@cache:6379" in s.REDIS_URL

    def test_docker_service_discovery(self):
        with patch.dict(os.environ, {"DOCKER_CONTAINER": "true"}, clear=False):
            from token_gateway import config as cfg_module
            assert cfg_module._default_redis_host() == "redis"

    def test_env_override(self):
        with patch.dict(os.environ, {"CACHE_TTL": "120", "TOKEN_LIST_MAX_RETRIES": "1"}, clear=False):
            from token_gateway.config import GatewaySettings
            s = GatewaySettings()
            assert s.CACHE_TTL == 120
            assert s.TOKEN_LIST_MAX_RETRIES == 1


# ─────────────────────────────────────────────────────────
# 2. 缓存层测试
# ─────────────────────────────────────────────────────────

class TestMemoryCache:
    def setup_method(self):
        from token_gateway.layers.cache import MemoryCache
        self.clock = FakeClock()
        self.cache = MemoryCache(ttl=60, clock=self.clock)

    def test_missing_key(self):
        assert self.cache.get("nope") is None

    def test_value_within_ttl(self):
        value = {"price": 1.23, "tags": ["a", "b"]}
        self.cache.set("k", value)
        self.clock.now += 59
        assert self.cache.get("k") == value

    def test_value_at_ttl_boundary_still_present(self):
        self.cache.set("k", 1)
        self.clock.now += 60
        assert self.cache.get("k") == 1

    def test_value_expires_after_ttl(self):
        self.cache.set("k", "v")
        self.clock.now += 61
        assert self.cache.get("k") is None
        assert len(self.cache) == 0

    def test_set_refreshes_timestamp(self):
        self.cache.set("k", "old")
        self.clock.now += 50
        self.cache.set("k", "new")
        self.clock.now += 50
        assert self.cache.get("k") == "new"

    def test_clear_expired(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.clock.now += 30
        self.cache.set("c", 3)
        self.clock.now += 31
        assert self.cache.clear_expired() == 2
        assert self.cache.get("c") == 3

    def test_delete_and_clear_all(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.delete("a")
        self.cache.delete("missing")
        assert self.cache.get("a") is None
        self.cache.clear_all()
        assert len(self.cache) == 0


class TestCacheLayer:
    def test_memory_only_roundtrip(self):
        from token_gateway.layers.cache import CacheLayer, MemoryCache
        clock = FakeClock()
        layer = CacheLayer(MemoryCache(ttl=60, clock=clock))

        async def run():
            await layer.set("token-price-1-0xabc", {"id": "x"})
            hit = await layer.get("token-price-1-0xabc")
            clock.now += 120
            miss = await layer.get("token-price-1-0xabc")
            return hit, miss

        hit, miss = asyncio.run(run())
        assert hit == {"id": "x"}
        assert miss is None

    def test_stats_without_redis(self):
        from token_gateway.layers.cache import CacheLayer, MemoryCache
        layer = CacheLayer(MemoryCache(ttl=60))
        layer.memory.set("a", 1)
        stats = asyncio.run(layer.stats())
        assert stats["memory"]["entries"] == 1
        assert stats["redis"]["status"] == "disabled"

    def test_redis_hit_populates_memory(self):
        from token_gateway.layers.cache import CacheLayer, MemoryCache
        redis = AsyncMock()
        redis.get.return_value = '{"tvl": 5}'
        layer = CacheLayer(MemoryCache(ttl=60))
        with patch("token_gateway.layers.cache.get_redis", return_value=redis):
            assert asyncio.run(layer.get("k")) == {"tvl": 5}
        assert layer.memory.get("k") == {"tvl": 5}


class TestCacheKeys:
    def test_uniswap_key_normalized(self):
        from token_gateway.layers.cache import uniswap_liquidity_cache_key
        assert uniswap_liquidity_cache_key(1, "  USDC ") == "uniswap-liquidity-1-usdc"

    def test_solana_key_order_independent(self):
        from token_gateway.layers.cache import solana_token_data_cache_key
        assert solana_token_data_cache_key(["b", "a"]) == solana_token_data_cache_key(["a", "b"])
        assert solana_token_data_cache_key(["b", "a"]) == "solana-token-data-a,b"

    def test_token_price_key_lowercases_address(self):
        from token_gateway.layers.cache import token_price_cache_key
        assert token_price_cache_key(8453, "0xABC") == "token-price-8453-0xabc"


# ─────────────────────────────────────────────────────────
# 3. 代币列表校验测试
# ─────────────────────────────────────────────────────────

class TestValidateTokenList:
    def _validate(self, data):
        from token_gateway.services.token_list_service import validate_token_list
        return validate_token_list(data)

    def test_valid_list(self):
        assert self._validate(_token_list(3)) is True

    def test_empty_tokens_valid(self):
        assert self._validate({"name": "Empty", "tokens": []}) is True

    def test_optional_logo_allowed(self):
        data = _token_list(1)
        data["tokens"][0]["logoURI"] = "https://example.org/logo.png"
        assert self._validate(data) is True

    @pytest.mark.parametrize("payload", [None, [], "list", 42])
    def test_non_object_rejected(self, payload):
        assert self._validate(payload) is False

    def test_missing_or_blank_name(self):
        data = _token_list(1)
        data["name"] = "   "
        assert self._validate(data) is False
        del data["name"]
        assert self._validate(data) is False

    def test_tokens_not_array(self):
        assert self._validate({"name": "x", "tokens": {"a": 1}}) is False

    def test_token_missing_decimals(self):
        data = _token_list(2)
        del data["tokens"][1]["decimals"]
        assert self._validate(data) is False

    def test_chain_id_wrong_type(self):
        data = _token_list(1)
        data["tokens"][0]["chainId"] = "1"
        assert self._validate(data) is False

    def test_boolean_is_not_a_number(self):
        data = _token_list(1)
        data["tokens"][0]["decimals"] = True
        assert self._validate(data) is False

    def test_null_token_rejected(self):
        data = _token_list(1)
        data["tokens"].append(None)
        assert self._validate(data) is False


class TestTokenListService:
    PRIMARY = "https://lists.example.org/primary.json"
    FALLBACK = "/token-list.json"

    def _service(self, responses):
        from token_gateway.layers.cache import CacheLayer, MemoryCache
        from token_gateway.services.token_list_service import TokenListService
        source = FakeTokenListSource(responses)
        svc = TokenListService(acquisition=source, cache=CacheLayer(MemoryCache(ttl=60)), retry_delays=[0, 0, 0])
        return svc, source

    def test_valid_list_counted(self):
        svc, source = self._service({self.PRIMARY: _token_list(5)})
        result = asyncio.run(svc.validate_token_list_url(self.PRIMARY))
        assert result.is_valid and result.token_count == 5
        assert source.calls == [self.PRIMARY]

    def test_exhausted_retries_report_error(self):
        svc, source = self._service({self.PRIMARY: RuntimeError("HTTP 500: Internal Server Error")})
        result = asyncio.run(svc.validate_token_list_url(self.PRIMARY))
        assert result.is_valid is False
        assert result.error == "HTTP 500: Internal Server Error"
        assert len(source.calls) == 4

    def test_invalid_format_retried_then_reported(self):
        svc, source = self._service({self.PRIMARY: {"name": "", "tokens": []}})
        result = asyncio.run(svc.fetch_with_retry(self.PRIMARY, max_retries=1))
        assert result.error == "Invalid token list format"
        assert len(source.calls) == 2

    def test_recovers_after_transient_failures(self):
        svc, source = self._service({
            self.PRIMARY: [RuntimeError("boom"), RuntimeError("boom"), _token_list(2)],
        })
        result = asyncio.run(svc.validate_token_list_url(self.PRIMARY))
        assert result.is_valid and result.token_count == 2
        assert len(source.calls) == 3

    def test_backoff_delays(self):
        from token_gateway.services.token_list_service import TokenListService
        source = FakeTokenListSource({self.PRIMARY: RuntimeError("down")})
        svc = TokenListService(acquisition=source, retry_delays=[1, 2, 4])
        with patch("token_gateway.services.token_list_service.asyncio.sleep", new_callable=AsyncMock) as sleep:
            asyncio.run(svc.fetch_with_retry(self.PRIMARY, max_retries=4))
        assert [c.args[0] for c in sleep.call_args_list] == [1, 2, 4, 4]

    def test_primary_valid_used(self):
        svc, source = self._service({self.PRIMARY: _token_list(1), self.FALLBACK: _token_list(1)})
        urls = asyncio.run(svc.get_validated_token_list_urls(self.PRIMARY, self.FALLBACK))
        assert urls == [self.PRIMARY]
        assert self.FALLBACK not in source.calls

    def test_failing_primary_falls_back(self):
        svc, _ = self._service({self.PRIMARY: RuntimeError("down"), self.FALLBACK: _token_list(3)})
        urls = asyncio.run(svc.get_validated_token_list_urls(self.PRIMARY, self.FALLBACK))
        assert urls == [self.FALLBACK]

    def test_both_failing_still_returns_fallback(self):
        svc, _ = self._service({self.PRIMARY: RuntimeError("down"), self.FALLBACK: ValueError("bad json")})
        urls = asyncio.run(svc.get_validated_token_list_urls(self.PRIMARY, self.FALLBACK))
        assert urls == [self.FALLBACK]

    def test_validate_multiple_keeps_order(self):
        a, b, c = "https://a.example/list", "https://b.example/list", "https://c.example/list"
        svc, _ = self._service({a: _token_list(1), b: RuntimeError("down"), c: _token_list(2)})
        assert asyncio.run(svc.validate_multiple_token_lists([a, b, c])) == [a, c]

    def test_swap_widget_lists(self):
        from token_gateway.config import settings
        svc, _ = self._service({
            settings.TOKEN_LIST_PRIMARY_URL: RuntimeError("down"),
            settings.TOKEN_LIST_FALLBACK_URL: _token_list(1),
            settings.UNISWAP_TOKEN_LIST_URL: _token_list(10),
        })
        urls = asyncio.run(svc.get_swap_widget_token_lists())
        assert urls == [settings.TOKEN_LIST_FALLBACK_URL, settings.UNISWAP_TOKEN_LIST_URL]

    def test_swap_widget_lists_skip_invalid_uniswap(self):
        from token_gateway.config import settings
        svc, _ = self._service({
            settings.TOKEN_LIST_PRIMARY_URL: _token_list(1),
            settings.UNISWAP_TOKEN_LIST_URL: RuntimeError("timeout"),
        })
        assert asyncio.run(svc.get_swap_widget_token_lists()) == [settings.TOKEN_LIST_PRIMARY_URL]

    def test_swap_widget_lists_cached_within_ttl(self):
        from token_gateway.config import settings
        svc, source = self._service({
            settings.TOKEN_LIST_PRIMARY_URL: _token_list(1),
            settings.UNISWAP_TOKEN_LIST_URL: _token_list(2),
        })

        async def twice():
            return await svc.get_swap_widget_token_lists(), await svc.get_swap_widget_token_lists()

        first, second = asyncio.run(twice())
        assert first == second == [settings.TOKEN_LIST_PRIMARY_URL, settings.UNISWAP_TOKEN_LIST_URL]
        assert len(source.calls) == 2


# ─────────────────────────────────────────────────────────
# 4. 数据获取层测试
# ─────────────────────────────────────────────────────────

class TestAcquisitionLayer:
    def test_bundled_token_list_is_valid(self):
        from token_gateway.layers.acquisition import AcquisitionLayer
        from token_gateway.services.token_list_service import validate_token_list
        data = asyncio.run(AcquisitionLayer().get_token_list_document("/token-list.json"))
        assert validate_token_list(data)
        assert len(data["tokens"]) == 3

    def test_missing_static_list(self):
        from token_gateway.layers.acquisition import AcquisitionLayer
        with pytest.raises(FileNotFoundError):
            asyncio.run(AcquisitionLayer().get_token_list_document("/missing-list.json"))

    @pytest.mark.parametrize("url", [
        "/../../../../../../etc/passwd",
        "/../config.py",
        "/%2e%2e/config.py",
        "/",
    ])
    def test_static_read_confined_to_static_dir(self, url):
        from token_gateway.layers.acquisition import AcquisitionLayer
        with pytest.raises(FileNotFoundError):
            asyncio.run(AcquisitionLayer().get_token_list_document(url))

    def test_static_read_outside_dir_is_invalid_list(self, tmp_path):
        from token_gateway.config import settings
        from token_gateway.layers.acquisition import AcquisitionLayer
        from token_gateway.layers.cache import CacheLayer, MemoryCache
        from token_gateway.services.token_list_service import TokenListService

        static_dir = tmp_path / "static"
        static_dir.mkdir()
        (tmp_path / "outside.json").write_text(json.dumps(_token_list(1)), encoding="utf-8")
        svc = TokenListService(
            acquisition=AcquisitionLayer(), cache=CacheLayer(MemoryCache(ttl=60)), retry_delays=[0, 0, 0],
        )
        with patch.object(settings, "STATIC_DIR", str(static_dir)):
            result = asyncio.run(svc.validate_token_list_url("/../outside.json"))
        assert result.is_valid is False
        assert result.error.startswith("HTTP 404")

    def test_token_list_http_error(self):
        from token_gateway.layers.acquisition import AcquisitionLayer, UpstreamError

        async def run():
            async with _mock_client(lambda req: httpx.Response(503)) as client:
                return await AcquisitionLayer(client).get_token_list_document("https://x.example/list")

        with pytest.raises(UpstreamError, match="HTTP 503"):
            asyncio.run(run())

    def test_coingecko_contract_not_found(self):
        from token_gateway.layers.acquisition import AcquisitionLayer
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(404, json={"error": "coin not found"})

        async def run():
            async with _mock_client(handler) as client:
                return await AcquisitionLayer(client).get_coingecko_contract("ethereum", "0xABC")

        assert asyncio.run(run()) is None
        assert seen[0].endswith("/coins/ethereum/contract/0xABC")

    def test_coingecko_contract_keeps_solana_mint_case(self):
        from token_gateway.layers.acquisition import AcquisitionLayer
        mint = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json={"id": "usd-coin", "symbol": "usdc", "name": "USDC"})

        async def run():
            async with _mock_client(handler) as client:
                return await AcquisitionLayer(client).get_coingecko_contract("solana", mint)

        assert asyncio.run(run())["id"] == "usd-coin"
        assert seen == [f"/api/v3/coins/solana/contract/{mint}"]

    def test_uniswap_pools_deduplicated(self):
        from token_gateway.layers.acquisition import AcquisitionLayer

        pool_a = {"id": "0xa", "totalValueLockedUSD": "100"}
        pool_b = {"id": "0xb", "totalValueLockedUSD": "300"}

        def handler(request):
            return httpx.Response(200, json={"data": {"asToken0": [pool_a, pool_b], "asToken1": [pool_a]}})

        async def run():
            async with _mock_client(handler) as client:
                return await AcquisitionLayer(client).get_uniswap_pools(1, "0xToken", 10)

        pools = asyncio.run(run())
        assert [p["id"] for p in pools] == ["0xb", "0xa"]

    def test_uniswap_unconfigured_chain(self):
        from token_gateway.layers.acquisition import AcquisitionLayer
        assert asyncio.run(AcquisitionLayer().get_uniswap_pools(999, "0xToken")) == []


# ─────────────────────────────────────────────────────────
# 5. 数据处理层测试
# ─────────────────────────────────────────────────────────

class TestProcessingLayer:
    def setup_method(self):
        from token_gateway.layers.processing import ProcessingLayer
        self.proc = ProcessingLayer()

    def test_coingecko_from_contract(self):
        doc = {
            "id": "usd-coin",
            "symbol": "usdc",
            "name": "USDC",
            "image": {"large": "https://img/large.png", "small": "https://img/small.png"},
            "market_data": {
                "current_price": {"usd": 1.0},
                "price_change_percentage_24h": -0.01,
                "total_volume": {"usd": 5e9},
                "market_cap": {"usd": 3e10},
            },
        }
        price = self.proc.coingecko_from_contract(doc)
        assert price.image == "https://img/large.png"
        assert price.current_price == 1.0
        assert price.market_cap == 3e10

    def test_price_change_percent_fallbacks(self):
        assert self.proc.price_change_percent({"regularMarketChangePercent": 1.5}) == 1.5
        assert self.proc.price_change_percent({"changePercent": -2.0}) == -2.0
        assert self.proc.price_change_percent({}) == 0.0

    def test_stock_data(self):
        quote = {
            "regularMarketPrice": 110.0,
            "regularMarketPreviousClose": 100.0,
            "regularMarketChangePercent": 10.0,
            "regularMarketVolume": 1000,
            "marketCap": 2.5e12,
            "fiftyTwoWeekHigh": 150.0,
            "fiftyTwoWeekLow": 80.0,
            "regularMarketOpen": 101.0,
        }
        stock = self.proc.stock_data("NVDA", quote)
        assert stock.price_change == 10.0
        assert stock.to_json()["previousClose"] == 100.0
        assert stock.to_json()["high52w"] == 150.0

    def test_normalize_pools_coerces_missing(self):
        raw = [
            {"id": "0x1", "feeTier": "3000", "totalValueLockedUSD": "1000.5",
             "poolDayData": [{"volumeUSD": "200"}], "token0": {"symbol": "USDC"}, "token1": {"symbol": "WETH"}},
            {"id": "0x2", "totalValueLockedUSD": None, "poolDayData": []},
            {"id": "0x1", "totalValueLockedUSD": "999"},
        ]
        df = self.proc.normalize_pools(raw)
        assert len(df) == 2
        totals = self.proc.pool_totals(df)
        assert totals == {"tvl_usd": 1000.5, "volume_usd": 200.0, "pool_count": 2}
        stats = self.proc.to_pool_stats(df)
        assert stats[0].fee_tier == 3000 and stats[1].fee_tier is None

    def test_empty_pools(self):
        df = self.proc.normalize_pools([])
        assert self.proc.pool_totals(df)["pool_count"] == 0
        assert self.proc.to_pool_stats(df) == []

    def test_aggregate_solana_pairs(self):
        mint = "So11111111111111111111111111111111111111112"
        pairs = [
            {"chainId": "solana", "baseToken": {"address": mint, "symbol": "SOL", "name": "Wrapped SOL"},
             "priceUsd": "150.1", "liquidity": {"usd": 1000}, "volume": {"h24": 50}},
            {"chainId": "solana", "baseToken": {"address": mint, "symbol": "SOL", "name": "Wrapped SOL"},
             "priceUsd": "150.3", "liquidity": {"usd": 3000}, "volume": {"h24": 25}},
            {"chainId": "ethereum", "baseToken": {"address": mint}, "liquidity": {"usd": 99999}},
        ]
        tokens = self.proc.aggregate_solana_pairs([mint, "Unknown1111"], pairs)
        assert tokens[0].tvl_usd == 4000 and tokens[0].volume_usd == 75
        assert tokens[0].price_usd == 150.3
        assert tokens[0].pair_count == 2
        assert tokens[1].tvl_usd == 0 and tokens[1].pair_count == 0


# ─────────────────────────────────────────────────────────
# 6. 展示层测试
# ─────────────────────────────────────────────────────────

class TestPresentation:
    def test_parse_float_prefix(self):
        from token_gateway.layers.presentation import parse_float
        assert parse_float("12.5") == 12.5
        assert parse_float("12abc") == 12.0
        assert parse_float("-3.2") == -3.2
        assert parse_float("1e3x") == 1000.0
        assert parse_float("abc") is None
        assert parse_float("") is None
        assert parse_float(None) is None

    def test_parse_int_prefix(self):
        from token_gateway.layers.presentation import parse_int
        assert parse_int("42161") == 42161
        assert parse_int("8453.7") == 8453
        assert parse_int("x1") is None

    def test_search_params(self):
        from token_gateway.layers.presentation import SearchParams
        p = SearchParams.from_query({
            "tvl": "0", "volume": "1500.25", "symbol": "", "chainId": "8453", "priceChange24h": "-1.5",
        })
        assert p.tvl is None
        assert p.volume == 1500.25
        assert p.symbol is None
        assert p.chain_id == 8453
        assert p.price_change_24h == -1.5

    def test_infinity_parsed_but_not_kept(self):
        from token_gateway.layers.presentation import SearchParams, parse_float
        assert parse_float("Infinity") == float("inf")
        assert parse_float("-Infinityx") == float("-inf")
        assert parse_float("infinity") is None
        p = SearchParams.from_query({"tvl": "Infinity", "volume": "+Infinity", "priceChange24h": "-Infinity"})
        assert p.tvl is None and p.volume is None and p.price_change_24h is None

    @pytest.mark.parametrize("symbol,expected", [
        ("NVDAon", "NVDA"),
        ("spyon", "SPY"),
        ("TON", "T"),
        ("ON", None),
        ("on", None),
        ("USDC", None),
    ])
    def test_ondo_ticker(self, symbol, expected):
        from token_gateway.layers.presentation import ondo_ticker
        assert ondo_ticker(symbol) == expected

    def test_chart_ondo_with_mapping(self):
        from token_gateway.layers.presentation import chart_config
        chart = chart_config("SPYon", is_stock=False, ticker=None)
        assert (chart.symbol, chart.type) == ("SPY", "stock")

    def test_chart_ondo_without_mapping(self):
        from token_gateway.layers.presentation import chart_config
        chart = chart_config("TSLAon", is_stock=False, ticker=None)
        assert (chart.symbol, chart.type) == ("TSLA", "stock")

    def test_chart_registry_stock(self):
        from token_gateway.layers.presentation import chart_config
        chart = chart_config("vNVDA", is_stock=True, ticker="NVDA")
        assert (chart.symbol, chart.type) == ("NASDAQ:NVDA", "stock")

    def test_chart_crypto(self):
        from token_gateway.layers.presentation import chart_config
        chart = chart_config("WETH", is_stock=False, ticker=None)
        assert (chart.symbol, chart.type) == ("WETH", "crypto")

    def test_display_priority(self):
        from token_gateway.layers import presentation
        from token_gateway.models.market import CoinGeckoPriceData, StockData
        cg = CoinGeckoPriceData(id="x", symbol="x", name="X", current_price=2.0,
                                price_change_percentage_24h=3.0, total_volume=10.0, market_cap=100.0)
        stock = StockData(ticker="X", current_price=5.0, price_change_percent=0.0, volume=0.0)
        assert presentation.display_price(stock, cg) == 5.0
        assert presentation.display_price_change(None, stock, cg) == 3.0
        assert presentation.display_price_change(0.0, stock, cg) == 0.0
        assert presentation.display_volume(stock, cg) == 10.0
        assert presentation.display_market_cap(None, None) == 0.0


# ─────────────────────────────────────────────────────────
# 7. 代币注册表测试
# ─────────────────────────────────────────────────────────

class TestRegistry:
    def test_lookup_case_insensitive(self):
        from token_gateway.registry import get_token_metadata
        info = get_token_metadata("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
        assert info is not None
        assert info.chain_id == 1 and info.token.symbol == "USDC"

    def test_unknown_token(self):
        from token_gateway.registry import get_token_metadata
        assert get_token_metadata("0xdeadbeef") is None
        assert get_token_metadata("") is None

    def test_stock_ticker(self):
        from token_gateway.registry import get_stock_ticker, get_token_metadata, is_tokenized_stock
        stock = get_token_metadata("0x1111111111111111111111111111111111111111").token
        crypto = get_token_metadata("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2").token
        assert is_tokenized_stock(stock) and get_stock_ticker(stock) == "NVDA"
        assert not is_tokenized_stock(crypto) and get_stock_ticker(crypto) is None

    def test_explorer_url(self):
        from token_gateway.registry import get_explorer_url
        assert get_explorer_url(8453, "0xabc") == "https://basescan.org/token/0xabc"
        assert get_explorer_url(424242, "0xabc") is None


# ─────────────────────────────────────────────────────────
# 8. 价格服务测试
# ─────────────────────────────────────────────────────────

class TestPriceService:
    CONTRACT = {
        "id": "weth",
        "symbol": "weth",
        "name": "WETH",
        "image": {"large": "https://img/weth.png"},
        "market_data": {"current_price": {"usd": 3000.0}, "price_change_percentage_24h": 1.2},
    }

    def _run(self, handler, coro_factory):
        from token_gateway.layers.acquisition import AcquisitionLayer
        from token_gateway.layers.cache import CacheLayer, MemoryCache
        from token_gateway.services.price_service import PriceService

        async def run():
            async with _mock_client(handler) as client:
                svc = PriceService(acquisition=AcquisitionLayer(client), cache=CacheLayer(MemoryCache(ttl=60)))
                return await coro_factory(svc)

        return asyncio.run(run())

    def test_by_address_cached(self):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json=self.CONTRACT)

        async def twice(svc):
            first = await svc.fetch_token_price_by_address(1, "0xWETH")
            second = await svc.fetch_token_price_by_address(1, "0xweth")
            return first, second

        first, second = self._run(handler, twice)
        assert first.current_price == 3000.0
        assert second == first
        assert len(calls) == 1

    def test_by_address_solana_mint(self):
        mint = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

        def handler(request):
            if request.url.path.endswith(f"/coins/solana/contract/{mint}"):
                return httpx.Response(200, json={
                    "id": "usd-coin", "symbol": "usdc", "name": "USDC",
                    "market_data": {"current_price": {"usd": 1.0}},
                })
            return httpx.Response(404, json={"error": "coin not found"})

        price = self._run(handler, lambda svc: svc.fetch_token_price_by_address(101, mint))
        assert price is not None and price.current_price == 1.0

    def test_by_address_unknown_chain(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert self._run(handler, lambda svc: svc.fetch_token_price_by_address(56, "0xabc")) is None

    def test_by_address_upstream_error_raises(self):
        from token_gateway.layers.acquisition import UpstreamError
        with pytest.raises(UpstreamError):
            self._run(lambda req: httpx.Response(500), lambda svc: svc.fetch_token_price_by_address(1, "0xabc"))

    def test_by_symbol(self):
        def handler(request):
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json={"coins": [
                    {"id": "wrapped-ethereum-lookalike", "symbol": "WETHX"},
                    {"id": "weth", "symbol": "WETH"},
                ]})
            assert request.url.params["ids"] == "weth"
            return httpx.Response(200, json=[{
                "id": "weth", "symbol": "weth", "name": "WETH", "current_price": 2999.5,
                "total_volume": 1e8, "market_cap": 9e9,
            }])

        price = self._run(handler, lambda svc: svc.fetch_token_price_by_symbol("weth"))
        assert price.id == "weth" and price.current_price == 2999.5

    def test_by_symbol_no_match(self):
        handler = lambda req: httpx.Response(200, json={"coins": [{"id": "a", "symbol": "AAA"}]})
        assert self._run(handler, lambda svc: svc.fetch_token_price_by_symbol("zzz")) is None


# ─────────────────────────────────────────────────────────
# 9. 代币详情聚合服务测试
# ─────────────────────────────────────────────────────────

class FakePrices:
    def __init__(self, by_address=None, by_symbol=None, error=None):
        self.by_address = by_address or {}
        self.by_symbol = by_symbol
        self.error = error
        self.calls = []

    async def fetch_token_price_by_address(self, chain_id, address):
        self.calls.append(("address", chain_id))
        if self.error:
            raise self.error
        return self.by_address.get(chain_id)

    async def fetch_token_price_by_symbol(self, symbol):
        self.calls.append(("symbol", symbol))
        return self.by_symbol


class FakeStocks:
    def __init__(self, stock=None, error=None):
        self.stock = stock
        self.error = error
        self.tickers = []

    async def get_stock_data(self, ticker):
        self.tickers.append(ticker)
        if self.error:
            raise self.error
        return self.stock


class FakeLiquidity:
    def __init__(self, tvl=0.0, volume=0.0, error=None):
        self.tvl, self.volume, self.error = tvl, volume, error
        self.calls = []

    async def get_liquidity(self, chain_id, address):
        from token_gateway.models.market import LiquiditySummary
        self.calls.append(chain_id)
        if self.error:
            raise self.error
        return LiquiditySummary(chain_id=chain_id, address=address, tvl_usd=self.tvl, volume_usd=self.volume)


def _price(symbol="weth", price=10.0):
    from token_gateway.models.market import CoinGeckoPriceData
    return CoinGeckoPriceData(id=symbol, symbol=symbol, name=symbol.upper(), current_price=price,
                              price_change_percentage_24h=4.0, total_volume=50.0, market_cap=500.0)


class TestTokenDetailsService:
    def _details(self, address, prices=None, stocks=None, liquidity=None, **query):
        from token_gateway.layers.presentation import SearchParams
        from token_gateway.services.token_details_service import TokenDetailsService
        svc = TokenDetailsService(
            prices=prices or FakePrices(),
            stocks=stocks or FakeStocks(),
            liquidity=liquidity or FakeLiquidity(),
        )
        return asyncio.run(svc.get_token_details(address, params=SearchParams.from_query(query)))

    def test_alternative_chain_fallback(self):
        prices = FakePrices(by_address={8453: _price()})
        details = self._details("0xabc", prices=prices)
        assert prices.calls == [("address", 1), ("address", 42161), ("address", 10), ("address", 8453)]
        assert details.price == 10.0
        assert details.chart.symbol == "weth" and details.chart.type == "crypto"
        assert details.symbol == "WETH"

    def test_alternative_chains_skip_current(self):
        prices = FakePrices()
        self._details("0xabc", prices=prices, chainId="10")
        chains = [c for kind, c in prices.calls if kind == "address"]
        assert chains == [10, 1, 42161, 8453, 137]

    def test_registry_symbol_tried_before_alternatives(self):
        prices = FakePrices(by_symbol=_price("usdc", 1.0))
        details = self._details("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", prices=prices)
        assert prices.calls == [("address", 1), ("symbol", "USDC")]
        assert details.logo_uri.endswith("usdc.png")
        assert details.explorer_url.startswith("https://etherscan.io/token/")

    def test_registry_stock(self):
        from token_gateway.models.market import StockData
        stocks = FakeStocks(StockData(ticker="NVDA", current_price=120.0, price_change_percent=2.5))
        details = self._details("0x1111111111111111111111111111111111111111", stocks=stocks)
        assert stocks.tickers == ["NVDA"]
        assert details.price == 120.0 and details.price_change_24h == 2.5
        assert details.chart.symbol == "NASDAQ:NVDA"
        assert details.is_tokenized_stock

    def test_ondo_token_from_search(self):
        stocks = FakeStocks()
        details = self._details("0xfeed", stocks=stocks, symbol="SPYon", name="SPY Ondo")
        assert stocks.tickers == ["SPY"]
        assert details.chart.symbol == "SPY" and details.chart.type == "stock"
        assert details.is_tokenized_stock
        assert details.name == "SPY Ondo"

    def test_stock_failure_is_swallowed(self):
        stocks = FakeStocks(error=RuntimeError("yahoo down"))
        details = self._details("0xfeed", stocks=stocks, symbol="NVDAon")
        assert details.stock is None and details.error is None

    def test_price_failure_sets_error(self):
        prices = FakePrices(error=RuntimeError("coingecko down"))
        details = self._details("0xabc", prices=prices)
        assert details.error == "Failed to load token data"
        assert details.price == 0.0

    def test_params_skip_liquidity_fetch(self):
        liquidity = FakeLiquidity(tvl=1.0, volume=1.0)
        details = self._details("0xabc", liquidity=liquidity, tvl="2500", volume="100", priceChange24h="-3")
        assert liquidity.calls == []
        assert details.tvl_usd == 2500.0 and details.volume_usd == 100.0
        assert details.price_change_24h == -3.0

    def test_only_positive_liquidity_used(self):
        details = self._details("0xabc", liquidity=FakeLiquidity(tvl=1000.0, volume=0.0))
        assert details.tvl_usd == 1000.0
        assert details.volume_usd is None

    def test_solana_chain_routed(self):
        liquidity = FakeLiquidity(tvl=5.0, volume=6.0)
        details = self._details("So11111111111111111111111111111111111111112", liquidity=liquidity)
        assert liquidity.calls == [101]
        assert details.chain_id == 101
        assert details.explorer_url.startswith("https://solscan.io/token/")

    def test_liquidity_failure_is_swallowed(self):
        details = self._details("0xabc", liquidity=FakeLiquidity(error=RuntimeError("subgraph down")))
        assert details.tvl_usd is None and details.error is None

    def test_placeholders_for_unknown_token(self):
        details = self._details("0xabc")
        assert details.name == "Token" and details.symbol == "TOKEN"
        assert details.decimals == 18 and details.chain_id == 1
