"""
代币列表校验服务
拉取 → 格式校验 → 指数退避重试（1s / 2s / 4s） → 主备地址回退
"""

import asyncio
import logging
from numbers import Real
from typing import Any, List, Optional, Sequence

from token_gateway.config import settings
from token_gateway.layers.acquisition import get_acquisition_layer
from token_gateway.layers.cache import get_cache_layer, swap_widget_token_lists_cache_key
from token_gateway.models.token import TokenListValidationResult

logger = logging.getLogger(__name__)

_TOKEN_STRING_FIELDS = ("address", "symbol", "name")
_TOKEN_NUMBER_FIELDS = ("chainId", "decimals")


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_token_list(data: Any) -> bool:
    """
    校验代币列表格式

    - name：非空字符串
    - tokens：数组，每个元素含数值型 chainId / decimals 与字符串型 address / symbol / name
    """
    if not isinstance(data, dict):
        return False

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return False

    tokens = data.get("tokens")
    if not isinstance(tokens, list):
        return False

    for token in tokens:
        if not isinstance(token, dict):
            return False
        if not all(_is_number(token.get(f)) for f in _TOKEN_NUMBER_FIELDS):
            return False
        if not all(isinstance(token.get(f), str) for f in _TOKEN_STRING_FIELDS):
            return False

    return True


class TokenListService:
    """代币列表校验与回退"""

    def __init__(
        self,
        acquisition=None,
        cache=None,
        retry_delays: Optional[Sequence[float]] = None,
        timeout: Optional[float] = None,
    ):
        self._acq = acquisition or get_acquisition_layer()
        self._cache = cache or get_cache_layer()
        self._delays = list(retry_delays if retry_delays is not None else settings.TOKEN_LIST_RETRY_DELAYS)
        self._timeout = timeout or settings.TOKEN_LIST_TIMEOUT

    def _delay_for(self, attempt: int) -> float:
        if not self._delays:
            return 0
        return self._delays[attempt] if attempt < len(self._delays) else self._delays[-1]

    async def fetch_with_retry(self, url: str, max_retries: int = None) -> TokenListValidationResult:
        """
        拉取并校验代币列表，失败时按退避间隔重试

        共尝试 max_retries + 1 次；最后一次仍失败时返回带 error 的结果，不抛异常
        """
        if max_retries is None:
            max_retries = settings.TOKEN_LIST_MAX_RETRIES

        for attempt in range(max_retries + 1):
            try:
                data = await self._acq.get_token_list_document(url, timeout=self._timeout)
                if not validate_token_list(data):
                    raise ValueError("Invalid token list format")
                return TokenListValidationResult(url=url, is_valid=True, token_count=len(data["tokens"]))
            except Exception as exc:
                message = str(exc) or exc.__class__.__name__
                if attempt == max_retries:
                    return TokenListValidationResult(url=url, is_valid=False, error=message)
                delay = self._delay_for(attempt)
                logger.debug(f"代币列表拉取失败（第 {attempt + 1} 次）: {url} - {message}，{delay}s 后重试")
                await asyncio.sleep(delay)

        return TokenListValidationResult(url=url, is_valid=False, error="Max retries exceeded")

    async def validate_token_list_url(self, url: str) -> TokenListValidationResult:
        return await self.fetch_with_retry(url)

    async def get_validated_token_list_urls(self, primary_url: str, fallback_url: str) -> List[str]:
        """
        主地址可用时返回主地址，否则返回备用地址

        备用地址校验失败时仍然返回（由前端组件自行处理）
        """
        primary = await self.validate_token_list_url(primary_url)
        if primary.is_valid:
            logger.info(f"✅ 代币列表校验通过: {primary_url}（{primary.token_count} 个代币）")
            return [primary_url]

        logger.warning(f"⚠️ 主代币列表不可用: {primary_url} - {primary.error}")
        logger.info(f"🔄 回退到: {fallback_url}")

        fallback = await self.validate_token_list_url(fallback_url)
        if fallback.is_valid:
            logger.info(f"✅ 备用代币列表校验通过: {fallback_url}（{fallback.token_count} 个代币）")
            return [fallback_url]

        logger.error(
            f"❌ 主备代币列表均不可用。主: {primary.error}，备: {fallback.error}"
        )
        logger.warning(f"⚠️ 校验失败，仍使用备用地址: {fallback_url}")
        return [fallback_url]

    async def validate_multiple_token_lists(self, urls: List[str]) -> List[str]:
        """并发校验多个代币列表，按输入顺序返回有效地址"""
        results = await asyncio.gather(*(self.validate_token_list_url(u) for u in urls))
        valid: List[str] = []
        for index, result in enumerate(results, start=1):
            if result.is_valid:
                logger.info(f"✅ 代币列表 {index} 校验通过: {result.url}（{result.token_count} 个代币）")
                valid.append(result.url)
            else:
                logger.error(f"❌ 代币列表 {index} 校验失败: {result.url} - {result.error}")
        return valid

    async def get_swap_widget_token_lists(self) -> List[str]:
        """
        兑换组件使用的代币列表

        自有列表（主地址或备用地址）始终排在第一位，Uniswap 默认列表仅在校验通过时追加
        """
        key = swap_widget_token_lists_cache_key()
        cached = await self._cache.get(key)
        if cached is not None:
            return list(cached)

        urls = await self.get_validated_token_list_urls(
            settings.TOKEN_LIST_PRIMARY_URL, settings.TOKEN_LIST_FALLBACK_URL
        )

        uniswap = await self.validate_token_list_url(settings.UNISWAP_TOKEN_LIST_URL)
        if uniswap.is_valid:
            logger.info(f"✅ Uniswap 代币列表校验通过: {uniswap.url}（{uniswap.token_count} 个代币）")
            urls.append(uniswap.url)
        else:
            logger.warning(f"⚠️ Uniswap 代币列表不可用: {uniswap.url} - {uniswap.error}")

        logger.info(f"✅ 共 {len(urls)} 个代币列表可用，首个: {urls[0]}")
        await self._cache.set(key, urls)
        return urls


# ── 模块级别单例 ──────────────────────────────────────────
_token_list_service: Optional[TokenListService] = None


def get_token_list_service() -> TokenListService:
    global _token_list_service
    if _token_list_service is None:
        _token_list_service = TokenListService()
    return _token_list_service
