"""
代币注册表与链配置
代币元数据从静态目录下的 tokens.json 加载，按链 ID 分组
"""

import json
import logging
import os
from functools import lru_cache
from typing import Dict, List, Optional

from token_gateway.config import settings
from token_gateway.models.token import ChainConfig, TokenInfo, TokenMetadata

logger = logging.getLogger(__name__)

SOLANA_CHAIN_ID = 101

CHAINS: Dict[int, ChainConfig] = {
    1: ChainConfig(chain_id=1, name="Ethereum", explorer="https://etherscan.io",
                   coingecko_platform="ethereum"),
    42161: ChainConfig(chain_id=42161, name="Arbitrum One", explorer="https://arbiscan.io",
                       coingecko_platform="arbitrum-one"),
    10: ChainConfig(chain_id=10, name="Optimism", explorer="https://optimistic.etherscan.io",
                    coingecko_platform="optimistic-ethereum"),
    8453: ChainConfig(chain_id=8453, name="Base", explorer="https://basescan.org",
                      coingecko_platform="base"),
    137: ChainConfig(chain_id=137, name="Polygon", explorer="https://polygonscan.com",
                     coingecko_platform="polygon-pos"),
    SOLANA_CHAIN_ID: ChainConfig(chain_id=SOLANA_CHAIN_ID, name="Solana", explorer="https://solscan.io",
                                 coingecko_platform="solana"),
}


@lru_cache
def _load_registry(path: str) -> Dict[int, List[TokenMetadata]]:
    if not os.path.exists(path):
        logger.warning(f"代币注册表不存在: {path}")
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)
    registry = {
        int(chain_id): [TokenMetadata.model_validate(t) for t in tokens]
        for chain_id, tokens in raw.items()
    }
    logger.info(f"代币注册表加载完成，共 {sum(len(v) for v in registry.values())} 个代币")
    return registry


def get_registry() -> Dict[int, List[TokenMetadata]]:
    return _load_registry(os.path.join(settings.STATIC_DIR, "tokens.json"))


def get_token_metadata(address: str) -> Optional[TokenInfo]:
    """按地址（不区分大小写）查找代币，返回代币元数据及所在链"""
    if not address:
        return None
    needle = address.lower()
    for chain_id, tokens in get_registry().items():
        for token in tokens:
            if token.address.lower() == needle:
                return TokenInfo(token=token, chain_id=chain_id)
    return None


def is_tokenized_stock(token: TokenMetadata) -> bool:
    return token.category == "stock"


def get_stock_ticker(token: TokenMetadata) -> Optional[str]:
    if not is_tokenized_stock(token) or not token.ticker:
        return None
    return token.ticker.upper()


def get_chain(chain_id: int) -> Optional[ChainConfig]:
    return CHAINS.get(chain_id)


def get_explorer_url(chain_id: int, address: str) -> Optional[str]:
    chain = CHAINS.get(chain_id)
    if chain is None or not chain.explorer:
        return None
    return f"{chain.explorer}/token/{address}"
