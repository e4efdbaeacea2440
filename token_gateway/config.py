"""
代币网关服务配置模块
支持从环境变量读取配置，自动检测 Docker 容器环境并启用服务发现
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent


def _is_docker() -> bool:
    """检测当前是否运行在 Docker 容器内"""
    return (
        os.path.exists("/.dockerenv")
        or os.environ.get("DOCKER_CONTAINER", "").lower() in ("1", "true", "yes")
    )


def _default_redis_host() -> str:
    """Docker 环境使用服务名 'redis'，本地使用 'localhost'"""
    return "redis" if _is_docker() else "localhost"


def _default_subgraph_urls() -> Dict[int, str]:
    gateway = "https://gateway.thegraph.com/api/subgraphs/id"
    return {
        1: f"{gateway}/5zvR82QoaXYFyDEKLZ9t6v9adgnptxYpKpSbxtgVENFV",
        42161: f"{gateway}/FbCGRftH4a3yZugY7TnbYgPJVEv2LvMT6oF1fxPe9aJM",
        10: f"{gateway}/Cghf4LfVqPiFw6fp6Y5X5Ubc8UpmUhSfJL82zwiBFLaj",
        8453: f"{gateway}/43Hwfi3dJSoGpyas9VwNoDAv55yjgGrPpNSmbQZArzMG",
        137: f"{gateway}/3hCPRGf4z88VC5rsBKU5AA9FBBq5nF3jbKJG7VZCbhjm",
    }


class GatewaySettings(BaseSettings):
    """代币网关服务配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8002)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )
    STATIC_DIR: str = Field(default=str(_PACKAGE_DIR / "static"))

    # ── Redis 配置（可选的共享缓存层） ─────────────────────
    REDIS_HOST: str = Field(default_factory=_default_redis_host)
    REDIS_PORT: int = Field(default=6379)
    REDIS_PASSWORD: str = Field(default="")
    REDIS_DB: int = Field(default=0)
    REDIS_ENABLED: bool = Field(default=False)
    REDIS_MAX_CONNECTIONS: int = Field(default=20)

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── 缓存配置 ──────────────────────────────────────────
    CACHE_TTL: int = Field(default=60)                # 进程内缓存 TTL（秒）
    CACHE_SWEEP_INTERVAL: int = Field(default=300)    # 过期条目清理周期（秒）

    # ── 上游 HTTP 配置 ─────────────────────────────────────
    HTTP_TIMEOUT: float = Field(default=10.0)
    USER_AGENT: str = Field(default="token-gateway/1.0")

    COINGECKO_API_URL: str = Field(default="https://api.coingecko.com/api/v3")
    COINGECKO_API_KEY: str = Field(default="")
    DEXSCREENER_API_URL: str = Field(default="https://api.dexscreener.com")

    UNISWAP_SUBGRAPH_URLS: Dict[int, str] = Field(default_factory=_default_subgraph_urls)
    GRAPH_API_KEY: str = Field(default="")
    UNISWAP_POOL_LIMIT: int = Field(default=100)

    # ── 代币列表配置 ──────────────────────────────────────
    TOKEN_LIST_PRIMARY_URL: str = Field(default="https://vaulto.dev/api/token-list/")
    TOKEN_LIST_FALLBACK_URL: str = Field(default="/token-list.json")
    UNISWAP_TOKEN_LIST_URL: str = Field(default="https://ipfs.io/ipns/tokens.uniswap.org")
    TOKEN_LIST_TIMEOUT: float = Field(default=10.0)
    TOKEN_LIST_MAX_RETRIES: int = Field(default=3)
    TOKEN_LIST_RETRY_DELAYS: List[float] = Field(default_factory=lambda: [1.0, 2.0, 4.0])

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")


@lru_cache
def get_settings() -> GatewaySettings:
    """获取全局配置（单例）"""
    return GatewaySettings()


settings = get_settings()
