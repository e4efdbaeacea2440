"""
Token Gateway 代币详情 BFF 服务
独立 FastAPI 应用程序入口

启动方式:
    uvicorn token_gateway.main:app --host 0.0.0.0 --port 8002
    python -m token_gateway.main
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from token_gateway import __version__
from token_gateway.config import settings
from token_gateway.db import init_redis, close_connections
from token_gateway.layers.cache import get_cache_layer
from token_gateway.routers import health, tokens, solana, token_lists, cache

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _sweep_cache_periodically(interval: float):
    """周期性清理进程内缓存中的过期条目"""
    while True:
        await asyncio.sleep(interval)
        get_cache_layer().sweep()


# ── 生命周期管理 ──────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动/关闭生命周期钩子"""
    logger.info("=" * 60)
    logger.info(f"🚀 Token Gateway v{__version__} 启动中")
    logger.info(f"   CoinGecko : {settings.COINGECKO_API_URL}")
    logger.info(f"   TokenList : {settings.TOKEN_LIST_PRIMARY_URL}")
    logger.info(f"   Cache TTL : {settings.CACHE_TTL}s")
    logger.info("=" * 60)

    # Redis 连接失败不阻断启动，降级为进程内缓存
    if await init_redis():
        logger.info("✅ 缓存模式：进程内 + Redis")
    else:
        logger.info("缓存模式：仅进程内")

    sweeper = asyncio.create_task(_sweep_cache_periodically(settings.CACHE_SWEEP_INTERVAL))

    yield

    logger.info("🔄 Token Gateway 正在关闭...")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await close_connections()
    logger.info("✅ Token Gateway 已关闭")


# ── 应用实例 ──────────────────────────────────────────────
app = FastAPI(
    title="Token Gateway",
    description=(
        "代币详情页的 BFF 服务，提供以下功能：\n"
        "- 💰 代币价格（CoinGecko，地址 → 符号 → 其他链依次回退）\n"
        "- 📈 代币化股票行情（Yahoo Finance）\n"
        "- 💧 流动性数据（Uniswap v3 子图 / DexScreener）\n"
        "- 📋 代币列表校验（重试 + 主备回退）\n"
        "- 🗄️ 1 分钟 TTL 缓存（进程内 → Redis）\n\n"
        "**分层架构**\n"
        "```\n"
        "Acquisition Layer   ← 从上游数据源拉取原始数据\n"
        "Cache Layer         ← 进程内 TTL / Redis 两级缓存\n"
        "Processing Layer    ← 数据规范化、流动性聚合\n"
        "Presentation Layer  ← 参数解析、图表符号推导\n"
        "```"
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS 中间件 ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── 请求计时中间件 ─────────────────────────────────────────
@app.middleware("http")
async def add_process_time(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
    return response


# ── 全局异常处理 ──────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "message": str(exc)},
    )


# ── 注册路由 ──────────────────────────────────────────────
app.include_router(health.router)
app.include_router(token_lists.router)
app.include_router(tokens.router)
app.include_router(solana.router)
app.include_router(cache.router)


# ── 根路由 ───────────────────────────────────────────────
@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Token Gateway",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "token_gateway.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
