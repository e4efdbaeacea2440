"""
Solana 代币数据路由
POST /api/solana/token-data   - 批量获取 Solana 代币 TVL / 成交量
"""

from fastapi import APIRouter, HTTPException, status

from token_gateway.models.market import SolanaTokenDataRequest
from token_gateway.services.liquidity_service import get_liquidity_service

router = APIRouter(prefix="/api/solana", tags=["Solana"])


@router.post("/token-data")
async def solana_token_data(body: SolanaTokenDataRequest):
    """返回 {tokens: [...]}，顺序与请求地址一致"""
    if not any(a and a.strip() for a in body.addresses):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="addresses must be a non-empty array",
        )
    try:
        tokens = await get_liquidity_service().get_solana_token_data(body.addresses)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        )
    return {"tokens": [t.model_dump(by_alias=True) for t in tokens]}
