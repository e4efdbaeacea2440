"""
代币列表路由
GET  /api/token-lists            - 兑换组件使用的代币列表地址
GET  /api/token-lists/validate   - 校验单个代币列表地址
POST /api/token-lists/validate   - 并发校验多个代币列表地址
GET  /token-list.json            - 内置备用代币列表
"""

import os
from typing import List

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from token_gateway.config import settings
from token_gateway.models.response import ApiResponse
from token_gateway.services.token_list_service import get_token_list_service

router = APIRouter(tags=["代币列表"])


class ValidateRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)


@router.get("/api/token-lists", response_model=ApiResponse)
async def swap_widget_token_lists():
    """自有代币列表始终排在第一位"""
    urls = await get_token_list_service().get_swap_widget_token_lists()
    return ApiResponse.ok(data={"count": len(urls), "urls": urls})


@router.get("/api/token-lists/validate", response_model=ApiResponse)
async def validate_token_list(url: str = Query(..., description="代币列表地址")):
    result = await get_token_list_service().validate_token_list_url(url)
    return ApiResponse.ok(data=result.to_json())


@router.post("/api/token-lists/validate", response_model=ApiResponse)
async def validate_token_lists(body: ValidateRequest):
    if not body.urls:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="urls must be a non-empty array",
        )
    valid = await get_token_list_service().validate_multiple_token_lists(body.urls)
    return ApiResponse.ok(data={"count": len(valid), "urls": valid})


@router.get("/token-list.json", include_in_schema=False)
async def bundled_token_list():
    path = os.path.join(settings.STATIC_DIR, "token-list.json")
    if not os.path.exists(path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token list not found")
    return FileResponse(path, media_type="application/json")
