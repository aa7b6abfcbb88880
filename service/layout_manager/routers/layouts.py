"""
布局管理路由（/admin）
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from layout_manager.core.database import get_db
from layout_manager.core.exceptions import LayoutError
from layout_manager.core.response import ResponseModel
from layout_manager.schemas.layout import (
    ComponentResponse,
    LayoutDetailResponse,
    LayoutResponse,
)
from layout_manager.services.component_registry import default_registry
from layout_manager.services.layout_service import LayoutService

router = APIRouter()


def _http_error(err: LayoutError) -> HTTPException:
    return HTTPException(status_code=err.code, detail=err.message)


@router.get("/layouts", summary="布局列表", tags=["管理接口 > 布局管理"])
async def list_layouts(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """活动布局在前，其余按创建时间倒序"""
    try:
        layouts = await LayoutService.list_layouts(db, limit=limit, offset=offset)
        total = await LayoutService.count(db)
    except LayoutError as e:
        raise _http_error(e)
    items = [LayoutResponse.model_validate(layout).model_dump(mode="json") for layout in layouts]
    return ResponseModel.page_response(items, total=total, limit=limit, offset=offset)


@router.get("/layouts/{layout_id}", summary="布局详情", tags=["管理接口 > 布局管理"])
async def get_layout(layout_id: str, db: AsyncSession = Depends(get_db)):
    try:
        layout = await LayoutService.get_by_layout_id(db, layout_id)
    except LayoutError as e:
        raise _http_error(e)
    data = LayoutDetailResponse.model_validate(layout)
    return ResponseModel.success_response(data=data.model_dump(mode="json", by_alias=True), message="获取成功")


@router.post("/layouts/{layout_id}/activate", summary="设为活动布局", tags=["管理接口 > 布局管理"])
async def activate_layout(layout_id: str, db: AsyncSession = Depends(get_db)):
    """取消其他布局的活动状态并激活指定布局"""
    try:
        layout = await LayoutService.set_active(db, layout_id)
    except LayoutError as e:
        raise _http_error(e)
    return ResponseModel.success_response(
        data=LayoutResponse.model_validate(layout).model_dump(mode="json"),
        message="激活成功",
    )


@router.delete("/layouts/{layout_id}", summary="删除布局", tags=["管理接口 > 布局管理"])
async def delete_layout(layout_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await LayoutService.delete(db, layout_id)
    except LayoutError as e:
        raise _http_error(e)
    return ResponseModel.success_response(message="删除成功", code=status.HTTP_200_OK)


@router.get("/components", summary="组件类型列表", tags=["管理接口 > 布局管理"])
async def list_components():
    """组件注册表中的全部类型定义"""
    data = [
        ComponentResponse(**definition.model_dump(exclude_none=True)).model_dump()
        for definition in default_registry().definitions()
    ]
    return ResponseModel.success_response(data=data, message="获取成功")
