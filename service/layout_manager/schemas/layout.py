"""
布局管理 REST 接口 Schema
"""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class LayoutResponse(BaseModel):
    """布局元信息响应"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    layout_id: str
    name: str
    description: str = ""
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LayoutDetailResponse(LayoutResponse):
    """布局详情响应（含完整 schema）"""

    layout_schema: Dict[str, Any] = Field(default_factory=dict, serialization_alias="schema")


class ComponentResponse(BaseModel):
    """组件类型定义响应"""

    type: str
    name: str
    description: str
    defaultSize: Dict[str, int]
    constraints: Dict[str, Any]
    propSchema: Dict[str, Any]
