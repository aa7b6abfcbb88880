"""
MCP 工具相关 Schema：意图、匹配条件、变更记录与统一响应信封
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from layout_manager.schemas.layout_schema import LayoutItem
from layout_manager.utils.json_utils import dumps as json_dumps


class Action(str, Enum):
    """命令意图动作"""
    REMOVE = "remove"
    RESIZE = "resize"
    MOVE = "move"
    ADD = "add"
    UPDATE = "update"
    UNKNOWN = "unknown"


class SizeParams(BaseModel):
    """尺寸参数：absolute 使用 width/height，larger/smaller 使用 delta"""
    width: Optional[int] = None
    height: Optional[int] = None
    delta: Optional[int] = None
    mode: Optional[str] = None  # absolute | larger | smaller


class PositionParams(BaseModel):
    """位置参数：zone、relative_to + direction，或单独的 direction"""
    zone: Optional[str] = None
    direction: Optional[str] = None
    relative_to: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.zone or self.direction or self.relative_to)


class Intent(BaseModel):
    """自然语言命令解析结果"""
    action: Action
    command: str = ""
    target: str = ""
    size: Optional[SizeParams] = None
    position: Optional[PositionParams] = None
    props: Dict[str, Any] = Field(default_factory=dict)


class SizeRange(BaseModel):
    min_width: Optional[int] = None
    max_width: Optional[int] = None
    min_height: Optional[int] = None
    max_height: Optional[int] = None


class WidgetMatcher(BaseModel):
    """组件匹配条件，所有已填写的条件同时满足才算匹配"""
    component_type: Optional[str] = None
    title_contains: Optional[str] = None
    props_contain: Dict[str, Any] = Field(default_factory=dict)
    position_zone: Optional[str] = None
    size_range: Optional[SizeRange] = None
    widget_id: Optional[str] = None

    def is_empty(self) -> bool:
        return not (
            self.component_type
            or self.title_contains
            or self.props_contain
            or self.position_zone
            or self.size_range
            or self.widget_id
        )


class WidgetPosition(BaseModel):
    x: int
    y: int
    w: int
    h: int


class WidgetInfo(BaseModel):
    """响应中的组件信息（查找、新增、变更共用）"""
    id: str
    componentType: str
    position: WidgetPosition
    props: Optional[Dict[str, Any]] = None
    matchReason: Optional[str] = None
    breakpoint: str

    @classmethod
    def from_item(cls, item: LayoutItem, breakpoint: str, match_reason: Optional[str] = None) -> "WidgetInfo":
        return cls(
            id=item.i,
            componentType=item.componentType,
            position=WidgetPosition(**item.position()),
            props=item.props or None,
            matchReason=match_reason,
            breakpoint=breakpoint,
        )


class WidgetChange(BaseModel):
    """单个组件的变更记录"""
    widgetId: str
    action: str  # moved | resized | removed | repositioned | added | updated
    breakpoint: str
    wasTargeted: bool
    reason: str
    previousState: Optional[Dict[str, Any]] = None
    newState: Optional[Dict[str, Any]] = None


class ChangeSummary(BaseModel):
    totalAffected: int = 0
    targeted: int = 0
    collateralChanges: int = 0
    operations: Dict[str, int] = Field(default_factory=dict)
    reasons: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_changes(cls, changes: List[WidgetChange]) -> "ChangeSummary":
        summary = cls(totalAffected=len(changes))
        for change in changes:
            if change.wasTargeted:
                summary.targeted += 1
            else:
                summary.collateralChanges += 1
            summary.operations[change.action] = summary.operations.get(change.action, 0) + 1
            summary.reasons[change.reason] = summary.reasons.get(change.reason, 0) + 1
        return summary


class LayoutInfo(BaseModel):
    """布局元信息"""
    id: str
    layoutId: str
    name: str
    description: str = ""
    isActive: bool = False
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, layout) -> "LayoutInfo":
        return cls(
            id=layout.id,
            layoutId=layout.layout_id,
            name=layout.name or "",
            description=layout.description or "",
            isActive=bool(layout.is_active),
            createdAt=layout.created_at,
            updatedAt=layout.updated_at,
        )


class GridDimensions(BaseModel):
    columns: int
    usedRows: int
    maxX: int
    maxY: int
    totalCells: int
    usedCells: int


class LayoutAnalysis(BaseModel):
    totalWidgets: int = 0
    widgetsByType: Dict[str, int] = Field(default_factory=dict)
    widgetsByZone: Dict[str, List[str]] = Field(default_factory=dict)
    gridDimensions: Optional[GridDimensions] = None
    density: float = 0.0
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    widgetDetails: List[Dict[str, Any]] = Field(default_factory=list)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ToolResponse(BaseModel):
    """MCP 工具统一响应信封（字段按操作选填）"""
    success: bool
    operation: str
    activeLayoutId: Optional[str] = None
    targetedWidgets: Optional[List[str]] = None
    widgets: Optional[List[WidgetInfo]] = None
    allChanges: Optional[List[WidgetChange]] = None
    summary: Optional[ChangeSummary] = None
    message: str = ""
    affectedBreakpoints: Optional[List[str]] = None
    timestamp: datetime = Field(default_factory=_now)

    searchQuery: Optional[str] = None
    totalFound: Optional[int] = None

    layout: Optional[LayoutInfo] = None
    layouts: Optional[List[LayoutInfo]] = None

    analysis: Optional[Dict[str, Any]] = None

    error: Optional[str] = None
    details: Optional[List[str]] = None

    @classmethod
    def failure(cls, operation: str, error: str, details: Optional[List[str]] = None,
                active_layout_id: Optional[str] = None) -> "ToolResponse":
        return cls(
            success=False,
            operation=operation,
            activeLayoutId=active_layout_id,
            error=error,
            details=details or None,
            message=error,
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        return json_dumps(self.to_payload())
