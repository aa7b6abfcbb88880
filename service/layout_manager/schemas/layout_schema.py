"""
响应式布局文档 Schema（react-grid-layout 字段命名）

Layout.schema 列中保存的就是 LayoutSchema.to_document() 的结果。
"""
from typing import Any, Dict, List, Optional, Set, TYPE_CHECKING

from pydantic import BaseModel, Field

from layout_manager.core.exceptions import ConstraintError, NotFoundError

if TYPE_CHECKING:
    from layout_manager.services.component_registry import ComponentDefinition, ComponentRegistry


class ItemSize(BaseModel):
    """新组件默认尺寸"""
    w: int = 4
    h: int = 3


class AspectRatio(BaseModel):
    """宽高比范围（w/h）"""
    min: float
    max: float

    def contains(self, w: int, h: int) -> bool:
        ratio = w / h
        return self.min <= ratio <= self.max


class ItemConstraints(BaseModel):
    """单个组件的尺寸与比例约束"""
    minW: int = 0
    maxW: int = 0
    minH: int = 0
    maxH: int = 0
    aspectRatio: Optional[AspectRatio] = None

    def check(self) -> None:
        if self.minW > self.maxW:
            raise ConstraintError(f"minW {self.minW} greater than maxW {self.maxW}")
        if self.minH > self.maxH:
            raise ConstraintError(f"minH {self.minH} greater than maxH {self.maxH}")
        if self.aspectRatio is not None and self.aspectRatio.min > self.aspectRatio.max:
            raise ConstraintError(
                f"aspect ratio min {self.aspectRatio.min:.2f} greater than max {self.aspectRatio.max:.2f}"
            )


class GlobalConstraints(BaseModel):
    """全局约束与默认值"""
    maxItems: int = 20
    defaultItemSize: ItemSize = Field(default_factory=ItemSize)
    margin: List[int] = Field(default_factory=lambda: [10, 10])
    containerPadding: List[int] = Field(default_factory=lambda: [10, 10])


class LayoutItem(BaseModel):
    """网格中的单个组件；可选字段缺省表示“不约束”，而不是 0"""

    i: str
    x: int = 0
    y: int = 0
    w: int = 1
    h: int = 1
    static: Optional[bool] = None
    minW: Optional[int] = None
    maxW: Optional[int] = None
    minH: Optional[int] = None
    maxH: Optional[int] = None
    isDraggable: Optional[bool] = None
    isResizable: Optional[bool] = None

    componentType: str
    props: Dict[str, Any] = Field(default_factory=dict)
    constraints: Optional[ItemConstraints] = None

    def position(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    def overlaps(self, x: int, y: int, w: int, h: int) -> bool:
        """与矩形 (x, y, w, h) 是否有公共单元格"""
        return self.x < x + w and x < self.x + self.w and self.y < y + h and y < self.y + self.h

    def intersects(self, other: "LayoutItem") -> bool:
        return self.overlaps(other.x, other.y, other.w, other.h)

    def check_bounds(self, max_cols: int) -> None:
        """校验位置、网格边界与 min/max 约束，违反时抛出 ConstraintError"""
        if self.x < 0 or self.y < 0 or self.w < 1 or self.h < 1:
            raise ConstraintError(
                f"invalid position or size: x={self.x}, y={self.y}, w={self.w}, h={self.h}"
            )
        if self.x + self.w > max_cols:
            raise ConstraintError(
                f"item extends beyond grid: x={self.x}, w={self.w}, maxCols={max_cols}"
            )

        if self.minW is not None and self.w < self.minW:
            raise ConstraintError(f"width {self.w} below minimum {self.minW}")
        if self.maxW is not None and self.w > self.maxW:
            raise ConstraintError(f"width {self.w} exceeds maximum {self.maxW}")
        if self.minH is not None and self.h < self.minH:
            raise ConstraintError(f"height {self.h} below minimum {self.minH}")
        if self.maxH is not None and self.h > self.maxH:
            raise ConstraintError(f"height {self.h} exceeds maximum {self.maxH}")
        if self.minW is not None and self.maxW is not None and self.minW > self.maxW:
            raise ConstraintError(f"minW {self.minW} greater than maxW {self.maxW}")
        if self.minH is not None and self.maxH is not None and self.minH > self.maxH:
            raise ConstraintError(f"minH {self.minH} greater than maxH {self.maxH}")

        if self.constraints is not None:
            self.constraints.check()
            ratio = self.constraints.aspectRatio
            if ratio is not None and not ratio.contains(self.w, self.h):
                raise ConstraintError(
                    f"aspect ratio {self.w / self.h:.2f} outside allowed range {ratio.min:.2f}-{ratio.max:.2f}"
                )

    def check_definition(self, definition: "ComponentDefinition") -> None:
        """按组件定义校验尺寸范围与宽高比"""
        limits = definition.constraints
        if self.w < limits.minW or self.w > limits.maxW:
            raise ConstraintError(
                f"width {self.w} outside component range {limits.minW}-{limits.maxW}"
            )
        if self.h < limits.minH or self.h > limits.maxH:
            raise ConstraintError(
                f"height {self.h} outside component range {limits.minH}-{limits.maxH}"
            )
        ratio = limits.aspectRatio
        if ratio is not None and not ratio.contains(self.w, self.h):
            raise ConstraintError(
                f"aspect ratio {self.w / self.h:.2f} violates component constraints {ratio.min:.2f}-{ratio.max:.2f}"
            )


class LayoutSchema(BaseModel):
    """完整布局文档：四个按断点名索引的并列映射 + 全局约束"""

    breakpoints: Dict[str, int]
    cols: Dict[str, int]
    layouts: Dict[str, List[LayoutItem]]
    globalConstraints: GlobalConstraints = Field(default_factory=GlobalConstraints)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "LayoutSchema":
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def widgets(self, breakpoint: str) -> List[LayoutItem]:
        """获取断点下的组件列表，断点不存在时抛出 NotFoundError"""
        if breakpoint not in self.layouts:
            raise NotFoundError(f"Breakpoint {breakpoint} not found")
        return self.layouts[breakpoint]

    def cols_for(self, breakpoint: str) -> int:
        return self.cols.get(breakpoint, 12)

    def find_item(self, breakpoint: str, widget_id: str) -> Optional[LayoutItem]:
        for item in self.widgets(breakpoint):
            if item.i == widget_id:
                return item
        return None

    def check_structure(self) -> None:
        """
        校验布局文档不变量：
        - breakpoints / cols / layouts 键集合一致
        - 每个组件位于网格内且满足自身 min/max 约束
        - 同一断点内组件 ID 唯一
        - 单断点组件数不超过 maxItems
        """
        bp_keys = set(self.breakpoints)
        if bp_keys != set(self.cols) or bp_keys != set(self.layouts):
            raise ConstraintError(
                "breakpoints, cols and layouts must define the same breakpoint names",
                details=[
                    f"breakpoints={sorted(bp_keys)}",
                    f"cols={sorted(self.cols)}",
                    f"layouts={sorted(self.layouts)}",
                ],
            )

        max_items = self.globalConstraints.maxItems
        for breakpoint, items in self.layouts.items():
            cols = self.cols[breakpoint]
            if max_items > 0 and len(items) > max_items:
                raise ConstraintError(
                    f"breakpoint {breakpoint} holds {len(items)} items, maximum is {max_items}"
                )
            seen: Set[str] = set()
            for item in items:
                if item.i in seen:
                    raise ConstraintError(f"duplicate widget id {item.i} in breakpoint {breakpoint}")
                seen.add(item.i)
                try:
                    item.check_bounds(cols)
                except ConstraintError as e:
                    raise ConstraintError(
                        f"invalid item {item.i} in breakpoint {breakpoint}: {e.message}"
                    ) from e

    def check_with_registry(self, registry: "ComponentRegistry") -> None:
        """在结构校验基础上，按组件注册表校验尺寸、宽高比与 props"""
        self.check_structure()
        for breakpoint, items in self.layouts.items():
            for item in items:
                definition = registry.get(item.componentType)
                if definition is None:
                    raise ConstraintError(
                        f"item {item.i} in breakpoint {breakpoint} has unknown component type {item.componentType}"
                    )
                try:
                    item.check_definition(definition)
                    registry.validate_props(item.componentType, item.props)
                except ConstraintError as e:
                    raise ConstraintError(
                        f"item {item.i} violates {item.componentType} constraints: {e.message}",
                        details=e.details,
                    ) from e


def default_empty_schema() -> LayoutSchema:
    """新建布局使用的空 schema"""
    return LayoutSchema(
        breakpoints={"lg": 1200, "md": 996, "sm": 768, "xs": 480, "xxs": 0},
        cols={"lg": 12, "md": 10, "sm": 6, "xs": 4, "xxs": 2},
        layouts={"lg": [], "md": [], "sm": [], "xs": [], "xxs": []},
        globalConstraints=GlobalConstraints(),
    )
