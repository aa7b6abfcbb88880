"""
位置计算

- 新组件放置：区域提示（仅受占用/越界否决）-> 逐行首次适配扫描 -> 追加到最底部
- 已有组件移动：区域固定坐标、相对参照组件、单步方向移动
"""
import logging
from typing import Iterable, Optional, Sequence, Tuple

from layout_manager.schemas.layout_schema import LayoutItem
from layout_manager.schemas.tool import PositionParams

logger = logging.getLogger(__name__)

# “底部”区域使用的固定行号
BOTTOM_ROW = 10
# 首次适配扫描的行数上限
SCAN_ROWS = 20

ZONES = ("top-left", "top-right", "bottom-left", "bottom-right", "center")

Position = Tuple[int, int]


def bottom_row(widgets: Iterable[LayoutItem]) -> int:
    """最低占用行的下一行，空列表为 0"""
    return max((item.y + item.h for item in widgets), default=0)


def zone_position(zone: str, cols: int, width: int) -> Optional[Position]:
    """区域 -> 固定坐标，未知区域返回 None"""
    if zone == "top-left":
        return 0, 0
    if zone == "top-right":
        return cols - width, 0
    if zone == "bottom-left":
        return 0, BOTTOM_ROW
    if zone == "bottom-right":
        return cols - width, BOTTOM_ROW
    if zone == "center":
        return cols // 2 - 2, 2
    return None


def fits(x: int, y: int, width: int, height: int, cols: int, widgets: Sequence[LayoutItem]) -> bool:
    """矩形在 [0, cols) 内且不与任何已有组件重叠"""
    if x < 0 or y < 0 or x + width > cols:
        return False
    return not any(item.overlaps(x, y, width, height) for item in widgets)


class PositionSolver:
    """网格位置计算"""

    def solve_position(self, widgets: Iterable[LayoutItem], cols: int, width: int, height: int,
                       hint: Optional[str] = None) -> Position:
        """
        为新组件计算位置

        Args:
            widgets: 断点下已有组件
            cols: 断点列数
            width/height: 新组件尺寸
            hint: 区域名称（top-left/top-right/bottom-left/bottom-right/center）
        """
        candidate = zone_position(hint, cols, width) if hint else None
        return self.place(widgets, cols, width, height, candidate)

    def place(self, widgets: Iterable[LayoutItem], cols: int, width: int, height: int,
              candidate: Optional[Position] = None) -> Position:
        """候选位置可用则直接返回，否则首次适配，扫描不到时追加到底部"""
        widgets = list(widgets)
        if candidate is not None:
            x, y = candidate
            if fits(x, y, width, height, cols, widgets):
                return x, y
            logger.debug("候选位置 (%s, %s) 被占用或越界，改为首次适配", x, y)

        for y in range(SCAN_ROWS):
            for x in range(cols - width + 1):
                if fits(x, y, width, height, cols, widgets):
                    return x, y

        return 0, bottom_row(widgets)

    def relative_position(self, reference: LayoutItem, direction: Optional[str], cols: int,
                          width: int, height: int) -> Position:
        """相对参照组件的位置，未识别的方向按 right 处理"""
        if direction == "left":
            return max(0, reference.x - width), reference.y
        if direction == "above":
            return reference.x, max(0, reference.y - height)
        if direction == "below":
            return reference.x, reference.y + reference.h
        return min(cols - width, reference.x + reference.w), reference.y

    def step_position(self, item: LayoutItem, direction: Optional[str], cols: int) -> Position:
        """按方向移动一格；水平方向夹在 [0, cols-w]，向下不设上限"""
        x, y = item.x, item.y
        if direction == "left":
            x = max(0, x - 1)
        elif direction == "right":
            x = min(cols - item.w, x + 1)
        elif direction in ("top", "above"):
            y = max(0, y - 1)
        elif direction in ("bottom", "below"):
            y = y + 1
        return x, y

    def move_position(self, item: LayoutItem, position: PositionParams, cols: int,
                      reference: Optional[LayoutItem] = None) -> Position:
        """
        已有组件的目标位置：区域 > 参照组件 > 方向，都没有时保持原位

        参照组件由调用方解析，position.relative_to 非空而 reference 为空视为调用错误。
        """
        if position.zone:
            target = zone_position(position.zone, cols, item.w)
            if target is not None:
                return max(0, target[0]), target[1]
        if position.relative_to and reference is not None:
            return self.relative_position(reference, position.direction, cols, item.w, item.h)
        if position.direction:
            return self.step_position(item, position.direction, cols)
        return item.x, item.y
