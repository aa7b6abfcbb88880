"""
碰撞处理：组件移动/缩放后，与其新矩形重叠的其他组件整体下移到新矩形下方

只处理一层：被挤开的组件不再相互检查，也不检查列边界。
"""
import logging
from typing import List

from layout_manager.schemas.layout_schema import LayoutItem
from layout_manager.schemas.tool import WidgetChange

logger = logging.getLogger(__name__)

COLLISION_REASON = "moved to avoid collision"


class CollisionResolver:

    def resolve(self, widgets: List[LayoutItem], moved_index: int, new_x: int, new_y: int,
                width: int, height: int, breakpoint: str) -> List[WidgetChange]:
        """
        挤开与 widgets[moved_index] 新矩形重叠的组件（原地修改其 y）

        Returns:
            被挤开组件的变更记录（wasTargeted=False）
        """
        displaced_y = new_y + height

        changes: List[WidgetChange] = []
        for index, item in enumerate(widgets):
            if index == moved_index:
                continue
            if not item.overlaps(new_x, new_y, width, height):
                continue

            previous = item.position()
            item.y = displaced_y
            changes.append(WidgetChange(
                widgetId=item.i,
                action="repositioned",
                breakpoint=breakpoint,
                wasTargeted=False,
                reason=COLLISION_REASON,
                previousState=previous,
                newState=item.position(),
            ))
            logger.debug("组件 %s 因碰撞下移到 y=%s", item.i, displaced_y)

        return changes
