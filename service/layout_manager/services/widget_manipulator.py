"""
组件变更执行：在布局 schema 的工作副本上执行移动、缩放、删除、属性更新与新增

所有方法直接修改传入的 LayoutSchema，返回本次产生的变更记录；
校验与持久化由调用方（LayoutToolService）负责。
"""
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from layout_manager.core.exceptions import ConstraintError, NotFoundError, ValidationError
from layout_manager.schemas.layout_schema import LayoutItem, LayoutSchema
from layout_manager.schemas.tool import Action, Intent, PositionParams, SizeParams, WidgetChange
from layout_manager.services.collision_resolver import CollisionResolver
from layout_manager.services.intent_parser import IntentParser
from layout_manager.services.position_solver import ZONES, PositionSolver
from layout_manager.services.widget_finder import WidgetFinder

logger = logging.getLogger(__name__)

_RELATIVE_WORDING = {
    "left": "left of",
    "right": "right of",
    "above": "above",
    "below": "below",
}


def _index_of(widgets: List[LayoutItem], widget_id: str, breakpoint: str) -> int:
    for index, item in enumerate(widgets):
        if item.i == widget_id:
            return index
    raise NotFoundError(f"Widget {widget_id} not found in breakpoint {breakpoint}")


def new_widget_id(widgets: List[LayoutItem]) -> str:
    """基于纳秒时间戳生成组件 ID，断点内唯一"""
    existing = {item.i for item in widgets}
    widget_id = f"widget-{time.time_ns()}"
    suffix = 1
    while widget_id in existing:
        widget_id = f"widget-{time.time_ns()}-{suffix}"
        suffix += 1
    return widget_id


class WidgetManipulator:

    def __init__(
        self,
        parser: Optional[IntentParser] = None,
        finder: Optional[WidgetFinder] = None,
        solver: Optional[PositionSolver] = None,
        resolver: Optional[CollisionResolver] = None,
    ):
        self.parser = parser or IntentParser()
        self.finder = finder or WidgetFinder()
        self.solver = solver or PositionSolver()
        self.resolver = resolver or CollisionResolver()

    # ---------- 移动 ----------

    def move_to(self, schema: LayoutSchema, breakpoint: str, widget_id: str, x: int, y: int,
                reason: str = "user requested movement") -> List[WidgetChange]:
        """移动到指定坐标并处理碰撞"""
        widgets = schema.widgets(breakpoint)
        index = _index_of(widgets, widget_id, breakpoint)
        item = widgets[index]

        previous = item.position()
        item.x, item.y = x, y
        changes = [WidgetChange(
            widgetId=item.i,
            action="moved",
            breakpoint=breakpoint,
            wasTargeted=True,
            reason=reason,
            previousState=previous,
            newState=item.position(),
        )]
        changes.extend(self.resolver.resolve(widgets, index, item.x, item.y, item.w, item.h, breakpoint))
        return changes

    def move(self, schema: LayoutSchema, breakpoint: str, widget_id: str,
             position: PositionParams) -> List[WidgetChange]:
        """按解析出的位置参数移动"""
        widgets = schema.widgets(breakpoint)
        item = widgets[_index_of(widgets, widget_id, breakpoint)]
        cols = schema.cols_for(breakpoint)

        reference = None
        if position.zone:
            reason = f"moved to {position.zone} zone"
        elif position.relative_to:
            reference = self.resolve_reference(widgets, position.relative_to, exclude_id=widget_id,
                                               breakpoint=breakpoint)
            wording = _RELATIVE_WORDING.get(position.direction or "right", "right of")
            reason = f"positioned {wording} {position.relative_to}"
        else:
            reason = "user requested movement"

        x, y = self.solver.move_position(item, position, cols, reference)
        return self.move_to(schema, breakpoint, widget_id, x, y, reason)

    def resolve_reference(self, widgets: List[LayoutItem], reference: str, exclude_id: Optional[str],
                          breakpoint: str) -> LayoutItem:
        """参照组件：先按 ID 精确匹配，再按描述匹配第一个（排除正在移动的组件）"""
        for item in widgets:
            if item.i == reference and item.i != exclude_id:
                return item

        matcher = self.parser.parse_widget_selector(reference)
        if not matcher.is_empty():
            for item in widgets:
                if item.i != exclude_id and self.finder.match(item, matcher) is not None:
                    return item

        raise NotFoundError(f"Reference widget '{reference}' not found in breakpoint {breakpoint}")

    # ---------- 缩放 ----------

    def resize_to(self, schema: LayoutSchema, breakpoint: str, widget_id: str, w: int, h: int,
                  reason: Optional[str] = None) -> List[WidgetChange]:
        """缩放到指定尺寸（左上角不动）并处理碰撞"""
        widgets = schema.widgets(breakpoint)
        index = _index_of(widgets, widget_id, breakpoint)
        item = widgets[index]

        previous = item.position()
        item.w, item.h = w, h
        changes = [WidgetChange(
            widgetId=item.i,
            action="resized",
            breakpoint=breakpoint,
            wasTargeted=True,
            reason=reason or f"resized to {w}x{h}",
            previousState=previous,
            newState=item.position(),
        )]
        changes.extend(self.resolver.resolve(widgets, index, item.x, item.y, item.w, item.h, breakpoint))
        return changes

    def resize(self, schema: LayoutSchema, breakpoint: str, widget_id: str,
               size: Optional[SizeParams]) -> List[WidgetChange]:
        """按解析出的尺寸参数缩放：绝对尺寸或 ±delta（最小为 1）"""
        widgets = schema.widgets(breakpoint)
        item = widgets[_index_of(widgets, widget_id, breakpoint)]

        if size is not None and size.mode == "absolute" and size.width and size.height:
            return self.resize_to(schema, breakpoint, widget_id, size.width, size.height)
        if size is not None and size.delta:
            w = max(1, item.w + size.delta)
            h = max(1, item.h + size.delta)
            return self.resize_to(schema, breakpoint, widget_id, w, h, reason=f"resized {size.mode}")
        raise ValidationError("No size given; use WxH or larger/smaller")

    # ---------- 删除 / 更新 ----------

    def remove(self, schema: LayoutSchema, breakpoint: str, widget_id: str) -> WidgetChange:
        """删除组件（重建列表而不是原地删除）"""
        widgets = schema.widgets(breakpoint)
        item = widgets[_index_of(widgets, widget_id, breakpoint)]
        schema.layouts[breakpoint] = [w for w in widgets if w.i != widget_id]
        return WidgetChange(
            widgetId=widget_id,
            action="removed",
            breakpoint=breakpoint,
            wasTargeted=True,
            reason="user requested removal",
            previousState=item.position(),
        )

    def update_props(self, schema: LayoutSchema, breakpoint: str, widget_id: str,
                     props: Dict[str, Any], reason: str = "user requested update") -> WidgetChange:
        """合并更新组件属性"""
        if not props:
            raise ValidationError("No property changes given")
        widgets = schema.widgets(breakpoint)
        item = widgets[_index_of(widgets, widget_id, breakpoint)]

        previous = dict(item.props)
        item.props = {**item.props, **props}
        return WidgetChange(
            widgetId=widget_id,
            action="updated",
            breakpoint=breakpoint,
            wasTargeted=True,
            reason=reason,
            previousState={"props": previous},
            newState={"props": dict(item.props)},
        )

    # ---------- 新增 ----------

    def add(self, schema: LayoutSchema, breakpoint: str, component_type: str, size: Tuple[int, int],
            position: Optional[PositionParams] = None,
            props: Optional[Dict[str, Any]] = None) -> Tuple[LayoutItem, WidgetChange]:
        """
        新增组件：区域/参照位置作为候选，被占用或越界时改用首次适配
        """
        widgets = schema.widgets(breakpoint)
        max_items = schema.globalConstraints.maxItems
        if max_items > 0 and len(widgets) >= max_items:
            raise ConstraintError(f"breakpoint {breakpoint} already holds the maximum of {max_items} widgets")

        cols = schema.cols_for(breakpoint)
        w, h = size
        if position is not None and position.zone in ZONES:
            x, y = self.solver.solve_position(widgets, cols, w, h, hint=position.zone)
        elif position is not None and position.relative_to:
            reference = self.resolve_reference(widgets, position.relative_to, exclude_id=None,
                                               breakpoint=breakpoint)
            candidate = self.solver.relative_position(reference, position.direction, cols, w, h)
            x, y = self.solver.place(widgets, cols, w, h, candidate)
        else:
            x, y = self.solver.solve_position(widgets, cols, w, h)

        item = LayoutItem(
            i=new_widget_id(widgets),
            x=x,
            y=y,
            w=w,
            h=h,
            isDraggable=True,
            isResizable=True,
            componentType=component_type,
            props=dict(props or {}),
        )
        schema.layouts[breakpoint] = widgets + [item]
        logger.debug("新增组件 %s (%s) 于 %s (%s, %s)", item.i, component_type, breakpoint, x, y)

        change = WidgetChange(
            widgetId=item.i,
            action="added",
            breakpoint=breakpoint,
            wasTargeted=True,
            reason="user requested addition",
            newState=item.position(),
        )
        return item, change

    # ---------- 自然语言命令 ----------

    def find_targets(self, schema: LayoutSchema, breakpoint: str, intent: Intent) -> List[LayoutItem]:
        """命令的目标组件：优先按 ID，其次按选择器解析"""
        widgets = schema.widgets(breakpoint)
        target = intent.target
        if not target:
            raise ValidationError(f"No target widget in command '{intent.command}'")

        exact = [item for item in widgets if item.i == target]
        if exact:
            return exact

        matcher = self.parser.parse_widget_selector(target)
        if matcher.is_empty():
            raise ValidationError(f"Could not identify a target widget in command '{intent.command}'")
        found = self.finder.find(widgets, matcher)
        if not found:
            raise NotFoundError(f"No widget matches '{target}' in breakpoint {breakpoint}")
        return found

    def execute(self, schema: LayoutSchema, breakpoint: str, intent: Intent) -> List[WidgetChange]:
        """执行一条解析后的命令"""
        if intent.action == Action.UNKNOWN:
            raise ValidationError(f"Unrecognized command: '{intent.command}'")

        if intent.action == Action.ADD:
            component_type = self.parser.parse_widget_selector(intent.command).component_type
            if not component_type:
                raise ValidationError(f"Could not determine component type in command '{intent.command}'")
            size = intent.size
            if size is not None and size.mode == "absolute" and size.width and size.height:
                dims = (size.width, size.height)
            else:
                default = schema.globalConstraints.defaultItemSize
                dims = (default.w, default.h)
            props = {"title": intent.target} if intent.target else {}
            _, change = self.add(schema, breakpoint, component_type, dims, intent.position, props)
            return [change]

        changes: List[WidgetChange] = []
        for item in self.find_targets(schema, breakpoint, intent):
            if intent.action == Action.REMOVE:
                changes.append(self.remove(schema, breakpoint, item.i))
            elif intent.action == Action.RESIZE:
                changes.extend(self.resize(schema, breakpoint, item.i, intent.size))
            elif intent.action == Action.MOVE:
                position = intent.position or PositionParams()
                if position.is_empty():
                    raise ValidationError(f"No destination in command '{intent.command}'")
                changes.extend(self.move(schema, breakpoint, item.i, position))
            elif intent.action == Action.UPDATE:
                changes.append(self.update_props(schema, breakpoint, item.i, intent.props))
        return changes
