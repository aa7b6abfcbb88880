"""
组件查找：结构化匹配条件（合取）与自由文本两种方式
"""
from typing import Any, Dict, List, Optional

from layout_manager.schemas.layout_schema import LayoutItem, LayoutSchema
from layout_manager.schemas.tool import SizeRange, WidgetInfo, WidgetMatcher

# title 之后依次检查的文本字段
TEXT_FIELDS = ("name", "label", "description", "dataSource")

# 区域判断固定按 12 列参考网格
REFERENCE_COLUMNS = 12
_HALF = REFERENCE_COLUMNS // 2
_TOP_ROWS = 2


def is_in_zone(item: LayoutItem, zone: str) -> bool:
    """判断组件左上角是否落在区域内（left/right 不看 y，top/bottom 不看 x）"""
    x, y = item.x, item.y
    if zone == "top-left":
        return x < _HALF and y < _TOP_ROWS
    if zone == "top-right":
        return x >= _HALF and y < _TOP_ROWS
    if zone == "bottom-left":
        return x < _HALF and y >= _TOP_ROWS
    if zone == "bottom-right":
        return x >= _HALF and y >= _TOP_ROWS
    if zone == "left":
        return x < _HALF
    if zone == "right":
        return x >= _HALF
    if zone == "top":
        return y < _TOP_ROWS
    if zone == "bottom":
        return y >= _TOP_ROWS
    if zone == "center":
        return 3 <= x < 9
    return False


def _text_contains(props: Dict[str, Any], needle: str) -> bool:
    needle = needle.lower()
    for key in ("title",) + TEXT_FIELDS:
        value = props.get(key)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


def _props_contain(props: Dict[str, Any], expected: Dict[str, Any]) -> bool:
    for key, value in expected.items():
        if key not in props or props[key] != value:
            return False
    return True


def _in_size_range(item: LayoutItem, size_range: SizeRange) -> bool:
    if size_range.min_width is not None and item.w < size_range.min_width:
        return False
    if size_range.max_width is not None and item.w > size_range.max_width:
        return False
    if size_range.min_height is not None and item.h < size_range.min_height:
        return False
    if size_range.max_height is not None and item.h > size_range.max_height:
        return False
    return True


class WidgetFinder:
    """按匹配条件筛选组件并生成匹配原因"""

    def match(self, item: LayoutItem, matcher: WidgetMatcher) -> Optional[str]:
        """全部已填写条件都满足时返回匹配原因，否则返回 None"""
        reasons: List[str] = []

        if matcher.component_type:
            if item.componentType != matcher.component_type:
                return None
            reasons.append(f"type is {matcher.component_type}")

        if matcher.title_contains:
            if not _text_contains(item.props, matcher.title_contains):
                return None
            reasons.append(f"contains '{matcher.title_contains}' in title or properties")

        if matcher.props_contain:
            if not _props_contain(item.props, matcher.props_contain):
                return None
            reasons.append("has matching properties")

        if matcher.position_zone:
            if not is_in_zone(item, matcher.position_zone):
                return None
            reasons.append(f"located in {matcher.position_zone} area")

        if matcher.size_range is not None:
            if not _in_size_range(item, matcher.size_range):
                return None
            reasons.append("matches size criteria")

        if matcher.widget_id:
            if item.i != matcher.widget_id:
                return None
            reasons.append("exact ID match")

        if not reasons:
            return "matches all criteria"
        return "Found " + " and ".join(reasons)

    def find(self, widgets: List[LayoutItem], matcher: WidgetMatcher) -> List[LayoutItem]:
        return [item for item in widgets if self.match(item, matcher) is not None]

    def find_widgets(self, schema: LayoutSchema, matcher: WidgetMatcher, breakpoint: str) -> List[WidgetInfo]:
        """在断点下查找组件，断点不存在时抛出 NotFoundError"""
        result = []
        for item in schema.widgets(breakpoint):
            reason = self.match(item, matcher)
            if reason is not None:
                result.append(WidgetInfo.from_item(item, breakpoint, reason))
        return result

    def match_description(self, item: LayoutItem, description: str) -> bool:
        """
        自由文本匹配：
        - 组件类型是描述的子串
        - 或 key 含 title/name/label 的字符串属性与描述互相包含
        """
        description = description.lower()
        if item.componentType.lower() in description:
            return True
        for key, value in item.props.items():
            lowered_key = key.lower()
            if not any(word in lowered_key for word in ("title", "name", "label")):
                continue
            if isinstance(value, str) and value:
                lowered = value.lower()
                if lowered in description or description in lowered:
                    return True
        return False

    def find_by_description(self, schema: LayoutSchema, description: str, breakpoint: str) -> List[WidgetInfo]:
        result = []
        for item in schema.widgets(breakpoint):
            if self.match_description(item, description):
                result.append(WidgetInfo.from_item(item, breakpoint, "matches description"))
        return result
