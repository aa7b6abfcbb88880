"""
自然语言意图解析

- parse_command：命令文本 -> Intent（动作 + 动作参数），按固定优先级匹配：
  remove > resize > move > add > update，均不匹配时为 unknown
- parse_widget_selector：组件描述文本 -> WidgetMatcher
- extract_target：去掉动作词、尺寸短语和目的地子句，剩余文本用于定位目标组件

纯函数，无副作用；无法识别时返回 unknown 而不是抛异常，由调用方决定如何处理。
"""
import re
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from layout_manager.schemas.tool import (
    Action,
    Intent,
    PositionParams,
    SizeParams,
    SizeRange,
    WidgetMatcher,
)
from layout_manager.services.component_registry import COMPONENT_TYPES

# 尺寸形容词 -> 绝对尺寸 (w, h)
SIZE_ADJECTIVES: List[Tuple[Pattern, Tuple[int, int]]] = [
    (re.compile(r"\b(large|big|huge)\b", re.I), (6, 4)),
    (re.compile(r"\b(small|tiny|compact)\b", re.I), (2, 2)),
    (re.compile(r"\b(medium|normal|standard)\b", re.I), (4, 3)),
]

# 选择器中的位置短语 -> 区域
SELECTOR_ZONES = {
    "top left": "top-left",
    "top right": "top-right",
    "bottom left": "bottom-left",
    "bottom right": "bottom-right",
    "left side": "left",
    "right side": "right",
}

RELATIVE_DIRECTIONS = {
    "above": "above",
    "below": "below",
    "left of": "left",
    "right of": "right",
}

_DIMENSIONS = re.compile(r"(\d+)\s*x\s*(\d+)", re.I)
_ZONE = re.compile(r"\b(top|bottom)[\s-]+(left|right)\b", re.I)
_CENTER = re.compile(r"\b(center|centre|middle)\b", re.I)
_NEXT_TO = re.compile(r"\bnext to\s+(?:the\s+)?(.+)$", re.I)
_RELATIVE = re.compile(r"\b(above|below|left of|right of)\s+(?:the\s+)?(.+)$", re.I)
_TO_THE_DIRECTION = re.compile(r"\bto\s+the\s+(left|right|top|bottom)\b", re.I)
_BASIC_DIRECTION = re.compile(r"\b(left|right|up|down|top|bottom)\b", re.I)

_TITLE_VALUE = re.compile(r"\btitle\s+to\s+['\"“‘](.+?)['\"”’]", re.I)
_DATA_SOURCE_VALUE = re.compile(r"\bdata\s*source\s+to\s+['\"“‘](.+?)['\"”’]", re.I)

_TITLE_HINTS = [
    re.compile(r"\b(sales|revenue|customer|order|product)\b", re.I),
    re.compile(r"\bwith\s+(.+?)\s+(data|info|information)\b", re.I),
    re.compile(r"\bshowing\s+(.+?)(?:\s|$)", re.I),
]

# extract_target 使用
_ACTION_WORDS = re.compile(
    r"\b(remove|delete|get rid of|take away|resize|expand|shrink|make|move|relocate|put|place|"
    r"add|create|insert|change|update|modify|set|configure)\b",
    re.I,
)
_SIZE_WORDS = re.compile(
    r"\b(larger|bigger|smaller|large|big|huge|small|tiny|compact|medium|normal|standard)\b|\d+\s*x\s*\d+",
    re.I,
)
_DESTINATION = re.compile(r"\b(to|next to|above|over|below|under|beneath|left of|right of)\b", re.I)
_LEADING_ARTICLE = re.compile(r"^(the|a|an|this|that)\s+", re.I)


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip(" \t\n.,!?;:")


class IntentParser:
    """按有序 (pattern, action) 列表解析命令"""

    def __init__(self, component_types: Sequence[str] = COMPONENT_TYPES):
        self.component_types = tuple(component_types)
        self._action_patterns: List[Tuple[Pattern, Action]] = [
            (re.compile(r"\b(remove|delete|get rid of|take away)\b", re.I), Action.REMOVE),
            (re.compile(r"\b(make\s+(larger|bigger|smaller)|resize|expand|shrink)\b", re.I), Action.RESIZE),
            (re.compile(r"\bmake\b.*?\b(larger|bigger|smaller)\b", re.I), Action.RESIZE),
            (re.compile(r"\bresize.*?to\s+(\d+)x(\d+)\b", re.I), Action.RESIZE),
            (re.compile(r"\b(move|relocate|put|place)\b", re.I), Action.MOVE),
            (re.compile(r"\b(to|in|at)\s+(top|bottom)?\s*(left|right|center)\b", re.I), Action.MOVE),
            (re.compile(r"\b(add|create|insert|place)\b", re.I), Action.ADD),
            (re.compile(r"\b(change|update|modify|set|configure)\b", re.I), Action.UPDATE),
        ]

    def parse_command(self, command: str) -> Intent:
        """解析命令为 Intent"""
        raw = (command or "").strip()
        text = raw.lower()

        action = self.parse_action(text)
        intent = Intent(action=action, command=raw)

        if action == Action.RESIZE:
            intent.size = self.parse_size_params(text)
        elif action == Action.MOVE:
            intent.position = self.parse_position_params(text)
        elif action == Action.UPDATE:
            # 保留原始大小写提取属性值
            intent.props = self.parse_props_params(raw)
        elif action == Action.ADD:
            intent.size = self.parse_size_params(text)
            intent.position = self.parse_position_params(text)

        if action != Action.UNKNOWN:
            intent.target = self.extract_target(text)
        return intent

    def parse_action(self, command: str) -> Action:
        """按优先级返回第一个匹配的动作"""
        for pattern, action in self._action_patterns:
            if pattern.search(command):
                return action
        return Action.UNKNOWN

    def parse_size_params(self, command: str) -> SizeParams:
        """提取尺寸参数：WxH 优先，其次 larger/smaller，形容词映射为固定尺寸"""
        params = SizeParams()

        matches = _DIMENSIONS.search(command)
        if matches:
            params.width = int(matches.group(1))
            params.height = int(matches.group(2))
            params.mode = "absolute"
            return params

        lowered = command.lower()
        if "larger" in lowered or "bigger" in lowered:
            params.delta = 1
            params.mode = "larger"
        elif "smaller" in lowered:
            params.delta = -1
            params.mode = "smaller"

        for pattern, (w, h) in SIZE_ADJECTIVES:
            if pattern.search(command):
                params.width, params.height = w, h
                params.delta = None
                params.mode = "absolute"
                break

        return params

    def parse_size_hint(self, hint: Optional[str]) -> Optional[Tuple[int, int]]:
        """add_widget 的 size_hint：仅接受能得到绝对尺寸的写法"""
        if not hint or not hint.strip():
            return None
        params = self.parse_size_params(hint.strip().lower())
        if params.mode == "absolute" and params.width and params.height:
            return params.width, params.height
        return None

    def parse_position_params(self, command: str) -> PositionParams:
        """
        提取位置参数，依次尝试：
        1. 区域（top left / bottom-right / center）
        2. 相对参照组件（next to X、above/below/left of/right of X）
        3. 方向（to the left、left、up、down ...），up/down 归一为 top/bottom
        """
        params = PositionParams()

        matches = _ZONE.search(command)
        if matches:
            params.zone = f"{matches.group(1).lower()}-{matches.group(2).lower()}"
            return params

        if _CENTER.search(command):
            params.zone = "center"
            return params

        matches = _NEXT_TO.search(command)
        if matches:
            params.relative_to = _clean(matches.group(1))
            params.direction = "right"
            return params

        matches = _RELATIVE.search(command)
        if matches:
            params.relative_to = _clean(matches.group(2))
            params.direction = RELATIVE_DIRECTIONS[matches.group(1).lower()]
            return params

        matches = _TO_THE_DIRECTION.search(command) or _BASIC_DIRECTION.search(command)
        if matches:
            direction = matches.group(1).lower()
            if direction == "up":
                direction = "top"
            elif direction == "down":
                direction = "bottom"
            params.direction = direction

        return params

    def parse_props_params(self, command: str) -> Dict[str, Any]:
        """提取属性更新（目前识别 title 与 dataSource，值需加引号）"""
        props: Dict[str, Any] = {}

        matches = _TITLE_VALUE.search(command)
        if matches:
            props["title"] = matches.group(1)

        matches = _DATA_SOURCE_VALUE.search(command)
        if matches:
            props["dataSource"] = matches.group(1)

        return props

    def parse_widget_selector(self, selector: str) -> WidgetMatcher:
        """将组件描述解析为匹配条件"""
        selector = (selector or "").strip().lower()
        matcher = WidgetMatcher()

        for component_type in self.component_types:
            if component_type in selector:
                matcher.component_type = component_type
                break

        for pattern in _TITLE_HINTS:
            matches = pattern.search(selector)
            if matches:
                matcher.title_contains = matches.group(1)
                break

        for hint, zone in SELECTOR_ZONES.items():
            if hint in selector:
                matcher.position_zone = zone
                break

        if "large" in selector or "big" in selector:
            matcher.size_range = SizeRange(min_width=5, min_height=4)
        elif "small" in selector or "tiny" in selector:
            matcher.size_range = SizeRange(max_width=3, max_height=2)

        return matcher

    def extract_target(self, command: str) -> str:
        """
        从命令中提取目标组件描述，例如：
        "move the sales chart to the top right" -> "sales chart"
        "make the revenue metric larger" -> "revenue metric"
        """
        text = _ACTION_WORDS.sub(" ", command.lower())
        text = _SIZE_WORDS.sub(" ", text)
        matches = _DESTINATION.search(text)
        if matches:
            text = text[:matches.start()]
        text = _clean(text)
        return _LEADING_ARTICLE.sub("", text)
