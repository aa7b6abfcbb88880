"""
组件注册表：预定义组件类型的默认尺寸、尺寸/宽高比约束与 props JSON Schema

进程启动时构建一次，运行期只读；需要的服务通过参数注入。
"""
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import jsonschema
from pydantic import BaseModel, ConfigDict

from layout_manager.core.exceptions import ConstraintError
from layout_manager.schemas.layout_schema import AspectRatio, ItemConstraints, ItemSize


class ComponentDefinition(BaseModel):
    """组件类型定义"""

    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    description: str
    defaultSize: ItemSize
    constraints: ItemConstraints
    propSchema: Dict[str, Any]


def _string(description: str, **extra) -> Dict[str, Any]:
    return {"type": "string", "description": description, **extra}


_DEFINITIONS: List[ComponentDefinition] = [
    ComponentDefinition(
        type="chart",
        name="Chart Widget",
        description="Data visualization charts",
        defaultSize=ItemSize(w=4, h=3),
        constraints=ItemConstraints(minW=2, maxW=12, minH=2, maxH=8, aspectRatio=AspectRatio(min=0.5, max=3.0)),
        propSchema={
            "type": "object",
            "properties": {
                "title": _string("Chart title"),
                "chartType": _string(
                    "Type of chart visualization",
                    enum=["line", "bar", "pie", "area", "scatter"],
                ),
                "dataSource": _string("Data source URL or endpoint"),
                "refreshInterval": {
                    "type": "integer",
                    "minimum": 1000,
                    "description": "Refresh interval in milliseconds",
                },
            },
        },
    ),
    ComponentDefinition(
        type="table",
        name="Data Table",
        description="Tabular data display",
        defaultSize=ItemSize(w=6, h=4),
        constraints=ItemConstraints(minW=4, maxW=12, minH=3, maxH=10),
        propSchema={
            "type": "object",
            "properties": {
                "title": _string("Table title"),
                "dataSource": _string("Data source URL or endpoint"),
                "columns": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Column names to display",
                },
                "filters": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "field": {"type": "string"},
                            "operator": {"type": "string"},
                            "value": {"type": "string"},
                        },
                    },
                    "description": "Table filters",
                },
                "sortable": {"type": "boolean", "description": "Whether columns are sortable"},
            },
        },
    ),
    ComponentDefinition(
        type="metric",
        name="Metric Display",
        description="Single metric or KPI",
        defaultSize=ItemSize(w=2, h=2),
        constraints=ItemConstraints(minW=1, maxW=4, minH=1, maxH=3, aspectRatio=AspectRatio(min=0.8, max=2.0)),
        propSchema={
            "type": "object",
            "properties": {
                "title": _string("Metric title"),
                "value": _string("Current metric value"),
                "unit": _string("Unit of measurement"),
                "dataSource": _string("Data source URL or endpoint"),
                "threshold": {
                    "type": "object",
                    "properties": {
                        "warning": {"type": "number"},
                        "critical": {"type": "number"},
                    },
                    "description": "Alert thresholds",
                },
            },
        },
    ),
    ComponentDefinition(
        type="text",
        name="Text Widget",
        description="Static or dynamic text content",
        defaultSize=ItemSize(w=3, h=2),
        constraints=ItemConstraints(minW=1, maxW=8, minH=1, maxH=6),
        propSchema={
            "type": "object",
            "properties": {
                "content": _string("Text content (supports markdown)"),
                "fontSize": _string("Font size", enum=["small", "medium", "large", "xlarge"]),
                "alignment": _string("Text alignment", enum=["left", "center", "right"]),
                "color": _string("Text color (CSS color value)"),
            },
        },
    ),
    ComponentDefinition(
        type="image",
        name="Image Widget",
        description="Static or dynamic image display",
        defaultSize=ItemSize(w=3, h=3),
        constraints=ItemConstraints(minW=1, maxW=8, minH=1, maxH=6, aspectRatio=AspectRatio(min=0.5, max=2.0)),
        propSchema={
            "type": "object",
            "properties": {
                "src": _string("Image source URL"),
                "alt": _string("Alternative text"),
                "fit": _string(
                    "How image should fit in container",
                    enum=["cover", "contain", "fill", "none", "scale-down"],
                ),
            },
        },
    ),
    ComponentDefinition(
        type="iframe",
        name="Embedded Content",
        description="Iframe for embedding external content",
        defaultSize=ItemSize(w=4, h=4),
        constraints=ItemConstraints(minW=2, maxW=12, minH=2, maxH=8),
        propSchema={
            "type": "object",
            "properties": {
                "src": _string("Iframe source URL"),
                "title": _string("Iframe title"),
                "allowFullscreen": {"type": "boolean", "description": "Allow fullscreen mode"},
                "sandbox": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Sandbox restrictions",
                },
            },
        },
    ),
]

# 组件类型闭集，顺序即选择器解析时的匹配顺序
COMPONENT_TYPES = tuple(d.type for d in _DEFINITIONS)


class ComponentRegistry:
    """只读组件注册表"""

    def __init__(self, definitions: List[ComponentDefinition]):
        self._definitions: Mapping[str, ComponentDefinition] = MappingProxyType(
            {d.type: d for d in definitions}
        )
        self._validators: Mapping[str, jsonschema.Draft202012Validator] = MappingProxyType(
            {d.type: jsonschema.Draft202012Validator(d.propSchema) for d in definitions}
        )

    def get(self, component_type: str) -> Optional[ComponentDefinition]:
        return self._definitions.get(component_type)

    def exists(self, component_type: str) -> bool:
        return component_type in self._definitions

    def types(self) -> List[str]:
        return list(self._definitions)

    def definitions(self) -> List[ComponentDefinition]:
        return list(self._definitions.values())

    def validate_props(self, component_type: str, props: Optional[Dict[str, Any]]) -> None:
        """按组件 propSchema 校验 props，未知类型不校验"""
        validator = self._validators.get(component_type)
        if validator is None:
            return
        errors = sorted(validator.iter_errors(props or {}), key=lambda e: list(e.path))
        if errors:
            details = []
            for err in errors:
                where = ".".join(str(p) for p in err.path) or "props"
                details.append(f"{where}: {err.message}")
            raise ConstraintError(
                f"props do not match the {component_type} schema",
                details=details,
            )


_default_registry = ComponentRegistry(_DEFINITIONS)


def default_registry() -> ComponentRegistry:
    """进程级注册表实例"""
    return _default_registry
