"""
布局工具服务：每个 MCP 工具对应一个方法

流程：读取活动布局 -> 解析/匹配 -> 计算位置与碰撞 -> 校验整个 schema -> 整体写回 -> 返回响应信封。
所有 LayoutError 在这里转换为失败响应，不会抛给调用方。
"""
import functools
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from layout_manager.core.config import settings
from layout_manager.core.exceptions import LayoutError, ConstraintError, NotFoundError, ValidationError
from layout_manager.models.layout import Layout
from layout_manager.schemas.layout_schema import LayoutItem, LayoutSchema, default_empty_schema
from layout_manager.schemas.tool import (
    ChangeSummary,
    LayoutInfo,
    ToolResponse,
    WidgetChange,
    WidgetInfo,
)
from layout_manager.services.collision_resolver import CollisionResolver
from layout_manager.services.component_registry import ComponentRegistry, default_registry
from layout_manager.services.intent_parser import IntentParser
from layout_manager.services.layout_analyzer import analysis_message, analyze
from layout_manager.services.layout_service import LayoutService
from layout_manager.services.position_solver import PositionSolver
from layout_manager.services.widget_finder import WidgetFinder
from layout_manager.services.widget_manipulator import WidgetManipulator
from layout_manager.utils.json_utils import loads as json_loads

logger = logging.getLogger(__name__)

OPERATIONS = ("move", "resize", "remove")
_PAST_TENSE = {"move": "moved", "resize": "resized", "remove": "removed"}

DEFAULT_LIST_LIMIT = 50


def tool_operation(name: str):
    """工具边界：记录调用日志，把异常转换为失败响应"""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, db: AsyncSession, *args, **kwargs) -> ToolResponse:
            logger.info("[MCP] %s called", name)
            try:
                response = await func(self, db, *args, **kwargs)
            except LayoutError as e:
                logger.warning("[MCP] %s failed (%s): %s", name, e.kind, e.message)
                return ToolResponse.failure(name, e.message, e.details)
            except Exception:
                logger.exception("[MCP] %s unexpected error", name)
                return ToolResponse.failure(name, f"Internal error while executing {name}")
            logger.info("[MCP] %s result: %s", name, response.message)
            return response

        return wrapper

    return decorator


def _require(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} parameter is required")
    return str(value).strip()


def _parse_int(name: str, value: Union[str, int, None]) -> Optional[int]:
    """可选整数参数：缺省返回 None，非整数文本抛出 ValidationError"""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name} value '{value}': must be an integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"Invalid {name} value '{value}': must be an integer")


def _coerce_int(value: Union[str, int, None], default: int, minimum: int) -> int:
    """分页参数：无法解析或小于下限时使用默认值"""
    try:
        number = int(str(value).strip()) if value is not None else default
    except ValueError:
        return default
    return number if number >= minimum else default


def _as_bool(value: Union[str, bool, None], default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "y")


def _parse_json_object(name: str, value: Union[str, Dict[str, Any], None]) -> Optional[Dict[str, Any]]:
    """可选 JSON 对象参数（文本或已解析的 dict）"""
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = json_loads(text)
    except ValueError as e:
        raise ValidationError(f"Invalid {name} JSON: {e}")
    if not isinstance(parsed, dict):
        raise ValidationError(f"Invalid {name} JSON: expected an object")
    return parsed


def _load_schema(document: Dict[str, Any]) -> LayoutSchema:
    try:
        return LayoutSchema.from_document(document)
    except PydanticValidationError as e:
        raise ConstraintError(
            "stored layout schema is malformed",
            details=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )


def _targeted_ids(changes: List[WidgetChange]) -> List[str]:
    ids: List[str] = []
    for change in changes:
        if change.wasTargeted and change.widgetId not in ids:
            ids.append(change.widgetId)
    return ids


class LayoutToolService:
    """布局工具服务类"""

    def __init__(
        self,
        registry: Optional[ComponentRegistry] = None,
        enforce_constraints: Optional[bool] = None,
        default_breakpoint: Optional[str] = None,
    ):
        self.registry = registry or default_registry()
        self.enforce_constraints = (
            settings.ENFORCE_COMPONENT_CONSTRAINTS if enforce_constraints is None else enforce_constraints
        )
        self.default_breakpoint = default_breakpoint or settings.DEFAULT_BREAKPOINT

        self.parser = IntentParser(self.registry.types())
        self.finder = WidgetFinder()
        self.solver = PositionSolver()
        self.resolver = CollisionResolver()
        self.manipulator = WidgetManipulator(self.parser, self.finder, self.solver, self.resolver)

    def _breakpoint(self, breakpoint: Optional[str]) -> str:
        return (breakpoint or "").strip() or self.default_breakpoint

    def validate_schema(self, schema: LayoutSchema) -> None:
        """写入前校验整个 schema"""
        if self.enforce_constraints:
            schema.check_with_registry(self.registry)
        else:
            schema.check_structure()

    async def _save(self, db: AsyncSession, layout: Layout, schema: LayoutSchema) -> None:
        self.validate_schema(schema)
        await LayoutService.update_schema(db, layout, schema)

    # ---------- 查询 ----------

    @tool_operation("find_widgets")
    async def find_widgets(self, db: AsyncSession, description: str, component_type: Optional[str] = None,
                           breakpoint: Optional[str] = None) -> ToolResponse:
        description = _require("description", description)
        breakpoint = self._breakpoint(breakpoint)

        snapshot = await LayoutService.get_active_snapshot(db)
        schema = _load_schema(snapshot.layout_schema)

        matcher = self.parser.parse_widget_selector(description)
        if component_type and component_type.strip():
            matcher.component_type = component_type.strip().lower()

        if matcher.is_empty():
            widgets = self.finder.find_by_description(schema, description, breakpoint)
        else:
            widgets = self.finder.find_widgets(schema, matcher, breakpoint)

        return ToolResponse(
            success=True,
            operation="find_widgets",
            activeLayoutId=snapshot.layout_id,
            widgets=widgets,
            targetedWidgets=[w.id for w in widgets],
            searchQuery=description,
            totalFound=len(widgets),
            affectedBreakpoints=[breakpoint],
            message=f"Found {len(widgets)} widget(s) matching '{description}' in active dashboard '{snapshot.name}'",
        )

    @tool_operation("analyze_layout")
    async def analyze_layout(self, db: AsyncSession, question: str,
                             breakpoint: Optional[str] = None) -> ToolResponse:
        question = _require("question", question)
        breakpoint = self._breakpoint(breakpoint)

        snapshot = await LayoutService.get_active_snapshot(db)
        schema = _load_schema(snapshot.layout_schema)
        analysis = analyze(schema, breakpoint)

        return ToolResponse(
            success=True,
            operation="analyze_layout",
            activeLayoutId=snapshot.layout_id,
            analysis=analysis.model_dump(mode="json"),
            affectedBreakpoints=[breakpoint],
            message=analysis_message(analysis, question),
        )

    @tool_operation("get_active_dashboard")
    async def get_active_dashboard(self, db: AsyncSession, breakpoint: Optional[str] = None,
                                   include_all_breakpoints: Union[bool, str, None] = False) -> ToolResponse:
        breakpoint = self._breakpoint(breakpoint)
        include_all = _as_bool(include_all_breakpoints, False)

        snapshot = await LayoutService.get_active_snapshot(db)
        schema = _load_schema(snapshot.layout_schema)
        document = schema.to_document()

        data: Dict[str, Any] = {
            "layoutId": snapshot.layout_id,
            "name": snapshot.name,
            "description": snapshot.description,
        }
        if include_all:
            data.update(
                breakpoints=document["breakpoints"],
                cols=document["cols"],
                layouts=document["layouts"],
                globalConstraints=document["globalConstraints"],
            )
        else:
            # 断点不存在时返回空列表
            data.update(
                breakpoint=breakpoint,
                cols=schema.cols_for(breakpoint),
                widgets=document["layouts"].get(breakpoint, []),
                globalConstraints=document["globalConstraints"],
            )

        return ToolResponse(
            success=True,
            operation="get_active_dashboard",
            activeLayoutId=snapshot.layout_id,
            analysis=data,
            message=f"Retrieved active dashboard '{snapshot.name}' for breakpoint '{breakpoint}'",
        )

    @tool_operation("list_dashboards")
    async def list_dashboards(self, db: AsyncSession, limit: Union[int, str, None] = DEFAULT_LIST_LIMIT,
                              offset: Union[int, str, None] = 0) -> ToolResponse:
        limit = _coerce_int(limit, DEFAULT_LIST_LIMIT, 1)
        offset = _coerce_int(offset, 0, 0)

        layouts = await LayoutService.list_layouts(db, limit=limit, offset=offset)
        infos = [LayoutInfo.from_model(layout) for layout in layouts]
        active = next((info.layoutId for info in infos if info.isActive), None)

        return ToolResponse(
            success=True,
            operation="list_dashboards",
            activeLayoutId=active,
            layouts=infos,
            message=f"Returned {len(infos)} dashboard(s)",
        )

    # ---------- 变更 ----------

    @tool_operation("manipulate_widget")
    async def manipulate_widget(
        self,
        db: AsyncSession,
        widget_id: str,
        operation: str,
        x: Union[str, int, None] = None,
        y: Union[str, int, None] = None,
        w: Union[str, int, None] = None,
        h: Union[str, int, None] = None,
        breakpoint: Optional[str] = None,
        apply_to_all_breakpoints: Union[bool, str, None] = False,
    ) -> ToolResponse:
        widget_id = _require("widget_id", widget_id)
        operation = _require("operation", operation).lower()
        if operation not in OPERATIONS:
            raise ValidationError(f"Unsupported operation '{operation}'. Use 'move', 'resize', or 'remove'")
        breakpoint = self._breakpoint(breakpoint)
        apply_to_all = _as_bool(apply_to_all_breakpoints, False)

        # 先解析数值参数，格式错误时不读取也不修改布局
        new_x, new_y = _parse_int("x", x), _parse_int("y", y)
        new_w, new_h = _parse_int("w", w), _parse_int("h", h)

        layout = await LayoutService.get_active(db)
        schema = _load_schema(layout.layout_schema)

        changes: List[WidgetChange] = []
        if operation == "remove":
            if apply_to_all:
                for bp, items in schema.layouts.items():
                    if any(item.i == widget_id for item in items):
                        changes.append(self.manipulator.remove(schema, bp, widget_id))
                if not changes:
                    raise NotFoundError(f"Widget {widget_id} not found in any breakpoint")
            else:
                changes.append(self.manipulator.remove(schema, breakpoint, widget_id))
        else:
            item = schema.find_item(breakpoint, widget_id)
            if item is None:
                raise NotFoundError(f"Widget {widget_id} not found in breakpoint {breakpoint}")
            if operation == "move":
                changes = self.manipulator.move_to(
                    schema, breakpoint, widget_id,
                    item.x if new_x is None else new_x,
                    item.y if new_y is None else new_y,
                    reason="moved to requested position",
                )
            else:
                target_w = item.w if new_w is None else new_w
                target_h = item.h if new_h is None else new_h
                changes = self.manipulator.resize_to(schema, breakpoint, widget_id, target_w, target_h)

        await self._save(db, layout, schema)

        affected = sorted({change.breakpoint for change in changes})
        message = f"Successfully {_PAST_TENSE[operation]} widget {widget_id}"
        if operation == "remove" and apply_to_all:
            message += f" from {len(affected)} breakpoint(s)"
        else:
            message += f" in breakpoint {breakpoint}"
            if apply_to_all:
                message += "; other breakpoints are not scaled, change applied to this breakpoint only"

        widgets = None
        if operation != "remove":
            widgets = [WidgetInfo.from_item(schema.find_item(breakpoint, widget_id), breakpoint)]

        return ToolResponse(
            success=True,
            operation="manipulate_widget",
            activeLayoutId=layout.layout_id,
            targetedWidgets=[widget_id],
            widgets=widgets,
            allChanges=changes,
            summary=ChangeSummary.from_changes(changes),
            affectedBreakpoints=affected,
            message=message,
        )

    @tool_operation("add_widget")
    async def add_widget(
        self,
        db: AsyncSession,
        widget_description: str,
        component_type: str,
        position_hint: Optional[str] = None,
        size_hint: Optional[str] = None,
        props: Union[str, Dict[str, Any], None] = None,
        breakpoint: Optional[str] = None,
    ) -> ToolResponse:
        description = _require("widget_description", widget_description)
        component_type = _require("component_type", component_type).lower()
        if not self.registry.exists(component_type):
            raise ValidationError(
                f"Unknown component type '{component_type}'",
                details=[f"valid types: {', '.join(self.registry.types())}"],
            )
        breakpoint = self._breakpoint(breakpoint)
        extra_props = _parse_json_object("props", props) or {}

        size = None
        if size_hint and size_hint.strip():
            size = self.parser.parse_size_hint(size_hint)
            if size is None:
                raise ValidationError(f"Unrecognized size_hint '{size_hint}'. Use WxH or large/medium/small")

        position = None
        if position_hint and position_hint.strip():
            position = self.parser.parse_position_params(position_hint.strip().lower())

        layout = await LayoutService.get_active(db)
        schema = _load_schema(layout.layout_schema)
        schema.widgets(breakpoint)

        if size is None:
            default = schema.globalConstraints.defaultItemSize
            size = (default.w, default.h)

        item, change = self.manipulator.add(
            schema, breakpoint, component_type, size, position,
            props={"title": description, **extra_props},
        )
        await self._save(db, layout, schema)

        return ToolResponse(
            success=True,
            operation="add_widget",
            activeLayoutId=layout.layout_id,
            targetedWidgets=[item.i],
            widgets=[WidgetInfo.from_item(item, breakpoint, "newly added")],
            allChanges=[change],
            summary=ChangeSummary.from_changes([change]),
            affectedBreakpoints=[breakpoint],
            message=(
                f"Added {component_type} widget '{description}' at ({item.x}, {item.y}) "
                f"with size {item.w}x{item.h} in breakpoint {breakpoint}"
            ),
        )

    @tool_operation("batch_widget_operations")
    async def batch_widget_operations(self, db: AsyncSession, commands_json: Union[str, List[str]],
                                      atomic: Union[bool, str, None] = True,
                                      breakpoint: Optional[str] = None) -> ToolResponse:
        commands = self._parse_commands(commands_json)
        atomic = _as_bool(atomic, True)
        breakpoint = self._breakpoint(breakpoint)

        layout = await LayoutService.get_active(db)
        working = _load_schema(layout.layout_schema)
        working.widgets(breakpoint)

        changes: List[WidgetChange] = []
        errors: List[str] = []
        first_error: Optional[LayoutError] = None
        failed_at = 0
        executed = 0
        for number, command in enumerate(commands, start=1):
            # 每条命令在副本上执行，失败时不留下部分修改
            candidate = working.model_copy(deep=True)
            try:
                intent = self.parser.parse_command(command)
                command_changes = self.manipulator.execute(candidate, breakpoint, intent)
                self.validate_schema(candidate)
            except LayoutError as e:
                errors.append(f"command {number} '{command}': {e.message}")
                logger.info("批量命令 %s 失败: %s", number, e.message)
                if first_error is None:
                    first_error, failed_at = e, number
                if atomic:
                    break
                continue
            working = candidate
            changes.extend(command_changes)
            executed += 1

        if atomic and first_error is not None:
            raise type(first_error)(
                f"Batch aborted at command {failed_at}; no changes were saved",
                details=errors,
            )
        if executed == 0:
            raise type(first_error)("No command in the batch could be executed", details=errors)

        await self._save(db, layout, working)

        message = f"Executed {executed} of {len(commands)} command(s) in breakpoint {breakpoint}"
        if errors:
            message += f"; skipped {len(errors)} failed command(s)"

        return ToolResponse(
            success=True,
            operation="batch_widget_operations",
            activeLayoutId=layout.layout_id,
            targetedWidgets=_targeted_ids(changes),
            allChanges=changes,
            summary=ChangeSummary.from_changes(changes),
            affectedBreakpoints=[breakpoint],
            details=errors or None,
            message=message,
        )

    @staticmethod
    def _parse_commands(commands_json: Union[str, List[str]]) -> List[str]:
        if isinstance(commands_json, list):
            commands = commands_json
        else:
            text = _require("commands_json", commands_json)
            try:
                commands = json_loads(text)
            except ValueError as e:
                raise ValidationError(f"Invalid commands_json: {e}")
        if not isinstance(commands, list) or not all(isinstance(c, str) for c in commands):
            raise ValidationError("commands_json must be a JSON array of strings")
        commands = [c.strip() for c in commands if c.strip()]
        if not commands:
            raise ValidationError("commands_json contains no commands")
        return commands

    @tool_operation("configure_widget")
    async def configure_widget(
        self,
        db: AsyncSession,
        widget_selector: str,
        configuration_request: str,
        domain_context: Optional[str] = None,
        current_props: Union[str, Dict[str, Any], None] = None,
        suggested_props: Union[str, Dict[str, Any], None] = None,
        breakpoint: Optional[str] = None,
    ) -> ToolResponse:
        selector = _require("widget_selector", widget_selector)
        request = _require("configuration_request", configuration_request)
        breakpoint = self._breakpoint(breakpoint)
        current = _parse_json_object("current_props", current_props)
        suggested = _parse_json_object("suggested_props", suggested_props)

        layout = await LayoutService.get_active(db)
        schema = _load_schema(layout.layout_schema)
        targets = self._select(schema, selector, breakpoint)
        if not targets:
            raise NotFoundError(f"No widget matches '{selector}' in breakpoint {breakpoint}")

        prop_changes = {**self.parser.parse_props_params(request), **(suggested or {})}
        if not prop_changes:
            raise ValidationError(
                "No property changes could be derived from the configuration request",
                details=["use phrasing like \"title to 'Sales'\" or pass suggested_props"],
            )

        details: List[str] = []
        changes: List[WidgetChange] = []
        for item in targets:
            if current is not None:
                stale = sorted(k for k, v in current.items() if item.props.get(k) != v)
                if stale:
                    details.append(f"current_props differ from stored props of {item.i}: {', '.join(stale)}")
            changes.append(self.manipulator.update_props(
                schema, breakpoint, item.i, prop_changes, reason=f"configured: {request}",
            ))

        await self._save(db, layout, schema)

        message = f"Configured {len(changes)} widget(s) matching '{selector}' in active dashboard '{layout.name}'"
        if domain_context and domain_context.strip():
            message += f" (context: {domain_context.strip()})"

        return ToolResponse(
            success=True,
            operation="configure_widget",
            activeLayoutId=layout.layout_id,
            targetedWidgets=_targeted_ids(changes),
            widgets=[WidgetInfo.from_item(schema.find_item(breakpoint, c.widgetId), breakpoint) for c in changes],
            allChanges=changes,
            summary=ChangeSummary.from_changes(changes),
            affectedBreakpoints=[breakpoint],
            details=details or None,
            message=message,
        )

    def _select(self, schema: LayoutSchema, selector: str, breakpoint: str) -> List[LayoutItem]:
        """ID 精确匹配 > 选择器解析 > 自由文本匹配"""
        widgets = schema.widgets(breakpoint)
        exact = [item for item in widgets if item.i == selector]
        if exact:
            return exact
        matcher = self.parser.parse_widget_selector(selector)
        if not matcher.is_empty():
            return self.finder.find(widgets, matcher)
        return [item for item in widgets if self.finder.match_description(item, selector)]

    # ---------- 布局 ----------

    @tool_operation("create_dashboard")
    async def create_dashboard(self, db: AsyncSession, name: Optional[str] = None,
                               description: Optional[str] = None) -> ToolResponse:
        name = (name or "").strip() or f"Dashboard {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        description = (description or "").strip()

        layout_id = LayoutService.generate_layout_id(name)
        # 同名同秒创建时追加序号
        base_id, suffix = layout_id, 2
        while await LayoutService.find_layout(db, layout_id) is not None:
            layout_id = f"{base_id}-{suffix}"
            suffix += 1

        layout = Layout(
            layout_id=layout_id,
            name=name,
            description=description,
            layout_schema=default_empty_schema().to_document(),
        )
        layout = await LayoutService.create_with_activation(db, layout)

        return ToolResponse(
            success=True,
            operation="create_dashboard",
            activeLayoutId=layout.layout_id,
            layout=LayoutInfo.from_model(layout),
            widgets=[],
            totalFound=0,
            message=f"Created and activated empty dashboard '{name}'",
        )
