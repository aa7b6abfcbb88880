# -*- coding: utf-8 -*-
"""
MCP 工具路由：lowlevel Server 的 list_tools / call_tool

参数全部按名称传递；数值类参数按字符串声明，由工具服务负责解析与校验。
"""
import logging
from typing import Any, Dict, List

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from layout_manager.core.config import settings
from layout_manager.core.database import AsyncSessionLocal
from layout_manager.services.component_registry import COMPONENT_TYPES
from layout_manager.services.layout_tools import LayoutToolService

logger = logging.getLogger(__name__)

server = Server(settings.APP_NAME)
tool_service = LayoutToolService()

_TYPES = ", ".join(COMPONENT_TYPES)


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _boolean(description: str) -> Dict[str, Any]:
    return {"type": "boolean", "description": description}


def _breakpoint(action: str) -> Dict[str, Any]:
    return _string(f"Breakpoint to {action} (default: {settings.DEFAULT_BREAKPOINT})")


TOOLS: List[types.Tool] = [
    types.Tool(
        name="find_widgets",
        description=(
            "Find widgets in the active dashboard based on natural language descriptions. "
            "TIP: call get_active_dashboard first to see the current layout state."
        ),
        inputSchema={
            "type": "object",
            "required": ["description"],
            "properties": {
                "description": _string(
                    "Natural language description of the widget to find "
                    "(e.g., 'chart widget', 'sales graph', 'table in top right')"
                ),
                "component_type": _string(f"Optional component type filter ({_TYPES})"),
                "breakpoint": _breakpoint("search in"),
            },
        },
    ),
    types.Tool(
        name="manipulate_widget",
        description=(
            "Move, resize or remove a widget of the active dashboard by its exact ID. "
            "Widgets overlapping the new position are pushed down."
        ),
        inputSchema={
            "type": "object",
            "required": ["widget_id", "operation"],
            "properties": {
                "widget_id": _string("Exact widget ID from get_active_dashboard"),
                "operation": _string("Operation to perform: 'move', 'resize', or 'remove'"),
                "x": _string("New X position (move), e.g. '2'; keeps the current value when omitted"),
                "y": _string("New Y position (move), e.g. '1'; keeps the current value when omitted"),
                "w": _string("New width (resize), e.g. '4'; keeps the current value when omitted"),
                "h": _string("New height (resize), e.g. '3'; keeps the current value when omitted"),
                "breakpoint": _breakpoint("operate on"),
                "apply_to_all_breakpoints": _boolean(
                    "Remove the widget from every breakpoint that contains it (remove only, default: false)"
                ),
            },
        },
    ),
    types.Tool(
        name="add_widget",
        description="Add a new widget to the active dashboard at a free position.",
        inputSchema={
            "type": "object",
            "required": ["widget_description", "component_type"],
            "properties": {
                "widget_description": _string(
                    "Description of the widget to add (e.g., 'chart showing sales data')"
                ),
                "component_type": _string(f"Type of component to create ({_TYPES})"),
                "position_hint": _string(
                    "Optional position hint (e.g., 'top right', 'bottom left', 'next to the sales chart')"
                ),
                "size_hint": _string("Optional size hint (e.g., 'large', 'small', 'medium', '4x3')"),
                "props": _string("Optional JSON object with widget-specific properties"),
                "breakpoint": _breakpoint("add the widget to"),
            },
        },
    ),
    types.Tool(
        name="batch_widget_operations",
        description=(
            "Execute several natural language widget commands against the active dashboard. "
            "With atomic=true any failing command aborts the whole batch."
        ),
        inputSchema={
            "type": "object",
            "required": ["commands_json"],
            "properties": {
                "commands_json": _string(
                    "JSON array of commands executed in order "
                    "(e.g., [\"move the sales chart to the top right\", \"remove the table\"])"
                ),
                "atomic": _boolean("Whether all commands must succeed or nothing is saved (default: true)"),
                "breakpoint": _breakpoint("operate on"),
            },
        },
    ),
    types.Tool(
        name="analyze_layout",
        description="Analyze the active dashboard: widget counts, zones, density, issues and suggestions.",
        inputSchema={
            "type": "object",
            "required": ["question"],
            "properties": {
                "question": _string(
                    "Question about the layout (e.g., 'what widgets are here?', 'how many charts?')"
                ),
                "breakpoint": _breakpoint("analyze"),
            },
        },
    ),
    types.Tool(
        name="configure_widget",
        description="Update properties of the widgets matched by a selector in the active dashboard.",
        inputSchema={
            "type": "object",
            "required": ["widget_selector", "configuration_request"],
            "properties": {
                "widget_selector": _string("Which widget to configure (e.g., 'sales table', 'revenue metric')"),
                "configuration_request": _string(
                    "Requested change (e.g., \"change title to 'Q3 Revenue'\", \"set data source to '/api/sales'\")"
                ),
                "domain_context": _string("Optional domain context (e.g., 'sales analytics')"),
                "current_props": _string("Optional JSON object of the props the caller currently sees"),
                "suggested_props": _string("Optional JSON object of prop changes to apply"),
                "breakpoint": _breakpoint("modify"),
            },
        },
    ),
    types.Tool(
        name="create_dashboard",
        description="Create a new empty dashboard and set it as active.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": _string("Optional display name (e.g., 'Sales Dashboard')"),
                "description": _string("Optional description of the dashboard purpose"),
            },
        },
    ),
    types.Tool(
        name="get_active_dashboard",
        description="Get the active dashboard schema: widgets, positions and properties.",
        inputSchema={
            "type": "object",
            "properties": {
                "breakpoint": _breakpoint("return the layout for"),
                "include_all_breakpoints": _boolean("Include layouts for all breakpoints (default: false)"),
            },
        },
    ),
    types.Tool(
        name="list_dashboards",
        description="List stored dashboards, the active one first.",
        inputSchema={
            "type": "object",
            "properties": {
                "limit": _string("Maximum number of dashboards (default: 50)"),
                "offset": _string("Number of dashboards to skip (default: 0)"),
            },
        },
    ),
]

_TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def build_arguments(tool: types.Tool, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """只保留工具声明的参数；必填参数缺失时传 None，由工具服务返回校验错误"""
    properties = tool.inputSchema.get("properties", {})
    kwargs = {key: value for key, value in arguments.items() if key in properties}
    for key in tool.inputSchema.get("required", []):
        kwargs.setdefault(key, None)
    return kwargs


@server.list_tools()
async def list_tools() -> List[types.Tool]:
    return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
    tool = _TOOLS_BY_NAME.get(name)
    if tool is None:
        raise ValueError(f"Unknown tool: {name}")

    handler = getattr(tool_service, name)
    kwargs = build_arguments(tool, arguments or {})
    async with AsyncSessionLocal() as db:
        response = await handler(db, **kwargs)
    return [types.TextContent(type="text", text=response.to_json())]


# 无状态 streamable HTTP，响应直接返回 JSON
session_manager = StreamableHTTPSessionManager(app=server, json_response=True, stateless=True)


async def handle_streamable_http(scope, receive, send) -> None:
    await session_manager.handle_request(scope, receive, send)
