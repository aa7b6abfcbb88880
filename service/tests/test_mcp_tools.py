import pytest

from layout_manager.routers import mcp_tools
from layout_manager.utils.json_utils import loads as json_loads


def test_tool_catalogue():
    assert [tool.name for tool in mcp_tools.TOOLS] == [
        "find_widgets",
        "manipulate_widget",
        "add_widget",
        "batch_widget_operations",
        "analyze_layout",
        "configure_widget",
        "create_dashboard",
        "get_active_dashboard",
        "list_dashboards",
    ]
    for tool in mcp_tools.TOOLS:
        assert tool.inputSchema["type"] == "object"
        assert hasattr(mcp_tools.tool_service, tool.name)


def test_numeric_arguments_are_declared_as_strings():
    properties = mcp_tools._TOOLS_BY_NAME["manipulate_widget"].inputSchema["properties"]
    assert all(properties[name]["type"] == "string" for name in ("x", "y", "w", "h"))
    assert properties["apply_to_all_breakpoints"]["type"] == "boolean"


def test_build_arguments_filters_and_fills_required():
    tool = mcp_tools._TOOLS_BY_NAME["manipulate_widget"]
    kwargs = mcp_tools.build_arguments(tool, {"widget_id": "a", "x": "1", "unexpected": True})
    assert kwargs == {"widget_id": "a", "x": "1", "operation": None}


async def test_list_tools_handler():
    tools = await mcp_tools.list_tools()
    assert len(tools) == 9


@pytest.fixture
def mcp_session(monkeypatch, session_factory):
    monkeypatch.setattr(mcp_tools, "AsyncSessionLocal", session_factory)


async def call(name, arguments):
    content = await mcp_tools.call_tool(name, arguments)
    assert len(content) == 1
    assert content[0].type == "text"
    return json_loads(content[0].text)


async def test_call_tool_find_widgets(mcp_session, active_layout):
    payload = await call("find_widgets", {"description": "table", "ignored": "value"})
    assert payload["success"] is True
    assert payload["operation"] == "find_widgets"
    assert payload["targetedWidgets"] == ["customer-table"]
    assert payload["widgets"][0]["position"] == {"x": 6, "y": 0, "w": 6, "h": 4}
    # 未设置的字段不出现在响应中
    assert "error" not in payload
    assert "timestamp" in payload


async def test_call_tool_manipulate_round_trip(mcp_session, active_layout):
    payload = await call("manipulate_widget", {"widget_id": "notes", "operation": "move", "x": "6", "y": "4"})
    assert payload["success"] is True
    assert payload["summary"]["totalAffected"] == 1

    dashboard = await call("get_active_dashboard", {})
    notes = next(w for w in dashboard["analysis"]["widgets"] if w["i"] == "notes")
    assert (notes["x"], notes["y"]) == (6, 4)


async def test_call_tool_missing_required_argument(mcp_session, active_layout):
    payload = await call("find_widgets", {})
    assert payload["success"] is False
    assert payload["error"] == "description parameter is required"


async def test_call_tool_without_arguments(mcp_session):
    payload = await call("create_dashboard", None)
    assert payload["success"] is True
    assert payload["widgets"] == []


async def test_call_unknown_tool(mcp_session):
    with pytest.raises(ValueError, match="Unknown tool: rotate_widget"):
        await mcp_tools.call_tool("rotate_widget", {})
