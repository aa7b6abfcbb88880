import pytest

from conftest import make_item, make_schema, sample_items
from layout_manager.core.exceptions import ConstraintError, NotFoundError, ValidationError
from layout_manager.schemas.tool import PositionParams, SizeParams
from layout_manager.services.widget_manipulator import WidgetManipulator, new_widget_id


@pytest.fixture
def manipulator():
    return WidgetManipulator()


@pytest.fixture
def schema():
    return make_schema(sample_items())


def position(schema, widget_id, breakpoint="lg"):
    item = schema.find_item(breakpoint, widget_id)
    return item.x, item.y, item.w, item.h


def test_step_left_at_edge_keeps_position(manipulator, schema):
    changes = manipulator.move(schema, "lg", "sales-chart", PositionParams(direction="left"))
    assert position(schema, "sales-chart") == (0, 0, 4, 3)
    assert changes[0].reason == "user requested movement"
    assert changes[0].previousState == changes[0].newState


def test_move_to_zone_resolves_collisions(manipulator, schema):
    changes = manipulator.move(schema, "lg", "notes", PositionParams(zone="top-right"))
    # notes 3x2 -> (9,0)，压住 customer-table
    assert position(schema, "notes") == (9, 0, 3, 2)
    assert position(schema, "customer-table") == (6, 2, 6, 4)
    assert [c.action for c in changes] == ["moved", "repositioned"]
    assert changes[0].reason == "moved to top-right zone"
    assert changes[1].wasTargeted is False


def test_move_relative_to_reference_by_description(manipulator, schema):
    changes = manipulator.move(
        schema, "lg", "revenue-metric", PositionParams(relative_to="team notes text", direction="right"),
    )
    # notes (0,3,3,2) 右侧
    assert position(schema, "revenue-metric") == (3, 3, 2, 2)
    assert changes[0].reason == "positioned right of team notes text"


def test_move_relative_to_reference_by_id(manipulator, schema):
    manipulator.move(schema, "lg", "revenue-metric", PositionParams(relative_to="sales-chart", direction="below"))
    assert position(schema, "revenue-metric") == (0, 3, 2, 2)
    # 与 notes 重叠，notes 被推到 y=5
    assert position(schema, "notes") == (0, 5, 3, 2)


def test_unresolved_reference_leaves_widget_unmoved(manipulator, schema):
    with pytest.raises(NotFoundError):
        manipulator.move(schema, "lg", "notes", PositionParams(relative_to="the image", direction="left"))
    assert position(schema, "notes") == (0, 3, 3, 2)


def test_reference_excludes_moving_widget(manipulator, schema):
    with pytest.raises(NotFoundError):
        manipulator.move(schema, "lg", "sales-chart", PositionParams(relative_to="sales chart"))


def test_resize_relative_delta(manipulator, schema):
    manipulator.resize(schema, "lg", "revenue-metric", SizeParams(delta=-1, mode="smaller"))
    assert position(schema, "revenue-metric") == (4, 0, 1, 1)
    manipulator.resize(schema, "lg", "revenue-metric", SizeParams(delta=-1, mode="smaller"))
    assert position(schema, "revenue-metric") == (4, 0, 1, 1)


def test_resize_absolute_pushes_overlaps(manipulator, schema):
    changes = manipulator.resize(schema, "lg", "sales-chart", SizeParams(width=6, height=4, mode="absolute"))
    assert position(schema, "sales-chart") == (0, 0, 6, 4)
    assert position(schema, "revenue-metric") == (4, 4, 2, 2)
    assert position(schema, "notes") == (0, 4, 3, 2)
    assert changes[0].reason == "resized to 6x4"


def test_resize_without_size_is_rejected(manipulator, schema):
    with pytest.raises(ValidationError):
        manipulator.resize(schema, "lg", "sales-chart", SizeParams())


def test_remove_builds_new_list(manipulator, schema):
    before = schema.layouts["lg"]
    change = manipulator.remove(schema, "lg", "notes")
    assert change.action == "removed"
    assert change.previousState == {"x": 0, "y": 3, "w": 3, "h": 2}
    assert [w.i for w in schema.layouts["lg"]] == ["sales-chart", "revenue-metric", "customer-table"]
    assert len(before) == 4
    with pytest.raises(NotFoundError):
        manipulator.remove(schema, "lg", "notes")


def test_update_props_merges(manipulator, schema):
    change = manipulator.update_props(schema, "lg", "sales-chart", {"title": "Q3 Sales"})
    item = schema.find_item("lg", "sales-chart")
    assert item.props == {"title": "Q3 Sales", "chartType": "line"}
    assert change.previousState == {"props": {"title": "Sales Overview", "chartType": "line"}}
    with pytest.raises(ValidationError):
        manipulator.update_props(schema, "lg", "sales-chart", {})


def test_add_first_fit_and_defaults(manipulator, schema):
    item, change = manipulator.add(schema, "lg", "chart", (4, 3), props={"title": "Traffic"})
    assert (item.x, item.y) == (3, 4)
    assert item.isDraggable is True and item.isResizable is True
    assert item.i.startswith("widget-")
    assert change.action == "added"
    assert schema.layouts["lg"][-1].i == item.i


def test_add_respects_max_items(manipulator):
    schema = make_schema([make_item(f"w{n}", n, 0, 1, 1) for n in range(3)])
    schema.globalConstraints.maxItems = 3
    with pytest.raises(ConstraintError):
        manipulator.add(schema, "lg", "metric", (2, 2))


def test_add_relative_to_reference(manipulator, schema):
    item, _ = manipulator.add(
        schema, "lg", "metric", (2, 2), PositionParams(relative_to="customer-table", direction="below"),
    )
    assert (item.x, item.y) == (6, 4)


def test_new_widget_id_is_unique():
    widgets = [make_item("widget-1", 0, 0, 1, 1)]
    first = new_widget_id(widgets)
    assert first != "widget-1"
    assert first.startswith("widget-")


def test_find_targets_errors(manipulator, schema):
    from layout_manager.services.intent_parser import IntentParser

    parser = IntentParser()
    with pytest.raises(NotFoundError):
        manipulator.find_targets(schema, "lg", parser.parse_command("remove the image"))
    with pytest.raises(ValidationError):
        manipulator.find_targets(schema, "lg", parser.parse_command("remove the thing"))


def test_execute_natural_language_commands(manipulator, schema):
    from layout_manager.services.intent_parser import IntentParser

    parser = IntentParser()
    changes = manipulator.execute(schema, "lg", parser.parse_command("move the sales chart to the bottom left"))
    assert position(schema, "sales-chart") == (0, 10, 4, 3)
    assert changes[0].reason == "moved to bottom-left zone"

    changes = manipulator.execute(schema, "lg", parser.parse_command("add a chart showing traffic"))
    assert changes[0].action == "added"
    added = schema.find_item("lg", changes[0].widgetId)
    assert added.props == {"title": "chart showing traffic"}

    with pytest.raises(ValidationError):
        manipulator.execute(schema, "lg", parser.parse_command("dance wildly"))


def test_execute_move_over_to_the_right_steps_one_column(manipulator, schema):
    from layout_manager.services.intent_parser import IntentParser

    changes = manipulator.execute(schema, "lg", IntentParser().parse_command("move the sales chart over to the right"))
    assert position(schema, "sales-chart") == (1, 0, 4, 3)
    assert changes[0].widgetId == "sales-chart"
