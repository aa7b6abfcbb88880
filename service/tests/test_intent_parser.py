import pytest

from layout_manager.schemas.tool import Action
from layout_manager.services.intent_parser import IntentParser


@pytest.fixture
def parser():
    return IntentParser()


@pytest.mark.parametrize(
    "command, action",
    [
        ("remove the sales chart", Action.REMOVE),
        ("delete the table", Action.REMOVE),
        ("get rid of the metric", Action.REMOVE),
        ("make the chart larger", Action.RESIZE),
        ("resize the chart to 6x4", Action.RESIZE),
        ("shrink the table", Action.RESIZE),
        ("move the sales chart to the top right", Action.MOVE),
        ("relocate the metric", Action.MOVE),
        ("add a chart showing traffic", Action.ADD),
        ("create a revenue metric", Action.ADD),
        ("change the chart title to 'Revenue'", Action.UPDATE),
        ("configure the table", Action.UPDATE),
        ("what a nice dashboard", Action.UNKNOWN),
        ("", Action.UNKNOWN),
    ],
)
def test_parse_action(parser, command, action):
    assert parser.parse_command(command).action == action


def test_action_priority_remove_wins(parser):
    # remove 优先于 move / resize
    assert parser.parse_action("remove the large chart and move the table") == Action.REMOVE
    assert parser.parse_action("make the chart bigger and move it left") == Action.RESIZE


def test_unknown_command_has_no_target(parser):
    intent = parser.parse_command("hello there")
    assert intent.action == Action.UNKNOWN
    assert intent.target == ""


def test_resize_absolute_dimensions(parser):
    intent = parser.parse_command("resize the chart to 6x4")
    assert intent.size.mode == "absolute"
    assert (intent.size.width, intent.size.height) == (6, 4)


def test_resize_relative_delta(parser):
    larger = parser.parse_command("make the chart larger").size
    smaller = parser.parse_command("make the chart smaller").size
    assert (larger.mode, larger.delta) == ("larger", 1)
    assert (smaller.mode, smaller.delta) == ("smaller", -1)


@pytest.mark.parametrize(
    "text, size",
    [("large", (6, 4)), ("big", (6, 4)), ("small", (2, 2)), ("tiny", (2, 2)), ("medium", (4, 3))],
)
def test_size_adjectives(parser, text, size):
    params = parser.parse_size_params(text)
    assert params.mode == "absolute"
    assert (params.width, params.height) == size


def test_size_hint(parser):
    assert parser.parse_size_hint("4x3") == (4, 3)
    assert parser.parse_size_hint(" Large ") == (6, 4)
    assert parser.parse_size_hint("bigger") is None
    assert parser.parse_size_hint("") is None
    assert parser.parse_size_hint(None) is None


@pytest.mark.parametrize(
    "command, zone",
    [
        ("move the chart to the top right", "top-right"),
        ("move it to top-left", "top-left"),
        ("move the table to the bottom left", "bottom-left"),
        ("put the metric in the bottom right", "bottom-right"),
        ("move the chart to the center", "center"),
        ("move the chart to the middle", "center"),
    ],
)
def test_move_zone(parser, command, zone):
    position = parser.parse_command(command).position
    assert position.zone == zone
    assert position.relative_to is None


def test_move_next_to_defaults_right(parser):
    position = parser.parse_command("move the chart next to the sales table").position
    assert position.relative_to == "sales table"
    assert position.direction == "right"


@pytest.mark.parametrize(
    "command, direction, reference",
    [
        ("move the metric left of the table", "left", "table"),
        ("move the metric to the right of the revenue chart", "right", "revenue chart"),
        ("move the metric above the chart", "above", "chart"),
        ("move the metric below the customer table.", "below", "customer table"),
    ],
)
def test_move_relative(parser, command, direction, reference):
    position = parser.parse_command(command).position
    assert position.direction == direction
    assert position.relative_to == reference


@pytest.mark.parametrize(
    "command, direction",
    [
        ("move the chart to the left", "left"),
        ("move the chart right", "right"),
        ("move the chart up", "top"),
        ("move the chart down", "bottom"),
        ("move the chart to the bottom", "bottom"),
    ],
)
def test_move_direction(parser, command, direction):
    position = parser.parse_command(command).position
    assert position.direction == direction
    assert position.zone is None
    assert position.relative_to is None


def test_over_is_not_a_reference_keyword(parser):
    intent = parser.parse_command("move the sales chart over to the right")
    assert intent.action == Action.MOVE
    assert intent.target == "sales chart"
    assert intent.position.direction == "right"
    assert intent.position.relative_to is None


def test_update_props_keep_raw_case(parser):
    intent = parser.parse_command("change the sales chart title to 'Quarterly Sales'")
    assert intent.props == {"title": "Quarterly Sales"}
    assert intent.target == "sales chart title"


def test_update_data_source(parser):
    intent = parser.parse_command('set the table data source to "/api/orders"')
    assert intent.props == {"dataSource": "/api/orders"}


def test_update_without_quoted_value_has_no_props(parser):
    assert parser.parse_command("update the chart title to something").props == {}


def test_selector_type_and_keyword(parser):
    matcher = parser.parse_widget_selector("the sales chart")
    assert matcher.component_type == "chart"
    assert matcher.title_contains == "sales"


def test_selector_with_data_phrase(parser):
    matcher = parser.parse_widget_selector("table with traffic data")
    assert matcher.component_type == "table"
    assert matcher.title_contains == "traffic"


def test_selector_showing_phrase(parser):
    matcher = parser.parse_widget_selector("chart showing latency over time")
    assert matcher.title_contains == "latency"


@pytest.mark.parametrize(
    "selector, zone",
    [
        ("metric in the top left", "top-left"),
        ("chart in the top right", "top-right"),
        ("table at the bottom left", "bottom-left"),
        ("chart at the bottom right", "bottom-right"),
        ("text on the left side", "left"),
        ("image on the right side", "right"),
    ],
)
def test_selector_zone(parser, selector, zone):
    assert parser.parse_widget_selector(selector).position_zone == zone


def test_selector_size_bands(parser):
    large = parser.parse_widget_selector("the large chart").size_range
    small = parser.parse_widget_selector("tiny metric").size_range
    assert (large.min_width, large.min_height) == (5, 4)
    assert (small.max_width, small.max_height) == (3, 2)


def test_selector_without_hints_is_empty(parser):
    assert parser.parse_widget_selector("the thing over there").is_empty()
    assert parser.parse_widget_selector("").is_empty()


@pytest.mark.parametrize(
    "command, target",
    [
        ("move the sales chart to the top right", "sales chart"),
        ("make the revenue metric larger", "revenue metric"),
        ("remove the customer table", "customer table"),
        ("move the chart next to the table", "chart"),
        ("resize the chart to 6x4", "chart"),
        ("Delete notes-1", "notes-1"),
    ],
)
def test_extract_target(parser, command, target):
    assert parser.extract_target(command) == target
