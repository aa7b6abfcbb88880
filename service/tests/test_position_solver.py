import pytest

from conftest import make_item
from layout_manager.schemas.tool import PositionParams
from layout_manager.services.position_solver import (
    PositionSolver,
    bottom_row,
    fits,
    zone_position,
)


@pytest.fixture
def solver():
    return PositionSolver()


def test_empty_breakpoint_places_at_origin(solver):
    assert solver.solve_position([], 12, 4, 3) == (0, 0)


def test_first_fit_uses_exact_remaining_span(solver):
    widgets = [make_item("a", 0, 0, 8, 1)]
    assert solver.solve_position(widgets, 12, 4, 2) == (8, 0)


def test_first_fit_rolls_to_next_row(solver):
    widgets = [make_item("a", 0, 0, 10, 1)]
    assert solver.solve_position(widgets, 12, 4, 1) == (0, 1)


@pytest.mark.parametrize(
    "zone, expected",
    [
        ("top-left", (0, 0)),
        ("top-right", (8, 0)),
        ("bottom-left", (0, 10)),
        ("bottom-right", (8, 10)),
        ("center", (4, 2)),
        ("nowhere", None),
    ],
)
def test_zone_coordinates(zone, expected):
    assert zone_position(zone, 12, 4) == expected


@pytest.mark.parametrize(
    "widgets",
    [
        [],
        [make_item("a", 0, 0, 4, 3)],
        [make_item("a", 0, 0, 8, 8), make_item("b", 0, 8, 12, 2)],
    ],
)
def test_top_right_zone_is_deterministic(solver, widgets):
    assert solver.solve_position(widgets, 12, 4, 3, hint="top-right") == (8, 0)


def test_occupied_zone_falls_back_to_first_fit(solver):
    widgets = [make_item("a", 8, 0, 4, 2)]
    assert solver.solve_position(widgets, 12, 4, 3, hint="top-right") == (0, 0)


def test_zone_outside_narrow_grid_falls_back(solver):
    # 2 列时 center 的 x 为负数，按越界处理
    assert solver.solve_position([], 2, 2, 2, hint="center") == (0, 0)


def test_unknown_hint_uses_first_fit(solver):
    widgets = [make_item("a", 0, 0, 4, 3)]
    assert solver.solve_position(widgets, 12, 4, 3, hint="somewhere") == (4, 0)


def test_full_scan_window_appends_below(solver):
    widgets = [make_item("wall", 0, 0, 12, 20)]
    assert solver.solve_position(widgets, 12, 4, 3) == (0, 20)


def test_first_fit_placements_are_valid(solver):
    cols = 12
    sizes = [(4, 3), (2, 2), (6, 4), (3, 1), (12, 2), (5, 5), (1, 1), (7, 3), (4, 4), (2, 6), (3, 3), (6, 1)]
    widgets = []
    for n, (w, h) in enumerate(sizes):
        x, y = solver.solve_position(widgets, cols, w, h)
        assert 0 <= x and x + w <= cols and y >= 0
        assert fits(x, y, w, h, cols, widgets)
        widgets.append(make_item(f"w{n}", x, y, w, h))


def test_candidate_position_is_used_when_free(solver):
    widgets = [make_item("a", 0, 0, 4, 3)]
    assert solver.place(widgets, 12, 2, 2, candidate=(6, 6)) == (6, 6)
    assert solver.place(widgets, 12, 2, 2, candidate=(2, 1)) == (4, 0)


def test_fits_and_bottom_row():
    widgets = [make_item("a", 0, 0, 2, 1), make_item("b", 5, 3, 1, 2)]
    assert fits(2, 0, 3, 3, 12, widgets)
    assert not fits(4, 4, 2, 1, 12, widgets)
    assert not fits(11, 0, 2, 1, 12, widgets)
    assert fits(0, 0, 12, 3_000_000, 12, [])
    assert bottom_row(widgets) == 5
    assert bottom_row([]) == 0


@pytest.mark.parametrize(
    "direction, expected",
    [
        ("left", (2, 2)),
        ("right", (7, 2)),
        ("above", (4, 0)),
        ("below", (4, 4)),
        (None, (7, 2)),
        ("sideways", (7, 2)),
    ],
)
def test_relative_position(solver, direction, expected):
    reference = make_item("ref", 4, 2, 3, 2)
    assert solver.relative_position(reference, direction, 12, 2, 2) == expected


def test_relative_position_is_clamped(solver):
    assert solver.relative_position(make_item("ref", 1, 0, 2, 2), "left", 12, 4, 2) == (0, 0)
    assert solver.relative_position(make_item("ref", 10, 0, 2, 2), "right", 12, 4, 2) == (8, 0)
    assert solver.relative_position(make_item("ref", 0, 1, 2, 2), "above", 12, 2, 3) == (0, 0)


def test_step_left_at_edge_is_clamped(solver):
    item = make_item("a", 0, 3, 4, 3)
    assert solver.step_position(item, "left", 12) == (0, 3)


@pytest.mark.parametrize(
    "direction, expected",
    [
        ("left", (4, 3)),
        ("right", (6, 3)),
        ("top", (5, 2)),
        ("bottom", (5, 4)),
        ("diagonal", (5, 3)),
    ],
)
def test_step_moves_one_unit(solver, direction, expected):
    assert solver.step_position(make_item("a", 5, 3, 2, 2), direction, 12) == expected


def test_step_clamps_at_right_edge_and_top(solver):
    assert solver.step_position(make_item("a", 8, 0, 4, 2), "right", 12) == (8, 0)
    assert solver.step_position(make_item("a", 8, 0, 4, 2), "top", 12) == (8, 0)
    # 向下不设上限
    assert solver.step_position(make_item("a", 0, 99, 4, 2), "bottom", 12) == (0, 100)


def test_move_position_priorities(solver):
    item = make_item("a", 5, 3, 2, 2)
    reference = make_item("ref", 0, 0, 3, 3)
    assert solver.move_position(item, PositionParams(zone="top-right"), 12) == (10, 0)
    assert solver.move_position(item, PositionParams(relative_to="ref", direction="below"), 12, reference) == (0, 3)
    assert solver.move_position(item, PositionParams(direction="left"), 12) == (4, 3)
    assert solver.move_position(item, PositionParams(), 12) == (5, 3)
