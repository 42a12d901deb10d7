import asyncio

import pytest

from schoolmap.RouteController import LINE_STYLE, Phase, RouteController
from schoolmap.ordering import sort_by_order
from tests.fakes import FakeMap, coords, ids, make_school, wait_idle


def _ordered(n=4):
    return sort_by_order([make_school(f"s{i}", i) for i in range(1, n + 1)])


def test_draw_without_animation_draws_prefix_at_once():
    fm = FakeMap()
    ordered = _ordered()
    rc = RouteController(fm, ordered)

    rc.draw_to_index(2, animate=False)

    assert len(fm.active_lines) == 1
    assert fm.active_lines[0].latlngs == coords(ordered[:3])
    assert fm.active_lines[0].style == LINE_STYLE
    assert rc.phase is Phase.IDLE
    assert rc.task is None


def test_index_beyond_bounds_clamps_to_last():
    fm = FakeMap()
    ordered = _ordered()
    rc = RouteController(fm, ordered)

    rc.draw_to_index(99, animate=False)

    assert rc.target_index(99) == 3
    assert fm.active_lines[0].latlngs == coords(ordered)


def test_negative_index_clamps_to_first_and_draws_nothing():
    fm = FakeMap()
    rc = RouteController(fm, _ordered())

    rc.draw_to_index(-5, animate=False)

    assert rc.target_index(-5) == 0
    assert fm.lines == []
    assert rc.line is None


def test_single_point_route_draws_nothing():
    fm = FakeMap()
    rc = RouteController(fm, _ordered(1))
    rc.draw_full(animate=False)
    assert fm.lines == []


def test_empty_route_draws_nothing():
    fm = FakeMap()
    rc = RouteController(fm, [])
    rc.draw_full(animate=False)
    rc.draw_to_index(3, animate=False)
    rc.draw_to_order(1, animate=False)
    assert fm.lines == []


def test_new_draw_removes_previous_line():
    fm = FakeMap()
    rc = RouteController(fm, _ordered())

    rc.draw_full(animate=False)
    rc.draw_to_index(1, animate=False)

    assert len(fm.lines) == 2
    assert fm.lines[0].removed
    assert fm.active_lines == [fm.lines[1]]


def test_animated_draw_needs_running_loop():
    fm = FakeMap()
    rc = RouteController(fm, _ordered())
    rc.draw_full(animate=False)

    with pytest.raises(RuntimeError):
        rc.draw_full(animate=True)

    # nothing was torn down before the failure
    assert len(fm.active_lines) == 1


async def _test_animation_appends_one_point_per_tick():
    fm = FakeMap()
    ordered = _ordered()
    rc = RouteController(fm, ordered, interval_s=0.001)

    rc.draw_full()
    line = fm.active_lines[0]
    assert line.latlngs == coords(ordered[:1])
    assert rc.phase is Phase.ANIMATING
    assert rc.animating

    await wait_idle(rc)

    assert line.latlngs == coords(ordered)
    assert rc.ticks == len(ordered) - 1
    assert rc.phase is Phase.IDLE
    assert rc.task is None
    assert fm.active_lines == [line]


def test_animation_appends_one_point_per_tick():
    asyncio.run(_test_animation_appends_one_point_per_tick())


async def _test_new_draw_replaces_running_animation():
    fm = FakeMap()
    ordered = _ordered(6)
    rc = RouteController(fm, ordered, interval_s=0.01)

    rc.draw_full()
    old_line, old_task = rc.line, rc.task
    await asyncio.sleep(0.025)
    drawn_before = len(old_line.latlngs)

    rc.draw_to_index(2)
    await asyncio.sleep(0)

    assert old_task.done()
    assert old_line.removed
    assert len(fm.active_lines) == 1
    assert rc.task is not old_task

    await wait_idle(rc)

    assert len(old_line.latlngs) == drawn_before
    assert fm.active_lines[0].latlngs == coords(ordered[:3])


def test_new_draw_replaces_running_animation():
    asyncio.run(_test_new_draw_replaces_running_animation())


async def _test_rapid_calls_leave_one_line_and_one_task():
    fm = FakeMap()
    ordered = _ordered(5)
    rc = RouteController(fm, ordered, interval_s=0.005)

    tasks = []
    for order in (5, 2, 4, 3, 5):
        rc.draw_to_order(order)
        tasks.append(rc.task)
        assert len(fm.active_lines) == 1
    await asyncio.sleep(0)

    assert [t.done() for t in tasks[:-1]] == [True] * 4
    assert not tasks[-1].done()
    assert rc.animating

    await wait_idle(rc)
    assert len(fm.active_lines) == 1
    assert fm.active_lines[0].latlngs == coords(ordered)


def test_rapid_calls_leave_one_line_and_one_task():
    asyncio.run(_test_rapid_calls_leave_one_line_and_one_task())


def test_unknown_order_or_id_falls_back_to_full_route():
    ordered = _ordered()

    full = FakeMap()
    RouteController(full, ordered).draw_full(animate=False)

    by_order = FakeMap()
    RouteController(by_order, ordered).draw_to_order(42, animate=False)

    by_id = FakeMap()
    RouteController(by_id, ordered).draw_to_school_id("missing", animate=False)

    expected = full.active_lines[0].latlngs
    assert by_order.active_lines[0].latlngs == expected
    assert by_id.active_lines[0].latlngs == expected


def test_draw_to_school_id_stops_at_that_school():
    fm = FakeMap()
    ordered = _ordered()
    RouteController(fm, ordered).draw_to_school_id("s2", animate=False)
    assert fm.active_lines[0].latlngs == coords(ordered[:2])


def test_two_school_scenario():
    first = make_school("1", order=2, lat=42.1, lng=23.1)
    second = make_school("2", order=1, lat=43.2, lng=27.9)
    ordered = sort_by_order([first, second])
    assert ids(ordered) == ["2", "1"]

    fm = FakeMap()
    rc = RouteController(fm, ordered)

    # a one-point prefix is not drawn
    rc.draw_to_order(1, animate=False)
    assert fm.lines == []

    rc.draw_full(animate=False)
    assert fm.active_lines[0].latlngs == [(43.2, 27.9), (42.1, 23.1)]


async def _test_close_cancels_animation():
    fm = FakeMap()
    rc = RouteController(fm, _ordered(), interval_s=0.01)
    rc.draw_full()
    task = rc.task

    rc.close()
    await asyncio.sleep(0)

    assert task.done()
    assert fm.active_lines == []
    assert rc.phase is Phase.IDLE
    assert not rc.animating


def test_close_cancels_animation():
    asyncio.run(_test_close_cancels_animation())


async def _test_animation_stops_when_its_line_is_detached():
    fm = FakeMap()
    ordered = _ordered(6)
    rc = RouteController(fm, ordered, interval_s=0.05)

    rc.draw_full()
    line, task = rc.line, rc.task
    await asyncio.sleep(0.07)

    # the line goes away without the task being cancelled
    rc.line = None
    drawn = len(line.latlngs)

    await asyncio.wait_for(task, 1.0)

    assert not task.cancelled()
    assert len(line.latlngs) == drawn
    assert len(line.latlngs) < len(ordered)
    assert rc.phase is Phase.IDLE
    assert rc.task is None
    assert not rc.animating


def test_animation_stops_when_its_line_is_detached():
    asyncio.run(_test_animation_stops_when_its_line_is_detached())
