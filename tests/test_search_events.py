"""
搜索事件流、取消与并发搜索的测试。
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from mappath.core.dijkstra import dijkstra
from mappath.core.events import (
    SHORTEST_PATH,
    VISITED,
    iter_search_events,
    run_cancellable,
    summarize_result,
)
from mappath.core.grid import make_demo_grid


def test_events_visited_then_path(open_3x3):
    result = dijkstra(open_3x3, (0, 0), (2, 2))
    events = list(iter_search_events(result))

    states = [e.state for e in events]
    assert states == [VISITED] * 9 + [SHORTEST_PATH] * 5
    assert [e.cell for e in events[:9]] == result.visited_in_order
    assert [e.cell for e in events[9:]] == result.path()
    assert [e.index for e in events[9:]] == list(range(5))


def test_events_without_path_when_unreached(walled_row_3x3):
    result = dijkstra(walled_row_3x3, (0, 0), (2, 2))
    events = list(iter_search_events(result))

    assert all(e.state == VISITED for e in events)
    assert len(events) == 3


def test_event_to_dict():
    result = dijkstra(make_demo_grid(3, 5), (0, 0), (0, 1))
    first = next(iter_search_events(result))
    assert first.to_dict() == {"row": 0, "col": 0, "state": "visited", "index": 0}


def test_run_cancellable_without_event_matches_dijkstra(open_3x3):
    plain = dijkstra(open_3x3, (0, 0), (2, 2))
    wrapped = run_cancellable(open_3x3, (0, 0), (2, 2))

    assert wrapped.visited_in_order == plain.visited_in_order
    assert wrapped.path() == plain.path()
    assert not wrapped.cancelled


def test_run_cancellable_stops_between_iterations(open_3x3):
    cancel = threading.Event()
    cancel.set()
    result = run_cancellable(open_3x3, (0, 0), (2, 2), cancel_event=cancel)

    assert result.cancelled
    assert result.visited_in_order == [(0, 0)]
    assert not result.reached
    assert result.path() == []


def test_cancel_after_reaching_end_is_not_cancelled(open_3x3):
    cancel = threading.Event()
    cancel.set()
    result = run_cancellable(open_3x3, (1, 1), (1, 1), cancel_event=cancel)

    assert not result.cancelled
    assert result.reached


def test_concurrent_searches_share_topology():
    topology = make_demo_grid(10, 21)
    expected = dijkstra(topology, (0, 0), (0, 20))

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: run_cancellable(topology, (0, 0), (0, 20)), range(8)))

    for res in results:
        assert res.visited_in_order == expected.visited_in_order
        assert res.path() == expected.path()


def test_summarize_result(open_3x3):
    summary = summarize_result(dijkstra(open_3x3, (0, 0), (2, 2)))

    assert summary["reached"] is True
    assert summary["visited_count"] == 9
    assert summary["path_length"] == 5
    assert summary["path_hops"] == 4
    assert summary["distance"] == 4
    assert summary["start"] == [0, 0]


def test_summarize_unreached(walled_row_3x3):
    summary = summarize_result(dijkstra(walled_row_3x3, (0, 0), (2, 2)))

    assert summary["reached"] is False
    assert summary["path_hops"] == 0
    assert summary["distance"] is None
