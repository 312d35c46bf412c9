"""
Dijkstra 网格搜索的单元测试。

覆盖访问顺序、路径重建、不可达终点、平局顺序与前置条件校验。
"""

from __future__ import annotations

import pytest

from mappath.core.dijkstra import (
    INF_DISTANCE,
    SearchState,
    dijkstra,
    iter_dijkstra,
    reconstruct_path,
)
from mappath.core.grid import GridTopology, make_demo_grid
from mappath.exceptions import GridError


def test_open_3x3_path_has_four_hops(open_3x3):
    """无墙 3x3，(0,0) -> (2,2)：路径 5 个格点、4 跳。"""
    result = dijkstra(open_3x3, (0, 0), (2, 2))

    assert result.reached
    path = result.path()
    assert len(path) == 5, f"expected 5 cells, got {path}"
    assert path[0] == (0, 0)
    assert path[-1] == (2, 2)
    for (r0, c0), (r1, c1) in zip(path, path[1:]):
        assert abs(r0 - r1) + abs(c0 - c1) == 1, "path steps must be orthogonal"


def test_open_3x3_visit_order_matches_stable_sort_tie_break(open_3x3):
    """平局时较早发现的格点在前，同轮发现的按行优先。"""
    result = dijkstra(open_3x3, (0, 0), (2, 2))

    assert result.visited_in_order == [
        (0, 0),
        (0, 1),
        (1, 0),
        (0, 2),
        (1, 1),
        (2, 0),
        (1, 2),
        (2, 1),
        (2, 2),
    ]
    assert result.path() == [(0, 0), (0, 1), (0, 2), (1, 2), (2, 2)]


def test_walled_row_end_unreachable(walled_row_3x3):
    """中间一行全为墙：终点不在访问序列中，只访问第 0 行。"""
    result = dijkstra(walled_row_3x3, (0, 0), (2, 2))

    assert not result.reached
    assert (2, 2) not in result.visited_in_order
    assert result.visited_in_order == [(0, 0), (0, 1), (0, 2)]
    assert result.path() == []


def test_enclosed_end_never_visited():
    """终点四周被墙包围时，访问序列恰为起点可达的全部格点。"""
    topology = GridTopology.from_rows(
        [
            ".....",
            "..#..",
            ".#.#.",
            "..#..",
            ".....",
        ]
    )
    result = dijkstra(topology, (0, 0), (2, 2))

    assert (2, 2) not in result.visited_in_order
    assert len(result.visited_in_order) == 25 - 4 - 1
    assert len(set(result.visited_in_order)) == len(result.visited_in_order)
    for cell in result.visited_in_order:
        assert not topology.is_wall(cell), f"wall cell {cell} must not be visited"


def test_visited_distances_are_non_decreasing():
    topology = make_demo_grid(8, 15)
    result = dijkstra(topology, (0, 0), (0, 14))

    distances = [result.state.distance_of(cell) for cell in result.visited_in_order]
    assert all(d is not None for d in distances)
    assert distances == sorted(distances)


def test_demo_grid_detours_through_gap():
    """demo 网格：墙只在最下方留缺口，路径需要绕行。"""
    topology = make_demo_grid(5, 7)
    result = dijkstra(topology, (0, 0), (0, 6))

    path = result.path()
    assert len(path) - 1 == 4 + 6 + 4
    assert (4, 3) in path, "path must pass through the gap in the wall"


def test_reconstruct_path_on_start_is_single_cell(open_3x3):
    result = dijkstra(open_3x3, (1, 1), (2, 2))
    assert reconstruct_path(result.state, (1, 1)) == [(1, 1)]


def test_reconstruct_path_on_unreached_target_is_degenerate(walled_row_3x3):
    result = dijkstra(walled_row_3x3, (0, 0), (2, 2))

    assert reconstruct_path(result.state, (2, 2)) == [(2, 2)]
    assert not result.state.is_reached((2, 2))
    assert result.state.distance_of((2, 2)) is None


def test_start_equals_end(open_3x3):
    result = dijkstra(open_3x3, (1, 1), (1, 1))

    assert result.visited_in_order == [(1, 1)]
    assert result.path() == [(1, 1)]


def test_wall_start_is_still_finalised_first():
    topology = GridTopology.from_rows(["#.."])
    result = dijkstra(topology, (0, 0), (0, 2))

    assert result.visited_in_order[0] == (0, 0)
    assert result.state.distance_of((0, 0)) == 0
    assert result.path() == [(0, 0), (0, 1), (0, 2)]


def test_wall_end_is_unreachable():
    topology = GridTopology.from_rows(["..#"])
    result = dijkstra(topology, (0, 0), (0, 2))

    assert not result.reached
    assert result.visited_in_order == [(0, 0), (0, 1)]


def test_early_exit_stops_at_end(open_3x3):
    """到达终点立即停止，不处理剩余格点。"""
    result = dijkstra(open_3x3, (0, 0), (0, 1))

    assert result.visited_in_order == [(0, 0), (0, 1)]
    assert not result.state.visited[2, 2]


def test_cell_view_snapshot(open_3x3):
    result = dijkstra(open_3x3, (0, 0), (2, 2))
    view = result.cell(2, 2)

    assert view.distance == 4
    assert view.visited is True
    assert view.is_wall is False
    assert view.previous == (1, 2)


def test_search_is_idempotent(open_3x3):
    first = dijkstra(open_3x3, (0, 0), (2, 2))
    second = dijkstra(open_3x3, (0, 0), (2, 2))

    assert first.visited_in_order == second.visited_in_order
    assert first.path() == second.path()


def test_reused_state_is_reset_before_search(open_3x3):
    state = SearchState(open_3x3)
    first = list(iter_dijkstra(open_3x3, (0, 0), (2, 2), state=state))
    second = list(iter_dijkstra(open_3x3, (0, 0), (2, 2), state=state))

    assert first == second
    assert state.distance[2, 2] == 4


def test_state_for_other_grid_is_rejected(open_3x3, walled_row_3x3):
    state = SearchState(walled_row_3x3)
    with pytest.raises(GridError) as excinfo:
        list(iter_dijkstra(open_3x3, (0, 0), (2, 2), state=state))
    assert excinfo.value.code == "state_topology_mismatch"


def test_topology_is_not_mutated_by_search(open_3x3):
    before = open_3x3.walls.copy()
    dijkstra(open_3x3, (0, 0), (2, 2))
    assert (open_3x3.walls == before).all()
    assert not open_3x3.walls.flags.writeable


def test_fresh_state_defaults(open_3x3):
    state = SearchState(open_3x3)
    assert (state.distance == INF_DISTANCE).all()
    assert not state.visited.any()
    assert state.predecessor((1, 1)) is None


@pytest.mark.parametrize("start,end", [((-1, 0), (2, 2)), ((0, 0), (3, 0)), ((0, 0), (0, 5))])
def test_out_of_bounds_endpoints_fail_fast(open_3x3, start, end):
    with pytest.raises(GridError) as excinfo:
        dijkstra(open_3x3, start, end)
    assert excinfo.value.code == "cell_out_of_bounds"


def test_unknown_frontier_is_rejected(open_3x3):
    with pytest.raises(GridError) as excinfo:
        dijkstra(open_3x3, (0, 0), (2, 2), frontier="fibonacci")
    assert excinfo.value.code == "unknown_frontier"
