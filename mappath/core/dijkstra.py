"""
Dijkstra（一致代价）网格搜索模块。

在单位权重的四邻接网格上做最短路搜索：
  - 每轮取出距离最小的未访问格点并定稿（finalize）；
  - 定稿的格点即为访问序列中的一项，到达终点立即停止；
  - 最小距离为无穷时说明剩余格点不可达，直接返回已访问序列。

平局顺序与逐轮稳定排序的参考实现一致：距离相同时，较早被发现的格点在前；
同一轮被发现的格点按行优先顺序排列。堆前沿使用
(distance, discovered_iteration, flat_index) 作为键来复现这一顺序。
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Iterator, Optional

import numpy as np

from ..exceptions import GridError
from ..logging_config import get_logger
from .grid import Cell, GridTopology

logger = get_logger(__name__)

INF_DISTANCE = int(np.iinfo(np.int64).max)
NO_PREVIOUS = -1
FRONTIER_MODES = ("heap", "sort")


class SearchState:
    """单次搜索的可变状态：distance / visited / previous，按格点坐标索引。"""

    def __init__(self, topology: GridTopology) -> None:
        self.topology = topology
        shape = topology.shape()
        self.distance = np.full(shape, INF_DISTANCE, dtype=np.int64)
        self.visited = np.zeros(shape, dtype=bool)
        self.previous = np.full(shape, NO_PREVIOUS, dtype=np.int64)

    def reset(self) -> None:
        self.distance.fill(INF_DISTANCE)
        self.visited.fill(False)
        self.previous.fill(NO_PREVIOUS)

    def distance_of(self, cell: Cell) -> Optional[int]:
        """已知距离；无穷时返回 None。"""
        d = int(self.distance[cell])
        return None if d == INF_DISTANCE else d

    def is_reached(self, cell: Cell) -> bool:
        """格点是否已定稿（在访问序列中）。"""
        return bool(self.visited[cell])

    def predecessor(self, cell: Cell) -> Optional[Cell]:
        prev = int(self.previous[cell])
        if prev == NO_PREVIOUS:
            return None
        return self.topology.cell_at(prev)


@dataclass(frozen=True)
class CellView:
    """单个格点在某次搜索后的只读快照。"""

    row: int
    col: int
    distance: Optional[int]
    visited: bool
    is_wall: bool
    previous: Optional[Cell]


@dataclass
class SearchResult:
    start: Cell
    end: Cell
    visited_in_order: list[Cell]
    state: SearchState
    frontier: str = "heap"
    cancelled: bool = False
    _path: Optional[list[Cell]] = field(default=None, repr=False)

    @property
    def reached(self) -> bool:
        return self.state.is_reached(self.end)

    @property
    def expanded(self) -> int:
        return len(self.visited_in_order)

    def path(self) -> list[Cell]:
        """起点到终点的最短路径（含两端）；终点未到达时返回空列表。"""
        if not self.reached:
            return []
        if self._path is None:
            self._path = reconstruct_path(self.state, self.end)
        return list(self._path)

    def cell(self, row: int, col: int) -> CellView:
        cell = self.state.topology.check_cell((row, col))
        return CellView(
            row=cell[0],
            col=cell[1],
            distance=self.state.distance_of(cell),
            visited=self.state.is_reached(cell),
            is_wall=self.state.topology.is_wall(cell),
            previous=self.state.predecessor(cell),
        )


class _HeapFrontier:
    """按 (distance, discovered_iteration, flat_index) 排序的二叉堆，惰性删除过期项。"""

    def __init__(self, topology: GridTopology, state: SearchState) -> None:
        self._topology = topology
        self._state = state
        self._heap: list[tuple[int, int, int, Cell]] = []

    def push(self, cell: Cell, distance: int, iteration: int) -> None:
        heapq.heappush(self._heap, (distance, iteration, self._topology.flat_index(cell), cell))

    def pop(self) -> Optional[Cell]:
        while self._heap:
            distance, _, _, cell = heapq.heappop(self._heap)
            if self._state.visited[cell] or distance != self._state.distance[cell]:
                continue
            return cell
        return None


class _SortFrontier:
    """每轮对全部未访问格点按距离做一次稳定排序，取第一个。"""

    def __init__(self, topology: GridTopology, state: SearchState) -> None:
        self._state = state
        ny, nx = topology.shape()
        self._unvisited: list[Cell] = [(r, c) for r in range(ny) for c in range(nx)]

    def push(self, cell: Cell, distance: int, iteration: int) -> None:
        # 距离直接从 state 读取，无需单独登记
        pass

    def pop(self) -> Optional[Cell]:
        if not self._unvisited:
            return None
        distance = self._state.distance
        self._unvisited.sort(key=lambda cell: distance[cell])
        closest = self._unvisited.pop(0)
        if distance[closest] == INF_DISTANCE:
            return None
        return closest


def _make_frontier(mode: str, topology: GridTopology, state: SearchState):
    if mode == "heap":
        return _HeapFrontier(topology, state)
    if mode == "sort":
        return _SortFrontier(topology, state)
    raise GridError("unknown_frontier", f"frontier must be one of {FRONTIER_MODES}", repr(mode))


def iter_dijkstra(
    topology: GridTopology,
    start: Cell,
    end: Cell,
    state: Optional[SearchState] = None,
    frontier: str = "heap",
) -> Iterator[Cell]:
    """
    逐个产出定稿的格点（访问顺序）。

    state 为 None 时新分配；传入的 state 会先被重置。生成器在两次产出之间
    自然挂起，外部可据此实现取消。
    """
    start = topology.check_cell(start, "start")
    end = topology.check_cell(end, "end")
    if state is None:
        state = SearchState(topology)
    elif state.topology is not topology:
        raise GridError("state_topology_mismatch", "search state was allocated for a different grid")
    else:
        state.reset()

    queue = _make_frontier(frontier, topology, state)
    state.distance[start] = 0
    queue.push(start, 0, -1)

    iteration = 0
    while True:
        current = queue.pop()
        if current is None:
            return

        state.visited[current] = True
        yield current

        if current == end:
            return

        _relax_neighbors(topology, state, queue, current, iteration)
        iteration += 1


def _relax_neighbors(topology: GridTopology, state: SearchState, queue, node: Cell, iteration: int) -> None:
    candidate = int(state.distance[node]) + 1  # 单位权重
    node_index = topology.flat_index(node)
    for neighbor in topology.neighbors(node):
        if state.visited[neighbor] or topology.walls[neighbor]:
            continue
        if candidate < state.distance[neighbor]:
            state.distance[neighbor] = candidate
            state.previous[neighbor] = node_index
            queue.push(neighbor, candidate, iteration)


def dijkstra(
    topology: GridTopology,
    start: Cell,
    end: Cell,
    frontier: str = "heap",
) -> SearchResult:
    """
    在 topology 上从 start 搜索到 end，返回访问序列与搜索状态。

    终点不可达不是错误：返回的访问序列恰为起点可达的全部格点，reached=False。
    起点/终点越界抛出 GridError(code="cell_out_of_bounds")。
    """
    start = topology.check_cell(start, "start")
    end = topology.check_cell(end, "end")
    state = SearchState(topology)
    visited = list(iter_dijkstra(topology, start, end, state=state, frontier=frontier))
    result = SearchResult(start=start, end=end, visited_in_order=visited, state=state, frontier=frontier)
    logger.debug(
        "dijkstra %s -> %s on %s: expanded=%d reached=%s frontier=%s",
        start,
        end,
        topology.shape(),
        result.expanded,
        result.reached,
        frontier,
    )
    return result


def reconstruct_path(state: SearchState, target: Cell) -> list[Cell]:
    """
    沿 previous 链从 target 回溯到没有前驱的格点，再反转为起点 -> target 的顺序。

    target 从未被到达时结果为 [target]，调用方需结合 state.is_reached 判断“无路径”。
    """
    target = state.topology.check_cell(target, "target")
    path: list[Cell] = []
    current: Optional[Cell] = target
    while current is not None:
        path.append(current)
        current = state.predecessor(current)
    path.reverse()
    return path


__all__ = [
    "INF_DISTANCE",
    "FRONTIER_MODES",
    "SearchState",
    "SearchResult",
    "CellView",
    "iter_dijkstra",
    "dijkstra",
    "reconstruct_path",
]
