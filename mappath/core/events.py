"""
搜索事件流。

核心算法只产出 (cell, state) 事件序列，由外部展示层订阅并自行决定动画节奏；
本模块不接触任何渲染对象。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from ..logging_config import get_logger
from .dijkstra import SearchResult, SearchState, iter_dijkstra
from .grid import Cell, GridTopology

logger = get_logger(__name__)

VISITED = "visited"
SHORTEST_PATH = "shortest-path"


@dataclass(frozen=True)
class SearchEvent:
    cell: Cell
    state: str  # "visited" / "shortest-path"
    index: int  # 在同一 state 内的序号

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.cell[0], "col": self.cell[1], "state": self.state, "index": self.index}


def iter_search_events(result: SearchResult) -> Iterator[SearchEvent]:
    """先按定稿顺序产出 visited 事件，到达终点时再按起点 -> 终点产出 shortest-path 事件。"""
    for i, cell in enumerate(result.visited_in_order):
        yield SearchEvent(cell=cell, state=VISITED, index=i)
    for i, cell in enumerate(result.path()):
        yield SearchEvent(cell=cell, state=SHORTEST_PATH, index=i)


def run_cancellable(
    topology: GridTopology,
    start: Cell,
    end: Cell,
    cancel_event: Optional[threading.Event] = None,
    frontier: str = "heap",
) -> SearchResult:
    """
    在每轮定稿之间检查 cancel_event，被置位时提前返回部分结果（cancelled=True）。

    每个调用都独立分配 SearchState，可在多个线程中共享同一个 topology。
    """
    start = topology.check_cell(start, "start")
    end = topology.check_cell(end, "end")
    state = SearchState(topology)
    visited: list[Cell] = []
    cancelled = False

    search = iter_dijkstra(topology, start, end, state=state, frontier=frontier)
    try:
        for cell in search:
            visited.append(cell)
            if cancel_event is not None and cancel_event.is_set():
                cancelled = cell != end
                break
    finally:
        search.close()

    if cancelled:
        logger.info("search %s -> %s cancelled after %d cells", start, end, len(visited))
    return SearchResult(
        start=start,
        end=end,
        visited_in_order=visited,
        state=state,
        frontier=frontier,
        cancelled=cancelled,
    )


def summarize_result(result: SearchResult) -> dict[str, Any]:
    """计数与端点摘要，供日志与 JSON 输出使用。"""
    path = result.path()
    return {
        "start": list(result.start),
        "end": list(result.end),
        "frontier": result.frontier,
        "reached": result.reached,
        "cancelled": result.cancelled,
        "visited_count": result.expanded,
        "path_length": len(path),
        "path_hops": max(len(path) - 1, 0),
        "distance": result.state.distance_of(result.end),
    }


__all__ = [
    "VISITED",
    "SHORTEST_PATH",
    "SearchEvent",
    "iter_search_events",
    "run_cancellable",
    "summarize_result",
]
