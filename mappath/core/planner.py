"""
经纬度路径规划模块。

把起终点标记吸附到最近的可通行格点，调用 Dijkstra 搜索，再把格点路径转回经纬度。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..logging_config import get_logger
from ..settings import settings
from .dijkstra import FRONTIER_MODES, SearchResult, dijkstra
from .grid import Cell, GeoGrid2D, GridTopology, snap_to_open_cell

logger = get_logger(__name__)


@dataclass
class PlanRouteResult:
    path_latlon: list[tuple[float, float]]
    path_ij: list[Cell]
    reachable: bool
    reason: Optional[str]
    expanded: int
    start_ij: Optional[Cell]
    goal_ij: Optional[Cell]
    search: Optional[SearchResult] = None


def select_frontier(mode: str | None) -> Tuple[str, dict[str, Any]]:
    """
    选择前沿实现，未知模式回退到 heap。

    Returns:
        (frontier_used, meta)，meta 含 frontier_mode / frontier_used / fallback_reason
    """
    requested = mode or settings.DEFAULT_FRONTIER
    meta: dict[str, Any] = {"frontier_mode": requested, "frontier_used": None, "fallback_reason": None}
    if requested in FRONTIER_MODES:
        meta["frontier_used"] = requested
        return requested, meta
    meta["frontier_used"] = "heap"
    meta["fallback_reason"] = f"unknown frontier mode {requested!r}, using heap"
    logger.warning(meta["fallback_reason"])
    return "heap", meta


def plan_route_latlon(
    geo: GeoGrid2D,
    topology: GridTopology,
    start_lat: float,
    start_lon: float,
    end_lat: float,
    end_lon: float,
    frontier: str | None = None,
    max_radius: int | None = None,
) -> PlanRouteResult:
    """
    在给定网格上，以经纬度为输入规划一条路径，并返回诊断信息。

    失败原因：
      - no_open_start / no_open_goal：吸附半径内没有可通行格点
      - no_path：终点不可达
    """
    radius = settings.SNAP_RADIUS if max_radius is None else max_radius
    frontier_used, _ = select_frontier(frontier)

    # 1) 起点吸附
    start_ij = snap_to_open_cell(geo, topology, start_lat, start_lon, max_radius=radius)
    if start_ij is None:
        logger.warning("no open cell within %d of start (%.5f, %.5f)", radius, start_lat, start_lon)
        return PlanRouteResult([], [], False, "no_open_start", 0, None, None)

    # 2) 终点吸附
    goal_ij = snap_to_open_cell(geo, topology, end_lat, end_lon, max_radius=radius)
    if goal_ij is None:
        logger.warning("no open cell within %d of goal (%.5f, %.5f)", radius, end_lat, end_lon)
        return PlanRouteResult([], [], False, "no_open_goal", 0, start_ij, None)

    # 3) 搜索
    search = dijkstra(topology, start_ij, goal_ij, frontier=frontier_used)
    if not search.reached:
        logger.info("goal %s unreachable from %s after %d cells", goal_ij, start_ij, search.expanded)
        return PlanRouteResult([], [], False, "no_path", search.expanded, start_ij, goal_ij, search)

    # 4) 转换为经纬度
    path_ij = search.path()
    path_latlon = [geo.cell_latlon(cell) for cell in path_ij]
    logger.info("planned %d-cell route %s -> %s (expanded=%d)", len(path_ij), start_ij, goal_ij, search.expanded)
    return PlanRouteResult(path_latlon, path_ij, True, None, search.expanded, start_ij, goal_ij, search)


__all__ = ["PlanRouteResult", "select_frontier", "plan_route_latlon"]
