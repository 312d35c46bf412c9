"""
场景运行器：按 ScenarioSpec 构建网格、执行搜索并（可选）写出 GeoJSON。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..config.schema import ScenarioSpec
from ..core.dijkstra import SearchResult, dijkstra
from ..core.events import summarize_result
from ..core.grid import GeoGrid2D, GridTopology, make_demo_grid
from ..core.planner import PlanRouteResult, plan_route_latlon
from ..core.roads import load_overpass_json, roads_to_grid
from ..io.geojson_light import path_to_feature_collection, roads_from_geojson, write_geojson
from ..io.grid_io import load_grid
from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ScenarioRun:
    spec: ScenarioSpec
    topology: GridTopology
    geo: Optional[GeoGrid2D]
    search: Optional[SearchResult]
    plan: Optional[PlanRouteResult] = None
    geojson_path: Optional[Path] = None

    @property
    def reached(self) -> bool:
        return self.search is not None and self.search.reached

    def summary(self) -> dict[str, Any]:
        out: dict[str, Any] = {"scenario": self.spec.name, "grid_shape": list(self.topology.shape())}
        if self.search is not None:
            out.update(summarize_result(self.search))
        if self.plan is not None:
            out["reason"] = self.plan.reason
            out["start_ij"] = list(self.plan.start_ij) if self.plan.start_ij else None
            out["goal_ij"] = list(self.plan.goal_ij) if self.plan.goal_ij else None
            out["path_latlon"] = [list(p) for p in self.plan.path_latlon]
        if self.geojson_path is not None:
            out["geojson"] = str(self.geojson_path)
        return out


def build_grid(spec: ScenarioSpec) -> tuple[Optional[GeoGrid2D], GridTopology]:
    grid = spec.grid
    if grid.demo:
        return None, make_demo_grid(grid.ny, grid.nx)
    if grid.rows is not None:
        return None, GridTopology.from_rows(grid.rows)
    if grid.path is not None:
        return None, load_grid(spec.resolve(grid.path))

    roads_path = spec.resolve(grid.roads)
    if roads_path.suffix.lower() == ".geojson":
        roads = roads_from_geojson(roads_path)
    else:
        roads = load_overpass_json(roads_path)
    return roads_to_grid(roads, grid.ny, grid.nx)


def run_scenario(spec: ScenarioSpec, output_geojson: str | Path | None = None) -> ScenarioRun:
    geo, topology = build_grid(spec)
    out_path = output_geojson or (spec.resolve(spec.output.geojson) if spec.output.geojson else None)

    if spec.uses_latlon:
        plan = plan_route_latlon(
            geo,
            topology,
            spec.start.lat,
            spec.start.lon,
            spec.end.lat,
            spec.end.lon,
            frontier=spec.frontier,
            max_radius=spec.snap_radius,
        )
        run = ScenarioRun(spec=spec, topology=topology, geo=geo, search=plan.search, plan=plan)
    else:
        search = dijkstra(topology, tuple(spec.start), tuple(spec.end), frontier=spec.frontier)
        run = ScenarioRun(spec=spec, topology=topology, geo=geo, search=search)

    logger.info("scenario %s finished: reached=%s", spec.name, run.reached)

    if out_path is not None:
        if geo is None:
            logger.warning("scenario %s has no lat/lon grid, skipping GeoJSON output", spec.name)
        else:
            path_latlon = run.plan.path_latlon if run.plan is not None else []
            visited_latlon = None
            if spec.output.include_visited and run.search is not None:
                visited_latlon = [geo.cell_latlon(cell) for cell in run.search.visited_in_order]
            collection = path_to_feature_collection(path_latlon, visited_latlon, {"scenario": spec.name})
            run.geojson_path = write_geojson(collection, out_path)
    return run


__all__ = ["ScenarioRun", "build_grid", "run_scenario"]
