"""
道路几何与网格构建模块。

- 生成 Overpass 查询文本（不发起网络请求）；
- 解析 Overpass `out geom` 风格的 JSON 为道路折线；
- 将道路折线栅格化为 GridTopology：道路经过的格点可通行，其余为墙。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import numpy as np

from ..exceptions import RoadDataError
from ..logging_config import get_logger
from .grid import Cell, GeoGrid2D, GridTopology, make_geo_grid

logger = get_logger(__name__)

# 原地图视图的默认查询中心（巴黎）与半径
DEFAULT_CENTER = (48.8566, 2.3522)
DEFAULT_RADIUS_M = 1000


@dataclass
class RoadWay:
    id: int | str
    coordinates: list[tuple[float, float]]  # (lat, lon)
    tags: dict[str, Any] = field(default_factory=dict)


def build_overpass_query(
    lat: float = DEFAULT_CENTER[0],
    lon: float = DEFAULT_CENTER[1],
    radius_m: int = DEFAULT_RADIUS_M,
    highway: str = "highway",
) -> str:
    """返回 Overpass QL 查询文本：中心点半径内所有带 highway 指定标签的 way，附带几何。"""
    return (
        "[out:json];\n"
        "(\n"
        f'  way["{highway}"](around:{int(radius_m)},{lat},{lon});\n'
        ");\n"
        "out geom;\n"
    )


def parse_overpass_payload(payload: dict[str, Any]) -> list[RoadWay]:
    """
    解析 Overpass JSON：elements[*].geometry[*].{lat, lon}。

    没有 geometry 的元素（如 node）会被跳过；缺少 elements 字段抛出 RoadDataError。
    """
    if not isinstance(payload, dict) or "elements" not in payload:
        raise RoadDataError("missing_elements", "Overpass payload has no 'elements' list")
    elements = payload["elements"]
    if not isinstance(elements, list):
        raise RoadDataError("invalid_elements", "'elements' must be a list", type(elements).__name__)

    roads: list[RoadWay] = []
    skipped = 0
    for element in elements:
        geometry = element.get("geometry") if isinstance(element, dict) else None
        if not geometry:
            skipped += 1
            continue
        try:
            coords = [(float(pt["lat"]), float(pt["lon"])) for pt in geometry if pt]
        except (KeyError, TypeError, ValueError) as exc:
            raise RoadDataError(
                "invalid_geometry", "geometry points need numeric lat/lon", f"element id={element.get('id')}"
            ) from exc
        if coords:
            roads.append(RoadWay(id=element.get("id", len(roads)), coordinates=coords, tags=element.get("tags") or {}))

    if skipped:
        logger.debug("skipped %d Overpass elements without geometry", skipped)
    return roads


def load_overpass_json(path: str | Path) -> list[RoadWay]:
    path_obj = Path(path)
    if not path_obj.exists():
        raise RoadDataError("file_not_found", "Overpass JSON file not found", str(path_obj))
    try:
        payload = json.loads(path_obj.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RoadDataError("invalid_json", "Overpass file is not valid JSON", f"{path_obj}: {exc}") from exc
    roads = parse_overpass_payload(payload)
    logger.info("loaded %d roads from %s", len(roads), path_obj)
    return roads


def roads_bbox(roads: Iterable[RoadWay], pad: float = 0.0) -> tuple[float, float, float, float]:
    """所有道路点的外包框 (south, west, north, east)。"""
    lats: list[float] = []
    lons: list[float] = []
    for road in roads:
        for lat, lon in road.coordinates:
            lats.append(lat)
            lons.append(lon)
    if not lats:
        raise RoadDataError("no_road_points", "cannot compute a bbox without road points")
    south, north = min(lats) - pad, max(lats) + pad
    west, east = min(lons) - pad, max(lons) + pad
    # 退化为单点/直线时撑开一点，保证网格有面积
    if north <= south:
        north, south = north + 1e-6, south - 1e-6
    if east <= west:
        east, west = east + 1e-6, west - 1e-6
    return south, west, north, east


def _bresenham(a: Cell, b: Cell) -> Iterator[Cell]:
    r0, c0 = a
    r1, c1 = b
    dr = abs(r1 - r0)
    dc = abs(c1 - c0)
    sr = 1 if r1 >= r0 else -1
    sc = 1 if c1 >= c0 else -1
    err = dc - dr
    while True:
        yield r0, c0
        if r0 == r1 and c0 == c1:
            return
        e2 = 2 * err
        step_c = e2 >= -dr
        step_r = e2 <= dc
        if step_c:
            err -= dr
            c0 += sc
        if step_r:
            # 对角步拆成两个正交步，保证四邻接连通
            if step_c:
                yield r0, c0
            err += dc
            r0 += sr


def roads_to_grid(
    roads: list[RoadWay],
    ny: int,
    nx: int,
    bbox: Optional[tuple[float, float, float, float]] = None,
) -> tuple[GeoGrid2D, GridTopology]:
    """
    将道路折线栅格化为 (GeoGrid2D, GridTopology)。

    每段折线取两端最近的格点，用正交 Bresenham 连线；经过的格点可通行，其余为墙。
    """
    if not roads:
        raise RoadDataError("no_roads", "at least one road is required to build a grid")
    geo = make_geo_grid(bbox or roads_bbox(roads), ny, nx)
    walls = np.ones((ny, nx), dtype=bool)

    for road in roads:
        cells = [geo.nearest_cell(lat, lon) for lat, lon in road.coordinates]
        if len(cells) == 1:
            walls[cells[0]] = False
            continue
        for a, b in zip(cells, cells[1:]):
            for cell in _bresenham(a, b):
                walls[cell] = False

    topology = GridTopology(walls=walls)
    logger.info(
        "rasterised %d roads onto %dx%d grid, open fraction %.3f",
        len(roads),
        ny,
        nx,
        topology.open_fraction(),
    )
    return geo, topology


__all__ = [
    "DEFAULT_CENTER",
    "DEFAULT_RADIUS_M",
    "RoadWay",
    "build_overpass_query",
    "parse_overpass_payload",
    "load_overpass_json",
    "roads_bbox",
    "roads_to_grid",
]
