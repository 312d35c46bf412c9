"""
网格拓扑与坐标工具模块。

GridTopology 只保存网格形状与墙体掩码（True = 墙，不可通行），构造后只读；
每次搜索的距离/访问/前驱状态由 dijkstra.SearchState 单独分配。
GeoGrid2D 给出每个格点中心的经纬度，用于标记点吸附与道路栅格化。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from ..exceptions import GridError

Cell = tuple[int, int]

WALL_CHARS = frozenset("#Xx1")
OPEN_CHARS = frozenset(".oO0")

# 上、下、左、右
ORTHOGONAL_STEPS: tuple[Cell, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


@dataclass(frozen=True, eq=False)
class GridTopology:
    """不可变的网格拓扑：形状 + 墙体掩码。"""

    walls: np.ndarray  # bool, shape (ny, nx)

    def __post_init__(self) -> None:
        mask = np.array(self.walls, dtype=bool, copy=True)
        if mask.ndim != 2:
            raise GridError("grid_not_2d", "grid must be two-dimensional", f"ndim={mask.ndim}")
        if mask.shape[0] == 0 or mask.shape[1] == 0:
            raise GridError("grid_empty", "grid must have at least one row and one column", f"shape={mask.shape}")
        mask.setflags(write=False)
        object.__setattr__(self, "walls", mask)

    # ------------------------------------------------------------------
    # 构造
    # ------------------------------------------------------------------
    @classmethod
    def from_mask(cls, mask) -> "GridTopology":
        """从二维数组（True/非零 = 墙）构造。"""
        return cls(walls=np.asarray(mask).astype(bool))

    @classmethod
    def from_rows(cls, rows: Sequence) -> "GridTopology":
        """
        从逐行数据构造拓扑。

        每行可以是 bool/int 序列，也可以是字符串（'#' 为墙，'.' 为空地）。
        各行长度必须一致，否则抛出 GridError(code="grid_not_rectangular")。
        """
        if len(rows) == 0:
            raise GridError("grid_empty", "grid must have at least one row")

        parsed: list[list[bool]] = []
        for r, row in enumerate(rows):
            if isinstance(row, str):
                parsed.append([_parse_char(ch, r, c) for c, ch in enumerate(row)])
                continue
            try:
                parsed.append([bool(v) for v in row])
            except (TypeError, ValueError) as exc:
                raise GridError(
                    "invalid_grid_row",
                    "grid rows must be strings or sequences of cell values",
                    f"row {r}: {row!r}",
                ) from exc

        width = len(parsed[0])
        for r, row in enumerate(parsed):
            if len(row) != width:
                raise GridError(
                    "grid_not_rectangular",
                    "all grid rows must have the same length",
                    f"row 0 has {width} cells, row {r} has {len(row)}",
                )
        return cls(walls=np.array(parsed, dtype=bool))

    @classmethod
    def from_text(cls, text: str) -> "GridTopology":
        """从多行文本构造，忽略首尾空行。"""
        lines = [line.rstrip("\r") for line in text.strip("\n").splitlines()]
        return cls.from_rows(lines)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------
    def shape(self) -> tuple[int, int]:
        """返回网格形状 (ny, nx)。"""
        return self.walls.shape

    @property
    def rows(self) -> int:
        return self.walls.shape[0]

    @property
    def cols(self) -> int:
        return self.walls.shape[1]

    @property
    def size(self) -> int:
        return int(self.walls.size)

    def in_bounds(self, cell: Cell) -> bool:
        r, c = cell
        return 0 <= r < self.rows and 0 <= c < self.cols

    def check_cell(self, cell: Cell, name: str = "cell") -> Cell:
        """校验格点在网格内并规范化为 (int, int)，否则抛出 GridError。"""
        try:
            r, c = int(cell[0]), int(cell[1])
        except (TypeError, ValueError, IndexError) as exc:
            raise GridError("invalid_cell", f"{name} must be a (row, col) pair", repr(cell)) from exc
        if not self.in_bounds((r, c)):
            raise GridError(
                "cell_out_of_bounds",
                f"{name} lies outside the grid",
                f"{name}=({r}, {c}), shape={self.shape()}",
            )
        return r, c

    def is_wall(self, cell: Cell) -> bool:
        return bool(self.walls[cell[0], cell[1]])

    def flat_index(self, cell: Cell) -> int:
        return cell[0] * self.cols + cell[1]

    def cell_at(self, index: int) -> Cell:
        return divmod(int(index), self.cols)

    def neighbors(self, cell: Cell) -> Iterator[Cell]:
        """正交邻居（上、下、左、右），只返回网格内的格点，不过滤墙。"""
        r, c = cell
        for dr, dc in ORTHOGONAL_STEPS:
            nr, nc = r + dr, c + dc
            if 0 <= nr < self.rows and 0 <= nc < self.cols:
                yield nr, nc

    def open_fraction(self) -> float:
        return float((~self.walls).sum()) / self.size

    def with_walls(self, cells: Iterable[Cell]) -> "GridTopology":
        """返回一个新的拓扑，在指定格点上加墙。"""
        mask = self.walls.copy()
        for cell in cells:
            r, c = self.check_cell(cell)
            mask[r, c] = True
        return GridTopology(walls=mask)

    def without_walls(self, cells: Iterable[Cell]) -> "GridTopology":
        mask = self.walls.copy()
        for cell in cells:
            r, c = self.check_cell(cell)
            mask[r, c] = False
        return GridTopology(walls=mask)

    def to_text(self) -> str:
        return "\n".join("".join("#" if w else "." for w in row) for row in self.walls)


def _parse_char(ch: str, r: int, c: int) -> bool:
    if ch in WALL_CHARS:
        return True
    if ch in OPEN_CHARS:
        return False
    raise GridError("invalid_grid_char", "grid text may only contain '#' and '.'", f"{ch!r} at ({r}, {c})")


def make_demo_grid(ny: int = 20, nx: int = 40) -> GridTopology:
    """
    生成一个用于 demo / 测试的网格。

    约定：
      - 中间一列为墙；
      - 墙上只在最下方一行留一个缺口，起点在左侧、终点在右侧时必须绕行。
    """
    if ny < 2 or nx < 3:
        raise GridError("grid_too_small", "demo grid needs at least 2 rows and 3 columns", f"ny={ny}, nx={nx}")
    walls = np.zeros((ny, nx), dtype=bool)
    walls[:-1, nx // 2] = True
    return GridTopology(walls=walls)


# ============================================================================
# 经纬度网格
# ============================================================================


@dataclass
class GeoGrid2D:
    """2D 经纬度网格，存储每个格点中心的纬度和经度。"""

    lat2d: np.ndarray  # 2D, shape (ny, nx)
    lon2d: np.ndarray  # 2D, shape (ny, nx)

    def shape(self) -> tuple[int, int]:
        """返回网格形状 (ny, nx)。"""
        return self.lat2d.shape

    def cell_latlon(self, cell: Cell) -> tuple[float, float]:
        i, j = cell
        return float(self.lat2d[i, j]), float(self.lon2d[i, j])

    def nearest_cell(self, lat: float, lon: float) -> Cell:
        """经纬度平面上最近的格点（不考虑墙）。"""
        dist = (self.lat2d - lat) ** 2 + (self.lon2d - lon) ** 2
        i, j = np.unravel_index(np.argmin(dist), dist.shape)
        return int(i), int(j)


def make_geo_grid(bbox: tuple[float, float, float, float], ny: int, nx: int) -> GeoGrid2D:
    """
    按 bbox = (south, west, north, east) 生成规则经纬度网格。

    第 0 行对应最北端，与地图上自上而下的行号一致。
    """
    south, west, north, east = bbox
    if ny < 1 or nx < 1:
        raise GridError("grid_empty", "geo grid needs at least one row and one column", f"ny={ny}, nx={nx}")
    if not (north > south and east > west):
        raise GridError("invalid_bbox", "bbox must satisfy north > south and east > west", repr(bbox))
    lat_1d = np.linspace(north, south, ny)
    lon_1d = np.linspace(west, east, nx)
    lon2d, lat2d = np.meshgrid(lon_1d, lat_1d)
    return GeoGrid2D(lat2d=lat2d, lon2d=lon2d)


def snap_to_open_cell(
    geo: GeoGrid2D,
    topology: GridTopology,
    lat: float,
    lon: float,
    max_radius: int = 10,
) -> Optional[Cell]:
    """
    在最近格点附近一个小方框内（半径 max_radius）找最近的非墙格点。

    找不到则返回 None。
    """
    if geo.shape() != topology.shape():
        raise GridError(
            "grid_shape_mismatch",
            "geo grid and topology must have the same shape",
            f"geo={geo.shape()}, topology={topology.shape()}",
        )
    ny, nx = topology.shape()
    i0, j0 = geo.nearest_cell(lat, lon)

    best_cell = None
    best_dist = float("inf")
    for di in range(-max_radius, max_radius + 1):
        for dj in range(-max_radius, max_radius + 1):
            ni, nj = i0 + di, j0 + dj
            if not (0 <= ni < ny and 0 <= nj < nx):
                continue
            if topology.walls[ni, nj]:
                continue
            cell_dist = (geo.lat2d[ni, nj] - lat) ** 2 + (geo.lon2d[ni, nj] - lon) ** 2
            if cell_dist < best_dist:
                best_dist = cell_dist
                best_cell = (ni, nj)

    return best_cell


__all__ = [
    "Cell",
    "GridTopology",
    "GeoGrid2D",
    "make_demo_grid",
    "make_geo_grid",
    "snap_to_open_cell",
    "ORTHOGONAL_STEPS",
]
