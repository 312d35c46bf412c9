from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..core.dijkstra import FRONTIER_MODES
from ..exceptions import ScenarioConfigError


def format_validation_error(err: ValidationError, source: str) -> str:
    parts: List[str] = []
    for issue in err.errors():
        location = ".".join(str(item) for item in issue.get("loc", ()))
        message = issue.get("msg", "")
        parts.append(f"- field `{location}`: {message}")
    details = "\n".join(parts) if parts else str(err)
    return f"[SCHEMA] validation failed for {source}\n{details}"


class LatLon(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")


Endpoint = Union[Tuple[int, int], LatLon]


class GridSection(BaseModel):
    demo: bool = Field(False, description="Use the built-in demo grid")
    path: Optional[str] = Field(None, description="Grid file (.txt/.npy/.json/.nc)")
    rows: Optional[List[str]] = Field(None, description="Inline grid rows, '#' = wall")
    roads: Optional[str] = Field(None, description="Overpass JSON or GeoJSON road file")
    ny: int = Field(20, ge=2, description="Rows for demo grid or road rasterisation")
    nx: int = Field(40, ge=3, description="Columns for demo grid or road rasterisation")

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "GridSection":
        sources = [name for name in ("path", "rows", "roads") if getattr(self, name)]
        if self.demo:
            sources.append("demo")
        if len(sources) != 1:
            raise ValueError(f"grid needs exactly one of demo/path/rows/roads, got {sources or 'none'}")
        return self

    @property
    def is_geo(self) -> bool:
        return self.roads is not None


class OutputSection(BaseModel):
    geojson: Optional[str] = Field(None, description="Write the route as GeoJSON here")
    include_visited: bool = Field(False, description="Also write visited cells (geo grids only)")


class ScenarioSpec(BaseModel):
    name: str = Field("scenario", description="Scenario identifier")
    title: Optional[str] = None
    description: Optional[str] = None
    grid: GridSection
    start: Endpoint
    end: Endpoint
    frontier: str = Field("heap", description="Frontier implementation")
    snap_radius: Optional[int] = Field(None, ge=0, description="Marker snapping radius in cells")
    output: OutputSection = Field(default_factory=OutputSection)
    base_dir: Optional[str] = Field(None, description="Directory relative paths resolve against")

    @field_validator("frontier")
    @classmethod
    def _validate_frontier(cls, value: str) -> str:
        lowered = value.lower()
        if lowered not in FRONTIER_MODES:
            raise ValueError(f"frontier must be one of {list(FRONTIER_MODES)}")
        return lowered

    @model_validator(mode="after")
    def _endpoints_match_grid(self) -> "ScenarioSpec":
        geo_points = [isinstance(p, LatLon) for p in (self.start, self.end)]
        if any(geo_points) and not all(geo_points):
            raise ValueError("start and end must both be [row, col] or both be {lat, lon}")
        if all(geo_points) and not self.grid.is_geo:
            raise ValueError("lat/lon endpoints need a road grid (grid.roads)")
        return self

    @property
    def uses_latlon(self) -> bool:
        return isinstance(self.start, LatLon)

    def resolve(self, candidate: str) -> Path:
        path = Path(candidate)
        if not path.is_absolute() and self.base_dir:
            path = Path(self.base_dir) / path
        return path


def parse_scenario(data: Dict[str, Any], source: str = "<dict>", base_dir: Optional[Path] = None) -> ScenarioSpec:
    if not isinstance(data, dict):
        raise ScenarioConfigError("invalid_scenario", "scenario must be a mapping", source)
    payload = dict(data)
    if base_dir is not None:
        payload.setdefault("base_dir", str(base_dir))
    try:
        return ScenarioSpec.model_validate(payload)
    except ValidationError as err:
        raise ScenarioConfigError(
            "scenario_validation_failed", f"invalid scenario {source}", format_validation_error(err, source)
        ) from err


def load_scenario(path: str | Path) -> ScenarioSpec:
    """读取 YAML 场景文件并校验；相对路径以 YAML 所在目录为基准。"""
    path_obj = Path(path)
    if not path_obj.exists():
        raise ScenarioConfigError("scenario_not_found", "scenario file not found", str(path_obj))
    try:
        data = yaml.safe_load(path_obj.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ScenarioConfigError("invalid_yaml", "scenario file is not valid YAML", f"{path_obj}: {exc}") from exc
    return parse_scenario(data, source=str(path_obj), base_dir=path_obj.resolve().parent)


__all__ = [
    "LatLon",
    "GridSection",
    "OutputSection",
    "ScenarioSpec",
    "format_validation_error",
    "parse_scenario",
    "load_scenario",
]
