from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Sequence

from ..core.roads import RoadWay
from ..exceptions import RoadDataError


def load_geojson(path: str | Path) -> dict[str, Any]:
    path_obj = Path(path)
    if not path_obj.exists():
        raise RoadDataError("file_not_found", "GeoJSON file not found", str(path_obj))
    try:
        obj = json.loads(path_obj.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RoadDataError("invalid_json", "GeoJSON file is not valid JSON", f"{path_obj}: {exc}") from exc
    if not isinstance(obj, dict):
        raise RoadDataError("invalid_geojson", "GeoJSON top level must be an object", type(obj).__name__)
    return obj


def _iter_features(obj: dict[str, Any]) -> list[dict[str, Any]]:
    if obj.get("type") == "FeatureCollection":
        features = obj.get("features") or []
        if not isinstance(features, list):
            raise RoadDataError("invalid_geojson", "'features' must be a list", type(features).__name__)
        return [f for f in features if isinstance(f, dict)]
    if obj.get("type") == "Feature":
        return [obj]
    return []


def _read_line(coords: Sequence) -> list[tuple[float, float]]:
    line = []
    try:
        for coord in coords:
            if len(coord) < 2:
                continue
            line.append((float(coord[0]), float(coord[1])))
    except (TypeError, ValueError) as exc:
        raise RoadDataError("invalid_geometry", "line coordinates must be numeric [lon, lat] pairs", repr(coords)) from exc
    return line


def read_geojson_lines(path: str | Path) -> list[list[tuple[float, float]]]:
    """Return every LineString / MultiLineString part as a list of (lon, lat)."""
    obj = load_geojson(path)
    lines: list[list[tuple[float, float]]] = []
    for feature in _iter_features(obj):
        geom = feature.get("geometry")
        if not isinstance(geom, dict):
            continue
        gtype = geom.get("type")
        coords = geom.get("coordinates") or []
        if gtype == "LineString":
            line = _read_line(coords)
            if line:
                lines.append(line)
        elif gtype == "MultiLineString":
            for part in coords:
                line = _read_line(part)
                if line:
                    lines.append(line)
    return lines


def roads_from_geojson(path: str | Path) -> list[RoadWay]:
    """GeoJSON 道路线 -> RoadWay（坐标转换为 (lat, lon)）。"""
    return [
        RoadWay(id=idx, coordinates=[(lat, lon) for lon, lat in line])
        for idx, line in enumerate(read_geojson_lines(path))
    ]


def path_to_feature_collection(
    path_latlon: Sequence[tuple[float, float]],
    visited_latlon: Optional[Sequence[tuple[float, float]]] = None,
    properties: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """路径输出为 LineString，访问过的格点（可选）输出为 MultiPoint。"""
    features: list[dict[str, Any]] = []
    if path_latlon:
        features.append(
            {
                "type": "Feature",
                "properties": {"kind": "shortest-path", **(properties or {})},
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[float(lon), float(lat)] for lat, lon in path_latlon],
                },
            }
        )
    if visited_latlon:
        features.append(
            {
                "type": "Feature",
                "properties": {"kind": "visited", "count": len(visited_latlon)},
                "geometry": {
                    "type": "MultiPoint",
                    "coordinates": [[float(lon), float(lat)] for lat, lon in visited_latlon],
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def write_geojson(obj: dict[str, Any], path: str | Path) -> Path:
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    path_obj.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")
    return path_obj
