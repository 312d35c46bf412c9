"""
网格文件读写。

支持的格式：
  - .txt  : 每行一个字符串，'#' 为墙，'.' 为空地
  - .npy  : 二维 bool/int 数组，True/非零 = 墙
  - .json : {"walls": [[0, 1, ...], ...]} 或字符串行列表
  - .nc   : NetCDF，读取 walls / wall_mask / land_mask / mask 变量（需要 xarray）
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from ..core.grid import GridTopology
from ..exceptions import GridError
from ..logging_config import get_logger

logger = get_logger(__name__)

MASK_VAR_CANDIDATES = ["walls", "wall_mask", "land_mask", "mask"]


def load_grid(path: str | Path) -> GridTopology:
    path_obj = Path(path)
    if not path_obj.exists():
        raise GridError("grid_file_not_found", "grid file not found", str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".txt", ".grid"):
        try:
            text = path_obj.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise GridError("invalid_grid_text", "grid text file is not valid UTF-8", f"{path_obj}: {exc}") from exc
        topology = GridTopology.from_text(text)
    elif suffix == ".npy":
        topology = GridTopology.from_mask(_load_npy(path_obj))
    elif suffix == ".json":
        topology = _load_json_grid(path_obj)
    elif suffix == ".nc":
        topology = _load_netcdf_grid(path_obj)
    else:
        raise GridError("unsupported_grid_format", "unsupported grid file suffix", suffix or str(path_obj))

    logger.info("loaded grid %s from %s", topology.shape(), path_obj)
    return topology


def _load_npy(path: Path) -> np.ndarray:
    try:
        return np.load(path, allow_pickle=False)
    except (ValueError, OSError, EOFError) as exc:
        raise GridError("invalid_grid_npy", "grid file is not a readable .npy array", f"{path}: {exc}") from exc


def _load_json_grid(path: Path) -> GridTopology:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise GridError("invalid_grid_json", "grid file is not valid JSON", f"{path}: {exc}") from exc
    rows = payload.get("walls") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise GridError("invalid_grid_json", "expected a list of rows or a 'walls' key", str(path))
    return GridTopology.from_rows(rows)


def _load_netcdf_grid(path: Path) -> GridTopology:
    import xarray as xr

    with xr.open_dataset(path) as ds:
        name = next((n for n in MASK_VAR_CANDIDATES if n in ds), None)
        if name is None:
            raise GridError(
                "mask_variable_missing",
                "no wall mask variable found in NetCDF file",
                f"{path}, candidates={MASK_VAR_CANDIDATES}",
            )
        values = np.asarray(ds[name].values)
    if values.ndim != 2:
        values = np.squeeze(values)
    return GridTopology.from_mask(np.nan_to_num(values, nan=1.0))


def save_grid_text(topology: GridTopology, path: str | Path) -> Path:
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    path_obj.write_text(topology.to_text() + "\n", encoding="utf-8")
    return path_obj


__all__ = ["load_grid", "save_grid_text", "MASK_VAR_CANDIDATES"]
