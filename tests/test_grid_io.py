"""
网格文件读写测试。
"""

from __future__ import annotations

import json

import numpy as np
import pytest

from mappath.core.grid import GridTopology
from mappath.exceptions import GridError
from mappath.io.grid_io import load_grid, save_grid_text


def test_text_grid_round_trip(tmp_path):
    topology = GridTopology.from_rows([".#.", "..."])
    path = save_grid_text(topology, tmp_path / "sub" / "grid.txt")

    loaded = load_grid(path)
    assert loaded.walls.tolist() == topology.walls.tolist()


def test_load_npy_grid(tmp_path):
    path = tmp_path / "grid.npy"
    np.save(path, np.array([[0, 1, 0], [0, 0, 0]], dtype=np.int8))

    loaded = load_grid(path)
    assert loaded.shape() == (2, 3)
    assert loaded.is_wall((0, 1))


@pytest.mark.parametrize("payload", [
    {"walls": [[0, 1], [0, 0]]},
    [".#", ".."],
])
def test_load_json_grid(tmp_path, payload):
    path = tmp_path / "grid.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    loaded = load_grid(path)
    assert loaded.is_wall((0, 1))
    assert not loaded.is_wall((1, 1))


def test_load_json_grid_rejects_scalar(tmp_path):
    path = tmp_path / "grid.json"
    path.write_text("42", encoding="utf-8")
    with pytest.raises(GridError) as excinfo:
        load_grid(path)
    assert excinfo.value.code == "invalid_grid_json"


def test_load_netcdf_grid(tmp_path):
    xr = pytest.importorskip("xarray")
    pytest.importorskip("scipy")

    mask = np.array([[0, 1, 0], [0, 0, 1]], dtype=np.int8)
    ds = xr.Dataset({"land_mask": (("y", "x"), mask)})
    path = tmp_path / "grid.nc"
    ds.to_netcdf(path, engine="scipy")

    loaded = load_grid(path)
    assert loaded.walls.tolist() == mask.astype(bool).tolist()


def test_missing_file(tmp_path):
    with pytest.raises(GridError) as excinfo:
        load_grid(tmp_path / "nope.txt")
    assert excinfo.value.code == "grid_file_not_found"


def test_unsupported_suffix(tmp_path):
    path = tmp_path / "grid.csv"
    path.write_text("0,1\n", encoding="utf-8")
    with pytest.raises(GridError) as excinfo:
        load_grid(path)
    assert excinfo.value.code == "unsupported_grid_format"


@pytest.mark.parametrize("payload", [
    {"walls": [0, 1]},
    [[0, 1], 7],
])
def test_load_json_grid_rejects_non_sequence_rows(tmp_path, payload):
    """行既不是字符串也不是序列时抛出 GridError，而不是 TypeError。"""
    path = tmp_path / "grid.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(GridError) as excinfo:
        load_grid(path)
    assert excinfo.value.code == "invalid_grid_row"
    assert "row" in excinfo.value.detail


def test_load_corrupt_npy(tmp_path):
    path = tmp_path / "grid.npy"
    path.write_bytes(b"this is not a numpy file")
    with pytest.raises(GridError) as excinfo:
        load_grid(path)
    assert excinfo.value.code == "invalid_grid_npy"


def test_load_text_grid_with_invalid_encoding(tmp_path):
    path = tmp_path / "grid.txt"
    path.write_bytes(b"..\xff\n...\n")
    with pytest.raises(GridError) as excinfo:
        load_grid(path)
    assert excinfo.value.code == "invalid_grid_text"
