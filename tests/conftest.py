from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure(config):
    # 确保本仓库根目录排在 sys.path 最前，未安装时也能导入 mappath
    if str(PROJECT_ROOT) in sys.path:
        sys.path.remove(str(PROJECT_ROOT))
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def open_3x3():
    from mappath.core.grid import GridTopology

    return GridTopology.from_rows(["...", "...", "..."])


@pytest.fixture
def walled_row_3x3():
    from mappath.core.grid import GridTopology

    return GridTopology.from_rows(["...", "###", "..."])


@pytest.fixture
def overpass_payload():
    """两条相交道路：一条东西向、一条南北向。"""
    return {
        "version": 0.6,
        "elements": [
            {
                "type": "way",
                "id": 101,
                "tags": {"highway": "residential"},
                "geometry": [
                    {"lat": 48.860, "lon": 2.300},
                    {"lat": 48.860, "lon": 2.320},
                    {"lat": 48.860, "lon": 2.340},
                ],
            },
            {
                "type": "way",
                "id": 102,
                "tags": {"highway": "primary"},
                "geometry": [
                    {"lat": 48.850, "lon": 2.340},
                    {"lat": 48.870, "lon": 2.340},
                ],
            },
            {"type": "node", "id": 7, "lat": 48.86, "lon": 2.31},
        ],
    }
