#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config.scenarios import load_all_scenarios
from ..config.schema import load_scenario
from ..core.dijkstra import FRONTIER_MODES, SearchResult, dijkstra
from ..core.events import iter_search_events, summarize_result
from ..core.grid import GridTopology, make_demo_grid
from ..core.roads import load_overpass_json, roads_to_grid
from ..exceptions import MapPathError
from ..io.geojson_light import roads_from_geojson
from ..io.grid_io import load_grid, save_grid_text
from ..logging_config import get_logger, set_run_id
from ..settings import settings
from .runner import run_scenario

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_UNREACHABLE = 1
EXIT_ERROR = 2


def _parse_cell(value: str) -> Tuple[int, int]:
    parts = value.split(",", 1)
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Invalid row,col pair: {value!r}")
    try:
        return int(parts[0].strip()), int(parts[1].strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid row,col pair: {value!r}") from exc


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def render_search(topology: GridTopology, result: SearchResult) -> str:
    """文本渲染：'#' 墙，'o' 已访问，'*' 最短路径，S/E 起终点。"""
    canvas: List[List[str]] = [list(row) for row in topology.to_text().splitlines()]
    for r, c in result.visited_in_order:
        canvas[r][c] = "o"
    for r, c in result.path():
        canvas[r][c] = "*"
    canvas[result.start[0]][result.start[1]] = "S"
    canvas[result.end[0]][result.end[1]] = "E"
    return "\n".join("".join(row) for row in canvas)


def _search_exit_code(result: SearchResult) -> int:
    return EXIT_OK if result.reached else EXIT_UNREACHABLE


def cmd_search(args: argparse.Namespace) -> int:
    topology = load_grid(args.grid)
    result = dijkstra(topology, args.start, args.end, frontier=args.frontier)
    summary = summarize_result(result)
    summary["path"] = [list(cell) for cell in result.path()]
    if args.events:
        summary["events"] = [event.to_dict() for event in iter_search_events(result)]
    if args.json:
        _emit(summary)
    else:
        print(render_search(topology, result))
        print(
            f"visited={summary['visited_count']} reached={summary['reached']} "
            f"path_length={summary['path_length']}"
        )
    return _search_exit_code(result)


def cmd_demo(args: argparse.Namespace) -> int:
    topology = make_demo_grid(args.ny, args.nx)
    result = dijkstra(topology, (0, 0), (0, args.nx - 1), frontier=args.frontier)
    print(render_search(topology, result))
    print(f"visited={result.expanded} path_length={len(result.path())}")
    return _search_exit_code(result)


def cmd_roads_grid(args: argparse.Namespace) -> int:
    if args.geojson:
        roads = roads_from_geojson(args.geojson)
    else:
        roads = load_overpass_json(args.overpass)
    _, topology = roads_to_grid(roads, args.ny, args.nx)
    out = save_grid_text(topology, args.out)
    logger.info("wrote %s grid to %s", topology.shape(), out)
    _emit({"out": str(out), "shape": list(topology.shape()), "open_fraction": round(topology.open_fraction(), 4)})
    return EXIT_OK


def cmd_plan(args: argparse.Namespace) -> int:
    spec = load_scenario(args.scenario)
    run = run_scenario(spec, output_geojson=args.out)
    _emit(run.summary())
    return EXIT_OK if run.reached else EXIT_UNREACHABLE


def cmd_scenario_list(args: argparse.Namespace) -> int:
    scenarios = load_all_scenarios()
    _emit({sid: spec.title or spec.description or "" for sid, spec in scenarios.items()})
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mappath", description="MapPath grid shortest-path CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="在网格文件上运行 Dijkstra 搜索")
    search.add_argument("--grid", required=True, help="网格文件（.txt/.npy/.json/.nc）")
    search.add_argument("--start", required=True, type=_parse_cell, help="起点 row,col")
    search.add_argument("--end", required=True, type=_parse_cell, help="终点 row,col")
    search.add_argument("--frontier", default=settings.DEFAULT_FRONTIER, choices=list(FRONTIER_MODES))
    search.add_argument("--json", action="store_true", help="以 JSON 输出摘要")
    search.add_argument("--events", action="store_true", help="JSON 中附带 visited / shortest-path 事件序列")
    search.set_defaults(func=cmd_search)

    demo = subparsers.add_parser("demo", help="在 demo 网格上演示搜索")
    demo.add_argument("--ny", type=int, default=12)
    demo.add_argument("--nx", type=int, default=24)
    demo.add_argument("--frontier", default=settings.DEFAULT_FRONTIER, choices=list(FRONTIER_MODES))
    demo.set_defaults(func=cmd_demo)

    roads = subparsers.add_parser("roads.grid", help="道路几何栅格化为文本网格")
    source = roads.add_mutually_exclusive_group(required=True)
    source.add_argument("--overpass", help="Overpass JSON 文件")
    source.add_argument("--geojson", help="GeoJSON 道路文件")
    roads.add_argument("--ny", type=int, default=60)
    roads.add_argument("--nx", type=int, default=80)
    roads.add_argument("--out", required=True, help="输出网格文本路径")
    roads.set_defaults(func=cmd_roads_grid)

    plan = subparsers.add_parser("plan", help="运行 YAML 场景")
    plan.add_argument("--scenario", required=True, help="场景 YAML 文件")
    plan.add_argument("--out", default=None, help="GeoJSON 输出路径（覆盖场景中的 output.geojson）")
    plan.set_defaults(func=cmd_plan)

    scen_list = subparsers.add_parser("scenario.list", help="列出预设场景")
    scen_list.set_defaults(func=cmd_scenario_list)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    previous = set_run_id(uuid.uuid4().hex[:8])
    try:
        return args.func(args)
    except MapPathError as err:
        logger.error("%s failed: %s", args.command, err)
        _emit({"error": err.to_dict()})
        return EXIT_ERROR
    finally:
        set_run_id(previous)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
