"""Preset scenario loading helpers."""

from __future__ import annotations

from pathlib import Path
from typing import List

import yaml

from ..exceptions import ScenarioConfigError
from ..settings import settings
from .schema import ScenarioSpec, parse_scenario

DEFAULT_SCENARIOS_PATH = Path(__file__).resolve().parent / "scenarios.yaml"


def load_all_scenarios(config_path: str | Path | None = None) -> dict[str, ScenarioSpec]:
    """Load every preset scenario and return a mapping of id -> ScenarioSpec.

    Relative data paths inside presets resolve against ``settings.DATA_DIR``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_SCENARIOS_PATH
    if not path.exists():
        raise ScenarioConfigError("scenario_not_found", "scenario presets not found", str(path))

    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ScenarioConfigError("invalid_scenario", "scenario presets must be a mapping at top level", str(path))

    raw_scenarios = payload.get("scenarios") or {}
    if not isinstance(raw_scenarios, dict):
        raise ScenarioConfigError("invalid_scenario", "'scenarios' must be a mapping of id -> config", str(path))

    base_dir = Path(settings.DATA_DIR)
    scenarios: dict[str, ScenarioSpec] = {}
    for scen_id, raw in raw_scenarios.items():
        if not isinstance(raw, dict):
            raise ScenarioConfigError("invalid_scenario", f"scenario '{scen_id}' must be a mapping of fields", str(path))
        data = {"name": str(scen_id), **raw}
        scenarios[str(scen_id)] = parse_scenario(data, source=f"{path}:{scen_id}", base_dir=base_dir)
    return scenarios


def get_scenario_ids() -> List[str]:
    return list(load_all_scenarios().keys())


def get_scenario_by_name(name: str) -> ScenarioSpec | None:
    return load_all_scenarios().get(name)


__all__ = ["DEFAULT_SCENARIOS_PATH", "load_all_scenarios", "get_scenario_ids", "get_scenario_by_name"]
