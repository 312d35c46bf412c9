"""Scenario configuration: YAML schema and preset scenarios."""
