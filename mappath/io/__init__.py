"""Grid and GeoJSON input/output helpers."""
