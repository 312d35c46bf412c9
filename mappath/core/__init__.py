"""
MapPath core module.

包含网格拓扑、Dijkstra 搜索、搜索事件流、道路栅格化与经纬度规划。
"""

__all__ = ["grid", "dijkstra", "events", "roads", "planner"]
