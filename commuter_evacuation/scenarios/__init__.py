"""
Commuter flood scenarios.

Contains:
- Grid flood (four synchronised cohorts on a synthetic grid)
- OSM flood (routine-driven commuters on an OpenStreetMap network)
"""

from .scenario_grid_flood import run_grid_flood_scenario
from .scenario_osm_flood import run_osm_flood_scenario

__all__ = [
    'run_grid_flood_scenario',
    'run_osm_flood_scenario',
]
