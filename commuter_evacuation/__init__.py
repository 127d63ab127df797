"""
Commuter Evacuation Package

Agent-based simulation of commuters on a road network who react to flooding:
stress spreads over social ties, blocked roads force replanning, and
stressed agents evacuate towards safe nodes.

Organized structure:
- core: Network, movement, planning, scheduling and model components
- scenarios: Runnable study set-ups (synthetic grid, OpenStreetMap)
- analysis: Metrics tables and summaries
- runners: Command-line entry point
"""

# Core components
from .core import (
    AgentParameters,
    AGENT_PRESETS,
    agent_preset,
    DailyRoutine,
    SimulationConfig,
    SimulationError,
    PlanningFailure,
    ObstructionEncountered,
    MissingInitialPlacement,
    RoadNetwork,
    FamiliarNetwork,
    build_grid_network,
    Scheduler,
    Cohort,
    CohortBarrier,
    Activity,
    MoveResult,
    CommuterAgent,
    FloodHazard,
    AgentSeed,
    SimulationMetrics,
    CommuterModel,
    load_population_csv,
)

# Scenarios
from .scenarios import run_grid_flood_scenario, run_osm_flood_scenario

# Analysis
from .analysis import metrics_to_dataframe, summarize_run

__all__ = [
    # Core
    'AgentParameters',
    'AGENT_PRESETS',
    'agent_preset',
    'DailyRoutine',
    'SimulationConfig',
    'SimulationError',
    'PlanningFailure',
    'ObstructionEncountered',
    'MissingInitialPlacement',
    'RoadNetwork',
    'FamiliarNetwork',
    'build_grid_network',
    'Scheduler',
    'Cohort',
    'CohortBarrier',
    'Activity',
    'MoveResult',
    'CommuterAgent',
    'FloodHazard',
    'AgentSeed',
    'SimulationMetrics',
    'CommuterModel',
    'load_population_csv',
    # Scenarios
    'run_grid_flood_scenario',
    'run_osm_flood_scenario',
    # Analysis
    'metrics_to_dataframe',
    'summarize_run',
]

__version__ = '1.0.0'
