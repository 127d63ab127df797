"""
Core model components: road network, movement, planning, scheduling,
agents and the simulation model.
"""

from .config import AgentParameters, AGENT_PRESETS, agent_preset, DailyRoutine, SimulationConfig
from .errors import (
    SimulationError,
    InvalidNetworkError,
    PlanningFailure,
    ObstructionEncountered,
    MissingInitialPlacement,
)
from .network import RoadNode, RoadEdge, RoadNetwork, FamiliarNetwork, build_grid_network, load_osm_network
from .position import EdgePosition, advance, locate, localize, start_of, end_of
from .planner import plan, plan_with_fallback, route_length
from .scheduler import Scheduler, ScheduledEvent
from .barrier import Cohort, CohortBarrier
from .agent import Activity, MoveResult, CommuterAgent
from .hazard import FloodHazard
from .model import AgentSeed, SimulationMetrics, CommuterModel
from .population import load_population_csv, seeds_from_frame, seeds_from_records

__all__ = [
    'AgentParameters',
    'AGENT_PRESETS',
    'agent_preset',
    'DailyRoutine',
    'SimulationConfig',
    'SimulationError',
    'InvalidNetworkError',
    'PlanningFailure',
    'ObstructionEncountered',
    'MissingInitialPlacement',
    'RoadNode',
    'RoadEdge',
    'RoadNetwork',
    'FamiliarNetwork',
    'build_grid_network',
    'load_osm_network',
    'EdgePosition',
    'advance',
    'locate',
    'localize',
    'start_of',
    'end_of',
    'plan',
    'plan_with_fallback',
    'route_length',
    'Scheduler',
    'ScheduledEvent',
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
    'seeds_from_frame',
    'seeds_from_records',
]
