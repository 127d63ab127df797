"""
Configuration records for the commuter evacuation model.

All tunable values live in plain dataclasses so that scenarios can build a
configuration in code, or load one from a JSON-like mapping.

Key Components:
- AgentParameters: per-agent movement, contagion and stress parameters
- AGENT_PRESETS: named parameter sets for the different population types
- DailyRoutine: wall-clock times that drive the daily activity schedule
- SimulationConfig: model-wide settings (clock, seed, bounds, safe nodes)
"""

from dataclasses import dataclass, field, fields, asdict, replace
from typing import Dict, List, Optional, Tuple


# =============================================================================
# Agent Parameters
# =============================================================================

@dataclass
class AgentParameters:
    """Behavioural parameters for a single commuter."""
    # Movement (metres per tick; 650 m per 5 min is roughly 5 mph)
    speed: float = 650.0

    # Social contact
    communication_success_prob: float = 0.8
    contact_success_prob: float = 0.5
    contagion_rate: float = 0.5

    # Stress dynamics
    decay_param: float = 0.5
    evacuation_threshold: float = 8.0
    hazard_stress: float = 2.0
    obstruction_stress: float = 1.0

    # Perception of danger (metres)
    comfort_distance: float = 10000.0
    observation_distance: float = 1000.0

    # Wandering fallback search radius (metres)
    fallback_radius: float = 1000.0

    def validate(self):
        """Raise ValueError if any parameter is out of range."""
        for name in ('communication_success_prob', 'contact_success_prob', 'decay_param'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.speed <= 0:
            raise ValueError(f"speed must be positive, got {self.speed}")
        if not 0.0 <= self.evacuation_threshold <= 10.0:
            raise ValueError(f"evacuation_threshold must be within [0, 10], got {self.evacuation_threshold}")
        if self.fallback_radius < 0 or self.observation_distance < 0:
            raise ValueError("distances must be non-negative")


# Population types of the Norfolk study area, expressed as parameter sets
# instead of separate agent classes.
AGENT_PRESETS: Dict[str, AgentParameters] = {
    'main': AgentParameters(),
    'ngo': AgentParameters(
        speed=800.0,
        communication_success_prob=0.95,
        contact_success_prob=0.7,
        evacuation_threshold=9.5,
    ),
    'elderly': AgentParameters(
        speed=300.0,
        contact_success_prob=0.3,
        decay_param=0.3,
        evacuation_threshold=6.0,
    ),
    'limited_actions': AgentParameters(
        speed=200.0,
        communication_success_prob=0.5,
        contact_success_prob=0.2,
        fallback_radius=250.0,
    ),
}


def agent_preset(name: str, **overrides) -> AgentParameters:
    """
    Get a copy of a named parameter preset.

    Args:
        name: Key in AGENT_PRESETS
        **overrides: Field values replacing the preset's

    Returns:
        New AgentParameters instance
    """
    if name not in AGENT_PRESETS:
        raise KeyError(f"Unknown agent preset '{name}' (known: {sorted(AGENT_PRESETS)})")
    return replace(AGENT_PRESETS[name], **overrides)


# =============================================================================
# Daily Schedule
# =============================================================================

@dataclass
class DailyRoutine:
    """Wall-clock (hour, minute) times of the daily activity schedule."""
    wake: Tuple[int, int] = (7, 0)
    leave_home: Tuple[int, int] = (8, 0)
    leave_work: Tuple[int, int] = (17, 0)
    sleep: Tuple[int, int] = (23, 0)

    def __post_init__(self):
        for name in ('wake', 'leave_home', 'leave_work', 'sleep'):
            hour, minute = getattr(self, name)
            if not (0 <= hour < 24 and 0 <= minute < 60):
                raise ValueError(f"Invalid {name} time {hour}:{minute}")
            setattr(self, name, (int(hour), int(minute)))

    def entries(self):
        """(hour, minute, event name) tuples in the order they occur in a day."""
        items = [
            (self.wake, 'wake'),
            (self.leave_home, 'leave_home'),
            (self.leave_work, 'leave_work'),
            (self.sleep, 'sleep'),
        ]
        items.sort(key=lambda item: item[0])
        return [(hm[0], hm[1], name) for hm, name in items]


# =============================================================================
# Simulation Configuration
# =============================================================================

@dataclass
class SimulationConfig:
    """Configuration for a commuter evacuation run."""
    # Clock (one tick = 5 simulated minutes, 288 ticks = one day)
    minutes_per_tick: int = 5
    ticks_per_day: int = 288
    max_ticks: int = 288 * 2

    # Spatial reference (metric CRS so that lengths are metres)
    crs: str = "EPSG:27700"

    # World bounds (minx, miny, maxx, maxy); None = network total bounds
    world_bounds: Optional[Tuple[float, float, float, float]] = None

    # Evacuation destinations
    safe_node_ids: List[int] = field(default_factory=list)

    # Initial placement: maximum snap distance from seed point to an edge
    max_snap_distance: float = 500.0

    # Scheduling orderings within a tick (lower runs first)
    agent_order: int = 0
    hazard_order: int = -10
    barrier_order: int = 10
    barrier_start_tick: int = 0

    # Progress reporting interval (ticks)
    report_interval: int = 12

    # Random seed
    seed: int = 42

    @property
    def ticks_per_hour(self) -> int:
        return 60 // self.minutes_per_tick

    def validate(self):
        """Raise ValueError if the clock settings are inconsistent."""
        if self.minutes_per_tick <= 0 or 60 % self.minutes_per_tick != 0:
            raise ValueError(f"minutes_per_tick must divide an hour, got {self.minutes_per_tick}")
        if self.ticks_per_day != 24 * self.ticks_per_hour:
            raise ValueError(
                f"ticks_per_day ({self.ticks_per_day}) does not match "
                f"minutes_per_tick ({self.minutes_per_tick})"
            )
        if self.max_ticks < 0:
            raise ValueError("max_ticks must be non-negative")
        if self.report_interval <= 0:
            raise ValueError(f"report_interval must be positive, got {self.report_interval}")
        if self.world_bounds is not None:
            minx, miny, maxx, maxy = self.world_bounds
            if minx >= maxx or miny >= maxy:
                raise ValueError(f"world_bounds is empty: {self.world_bounds}")

    @classmethod
    def from_dict(cls, data: Dict) -> 'SimulationConfig':
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if kwargs.get('world_bounds') is not None:
            kwargs['world_bounds'] = tuple(kwargs['world_bounds'])
        config = cls(**kwargs)
        config.validate()
        return config

    def to_dict(self) -> Dict:
        return asdict(self)
