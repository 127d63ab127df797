"""
Commuter Evacuation Model

Mesa model that owns everything shared by a run: the canonical road
network, the tick scheduler, the random stream, the agent registry, the
cohorts and their barriers, and the flood hazard.

Key Components:
- AgentSeed: Description of one commuter to create at setup
- SimulationMetrics: Per-tick time series collected during the run
- CommuterModel: Mesa model coordinating the simulation
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import mesa
import mesa_geo as mg
import numpy as np
from shapely.geometry import Point, box

from .agent import Activity, CommuterAgent
from .barrier import Cohort, CohortBarrier
from .config import AgentParameters, DailyRoutine, SimulationConfig, agent_preset
from .errors import MissingInitialPlacement
from .hazard import FloodHazard
from .network import RoadNetwork, RoadNode
from .position import localize
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class AgentSeed:
    """
    One commuter to create.

    Home and work anchors are given either as edge ids or as (x, y)
    coordinates; an edge id wins when both are present.
    """
    key: Optional[object] = None
    home_edge: Optional[object] = None
    work_edge: Optional[object] = None
    home: Optional[Tuple[float, float]] = None
    work: Optional[Tuple[float, float]] = None
    preset: str = 'main'


@dataclass
class SimulationMetrics:
    """Metrics collected during a commuter evacuation run."""
    time_steps: List[int]
    travelling: List[int]
    reached: List[int]
    evacuating: List[int]
    removed: List[int]
    mean_stress: List[float]
    max_stress: List[float]
    failed_moves: List[int]
    closed_edges: List[int]

    total_agents: int = 0
    first_evacuation_tick: Optional[int] = None
    last_removal_tick: Optional[int] = None

    def __init__(self):
        self.time_steps = []
        self.travelling = []
        self.reached = []
        self.evacuating = []
        self.removed = []
        self.mean_stress = []
        self.max_stress = []
        self.failed_moves = []
        self.closed_edges = []
        self.total_agents = 0
        self.first_evacuation_tick = None
        self.last_removal_tick = None

    def as_dict(self) -> Dict[str, list]:
        return {
            'tick': list(self.time_steps),
            'travelling': list(self.travelling),
            'reached': list(self.reached),
            'evacuating': list(self.evacuating),
            'removed': list(self.removed),
            'mean_stress': list(self.mean_stress),
            'max_stress': list(self.max_stress),
            'failed_moves': list(self.failed_moves),
            'closed_edges': list(self.closed_edges),
        }


# =============================================================================
# Model
# =============================================================================

class CommuterModel(mesa.Model):
    """
    Mesa model for the commuter evacuation simulation.

    Manages:
    - The frozen canonical road network and the world bounds
    - Population setup, social ties and cohorts
    - Flood hazard scheduling and safe-node selection
    - Agent removal and metrics collection
    """

    def __init__(self, network: RoadNetwork, config: Optional[SimulationConfig] = None):
        super().__init__()
        self.config = config or SimulationConfig()
        self.config.validate()
        self.random.seed(self.config.seed)
        self.rng = np.random.default_rng(self.config.seed)
        self.space = mg.GeoSpace(crs=self.config.crs, warn_crs_conversion=False)
        self.scheduler = Scheduler(self.config.ticks_per_day, self.config.minutes_per_tick)

        if not network.frozen:
            network.freeze()
        self.network = network
        if self.config.world_bounds is not None:
            self.world_bounds = box(*self.config.world_bounds)
        else:
            self.world_bounds = network.bounds_polygon()

        self.step_count = 0
        self.metrics = SimulationMetrics()

        # Agent tracking
        self.commuters: Dict[object, CommuterAgent] = {}
        self.cohorts: Dict[str, Cohort] = {}
        self.barriers: Dict[str, CohortBarrier] = {}
        self.rejected_seeds: List[object] = []
        self.removed_count = 0
        self._removal_listeners: List[Callable[[CommuterAgent], None]] = []
        self._next_key = 0

        # Hazard and safe zones
        self.hazard: Optional[FloodHazard] = None
        self._safe_nodes: Dict[float, List[RoadNode]] = {}

    # -------------------------------------------------------------------------
    # Cohorts and population
    # -------------------------------------------------------------------------

    def add_cohort(self, name: str, to_work: bool = True, start_tick: Optional[int] = None) -> Cohort:
        """Create a cohort and register its barrier with the scheduler."""
        if name in self.cohorts:
            raise ValueError(f"Cohort '{name}' already exists")
        cohort = Cohort(name, to_work=to_work)
        barrier = CohortBarrier(cohort)
        if start_tick is None:
            start_tick = self.config.barrier_start_tick
        barrier.register(self.scheduler, start_tick=start_tick, order=self.config.barrier_order)
        self.cohorts[name] = cohort
        self.barriers[name] = barrier
        return cohort

    def _allocate_key(self):
        while self._next_key in self.commuters:
            self._next_key += 1
        key = self._next_key
        self._next_key += 1
        return key

    def _work_anchor(self, seed: AgentSeed, key):
        if seed.work_edge is not None:
            edge = self.network.edge(seed.work_edge)
            if edge is None:
                raise MissingInitialPlacement(key, f"unknown work edge {seed.work_edge}")
            return edge.u.coordinate
        if seed.work is not None:
            return tuple(seed.work)
        raise MissingInitialPlacement(key, "seed has no work anchor")

    def add_population(self, seeds, cohort=None, params: Optional[AgentParameters] = None,
                       routine: Optional[DailyRoutine] = None) -> List[CommuterAgent]:
        """
        Create commuters from seeds.

        Seeds that cannot be placed on the network are logged and skipped.

        Args:
            seeds: Iterable of AgentSeed
            cohort: Cohort or cohort name for barrier-synchronised commuters
            params: Parameters for every agent (default: the seed's preset)
            routine: DailyRoutine for routine-driven commuters

        Returns:
            List of created agents

        Raises:
            ValueError: parameters out of range or a duplicate agent key
        """
        if isinstance(cohort, str):
            cohort = self.cohorts.get(cohort) or self.add_cohort(cohort)

        if params is not None:
            params.validate()

        admitted = []
        rejected = 0
        for seed in seeds:
            key = seed.key if seed.key is not None else self._allocate_key()
            if key in self.commuters:
                raise ValueError(f"Duplicate agent key {key!r}")
            try:
                position = localize(self.network, key, coordinate=seed.home, edge_id=seed.home_edge,
                                    max_distance=self.config.max_snap_distance)
                work = self._work_anchor(seed, key)
            except MissingInitialPlacement as exc:
                logger.warning("Skipping agent: %s", exc)
                self.rejected_seeds.append(key)
                rejected += 1
                continue

            home = tuple(seed.home) if seed.home is not None else position.point().coords[0]
            agent_params = params or agent_preset(seed.preset)
            agent_params.validate()
            agent = CommuterAgent(
                model=self,
                key=key,
                position=position,
                home=home,
                work=work,
                params=agent_params,
                routine=routine,
                cohort=cohort,
            )
            self.commuters[key] = agent
            self.space.add_agents(agent)
            agent.schedule_handle = self.scheduler.schedule_repeating(
                agent.step, start_tick=self.scheduler.current_tick + 1, order=self.config.agent_order
            )
            if cohort is not None:
                cohort.add(agent)
            admitted.append(agent)

        for agent in admitted:
            if routine is not None:
                agent.init_routine()
            elif cohort is not None:
                agent.start_trip(cohort.to_work)

        self.metrics.total_agents += len(admitted)
        logger.info("Population loaded: %d admitted, %d rejected", len(admitted), rejected)
        return admitted

    def commuter(self, key) -> Optional[CommuterAgent]:
        return self.commuters.get(key)

    def add_tie(self, a_key, b_key, weight: float = 1.0, mutual: bool = True):
        """Connect two commuters in the social network."""
        a, b = self.commuters.get(a_key), self.commuters.get(b_key)
        if a is None or b is None:
            raise KeyError(f"Unknown agent in tie ({a_key!r}, {b_key!r})")
        if a is b:
            raise ValueError(f"Agent {a_key!r} cannot be tied to itself")
        a.add_tie(b, weight)
        if mutual:
            b.add_tie(a, weight)

    # -------------------------------------------------------------------------
    # Hazard and safe nodes
    # -------------------------------------------------------------------------

    def add_hazard(self, hazard: FloodHazard) -> FloodHazard:
        """Attach a flood hazard and schedule its onset."""
        if self.hazard is not None:
            raise ValueError("A hazard is already attached to this model")
        self.hazard = hazard
        hazard.register(self.scheduler, self.network, order=self.config.hazard_order)
        self._safe_nodes.clear()
        return hazard

    def safe_nodes(self, comfort_distance: float) -> List[RoadNode]:
        """
        Candidate evacuation destinations.

        Configured safe node ids win; otherwise nodes beyond comfort_distance
        from every flood zone centroid; otherwise every node.
        """
        if comfort_distance in self._safe_nodes:
            return self._safe_nodes[comfort_distance]

        nodes: List[RoadNode] = []
        if self.config.safe_node_ids:
            nodes = [self.network.node(i) for i in self.config.safe_node_ids]
            nodes = [n for n in nodes if n is not None]
        elif self.hazard is not None:
            nodes = [n for n in self.network.nodes.values()
                     if self.hazard.beyond_comfort(n, comfort_distance)]
        if not nodes:
            nodes = list(self.network.nodes.values())

        self._safe_nodes[comfort_distance] = nodes
        return nodes

    def nearest_safe_node(self, point, comfort_distance: float = 10000.0) -> RoadNode:
        if not isinstance(point, Point):
            point = Point(point)
        candidates = self.safe_nodes(comfort_distance)
        return min(candidates, key=lambda n: (n.point.distance(point), str(n.node_id)))

    def in_bounds(self, point) -> bool:
        if not isinstance(point, Point):
            point = Point(point)
        return self.world_bounds.covers(point)

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    def on_removed(self, listener: Callable[[CommuterAgent], None]):
        """Register a callback invoked with each agent that leaves the simulation."""
        self._removal_listeners.append(listener)

    def remove_commuter(self, agent: CommuterAgent):
        """Take an agent out of the simulation and out of every collection."""
        if agent.removed:
            return
        agent.detach()
        self.space.remove_agent(agent)
        self.commuters.pop(agent.key, None)
        if agent.cohort is not None:
            agent.cohort.remove(agent)
        self.removed_count += 1
        self.metrics.last_removal_tick = self.scheduler.current_tick
        logger.info("Agent %s left the simulation at tick %d", agent.key, self.scheduler.current_tick)
        for listener in self._removal_listeners:
            listener(agent)
        agent.remove()

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def collect_metrics(self):
        """Collect simulation metrics."""
        agents = list(self.commuters.values())
        stresses = [a.stress for a in agents]
        evacuating = sum(1 for a in agents if a.activity is Activity.EVACUATE)

        if evacuating and self.metrics.first_evacuation_tick is None:
            self.metrics.first_evacuation_tick = self.scheduler.current_tick

        self.metrics.time_steps.append(self.scheduler.current_tick)
        self.metrics.travelling.append(sum(1 for a in agents if a.activity is Activity.TRAVEL))
        self.metrics.reached.append(sum(1 for a in agents if a.reached_destination))
        self.metrics.evacuating.append(evacuating)
        self.metrics.removed.append(self.removed_count)
        self.metrics.mean_stress.append(float(np.mean(stresses)) if stresses else 0.0)
        self.metrics.max_stress.append(float(np.max(stresses)) if stresses else 0.0)
        self.metrics.failed_moves.append(sum(a.failed_moves for a in agents))
        self.metrics.closed_edges.append(len(self.network.closed_edges()))

    def step(self):
        """Advance the simulation by one tick."""
        self.scheduler.step()
        self.collect_metrics()
        self.step_count += 1

    def run(self, max_ticks: Optional[int] = None) -> SimulationMetrics:
        """
        Run until max_ticks or until every commuter has left.

        Args:
            max_ticks: Number of ticks to run (default: config.max_ticks)

        Returns:
            SimulationMetrics
        """
        if max_ticks is None:
            max_ticks = self.config.max_ticks
        total = len(self.commuters) + self.removed_count

        logger.info("Running commuter simulation (%d agents, %d ticks)", total, max_ticks)
        end = self.step_count + max_ticks
        while self.step_count < end:
            self.step()

            if self.step_count % self.config.report_interval == 0:
                day, hour, minute = self.scheduler.time_of_day()
                logger.info("Day %d %02d:%02d - travelling: %d, evacuating: %d, removed: %d/%d, mean stress: %.2f",
                            day, hour, minute, self.metrics.travelling[-1], self.metrics.evacuating[-1],
                            self.removed_count, total, self.metrics.mean_stress[-1])

            if total and not self.commuters:
                logger.info("Every agent has left the simulation at tick %d", self.scheduler.current_tick)
                break

        logger.info("Simulation complete: %d ticks, %d/%d agents removed",
                    self.step_count, self.removed_count, total)
        return self.metrics

    def teardown(self):
        """Cancel every pending scheduled event."""
        for barrier in self.barriers.values():
            barrier.stop()
        self.scheduler.clear()
