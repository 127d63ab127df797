"""
Commuter Agent

A commuter moves along the road network between home and work, carries a
stress level that decays each tick and spreads over social ties, and
switches to evacuation when stress crosses a threshold or it runs into a
closed road.

Key Components:
- Activity: What the agent is doing (travel, work, relax, sleep, evacuate)
- MoveResult: Outcome of one navigation step
- CommuterAgent: mesa-geo agent combining position, route, stress and routine
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

import mesa_geo as mg

from .config import AgentParameters, DailyRoutine
from .errors import ObstructionEncountered, PlanningFailure
from .network import RoadEdge, RoadNode
from .planner import plan_with_fallback, route_length
from .position import EdgePosition, advance, start_of

logger = logging.getLogger(__name__)

STRESS_MIN = 0.0
STRESS_MAX = 10.0


# =============================================================================
# States
# =============================================================================

class Activity(str, Enum):
    TRAVEL = 'travel'
    WORK = 'work'
    RELAX = 'relax'
    SLEEP = 'sleep'
    EVACUATE = 'evacuate'


class MoveResult(Enum):
    MOVED = 'moved'          # progressed, route not finished
    ARRIVED = 'arrived'      # route finished this tick
    IDLE = 'idle'            # no route to follow
    REPLANNED = 'replanned'  # hit a closed edge and found another route
    FAILED = 'failed'        # hit a closed edge and found nothing; retried later


def clamp_stress(value: float) -> float:
    return min(max(value, STRESS_MIN), STRESS_MAX)


# =============================================================================
# Agent
# =============================================================================

class CommuterAgent(mg.GeoAgent):
    """
    Commuter travelling between two anchor coordinates.

    Attributes:
        key: Stable identity used for ties and the model registry
        home, work: Anchor (x, y) coordinates
        params: AgentParameters (speed, contagion, thresholds)
        routine: DailyRoutine or None for barrier-driven cohort members
        cohort: Cohort the agent belongs to, if any
        position: EdgePosition on the road network
        path: Remaining edges; path[0] is the current or next edge
        familiar: FamiliarNetwork, the agent's own view of the roads
        target: Current destination coordinate
        waypoint: Intermediate node chosen by the fallback, if any
        activity: Current Activity
        stress: Stress level in [0, 10]
        ties: Mapping of other agents' keys to tie weights
        reached_destination: True once the current target has been reached
        heading_to_work: Commute direction
        last_acted: Last tick at which step() ran
        removed: True once the agent has left the simulation
    """

    def __init__(self, model, key, position: EdgePosition, home, work,
                 params: Optional[AgentParameters] = None,
                 routine: Optional[DailyRoutine] = None,
                 cohort=None, crs=None):
        super().__init__(model, position.point(), crs if crs is not None else model.config.crs)
        self.key = key
        self.home = tuple(home)
        self.work = tuple(work)
        self.params = params or AgentParameters()
        self.routine = routine
        self.cohort = cohort

        self.position = position
        self.path: List[RoadEdge] = []
        self.familiar = model.network.clone()
        self.target = None
        self.waypoint: Optional[RoadNode] = None
        self.needs_route = False

        self.activity = Activity.RELAX
        self.heading_to_work = True
        self.reached_destination = False
        self.stress = 0.0
        self.ties: Dict[object, float] = {}

        self.last_acted = -1
        self.removed = False
        self.schedule_handle = None
        self.last_result = MoveResult.IDLE
        self.failed_moves = 0
        self.evacuation_tick = None
        self.obstructed_edges: List[object] = []
        self._next_transition = None

        position.edge.add_occupant(self)

    # -------------------------------------------------------------------------
    # Location
    # -------------------------------------------------------------------------

    @property
    def node(self) -> RoadNode:
        """Current node: the faced node once reached, otherwise the origin."""
        if self.position.at_facing:
            return self.position.facing
        return self.position.origin

    def _enter(self, position: EdgePosition):
        if position.edge is not self.position.edge:
            self.position.edge.remove_occupant(self)
            position.edge.add_occupant(self)
        self.position = position

    def _sync_geometry(self):
        self.geometry = self.position.point()

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    def plan_route(self, target=None):
        """
        Replace the path with a route to `target` (default: current target).

        Standing on a node, the route starts there. Mid-edge, both ends of
        the current edge are tried and the cheaper option wins, preferring
        direct routes over fallback ones; ties keep the current direction.

        Raises:
            PlanningFailure: no route and no fallback node is reachable
        """
        if target is not None:
            self.target = target
        network = self.model.network
        radius = self.params.fallback_radius
        here = self.position

        if here.at_facing or here.at_origin:
            node = self.node
            path, waypoint = plan_with_fallback(self.familiar, network, node, self.target, radius)
            self.path = list(path)
            self.waypoint = waypoint
            if self.path:
                start = start_of(self.path[0], node)
                if start != self.position:
                    self._enter(start)
            return

        options = []
        for candidate in (here, here.reversed()):
            try:
                route, waypoint = plan_with_fallback(self.familiar, network, candidate.facing,
                                                     self.target, radius)
            except PlanningFailure:
                continue
            cost = candidate.remaining + route_length(route)
            options.append((waypoint is not None, cost, candidate, route, waypoint))

        if not options:
            target_node = network.nearest_node(self.target)
            raise PlanningFailure(here.facing.node_id, target_node.node_id, "no route from either end of edge")

        best = min(options, key=lambda option: (option[0], option[1]))
        _, _, chosen, route, waypoint = best
        self.position = chosen
        self.path = [chosen.edge] + list(route)
        self.waypoint = waypoint

    def _request_route(self) -> bool:
        try:
            self.plan_route()
        except PlanningFailure as failure:
            self.path = []
            self.needs_route = True
            self.failed_moves += 1
            logger.warning("Agent %s cannot plan a route: %s", self.key, failure)
            return False
        self.needs_route = False
        if not self.path:
            self._on_arrival()
        return True

    def _traverse(self):
        """Spend this tick's movement budget along the path."""
        budget = self.params.speed
        while self.path:
            edge = self.path[0]
            entering = edge is not self.position.edge or self.position.at_origin
            if entering and edge.closed:
                raise ObstructionEncountered(edge)
            if budget <= 0:
                break
            if edge is not self.position.edge:
                self._enter(start_of(edge, self.node))
            self.position, overrun = advance(self.position, budget)
            if not self.position.at_facing:
                break
            self.path.pop(0)
            budget = overrun

    def navigate(self) -> MoveResult:
        """
        Advance along the path by one tick's distance.

        A closed edge ahead is dropped from the familiar network and the
        route is replanned (with the wandering fallback) from where the
        agent stands.
        """
        if not self.path:
            return MoveResult.IDLE
        try:
            self._traverse()
        except ObstructionEncountered as obstruction:
            self._sync_geometry()
            return self._handle_obstruction(obstruction.edge)
        self._sync_geometry()
        if not self.path:
            return MoveResult.ARRIVED
        return MoveResult.MOVED

    def _handle_obstruction(self, edge: RoadEdge) -> MoveResult:
        self.familiar.remove_edge(edge)
        if edge.edge_id not in self.obstructed_edges:
            self.obstructed_edges.append(edge.edge_id)
        self.raise_stress(self.params.obstruction_stress)
        logger.debug("Agent %s blocked by edge %s", self.key, edge.edge_id)
        try:
            self.plan_route()
        except PlanningFailure as failure:
            self.path = []
            self.needs_route = True
            self.failed_moves += 1
            logger.warning("Agent %s stuck at node %s: %s", self.key, self.node.node_id, failure)
            return MoveResult.FAILED
        if not self.path:
            return MoveResult.ARRIVED
        return MoveResult.REPLANNED

    def _on_arrival(self):
        if self.waypoint is not None:
            logger.debug("Agent %s reached fallback node %s", self.key, self.waypoint.node_id)
            self.waypoint = None
            self._request_route()
            return
        self.reached_destination = True
        if self.activity is Activity.TRAVEL:
            self.activity = Activity.WORK if self.heading_to_work else Activity.RELAX
        elif self.activity is Activity.EVACUATE:
            logger.info("Agent %s reached safety at tick %s", self.key, self.model.scheduler.current_tick)

    # -------------------------------------------------------------------------
    # Trips
    # -------------------------------------------------------------------------

    def start_trip(self, to_work: Optional[bool] = None):
        """Set off towards work or home (default: current commute direction)."""
        if to_work is not None:
            self.heading_to_work = to_work
        self.target = self.work if self.heading_to_work else self.home
        self.activity = Activity.TRAVEL
        self.reached_destination = False
        self.waypoint = None
        self._request_route()

    def flip_path(self):
        """Swap the destination to the opposite anchor and replan."""
        if self.removed or self.activity is Activity.EVACUATE:
            return
        self.start_trip(not self.heading_to_work)

    def begin_evacuation(self):
        """Abandon the current activity and head for the nearest safe node."""
        if self.activity is Activity.EVACUATE:
            return
        safe_node = self.model.nearest_safe_node(self.geometry, self.params.comfort_distance)
        self.activity = Activity.EVACUATE
        self.evacuation_tick = self.model.scheduler.current_tick
        self.target = safe_node.coordinate
        self.reached_destination = False
        self.waypoint = None
        logger.info("Agent %s evacuating towards node %s (stress %.2f)", self.key, safe_node.node_id, self.stress)
        self._request_route()

    # -------------------------------------------------------------------------
    # Stress
    # -------------------------------------------------------------------------

    def raise_stress(self, amount: float):
        self.stress = clamp_stress(self.stress + amount)

    def decay_stress(self):
        self.stress = clamp_stress(self.stress * (1.0 - self.params.decay_param))

    def add_tie(self, other, weight: float = 1.0):
        self.ties[other.key] = float(weight)

    def contact_ties(self):
        """Attempt to pass stress to each tied agent."""
        rng = self.model.rng
        for key, weight in list(self.ties.items()):
            other = self.model.commuters.get(key)
            if other is None or other.removed:
                continue
            if rng.random() >= self.params.contact_success_prob:
                continue
            if rng.random() >= self.params.communication_success_prob:
                continue
            other.receive_signal(self, weight)

    def receive_signal(self, sender: 'CommuterAgent', weight: float):
        self.raise_stress(sender.params.contagion_rate * sender.stress * weight)

    def observe_hazard(self):
        """Raise stress when an active hazard is within observation distance."""
        hazard = self.model.hazard
        if hazard is None or not hazard.active:
            return
        reach = self.params.observation_distance
        if reach <= 0:
            return
        distance = hazard.distance_to(self.geometry)
        if distance <= reach:
            self.raise_stress(self.params.hazard_stress * (1.0 - distance / reach))

    # -------------------------------------------------------------------------
    # Daily routine
    # -------------------------------------------------------------------------

    def _compute_next_transition(self, from_tick: int):
        scheduler = self.model.scheduler
        options = [(scheduler.get_next_occurrence(hour, minute, from_tick), name)
                   for hour, minute, name in self.routine.entries()]
        return min(options)

    def init_routine(self):
        """Pick the starting activity from the time of day and queue the next transition."""
        if self.routine is None:
            return
        scheduler = self.model.scheduler
        now = max(scheduler.current_tick, 0)
        _, hour, minute = scheduler.time_of_day(now)
        clock = (hour, minute)
        r = self.routine
        self._next_transition = self._compute_next_transition(scheduler.current_tick + 1)
        if clock < r.wake or clock >= r.sleep:
            self.activity = Activity.SLEEP
        elif r.leave_home <= clock < r.leave_work:
            self.start_trip(True)
        else:
            self.activity = Activity.RELAX

    def _apply_routine(self, tick: int):
        if self.routine is None or self._next_transition is None:
            return
        while self._next_transition[0] <= tick:
            _, event = self._next_transition
            if self.activity is not Activity.EVACUATE:
                self._handle_routine_event(event)
            self._next_transition = self._compute_next_transition(tick + 1)

    def _handle_routine_event(self, event: str):
        if event == 'wake':
            if self.activity is Activity.SLEEP:
                self.activity = Activity.RELAX
        elif event == 'leave_home':
            self.start_trip(True)
        elif event == 'leave_work':
            self.start_trip(False)
        elif event == 'sleep':
            if self.activity is Activity.RELAX:
                self.activity = Activity.SLEEP

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def step(self):
        """Act at most once per tick."""
        if self.removed:
            return
        tick = self.model.scheduler.current_tick
        if self.last_acted >= tick:
            return
        self.last_acted = tick

        if self.activity is Activity.EVACUATE and not self.path and not self.model.in_bounds(self.geometry):
            self.model.remove_commuter(self)
            return

        self.decay_stress()
        self.observe_hazard()
        self.contact_ties()
        if self.activity is not Activity.EVACUATE and self.stress >= self.params.evacuation_threshold:
            self.begin_evacuation()

        self._apply_routine(tick)
        if self.needs_route and self.target is not None:
            self._request_route()

        result = self.navigate()
        if result is MoveResult.ARRIVED:
            self._on_arrival()
        elif result in (MoveResult.REPLANNED, MoveResult.FAILED):
            self.begin_evacuation()
        self.last_result = result

    def detach(self):
        """Clear per-agent network state when leaving the simulation."""
        tick = self.model.scheduler.current_tick
        self.removed = True
        self.last_acted = tick + 1
        if self.schedule_handle is not None:
            self.schedule_handle.stop()
        self.position.edge.remove_occupant(self)
        self.path = []
        self.needs_route = False

    def __repr__(self):
        return (f"CommuterAgent({self.key!r}, {self.activity.value}, "
                f"edge={self.position.edge.edge_id}, stress={self.stress:.2f})")
