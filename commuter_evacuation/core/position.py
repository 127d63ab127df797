"""
Position Tracker

An agent's continuous location is an offset along the length
parameterisation of one edge plus a traversal direction. Moving never
clamps silently: distance beyond the end of the edge is handed back as an
overrun so the caller can continue onto the next edge or stop on arrival.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from shapely.geometry import Point

from .errors import MissingInitialPlacement
from .network import RoadEdge, RoadNode


@dataclass(frozen=True)
class EdgePosition:
    """
    Location on an edge.

    Attributes:
        edge: Edge being traversed (or stood on)
        offset: Distance from edge.u along the geometry, within [0, edge.length]
        forward: True when heading towards edge.v (offset increasing)
    """
    edge: RoadEdge
    offset: float
    forward: bool = True

    def __post_init__(self):
        if not 0.0 <= self.offset <= self.edge.length:
            raise ValueError(
                f"Offset {self.offset} outside [0, {self.edge.length}] on edge {self.edge.edge_id}"
            )

    @property
    def facing(self) -> RoadNode:
        """Node reached by continuing in the current direction."""
        return self.edge.v if self.forward else self.edge.u

    @property
    def origin(self) -> RoadNode:
        """Node the traversal started from."""
        return self.edge.u if self.forward else self.edge.v

    @property
    def remaining(self) -> float:
        """Distance left to the faced node."""
        return self.edge.length - self.offset if self.forward else self.offset

    @property
    def travelled(self) -> float:
        """Distance covered since the origin node."""
        return self.edge.length - self.remaining

    @property
    def at_facing(self) -> bool:
        return self.remaining <= 0.0

    @property
    def at_origin(self) -> bool:
        return self.travelled <= 0.0

    def point(self) -> Point:
        """Coordinate of this position on the edge geometry."""
        return self.edge.geometry.interpolate(self.offset)

    def reversed(self) -> 'EdgePosition':
        return EdgePosition(self.edge, self.offset, not self.forward)


def start_of(edge: RoadEdge, node: RoadNode) -> EdgePosition:
    """Position standing at `node`, about to traverse `edge` away from it."""
    if node is edge.u:
        return EdgePosition(edge, 0.0, True)
    if node is edge.v:
        return EdgePosition(edge, edge.length, False)
    raise ValueError(f"{node!r} is not an end of edge {edge.edge_id}")


def end_of(edge: RoadEdge, node: RoadNode) -> EdgePosition:
    """Position having arrived at `node` along `edge`."""
    if node is edge.v:
        return EdgePosition(edge, edge.length, True)
    if node is edge.u:
        return EdgePosition(edge, 0.0, False)
    raise ValueError(f"{node!r} is not an end of edge {edge.edge_id}")


def advance(position: EdgePosition, distance: float) -> Tuple[EdgePosition, float]:
    """
    Move along the current edge in the traversal direction.

    Args:
        position: Current position
        distance: Non-negative distance to move

    Returns:
        (new position, overrun) where overrun is the part of `distance`
        left over after reaching the faced node (0.0 if the node was not
        reached or reached exactly)
    """
    if distance < 0:
        raise ValueError(f"Cannot advance by a negative distance ({distance})")

    remaining = position.remaining
    if distance >= remaining:
        bound = position.edge.length if position.forward else 0.0
        return EdgePosition(position.edge, bound, position.forward), distance - remaining

    if position.forward:
        offset = min(position.offset + distance, position.edge.length)
    else:
        offset = max(position.offset - distance, 0.0)
    return EdgePosition(position.edge, offset, position.forward), 0.0


def locate(point, edge: RoadEdge) -> float:
    """
    Project a coordinate onto an edge's length parameterisation.

    Args:
        point: shapely Point or (x, y) tuple
        edge: Edge to project onto

    Returns:
        Offset within [0, edge.length]
    """
    if not isinstance(point, Point):
        point = Point(point)
    offset = float(edge.geometry.project(point))
    return min(max(offset, 0.0), edge.length)


def localize(network, agent_key, coordinate=None, edge_id=None,
             max_distance: Optional[float] = None) -> EdgePosition:
    """
    Place a new agent on the network.

    The edge is the one named by `edge_id`, or else the edge nearest to
    `coordinate`. The agent faces the nearer end of that edge, which becomes
    its current node once reached.

    Args:
        network: Network to place the agent on
        agent_key: Agent identity (for error reporting)
        coordinate: Initial (x, y) location, optional if edge_id is given
        edge_id: Id of the initial edge
        max_distance: Largest accepted distance between coordinate and edge

    Returns:
        EdgePosition on the chosen edge

    Raises:
        MissingInitialPlacement: no suitable edge exists
    """
    if edge_id is not None:
        edge = network.edge(edge_id)
        if edge is None:
            raise MissingInitialPlacement(agent_key, f"unknown edge {edge_id}")
    elif coordinate is not None:
        edge = network.nearest_edge(coordinate, max_distance=max_distance)
        if edge is None:
            raise MissingInitialPlacement(agent_key, f"no edge within {max_distance} of {coordinate}")
    else:
        raise MissingInitialPlacement(agent_key, "seed has neither an edge nor a coordinate")

    offset = locate(coordinate, edge) if coordinate is not None else 0.0
    return EdgePosition(edge, offset, forward=offset * 2 >= edge.length)
