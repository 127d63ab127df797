"""
Flood Hazard

Flood zones are polygons that become active at a given tick. Activation
closes every road edge whose geometry intersects a zone; agents only learn
about a closure when they try to drive onto the edge. While active, the
zones are also something agents can see from up to their observation
distance.
"""

import logging
from typing import List

from shapely.geometry import Point, Polygon, box, shape
from shapely.ops import unary_union

logger = logging.getLogger(__name__)


class FloodHazard:
    """
    Set of flood polygons with a scheduled onset.

    Attributes:
        zones: List of shapely polygons
        start_tick: Tick at which the flood takes effect
        active: True once activate() has run
        closed_edge_ids: Ids of the edges closed on activation
    """

    def __init__(self, zones, start_tick: int = 0):
        self.zones: List[Polygon] = [self._as_polygon(z) for z in zones]
        if not self.zones:
            raise ValueError("FloodHazard needs at least one zone")
        self.start_tick = start_tick
        self.active = False
        self.closed_edge_ids: List[object] = []
        self.handle = None
        self._union = unary_union(self.zones)

    @staticmethod
    def _as_polygon(zone):
        if isinstance(zone, dict):
            return shape(zone)
        if isinstance(zone, (tuple, list)) and len(zone) == 4:
            return box(*zone)
        return zone

    @property
    def centroids(self) -> List[Point]:
        return [zone.centroid for zone in self.zones]

    def edges_affected(self, network):
        """Edges of `network` crossing any flood zone, in insertion order."""
        return [edge for edge in network.edges() if edge.geometry.intersects(self._union)]

    def register(self, scheduler, network, order: int = -10):
        """Schedule activation against `network` at start_tick."""
        self.handle = scheduler.schedule_once(lambda: self.activate(network), self.start_tick, order=order)
        return self.handle

    def activate(self, network) -> int:
        """
        Close every intersecting edge.

        Returns:
            Number of edges closed
        """
        closed = 0
        for edge in self.edges_affected(network):
            if not edge.closed:
                edge.closed = True
                self.closed_edge_ids.append(edge.edge_id)
                closed += 1
        self.active = True
        logger.info("Flood active: %d edges closed in %d zones", closed, len(self.zones))
        return closed

    def recede(self, network):
        """Reopen the edges this hazard closed."""
        for edge_id in self.closed_edge_ids:
            edge = network.edge(edge_id)
            if edge is not None:
                edge.closed = False
        logger.info("Flood receded: %d edges reopened", len(self.closed_edge_ids))
        self.closed_edge_ids = []
        self.active = False

    def distance_to(self, point) -> float:
        """Straight-line distance from a point to the nearest zone (0 inside)."""
        if not isinstance(point, Point):
            point = Point(point)
        return float(self._union.distance(point))

    def beyond_comfort(self, node, comfort_distance: float) -> bool:
        """True if `node` is beyond comfort_distance from every zone centroid."""
        return all(node.point.distance(c) > comfort_distance for c in self.centroids)

    def __repr__(self):
        state = 'active' if self.active else f'starts at {self.start_tick}'
        return f"FloodHazard({len(self.zones)} zones, {state})"

