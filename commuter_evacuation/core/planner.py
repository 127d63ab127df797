"""
Path Planner

Shortest routes (by summed edge length) over a road network view using
networkx A* with a straight-line heuristic. The view's weight function hides
edges an agent has removed from its familiar network.

Tie-breaking is deterministic for a fixed network: A* explores neighbours
in edge insertion order and breaks equal priorities first-in-first-out, so
among equal-length routes the first one discovered wins. Parallel edges
between the same two nodes resolve by (length, edge id).
"""

import logging
from typing import List, Optional, Tuple

import networkx as nx

from .errors import PlanningFailure
from .network import RoadEdge, RoadNode

logger = logging.getLogger(__name__)


def resolve_target(network, target) -> RoadNode:
    """Node for a target given as a RoadNode, a shapely Point or an (x, y) tuple."""
    if isinstance(target, RoadNode):
        return target
    return network.nearest_node(target)


def route_length(path: List[RoadEdge]) -> float:
    return sum(edge.length for edge in path)


def plan(network, from_node: RoadNode, target) -> List[RoadEdge]:
    """
    Compute the shortest route from a node to the node nearest a target.

    Args:
        network: RoadNetwork or FamiliarNetwork to search
        from_node: Start node
        target: RoadNode, Point or (x, y) coordinate

    Returns:
        Ordered list of edges; empty if from_node already is the target node

    Raises:
        PlanningFailure: the target node is unreachable in this network
    """
    target_node = resolve_target(network, target)
    if target_node is from_node:
        return []

    nodes = network.nodes

    def heuristic(a, b):
        return nodes[a].distance_to(nodes[b])

    try:
        node_path = nx.astar_path(
            network.graph,
            from_node.node_id,
            target_node.node_id,
            heuristic=heuristic,
            weight=network.weight,
        )
    except (nx.NetworkXNoPath, nx.NodeNotFound) as exc:
        raise PlanningFailure(from_node.node_id, target_node.node_id, str(exc)) from exc

    return [network.best_edge(a, b) for a, b in zip(node_path, node_path[1:])]


def fallback_candidates(network, from_node: RoadNode, target, radius: float) -> List[RoadNode]:
    """
    Nodes near `from_node` to wander towards when no route to the target exists.

    Ordered by (distance to target, distance from from_node, node id).
    """
    target_node = resolve_target(network, target)
    candidates = [n for n in network.nodes_within(from_node.point, radius) if n is not from_node]
    candidates.sort(key=lambda n: (
        n.distance_to(target_node),
        n.distance_to(from_node),
        str(n.node_id),
    ))
    return candidates


def plan_with_fallback(familiar, full_network, from_node: RoadNode, target,
                       radius: float) -> Tuple[List[RoadEdge], Optional[RoadNode]]:
    """
    Plan over the familiar network, falling back to wandering.

    When the familiar network has no route to the target, nearby nodes are
    tried in order of closeness to the target; the first one reachable over
    the full network becomes an intermediate goal. A wandering route never
    starts on an edge the familiar network has already excluded.

    Args:
        familiar: The agent's FamiliarNetwork
        full_network: Canonical RoadNetwork used for the fallback
        from_node: Start node
        target: Final destination (RoadNode or coordinate)
        radius: Search radius for fallback nodes

    Returns:
        (path, waypoint) where waypoint is None for a direct route, or the
        intermediate node chosen by the fallback

    Raises:
        PlanningFailure: neither a direct route nor any fallback node works
    """
    try:
        return plan(familiar, from_node, target), None
    except PlanningFailure as failure:
        logger.debug("Replanning failed (%s), trying fallback nodes within %.0f m", failure, radius)

    for candidate in fallback_candidates(full_network, from_node, target, radius):
        try:
            path = plan(full_network, from_node, candidate)
        except PlanningFailure:
            continue
        if not path or familiar.is_excluded(path[0].edge_id):
            continue
        return path, candidate

    target_node = resolve_target(full_network, target)
    raise PlanningFailure(from_node.node_id, target_node.node_id, "no fallback node reachable")
