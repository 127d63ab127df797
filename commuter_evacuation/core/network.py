"""
Road Network Arena

Nodes and edges of the road network are created once and addressed by stable
ids. Every agent plans over a FamiliarNetwork: a lightweight view of the
canonical network carrying its own set of removed edge ids, so that closures
an agent learns about never leak into the canonical network or into other
agents' views.

Key Components:
- RoadNode: junction with a fixed coordinate
- RoadEdge: road segment with LineString geometry, closure flag and occupancy
- RoadNetwork: canonical arena backed by a networkx MultiGraph
- FamiliarNetwork: per-agent exclusion-mask view of a RoadNetwork
- build_grid_network / load_osm_network: network builders
"""

import logging
from typing import Dict, List, Optional, Tuple

import networkx as nx
import numpy as np
import osmnx as ox
from shapely.geometry import LineString, Point, box
from shapely.strtree import STRtree

from .errors import InvalidNetworkError

logger = logging.getLogger(__name__)


# =============================================================================
# Nodes and Edges
# =============================================================================

class RoadNode:
    """
    Junction of the road network.

    Attributes:
        node_id: Stable node identifier
        x, y: Coordinate in the network CRS
        point: shapely Point at (x, y)
    """

    def __init__(self, node_id, x: float, y: float):
        self.node_id = node_id
        self.x = float(x)
        self.y = float(y)
        self.point = Point(self.x, self.y)
        # edge_id -> RoadEdge, in insertion order
        self._edges: Dict[object, 'RoadEdge'] = {}

    @property
    def coordinate(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def edges(self) -> List['RoadEdge']:
        """Incident edges in the canonical network."""
        return list(self._edges.values())

    def distance_to(self, other) -> float:
        """Straight-line distance to another node or an (x, y) coordinate."""
        if isinstance(other, RoadNode):
            return float(np.hypot(self.x - other.x, self.y - other.y))
        return float(np.hypot(self.x - other[0], self.y - other[1]))

    def __repr__(self):
        return f"RoadNode({self.node_id!r}, x={self.x:.1f}, y={self.y:.1f})"


class RoadEdge:
    """
    Road segment between two nodes.

    The geometry runs from `u` to `v`: offset 0 is at `u` and offset `length`
    is at `v`. Edges are undirected for planning; each traversal carries its
    own direction (see position.EdgePosition).

    Attributes:
        edge_id: Stable external identifier
        u, v: End nodes
        geometry: LineString from u to v
        length: Geometric length of the segment
        closed: True while the road is impassable
        occupants: Agents currently on the edge, in arrival order
    """

    def __init__(self, edge_id, u: RoadNode, v: RoadNode, geometry: LineString, attributes=None):
        length = float(geometry.length)
        if length <= 0:
            raise InvalidNetworkError(f"Edge {edge_id} has zero length")

        self.edge_id = edge_id
        self.u = u
        self.v = v
        self.geometry = geometry
        self.length = length
        self.attributes = dict(attributes or {})

        self.closed = False
        self.occupants = []

    def other(self, node: RoadNode) -> RoadNode:
        """End node opposite to `node`."""
        if node is self.u:
            return self.v
        if node is self.v:
            return self.u
        raise ValueError(f"{node!r} is not an end of edge {self.edge_id}")

    def touches(self, node: RoadNode) -> bool:
        return node is self.u or node is self.v

    def shares_node_with(self, other: 'RoadEdge') -> bool:
        return other.touches(self.u) or other.touches(self.v)

    def add_occupant(self, agent):
        """Register an agent on this edge (no-op if already present)."""
        if agent not in self.occupants:
            self.occupants.append(agent)

    def remove_occupant(self, agent):
        """Unregister an agent from this edge (no-op if absent)."""
        if agent in self.occupants:
            self.occupants.remove(agent)

    def __repr__(self):
        return f"RoadEdge({self.edge_id!r}, {self.u.node_id!r}-{self.v.node_id!r}, length={self.length:.1f})"


def _oriented_geometry(u: RoadNode, v: RoadNode, geometry: Optional[LineString]) -> LineString:
    """Return a LineString that starts at u and ends at v."""
    if geometry is None:
        return LineString([u.coordinate, v.coordinate])
    coords = list(geometry.coords)
    start, end = Point(coords[0]), Point(coords[-1])
    if start.distance(u.point) + end.distance(v.point) > start.distance(v.point) + end.distance(u.point):
        coords.reverse()
    return LineString(coords)


# =============================================================================
# Routing helpers shared by the canonical network and the familiar views
# =============================================================================

class _RoutingView:
    """Read operations common to RoadNetwork and FamiliarNetwork."""

    def is_excluded(self, edge_id) -> bool:
        raise NotImplementedError

    def edge(self, edge_id) -> Optional[RoadEdge]:
        """
        Look up an edge by id.

        Returns None when the edge does not exist in this view; missing edges
        are an expected outcome while replanning.
        """
        if self.is_excluded(edge_id):
            return None
        return self.arena._edges.get(edge_id)

    def has_edge(self, edge: RoadEdge) -> bool:
        return self.edge(edge.edge_id) is edge

    def neighbors(self, node: RoadNode) -> List[RoadEdge]:
        """Edges incident to `node` in this view, in insertion order."""
        return [e for e in node.edges if not self.is_excluded(e.edge_id)]

    def weight(self, u, v, keydict) -> Optional[float]:
        """networkx weight function: shortest usable parallel edge, None if all removed."""
        lengths = [d['length'] for k, d in keydict.items() if not self.is_excluded(k)]
        if not lengths:
            return None
        return min(lengths)

    def best_edge(self, u_id, v_id) -> Optional[RoadEdge]:
        """Usable edge between two adjacent nodes, ties by (length, edge id)."""
        keydict = self.graph.get_edge_data(u_id, v_id) or {}
        candidates = [self.arena._edges[k] for k in keydict if not self.is_excluded(k)]
        if not candidates:
            return None
        return min(candidates, key=lambda e: (e.length, str(e.edge_id)))

    @property
    def graph(self) -> nx.MultiGraph:
        return self.arena._graph

    @property
    def nodes(self) -> Dict[object, RoadNode]:
        return self.arena._nodes

    def node(self, node_id) -> Optional[RoadNode]:
        return self.arena._nodes.get(node_id)

    def nearest_node(self, coordinate) -> RoadNode:
        return self.arena.nearest_node(coordinate)

    def nodes_within(self, coordinate, radius: float) -> List[RoadNode]:
        return self.arena.nodes_within(coordinate, radius)


# =============================================================================
# Canonical Network
# =============================================================================

class RoadNetwork(_RoutingView):
    """
    Canonical road network owned by the model.

    The structure is built at setup and frozen before the run starts; after
    `freeze()` only the dynamic per-edge state (closure flag, occupancy)
    changes.
    """

    def __init__(self, crs=None):
        self.crs = crs
        self._graph = nx.MultiGraph()
        self._nodes: Dict[object, RoadNode] = {}
        self._edges: Dict[object, RoadEdge] = {}
        self.frozen = False

        self._node_ids = None
        self._node_tree = None
        self._edge_ids = None
        self._edge_tree = None

    @property
    def arena(self) -> 'RoadNetwork':
        return self

    def is_excluded(self, edge_id) -> bool:
        return False

    # -- construction -------------------------------------------------------

    def _check_writable(self):
        if self.frozen:
            raise InvalidNetworkError("The canonical road network is read-only after setup")

    def add_node(self, node_id, x: float, y: float) -> RoadNode:
        """Add a junction, or return the existing one with that id."""
        existing = self._nodes.get(node_id)
        if existing is not None:
            return existing
        self._check_writable()
        node = RoadNode(node_id, x, y)
        self._nodes[node_id] = node
        self._graph.add_node(node_id)
        self._node_tree = None
        return node

    def add_edge(self, edge_id, u_id, v_id, geometry: Optional[LineString] = None, **attributes) -> RoadEdge:
        """
        Add a road segment between two existing nodes.

        Args:
            edge_id: Stable, unique edge identifier
            u_id, v_id: Ids of the end nodes
            geometry: LineString of the road (straight line if omitted)
            **attributes: Extra attributes kept on the edge

        Returns:
            The new RoadEdge

        Raises:
            InvalidNetworkError: duplicate id, unknown node, zero length, or frozen network
        """
        self._check_writable()
        if edge_id in self._edges:
            raise InvalidNetworkError(f"Duplicate edge id {edge_id}")
        if u_id not in self._nodes or v_id not in self._nodes:
            raise InvalidNetworkError(f"Edge {edge_id} references unknown node {u_id} or {v_id}")

        u, v = self._nodes[u_id], self._nodes[v_id]
        edge = RoadEdge(edge_id, u, v, _oriented_geometry(u, v, geometry), attributes)

        self._edges[edge_id] = edge
        self._graph.add_edge(u_id, v_id, key=edge_id, length=edge.length)
        u._edges[edge_id] = edge
        v._edges[edge_id] = edge
        self._edge_tree = None
        return edge

    def remove_edge(self, edge: RoadEdge) -> bool:
        """Remove an edge from the canonical network (setup time only)."""
        self._check_writable()
        if self._edges.get(edge.edge_id) is not edge:
            return False
        del self._edges[edge.edge_id]
        self._graph.remove_edge(edge.u.node_id, edge.v.node_id, key=edge.edge_id)
        edge.u._edges.pop(edge.edge_id, None)
        edge.v._edges.pop(edge.edge_id, None)
        self._edge_tree = None
        return True

    def freeze(self) -> 'RoadNetwork':
        """Mark the structure read-only and build the spatial indexes."""
        self.frozen = True
        self._build_indexes()
        logger.info("Road network ready: %d nodes, %d edges", len(self._nodes), len(self._edges))
        return self

    def clone(self) -> 'FamiliarNetwork':
        """Independent view with nothing removed."""
        return FamiliarNetwork(self)

    # -- queries ------------------------------------------------------------

    def edges(self) -> List[RoadEdge]:
        return list(self._edges.values())

    def __len__(self):
        return len(self._edges)

    @property
    def total_bounds(self) -> Tuple[float, float, float, float]:
        xs = [n.x for n in self._nodes.values()]
        ys = [n.y for n in self._nodes.values()]
        for e in self._edges.values():
            minx, miny, maxx, maxy = e.geometry.bounds
            xs.extend((minx, maxx))
            ys.extend((miny, maxy))
        return (min(xs), min(ys), max(xs), max(ys))

    def bounds_polygon(self):
        return box(*self.total_bounds)

    def occupancy(self) -> Dict[object, int]:
        """Number of agents currently on each occupied edge."""
        return {eid: len(e.occupants) for eid, e in self._edges.items() if e.occupants}

    def closed_edges(self) -> List[RoadEdge]:
        return [e for e in self._edges.values() if e.closed]

    def _build_indexes(self):
        self._node_ids = list(self._nodes)
        self._node_tree = STRtree([self._nodes[n].point for n in self._node_ids])
        self._edge_ids = list(self._edges)
        self._edge_tree = STRtree([self._edges[e].geometry for e in self._edge_ids])

    def _ensure_indexes(self):
        if self._node_tree is None or self._edge_tree is None:
            self._build_indexes()

    def nearest_node(self, coordinate) -> RoadNode:
        """Node closest to an (x, y) coordinate or shapely Point."""
        self._ensure_indexes()
        point = coordinate if isinstance(coordinate, Point) else Point(coordinate)
        return self._nodes[self._node_ids[int(self._node_tree.nearest(point))]]

    def nodes_within(self, coordinate, radius: float) -> List[RoadNode]:
        """Nodes within `radius` of a coordinate, in node insertion order."""
        self._ensure_indexes()
        point = coordinate if isinstance(coordinate, Point) else Point(coordinate)
        hits = sorted(int(i) for i in self._node_tree.query(point.buffer(radius)))
        result = []
        for i in hits:
            node = self._nodes[self._node_ids[i]]
            if node.point.distance(point) <= radius:
                result.append(node)
        return result

    def nearest_edge(self, coordinate, max_distance: Optional[float] = None) -> Optional[RoadEdge]:
        """Edge closest to a coordinate, None if none lies within max_distance."""
        self._ensure_indexes()
        if not self._edge_ids:
            return None
        point = coordinate if isinstance(coordinate, Point) else Point(coordinate)
        hits = self._edge_tree.query_nearest(point, max_distance=max_distance)
        if len(hits) == 0:
            return None
        candidates = [self._edges[self._edge_ids[int(i)]] for i in hits]
        return min(candidates, key=lambda e: (e.geometry.distance(point), str(e.edge_id)))

    # -- builders -----------------------------------------------------------

    @classmethod
    def from_edges_gdf(cls, edges_gdf, nodes_gdf=None, id_column: Optional[str] = None) -> 'RoadNetwork':
        """
        Build a frozen network from a GeoDataFrame of road segments.

        Args:
            edges_gdf: GeoDataFrame with 'u', 'v' and 'geometry' columns
            nodes_gdf: Optional GeoDataFrame of nodes indexed by node id;
                when omitted node coordinates come from the edge endpoints
            id_column: Column holding edge ids (default: running row number)

        Returns:
            Frozen RoadNetwork
        """
        if not {'u', 'v'}.issubset(edges_gdf.columns):
            edges_gdf = edges_gdf.reset_index()

        network = cls(crs=edges_gdf.crs)
        skipped = 0

        for row_number, (_, row) in enumerate(edges_gdf.iterrows()):
            geometry = row.geometry
            coords = list(geometry.coords)
            for node_id, coord in ((row['u'], coords[0]), (row['v'], coords[-1])):
                if nodes_gdf is not None and node_id in nodes_gdf.index:
                    pt = nodes_gdf.loc[node_id].geometry
                    network.add_node(node_id, pt.x, pt.y)
                else:
                    network.add_node(node_id, coord[0], coord[1])

            edge_id = row[id_column] if id_column else row_number
            attributes = {k: row[k] for k in ('highway', 'name') if k in row.index}
            try:
                network.add_edge(edge_id, row['u'], row['v'], geometry, **attributes)
            except InvalidNetworkError as exc:
                skipped += 1
                logger.debug("Skipping edge %s: %s", edge_id, exc)

        if skipped:
            logger.warning("Skipped %d degenerate or duplicate road segments", skipped)
        return network.freeze()


# =============================================================================
# Familiar Network (per-agent view)
# =============================================================================

class FamiliarNetwork(_RoutingView):
    """
    An agent's private view of the road network.

    Shares nodes, edges and adjacency with the canonical network and only
    stores the ids of edges the agent has learned are unusable.
    """

    def __init__(self, canonical: RoadNetwork, removed_edge_ids=None):
        self.canonical = canonical
        self.removed_edge_ids = set(removed_edge_ids or ())

    @property
    def arena(self) -> RoadNetwork:
        return self.canonical

    def is_excluded(self, edge_id) -> bool:
        return edge_id in self.removed_edge_ids

    def remove_edge(self, edge: RoadEdge) -> bool:
        """
        Remove an edge from this view only.

        Returns:
            True if the edge was present and is now removed
        """
        if not self.has_edge(edge):
            return False
        self.removed_edge_ids.add(edge.edge_id)
        logger.debug("Edge %s removed from familiar network", edge.edge_id)
        return True

    def clone(self) -> 'FamiliarNetwork':
        return FamiliarNetwork(self.canonical, self.removed_edge_ids)

    def edges(self) -> List[RoadEdge]:
        return [e for e in self.canonical.edges() if e.edge_id not in self.removed_edge_ids]

    def __len__(self):
        return len(self.canonical) - len(self.removed_edge_ids)


# =============================================================================
# Builders
# =============================================================================

def build_grid_network(rows: int, cols: int, spacing: float = 500.0,
                       origin: Tuple[float, float] = (0.0, 0.0), crs=None) -> RoadNetwork:
    """
    Build a rectangular street grid.

    Node ids are `row * cols + col`; edge ids are assigned row by row,
    horizontal segments before vertical ones.

    Args:
        rows, cols: Number of junction rows and columns
        spacing: Block length in metres
        origin: Coordinate of node 0
        crs: CRS recorded on the network

    Returns:
        Frozen RoadNetwork
    """
    if rows < 1 or cols < 1 or rows * cols < 2:
        raise ValueError("A grid needs at least two junctions")

    network = RoadNetwork(crs=crs)
    x0, y0 = origin
    for r in range(rows):
        for c in range(cols):
            network.add_node(r * cols + c, x0 + c * spacing, y0 + r * spacing)

    edge_id = 0
    for r in range(rows):
        for c in range(cols - 1):
            network.add_edge(edge_id, r * cols + c, r * cols + c + 1)
            edge_id += 1
        if r < rows - 1:
            for c in range(cols):
                network.add_edge(edge_id, r * cols + c, (r + 1) * cols + c)
                edge_id += 1

    return network.freeze()


def load_osm_network(bbox, network_type: str = 'drive', to_crs: Optional[str] = None) -> RoadNetwork:
    """
    Download a road network from OpenStreetMap.

    Args:
        bbox: (west, south, east, north) in degrees
        network_type: osmnx network type
        to_crs: Metric CRS to project into (osmnx picks UTM if None)

    Returns:
        Frozen RoadNetwork with lengths in metres
    """
    logger.info("Loading road network (bbox: %.4f, %.4f, %.4f, %.4f)...", *bbox)
    G = ox.graph_from_bbox(bbox=bbox, network_type=network_type, simplify=True)
    G = ox.project_graph(G, to_crs=to_crs)
    G = ox.convert.to_undirected(G)

    nodes_gdf, edges_gdf = ox.graph_to_gdfs(G, nodes=True, edges=True, fill_edge_geometry=True)
    if not {'u', 'v', 'key'}.issubset(edges_gdf.columns):
        edges_gdf = edges_gdf.reset_index()

    logger.info("  Loaded %d road segments, %d nodes", len(edges_gdf), len(nodes_gdf))
    return RoadNetwork.from_edges_gdf(edges_gdf, nodes_gdf=nodes_gdf)
