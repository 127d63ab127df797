"""Tests for the road network arena and familiar views."""

import geopandas as gpd
import pytest
from shapely.geometry import LineString

from commuter_evacuation.core.errors import InvalidNetworkError
from commuter_evacuation.core.network import RoadNetwork, build_grid_network

from conftest import build_square


def test_edge_lookup_by_id(square_network):
    edge = square_network.edge('BC')
    assert edge.u.node_id == 'B'
    assert edge.v.node_id == 'C'
    assert edge.length == pytest.approx(100.0)
    assert square_network.edge('nope') is None


def test_incident_edges_in_insertion_order(square_network):
    node_a = square_network.node('A')
    assert [e.edge_id for e in square_network.neighbors(node_a)] == ['AB', 'DA']


def test_clone_removals_are_independent(square_network):
    first = square_network.clone()
    second = square_network.clone()
    ab = square_network.edge('AB')

    assert first.remove_edge(ab)
    assert first.edge('AB') is None
    assert second.edge('AB') is ab
    assert square_network.edge('AB') is ab
    assert len(first) == 3
    assert len(square_network) == 4


def test_clone_of_familiar_copies_mask(square_network):
    familiar = square_network.clone()
    familiar.remove_edge(square_network.edge('AB'))
    copy = familiar.clone()
    copy.remove_edge(square_network.edge('CD'))

    assert copy.edge('AB') is None
    assert familiar.edge('CD') is not None


def test_removing_twice_reports_absence(square_network):
    familiar = square_network.clone()
    ab = square_network.edge('AB')
    assert familiar.remove_edge(ab) is True
    assert familiar.remove_edge(ab) is False


def test_zero_length_edge_rejected():
    network = RoadNetwork()
    network.add_node(1, 0, 0)
    network.add_node(2, 0, 0)
    with pytest.raises(InvalidNetworkError):
        network.add_edge('e', 1, 2)


def test_duplicate_edge_id_rejected():
    network = build_square(freeze=False)
    with pytest.raises(InvalidNetworkError):
        network.add_edge('AB', 'A', 'C')


def test_frozen_network_is_read_only(square_network):
    with pytest.raises(InvalidNetworkError):
        square_network.add_edge('AC', 'A', 'C')
    with pytest.raises(InvalidNetworkError):
        square_network.remove_edge(square_network.edge('AB'))


def test_geometry_oriented_from_u_to_v():
    network = RoadNetwork()
    network.add_node('p', 0, 0)
    network.add_node('q', 50, 0)
    edge = network.add_edge('pq', 'p', 'q', LineString([(50, 0), (25, 10), (0, 0)]))
    assert edge.geometry.coords[0] == (0.0, 0.0)
    assert edge.geometry.coords[-1] == (50.0, 0.0)


def test_occupancy_is_idempotent(square_network):
    edge = square_network.edge('AB')
    agent = object()
    edge.add_occupant(agent)
    edge.add_occupant(agent)
    assert edge.occupants == [agent]
    assert square_network.occupancy() == {'AB': 1}
    edge.remove_occupant(agent)
    edge.remove_occupant(agent)
    assert edge.occupants == []
    assert square_network.occupancy() == {}


def test_spatial_queries(square_network):
    assert square_network.nearest_node((90, 5)).node_id == 'B'
    assert square_network.nearest_edge((50, 10)).edge_id == 'AB'
    assert square_network.nearest_edge((500, 500), max_distance=100) is None
    near = square_network.nodes_within((0, 0), 120)
    assert [n.node_id for n in near] == ['A', 'B', 'D']


def test_grid_builder_layout():
    grid = build_grid_network(3, 3, spacing=100.0)
    assert len(grid.nodes) == 9
    assert len(grid) == 12
    first = grid.edge(0)
    assert (first.u.node_id, first.v.node_id) == (0, 1)
    assert grid.frozen
    assert grid.total_bounds == (0.0, 0.0, 200.0, 200.0)


def test_from_edges_gdf_skips_degenerate_segments():
    edges = gpd.GeoDataFrame(
        {
            'u': [1, 2, 3],
            'v': [2, 3, 3],
            'highway': ['primary', 'residential', 'residential'],
        },
        geometry=[
            LineString([(0, 0), (100, 0)]),
            LineString([(100, 0), (100, 80)]),
            LineString([(100, 80), (100, 80)]),
        ],
        crs="EPSG:27700",
    )
    network = RoadNetwork.from_edges_gdf(edges)
    assert len(network) == 2
    assert network.frozen
    assert network.edge(0).attributes['highway'] == 'primary'
    assert network.edge(1).length == pytest.approx(80.0)
