"""Tests for shortest-route planning and the wandering fallback."""

import pytest
from shapely.geometry import LineString

from commuter_evacuation.core.errors import PlanningFailure
from commuter_evacuation.core.planner import (
    fallback_candidates,
    plan,
    plan_with_fallback,
    route_length,
)

from conftest import build_square


def edge_ids(path):
    return [edge.edge_id for edge in path]


def test_equal_length_routes_resolve_deterministically(square_network):
    a = square_network.node('A')
    path = plan(square_network, a, square_network.node('C'))
    assert edge_ids(path) == ['AB', 'BC']
    assert route_length(path) == pytest.approx(200.0)


def test_removed_edge_forces_other_side(square_network):
    familiar = square_network.clone()
    familiar.remove_edge(square_network.edge('AB'))
    path = plan(familiar, square_network.node('A'), square_network.node('C'))
    assert edge_ids(path) == ['DA', 'CD']


def test_plan_to_coordinate_uses_nearest_node(square_network):
    path = plan(square_network, square_network.node('A'), (95, 4))
    assert edge_ids(path) == ['AB']


def test_plan_to_current_node_is_empty(square_network):
    a = square_network.node('A')
    assert plan(square_network, a, a) == []


def test_unreachable_target_raises(square_network):
    familiar = square_network.clone()
    familiar.remove_edge(square_network.edge('AB'))
    familiar.remove_edge(square_network.edge('DA'))
    with pytest.raises(PlanningFailure) as info:
        plan(familiar, square_network.node('A'), square_network.node('C'))
    assert info.value.source == 'A'
    assert info.value.target == 'C'


def test_parallel_edges_pick_shortest():
    network = build_square(freeze=False)
    network.add_edge('AB-detour', 'A', 'B', LineString([(0, 0), (50, 40), (100, 0)]))
    network.freeze()
    path = plan(network, network.node('A'), network.node('B'))
    assert edge_ids(path) == ['AB']

    familiar = network.clone()
    familiar.remove_edge(network.edge('AB'))
    assert edge_ids(plan(familiar, network.node('A'), network.node('B'))) == ['AB-detour']


def test_fallback_candidates_ordering(square_network):
    candidates = fallback_candidates(square_network, square_network.node('A'), square_network.node('C'), 120)
    assert [n.node_id for n in candidates] == ['B', 'D']


def test_fallback_wanders_over_full_network(square_network):
    familiar = square_network.clone()
    familiar.remove_edge(square_network.edge('BC'))
    familiar.remove_edge(square_network.edge('CD'))

    path, waypoint = plan_with_fallback(familiar, square_network, square_network.node('A'),
                                        square_network.node('C'), radius=200)
    # C itself is the closest candidate; the route crosses BC, which only the full network has
    assert waypoint.node_id == 'C'
    assert edge_ids(path) == ['AB', 'BC']


def test_fallback_never_starts_on_excluded_edge(square_network):
    familiar = square_network.clone()
    familiar.remove_edge(square_network.edge('AB'))
    familiar.remove_edge(square_network.edge('DA'))
    with pytest.raises(PlanningFailure):
        plan_with_fallback(familiar, square_network, square_network.node('A'),
                           square_network.node('C'), radius=1000)


def test_direct_route_has_no_waypoint(square_network):
    path, waypoint = plan_with_fallback(square_network.clone(), square_network, square_network.node('A'),
                                        square_network.node('C'), radius=120)
    assert waypoint is None
    assert edge_ids(path) == ['AB', 'BC']


def test_fallback_exhausted_raises(square_network):
    familiar = square_network.clone()
    familiar.remove_edge(square_network.edge('AB'))
    familiar.remove_edge(square_network.edge('DA'))
    with pytest.raises(PlanningFailure):
        plan_with_fallback(familiar, square_network, square_network.node('A'),
                           square_network.node('C'), radius=10)
