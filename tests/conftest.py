"""Shared fixtures: a 100 m square road network and small models on it."""

import pytest

from commuter_evacuation.core.config import SimulationConfig
from commuter_evacuation.core.model import CommuterModel
from commuter_evacuation.core.network import RoadNetwork


def build_square(freeze=True):
    """
    A --AB-- B
    |        |
    DA      BC
    |        |
    D --CD-- C

    A sits at the origin; y grows towards D and C. Sides are 100 m.
    """
    network = RoadNetwork(crs="EPSG:27700")
    network.add_node('A', 0, 0)
    network.add_node('B', 100, 0)
    network.add_node('C', 100, 100)
    network.add_node('D', 0, 100)
    network.add_edge('AB', 'A', 'B')
    network.add_edge('BC', 'B', 'C')
    network.add_edge('CD', 'C', 'D')
    network.add_edge('DA', 'D', 'A')
    if freeze:
        network.freeze()
    return network


@pytest.fixture
def square_network():
    return build_square()


@pytest.fixture
def make_model():
    """Factory for a CommuterModel on a fresh square network."""
    def _make(**config_overrides):
        config = SimulationConfig(**config_overrides)
        return CommuterModel(build_square(), config)
    return _make
