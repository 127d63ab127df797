"""Whole-run checks: properties that must hold for every agent on every tick of a flood run."""

import pytest
from shapely.geometry import box

from commuter_evacuation.core.config import SimulationConfig, agent_preset
from commuter_evacuation.core.hazard import FloodHazard
from commuter_evacuation.core.model import CommuterModel
from commuter_evacuation.core.network import build_grid_network
from commuter_evacuation.scenarios.common import sample_seeds, wire_random_ties
from commuter_evacuation.scenarios.scenario_grid_flood import perimeter_node_ids

ROWS, COLS, SPACING = 5, 5, 300.0


@pytest.fixture
def flooded_grid():
    network = build_grid_network(ROWS, COLS, spacing=SPACING, crs="EPSG:27700")
    extent = (COLS - 1) * SPACING
    config = SimulationConfig(
        seed=7,
        world_bounds=(SPACING / 2, SPACING / 2, extent - SPACING / 2, extent - SPACING / 2),
        safe_node_ids=perimeter_node_ids(ROWS, COLS),
    )
    model = CommuterModel(network, config)
    for name, count in (('main', 10), ('elderly', 8)):
        cohort = model.add_cohort(name)
        seeds = sample_seeds(network, count, model.rng, preset=name, key_prefix=f"{name}-")
        agents = model.add_population(seeds, cohort=cohort, params=agent_preset(name))
        wire_random_ties(model, agents, ties_per_agent=2)

    centre = extent / 2
    model.add_hazard(FloodHazard([box(centre - SPACING, centre - SPACING, centre + SPACING, centre + SPACING)],
                                 start_tick=3))
    return model


def check_agent(agent):
    position = agent.position
    assert 0.0 <= position.offset <= position.edge.length
    assert 0.0 <= agent.stress <= 10.0
    assert agent in position.edge.occupants

    path = agent.path
    if path:
        assert path[0] is position.edge or path[0].touches(agent.node)
    for first, second in zip(path, path[1:]):
        assert first.shares_node_with(second)


def test_every_tick_keeps_agents_consistent(flooded_grid):
    model = flooded_grid
    network = model.network
    assert len(model.commuters) == 18

    for _ in range(60):
        model.step()
        for agent in model.commuters.values():
            check_agent(agent)
        occupied = sum(len(edge.occupants) for edge in network.edges())
        assert occupied == len(model.commuters)

    assert model.metrics.closed_edges[-1] > 0
    assert len(model.commuters) + model.removed_count == 18
