"""Tests for model setup, hazards, metrics, configuration and population loading."""

import pytest
from shapely.geometry import box

from commuter_evacuation.analysis import metrics_to_dataframe, summarize_run
from commuter_evacuation.core.config import (
    AGENT_PRESETS,
    AgentParameters,
    DailyRoutine,
    SimulationConfig,
    agent_preset,
)
from commuter_evacuation.core.hazard import FloodHazard
from commuter_evacuation.core.model import AgentSeed
from commuter_evacuation.core.population import load_population_csv, seeds_from_records
from commuter_evacuation.scenarios import run_grid_flood_scenario


def one_agent(model, **param_overrides):
    [agent] = model.add_population([AgentSeed(key='k', home_edge='AB', work_edge='CD')],
                                   params=AgentParameters(**param_overrides))
    return agent


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

def test_config_from_dict_ignores_unknown_keys():
    config = SimulationConfig.from_dict({'seed': 7, 'world_bounds': [0, 0, 10, 10], 'colour': 'red'})
    assert config.seed == 7
    assert config.world_bounds == (0, 0, 10, 10)
    assert config.to_dict()['seed'] == 7


def test_config_validation():
    with pytest.raises(ValueError):
        SimulationConfig.from_dict({'minutes_per_tick': 7})
    with pytest.raises(ValueError):
        SimulationConfig.from_dict({'world_bounds': [10, 0, 0, 10]})


def test_presets_are_copied():
    ngo = agent_preset('ngo', speed=1.0)
    assert ngo.speed == 1.0
    assert AGENT_PRESETS['ngo'].speed != 1.0
    with pytest.raises(KeyError):
        agent_preset('tourist')


def test_parameter_validation():
    with pytest.raises(ValueError):
        AgentParameters(contact_success_prob=1.5).validate()
    AgentParameters().validate()


def test_population_rejects_invalid_parameters(make_model):
    model = make_model()
    with pytest.raises(ValueError):
        one_agent(model, contact_success_prob=1.5)
    with pytest.raises(ValueError):
        one_agent(model, decay_param=-0.1)
    assert model.commuters == {}


def test_report_interval_must_be_positive():
    with pytest.raises(ValueError):
        SimulationConfig.from_dict({'report_interval': 0})


def test_routine_entries_are_ordered():
    routine = DailyRoutine(wake=(6, 30), leave_home=[7, 45], leave_work=(16, 0), sleep=(22, 0))
    assert routine.leave_home == (7, 45)
    assert [name for _, _, name in routine.entries()] == ['wake', 'leave_home', 'leave_work', 'sleep']
    with pytest.raises(ValueError):
        DailyRoutine(wake=(25, 0))


# -----------------------------------------------------------------------------
# Population
# -----------------------------------------------------------------------------

def test_unplaceable_seeds_are_rejected(make_model):
    model = make_model()
    seeds = [
        AgentSeed(key='good', home_edge='AB', work_edge='CD'),
        AgentSeed(key='bad-edge', home_edge='XY', work_edge='CD'),
        AgentSeed(key='far', home=(5000.0, 5000.0), work_edge='CD'),
        AgentSeed(key='no-work', home_edge='AB'),
    ]
    admitted = model.add_population(seeds)
    assert [a.key for a in admitted] == ['good']
    assert model.rejected_seeds == ['bad-edge', 'far', 'no-work']
    assert list(model.commuters) == ['good']


def test_generated_keys_and_duplicates(make_model):
    model = make_model()
    agents = model.add_population([AgentSeed(home_edge='AB', work_edge='CD'),
                                   AgentSeed(home_edge='BC', work_edge='CD')])
    assert [a.key for a in agents] == [0, 1]
    with pytest.raises(ValueError):
        model.add_population([AgentSeed(key=0, home_edge='AB', work_edge='CD')])


def test_tie_validation(make_model):
    model = make_model()
    one_agent(model)
    with pytest.raises(ValueError):
        model.add_tie('k', 'k')
    with pytest.raises(KeyError):
        model.add_tie('k', 'ghost')


def test_population_csv(tmp_path):
    path = tmp_path / "population.csv"
    path.write_text("count,home_edge,work_edge\n2,AB,CD\n1,BC,DA\n")
    seeds = load_population_csv(path, key_prefix='p')
    assert [s.key for s in seeds] == ['p0', 'p1', 'p2']
    assert [(s.home_edge, s.work_edge) for s in seeds] == [('AB', 'CD'), ('AB', 'CD'), ('BC', 'DA')]
    assert all(s.preset == 'main' for s in seeds)


def test_population_csv_requires_columns(tmp_path):
    path = tmp_path / "population.csv"
    path.write_text("count,home_edge\n2,AB\n")
    with pytest.raises(ValueError):
        load_population_csv(path)


def test_seeds_from_records(make_model):
    model = make_model()
    seeds = seeds_from_records([{'key': 'r', 'home_edge': 'AB', 'work_edge': 'BC', 'preset': 'elderly'}])
    [agent] = model.add_population(seeds)
    assert agent.params.speed == AGENT_PRESETS['elderly'].speed


# -----------------------------------------------------------------------------
# Hazard
# -----------------------------------------------------------------------------

def test_flood_closes_intersecting_edges_on_schedule(make_model):
    model = make_model()
    hazard = model.add_hazard(FloodHazard([box(40, -10, 60, 10)], start_tick=2))

    model.run(2)
    assert not model.network.edge('AB').closed
    model.step()
    assert model.network.edge('AB').closed
    assert hazard.closed_edge_ids == ['AB']
    assert model.metrics.closed_edges[-1] == 1
    assert [e.edge_id for e in model.network.closed_edges()] == ['AB']

    hazard.recede(model.network)
    assert not model.network.edge('AB').closed


def test_hazard_observation_raises_stress(make_model):
    model = make_model()
    agent = one_agent(model, decay_param=0.0, hazard_stress=2.0, observation_distance=1000.0)
    model.add_hazard(FloodHazard([box(500, -50, 600, 50)], start_tick=0))
    model.step()
    assert agent.stress == pytest.approx(1.0)


def test_safe_nodes_from_comfort_distance(make_model):
    model = make_model()
    model.add_hazard(FloodHazard([box(-5, -5, 5, 5)], start_tick=5))
    assert [n.node_id for n in model.safe_nodes(120.0)] == ['C']
    assert [n.node_id for n in model.safe_nodes(1000.0)] == ['A', 'B', 'C', 'D']
    assert model.nearest_safe_node((0, 0), 120.0).node_id == 'C'


def test_configured_safe_nodes_win(make_model):
    model = make_model(safe_node_ids=['B', 'missing'])
    model.add_hazard(FloodHazard([box(-5, -5, 5, 5)], start_tick=5))
    assert [n.node_id for n in model.safe_nodes(120.0)] == ['B']


def test_only_one_hazard(make_model):
    model = make_model()
    model.add_hazard(FloodHazard([box(0, 0, 1, 1)], start_tick=1))
    with pytest.raises(ValueError):
        model.add_hazard(FloodHazard([box(0, 0, 1, 1)], start_tick=2))


# -----------------------------------------------------------------------------
# Metrics and run
# -----------------------------------------------------------------------------

def test_metrics_table(make_model):
    model = make_model()
    agent = one_agent(model)
    agent.stress = 2.0
    model.run(3)

    df = metrics_to_dataframe(model.metrics, ticks_per_hour=12)
    assert list(df['tick']) == [0, 1, 2]
    assert df['mean_stress'].iloc[0] == pytest.approx(1.0)
    assert 'hour' in df.columns

    summary = summarize_run(model.metrics, 1)
    assert summary['ticks'] == 3
    assert summary['removed'] == 0


def test_summary_counts_admitted_agents(make_model):
    model = make_model()
    model.add_population([
        AgentSeed(key='a', home_edge='AB', work_edge='CD'),
        AgentSeed(key='b', home_edge='XX', work_edge='CD'),
        AgentSeed(key='c', home_edge='BC', work_edge='DA'),
    ])
    model.run(1)

    summary = summarize_run(model.metrics)
    assert model.rejected_seeds == ['b']
    assert model.metrics.total_agents == 2
    assert summary['agents'] == 2


def test_teardown_cancels_events(make_model):
    model = make_model()
    model.add_cohort('main')
    one_agent(model)
    model.teardown()
    assert model.scheduler.pending() == 0


def test_grid_scenario_runs(tmp_path):
    output = tmp_path / "grid.csv"
    metrics = run_grid_flood_scenario(rows=4, cols=4, agents_per_cohort=2, flood_start_tick=3,
                                      max_ticks=12, output_file=output)
    assert 0 < len(metrics.time_steps) <= 12
    assert output.exists()
