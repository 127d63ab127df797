"""
Shared set-up helpers for the scenarios.
"""

from typing import List

from ..core.model import AgentSeed


def sample_seeds(network, count: int, rng, preset: str = 'main', key_prefix: str = '') -> List[AgentSeed]:
    """
    Draw home and work edges uniformly at random.

    Args:
        network: RoadNetwork to sample edges from
        count: Number of seeds
        rng: numpy Generator
        preset: Parameter preset for every seed
        key_prefix: Prefix of the generated agent keys

    Returns:
        List of AgentSeed
    """
    edge_ids = [edge.edge_id for edge in network.edges()]
    homes = rng.integers(0, len(edge_ids), size=count)
    works = rng.integers(0, len(edge_ids), size=count)
    return [
        AgentSeed(key=f"{key_prefix}{i}", home_edge=edge_ids[h], work_edge=edge_ids[w], preset=preset)
        for i, (h, w) in enumerate(zip(homes, works))
    ]


def wire_random_ties(model, agents, ties_per_agent: int = 3, weight: float = 1.0) -> int:
    """
    Tie each agent to a few random others from the same group.

    Returns:
        Number of ties created
    """
    if len(agents) < 2 or ties_per_agent <= 0:
        return 0
    created = 0
    keys = [a.key for a in agents]
    for agent in agents:
        others = [k for k in keys if k != agent.key]
        picks = model.rng.choice(len(others), size=min(ties_per_agent, len(others)), replace=False)
        for idx in sorted(picks):
            other_key = others[idx]
            if other_key in agent.ties:
                continue
            model.add_tie(agent.key, other_key, weight)
            created += 1
    return created
