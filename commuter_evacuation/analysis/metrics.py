"""
Metrics tables for commuter evacuation runs.

Turns the per-tick SimulationMetrics series into pandas DataFrames and
computes the headline numbers reported by the scenarios.
"""

from typing import Dict, Optional

import pandas as pd

from ..core.model import SimulationMetrics


def metrics_to_dataframe(metrics: SimulationMetrics, ticks_per_hour: Optional[int] = None) -> pd.DataFrame:
    """
    Convert collected metrics to a DataFrame with one row per tick.

    Args:
        metrics: SimulationMetrics from a run
        ticks_per_hour: If given, an `hour` column (simulated hours since start) is added

    Returns:
        DataFrame indexed by position, with a `tick` column
    """
    df = pd.DataFrame(metrics.as_dict())
    if ticks_per_hour:
        df['hour'] = df['tick'] / ticks_per_hour
    return df


def summarize_run(metrics: SimulationMetrics, total_agents: Optional[int] = None) -> Dict[str, object]:
    """
    Headline statistics of a run.

    Args:
        metrics: SimulationMetrics from a run
        total_agents: Agents admitted at setup (default: the count the model
            recorded while loading its population)

    Returns:
        Dictionary of summary values
    """
    if total_agents is None:
        total_agents = metrics.total_agents
    df = metrics_to_dataframe(metrics)
    if df.empty:
        return {
            'ticks': 0,
            'agents': total_agents,
            'removed': 0,
            'removed_pct': 0.0,
            'peak_evacuating': 0,
            'peak_mean_stress': 0.0,
            'first_evacuation_tick': None,
            'last_removal_tick': None,
            'failed_moves': 0,
        }

    removed = int(df['removed'].iloc[-1])
    return {
        'ticks': len(df),
        'agents': total_agents,
        'removed': removed,
        'removed_pct': removed / total_agents * 100 if total_agents > 0 else 0.0,
        'peak_evacuating': int(df['evacuating'].max()),
        'peak_mean_stress': float(df['mean_stress'].max()),
        'first_evacuation_tick': metrics.first_evacuation_tick,
        'last_removal_tick': metrics.last_removal_tick,
        'failed_moves': int(df['failed_moves'].iloc[-1]),
    }


def compare_runs(summaries: Dict[str, Dict[str, object]]) -> pd.DataFrame:
    """Side-by-side table of several run summaries, one row per run."""
    return pd.DataFrame.from_dict(summaries, orient='index')
