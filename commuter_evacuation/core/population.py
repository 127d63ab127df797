"""
Population loading.

A population table has one row per group of identical commuters: `count`
agents living on `home_edge` and working on `work_edge`. An optional
`preset` column selects the parameter preset for the group.
"""

import logging
from typing import Iterable, List, Optional

import pandas as pd

from .model import AgentSeed

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('count', 'home_edge', 'work_edge')


def seeds_from_frame(frame: pd.DataFrame, preset: str = 'main',
                     key_prefix: Optional[str] = None) -> List[AgentSeed]:
    """
    Expand a population DataFrame into agent seeds.

    Args:
        frame: DataFrame with count, home_edge and work_edge columns
        preset: Preset used where the frame has no preset column
        key_prefix: Prefix for generated agent keys (default: integer keys)

    Returns:
        List of AgentSeed, one per agent, in row order
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"Population table is missing columns: {missing}")

    seeds = []
    for row in frame.to_dict(orient="records"):
        count = int(row["count"])
        if count < 0:
            raise ValueError(f"Negative agent count in population row {row}")
        row_preset = row.get("preset")
        if row_preset is None or pd.isna(row_preset):
            row_preset = preset
        for _ in range(count):
            key = f"{key_prefix}{len(seeds)}" if key_prefix is not None else None
            seeds.append(AgentSeed(
                key=key,
                home_edge=row["home_edge"],
                work_edge=row["work_edge"],
                preset=row_preset,
            ))
    return seeds


def load_population_csv(path, preset: str = 'main', key_prefix: Optional[str] = None) -> List[AgentSeed]:
    """Read a population CSV and expand it into agent seeds."""
    frame = pd.read_csv(path)
    frame.columns = [c.strip().lower() for c in frame.columns]
    seeds = seeds_from_frame(frame, preset=preset, key_prefix=key_prefix)
    logger.info("Read %d population rows (%d agents) from %s", len(frame), len(seeds), path)
    return seeds


def seeds_from_records(records: Iterable[dict]) -> List[AgentSeed]:
    """Build seeds from mappings with AgentSeed field names."""
    return [AgentSeed(**record) for record in records]
