"""
Analysis and metrics tables for commuter evacuation runs.
"""

from .metrics import metrics_to_dataframe, summarize_run, compare_runs

__all__ = ['metrics_to_dataframe', 'summarize_run', 'compare_runs']
