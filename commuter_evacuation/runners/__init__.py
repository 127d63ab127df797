"""
Orchestration scripts for running studies.
"""

from .run_study import run_complete_study

__all__ = ['run_complete_study']
