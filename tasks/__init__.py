"""
Background tasks driving the grid engine
"""

from tasks.scheduler import GridScheduler, SchedulerMetrics, SweepStats

__all__ = [
    "GridScheduler",
    "SchedulerMetrics",
    "SweepStats",
]
