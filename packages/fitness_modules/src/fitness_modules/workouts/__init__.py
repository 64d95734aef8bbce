"""
Workouts module (consumer side only here).
"""

from fitness_modules.workouts.installer import WorkoutsModuleInstaller
from fitness_modules.workouts.models import LatestUserMetricRow
from fitness_modules.workouts.snapshot import LatestUserMetricHandler, get_latest_metric

__all__ = [
    "LatestUserMetricHandler",
    "LatestUserMetricRow",
    "WorkoutsModuleInstaller",
    "get_latest_metric",
]
