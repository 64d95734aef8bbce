"""
Fitness modules wired into the event engine.

Order matters: the Users installer declares the event types the other
modules subscribe to.
"""

from fitness_modules.exercises import ExercisesModuleInstaller
from fitness_modules.users import UsersModuleInstaller
from fitness_modules.workouts import WorkoutsModuleInstaller


def default_installers() -> list:
    return [UsersModuleInstaller(), ExercisesModuleInstaller(), WorkoutsModuleInstaller()]
