"""
Exercises module (consumer side only here).
"""

from fitness_modules.exercises.installer import ExercisesModuleInstaller
from fitness_modules.exercises.projection import UserPreferencesProjectionHandler, get_user_preferences

__all__ = [
    "ExercisesModuleInstaller",
    "UserPreferencesProjectionHandler",
    "get_user_preferences",
]
