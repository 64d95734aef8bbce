"""
Users module: profiles (relational) and body metrics (documents).
"""

from fitness_modules.users.installer import UsersModuleInstaller
from fitness_modules.users.metrics import add_user_metric, calculate_bmi, get_user_metric
from fitness_modules.users.models import Gender, UnitPreference, UserProfileRow
from fitness_modules.users.service import UserNotFoundError, create_user_profile, update_user_profile

__all__ = [
    "Gender",
    "UnitPreference",
    "UserNotFoundError",
    "UserProfileRow",
    "UsersModuleInstaller",
    "add_user_metric",
    "calculate_bmi",
    "create_user_profile",
    "get_user_metric",
    "update_user_profile",
]
