from fitness_events.contracts import UserMetricAdded, UserProfileUpdated
from fitness_events.registry import ModuleResources, RegistryBuilder


class UsersModuleInstaller:
    """Declares the events the Users module publishes. It consumes none."""

    name = "Users"

    def install(self, builder: RegistryBuilder, resources: ModuleResources) -> None:
        builder.register_event_class(UserProfileUpdated)
        builder.register_event_class(UserMetricAdded)
