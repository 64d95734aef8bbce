from fitness_events.contracts import UserMetricAdded
from fitness_events.inbox.guard import IdempotentHandler
from fitness_events.registry import ModuleResources, RegistryBuilder
from fitness_modules.workouts.snapshot import LatestUserMetricHandler


class WorkoutsModuleInstaller:
    name = "Workouts"

    def install(self, builder: RegistryBuilder, resources: ModuleResources) -> None:
        handler = LatestUserMetricHandler(resources.session_factory)
        builder.register_handler(
            UserMetricAdded.event_type,
            IdempotentHandler(handler, resources.sql_inbox, resources.processing_ttl),
        )
