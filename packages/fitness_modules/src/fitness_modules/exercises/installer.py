from fitness_events.contracts import UserProfileUpdated
from fitness_events.inbox.guard import IdempotentHandler
from fitness_events.registry import ModuleResources, RegistryBuilder
from fitness_modules.exercises.projection import UserPreferencesProjectionHandler


class ExercisesModuleInstaller:
    name = "Exercises"

    def install(self, builder: RegistryBuilder, resources: ModuleResources) -> None:
        # Side effect lives in Redis, so the ledger does too
        handler = UserPreferencesProjectionHandler(resources.redis, resources.redis_prefix)
        builder.register_handler(
            UserProfileUpdated.event_type,
            IdempotentHandler(handler, resources.redis_inbox, resources.processing_ttl),
        )
