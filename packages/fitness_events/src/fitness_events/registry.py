"""
Event Type Registry

Explicit mapping from a stored event_type string to its decoder and to the
ordered handlers that consume it. Modules contribute their entries through
installers at startup; the result is frozen before the processor starts, so
nothing is discovered by reflection at runtime.

Usage:
    builder = RegistryBuilder()
    builder.register_event_class(UserProfileUpdated)
    builder.register_handler("UserProfileUpdated", handler)
    registry = builder.build()
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Protocol, runtime_checkable

from fitness_events.cancellation import CancellationToken
from fitness_events.contracts.events import DomainEvent
from fitness_events.errors import EventDecodeError, RegistryError, UnknownEventTypeError

logger = logging.getLogger(__name__)

Decoder = Callable[[str], DomainEvent]


@runtime_checkable
class EventHandler(Protocol):
    """
    A consumer of one event type.

    consumer is the stable name used as the inbox key; renaming it makes
    every past event look new to that consumer.
    """

    consumer: str

    async def handle(self, event: DomainEvent, cancellation: CancellationToken) -> None:
        ...


@dataclass(frozen=True)
class EventRegistration:
    event_type: str
    decoder: Decoder
    handlers: tuple[EventHandler, ...] = ()


@dataclass
class ModuleResources:
    """What installers may use to build their handlers."""

    session_factory: Any = None
    redis: Any = None
    redis_prefix: str = "fitness"
    sql_inbox: Any = None
    redis_inbox: Any = None
    processing_ttl: float | None = None


class ModuleInstaller(Protocol):
    name: str

    def install(self, builder: "RegistryBuilder", resources: ModuleResources) -> None:
        ...


class EventTypeRegistry:
    """Immutable event_type -> (decoder, handlers) table."""

    def __init__(self, registrations: dict[str, EventRegistration]):
        self._registrations = MappingProxyType(dict(registrations))

    @property
    def event_types(self) -> tuple[str, ...]:
        return tuple(self._registrations)

    def __contains__(self, event_type: str) -> bool:
        return event_type in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def resolve(self, event_type: str) -> EventRegistration:
        """
        Raises:
            UnknownEventTypeError: event_type was never registered
        """
        try:
            return self._registrations[event_type]
        except KeyError:
            raise UnknownEventTypeError(event_type) from None

    def decode(self, event_type: str, payload: str) -> DomainEvent:
        """
        Turn a stored payload back into its typed event.

        Raises:
            UnknownEventTypeError: event_type was never registered
            EventDecodeError: the decoder rejected the payload
        """
        registration = self.resolve(event_type)
        try:
            return registration.decoder(payload)
        except Exception as e:
            raise EventDecodeError(event_type, str(e)) from e

    def handlers_for(self, event_type: str) -> tuple[EventHandler, ...]:
        return self.resolve(event_type).handlers


class RegistryBuilder:
    """Collects registrations; build() validates nothing is left half-declared."""

    def __init__(self):
        self._decoders: dict[str, Decoder] = {}
        self._handlers: dict[str, list[EventHandler]] = {}
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RegistryError("Registry already built; registrations are closed")

    def register_event(self, event_type: str, decoder: Decoder) -> "RegistryBuilder":
        self._check_open()
        if not event_type:
            raise RegistryError("event_type must be a non-empty string")
        if event_type in self._decoders:
            raise RegistryError(f"Event type '{event_type}' registered twice")

        self._decoders[event_type] = decoder
        self._handlers[event_type] = []
        return self

    def register_event_class(self, event_class: type[DomainEvent]) -> "RegistryBuilder":
        """Shortcut for pydantic events: decode with the class's own validator."""
        return self.register_event(event_class.event_type, event_class.from_payload)

    def register_handler(self, event_type: str, handler: EventHandler) -> "RegistryBuilder":
        """
        Append a handler; handlers run in registration order.

        Raises:
            RegistryError: event_type not declared, or the consumer name is
                already registered for it
        """
        self._check_open()
        if event_type not in self._decoders:
            raise RegistryError(f"Handler {handler.consumer!r} registered for undeclared event type '{event_type}'")

        consumers = {existing.consumer for existing in self._handlers[event_type]}
        if handler.consumer in consumers:
            raise RegistryError(f"Consumer {handler.consumer!r} registered twice for '{event_type}'")

        self._handlers[event_type].append(handler)
        return self

    def install(self, installers, resources: ModuleResources) -> "RegistryBuilder":
        for installer in installers:
            logger.debug(f"Installing module {installer.name}")
            installer.install(self, resources)
        return self

    def build(self) -> EventTypeRegistry:
        self._check_open()
        self._built = True

        registrations = {
            event_type: EventRegistration(
                event_type=event_type,
                decoder=decoder,
                handlers=tuple(self._handlers[event_type]),
            )
            for event_type, decoder in self._decoders.items()
        }
        for registration in registrations.values():
            if not registration.handlers:
                logger.warning(
                    f"Event type '{registration.event_type}' has no handlers; its records will be marked processed",
                    extra={"event_type": registration.event_type},
                )

        logger.info(
            f"Event type registry built ({len(registrations)} event types)",
            extra={"event_types": sorted(registrations)},
        )
        return EventTypeRegistry(registrations)
