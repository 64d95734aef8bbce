"""Exceptions raised by the event propagation engine."""


class EventEngineError(Exception):
    """Base class for engine errors."""


class RegistryError(EventEngineError):
    """The event type registry was assembled incorrectly (startup bug)."""


class UnknownEventTypeError(EventEngineError):
    """A stored record names an event type nobody registered."""

    def __init__(self, event_type: str):
        super().__init__(f"No registration for event type '{event_type}'")
        self.event_type = event_type


class EventDecodeError(EventEngineError):
    """A stored payload could not be turned back into its typed event."""

    def __init__(self, event_type: str, reason: str):
        super().__init__(f"Could not decode payload of event type '{event_type}': {reason}")
        self.event_type = event_type
        self.reason = reason


class OutboxAppendError(EventEngineError):
    """append() was called outside a transaction it can join."""


class RecordNotFoundError(EventEngineError):
    """An outbox record id does not exist in the given backend."""

    def __init__(self, backend: str, record_id: int | str):
        super().__init__(f"Outbox record {record_id} not found in backend '{backend}'")
        self.backend = backend
        self.record_id = record_id


class RecordNotTerminalError(EventEngineError):
    """Replay was requested for a record the processor still owns."""

    def __init__(self, backend: str, record_id: int | str):
        super().__init__(f"Outbox record {record_id} in backend '{backend}' is still pending")
        self.backend = backend
        self.record_id = record_id
