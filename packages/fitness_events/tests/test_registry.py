"""
Tests for the event type registry.
"""

from dataclasses import fields

import pytest

from engine_helpers import NoteAdded, ProfileUpdated, RecordingHandler
from fitness_events.errors import EventDecodeError, RegistryError, UnknownEventTypeError
from fitness_events.registry import EventHandler, ModuleResources, RegistryBuilder


class TestRegistryBuilder:
    """Tests for startup registration."""

    def test_register_and_resolve(self):
        """Test a declared type resolves to its decoder and handlers."""
        handler = RecordingHandler("Notes.Handler")
        registry = RegistryBuilder().register_event_class(NoteAdded).register_handler("NoteAdded", handler).build()

        registration = registry.resolve("NoteAdded")
        assert registration.event_type == "NoteAdded"
        assert registration.handlers == (handler,)
        assert "NoteAdded" in registry
        assert len(registry) == 1

    def test_handlers_keep_registration_order(self):
        """Test handlers run in the order they were registered."""
        first = RecordingHandler("A.First")
        second = RecordingHandler("B.Second")
        registry = (
            RegistryBuilder()
            .register_event_class(NoteAdded)
            .register_handler("NoteAdded", first)
            .register_handler("NoteAdded", second)
            .build()
        )
        assert registry.handlers_for("NoteAdded") == (first, second)

    def test_duplicate_event_type_rejected(self):
        """Test declaring a type twice fails at startup."""
        builder = RegistryBuilder().register_event_class(NoteAdded)
        with pytest.raises(RegistryError):
            builder.register_event_class(NoteAdded)

    def test_handler_for_undeclared_type_rejected(self):
        """Test a handler cannot subscribe to an unknown type."""
        with pytest.raises(RegistryError):
            RegistryBuilder().register_handler("NoteAdded", RecordingHandler("Notes.Handler"))

    def test_duplicate_consumer_rejected(self):
        """Test the same consumer name cannot subscribe twice to one type."""
        builder = RegistryBuilder().register_event_class(NoteAdded)
        builder.register_handler("NoteAdded", RecordingHandler("Notes.Handler"))
        with pytest.raises(RegistryError):
            builder.register_handler("NoteAdded", RecordingHandler("Notes.Handler"))

    def test_registrations_closed_after_build(self):
        """Test the builder cannot be used once frozen."""
        builder = RegistryBuilder().register_event_class(NoteAdded)
        builder.build()
        with pytest.raises(RegistryError):
            builder.register_event_class(ProfileUpdated)

    def test_install_runs_installers_in_order(self):
        """Test installers receive the builder and the shared resources."""
        seen = []

        class DeclaringInstaller:
            name = "Declaring"

            def install(self, builder, resources):
                seen.append((self.name, resources.redis_prefix))
                builder.register_event_class(NoteAdded)

        class SubscribingInstaller:
            name = "Subscribing"

            def install(self, builder, resources):
                seen.append((self.name, resources.redis_prefix))
                builder.register_handler("NoteAdded", RecordingHandler("Sub.Handler"))

        registry = (
            RegistryBuilder()
            .install([DeclaringInstaller(), SubscribingInstaller()], ModuleResources(redis_prefix="p"))
            .build()
        )

        assert seen == [("Declaring", "p"), ("Subscribing", "p")]
        assert [h.consumer for h in registry.handlers_for("NoteAdded")] == ["Sub.Handler"]

    def test_module_resources_fields(self):
        """Test installers are handed exactly the backends they build handlers from."""
        assert [f.name for f in fields(ModuleResources)] == [
            "session_factory",
            "redis",
            "redis_prefix",
            "sql_inbox",
            "redis_inbox",
            "processing_ttl",
        ]

    def test_handler_protocol(self):
        """Test handlers are recognised structurally."""
        assert isinstance(RecordingHandler("X.Y"), EventHandler)


class TestEventTypeRegistry:
    """Tests for lookups on the frozen registry."""

    @pytest.fixture
    def registry(self):
        return RegistryBuilder().register_event_class(NoteAdded).build()

    def test_unknown_type_raises(self, registry):
        """Test unknown types are never silently ignored."""
        with pytest.raises(UnknownEventTypeError) as exc_info:
            registry.resolve("Missing")
        assert exc_info.value.event_type == "Missing"

        with pytest.raises(UnknownEventTypeError):
            registry.decode("Missing", "{}")

    def test_decode(self, registry):
        """Test payloads decode into typed events."""
        event = NoteAdded(text="hello")
        decoded = registry.decode("NoteAdded", event.to_payload())
        assert isinstance(decoded, NoteAdded)
        assert decoded.text == "hello"
        assert decoded.event_id == event.event_id

    def test_decode_corrupt_payload(self, registry):
        """Test corrupt payloads raise EventDecodeError."""
        with pytest.raises(EventDecodeError) as exc_info:
            registry.decode("NoteAdded", "{not json")
        assert exc_info.value.event_type == "NoteAdded"

    def test_decode_missing_field(self, registry):
        """Test schema mismatches raise EventDecodeError."""
        with pytest.raises(EventDecodeError):
            registry.decode("NoteAdded", '{"event_id": "e1"}')

    def test_registry_is_read_only(self, registry):
        """Test the registration table cannot be mutated."""
        with pytest.raises(TypeError):
            registry._registrations["Other"] = registry.resolve("NoteAdded")
        assert registry.event_types == ("NoteAdded",)
