"""Tests for Keplog SDK client."""

import logging
from unittest.mock import MagicMock, patch

import pytest

import keplog
from keplog.client import KeplogClient
from keplog.config import build_options, build_ingest_url, options_from_mapping
from keplog.errors import ConfigError, DeliveryError, ReservedKeyError
from keplog.types import CaptureState, KeplogOptions


def _raise(error: BaseException) -> BaseException:
    try:
        raise error
    except BaseException as e:
        return e


class TestConfig:
    """Test option validation and defaults."""

    def test_requires_ingest_key(self):
        """Should fail construction without an ingest key."""
        with pytest.raises(ConfigError, match="ingest key is required"):
            build_options()

        with pytest.raises(ConfigError):
            build_options(ingest_key="")

    def test_client_requires_ingest_key(self, transport):
        """Should refuse to build a client from options without an ingest key."""
        with pytest.raises(ConfigError, match="ingest key is required"):
            KeplogClient(KeplogOptions(ingest_key=""), transport=transport)

    def test_defaults(self, monkeypatch):
        """Should fill defaults from the environment."""
        monkeypatch.delenv("APP_ENV", raising=False)
        monkeypatch.delenv("APP_VERSION", raising=False)

        with patch("keplog.environment.socket.gethostname", return_value="web-01"):
            options = build_options(ingest_key="kep_key")

        assert options.base_url == "http://localhost:8080"
        assert options.environment == "production"
        assert options.server_name == "web-01"
        assert options.release is None
        assert options.max_breadcrumbs == 100
        assert options.enabled is True
        assert options.debug is False
        assert options.timeout == 5
        assert options.before_send is None

    def test_environment_from_app_env(self, monkeypatch):
        """Should pick up APP_ENV."""
        monkeypatch.setenv("APP_ENV", "staging")

        assert build_options(ingest_key="k").environment == "staging"

    def test_release_from_app_version(self, monkeypatch):
        """Should pick up APP_VERSION unless a release is given."""
        monkeypatch.setenv("APP_VERSION", "2.4.1")

        assert build_options(ingest_key="k").release == "2.4.1"
        assert build_options(ingest_key="k", release="3.0.0").release == "3.0.0"

    def test_server_name_fallback(self):
        """Should fall back to "unknown" when the host name is unavailable."""
        with patch("keplog.environment.socket.gethostname", side_effect=OSError):
            assert build_options(ingest_key="k").server_name == "unknown"

    def test_timeout_capped(self):
        """Should cap the timeout at 10 seconds."""
        assert build_options(ingest_key="k", timeout=30).timeout == 10
        assert build_options(ingest_key="k", timeout=2).timeout == 2

    @pytest.mark.parametrize(
        "overrides",
        [
            {"timeout": 0},
            {"max_breadcrumbs": -1},
            {"before_send": "not callable"},
            {"base_url": ""},
        ],
    )
    def test_invalid_values(self, overrides):
        """Should reject invalid option values."""
        with pytest.raises(ConfigError):
            build_options(ingest_key="k", **overrides)

    def test_options_from_mapping(self):
        """Should build options from a plain mapping."""
        options = options_from_mapping(
            {"ingest_key": "k", "environment": "dev", "release": "1.0", "server_name": "a"}
        )

        assert options.environment == "dev"
        assert options.release == "1.0"

    def test_options_from_mapping_unknown_key(self):
        """Should reject unrecognized options."""
        with pytest.raises(ConfigError, match="dsn"):
            options_from_mapping({"ingest_key": "k", "dsn": "x"})

    def test_ingest_url(self):
        """Should append the ingest path."""
        assert build_ingest_url("http://localhost:8080/") == "http://localhost:8080/api/ingest/v1/events"


class TestCaptureException:
    """Test the exception capture path."""

    def test_returns_event_id(self, client, transport):
        """Should send the event and return the transport's id."""
        event_id = client.capture_exception(_raise(ValueError("Test exception")))

        assert event_id == transport.event_id
        event = transport.events[0]
        assert event["message"] == "Test exception"
        assert event["level"] == "error"
        assert event["environment"] == "testing"
        assert event["server_name"] == "test-host"
        assert "release" not in event

    def test_with_context(self, client, transport):
        """Should merge local context into the event."""
        client.capture_exception(
            _raise(ValueError("x")),
            context={"order_id": 42, "tags": {"feature": "checkout"}},
        )

        assert transport.events[0]["extra_context"] == {
            "order_id": 42,
            "tags": {"feature": "checkout"},
        }

    def test_custom_level(self, client, transport):
        """Should honor the requested level."""
        client.capture_exception(_raise(ValueError("x")), level="critical")

        assert transport.events[0]["level"] == "critical"

    def test_when_disabled(self, make_client, transport):
        """Should do nothing when disabled."""
        client = make_client(enabled=False)

        assert client.capture_exception(_raise(ValueError("x"))) is None
        assert transport.events == []

    def test_reserved_local_key_contained(self, client, transport):
        """Should return None rather than raise for a reserved local key."""
        assert client.capture_exception(_raise(ValueError("x")), context={"frames": []}) is None
        assert transport.events == []

    def test_invalid_level_contained(self, client, transport):
        """Should return None for an unknown level."""
        assert client.capture_exception(_raise(ValueError("x")), level="fatal") is None
        assert transport.events == []

    def test_delivery_failure_contained(self, client, transport):
        """Should return None when delivery fails."""
        transport.error = DeliveryError("Unexpected response status: 500", status_code=500)

        assert client.capture_exception(_raise(ValueError("x"))) is None
        assert client.state is CaptureState.IDLE

    def test_serialization_error_contained(self, client):
        """Should return None when building the event fails."""
        with patch("keplog.client.serialize_exception", side_effect=RuntimeError("boom")):
            assert client.capture_exception(_raise(ValueError("x"))) is None

        assert client.state is CaptureState.IDLE

    def test_multiple_rapid_errors(self, client, transport):
        """Should capture consecutive errors independently."""
        results = [client.capture_exception(_raise(ValueError(str(i)))) for i in range(5)]

        assert results == [transport.event_id] * 5
        assert [e["message"] for e in transport.events] == ["0", "1", "2", "3", "4"]


class TestReentrancyGuard:
    """Test the recursion guard on the exception path."""

    def test_nested_capture_blocked(self, make_client, transport):
        """Should not capture an error raised while capturing."""
        nested_results = []
        holder = {}

        def before_send(event):
            nested_results.append(holder["client"].capture_exception(_raise(RuntimeError("nested"))))
            return event

        client = make_client(before_send=before_send)
        holder["client"] = client

        event_id = client.capture_exception(_raise(ValueError("outer")))

        assert nested_results == [None]
        assert event_id == transport.event_id
        assert [e["message"] for e in transport.events] == ["outer"]

    def test_state_during_capture(self, make_client):
        """Should be CAPTURING inside the pipeline and IDLE afterwards."""
        seen = []
        holder = {}

        def before_send(event):
            seen.append(holder["client"].state)
            return event

        client = make_client(before_send=before_send)
        holder["client"] = client

        client.capture_exception(_raise(ValueError("x")))

        assert seen == [CaptureState.CAPTURING]
        assert client.state is CaptureState.IDLE

    def test_guard_reset_after_failure(self, make_client, transport):
        """Should release the guard when the pipeline fails."""
        client = make_client(before_send=MagicMock(side_effect=RuntimeError("hook failed")))

        assert client.capture_exception(_raise(ValueError("x"))) is None
        assert client.state is CaptureState.IDLE

    def test_messages_not_guarded(self, make_client, transport):
        """Should allow message capture from inside an exception capture."""
        nested_results = []
        holder = {}

        def before_send(event):
            if event["message"] == "outer":
                nested_results.append(holder["client"].capture_message("from hook"))
            return event

        client = make_client(before_send=before_send)
        holder["client"] = client

        client.capture_exception(_raise(ValueError("outer")))

        assert nested_results == [transport.event_id]


class TestBeforeSend:
    """Test the before_send hook."""

    def test_can_modify_event(self, make_client, transport):
        """Should send the hook's returned event."""

        def before_send(event):
            event["message"] = "Modified: " + event["message"]
            event["extra_context"] = {"added": True}
            return event

        client = make_client(before_send=before_send)
        client.capture_exception(_raise(ValueError("original")))

        assert transport.events[0]["message"] == "Modified: original"
        assert transport.events[0]["extra_context"] == {"added": True}

    @pytest.mark.parametrize("result", [None, {}])
    def test_can_drop_event(self, make_client, transport, result):
        """Should drop the event when the hook returns nothing."""
        client = make_client(before_send=lambda event: result)

        assert client.capture_exception(_raise(ValueError("x"))) is None
        assert client.capture_message("hello") is None
        assert transport.events == []

    def test_hook_edits_do_not_reach_client_state(self, make_client, transport):
        """Should keep scope and breadcrumbs intact when the hook edits nested data."""

        def before_send(event):
            event["extra_context"]["order"]["card"] = "***"
            event["context"]["user"]["email"] = "***"
            event["context"]["breadcrumbs"][0]["data"]["token"] = "***"
            return event

        client = make_client(before_send=before_send)
        client.set_context("order", {"card": "4111"})
        client.set_user({"id": 1, "email": "ada@example.com"})
        client.add_breadcrumb({"message": "login", "data": {"token": "secret"}})

        client.capture_message("first")
        client.capture_message("second")

        assert client.scope.context["order"] == {"card": "4111"}
        assert client.scope.user["email"] == "ada@example.com"
        assert client.breadcrumbs.get_all()[0]["data"] == {"token": "secret"}
        assert transport.events[1]["extra_context"]["order"] == {"card": "***"}

    def test_hook_error_does_not_crash(self, make_client, transport):
        """Should contain hook errors on both capture paths."""
        hook = MagicMock(side_effect=RuntimeError("hook failed"))
        client = make_client(before_send=hook)

        assert client.capture_exception(_raise(ValueError("x"))) is None
        assert client.capture_message("hello") is None
        assert hook.call_count == 2
        assert transport.events == []

    def test_hook_error_logged_in_debug_mode(self, make_client, caplog):
        """Should log hook failures when debug is on."""
        client = make_client(before_send=MagicMock(side_effect=RuntimeError("hook failed")), debug=True)

        with caplog.at_level(logging.DEBUG, logger="keplog"):
            client.capture_exception(_raise(ValueError("x")))

        assert "before_send callback raised: hook failed" in caplog.text

    def test_hook_error_silent_without_debug(self, make_client, caplog):
        """Should stay quiet when debug is off."""
        client = make_client(before_send=MagicMock(side_effect=RuntimeError("hook failed")))

        with caplog.at_level(logging.DEBUG, logger="keplog"):
            client.capture_exception(_raise(ValueError("x")))

        assert caplog.records == []


class TestDeliveryLogging:
    """Test delivery failure diagnostics."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (DeliveryError("x", status_code=401), "Invalid ingest key"),
            (DeliveryError("x", status_code=400, body='{"error": "bad level"}'), "Validation error: bad level"),
            (DeliveryError("x", status_code=400, body="not json"), "Validation error: Unknown error"),
            (DeliveryError("Failed to send event: timeout"), "Failed to deliver event: Failed to send event: timeout"),
        ],
    )
    def test_failure_detail(self, make_client, transport, caplog, error, expected):
        """Should describe recognized failures in debug mode."""
        transport.error = error
        client = make_client(debug=True)

        with caplog.at_level(logging.DEBUG, logger="keplog"):
            assert client.capture_message("hello") is None

        assert expected in caplog.text


class TestCaptureMessage:
    """Test the message capture path."""

    def test_capture_message(self, client, transport):
        """Should send an info message by default."""
        event_id = client.capture_message("Test message")

        assert event_id == transport.event_id
        event = transport.events[0]
        assert event["message"] == "Test message"
        assert event["level"] == "info"
        assert "stack_trace" not in event

    def test_with_level_and_context(self, client, transport):
        """Should pass level and context through."""
        client.capture_message("Disk almost full", level="warning", context={"disk": "/var"})

        event = transport.events[0]
        assert event["level"] == "warning"
        assert event["extra_context"] == {"disk": "/var"}

    def test_empty_message_rejected(self, client, transport):
        """Should not send an empty message."""
        assert client.capture_message("") is None
        assert transport.events == []

    def test_when_disabled(self, make_client, transport):
        """Should do nothing when disabled."""
        client = make_client(enabled=False)

        assert client.capture_message("Test") is None
        assert transport.events == []


class TestClientScope:
    """Test scope and breadcrumb operations on the client."""

    def test_add_breadcrumb(self, client, transport):
        """Should attach breadcrumbs to later events."""
        client.add_breadcrumb({"message": "User logged in", "category": "auth"})
        client.capture_message("Test")

        crumbs = transport.events[0]["context"]["breadcrumbs"]
        assert crumbs[0]["message"] == "User logged in"
        assert isinstance(crumbs[0]["timestamp"], int)

    def test_add_breadcrumb_when_disabled(self, make_client):
        """Should ignore breadcrumbs when disabled."""
        client = make_client(enabled=False)
        client.add_breadcrumb({"message": "ignored"})

        assert client.breadcrumbs.count == 0

    def test_max_breadcrumbs_option(self, make_client):
        """Should size the trail from options."""
        client = make_client(max_breadcrumbs=3)

        for i in range(5):
            client.add_breadcrumb({"message": f"Breadcrumb {i}"})

        assert [c["message"] for c in client.breadcrumbs.get_all()] == [
            "Breadcrumb 2",
            "Breadcrumb 3",
            "Breadcrumb 4",
        ]

    def test_set_context_and_tags(self, client, transport):
        """Should apply scope data to events."""
        client.set_context("tenant", "acme")
        client.set_tag("env", "production")
        client.set_tags({"region": "eu"})
        client.set_user({"id": "user-123"})

        client.capture_message("Test")

        event = transport.events[0]
        assert event["extra_context"] == {
            "tenant": "acme",
            "tags": {"env": "production", "region": "eu"},
        }
        assert event["context"]["user"] == {"id": "user-123"}

    def test_set_context_reserved_key(self, client):
        """Should surface reserved key misuse to the caller."""
        with pytest.raises(ReservedKeyError):
            client.set_context("breadcrumbs", [])

    def test_clear_scope_twice(self, client):
        """Should empty scope and breadcrumbs, idempotently."""
        client.set_context("key", "value")
        client.set_tag("env", "test")
        client.set_user({"id": "1"})
        client.add_breadcrumb({"message": "crumb"})

        client.clear_scope()
        client.clear_scope()

        assert client.scope.merge() == {}
        assert client.breadcrumbs.count == 0

    def test_set_enabled(self, client, transport):
        """Should toggle capture."""
        client.set_enabled(False)
        assert client.is_enabled is False
        assert client.capture_message("dropped") is None

        client.set_enabled(True)
        assert client.capture_message("kept") == transport.event_id
        assert [e["message"] for e in transport.events] == ["kept"]

    def test_close(self, client, transport):
        """Should close the transport."""
        client.close()

        assert transport.closed is True


class TestModuleApi:
    """Test the module-level helpers."""

    def test_helpers_noop_without_client(self):
        """Should do nothing before init."""
        assert keplog.get_client() is None
        assert keplog.capture_exception(ValueError("x")) is None
        assert keplog.capture_message("x") is None
        keplog.add_breadcrumb({"message": "x"})
        keplog.set_context("k", "v")
        keplog.set_tag("k", "v")
        keplog.set_tags({"k": "v"})
        keplog.set_user({"id": "1"})
        keplog.clear_scope()
        keplog.close()

    def test_init_requires_ingest_key(self):
        """Should raise ConfigError from init."""
        with pytest.raises(ConfigError):
            keplog.init()

    def test_init_creates_client(self):
        """Should create the global client from options."""
        client = keplog.init(
            ingest_key="kep_key",
            base_url="https://ingest.example.com",
            environment="testing",
            release="1.0.0",
            debug=True,
        )

        assert keplog.get_client() is client
        assert client.options.release == "1.0.0"
        assert client.options.debug is True
        assert client._transport.url == "https://ingest.example.com/api/ingest/v1/events"

        keplog.close()
        assert keplog.get_client() is None

    def test_init_closes_previous_client(self):
        """Should close a previous global client."""
        first = keplog.init(ingest_key="kep_key")

        with patch.object(first, "close") as close_first:
            keplog.init(ingest_key="kep_key")

        close_first.assert_called_once()

    def test_helpers_delegate(self, client, transport):
        """Should route module calls to the global client."""
        import keplog.client as client_module

        client_module._client = client

        keplog.set_tag("env", "test")
        keplog.add_breadcrumb({"message": "step"})
        event_id = keplog.capture_message("hello", level="debug")

        assert event_id == transport.event_id
        event = transport.events[0]
        assert event["level"] == "debug"
        assert event["extra_context"]["tags"] == {"env": "test"}
        assert event["context"]["breadcrumbs"][0]["message"] == "step"
