"""Tests for conductor.config.settings, conductor.exceptions and logging helpers."""

import json
import logging

import pytest

from conductor.config.settings import Settings, get_settings
from conductor.enhanced_logging import JsonFormatter, configure_logging, track_performance
from conductor.exceptions import (
    AgentExecutionError,
    ConductorException,
    CycleDetectedError,
    DependencyUnmet,
    ErrorCategory,
    RoutingError,
    UnknownOperation,
    UnknownTaskType,
    ValidationError,
    error_message_of,
    error_type_of,
    get_exception_hierarchy,
)
from conductor.models.types import AgentResult


# --- Settings ---

def test_defaults():
    s = Settings()
    assert s.default_batch_size == 5
    assert s.default_delay_between_batches == 0.0
    assert s.mock_fallback_enabled is True
    assert s.workflow_strict_dependencies is False


def test_env_override(monkeypatch):
    monkeypatch.setenv("CONDUCTOR_DEFAULT_BATCH_SIZE", "12")
    monkeypatch.setenv("CONDUCTOR_LOG_LEVEL", "debug")
    s = Settings()
    assert s.default_batch_size == 12
    assert s.log_level == "DEBUG"
    assert s.get_log_level() == logging.DEBUG


def test_base_url_trailing_slash_stripped():
    assert Settings(square_base_url="https://squareup.com/").square_base_url == "https://squareup.com"


@pytest.mark.parametrize("field,value", [
    ("environment", "staging"),
    ("log_level", "LOUD"),
    ("log_format", "xml"),
    ("default_batch_size", 0),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValueError):
        Settings(**{field: value})


def test_get_settings_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()


# --- Exceptions ---

def test_taxonomy_messages():
    assert str(UnknownTaskType("x")) == "Unknown task type: x"
    assert str(UnknownOperation("seo", "fly")) == "Unknown seo operation: fly"
    assert str(DependencyUnmet("b", ["a"])) == "Dependencies not met for step: b"
    assert str(CycleDetectedError(["a", "b", "a"])) == "Dependency cycle detected: a -> b -> a"


def test_routing_errors_not_recoverable():
    exc = UnknownTaskType("x")
    assert isinstance(exc, RoutingError)
    assert exc.is_recoverable is False
    assert exc.category is ErrorCategory.ROUTING
    assert exc.http_status == 400


def test_cycle_is_validation_error():
    exc = CycleDetectedError(["a", "a"])
    assert isinstance(exc, ValidationError)
    assert exc.details == {"cycle": ["a", "a"]}


def test_to_dict():
    data = DependencyUnmet("b", ["a"]).to_dict()
    assert data["error_type"] == "DependencyUnmet"
    assert data["category"] == "dependency"
    assert data["details"] == {"missing": ["a"]}
    assert "error_id" in data


def test_error_type_of():
    assert error_type_of(UnknownTaskType("x")) == "UnknownTaskType"
    assert error_type_of(KeyError("id")) == "AgentExecutionError"
    assert error_message_of(RuntimeError()) == "RuntimeError"


def test_result_from_exception():
    result = AgentResult.from_exception(AgentExecutionError("tab closed"), data={"item": 1})
    assert result.success is False
    assert result.error == "tab closed"
    assert result.error_type == "AgentExecutionError"
    assert result.data == {"item": 1}


def test_hierarchy():
    tree = get_exception_hierarchy()
    assert tree["ConductorException"] == [
        "AgentExecutionError", "DependencyUnmet", "RoutingError", "ValidationError",
    ]
    assert sorted(tree["RoutingError"]) == [
        "AgentUnavailableError", "UnknownAgentType", "UnknownOperation", "UnknownTaskType",
    ]
    assert issubclass(CycleDetectedError, ConductorException)


# --- Logging ---

def test_json_formatter_merges_extra():
    record = logging.LogRecord("conductor.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.operation_id = "bulk-op-1"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "hello world"
    assert payload["operation_id"] == "bulk-op-1"
    assert payload["level"] == "INFO"


def test_configure_logging_replaces_own_handler():
    root = logging.getLogger()
    before = len(root.handlers)
    configure_logging(Settings(log_format="json"))
    configure_logging(Settings(log_format="text"))
    ours = [h for h in root.handlers if getattr(h, "_conductor", False)]
    assert len(ours) == 1
    assert len(root.handlers) == before + 1
    root.removeHandler(ours[0])


async def test_track_performance_async(caplog):
    @track_performance
    async def work():
        return 42

    with caplog.at_level(logging.DEBUG):
        assert await work() == 42
    assert "completed in" in caplog.text


def test_track_performance_sync_named():
    @track_performance(operation="sum")
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
    assert add.__name__ == "add"
