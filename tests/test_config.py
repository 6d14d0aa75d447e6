"""Tests for registry configuration loading."""

import json
from pathlib import Path

import pytest

from rolebot.config import (
    DEFAULT_CLEANUP_INTERVAL_HOURS,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_STATE_DIRECTORY,
    load_registry_settings,
    parse_registry_settings,
)
from rolebot.errors import ConfigurationError
from rolebot.models import DEFAULT_MAX_CONCURRENCY, ExecutionMode

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "registry.example.json"


class TestParseRegistrySettings:
    def test_defaults(self):
        settings = parse_registry_settings({})

        assert settings.capabilities == []
        assert settings.max_concurrent_roles == DEFAULT_MAX_CONCURRENCY
        assert settings.default_execution_mode == ExecutionMode.FIRST_MATCH
        assert settings.enable_state_persistence is True
        assert settings.cleanup_interval_hours == DEFAULT_CLEANUP_INTERVAL_HOURS
        assert settings.response_timeout_seconds == DEFAULT_RESPONSE_TIMEOUT
        assert settings.state_directory == DEFAULT_STATE_DIRECTORY

    def test_camel_case_document(self):
        settings = parse_registry_settings(
            {
                "roles": [
                    {
                        "roleId": "summarizer",
                        "implementationRef": "summarizer",
                        "configuration": {"summary_length": "short"},
                    }
                ],
                "maxConcurrentRoles": 4,
                "defaultExecutionMode": "Parallel",
                "enableStatePersistence": False,
                "cleanupIntervalHours": 12,
                "responseTimeoutSeconds": 5,
                "stateDirectory": "/tmp/state",
            }
        )

        record = settings.capabilities[0]
        assert record.id == "summarizer"
        assert record.implementation == "summarizer"
        assert record.configuration == {"summary_length": "short"}
        assert settings.max_concurrent_roles == 4
        assert settings.default_execution_mode == ExecutionMode.PARALLEL
        assert settings.enable_state_persistence is False
        assert settings.cleanup_interval_hours == 12
        assert settings.response_timeout_seconds == 5
        assert settings.state_directory == "/tmp/state"

    def test_snake_case_document(self):
        settings = parse_registry_settings(
            {
                "capabilities": [{"id": "echo", "implementation": "echo", "config": None}],
                "max_concurrent_roles": 2,
                "default_execution_mode": "pipeline",
            }
        )

        assert settings.capabilities[0].configuration == {}
        assert settings.max_concurrent_roles == 2
        assert settings.default_execution_mode == ExecutionMode.PIPELINE

    def test_non_positive_timeout_disables_it(self):
        assert parse_registry_settings({"responseTimeoutSeconds": 0}).response_timeout_seconds is None

    def test_orchestration_defaults(self):
        settings = parse_registry_settings(
            {"maxConcurrentRoles": 3, "defaultExecutionMode": "sequential", "responseTimeoutSeconds": 7}
        )

        config = settings.orchestration_defaults()

        assert config.execution_mode == ExecutionMode.SEQUENTIAL
        assert config.max_concurrency == 3
        assert config.timeout_seconds == 7

    @pytest.mark.parametrize(
        "document",
        [
            {"capabilities": [{"id": "a", "implementation": "echo"}] * 2},
            {"capabilities": [{"implementation": "echo"}]},
            {"defaultExecutionMode": "shuffle"},
            {"maxConcurrentRoles": 0},
            {"responseTimeoutSeconds": [1]},
            {"responseTimeoutSeconds": "soon"},
        ],
    )
    def test_invalid_documents(self, document):
        with pytest.raises(ConfigurationError):
            parse_registry_settings(document)

    def test_document_must_be_an_object(self):
        with pytest.raises(ConfigurationError):
            parse_registry_settings([])


class TestLoadRegistrySettings:
    def test_loads_file(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text(
            json.dumps({"capabilities": [{"id": "echo", "implementation": "echo"}]}),
            encoding="utf-8",
        )

        settings = load_registry_settings(path)

        assert [record.id for record in settings.capabilities] == ["echo"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_registry_settings(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_registry_settings(path)

    def test_directory_instead_of_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Could not read"):
            load_registry_settings(tmp_path)

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_bytes(b"\xff\xfe\x00{")

        with pytest.raises(ConfigurationError, match="Could not read"):
            load_registry_settings(path)

    def test_example_config_is_valid(self):
        settings = load_registry_settings(EXAMPLE_CONFIG)

        assert [record.id for record in settings.capabilities] == ["summarizer", "responder", "echo"]
