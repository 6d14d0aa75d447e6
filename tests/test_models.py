"""Tests for the request/response data model."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rolebot.models import (
    DEFAULT_MAX_CONCURRENCY,
    ExecutionMode,
    OrchestrationConfig,
    RequestContext,
    Response,
    StateRecord,
)


class TestRequestContext:
    def test_generates_request_id(self):
        first = RequestContext(input="hi")
        second = RequestContext(input="hi", request_id="")

        assert first.request_id
        assert second.request_id
        assert first.request_id != second.request_id

    def test_keeps_given_request_id(self):
        assert RequestContext(request_id="req-7").request_id == "req-7"

    def test_none_containers_become_empty(self):
        context = RequestContext(state=None, session_data=None, input=None, conversation_id=None)

        assert context.state == {}
        assert context.session_data == {}
        assert context.input == ""
        assert context.conversation_id == ""

    def test_timestamp_is_utc(self):
        assert RequestContext().timestamp.tzinfo is not None

    def test_snapshot_is_independent(self):
        context = RequestContext(state={"nested": {"count": 1}})
        snapshot = context.snapshot()

        snapshot.state["nested"]["count"] = 2
        snapshot.state["new"] = True

        assert context.state == {"nested": {"count": 1}}
        assert snapshot.request_id == context.request_id


class TestResponse:
    def test_defaults(self):
        response = Response()

        assert response.content == ""
        assert response.is_complete is True
        assert response.updated_state == {}
        assert response.next_roles == []
        assert response.metadata == {}
        assert response.response_type == "text"

    def test_none_fields_coerced(self):
        response = Response(content=None, updated_state=None, next_roles=None, metadata=None)

        assert response.content == ""
        assert response.updated_state == {}
        assert response.next_roles == []
        assert response.metadata == {}

    def test_failure(self):
        response = Response.failure("nope", error="boom")

        assert response.is_complete is False
        assert response.content == "nope"
        assert response.metadata == {"error": "boom"}


class TestOrchestrationConfig:
    def test_defaults(self):
        config = OrchestrationConfig()

        assert config.execution_mode == ExecutionMode.FIRST_MATCH
        assert config.specific_roles is None
        assert config.required_tags is None
        assert config.excluded_tags is None
        assert config.stop_on_first_failure is False
        assert config.max_concurrency == DEFAULT_MAX_CONCURRENCY
        assert config.timeout_seconds is None

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("parallel", ExecutionMode.PARALLEL),
            ("Pipeline", ExecutionMode.PIPELINE),
            ("FirstMatch", ExecutionMode.FIRST_MATCH),
            ("first-match", ExecutionMode.FIRST_MATCH),
            ("SEQUENTIAL", ExecutionMode.SEQUENTIAL),
        ],
    )
    def test_mode_parsing(self, raw, expected):
        assert OrchestrationConfig(execution_mode=raw).execution_mode == expected

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            OrchestrationConfig(execution_mode="round_robin")

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            OrchestrationConfig(max_concurrency=0)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            OrchestrationConfig(timeout_seconds=0)


class TestStateRecord:
    def test_naive_timestamp_assumed_utc(self):
        record = StateRecord(conversation_id="c", last_updated=datetime(2024, 1, 1, 12, 0))
        assert record.last_updated.tzinfo == timezone.utc

    def test_json_round_trip_keeps_state(self):
        record = StateRecord(conversation_id="c", state={"items": [1, 2]}, session_data={"k": "v"})
        restored = StateRecord.model_validate_json(record.model_dump_json())

        assert restored.state == {"items": [1, 2]}
        assert restored.session_data == {"k": "v"}
        assert restored.last_updated == record.last_updated
