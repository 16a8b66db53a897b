"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from community_assistant.services.metrics import NAMESPACE, MetricsClient


def _make_client(*, enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}), \
            patch.object(MetricsClient, "_start_flush_thread"):
        return MetricsClient()


def _dims(datum: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in datum["Dimensions"]}


class TestMetricsRecording:
    def test_record_success_buffers_count_and_latency(self):
        client = _make_client()
        client.record_success("graphql", "GetAllResidents", latency_ms=42.0)

        names = {m["MetricName"] for m in client._buffer}
        assert names == {"ExternalAPI/RequestCount", "ExternalAPI/Latency"}
        count = next(m for m in client._buffer if m["MetricName"] == "ExternalAPI/RequestCount")
        assert _dims(count) == {"Service": "graphql", "Status": "success"}

    def test_record_failure_without_latency(self):
        client = _make_client()
        client.record_failure("openai", "chat_completion", error_type="APIConnectionError")

        names = {m["MetricName"] for m in client._buffer}
        assert names == {"ExternalAPI/RequestCount", "ExternalAPI/ErrorCount"}
        error = next(m for m in client._buffer if m["MetricName"] == "ExternalAPI/ErrorCount")
        assert _dims(error)["ErrorType"] == "APIConnectionError"

    def test_record_failure_with_latency_adds_latency(self):
        client = _make_client()
        client.record_failure("graphql", "GetLocationsByName", error_type="DataSourceError", latency_ms=12.5)
        assert len(client._buffer) == 3


class TestTrack:
    def test_successful_block_records_success(self):
        client = _make_client()
        with client.track("openai", "chat_completion"):
            pass

        latency = next(m for m in client._buffer if m["MetricName"] == "ExternalAPI/Latency")
        assert _dims(latency) == {"Service": "openai", "Operation": "chat_completion"}
        assert latency["Value"] >= 0

    def test_failing_block_records_failure_and_reraises(self):
        client = _make_client()
        with pytest.raises(KeyError):
            with client.track("graphql", "GetAllResidents"):
                raise KeyError("residents")

        error = next(m for m in client._buffer if m["MetricName"] == "ExternalAPI/ErrorCount")
        assert _dims(error)["ErrorType"] == "KeyError"


class TestMetricsFlush:
    def test_flush_when_disabled_sends_nothing(self):
        client = _make_client()
        client.record_success("graphql", "GetAllResidents", latency_ms=1.0)
        assert client.flush() == 0
        assert client._buffer == []

    def test_flush_when_enabled_calls_put_metric_data(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()

        client.record_success("graphql", "GetAllResidents", latency_ms=1.0)
        sent = client.flush()

        assert sent == 2
        kwargs = client._cw_client.put_metric_data.call_args.kwargs
        assert kwargs["Namespace"] == NAMESPACE == "CommunityAssistant"
        assert len(kwargs["MetricData"]) == 2

    def test_flush_empty_buffer_returns_zero(self):
        assert _make_client(enabled=True).flush() == 0

    def test_flush_failure_is_logged_not_raised(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")

        client.record_success("openai", "chat_completion", latency_ms=1.0)
        assert client.flush() == 0
