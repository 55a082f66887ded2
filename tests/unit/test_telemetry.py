"""Unit tests for core/telemetry.py."""

import pytest

from core.telemetry import (
    RequestTelemetry,
    get_cache_stats,
    init_cache_stats,
    record_cache_error,
    record_cache_hit,
    record_cache_miss,
    record_provider_call,
)

# ---------------------------------------------------------------------------
# RequestTelemetry
# ---------------------------------------------------------------------------


class TestRequestTelemetry:
    def test_track_step_records_duration(self):
        t = RequestTelemetry()
        with t.track_step("test_step"):
            pass
        assert "test_step" in t.steps
        assert t.steps["test_step"].duration_ms >= 0
        assert t.steps["test_step"].success is True

    def test_track_step_records_exception(self):
        t = RequestTelemetry()
        with pytest.raises(ValueError):
            with t.track_step("failing_step"):
                raise ValueError("boom")
        assert t.steps["failing_step"].success is False
        assert t.steps["failing_step"].error_type == "ValueError"

    def test_record_results_counts_per_source(self):
        t = RequestTelemetry()
        t.record_results(["local", "youtube", "youtube"])
        t.record_results(["soundcloud"])
        assert t.result_counts == {"local": 1, "youtube": 2, "soundcloud": 1}

    def test_record_results_empty(self):
        t = RequestTelemetry()
        t.record_results([])
        assert t.result_counts == {}

    def test_get_total_duration_ms(self):
        t = RequestTelemetry()
        duration = t.get_total_duration_ms()
        assert duration >= 0

    def test_get_step_timings(self):
        t = RequestTelemetry()
        with t.track_step("step_a"):
            pass
        with t.track_step("step_b"):
            pass
        timings = t.get_step_timings()
        assert "step_a_ms" in timings
        assert "step_b_ms" in timings

    def test_send_to_posthog_step_events(self, mock_posthog_client):
        t = RequestTelemetry()
        with t.track_step("my_step"):
            pass
        t.send_to_posthog(mock_posthog_client)

        calls = mock_posthog_client.capture.call_args_list
        step_call = calls[0]
        assert step_call[1]["event"] == "search_my_step"
        assert step_call[1]["properties"]["step"] == "my_step"

    def test_send_to_posthog_summary_event(self, mock_posthog_client):
        t = RequestTelemetry()
        t.record_results(["youtube"])
        with t.track_step("s"):
            pass
        t.send_to_posthog(mock_posthog_client, {"extra": "data"})

        calls = mock_posthog_client.capture.call_args_list
        summary_call = calls[-1]
        assert summary_call[1]["event"] == "search_completed"
        assert summary_call[1]["properties"]["extra"] == "data"
        assert summary_call[1]["properties"]["result_counts"] == {"youtube": 1}

    def test_send_to_posthog_with_cache_stats(self, mock_posthog_client):
        init_cache_stats()
        record_cache_hit()

        t = RequestTelemetry()
        t.send_to_posthog(mock_posthog_client)

        summary_props = mock_posthog_client.capture.call_args_list[-1][1]["properties"]
        assert summary_props["cache"]["cache_hits"] == 1

    def test_send_to_posthog_without_cache_stats(self, mock_posthog_client):
        # Ensure no cache stats initialized (ContextVar default)
        t = RequestTelemetry()
        t.send_to_posthog(mock_posthog_client)

        summary_props = mock_posthog_client.capture.call_args_list[-1][1]["properties"]
        assert summary_props["cache"]["cache_hits"] == 0


# ---------------------------------------------------------------------------
# ContextVar cache stats
# ---------------------------------------------------------------------------


class TestCacheStats:
    def test_get_cache_stats_before_init(self):
        assert get_cache_stats() is None

    def test_init_cache_stats(self):
        init_cache_stats()
        assert get_cache_stats() == {
            "cache_hits": 0,
            "cache_misses": 0,
            "cache_errors": 0,
            "provider_calls": 0,
            "provider_time_ms": 0.0,
        }

    def test_record_cache_hit_and_miss(self):
        init_cache_stats()
        record_cache_hit()
        record_cache_hit()
        record_cache_miss()
        stats = get_cache_stats()
        assert stats["cache_hits"] == 2
        assert stats["cache_misses"] == 1

    def test_record_cache_error(self):
        init_cache_stats()
        record_cache_error()
        assert get_cache_stats()["cache_errors"] == 1

    def test_record_provider_call(self):
        init_cache_stats()
        record_provider_call(5.0)
        record_provider_call(3.0)
        stats = get_cache_stats()
        assert stats["provider_calls"] == 2
        assert stats["provider_time_ms"] == 8.0

    def test_record_functions_noop_without_init(self):
        """Record functions should be no-ops when stats not initialized."""
        record_cache_hit()
        record_cache_miss()
        record_cache_error()
        record_provider_call(1.0)
        assert get_cache_stats() is None
