from planner import metrics


def test_counters_and_gauges():
    metrics.inc_counter("requests.plan")
    metrics.inc_counter("requests.plan", 2)
    metrics.add_gauge("active_jobs", 1)
    metrics.add_gauge("active_jobs", -1)

    snapshot = metrics.get_snapshot()
    assert snapshot["counters"]["requests.plan"] == 3
    assert snapshot["gauges"]["active_jobs"] == 0
    assert metrics.get_counter("never.touched") == 0


def test_latency_keeps_last_samples():
    for i in range(metrics.MAX_SAMPLES + 10):
        metrics.record_latency("images", float(i))

    stats = metrics.get_snapshot()["latency"]["images"]
    assert stats["count"] == metrics.MAX_SAMPLES
    assert stats["p95"] >= stats["p50"]


def test_recent_errors_are_truncated():
    metrics.record_error("plan", "GeminiAPIError", "x" * 1000, "job-1")
    errors = metrics.get_snapshot()["recent_errors"]
    assert len(errors) == 1
    assert len(errors[0]["message"]) == 300
    assert errors[0]["job_id"] == "job-1"
