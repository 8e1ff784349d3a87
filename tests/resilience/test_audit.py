# tests/resilience/test_audit.py
import json
from pathlib import Path

from market_pulse.resilience.audit import ApiAuditLog


def test_summary_counts_per_api():
    audit = ApiAuditLog()
    audit.record("finnhub", "/quote", "hit", 120.0)
    audit.record("finnhub", "/quote", "error", 30.0, error="timeout")
    audit.record("cache", "asset_AAPL", "miss")

    assert audit.summary() == {
        "finnhub": {"hit": 1, "miss": 0, "error": 1},
        "cache": {"hit": 0, "miss": 1, "error": 0},
    }
    assert [r.error for r in audit.errors()] == ["timeout"]
    assert audit.errors("cache") == []


def test_records_are_bounded():
    audit = ApiAuditLog(max_records=3)
    for i in range(5):
        audit.record("api", f"/e{i}", "hit")

    assert [r.endpoint for r in audit.records] == ["/e2", "/e3", "/e4"]


def test_dump_writes_report_and_clears(tmp_path: Path):
    audit = ApiAuditLog()
    audit.record("alphavantage", "/query", "hit", 210.456)
    audit.record("newsapi", "rate-limit", "error", rate_limit_ok=False, error="Backoff: 30s")

    path = audit.dump(tmp_path / "logs")

    assert path is not None
    assert path.name.startswith("api_efficiency_log_")
    report = json.loads(path.read_text())
    assert report["total"] == 2
    assert report["summary"]["newsapi"]["error"] == 1
    assert report["logs"][0]["latency_ms"] == 210.46
    assert report["logs"][1]["rate_limit_ok"] is False
    assert len(audit.records) == 0


def test_dump_with_no_records_writes_nothing(tmp_path: Path):
    assert ApiAuditLog().dump(tmp_path) is None
    assert list(tmp_path.iterdir()) == []
