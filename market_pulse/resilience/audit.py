# market_pulse/resilience/audit.py
import json
import logging
import time
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ApiCallRecord:
    timestamp: int  # ms
    api_name: str
    endpoint: str
    status: str  # "hit" | "miss" | "error"
    latency_ms: float
    rate_limit_ok: bool
    error: str | None = None


class ApiAuditLog:
    """In-memory API efficiency log: cache hits, upstream calls and recovered failures"""

    def __init__(self, max_records: int = 5000):
        self.records: deque[ApiCallRecord] = deque(maxlen=max_records)

    def record(
        self,
        api_name: str,
        endpoint: str,
        status: str,
        latency_ms: float = 0.0,
        rate_limit_ok: bool = True,
        error: str | None = None,
    ) -> ApiCallRecord:
        entry = ApiCallRecord(
            timestamp=int(time.time() * 1000),
            api_name=api_name,
            endpoint=endpoint,
            status=status,
            latency_ms=round(latency_ms, 2),
            rate_limit_ok=rate_limit_ok,
            error=error,
        )
        self.records.append(entry)
        if status == "error":
            logger.debug(f"{api_name} {endpoint} failed after {latency_ms:.0f}ms: {error}")
        return entry

    def summary(self) -> dict[str, dict[str, int]]:
        """Per-API counts of hit / miss / error"""
        result: dict[str, dict[str, int]] = {}
        for r in self.records:
            counts = result.setdefault(r.api_name, {"hit": 0, "miss": 0, "error": 0})
            counts[r.status] = counts.get(r.status, 0) + 1
        return result

    def errors(self, api_name: str | None = None) -> list[ApiCallRecord]:
        return [
            r
            for r in self.records
            if r.status == "error" and (api_name is None or r.api_name == api_name)
        ]

    def dump(self, directory: Path) -> Path | None:
        """Write the current window to a JSON report and clear it"""
        if not self.records:
            return None

        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"api_efficiency_log_{int(time.time() * 1000)}.json"
        payload: dict[str, Any] = {
            "generated_at": datetime.now(UTC).isoformat(),
            "total": len(self.records),
            "summary": self.summary(),
            "logs": [asdict(r) for r in self.records],
        }
        path.write_text(json.dumps(payload, indent=2))
        self.records.clear()
        logger.info(f"API efficiency log saved: {path}")
        return path
