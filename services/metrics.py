# services/metrics.py
from __future__ import annotations

from threading import Lock
from typing import Tuple

LabelKey = Tuple[Tuple[str, str], ...]

HELP: dict[str, str] = {
    "http_requests_total": "HTTP requests by route template and status code.",
    "payout_attempts_total": "Provider send attempts by provider and outcome (accepted, rejected, transient).",
    "payout_results_total": "Payouts that reached a terminal status.",
    "payout_batches_total": "Batch runs started.",
    "payout_alerts_total": "Failure alert emails by delivery result.",
    "ledger_repairs_total": "Ledger entries appended by the reconciliation sweep.",
}

_lock = Lock()
_counters: dict[str, dict[LabelKey, int]] = {}


def _key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


def _inc(name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
    key = _key(labels)
    with _lock:
        series = _counters.setdefault(name, {})
        series[key] = series.get(key, 0) + int(value)


def get_counter(name: str, labels: dict[str, str] | None = None) -> int:
    with _lock:
        return _counters.get(name, {}).get(_key(labels), 0)


def reset() -> None:
    with _lock:
        _counters.clear()


def increment_http_requests(route: str, status: int) -> None:
    _inc("http_requests_total", {"route": route, "status": str(status)})


def increment_payout_attempt(provider: str, result: str) -> None:
    _inc("payout_attempts_total", {"provider": provider, "result": result})


def increment_payout_result(status: str) -> None:
    _inc("payout_results_total", {"status": status})


def increment_batch_run() -> None:
    _inc("payout_batches_total")


def increment_alert(result: str) -> None:
    _inc("payout_alerts_total", {"result": result})


def increment_ledger_repair() -> None:
    _inc("ledger_repairs_total")


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def render_prometheus() -> str:
    lines: list[str] = []
    with _lock:
        for name, series in sorted(_counters.items()):
            if name in HELP:
                lines.append(f"# HELP {name} {HELP[name]}")
            lines.append(f"# TYPE {name} counter")
            for labels, value in sorted(series.items()):
                if labels:
                    label_str = ",".join(f'{k}="{_escape(v)}"' for k, v in labels)
                    lines.append(f"{name}{{{label_str}}} {value}")
                else:
                    lines.append(f"{name} {value}")
    return "\n".join(lines) + ("\n" if lines else "")
