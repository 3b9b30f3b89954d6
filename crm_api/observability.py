from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram, start_http_server

from .config import ObservabilityConfig

STAGE_LATENCY = Histogram("crm_stage_latency_seconds", "Latency of request pipeline stages", ["stage"])
REQUEST_COUNTER = Counter("crm_requests_total", "Handled API requests", ["route", "status"])


def init_metrics_server(cfg: ObservabilityConfig) -> None:
    if cfg.metrics_port > 0:
        start_http_server(cfg.metrics_port)


def count_request(route: str, status: int) -> None:
    REQUEST_COUNTER.labels(route=route, status=str(status)).inc()


@contextmanager
def record_latency(stage: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        STAGE_LATENCY.labels(stage=stage).observe(time.perf_counter() - start)


__all__ = ["init_metrics_server", "count_request", "record_latency", "STAGE_LATENCY", "REQUEST_COUNTER"]
