# Prometheus metrics for the key-management core.
#
# Label sets are small and fixed: outcomes are enums, type URLs are the
# handful of registered key types. No key material or kid values ever become
# labels.

from __future__ import annotations

import threading

from prometheus_client import Counter, Histogram

_lock = threading.Lock()
# Settings.metrics_enabled (KEYCORE_METRICS_ENABLED) drives this through
# get_default_context().
_enabled = True

REGISTER_TOTAL = Counter(
    "keycore_registry_register_total",
    "Key manager registration attempts",
    ["outcome"],
)
LOOKUP_TOTAL = Counter(
    "keycore_registry_lookup_total",
    "Key manager lookups",
    ["outcome"],
)
SELF_TEST_TOTAL = Counter(
    "keycore_self_test_total",
    "Key self-test results after reconstruction",
    ["result"],
)
KEYGEN_LATENCY = Histogram(
    "keycore_keygen_latency_seconds",
    "RSA key generation latency (s)",
    labelnames=("modulus_bits",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
PRIMITIVE_CREATED_TOTAL = Counter(
    "keycore_primitive_created_total",
    "Primitives constructed by key managers",
    ["type_url"],
)


def set_metrics_enabled(enabled: bool) -> None:
    global _enabled
    with _lock:
        _enabled = bool(enabled)


def metrics_enabled() -> bool:
    return _enabled


def inc_register(outcome: str) -> None:
    if _enabled:
        REGISTER_TOTAL.labels(outcome).inc()


def inc_lookup(outcome: str) -> None:
    if _enabled:
        LOOKUP_TOTAL.labels(outcome).inc()


def inc_self_test(result: str) -> None:
    if _enabled:
        SELF_TEST_TOTAL.labels(result).inc()


def observe_keygen(modulus_bits: int, seconds: float) -> None:
    if _enabled:
        KEYGEN_LATENCY.labels(str(modulus_bits)).observe(seconds)


def inc_primitive_created(type_url: str) -> None:
    if _enabled:
        PRIMITIVE_CREATED_TOTAL.labels(type_url).inc()


__all__ = [
    "set_metrics_enabled",
    "metrics_enabled",
    "inc_register",
    "inc_lookup",
    "inc_self_test",
    "observe_keygen",
    "inc_primitive_created",
]
