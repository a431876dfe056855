"""Prometheus metrics shared by the gateway services."""

from prometheus_client import Counter

upstream_requests = Counter(
    "inference_upstream_requests_total",
    "Network attempts made against the inference service",
    ["model", "outcome"],
)

cache_hits = Counter(
    "inference_cache_hits_total",
    "Inference requests answered from the response cache",
    ["model"],
)

rate_limit_decisions = Counter(
    "rate_limit_decisions_total",
    "Admission decisions taken by the rate limiters",
    ["strategy", "outcome"],
)

quota_store_fallbacks = Counter(
    "quota_store_fallbacks_total",
    "Quota checks answered in-process because the durable store failed",
)
