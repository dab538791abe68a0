"""
Prometheus metrics configuration for Esmero.

Defines custom metrics for agent and completion traffic.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Use standard Prometheus naming conventions: namespace_subsystem_name_unit
NAMESPACE = "esmero"

request_duration_seconds = Histogram(
    f"{NAMESPACE}_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path", "status"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# ============================================================================
# Agent Metrics
# ============================================================================

agent_requests_total = Counter(
    f"{NAMESPACE}_agent_requests_total",
    "Total number of agent requests",
    ["mode", "status"],  # mode: "atomic" | "stream"; status: "ok" | "error" | "cancelled"
)

stream_chunks_emitted_total = Counter(
    f"{NAMESPACE}_stream_chunks_emitted_total",
    "Total number of diff chunks emitted over SSE",
)


# ============================================================================
# Completion Provider Metrics
# ============================================================================

llm_requests_total = Counter(
    f"{NAMESPACE}_llm_requests_total",
    "Total number of completion provider calls",
    ["purpose", "status"],  # purpose: "agent" | "relevance" | "title"
)

llm_request_duration_seconds = Histogram(
    f"{NAMESPACE}_llm_request_duration_seconds",
    "Completion provider call duration in seconds",
    ["purpose"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

relevance_fallbacks_total = Counter(
    f"{NAMESPACE}_relevance_fallbacks_total",
    "Relevance selections that fell back to the first candidates",
    ["kind"],  # "folder" | "document"
)
