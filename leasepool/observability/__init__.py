"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from leasepool.observability.logging import (
    AssignmentContext,
    bind_context,
    clear_context,
    setup_logging,
)
from leasepool.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from leasepool.observability.tracing import (
    get_tracer,
    instrument_sqlalchemy,
    lease_span,
    setup_tracing,
)

__all__ = [
    "setup_logging",
    "bind_context",
    "clear_context",
    "AssignmentContext",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "instrument_sqlalchemy",
    "get_tracer",
    "lease_span",
]
