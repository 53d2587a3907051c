"""
Application constants.
Centralized location for all constant values used across the application.
"""

# Default values
DEFAULT_LEASE_DURATION_SECONDS = 30
DEFAULT_RENEWAL_INTERVAL_SECONDS = 20
DEFAULT_ACQUIRE_ATTEMPTS = 3
DEFAULT_REACQUIRE_ATTEMPTS = 3

# Table name
LEASE_TABLE_NAME = "lease_pool"

# Metrics names
METRIC_LEASE_ACQUIRED = "lease_acquired_total"
METRIC_LEASE_UNAVAILABLE = "lease_unavailable_total"
METRIC_LEASE_RENEWED = "lease_renewed_total"
METRIC_LEASE_LOST = "lease_lost_total"
METRIC_LEASE_RELEASED = "lease_released_total"
METRIC_KEEPALIVE_ERRORS = "lease_keepalive_errors_total"
METRIC_LEASE_HELD = "lease_held"

# Trace span names
SPAN_ACQUIRE_LEASE = "acquire_lease"
SPAN_RENEW_LEASE = "renew_lease"
SPAN_RELEASE_LEASE = "release_lease"

# Live-streaming consumer settings
CONSUMER_AUTO_OFFSET_RESET = "latest"
CONSUMER_SESSION_TIMEOUT_MS = 30000
CONSUMER_HEARTBEAT_INTERVAL_MS = 3000
