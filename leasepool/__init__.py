"""
Consumer Group Lease Pool

Lets identical service instances share a fixed pool of named consumer-group
assignments through a single relational table, with row-level locking for
exclusive acquisition and time-based expiry for crash recovery.
"""

__version__ = "1.0.0"
