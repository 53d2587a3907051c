"""
Time source shared by the lease table and lease snapshots.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the lease table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
