"""
Unit tests for consumer configuration.
"""

from datetime import datetime, timedelta

import pytest

from leasepool.config import Settings
from leasepool.consumer.config import build_consumer_config
from leasepool.exceptions import LeaseUnavailableError
from leasepool.lease.handle import AssignmentHandle
from leasepool.types.lease import LeaseInfo


@pytest.fixture
def settings() -> Settings:
    return Settings(
        kafka_bootstrap_servers="kafka-1:9092,kafka-2:9092",
        kafka_topic="ohlcv-topic",
    )


@pytest.fixture
def held_handle() -> AssignmentHandle:
    locked_at = datetime(2026, 1, 1, 12, 0, 0)
    handle = AssignmentHandle()
    handle.publish(
        LeaseInfo(
            lease_id=3,
            assignment_name="ohlcv-group-3",
            holder_id="instance-x",
            locked_at=locked_at,
            lock_expires_at=locked_at + timedelta(seconds=30),
        )
    )
    return handle


class TestBuildConsumerConfig:
    """Tests for build_consumer_config."""

    def test_group_id_is_assignment_name(self, held_handle, settings):
        config = build_consumer_config(held_handle, settings)

        assert config.group_id == "ohlcv-group-3"
        assert config.topic == "ohlcv-topic"
        assert config.bootstrap_servers == "kafka-1:9092,kafka-2:9092"

    def test_live_streaming_defaults(self, held_handle, settings):
        """Test that the consumer starts at latest and never commits."""
        config = build_consumer_config(held_handle, settings)

        assert config.auto_offset_reset == "latest"
        assert config.enable_auto_commit is False

    def test_consumer_kwargs_exclude_topic(self, held_handle, settings):
        kwargs = build_consumer_config(held_handle, settings).consumer_kwargs()

        assert "topic" not in kwargs
        assert kwargs["group_id"] == "ohlcv-group-3"
        assert kwargs["session_timeout_ms"] == 30000
        assert kwargs["heartbeat_interval_ms"] == 3000

    def test_no_default_group_id_fallback(self, settings):
        """Test that configuring without a held lease fails."""
        with pytest.raises(LeaseUnavailableError):
            build_consumer_config(AssignmentHandle(), settings)
