"""
Message consumer configuration.

The transport client itself lives outside this package; this module only
derives its settings, with the held assignment name as the group id.
"""

import logging
from typing import Any

from pydantic import BaseModel

from leasepool.config import Settings, get_settings
from leasepool.constants import (
    CONSUMER_AUTO_OFFSET_RESET,
    CONSUMER_HEARTBEAT_INTERVAL_MS,
    CONSUMER_SESSION_TIMEOUT_MS,
)
from leasepool.exceptions import LeaseUnavailableError
from leasepool.lease.handle import AssignmentHandle

logger = logging.getLogger(__name__)


class ConsumerConfig(BaseModel):
    """
    Settings for a live-streaming consumer.
    Always starts at the latest offset and never commits offsets.
    """

    bootstrap_servers: str
    topic: str
    group_id: str
    auto_offset_reset: str = CONSUMER_AUTO_OFFSET_RESET
    enable_auto_commit: bool = False
    session_timeout_ms: int = CONSUMER_SESSION_TIMEOUT_MS
    heartbeat_interval_ms: int = CONSUMER_HEARTBEAT_INTERVAL_MS

    def consumer_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for a kafka-python style consumer constructor."""
        return self.model_dump(exclude={"topic"})


def build_consumer_config(
    handle: AssignmentHandle,
    settings: Settings | None = None,
) -> ConsumerConfig:
    """
    Build the consumer configuration from the held assignment.

    Args:
        handle: Handle the acquisition gate published the lease to.
        settings: Optional settings. Uses cached settings if not provided.

    Returns:
        ConsumerConfig: Consumer settings using the assignment as group id.

    Raises:
        LeaseUnavailableError: If no assignment is held. There is no
            default group id to fall back to.
    """
    settings = settings or get_settings()

    group_id = handle.assignment_name
    if group_id is None:
        logger.error("Consumer configuration requested before a lease was acquired")
        raise LeaseUnavailableError(
            "No consumer group lease held - consumer cannot be configured"
        )

    config = ConsumerConfig(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        topic=settings.kafka_topic,
        group_id=group_id,
    )
    logger.info(
        "Consumer configured from acquired lease",
        extra={
            "group_id": config.group_id,
            "topic": config.topic,
            "bootstrap_servers": config.bootstrap_servers,
        },
    )
    return config
