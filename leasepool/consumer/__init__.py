"""
Consumer module.
Derives message consumer settings from the held assignment.
"""

from leasepool.consumer.config import ConsumerConfig, build_consumer_config

__all__ = ["ConsumerConfig", "build_consumer_config"]
