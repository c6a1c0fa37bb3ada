"""Subscriber hub drivers."""

from deployrun.drivers.subscriber_hub.local import LocalSubscriberHub, QueueChannel

__all__ = ["LocalSubscriberHub", "QueueChannel"]
