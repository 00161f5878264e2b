"""
Broker link: MQTT session lifecycle and publishing.
"""

from .session import (
    LinkConfig,
    LinkSession,
    LinkState,
    MockLinkSession,
    PublishedMessage,
)

__all__ = [
    'LinkConfig',
    'LinkSession',
    'LinkState',
    'MockLinkSession',
    'PublishedMessage',
]
