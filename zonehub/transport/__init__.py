"""
zonehub transports - MQTT broker connection and an in-process loopback broker.
"""

from zonehub.transport.base import BaseTransport, topic_matches
from zonehub.transport.memory import MemoryTransport
from zonehub.transport.mqtt import MqttTransport, BrokerAddress, backoff_delay

__all__ = [
    "BaseTransport",
    "MemoryTransport",
    "MqttTransport",
    "BrokerAddress",
    "backoff_delay",
    "topic_matches",
]
