"""
zonehub - presence-driven music automation hub.

Ingests zone presence events from an MQTT broker, keeps the latest
occupancy snapshot per zone, derives play/stop commands and fans
updates out to WebSocket clients grouped by zone.
"""
from zonehub.version import __version__
