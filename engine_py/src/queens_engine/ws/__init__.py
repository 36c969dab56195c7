"""
WebSocket event models for the Sleeping Queens server.
"""

from .events import *

__all__ = ["EventType", "OutboundEventType", "parse_inbound_event"]
