"""
HTTP endpoints for process supervision.

This module provides the health check server used by the hosting
platform to decide whether the bot process is alive.
"""

from pulse_bot.api.server import HealthServer

__all__ = ["HealthServer"]
