"""Scheduling components and the facade that wires them."""

from .scheduler import SchedulingService

__all__ = ["SchedulingService"]
