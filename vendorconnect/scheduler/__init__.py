"""Scheduled sweeps: deadline enforcement and repeat generation."""

from .jobs import SchedulerManager, get_scheduler_manager

__all__ = ["SchedulerManager", "get_scheduler_manager"]
