"""Shared helpers."""

from .background_tasks import run_guarded, spawn, in_flight
from .datetime_utils import get_local_tz, get_local_now, to_naive_local

__all__ = [
    "run_guarded",
    "spawn",
    "in_flight",
    "get_local_tz",
    "get_local_now",
    "to_naive_local",
]
