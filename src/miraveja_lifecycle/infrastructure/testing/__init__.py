"""
Testing utilities module.

Provides helpers and utilities for testing applications built on miraveja-lifecycle.
"""

from .utilities import LifecycleLog, RecordingComponent, SystemScope, recording_component

__all__ = [
    "LifecycleLog",
    "RecordingComponent",
    "recording_component",
    "SystemScope",
]
