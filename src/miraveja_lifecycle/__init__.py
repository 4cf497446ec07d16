"""
miraveja-lifecycle: Dependency-ordered start and stop of stateful components.

Public API exports for the miraveja-lifecycle package.
"""

import logging

# Application exports
from miraveja_lifecycle.application.declarations import dependencies, using
from miraveja_lifecycle.application.executor import LifecycleExecutor, update_system, update_system_reverse
from miraveja_lifecycle.application.lifecycle import start, stop
from miraveja_lifecycle.application.system import (
    SystemMap,
    start_system,
    stop_partial_system,
    stop_system,
    system_map,
    system_using,
)

# Domain exports
from miraveja_lifecycle.domain.enums import LifecycleAction, LifecycleState
from miraveja_lifecycle.domain.exceptions import (
    ComponentActionError,
    CycleError,
    InvalidDependencySpecError,
    LifecycleException,
    MissingComponentError,
    MissingDependencyError,
    NilComponentError,
    NilDependencyError,
    UnsupportedComponentError,
    is_lifecycle_error,
    without_components,
)
from miraveja_lifecycle.domain.interfaces import ILifecycle, IStateful
from miraveja_lifecycle.domain.models import SystemOptions

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # System
    "SystemMap",
    "SystemOptions",
    "system_map",
    "start_system",
    "stop_system",
    "stop_partial_system",
    "update_system",
    "update_system_reverse",
    "LifecycleExecutor",
    # Components
    "ILifecycle",
    "IStateful",
    "start",
    "stop",
    "using",
    "system_using",
    "dependencies",
    # Enums
    "LifecycleState",
    "LifecycleAction",
    # Exceptions
    "LifecycleException",
    "InvalidDependencySpecError",
    "MissingComponentError",
    "NilComponentError",
    "MissingDependencyError",
    "NilDependencyError",
    "CycleError",
    "ComponentActionError",
    "UnsupportedComponentError",
    "is_lifecycle_error",
    "without_components",
]
