"""
Domain layer - Core lifecycle concepts.

This layer contains the states, errors, capability interfaces and value
objects of the component lifecycle. It has no dependencies on other layers.
"""

from .enums import LifecycleAction, LifecycleState
from .exceptions import (
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
from .interfaces import ILifecycle, ILifecycleExecutor, IStateful
from .models import DependencyDeclaration, SystemOptions

__all__ = [
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
    # Interfaces
    "ILifecycle",
    "IStateful",
    "ILifecycleExecutor",
    # Models
    "DependencyDeclaration",
    "SystemOptions",
]
