"""
FastAPI integration module.

Runs a system for the lifetime of a FastAPI application.
"""

from .integration import (
    SystemStateMiddleware,
    create_component_dependency,
    create_lifespan,
    get_system,
)

__all__ = [
    "create_lifespan",
    "create_component_dependency",
    "get_system",
    "SystemStateMiddleware",
]
