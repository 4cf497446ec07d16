"""
Application layer - Use cases and orchestration.

This layer contains the dependency graph, the lifecycle executor and the
system map. It depends only on the Domain layer.
"""

from .declarations import (
    DeclarationRegistry,
    carry_declaration,
    declaration_of,
    dependencies,
    using,
)
from .dependency_graph import DependencyGraph, dependency_graph
from .executor import LifecycleExecutor, update_system, update_system_reverse
from .lifecycle import assoc, is_started, start, stop
from .system import SystemMap, start_system, stop_partial_system, stop_system, system_map, system_using

__all__ = [
    # Declarations
    "DeclarationRegistry",
    "using",
    "system_using",
    "dependencies",
    "declaration_of",
    "carry_declaration",
    # Graph
    "DependencyGraph",
    "dependency_graph",
    # Lifecycle
    "start",
    "stop",
    "assoc",
    "is_started",
    # Executor
    "LifecycleExecutor",
    "update_system",
    "update_system_reverse",
    # System
    "SystemMap",
    "system_map",
    "start_system",
    "stop_system",
    "stop_partial_system",
]
