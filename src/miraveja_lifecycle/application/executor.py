"""Application layer - Dependency-ordered execution of lifecycle functions."""

import logging
from typing import Any, Callable, Hashable, Iterable, Mapping, Optional

from miraveja_lifecycle.application.declarations import carry_declaration, dependencies
from miraveja_lifecycle.application.dependency_graph import dependency_graph
from miraveja_lifecycle.application.lifecycle import assoc
from miraveja_lifecycle.domain import (
    ComponentActionError,
    ILifecycleExecutor,
    MissingComponentError,
    MissingDependencyError,
    NilComponentError,
    NilDependencyError,
)

logger = logging.getLogger(__name__)


def _system_name(system: Mapping) -> str:
    options = getattr(system, "options", None)
    return getattr(options, "name", type(system).__name__)


class LifecycleExecutor(ILifecycleExecutor):
    """Applies a function to the components of a system in dependency order.

    The system is folded over the ordered keys: each step reads the current
    component, injects its dependencies from the current state of the system,
    calls the function and writes the result back. Processing is strictly
    sequential.
    """

    def run(
        self,
        system: Mapping,
        keys: Iterable[Hashable],
        operation: Callable[..., Any],
        *args: Any,
        reverse: bool = False,
        predicate: Optional[Callable[[Any], bool]] = None,
    ) -> Mapping:
        """Invoke operation on each selected component, injecting dependencies first.

        Args:
            system: The system holding the components.
            keys: Keys of the components to process, in any order.
            operation: Function receiving the component and returning its replacement.
            *args: Extra arguments passed to operation after the component.
            reverse: Process dependents before their dependencies.
            predicate: Components for which it returns False are left untouched.

        Returns:
            The updated system. The input system is not modified.

        Raises:
            CycleError: If the dependencies among keys form a cycle. Raised
                before any component is touched.
            MissingComponentError: If a key is not in the system.
            NilComponentError: If a key is bound to None.
            MissingDependencyError: If a dependency target is not in the system.
            NilDependencyError: If a dependency target is bound to None.
            ComponentActionError: If operation raises.

        Example:
            >>> executor = LifecycleExecutor()
            >>> started = executor.run(system, system.keys(), start)
            >>> stopped = executor.run(started, started.keys(), stop, reverse=True)
        """
        keys = list(keys)
        graph = dependency_graph(system, keys)
        order = graph.topo_sort(keys)
        if reverse:
            order.reverse()

        action = getattr(operation, "__name__", repr(operation))
        logger.debug("Running %s over %s in order %r", action, _system_name(system), order)

        for key in order:
            component = self._get_component(system, key)
            if predicate is not None and not predicate(component):
                logger.debug("Skipping %s of component %r", action, key)
                continue
            component = self._assoc_dependencies(component, system)
            updated = self._try_action(component, system, key, operation, args)
            system = assoc(system, key, carry_declaration(component, updated))

        return system

    @staticmethod
    def _get_component(system: Mapping, key: Hashable) -> Any:
        if key not in system:
            raise MissingComponentError(key, system)
        component = system[key]
        if component is None:
            raise NilComponentError(key, system)
        return component

    @staticmethod
    def _assoc_dependencies(component: Any, system: Mapping) -> Any:
        for dependency_key, system_key in dependencies(component).items():
            if system_key not in system:
                raise MissingDependencyError(dependency_key, system_key, component, system)
            dependency = system[system_key]
            if dependency is None:
                raise NilDependencyError(dependency_key, system_key, component, system)
            component = assoc(component, dependency_key, dependency)
        return component

    @staticmethod
    def _try_action(
        component: Any,
        system: Mapping,
        key: Hashable,
        operation: Callable[..., Any],
        args: tuple,
    ) -> Any:
        try:
            return operation(component, *args)
        except Exception as e:
            logger.debug("Component %r raised during %s: %s", key, getattr(operation, "__name__", operation), e)
            raise ComponentActionError(key, operation, component, system, _system_name(system)) from e


_executor = LifecycleExecutor()


def update_system(system: Mapping, keys: Iterable[Hashable], f: Callable[..., Any], *args: Any) -> Mapping:
    """Call f(component, *args) on the components at keys, in dependency order.

    Dependencies are injected into each component before f is called.

    Example:
        >>> update_system(system, system.keys(), bump_counter, 1)
    """
    return _executor.run(system, keys, f, *args)


def update_system_reverse(system: Mapping, keys: Iterable[Hashable], f: Callable[..., Any], *args: Any) -> Mapping:
    """Like update_system, but in reverse dependency order."""
    return _executor.run(system, keys, f, *args, reverse=True)
