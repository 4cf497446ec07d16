import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, Optional, Tuple

from miraveja_lifecycle.application.declarations import carry_declaration, using
from miraveja_lifecycle.application.executor import LifecycleExecutor
from miraveja_lifecycle.application.lifecycle import assoc, is_started, start, stop
from miraveja_lifecycle.domain import (
    ComponentActionError,
    ILifecycle,
    ILifecycleExecutor,
    IStateful,
    LifecycleState,
    MissingComponentError,
    NilComponentError,
    SystemOptions,
)

logger = logging.getLogger(__name__)

_executor: ILifecycleExecutor = LifecycleExecutor()


def _unless_started(component: Any) -> bool:
    return is_started(component) is not True


def _unless_stopped(component: Any) -> bool:
    return is_started(component) is not False


def start_system(
    system: Mapping,
    keys: Optional[Iterable[Hashable]] = None,
    predicate: Optional[Callable[[Any], bool]] = None,
) -> Mapping:
    """Start the components of system in dependency order.

    Dependencies are injected into each component before it is started.

    Args:
        system: Any mapping of key to component.
        keys: Keys of the components to start, in any order. Defaults to all keys.
        predicate: Components for which it returns False are left untouched.

    Returns:
        The updated system.

    Example:
        >>> started = start_system({"db": Database(url), "app": using(App(), {"database": "db"})})
    """
    if keys is None:
        keys = list(system.keys())
    return _executor.run(system, keys, start, predicate=predicate)


def stop_system(
    system: Mapping,
    keys: Optional[Iterable[Hashable]] = None,
    predicate: Optional[Callable[[Any], bool]] = None,
) -> Mapping:
    """Stop the components of system in reverse dependency order.

    Args:
        system: Any mapping of key to component.
        keys: Keys of the components to stop, in any order. Defaults to all keys.
        predicate: Components for which it returns False are left untouched.

    Returns:
        The updated system.
    """
    if keys is None:
        keys = list(system.keys())
    return _executor.run(system, keys, stop, reverse=True, predicate=predicate)


class SystemMap(Mapping, ILifecycle, IStateful):
    """Ordered, immutable collection of components with aggregate start and stop.

    A system is itself a component, so systems can be nested inside other
    systems. Every operation returns a new system; the original is left as is.

    Attributes:
        _components: Components by key, in insertion order.
        _options: Name and idempotence setting of the system.
        _state: Whether the system as a whole was last started or stopped.

    Example:
        >>> system = SystemMap(
        ...     {
        ...         "db": Database(url),
        ...         "app": using(WebApp(), {"database": "db"}),
        ...     },
        ...     options=SystemOptions(name="api", idempotent=True),
        ... )
        >>> running = system.start()
        >>> running = running.stop()
    """

    def __init__(
        self,
        components: Optional[Mapping] = None,
        options: Optional[SystemOptions] = None,
        state: LifecycleState = LifecycleState.STOPPED,
    ) -> None:
        """Initialize the system.

        Args:
            components: Mapping of key to component. Copied.
            options: System configuration. Defaults to SystemOptions().
            state: Initial aggregate state.
        """
        self._components: Dict[Hashable, Any] = dict(components or {})
        self._options = options or SystemOptions()
        self._state = LifecycleState(state)

    @property
    def options(self) -> SystemOptions:
        return self._options

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._state == LifecycleState.STARTED

    def __getitem__(self, key: Hashable) -> Any:
        return self._components[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SystemMap):
            return (
                self._components == other._components
                and self._state == other._state
                and self._options == other._options
            )
        if isinstance(other, Mapping):
            return self._components == dict(other.items())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        keys = ", ".join(repr(key) for key in self._components)
        return f"<SystemMap {self._options.name} {self._state}: [{keys}]>"

    def _replace(self, components: Dict[Hashable, Any], state: LifecycleState) -> "SystemMap":
        return carry_declaration(self, SystemMap(components, self._options, state))

    def assoc(self, key: Hashable, component: Any) -> "SystemMap":
        """Return a new system with component at key."""
        components = dict(self._components)
        components[key] = component
        return self._replace(components, self._state)

    def dissoc(self, key: Hashable) -> "SystemMap":
        """Return a new system without key."""
        components = dict(self._components)
        components.pop(key, None)
        return self._replace(components, self._state)

    def with_state(self, state: LifecycleState) -> "SystemMap":
        """Return a new system with the same components and the given aggregate state."""
        return self._replace(dict(self._components), state)

    def start(self) -> "SystemMap":
        """Start every component in dependency order.

        Returns:
            The started system.

        Raises:
            CycleError: If the dependency declarations form a cycle.
            MissingComponentError: If a component is missing or None.
            MissingDependencyError: If a dependency is missing or None.
            ComponentActionError: If a component fails to start. The error
                carries the partially started system.
        """
        if self._options.idempotent and self.is_started:
            logger.debug("System %s already started", self._options.name)
            return self
        logger.info("Starting system %s (%d components)", self._options.name, len(self))
        predicate = _unless_started if self._options.idempotent else None
        started = start_system(self, predicate=predicate)
        logger.info("System %s started", self._options.name)
        return started.with_state(LifecycleState.STARTED)

    def stop(self) -> "SystemMap":
        """Stop every component in reverse dependency order.

        Returns:
            The stopped system.

        Raises:
            CycleError: If the dependency declarations form a cycle.
            MissingComponentError: If a component is missing or None.
            MissingDependencyError: If a dependency is missing or None.
            ComponentActionError: If a component fails to stop. The error
                carries the partially stopped system.
        """
        if self._options.idempotent and not self.is_started:
            logger.debug("System %s already stopped", self._options.name)
            return self
        logger.info("Stopping system %s (%d components)", self._options.name, len(self))
        predicate = _unless_stopped if self._options.idempotent else None
        stopped = stop_system(self, predicate=predicate)
        logger.info("System %s stopped", self._options.name)
        return stopped.with_state(LifecycleState.STOPPED)


@assoc.register
def _assoc_system(value: SystemMap, field: Hashable, item: Any) -> SystemMap:
    return value.assoc(field, item)


def system_map(*pairs: Tuple[Hashable, Any], options: Optional[SystemOptions] = None, **components: Any) -> SystemMap:
    """Build a system from (key, component) pairs and keyword components.

    Pairs come first, keyword components after, in the order given.

    Args:
        *pairs: Tuples of (key, component), for keys that are not identifiers.
        options: System configuration.
        **components: Components keyed by name.

    Returns:
        A stopped SystemMap.

    Raises:
        ValueError: If a positional argument is not a (key, component) pair.

    Example:
        >>> system = system_map(
        ...     db=Database(url),
        ...     app=using(WebApp(), ["db"]),
        ... )
    """
    entries: Dict[Hashable, Any] = {}
    for pair in pairs:
        if not isinstance(pair, tuple) or len(pair) != 2:
            raise ValueError(f"system_map expects (key, component) pairs, got {pair!r}")
        key, component = pair
        entries[key] = component
    entries.update(components)
    return SystemMap(entries, options=options)


def system_using(system: Mapping, dependency_map: Mapping[Hashable, Any]) -> Mapping:
    """Declare dependencies for several components of a system at once.

    Args:
        system: The system holding the components.
        dependency_map: Mapping from system key to a dependency spec, as accepted by using().

    Returns:
        A new system whose named components carry the declarations. The
        given system is left as is.

    Raises:
        MissingComponentError: If a key of dependency_map is not in the system.
        NilComponentError: If a key of dependency_map is bound to None.

    Example:
        >>> system = system_using(system, {"app": ["db"], "worker": {"store": "db"}})
    """
    updated = system
    for key, spec in dependency_map.items():
        if key not in system:
            raise MissingComponentError(key, system)
        component = system[key]
        if component is None:
            raise NilComponentError(key, system)
        updated = assoc(updated, key, using(component, spec))
    return updated


def stop_partial_system(error: ComponentActionError) -> Mapping:
    """Stop the partially started system carried by a failed start.

    Components reporting that they are already stopped are skipped; others,
    including those the failed start never reached, are stopped in reverse
    dependency order.

    Args:
        error: The error raised by a failed start.

    Returns:
        The stopped system.

    Raises:
        ValueError: If the error carries no system snapshot.
    """
    system = error.system
    if system is None:
        raise ValueError("Error carries no system snapshot; was it redacted with without_components()?")
    logger.info("Stopping partially started system after failure in %r", error.system_key)
    stopped = stop_system(system, predicate=_unless_stopped)
    if isinstance(stopped, SystemMap):
        return stopped.with_state(LifecycleState.STOPPED)
    return stopped
