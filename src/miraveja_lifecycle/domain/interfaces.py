from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Iterable, Mapping, Optional


class ILifecycle(ABC):
    """Lifecycle capability of a component.

    Both methods are synchronous and return the replacement value for the
    component. The defaults pass the component through unchanged, so a
    subclass only overrides what it needs.
    """

    def start(self) -> Any:
        """Begin operation of this component and return the updated component."""
        return self

    def stop(self) -> Any:
        """Cease operation of this component and return the updated component."""
        return self


class IStateful(ABC):
    """Capability reporting whether a component is currently started.

    Used by idempotent systems to skip components already in the requested state.
    """

    @property
    @abstractmethod
    def is_started(self) -> bool:
        """True if the component is running."""


class ILifecycleExecutor(ABC):
    """Abstract interface for applying a function over a system in dependency order."""

    @abstractmethod
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
            *args: Extra arguments passed to operation.
            reverse: Process in reverse dependency order.
            predicate: Components for which it returns False are left untouched.

        Returns:
            The updated system.

        Raises:
            CycleError: If the dependencies among keys form a cycle.
            MissingComponentError: If a key is not in the system.
            MissingDependencyError: If a dependency cannot be found in the system.
            ComponentActionError: If operation raises.
        """
