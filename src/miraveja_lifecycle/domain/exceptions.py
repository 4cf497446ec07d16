from typing import Any, Dict, Hashable, List, Optional

_REDACTED_KEYS = ("component", "system")


class LifecycleException(Exception):
    """Base exception for component lifecycle errors.

    Attributes:
        reason: Short machine-readable identifier of the failure.
        context: Diagnostic data attached to the error, such as the system key,
            the offending component and a snapshot of the system.
    """

    reason = "lifecycle-error"

    def __init__(self, message: str = "", **context: Any) -> None:
        self.context: Dict[str, Any] = context
        super().__init__(message)

    @property
    def system_key(self) -> Optional[Hashable]:
        return self.context.get("system_key")

    @property
    def component(self) -> Any:
        return self.context.get("component")

    @property
    def system(self) -> Any:
        return self.context.get("system")


class InvalidDependencySpecError(LifecycleException):
    """Raised when a dependency declaration is neither a mapping nor a list of names."""

    reason = "invalid-dependencies"

    def __init__(self, dependencies: Any, component: Any = None) -> None:
        super().__init__(
            f"Dependencies must be a mapping or a list of names, got {type(dependencies).__name__}",
            dependencies=dependencies,
            component=component,
        )


class MissingComponentError(LifecycleException):
    """Raised when a key is not present in the system.

    Attributes:
        system_key: The key that could not be found.
    """

    reason = "missing-component"

    def __init__(self, system_key: Hashable, system: Any = None) -> None:
        super().__init__(self._format(system_key), system_key=system_key, system=system)

    @staticmethod
    def _format(system_key: Hashable) -> str:
        return f"Missing component {system_key!r} from system"


class NilComponentError(MissingComponentError):
    """Raised when a key is present in the system but bound to None.

    Usually the result of a start or stop method that forgot to return the
    component.
    """

    reason = "nil-component"

    @staticmethod
    def _format(system_key: Hashable) -> str:
        return f"Component {system_key!r} was None in system; check the return value of its start or stop method"


class MissingDependencyError(LifecycleException):
    """Raised when a declared dependency cannot be found in the system.

    Attributes:
        dependency_key: The field of the component that should receive the dependency.
        system_key: The key in the system where the dependency was expected.
    """

    reason = "missing-dependency"

    def __init__(
        self,
        dependency_key: Hashable,
        system_key: Hashable,
        component: Any = None,
        system: Any = None,
    ) -> None:
        super().__init__(
            self._format(dependency_key, system_key, component),
            dependency_key=dependency_key,
            system_key=system_key,
            component=component,
            system=system,
        )

    @property
    def dependency_key(self) -> Optional[Hashable]:
        return self.context.get("dependency_key")

    @staticmethod
    def _format(dependency_key: Hashable, system_key: Hashable, component: Any) -> str:
        return (
            f"Missing dependency {dependency_key!r} of {type(component).__name__} "
            f"expected in system at {system_key!r}"
        )


class NilDependencyError(MissingDependencyError):
    """Raised when a declared dependency is present in the system but bound to None."""

    reason = "nil-dependency"

    @staticmethod
    def _format(dependency_key: Hashable, system_key: Hashable, component: Any) -> str:
        return (
            f"Dependency {dependency_key!r} of {type(component).__name__} "
            f"was None in system at {system_key!r}"
        )


class CycleError(LifecycleException):
    """Raised when dependency declarations form a cycle.

    Attributes:
        dependency_chain: Keys involved in the cycle, first key repeated at the end.
    """

    reason = "dependency-cycle"

    def __init__(self, dependency_chain: List[Hashable]) -> None:
        self.dependency_chain = dependency_chain
        super().__init__(
            f"Circular dependency detected: {' -> '.join(repr(key) for key in dependency_chain)}",
            dependency_chain=dependency_chain,
        )


class UnsupportedComponentError(LifecycleException):
    """Raised when a value cannot carry a declaration or receive an injected field.

    Attributes:
        field: The field that could not be set, or None if the value cannot
            carry a dependency declaration at all.
    """

    reason = "unsupported-component"

    def __init__(self, component: Any, field: Optional[Hashable] = None) -> None:
        if field is None:
            message = f"Cannot attach dependencies to a value of type {type(component).__name__}"
        else:
            message = f"Cannot set field {field!r} on a value of type {type(component).__name__}"
        super().__init__(message, component=component, field=field)

    @property
    def field(self) -> Optional[Hashable]:
        return self.context.get("field")


class ComponentActionError(LifecycleException):
    """Raised when a component's own lifecycle function raises.

    The original exception is available as ``__cause__``. ``component`` holds
    the component with its dependencies already injected and ``system`` the
    system as it stood immediately before the failing step.
    """

    reason = "component-function-threw-exception"

    def __init__(
        self,
        system_key: Hashable,
        function: Any,
        component: Any,
        system: Any,
        system_name: str = "system",
    ) -> None:
        action = getattr(function, "__name__", repr(function))
        super().__init__(
            f"Error in component {system_key!r} in {system_name} calling {action}",
            system_key=system_key,
            function=function,
            action=action,
            component=component,
            system=system,
        )

    @property
    def action(self) -> str:
        return self.context["action"]


def is_lifecycle_error(error: BaseException) -> bool:
    """Return True if the error was raised by the lifecycle machinery."""
    return isinstance(error, LifecycleException)


def without_components(error: BaseException) -> BaseException:
    """Return a copy of a lifecycle error without the component and system snapshots.

    Message, cause and traceback are preserved. Errors that were not raised by
    the lifecycle machinery are returned unchanged. Use this before logging or
    re-raising so the whole system is not dumped into the output.

    Args:
        error: The exception to redact.

    Returns:
        The redacted copy, or the original error.
    """
    if not is_lifecycle_error(error):
        return error
    cls = type(error)
    redacted = cls.__new__(cls, *error.args)
    redacted.args = error.args
    redacted.__dict__.update(error.__dict__)
    redacted.context = {key: value for key, value in error.context.items() if key not in _REDACTED_KEYS}
    redacted.__cause__ = error.__cause__
    redacted.__suppress_context__ = error.__suppress_context__
    return redacted.with_traceback(error.__traceback__)
