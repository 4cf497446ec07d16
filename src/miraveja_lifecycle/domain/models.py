from collections.abc import Mapping
from typing import Any, Dict, Hashable, List

from pydantic import BaseModel, ConfigDict, Field

from miraveja_lifecycle.domain.exceptions import InvalidDependencySpecError


class DependencyDeclaration(BaseModel):
    """Value object describing the dependencies of a single component.

    Keys of ``bindings`` are fields of the component that receive the
    dependency, values are the keys in the system where the dependency lives.

    Attributes:
        bindings: Mapping from component field name to system key.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    bindings: Dict[Any, Any] = Field(
        default_factory=dict,
        description="Mapping from component field name to the system key of the dependency.",
    )

    @classmethod
    def from_spec(cls, spec: Any, component: Any = None) -> "DependencyDeclaration":
        """Build a declaration from a mapping or a list of names.

        A list (or tuple) of names is shorthand for the identity mapping, used
        when the component field and the system key share the same name.

        Args:
            spec: A mapping of field to system key, or a list of names.
            component: The component being declared, used for error reporting.

        Raises:
            InvalidDependencySpecError: If spec is neither a mapping nor a list.

        Example:
            >>> DependencyDeclaration.from_spec(["db", "cache"]).bindings
            {'db': 'db', 'cache': 'cache'}
        """
        if isinstance(spec, Mapping):
            return cls(bindings=dict(spec))
        if isinstance(spec, (list, tuple)):
            return cls(bindings={name: name for name in spec})
        raise InvalidDependencySpecError(spec, component)

    def merge(self, other: "DependencyDeclaration") -> "DependencyDeclaration":
        """Return a new declaration with other's bindings layered on top of these."""
        return DependencyDeclaration(bindings={**self.bindings, **other.bindings})

    def targets(self) -> List[Hashable]:
        """System keys this component depends on, in declaration order."""
        return list(self.bindings.values())


class SystemOptions(BaseModel):
    """Configuration of a system map.

    Attributes:
        name: Human-readable name used in error messages and log lines.
        idempotent: Skip components already in the requested state.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="system", min_length=1, description="Name of the system.")
    idempotent: bool = Field(
        default=False,
        description="Only start components that are not started and stop components that are started.",
    )
