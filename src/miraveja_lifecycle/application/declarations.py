"""Application layer - Out-of-band dependency declarations."""

import copy
import threading
import weakref
from typing import Any, Dict, FrozenSet, Hashable, Optional, Tuple

from miraveja_lifecycle.domain import DependencyDeclaration, UnsupportedComponentError


class DeclarationRegistry:
    """Side table associating dependency declarations with component identities.

    Declarations never touch the component's own fields. Components that
    support weak references are held weakly, keyed by ``id()``, and their entry
    disappears with them.

    Values that cannot be weakly referenced (dicts, tuples, namedtuples,
    slotted objects) are rebound to a declared subclass of their own type that
    carries the declaration. Their equality, fields and repr are unchanged, and
    copies keep the declared type. Declared types are cached per base type and
    declaration, so repeated starts and stops never add to the table.

    Attributes:
        _entries: Mapping from component id to (weak reference, declaration).
        _declared_types: Declared subclass for each (base type, bindings) pair.
        _declared: Base type and declaration of each declared subclass.
        _lock: Guards every read and update of the tables.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._entries: Dict[int, Tuple[weakref.ref, DependencyDeclaration]] = {}
        self._declared_types: Dict[Tuple[type, FrozenSet[Tuple[Any, Any]]], type] = {}
        self._declared: Dict[type, Tuple[type, DependencyDeclaration]] = {}
        self._lock = threading.RLock()

    def _discard(self, key: int, ref: weakref.ref) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] is ref:
                del self._entries[key]

    def get(self, component: Any) -> Optional[DependencyDeclaration]:
        """Return the declaration attached to component, if any."""
        with self._lock:
            entry = self._entries.get(id(component))
            if entry is not None and entry[0]() is component:
                return entry[1]
            declared = self._declared.get(type(component))
            return None if declared is None else declared[1]

    def bind(self, component: Any, declaration: DependencyDeclaration) -> Any:
        """Attach declaration to component, replacing any previous one.

        Args:
            component: The value to declare.
            declaration: The complete declaration of the value.

        Returns:
            The value carrying the declaration: component itself when it can
            be weakly referenced, otherwise an equal value of a declared type.

        Raises:
            UnsupportedComponentError: If the value can neither be weakly
                referenced nor rebound to a declared type.
        """
        with self._lock:
            key = id(component)
            try:
                ref = weakref.ref(component, lambda _ref: self._discard(key, _ref))
            except TypeError:
                return self._rebind(component, declaration)
            self._entries[key] = (ref, declaration)
            return component

    def _declared_type(self, base: type, declaration: DependencyDeclaration) -> type:
        cache_key = (base, frozenset(declaration.bindings.items()))
        declared = self._declared_types.get(cache_key)
        if declared is None:
            namespace = {"__slots__": (), "__module__": base.__module__, "__qualname__": base.__qualname__}
            declared = type(base.__name__, (base,), namespace)
            self._declared_types[cache_key] = declared
            self._declared[declared] = (base, declaration)
        return declared

    def _rebind(self, component: Any, declaration: DependencyDeclaration) -> Any:
        base = type(component)
        if base in self._declared:
            base = self._declared[base][0]
        try:
            declared = self._declared_type(base, declaration)
            if isinstance(component, tuple) and hasattr(component, "_make"):
                return declared._make(component)
            if base.__module__ == "builtins":
                return declared(component)
            rebound = copy.copy(component)
            rebound.__class__ = declared
            return rebound
        except TypeError as e:
            raise UnsupportedComponentError(component) from e

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_registry = DeclarationRegistry()


def using(component: Any, dependencies: Any) -> Any:
    """Declare the other components on which component depends.

    Keys of a mapping are fields of the component that receive a dependency,
    values are the keys in the containing system where the dependency lives.
    When both names coincide a list of names may be given instead. Repeated
    calls merge; re-declaring a field only replaces that field's binding.

    The given component is left untouched: the declaration goes on a shallow
    copy, so other holders of the same instance keep their own wiring.

    Args:
        component: The component to declare dependencies for.
        dependencies: Mapping of field to system key, or a list of names.

    Returns:
        A copy of component carrying the declaration.

    Raises:
        InvalidDependencySpecError: If dependencies is neither a mapping nor a list.
        UnsupportedComponentError: If component cannot carry a declaration.

    Example:
        >>> app = using(WebApp(port=8080), {"database": "db", "scheduler": "scheduler"})
        >>> worker = using(Worker(), ["queue", "db"])
    """
    declaration = DependencyDeclaration.from_spec(dependencies, component)
    existing = _registry.get(component)
    if existing is not None:
        declaration = existing.merge(declaration)
    return _registry.bind(copy.copy(component), declaration)


def declaration_of(component: Any) -> Optional[DependencyDeclaration]:
    """Return the declaration attached to component, or None."""
    return _registry.get(component)


def dependencies(component: Any) -> Dict[Hashable, Hashable]:
    """Return the mapping of field name to system key declared for component."""
    declaration = _registry.get(component)
    if declaration is None:
        return {}
    return dict(declaration.bindings)


def carry_declaration(source: Any, target: Any) -> Any:
    """Attach source's declaration to target unless target already has its own.

    Lifecycle functions return replacement values; this keeps the wiring with
    the replacement. Use the returned value, which differs from target when
    target cannot be weakly referenced.
    """
    if target is source or target is None:
        return target
    declaration = _registry.get(source)
    if declaration is None or _registry.get(target) is not None:
        return target
    return _registry.bind(target, declaration)
