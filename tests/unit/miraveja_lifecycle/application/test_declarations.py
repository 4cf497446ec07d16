"""Unit tests for out-of-band dependency declarations."""

import copy
import threading
from collections import namedtuple
from dataclasses import dataclass
from typing import Any, Optional

import pytest

from miraveja_lifecycle.application.declarations import (
    DeclarationRegistry,
    carry_declaration,
    declaration_of,
    dependencies,
    using,
)
from miraveja_lifecycle.application.system import SystemMap, system_using
from miraveja_lifecycle.domain import (
    DependencyDeclaration,
    InvalidDependencySpecError,
    MissingComponentError,
    NilComponentError,
    UnsupportedComponentError,
)


@dataclass(frozen=True)
class Service:
    name: str
    database: Optional[Any] = None


Endpoint = namedtuple("Endpoint", ["path", "database"])


class Slotted:
    __slots__ = ("name", "database")

    def __init__(self, name: str, database: Any = None) -> None:
        self.name = name
        self.database = database


class TestUsing:
    """Test cases for using()."""

    def test_returns_equal_copy(self):
        """Test that using() returns an equal value with its own identity."""
        component = Service("api")

        declared = using(component, ["database"])

        assert declared == component
        assert declared is not component

    def test_input_component_is_untouched(self):
        """Test that a shared instance keeps its own wiring."""
        base = Service("worker")

        wired = using(base, ["db"])

        assert dependencies(base) == {}
        assert dependencies(wired) == {"db": "db"}

    def test_shared_instance_in_two_keys(self):
        """Test that declaring one key does not rewire another holding the same instance."""
        base = Service("worker")
        system = {"plain": base, "wired": using(base, ["db"])}

        assert dependencies(system["plain"]) == {}
        assert dependencies(system["wired"]) == {"db": "db"}

    def test_mapping_declaration(self):
        """Test declaring dependencies with a mapping."""
        component = using(Service("api"), {"database": "db"})

        assert dependencies(component) == {"database": "db"}

    def test_list_equals_identity_mapping(self):
        """Test that a list of names is shorthand for the identity mapping."""
        from_list = using(Service("a"), ["x", "y"])
        from_map = using(Service("b"), {"x": "x", "y": "y"})

        assert dependencies(from_list) == dependencies(from_map)

    def test_does_not_touch_component_fields(self):
        """Test that the component's own fields are left alone."""
        component = using(Service("api"), {"database": "db"})

        assert component == Service("api")
        assert component.database is None
        assert not hasattr(component, "dependencies")

    def test_repeated_declarations_merge(self):
        """Test that later declarations add to earlier ones."""
        component = using(Service("api"), ["a"])
        component = using(component, {"b": "bee"})

        assert dependencies(component) == {"a": "a", "b": "bee"}

    def test_redeclared_field_overwrites_only_that_field(self):
        """Test that re-declaring a field replaces just its binding."""
        component = using(Service("api"), {"a": "one", "b": "two"})
        component = using(component, {"a": "three"})

        assert dependencies(component) == {"a": "three", "b": "two"}

    def test_invalid_spec_raises(self):
        """Test that invalid specs are rejected."""
        component = Service("api")

        with pytest.raises(InvalidDependencySpecError) as exc_info:
            using(component, "db")

        assert exc_info.value.component is component
        assert dependencies(component) == {}

    def test_equal_components_keep_separate_declarations(self):
        """Test that declarations follow identity, not equality."""
        first = using(Service("api"), ["a"])
        second = Service("api")

        assert first == second
        assert dependencies(second) == {}

    def test_works_with_plain_dicts(self):
        """Test that values without weak reference support can be declared."""
        component = using({"n": 1}, ["a"])

        assert component == {"n": 1}
        assert isinstance(component, dict)
        assert dependencies(component) == {"a": "a"}

    def test_plain_dict_declarations_merge(self):
        """Test that repeated declarations on a dict merge."""
        component = using(using({"n": 1}, ["a"]), {"b": "bee"})

        assert dependencies(component) == {"a": "a", "b": "bee"}

    def test_plain_dict_copies_keep_declaration(self):
        """Test that shallow copies of a declared dict carry the same declaration."""
        component = using({"n": 1}, ["a"])

        assert dependencies(copy.copy(component)) == {"a": "a"}
        assert dependencies(dict(component)) == {}

    def test_works_with_namedtuples(self):
        """Test that namedtuple components keep their fields and repr."""
        component = using(Endpoint("/health", None), ["database"])

        assert component == Endpoint("/health", None)
        assert repr(component) == repr(Endpoint("/health", None))
        assert dependencies(component) == {"database": "database"}
        assert dependencies(component._replace(database="db")) == {"database": "database"}

    def test_works_with_slotted_objects(self):
        """Test that objects without a weak reference slot can be declared."""
        component = using(Slotted("api"), ["database"])

        assert isinstance(component, Slotted)
        assert component.name == "api"
        assert dependencies(component) == {"database": "database"}

    def test_none_cannot_be_declared(self):
        """Test that None is rejected with a lifecycle error."""
        with pytest.raises(UnsupportedComponentError) as exc_info:
            using(None, ["a"])

        assert exc_info.value.field is None


class TestDependenciesAndDeclarationOf:
    """Test cases for dependencies() and declaration_of()."""

    def test_undeclared_component_has_no_dependencies(self):
        """Test that components without declarations depend on nothing."""
        assert dependencies(Service("api")) == {}
        assert declaration_of(Service("api")) is None

    def test_undeclared_dict_has_no_dependencies(self):
        """Test that plain dicts depend on nothing."""
        assert dependencies({"n": 1}) == {}

    def test_declaration_of_returns_model(self):
        """Test that the declaration value object is returned."""
        component = using(Service("api"), ["db"])

        declaration = declaration_of(component)

        assert isinstance(declaration, DependencyDeclaration)
        assert declaration.bindings == {"db": "db"}

    def test_dependencies_returns_copy(self):
        """Test that mutating the result does not affect the declaration."""
        component = using(Service("api"), ["db"])

        dependencies(component)["other"] = "x"

        assert dependencies(component) == {"db": "db"}


class TestCarryDeclaration:
    """Test cases for carry_declaration()."""

    def test_copies_declaration_to_replacement(self):
        """Test that a replacement value inherits the declaration."""
        original = using(Service("api"), ["db"])
        replacement = Service("api-started")

        result = carry_declaration(original, replacement)

        assert result is replacement
        assert dependencies(replacement) == {"db": "db"}

    def test_replacement_with_own_declaration_is_kept(self):
        """Test that an existing declaration on the replacement wins."""
        original = using(Service("api"), ["db"])
        replacement = using(Service("api"), ["cache"])

        carry_declaration(original, replacement)

        assert dependencies(replacement) == {"cache": "cache"}

    def test_replacement_dict_is_rebound(self):
        """Test that a plain dict replacement comes back carrying the declaration."""
        original = using({"n": 1}, ["db"])

        result = carry_declaration(original, {"n": 2})

        assert result == {"n": 2}
        assert dependencies(result) == {"db": "db"}

    def test_none_is_returned_unchanged(self):
        """Test that None is passed through."""
        original = using(Service("api"), ["db"])

        assert carry_declaration(original, None) is None

    def test_same_object(self):
        """Test that carrying onto the same object is a no-op."""
        original = using(Service("api"), ["db"])

        assert carry_declaration(original, original) is original
        assert dependencies(original) == {"db": "db"}


class TestSystemUsing:
    """Test cases for system_using()."""

    def test_declares_many_components(self):
        """Test that each key gets its dependencies declared."""
        system = {"a": Service("a"), "b": Service("b"), "c": Service("c")}

        result = system_using(system, {"b": ["a"], "c": {"first": "a", "second": "b"}})

        assert result == system
        assert dependencies(result["a"]) == {}
        assert dependencies(result["b"]) == {"a": "a"}
        assert dependencies(result["c"]) == {"first": "a", "second": "b"}

    def test_given_system_is_untouched(self):
        """Test that the input system keeps its undeclared components."""
        system = {"a": Service("a"), "b": Service("b")}

        system_using(system, {"b": ["a"]})

        assert dependencies(system["b"]) == {}

    def test_system_map_input(self):
        """Test that a SystemMap comes back as a SystemMap."""
        system = SystemMap({"a": Service("a"), "b": Service("b")})

        result = system_using(system, {"b": ["a"]})

        assert isinstance(result, SystemMap)
        assert dependencies(result["b"]) == {"a": "a"}

    def test_missing_key_raises(self):
        """Test that declaring dependencies for an absent key fails."""
        with pytest.raises(MissingComponentError) as exc_info:
            system_using({"a": Service("a")}, {"b": ["a"]})

        assert exc_info.value.system_key == "b"
        assert not isinstance(exc_info.value, NilComponentError)

    def test_nil_component_raises(self):
        """Test that declaring dependencies for a None component fails distinctly."""
        with pytest.raises(NilComponentError):
            system_using({"a": Service("a"), "b": None}, {"b": ["a"]})


class TestDeclarationRegistry:
    """Test cases for the DeclarationRegistry side table."""

    def test_bind_and_get(self):
        """Test storing and reading a declaration."""
        registry = DeclarationRegistry()
        component = Service("api")
        declaration = DependencyDeclaration.from_spec(["db"])

        assert registry.bind(component, declaration) is component
        assert registry.get(component) == declaration

    def test_bind_replaces(self):
        """Test that binding twice keeps only the last declaration."""
        registry = DeclarationRegistry()
        component = Service("api")

        registry.bind(component, DependencyDeclaration.from_spec(["a"]))
        registry.bind(component, DependencyDeclaration.from_spec(["b"]))

        assert registry.get(component).bindings == {"b": "b"}

    def test_entry_removed_when_component_collected(self):
        """Test that weakly referenced components do not leak entries."""
        registry = DeclarationRegistry()
        component = Service("api")
        registry.bind(component, DependencyDeclaration.from_spec(["a"]))
        assert len(registry) == 1

        del component

        assert len(registry) == 0

    def test_values_without_weak_references_are_not_held(self):
        """Test that dicts are rebound instead of stored in the table."""
        registry = DeclarationRegistry()

        declared = registry.bind({"n": 1}, DependencyDeclaration.from_spec(["a"]))

        assert len(registry) == 0
        assert registry.get(declared).bindings == {"a": "a"}

    def test_declared_types_are_reused(self):
        """Test that equal declarations on the same base type share one declared type."""
        registry = DeclarationRegistry()
        declaration = DependencyDeclaration.from_spec(["a"])

        first = registry.bind({"n": 1}, declaration)
        second = registry.bind({"n": 2}, DependencyDeclaration.from_spec(["a"]))

        assert type(first) is type(second)

    def test_concurrent_bind_and_get(self):
        """Test that concurrent declarations each keep their own bindings."""
        registry = DeclarationRegistry()
        components = [Service(f"s{index}") for index in range(300)]
        errors = []

        def declare(chunk):
            for component in chunk:
                registry.bind(component, DependencyDeclaration.from_spec([component.name]))
                if registry.get(component).bindings != {component.name: component.name}:
                    errors.append(component)

        threads = [threading.Thread(target=declare, args=(components[start::3],)) for start in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(registry) == 300
