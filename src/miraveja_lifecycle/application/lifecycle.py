"""Application layer - Lifecycle dispatch over arbitrary component shapes.

``start`` and ``stop`` are ``functools.singledispatch`` registries. Anything
implementing :class:`ILifecycle` dispatches to its own methods, every other
value passes through unchanged. Types that cannot inherit from
:class:`ILifecycle` can be registered explicitly::

    @start.register
    def _(pool: ThirdPartyPool) -> ThirdPartyPool:
        pool.open()
        return pool
"""

import copy
import dataclasses
from collections.abc import MutableMapping
from functools import singledispatch
from typing import Any, Hashable, Optional

from pydantic import BaseModel

from miraveja_lifecycle.application.declarations import carry_declaration
from miraveja_lifecycle.domain import ILifecycle, IStateful, UnsupportedComponentError


@singledispatch
def start(component: Any) -> Any:
    """Start component and return its replacement. Pass-through by default."""
    return component


@start.register
def _start_lifecycle(component: ILifecycle) -> Any:
    return component.start()


@singledispatch
def stop(component: Any) -> Any:
    """Stop component and return its replacement. Pass-through by default."""
    return component


@stop.register
def _stop_lifecycle(component: ILifecycle) -> Any:
    return component.stop()


def is_started(component: Any) -> Optional[bool]:
    """Return the state reported by component, or None if it reports none."""
    if isinstance(component, IStateful):
        return bool(component.is_started)
    return None


@singledispatch
def assoc(value: Any, field: Hashable, item: Any) -> Any:
    """Return a copy of value with field set to item.

    Values are treated as immutable: value itself is never modified. The
    dependency declaration of value travels with the copy.

    Args:
        value: A component or a system.
        field: Attribute name (or mapping key) to set.
        item: The new value of field.

    Returns:
        The updated copy.

    Raises:
        UnsupportedComponentError: If value does not accept field.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        init_fields = {f.name for f in dataclasses.fields(value) if f.init}
        if field in init_fields:
            return carry_declaration(value, dataclasses.replace(value, **{field: item}))
    updated = copy.copy(value)
    if updated is value:
        raise UnsupportedComponentError(value, field)
    try:
        object.__setattr__(updated, field, item)
    except (AttributeError, TypeError) as e:
        raise UnsupportedComponentError(value, field) from e
    return carry_declaration(value, updated)


@assoc.register
def _assoc_mapping(value: MutableMapping, field: Hashable, item: Any) -> Any:
    updated = copy.copy(value)
    updated[field] = item
    return carry_declaration(value, updated)


@assoc.register
def _assoc_model(value: BaseModel, field: Hashable, item: Any) -> Any:
    return carry_declaration(value, value.model_copy(update={field: item}))


@assoc.register
def _assoc_tuple(value: tuple, field: Hashable, item: Any) -> Any:
    if not hasattr(value, "_replace"):
        raise UnsupportedComponentError(value, field)
    try:
        updated = value._replace(**{field: item})
    except (TypeError, ValueError) as e:
        raise UnsupportedComponentError(value, field) from e
    return carry_declaration(value, updated)
