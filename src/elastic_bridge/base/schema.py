from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .fields import Field, as_field


class Virtual:
    """Computed property with a getter and an optional setter.

    Example:
        >>> full_name = schema.virtual("full_name")
        >>> @full_name.get
        ... def _(doc):
        ...     return f"{doc['first']} {doc['last']}"
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.getter: Callable[[Any], Any] | None = None
        self.setter: Callable[[Any, Any], None] | None = None

    def get(self, fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
        self.getter = fn
        return fn

    def set(self, fn: Callable[[Any, Any], None]) -> Callable[[Any, Any], None]:
        self.setter = fn
        return fn


class Schema:
    """Mutable schema definition, compiled into a SchemaDescriptor by ``model()``."""

    def __init__(
        self,
        props: Mapping[str, Any] | None = None,
        *,
        index: str | None = None,
    ) -> None:
        self.props: dict[str, Field[Any]] = {}
        self.methods: dict[str, Callable[..., Any]] = {}
        self.statics: dict[str, Callable[..., Any]] = {}
        self.virtuals: dict[str, Virtual] = {}
        self.index = index
        if props:
            self.add(props)

    def add(self, props: Mapping[str, Any]) -> None:
        """Add (or replace) property declarations."""
        for name, declaration in props.items():
            self.props[name] = as_field(declaration).bind(name)

    def virtual(self, name: str) -> Virtual:
        self.virtuals[name] = Virtual(name)
        return self.virtuals[name]

    def method(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Register an instance method on documents of this schema."""
        self.methods[fn.__name__] = fn
        return fn

    def static(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Register a class-level method; it receives the model class first."""
        self.statics[fn.__name__] = fn
        return fn

    def compile(self, name: str) -> SchemaDescriptor:
        return SchemaDescriptor(
            name=name,
            index=self.index or name.lower(),
            doc_type=name,
            props=MappingProxyType(dict(self.props)),
            virtuals=MappingProxyType(dict(self.virtuals)),
            methods=MappingProxyType(dict(self.methods)),
            statics=MappingProxyType(dict(self.statics)),
        )


@dataclass(slots=True, frozen=True)
class SchemaDescriptor:
    """Compiled, read-only view of a Schema bound to a model name."""

    name: str
    index: str
    doc_type: str
    props: Mapping[str, Field[Any]]
    virtuals: Mapping[str, Virtual] = field(default_factory=lambda: MappingProxyType({}))
    methods: Mapping[str, Callable[..., Any]] = field(default_factory=lambda: MappingProxyType({}))
    statics: Mapping[str, Callable[..., Any]] = field(default_factory=lambda: MappingProxyType({}))

    def excluded_fields(self) -> list[str]:
        """Properties declared with ``select=False``."""
        return [name for name, prop in self.props.items() if not prop.select]


def embedded_props(prop: Field[Any] | None) -> Mapping[str, Field[Any]]:
    """Props of the sub-document schema declared on ``prop``, if any."""
    if prop is None or prop.schema is None:
        return {}
    return prop.schema.props
