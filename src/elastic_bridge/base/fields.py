from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..errors import ValidationError

if TYPE_CHECKING:
    from .schema import Schema

T = TypeVar("T")


class Field(Generic[T]):
    """Declaration of one schema property.

    Fields carry no per-instance state. Document values live in the
    document's field map and are checked against the declaration by
    :meth:`validate`.
    """

    python_type: type | tuple[type, ...] | None = None

    def __init__(
        self,
        type_: type[T] | None = None,
        default: T | None = None,
        *,
        default_factory: Callable[[], T] | None = None,
        required: bool = False,
        index: bool = False,
        select: bool = True,
        ref: str | None = None,
        schema: Schema | None = None,
    ) -> None:
        if default is not None and default_factory is not None:
            raise ValueError("Cannot specify both default and default_factory")

        if type_ is not None:
            self.python_type = type_
        self.default = default
        self.default_factory = default_factory
        self.required = required
        self.index = index
        self.select = select
        self.ref = ref
        self.schema = schema
        self.name: str | None = None  # Set by Schema.compile

    def bind(self, name: str) -> Field[T]:
        """Return a copy of this field bound to a property name."""
        bound = copy.copy(self)
        bound.name = name
        return bound

    @property
    def has_default(self) -> bool:
        return self.default is not None or self.default_factory is not None

    def initial_value(self) -> T | None:
        """Value a new document gets when the caller did not supply one."""
        if self.default_factory is not None:
            return self.default_factory()
        return copy.deepcopy(self.default)

    def validate(self, value: Any) -> None:
        """Raise ValidationError if ``value`` does not fit this declaration."""
        if value is None:
            if self.required:
                raise ValidationError(self.name or "", f"Missing required field: {self.name}")
            return

        if self.ref is not None and self._is_reference_value(value):
            return

        if not self._check_type(value):
            raise ValidationError(self.name or "")

    def _check_type(self, value: Any) -> bool:
        if self.python_type is None or self.python_type is object:
            return True
        return isinstance(value, self.python_type)

    @staticmethod
    def _is_reference_value(value: Any) -> bool:
        from ..elastic.document import Document

        return isinstance(value, (str, Document))

    def __repr__(self) -> str:
        type_name = getattr(self.python_type, "__name__", repr(self.python_type))
        return f"{type(self).__name__}(name={self.name!r}, type={type_name})"


class StringField(Field[str]):
    """String field with optional length bounds."""

    python_type = str

    def __init__(
        self,
        default: str | None = None,
        *,
        max_length: int | None = None,
        min_length: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(None, default, **kwargs)
        self.max_length = max_length
        self.min_length = min_length

    def validate(self, value: Any) -> None:
        super().validate(value)
        if not isinstance(value, str):
            return
        if self.max_length is not None and len(value) > self.max_length:
            raise ValidationError(self.name or "", f"{self.name} is longer than {self.max_length}")
        if self.min_length is not None and len(value) < self.min_length:
            raise ValidationError(self.name or "", f"{self.name} is shorter than {self.min_length}")


class IntField(Field[int]):
    python_type = int

    def __init__(self, default: int | None = None, **kwargs: Any) -> None:
        super().__init__(None, default, **kwargs)

    def _check_type(self, value: Any) -> bool:
        # bool is an int subclass but never a valid count
        return isinstance(value, int) and not isinstance(value, bool)


class FloatField(Field[float]):
    python_type = float

    def __init__(self, default: float | None = None, **kwargs: Any) -> None:
        super().__init__(None, default, **kwargs)

    def _check_type(self, value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)


class BoolField(Field[bool]):
    python_type = bool

    def __init__(self, default: bool | None = None, **kwargs: Any) -> None:
        super().__init__(None, default, **kwargs)


class ListField(Field[list[T]]):
    """List field. ``item_type`` is checked per element when given."""

    python_type = list

    def __init__(
        self,
        item_type: type[T] | None = None,
        default: list[T] | None = None,
        **kwargs: Any,
    ) -> None:
        if default is None and "default_factory" not in kwargs:
            kwargs["default_factory"] = list
        super().__init__(None, default, **kwargs)
        self.item_type = item_type

    def validate(self, value: Any) -> None:
        super().validate(value)
        if not isinstance(value, list) or self.item_type is None:
            return
        for item in value:
            if self.ref is not None and self._is_reference_value(item):
                continue
            if not isinstance(item, self.item_type):
                raise ValidationError(self.name or "")


class DictField(Field[dict[str, Any]]):
    """Dictionary/object field for nested data."""

    python_type = dict

    def __init__(self, default: dict[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(None, default, **kwargs)


_SHORTHANDS: dict[type, type[Field[Any]]] = {
    str: StringField,
    int: IntField,
    float: FloatField,
    bool: BoolField,
    list: ListField,
    dict: DictField,
}


def as_field(declaration: Field[Any] | type | Mapping[str, Any]) -> Field[Any]:
    """Coerce a props entry to a Field.

    Accepts a Field, a bare type (``{"title": str}``) or an options mapping
    (``{"type": str, "required": True}``).
    """
    if isinstance(declaration, Field):
        return declaration
    if isinstance(declaration, type):
        field_class = _SHORTHANDS.get(declaration)
        return field_class() if field_class is not None else Field(declaration)
    if isinstance(declaration, Mapping):
        options = dict(declaration)
        type_ = options.pop("type", None)
        field_class = _SHORTHANDS.get(type_) if isinstance(type_, type) else None
        if field_class is not None:
            return field_class(**options)
        return Field(type_, **options)
    raise TypeError(f"Invalid field declaration: {declaration!r}")
