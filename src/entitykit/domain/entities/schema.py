"""Schema entities describing the fields of a collection.

A Schema is an ordered list of FieldDefinitions. It is declared once per
collection and drives validation, default filling, query typing and
CSV coercion.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from entitykit.core.exceptions import SchemaDefinitionError


class FieldType(str, Enum):
    """Supported field types for collection schemas."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"
    RECORD = "record"
    LIST = "list"
    REFERENCE = "reference"


@dataclass(frozen=True)
class FieldDefinition:
    """A single declared field.

    Attributes:
        name: Field name as stored on entities.
        type: Declared field type.
        required: Whether create() rejects entities without a value.
        default: Value filled in when the field is absent on create.
        values: Allowed values for enum fields, in declaration order.
        items: Sub-fields of list items (e.g. line items ``name, qty, price``).
            Empty for lists of plain strings.
        references: Target collection kind for reference fields.
        on_detach: Extra field values applied to the referencing entity
            when the referenced entity is removed.
    """

    name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    default: Any = None
    values: tuple[str, ...] = ()
    items: tuple["FieldDefinition", ...] = ()
    references: str | None = None
    on_detach: dict[str, Any] = field(default_factory=dict)

    def default_value(self) -> Any:
        """Return a fresh copy of the default value."""
        return copy.deepcopy(self.default)

    @property
    def is_reference(self) -> bool:
        return self.type == FieldType.REFERENCE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldDefinition":
        """Build a field definition from its JSON form."""
        raw_type = str(data.get("type", "string")).lower()
        try:
            field_type = FieldType(raw_type)
        except ValueError:
            raise SchemaDefinitionError(
                f"Invalid field type '{raw_type}' for field '{data.get('name')}'"
            ) from None
        if "name" not in data:
            raise SchemaDefinitionError("Field definition requires a name")

        return cls(
            name=data["name"],
            type=field_type,
            required=bool(data.get("required", False)),
            default=data.get("default"),
            values=tuple(data.get("values") or ()),
            items=tuple(cls.from_dict(item) for item in data.get("items") or ()),
            references=data.get("references"),
            on_detach=dict(data.get("on_detach") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "required": self.required,
            "default": self.default,
        }
        if self.values:
            data["values"] = list(self.values)
        if self.items:
            data["items"] = [item.to_dict() for item in self.items]
        if self.references:
            data["references"] = self.references
        if self.on_detach:
            data["on_detach"] = dict(self.on_detach)
        return data


@dataclass(frozen=True)
class Schema:
    """Ordered field declarations for one collection.

    The schema validates itself on construction and raises
    SchemaDefinitionError for duplicate names, reserved names,
    enum fields without values and similar mistakes.
    """

    fields: tuple[FieldDefinition, ...]

    def __post_init__(self) -> None:
        from entitykit.domain.services.schema_validator import SchemaValidator

        errors = SchemaValidator.validate(self.fields)
        if errors:
            messages = "; ".join(f"{e.field}: {e.message}" for e in errors)
            raise SchemaDefinitionError(f"Invalid schema: {messages}")

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self.fields)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> FieldDefinition | None:
        """Look up a field by name."""
        for definition in self.fields:
            if definition.name == name:
                return definition
        return None

    @property
    def required_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.required]

    def reference_fields(self, target: str | None = None) -> list[FieldDefinition]:
        """Reference fields, optionally only those pointing at ``target``."""
        return [
            f
            for f in self.fields
            if f.is_reference and (target is None or f.references == target)
        ]

    @classmethod
    def from_list(cls, fields: list[dict[str, Any]]) -> "Schema":
        """Build a schema from a list of field dicts (the JSON form)."""
        return cls(fields=tuple(FieldDefinition.from_dict(f) for f in fields))

    @classmethod
    def of(cls, *fields: FieldDefinition) -> "Schema":
        return cls(fields=tuple(fields))

    def to_list(self) -> list[dict[str, Any]]:
        return [f.to_dict() for f in self.fields]
