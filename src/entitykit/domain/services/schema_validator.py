"""Schema validation for collection kinds and field declarations.

Checks field names, types, enum values, list item definitions and
reference configuration before a Schema is accepted.
"""

import re
from dataclasses import dataclass
from typing import Iterable

from entitykit.domain.entities.schema import FieldDefinition, FieldType

# Reserved field names managed by the store itself
RESERVED_FIELD_NAMES = frozenset({"id"})

# Pattern for valid collection kinds and field names
NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")


@dataclass
class SchemaValidationError:
    """A single schema validation error."""

    field: str
    message: str
    code: str


class SchemaValidator:
    """Validator for collection kinds and schema declarations."""

    MAX_NAME_LENGTH = 64

    @classmethod
    def validate_kind(cls, kind: str) -> list[SchemaValidationError]:
        """Validate a collection kind (used in storage keys and filenames).

        Args:
            kind: The collection kind to validate.

        Returns:
            List of validation errors (empty if valid).
        """
        if not kind:
            return [SchemaValidationError("kind", "Collection kind is required", "kind_required")]

        errors = []
        if len(kind) > cls.MAX_NAME_LENGTH:
            errors.append(
                SchemaValidationError(
                    field="kind",
                    message=f"Collection kind must be at most {cls.MAX_NAME_LENGTH} characters",
                    code="kind_too_long",
                )
            )
        if not NAME_PATTERN.match(kind):
            errors.append(
                SchemaValidationError(
                    field="kind",
                    message="Collection kind must start with a letter and contain only alphanumeric characters and underscores",
                    code="kind_invalid_format",
                )
            )
        return errors

    @classmethod
    def validate_field_name(cls, name: str, path: str) -> list[SchemaValidationError]:
        """Validate a field name."""
        if not name:
            return [SchemaValidationError(path, "Field name is required", "field_name_required")]

        errors = []
        if len(name) > cls.MAX_NAME_LENGTH:
            errors.append(
                SchemaValidationError(
                    field=path,
                    message=f"Field name must be at most {cls.MAX_NAME_LENGTH} characters",
                    code="field_name_too_long",
                )
            )
        if not NAME_PATTERN.match(name):
            errors.append(
                SchemaValidationError(
                    field=path,
                    message="Field name must start with a letter and contain only alphanumeric characters and underscores",
                    code="field_name_invalid_format",
                )
            )
        if name.lower() in RESERVED_FIELD_NAMES:
            errors.append(
                SchemaValidationError(
                    field=path,
                    message=f"Field name '{name}' is reserved and cannot be used",
                    code="field_name_reserved",
                )
            )
        return errors

    @classmethod
    def validate_enum_field(cls, definition: FieldDefinition, path: str) -> list[SchemaValidationError]:
        """Enum fields need at least one value and a default drawn from them."""
        errors = []
        if not definition.values:
            errors.append(
                SchemaValidationError(
                    field=f"{path}.values",
                    message="Enum field requires at least one value",
                    code="enum_values_required",
                )
            )
        elif definition.default is not None and definition.default not in definition.values:
            errors.append(
                SchemaValidationError(
                    field=f"{path}.default",
                    message=f"Default '{definition.default}' is not one of {', '.join(definition.values)}",
                    code="enum_default_invalid",
                )
            )
        return errors

    @classmethod
    def validate_list_field(cls, definition: FieldDefinition, path: str) -> list[SchemaValidationError]:
        """List item sub-fields must be primitive and uniquely named."""
        errors = []
        seen: set[str] = set()
        for i, item in enumerate(definition.items):
            item_path = f"{path}.items[{i}]"
            errors.extend(cls.validate_field_name(item.name, f"{item_path}.name"))
            if item.type not in (FieldType.STRING, FieldType.NUMBER, FieldType.BOOLEAN, FieldType.DATE):
                errors.append(
                    SchemaValidationError(
                        field=f"{item_path}.type",
                        message="List item fields must be string, number, boolean or date",
                        code="list_item_type_invalid",
                    )
                )
            if item.name in seen:
                errors.append(
                    SchemaValidationError(
                        field=f"{item_path}.name",
                        message=f"Duplicate item field name '{item.name}'",
                        code="field_name_duplicate",
                    )
                )
            seen.add(item.name)
        return errors

    @classmethod
    def validate_reference_field(
        cls, definition: FieldDefinition, path: str, field_names: set[str]
    ) -> list[SchemaValidationError]:
        """Reference fields need a target kind; detach resets must name real fields."""
        errors = []
        if not definition.references:
            errors.append(
                SchemaValidationError(
                    field=f"{path}.references",
                    message="Reference field requires 'references' (target collection kind)",
                    code="reference_target_required",
                )
            )
        for name in definition.on_detach:
            if name not in field_names or name == definition.name:
                errors.append(
                    SchemaValidationError(
                        field=f"{path}.on_detach",
                        message=f"Detach reset targets unknown field '{name}'",
                        code="reference_on_detach_invalid",
                    )
                )
        return errors

    @classmethod
    def validate(cls, fields: Iterable[FieldDefinition]) -> list[SchemaValidationError]:
        """Validate a full schema.

        Args:
            fields: Field definitions in declaration order.

        Returns:
            List of validation errors (empty if valid).
        """
        fields = list(fields)
        if not fields:
            return [
                SchemaValidationError(
                    field="schema",
                    message="Schema must define at least one field",
                    code="schema_empty",
                )
            ]

        errors: list[SchemaValidationError] = []
        field_names = {f.name for f in fields}
        seen: set[str] = set()
        for i, definition in enumerate(fields):
            path = f"schema[{i}]"
            errors.extend(cls.validate_field_name(definition.name, f"{path}.name"))

            if not isinstance(definition.type, FieldType):
                errors.append(
                    SchemaValidationError(
                        field=f"{path}.type",
                        message=f"Invalid field type '{definition.type}'",
                        code="field_type_invalid",
                    )
                )
            elif definition.type == FieldType.ENUM:
                errors.extend(cls.validate_enum_field(definition, path))
            elif definition.type == FieldType.LIST:
                errors.extend(cls.validate_list_field(definition, path))
            elif definition.type == FieldType.REFERENCE:
                errors.extend(cls.validate_reference_field(definition, path, field_names))

            if definition.name in seen:
                errors.append(
                    SchemaValidationError(
                        field=f"{path}.name",
                        message=f"Duplicate field name '{definition.name}'",
                        code="field_name_duplicate",
                    )
                )
            seen.add(definition.name)

        return errors
