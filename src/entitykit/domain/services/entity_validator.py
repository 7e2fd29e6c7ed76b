"""Entity validation against collection schemas.

Validates field types, required fields and enum membership, and applies
default values on create. Supports the field types declared in FieldType.
"""

import json
from dataclasses import dataclass
from datetime import date
from typing import Any

from entitykit.domain.entities.schema import FieldDefinition, FieldType, Schema
from entitykit.domain.services.field_values import normalize_date, parse_datetime


@dataclass
class EntityValidationIssue:
    """A single entity validation issue."""

    field: str
    message: str
    code: str


class EntityValidator:
    """Validator for entity data against a collection schema.

    Each ``validate_*`` method returns an issue or None. Date values are
    normalized to ISO strings so every stored entity stays JSON-serializable.
    """

    @classmethod
    def validate_string(cls, value: Any, field_name: str) -> EntityValidationIssue | None:
        if not isinstance(value, str):
            return EntityValidationIssue(
                field=field_name,
                message=f"Expected text value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_number(cls, value: Any, field_name: str) -> EntityValidationIssue | None:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return EntityValidationIssue(
                field=field_name,
                message=f"Expected number value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_boolean(cls, value: Any, field_name: str) -> EntityValidationIssue | None:
        if not isinstance(value, bool):
            return EntityValidationIssue(
                field=field_name,
                message=f"Expected boolean value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_date(cls, value: Any, field_name: str) -> EntityValidationIssue | None:
        """Validate a date field value.

        Accepts ISO 8601 strings, ``date`` and ``datetime`` objects.
        """
        if isinstance(value, date):
            return None

        if isinstance(value, str):
            if parse_datetime(value) is None:
                return EntityValidationIssue(
                    field=field_name,
                    message="Invalid date format. Use ISO 8601 (e.g., 2024-01-01 or 2024-01-01T12:00:00Z)",
                    code="invalid_date_format",
                )
            return None

        return EntityValidationIssue(
            field=field_name,
            message=f"Expected date string, got {type(value).__name__}",
            code="invalid_type",
        )

    @classmethod
    def validate_enum(cls, value: Any, definition: FieldDefinition) -> EntityValidationIssue | None:
        if value not in definition.values:
            return EntityValidationIssue(
                field=definition.name,
                message=f"Value '{value}' is not one of {', '.join(definition.values)}",
                code="invalid_enum_value",
            )
        return None

    @classmethod
    def validate_record(cls, value: Any, field_name: str) -> EntityValidationIssue | None:
        """Nested records must be JSON-serializable mappings."""
        if not isinstance(value, dict):
            return EntityValidationIssue(
                field=field_name,
                message=f"Expected record (mapping), got {type(value).__name__}",
                code="invalid_type",
            )
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            return EntityValidationIssue(
                field=field_name,
                message="Record must be JSON-serializable",
                code="invalid_record",
            )
        return None

    @classmethod
    def validate_list(cls, value: Any, definition: FieldDefinition) -> EntityValidationIssue | None:
        """Lists hold plain strings, or item records shaped by ``items``."""
        if not isinstance(value, list):
            return EntityValidationIssue(
                field=definition.name,
                message=f"Expected list, got {type(value).__name__}",
                code="invalid_type",
            )

        for index, item in enumerate(value):
            item_path = f"{definition.name}[{index}]"
            if not definition.items:
                if isinstance(item, (dict, list)):
                    return EntityValidationIssue(
                        field=item_path,
                        message="List items must be primitive values",
                        code="invalid_list_item",
                    )
                continue

            if not isinstance(item, dict):
                return EntityValidationIssue(
                    field=item_path,
                    message=f"Expected item record, got {type(item).__name__}",
                    code="invalid_list_item",
                )
            for sub_field in definition.items:
                if sub_field.name not in item or item[sub_field.name] is None:
                    if sub_field.required:
                        return EntityValidationIssue(
                            field=f"{item_path}.{sub_field.name}",
                            message=f"Required item field '{sub_field.name}' is missing",
                            code="required_missing",
                        )
                    continue
                issue = cls.validate_field_value(item[sub_field.name], sub_field, f"{item_path}.{sub_field.name}")
                if issue:
                    return issue
        return None

    @classmethod
    def validate_reference(cls, value: Any, field_name: str) -> EntityValidationIssue | None:
        """Reference values are non-empty id strings.

        Whether the target exists is not checked here; dangling references
        are prevented by cascading detach on removal.
        """
        if not isinstance(value, str):
            return EntityValidationIssue(
                field=field_name,
                message=f"Expected reference ID (string), got {type(value).__name__}",
                code="invalid_type",
            )
        if not value.strip():
            return EntityValidationIssue(
                field=field_name,
                message="Reference ID cannot be empty",
                code="empty_reference",
            )
        return None

    @classmethod
    def validate_field_value(
        cls, value: Any, definition: FieldDefinition, field_name: str | None = None
    ) -> EntityValidationIssue | None:
        """Validate a single non-null value against its field definition."""
        name = field_name or definition.name
        field_type = definition.type

        if field_type == FieldType.STRING:
            return cls.validate_string(value, name)
        if field_type == FieldType.NUMBER:
            return cls.validate_number(value, name)
        if field_type == FieldType.BOOLEAN:
            return cls.validate_boolean(value, name)
        if field_type == FieldType.DATE:
            return cls.validate_date(value, name)
        if field_type == FieldType.ENUM:
            return cls.validate_enum(value, definition)
        if field_type == FieldType.RECORD:
            return cls.validate_record(value, name)
        if field_type == FieldType.LIST:
            return cls.validate_list(value, definition)
        if field_type == FieldType.REFERENCE:
            return cls.validate_reference(value, name)

        return EntityValidationIssue(
            field=name,
            message=f"Unknown field type: {field_type}",
            code="unknown_type",
        )

    @classmethod
    def _normalize(cls, value: Any, definition: FieldDefinition) -> Any:
        if definition.type == FieldType.DATE:
            return normalize_date(value)
        if definition.type == FieldType.LIST and definition.items:
            date_items = [s.name for s in definition.items if s.type == FieldType.DATE]
            if date_items:
                return [
                    {k: normalize_date(v) if k in date_items and v is not None else v for k, v in item.items()}
                    for item in value
                ]
        return value

    @classmethod
    def validate_and_apply_defaults(
        cls, data: dict[str, Any], schema: Schema, partial: bool = False
    ) -> tuple[dict[str, Any], list[EntityValidationIssue]]:
        """Validate entity data against a schema and apply default values.

        Args:
            data: The entity data to validate. The ``id`` key is ignored.
            schema: The collection schema.
            partial: If True, only validate fields present in data (for update patches).

        Returns:
            Tuple of (processed_data, issues). ``processed_data`` holds every
            schema field on create (defaults or None for absent optional
            fields) and only the supplied fields when partial.
        """
        issues: list[EntityValidationIssue] = []
        processed: dict[str, Any] = {}

        for field_name in data:
            if field_name != "id" and field_name not in schema:
                issues.append(
                    EntityValidationIssue(
                        field=field_name,
                        message=f"Unknown field '{field_name}' not defined in collection schema",
                        code="unknown_field",
                    )
                )

        for definition in schema:
            name = definition.name

            if name in data:
                value = data[name]
                if value is None:
                    if definition.required:
                        issues.append(
                            EntityValidationIssue(
                                field=name,
                                message=f"Required field '{name}' cannot be null",
                                code="required_null",
                            )
                        )
                    else:
                        processed[name] = None
                    continue

                if definition.required and isinstance(value, str) and not value.strip():
                    issues.append(
                        EntityValidationIssue(
                            field=name,
                            message=f"Required field '{name}' cannot be empty",
                            code="required_empty",
                        )
                    )
                    continue

                issue = cls.validate_field_value(value, definition)
                if issue:
                    issues.append(issue)
                else:
                    processed[name] = cls._normalize(value, definition)
            elif not partial:
                if definition.default is not None:
                    processed[name] = definition.default_value()
                elif definition.required:
                    issues.append(
                        EntityValidationIssue(
                            field=name,
                            message=f"Required field '{name}' is missing",
                            code="required_missing",
                        )
                    )
                else:
                    processed[name] = None

        return processed, issues
