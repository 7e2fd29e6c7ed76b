"""Exceptions raised by the entity engine."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from entitykit.domain.services.entity_validator import EntityValidationIssue


class EntityKitError(Exception):
    """Base class for all engine errors."""
    pass


class SchemaDefinitionError(EntityKitError):
    """Raised when a schema declaration is invalid."""
    pass


class EntityValidationError(EntityKitError):
    """Raised when a create or update violates the collection schema.

    Args:
        issues: Every validation issue found (not just the first).
    """

    def __init__(self, issues: list["EntityValidationIssue"]) -> None:
        self.issues = issues
        messages = "; ".join(f"{i.field}: {i.message}" for i in issues)
        super().__init__(f"Validation failed: {messages}")


class DuplicateIdError(EntityKitError):
    """Raised when a create collides with an existing id."""

    def __init__(self, entity_id: str, collection: str) -> None:
        self.entity_id = entity_id
        self.collection = collection
        super().__init__(f"Entity '{entity_id}' already exists in '{collection}'")


class EntityNotFoundError(EntityKitError):
    """Raised when an update or remove targets a missing id."""

    def __init__(self, entity_id: str, collection: str) -> None:
        self.entity_id = entity_id
        self.collection = collection
        super().__init__(f"Entity '{entity_id}' not found in '{collection}'")


class ImportRowError(EntityKitError):
    """Raised for a single malformed import row; always caught by the codec."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        super().__init__(f"{message} at line {line_number}" if line_number is not None else message)


class PersistenceError(EntityKitError):
    """Base class for key-value backend failures."""
    pass


class PersistenceWriteError(PersistenceError):
    """Raised by a backend that rejects a write."""
    pass


class PersistenceReadError(PersistenceError):
    """Raised by a backend that cannot read a stored value."""
    pass
