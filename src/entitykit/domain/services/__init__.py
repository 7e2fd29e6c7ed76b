"""Domain services for EntityKit."""

from entitykit.domain.services.entity_validator import EntityValidationIssue, EntityValidator
from entitykit.domain.services.id_generator import EntityIdGenerator
from entitykit.domain.services.schema_validator import SchemaValidationError, SchemaValidator
from entitykit.domain.services.summary_service import SummaryService

__all__ = [
    "EntityIdGenerator",
    "EntityValidationIssue",
    "EntityValidator",
    "SchemaValidationError",
    "SchemaValidator",
    "SummaryService",
]
