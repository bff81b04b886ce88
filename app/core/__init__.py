"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps. It holds
no finance logic.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Managers (import from core.managers):
    - SoftDeleteManager: Filter deleted records by default
    - SoftDeleteQuerySet: QuerySet with soft delete operations

Services (import from core.services):
    - BaseService: Logger and atomic unit-of-work helpers

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Malformed input (400)
    - NotFoundError: Resource not found (404)
    - ConflictError: Illegal in current state (409)
    - PersistenceError: Storage failure after rollback (500)
    - ConfigurationError: Server misconfigured (500)

API plumbing:
    - core.authentication: Shared-secret X-App-Token authentication
    - core.exception_handler: Error envelope for every API failure
    - core.views.health_check: Public health endpoint

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
