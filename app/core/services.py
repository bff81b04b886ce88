"""
Base service layer patterns for business logic encapsulation.

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

Error Handling:
    Services raise core.exceptions subclasses for expected failures
    (validation, missing references, state conflicts). Storage failures
    inside an atomic scope surface as PersistenceError after rollback.

Usage:
    from core.services import BaseService

    class AccountService(BaseService):
        @classmethod
        def deactivate(cls, account_id):
            with cls.atomic():
                account = Account.objects.select_for_update().get(id=account_id)
                account.is_active = False
                account.save(update_fields=["is_active", "updated_at"])

            cls.get_logger().info(
                "Account deactivated", extra={"account_id": str(account_id)}
            )
            return account

Related:
    - core.exceptions: Domain error hierarchy
    - core.exception_handler: Maps domain errors to HTTP responses
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import DatabaseError, transaction

from core.exceptions import BaseApplicationError, PersistenceError

if TYPE_CHECKING:
    from collections.abc import Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Raise core.exceptions subclasses for expected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Returns:
            Logger instance for this service
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Domain errors propagate unchanged. Database failures are
        logged and re-raised as PersistenceError once the rollback
        has happened, so callers can retry the whole operation.

        Example:
            with cls.atomic():
                BalanceMutator.apply(effect)
                Transaction.objects.create(...)
                # If the insert fails, the balance change is rolled back

        Raises:
            PersistenceError: If the store rejected any statement
        """
        try:
            with transaction.atomic():
                yield
        except BaseApplicationError:
            raise
        except DatabaseError as exc:
            cls.get_logger().error(
                "Unit of work rolled back",
                extra={"service": cls.__name__, "error": str(exc)},
                exc_info=True,
            )
            raise PersistenceError(
                "The operation could not be saved; it has been rolled back",
                details={"service": cls.__name__},
            ) from exc
