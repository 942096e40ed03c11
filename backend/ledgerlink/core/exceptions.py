"""Domain exceptions for the inventory consistency core.

Services raise these; the HTTP layer maps them to status codes in
``ledgerlink.main``.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base class for all core errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Input rejected before any effect was staged."""

    status_code = 400


class NotFoundError(LedgerError):
    """A referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[int]):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found.")


class AuthorizationMismatchError(LedgerError):
    """The actor's organization does not own the referenced stores or users."""

    status_code = 403

    def __init__(self, message: str = "Forbidden: resource belongs to another organization."):
        super().__init__(message)


class InvalidTransitionError(LedgerError):
    """A transfer was asked to move to a state it cannot reach."""

    status_code = 409

    def __init__(self, transfer_id: int, current: str, requested: str):
        self.transfer_id = transfer_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Transfer {transfer_id} cannot move from '{current}' to '{requested}'."
        )


class ConcurrencyConflictError(LedgerError):
    """An inventory row was modified by another unit of work."""

    status_code = 409

    def __init__(self, message: str = "Record was modified by another user. Please refresh and try again."):
        super().__init__(message)


class ReceiptError(LedgerError):
    """Merging received stock into a store failed."""

    status_code = 422


class InsufficientStockError(LedgerError):
    """Raised when there's not enough stock for a deduction."""

    status_code = 409

    def __init__(self, item_name: str, item_id: int, available: Decimal, needed: Decimal):
        self.item_name = item_name
        self.item_id = item_id
        self.available = available
        self.needed = needed
        super().__init__(
            f"Insufficient stock for '{item_name}': need {needed}, have {available}"
        )
