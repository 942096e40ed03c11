# Services module

from ledgerlink.services.audit_service import (
    AuditContext,
    AuditRecorder,
    install_audit_hook,
)
from ledgerlink.services.access_service import AccessGuard
from ledgerlink.services.availability_service import (
    AvailabilityAndCostEngine,
    ProductAvailability,
)
from ledgerlink.services.receipt_service import ReceiptMerger, ReceiptResult
from ledgerlink.services.transfer_service import TransferWorkflow
from ledgerlink.services.recipe_service import RecipeService
from ledgerlink.services.stock_service import DeductionResult, StockLedger

__all__ = [
    "AuditContext",
    "AuditRecorder",
    "install_audit_hook",
    "AccessGuard",
    "AvailabilityAndCostEngine",
    "ProductAvailability",
    "ReceiptMerger",
    "ReceiptResult",
    "TransferWorkflow",
    "RecipeService",
    "DeductionResult",
    "StockLedger",
]
