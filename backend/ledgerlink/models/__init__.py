"""SQLAlchemy models."""

from ledgerlink.models.organization import Organization, Store, User, UserRole
from ledgerlink.models.reference import InventoryItemCategory, Supplier, Unit, VatCategory
from ledgerlink.models.inventory import InventoryItem
from ledgerlink.models.recipe import Recipe, RecipeIngredient
from ledgerlink.models.product import Product
from ledgerlink.models.transfer import Driver, InventoryTransfer, TransferItem, TransferStatus
from ledgerlink.models.audit import ActionType, AuditEntry, AuditLevel

__all__ = [
    "Organization",
    "Store",
    "User",
    "UserRole",
    "InventoryItemCategory",
    "Supplier",
    "Unit",
    "VatCategory",
    "InventoryItem",
    "Recipe",
    "RecipeIngredient",
    "Product",
    "Driver",
    "InventoryTransfer",
    "TransferItem",
    "TransferStatus",
    "ActionType",
    "AuditEntry",
    "AuditLevel",
]
