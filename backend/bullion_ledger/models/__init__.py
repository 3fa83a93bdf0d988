from .accounts import Account
from .inventory import MetalStock, Inventory, InventoryLog
from .transactions import MetalTransaction, StockItem, TRANSACTION_TYPES, TRANSACTION_STATUSES
from .registry import RegistryEntry, LedgerSequence
from .fixing import TransactionFixing, FixingOrder, FIXING_TYPES, FIXING_ACTIVE, FIXING_CANCELLED
from .transfers import FundTransfer, ASSET_TYPES
from .entries import Entry, EntryLine, ENTRY_TYPES

__all__ = [
    "Account",
    "MetalStock",
    "Inventory",
    "InventoryLog",
    "MetalTransaction",
    "StockItem",
    "TRANSACTION_TYPES",
    "TRANSACTION_STATUSES",
    "RegistryEntry",
    "LedgerSequence",
    "TransactionFixing",
    "FixingOrder",
    "FIXING_TYPES",
    "FIXING_ACTIVE",
    "FIXING_CANCELLED",
    "FundTransfer",
    "ASSET_TYPES",
    "Entry",
    "EntryLine",
    "ENTRY_TYPES",
]
