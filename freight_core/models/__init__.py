from freight_core.models.freight import BookingRequest, FeeStatus, Load, LoadEvent, PostingStatus, Trip, Truck, TruckPosting
from freight_core.models.ledger import AccountType, FinancialAccount, JournalEntry, JournalLine
from freight_core.models.organization import Organization, User

__all__ = [
    "AccountType",
    "BookingRequest",
    "FeeStatus",
    "FinancialAccount",
    "JournalEntry",
    "JournalLine",
    "Load",
    "LoadEvent",
    "Organization",
    "PostingStatus",
    "Trip",
    "Truck",
    "TruckPosting",
    "User",
]
