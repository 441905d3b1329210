"""Core domain models for billsplit.

This package provides:
- Bill, LineItem, Participant: the structured bill and who shares what
- allocation: per-participant cost allocation
- BillBook: saved bills and the participant registry

Usage:
    from billsplit.domain import Bill, LineItem, Participant
"""

from billsplit.domain.bill import TIP_PRESETS, Bill, InvalidItemEntry, LineItem, Participant
from billsplit.domain.registry import BillBook

__all__ = [
    "Bill",
    "BillBook",
    "InvalidItemEntry",
    "LineItem",
    "Participant",
    "TIP_PRESETS",
]
