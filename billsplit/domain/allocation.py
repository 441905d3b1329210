"""Cost allocation across bill participants.

Each participant pays their share of the items they are on, plus a share of
the bill's overhead (tax, tip, fees) proportional to that item spend.

Items nobody is assigned to still count toward the item total, and so toward
the proportional base, but are collected from no one. The difference shows up
in ``unallocated_amount()``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from billsplit.domain.bill import Bill, LineItem, Participant

ZERO = Decimal("0")


def person_item_total(bill: Bill, participant: Participant) -> Decimal:
    """Sum of per-person item amounts for items ``participant`` shares."""
    return sum(
        (item.amount_per_person for item in bill.items if participant in item.split_with),
        ZERO,
    )


def overhead_share(bill: Bill, participant: Participant) -> Decimal:
    """Overhead apportioned by the participant's fraction of the item total.

    Zero when the item total is zero.
    """
    item_total = bill.item_total
    if item_total == 0:
        return ZERO
    return bill.overhead_total * (person_item_total(bill, participant) / item_total)


def amount_owed_by(bill: Bill, participant: Participant) -> Decimal:
    """Item share plus overhead share for ``participant``."""
    return person_item_total(bill, participant) + overhead_share(bill, participant)


def allocate(bill: Bill) -> dict[Participant, Decimal]:
    """Amount owed by every participant on the bill."""
    return {participant: amount_owed_by(bill, participant) for participant in bill.participants}


def uncollected_item_amount(bill: Bill, item: LineItem) -> Decimal:
    """Part of ``item`` whose sharers are not bill participants (all of it when unassigned)."""
    if not item.split_with:
        return item.price
    outsiders = len(item.split_with - bill.participants)
    return item.amount_per_person * outsiders if outsiders else ZERO


def unallocated_amount(bill: Bill) -> Decimal:
    """Part of the computed total that no bill participant is charged for.

    Built from the uncollected item amounts and their overhead, so a bill
    whose items are all shared by participants reports exactly zero.
    """
    item_total = bill.item_total
    if item_total == 0:
        return bill.computed_total - sum(allocate(bill).values(), ZERO)
    uncollected = sum((uncollected_item_amount(bill, item) for item in bill.items), ZERO)
    if uncollected == 0:
        return ZERO
    return uncollected + bill.overhead_total * (uncollected / item_total)
