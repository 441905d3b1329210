"""Data models for shared bills."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from billsplit.domain import allocation

if TYPE_CHECKING:
    from billsplit.receipt.geometry import GeometricLine

ZERO = Decimal("0")

# Quick-pick tip percentages applied to the item total.
TIP_PRESETS = {
    "18%": Decimal("0.18"),
    "20%": Decimal("0.20"),
    "22%": Decimal("0.22"),
}


class InvalidItemEntry(ValueError):
    """Raised when an item with an empty name or a zero, negative or non-finite price is added to a bill."""


@dataclass(eq=False)
class Participant:
    """A person who can share bill items. Identity is the id, not the name."""

    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(eq=False)
class LineItem:
    """A single priced line on a bill and the participants sharing it."""

    name: str
    price: Decimal
    # References only; participants are owned by the registry.
    split_with: set[Participant] = field(default_factory=set)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def amount_per_person(self) -> Decimal:
        # Unassigned items attribute the whole price to nobody.
        return self.price / max(1, len(self.split_with))

    @property
    def is_valid(self) -> bool:
        """Whether the item may be inserted into a bill: named, with a finite positive price."""
        return self.name != "" and self.price.is_finite() and self.price > 0

    @property
    def is_assigned(self) -> bool:
        return bool(self.split_with)

    def copy(self) -> LineItem:
        """Copy values into a new item with a fresh id."""
        return LineItem(name=self.name, price=self.price, split_with=set(self.split_with))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(eq=False)
class Bill:
    """A structured bill: declared total, items, overhead and participants.

    All totals are derived from current state each time they are read.
    """

    name: str = ""
    declared_amount: Decimal = ZERO
    items: list[LineItem] = field(default_factory=list)
    tax: Decimal = ZERO
    tip: Decimal = ZERO
    fees: Decimal = ZERO
    participants: set[Participant] = field(default_factory=set)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    # Collaborator trail kept for display and debugging
    extracted_text: str = ""
    ai_response: str = ""
    sorted_lines: list[GeometricLine] = field(default_factory=list)
    merged_lines: list[GeometricLine] = field(default_factory=list)

    @property
    def item_total(self) -> Decimal:
        return sum((item.price for item in self.items), ZERO)

    @property
    def overhead_total(self) -> Decimal:
        """Tax, tip and fees: the costs not attributable to an item."""
        return self.tax + self.tip + self.fees

    @property
    def computed_total(self) -> Decimal:
        return self.item_total + self.overhead_total

    @property
    def discrepancy(self) -> Decimal:
        """Computed total minus declared amount. Advisory only."""
        return self.computed_total - self.declared_amount

    @property
    def is_reconciled(self) -> bool:
        return self.discrepancy == 0

    def amount_owed_by(self, participant: Participant) -> Decimal:
        """Item share plus proportional overhead share for ``participant``."""
        return allocation.amount_owed_by(self, participant)

    def add_item(self, item: LineItem, index: int = 0) -> LineItem:
        """
        Insert a copy of ``item`` at ``index`` (front by default).

        Raises:
            InvalidItemEntry: If the item has an empty name or a price that is
                not finite and positive
        """
        if not item.is_valid:
            raise InvalidItemEntry(f"Item needs a name and a positive price: {item.name!r} {item.price}")
        inserted = item.copy()
        self.items.insert(index, inserted)
        return inserted

    def remove_items(self, indices: Iterable[int]) -> list[LineItem]:
        """Remove items at ``indices``, all relative to the current order."""
        count = len(self.items)
        positions: set[int] = set()
        for index in indices:
            if not -count <= index < count:
                raise IndexError(f"Item index out of range: {index}")
            positions.add(index % count)
        removed = [self.items.pop(position) for position in sorted(positions, reverse=True)]
        removed.reverse()
        return removed

    def add_participant(self, participant: Participant) -> None:
        self.participants.add(participant)

    def remove_participant(self, participant: Participant) -> None:
        """Drop ``participant`` from the bill and from every item split."""
        self.participants.discard(participant)
        for item in self.items:
            item.split_with.discard(participant)

    def assign(self, item: LineItem, participants: Iterable[Participant]) -> None:
        """Replace the set of participants sharing ``item``."""
        if item not in self.items:
            raise ValueError(f"Item {item.name!r} is not on bill {self.name!r}")
        item.split_with = set(participants)

    def unassigned_items(self) -> list[LineItem]:
        return [item for item in self.items if not item.is_assigned]

    def apply_tip_percentage(self, percentage: Decimal) -> Decimal:
        """Set the tip to ``percentage`` of the item total and return it."""
        self.tip = self.item_total * percentage
        return self.tip

    def sync_declared_amount(self) -> Decimal:
        """Set the declared amount to the item total and return it."""
        self.declared_amount = self.item_total
        return self.declared_amount

    def copy(self) -> Bill:
        """Copy into a new bill; items get fresh ids, participants are shared."""
        return Bill(
            name=self.name,
            declared_amount=self.declared_amount,
            items=[item.copy() for item in self.items],
            tax=self.tax,
            tip=self.tip,
            fees=self.fees,
            participants=set(self.participants),
            extracted_text=self.extracted_text,
            ai_response=self.ai_response,
            sorted_lines=list(self.sorted_lines),
            merged_lines=list(self.merged_lines),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bill):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
