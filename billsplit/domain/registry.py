"""Application-level collection of bills and the people who split them."""

from __future__ import annotations

from dataclasses import dataclass, field

from billsplit.domain.bill import Bill, Participant


@dataclass
class BillBook:
    """Saved bills (newest first) and the global participant registry."""

    bills: list[Bill] = field(default_factory=list)
    participants: list[Participant] = field(default_factory=list)

    def add_participant(self, name: str) -> Participant:
        participant = Participant(name=name)
        self.participants.append(participant)
        return participant

    def find_participants(self, name: str) -> list[Participant]:
        """All registered participants with display name ``name``."""
        return [participant for participant in self.participants if participant.name == name]

    def remove_participant(self, participant: Participant) -> None:
        """
        Remove ``participant`` from the registry and from every saved bill.

        Items referencing the participant lose them from their split, so no
        bill is left pointing at someone who is no longer registered.

        Raises:
            KeyError: If the participant is not registered
        """
        if participant not in self.participants:
            raise KeyError(f"Unknown participant: {participant.name!r}")
        self.participants.remove(participant)
        for bill in self.bills:
            bill.remove_participant(participant)

    def save_bill(self, bill: Bill) -> Bill:
        """Store a copy of ``bill`` at the front and return the stored copy."""
        saved = bill.copy()
        self.bills.insert(0, saved)
        return saved

    def remove_bill(self, bill: Bill) -> None:
        self.bills.remove(bill)
