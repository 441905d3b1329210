"""Format Bill data as a plain-text split summary or JSON-ready dicts."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from billsplit.domain import allocation
from billsplit.domain.bill import Bill

CENT = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    """Format a money amount with two decimals, halves rounded up."""
    return f"{amount.quantize(CENT, rounding=ROUND_HALF_UP):.2f}"


def _format_rows_aligned(rows: list[tuple[str, str, str | None]], indent: str = "  ") -> list[str]:
    """
    Format (label, amount, note) rows with aligned amounts and notes.

    Args:
        rows: List of (label, amount, note_or_none) tuples
        indent: Indentation prefix for each line

    Returns:
        List of formatted lines
    """
    if not rows:
        return []

    max_label_len = max(len(label) for label, _, _ in rows)
    max_amount_len = max(len(amount) for _, amount, _ in rows)

    lines = []
    for label, amount, note in rows:
        base = f"{indent}{label.ljust(max_label_len)}  {amount.rjust(max_amount_len)}"
        if note:
            lines.append(f"{base}  ; {note}")
        else:
            lines.append(base)
    return lines


def format_bill_summary(bill: Bill) -> str:
    """
    Format a bill, its totals and each participant's share.

    Unassigned items are flagged, and any amount nobody is charged for is
    reported on its own line.
    """
    lines = [f"Bill: {bill.name or '(unnamed)'}"]

    item_rows: list[tuple[str, str, str | None]] = []
    for item in bill.items:
        if item.split_with:
            note = ", ".join(sorted(participant.name for participant in item.split_with))
        else:
            note = "UNASSIGNED"
        item_rows.append((item.name, format_amount(item.price), note))
    if item_rows:
        lines.append("Items:")
        lines.extend(_format_rows_aligned(item_rows))

    total_rows: list[tuple[str, str, str | None]] = [
        ("Items", format_amount(bill.item_total), None),
        ("Tax", format_amount(bill.tax), None),
        ("Tip", format_amount(bill.tip), None),
        ("Fees", format_amount(bill.fees), None),
        ("Total", format_amount(bill.computed_total), None),
        ("Declared", format_amount(bill.declared_amount), None),
    ]
    if not bill.is_reconciled:
        total_rows.append(("Discrepancy", format_amount(bill.discrepancy), "FIXME: totals do not match"))
    lines.append("Totals:")
    lines.extend(_format_rows_aligned(total_rows))

    shares = allocation.allocate(bill)
    if shares:
        share_rows = [
            (participant.name, format_amount(amount), None)
            for participant, amount in sorted(shares.items(), key=lambda entry: entry[0].name)
        ]
        unallocated = allocation.unallocated_amount(bill)
        if unallocated.quantize(CENT, rounding=ROUND_HALF_UP) != 0:
            share_rows.append(("(unallocated)", format_amount(unallocated), None))
        lines.append("Owed:")
        lines.extend(_format_rows_aligned(share_rows))

    lines.append("")
    return "\n".join(lines)


def bill_to_dict(bill: Bill) -> dict[str, Any]:
    """Serialize a bill and its allocation; money is rendered as strings."""
    shares = allocation.allocate(bill)
    return {
        "id": str(bill.id),
        "name": bill.name,
        "amount": format_amount(bill.declared_amount),
        "items": [
            {
                "name": item.name,
                "price": format_amount(item.price),
                "split_with": sorted(participant.name for participant in item.split_with),
            }
            for item in bill.items
        ],
        "tax": format_amount(bill.tax),
        "tip": format_amount(bill.tip),
        "fees": format_amount(bill.fees),
        "item_total": format_amount(bill.item_total),
        "total": format_amount(bill.computed_total),
        "discrepancy": format_amount(bill.discrepancy),
        # A list, since display names are not unique.
        "owed": [
            {"id": str(participant.id), "name": participant.name, "amount": format_amount(amount)}
            for participant, amount in sorted(shares.items(), key=lambda entry: entry[0].name)
        ],
        "unallocated": format_amount(allocation.unallocated_amount(bill)),
    }
