"""
Pending Module

This module finds participants who still owe money.

Two views are provided:
    - Single bill: the pending people of one bill, for the bill detail view.
      Entries with a non-positive amount are left out.
    - Across bills: a ledger keyed by participant id that merges every
      pending share of every bill, for the statistics dashboard. Entries are
      not filtered on amount here; shares of the same participant within the
      same bill are summed into one per-bill entry.

Malformed records (no participant, no participant id, unreadable amount,
missing split results) are skipped; these functions never raise on dirty data.

Functions:
    get_pending_participants_from_split_results: Pending people of one bill.
    calculate_total_pending_amount: Sum owed within one bill.
    format_pending_participants_text: Text summary of one bill's pending people.
    calculate_pending_participants: Cross-bill pending ledger.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

from bills import PENDING, Bill, SplitResult
from config.settings import DEFAULT_BILL_TITLE
from logging_setup import get_logger
from utils import format_currency, safe_amount

logger = get_logger("pending")


class PendingBill:
    """One bill's contribution to a participant's pending total."""

    def __init__(self, id: str, title: str, amount: float, date: datetime):
        self.id = id
        self.title = title
        self.amount = amount
        self.date = date

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "amount": self.amount, "date": self.date}

    def __repr__(self) -> str:
        return f"PendingBill(id='{self.id}', amount={self.amount})"


class PendingParticipant:
    """
    Ledger entry for a participant who still owes money.

    Attributes:
        id (str): Participant id (the ledger key).
        name (str): Name from the first split result seen for this id.
        total_pending_amount (float): Sum of every pending share.
        pending_bills (int): Number of distinct bills contributing.
        bills (list[PendingBill]): One entry per distinct bill.
    """

    def __init__(self, id: str, name: str, first_bill: PendingBill):
        self.id = id
        self.name = name
        self.total_pending_amount = first_bill.amount
        self.pending_bills = 1
        self.bills = [first_bill]
        self._bills_by_id = {first_bill.id: first_bill}

    def add(self, bill: Bill, amount: float, bill_date: datetime) -> None:
        """Add a pending share, merging it into the bill's entry if already recorded."""
        self.total_pending_amount += amount

        existing = self._bills_by_id.get(bill.id)
        if existing is not None:
            existing.amount += amount
            return

        entry = _pending_bill(bill, amount, bill_date)
        self._bills_by_id[bill.id] = entry
        self.bills.append(entry)
        self.pending_bills += 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "total_pending_amount": self.total_pending_amount,
            "pending_bills": self.pending_bills,
            "bills": [b.to_dict() for b in self.bills],
        }

    def __repr__(self) -> str:
        return (
            f"PendingParticipant(id='{self.id}', name='{self.name}', "
            f"total_pending_amount={self.total_pending_amount}, pending_bills={self.pending_bills})"
        )


def _pending_bill(bill: Bill, amount: float, bill_date: datetime) -> PendingBill:
    return PendingBill(
        id=bill.id,
        title=bill.title or DEFAULT_BILL_TITLE,
        amount=amount,
        date=bill_date,
    )


def _as_split_result(entry: Any) -> Optional[SplitResult]:
    if isinstance(entry, SplitResult):
        return entry
    if isinstance(entry, dict):
        return SplitResult.from_dict(entry)
    return None


def _pending_entries(split_results: Any) -> Iterable[SplitResult]:
    """Yield the split results whose participant status is exactly "pending"."""
    if not isinstance(split_results, list):
        return
    for raw in split_results:
        entry = _as_split_result(raw)
        if entry is None or entry.participant is None:
            logger.debug("Skipping split result without participant: %r", raw)
            continue
        if entry.participant.status != PENDING:
            continue
        yield entry


def get_pending_participants_from_split_results(split_results: Any) -> list[dict]:
    """
    List the pending participants of a single bill.

    Args:
        split_results: The bill's split results (SplitResult objects or raw dicts).

    Returns:
        list[dict]: {name, amount, id, status} per pending share with a
        positive amount, largest amount first. Empty if split_results is not
        a list.
    """
    pending = []
    for entry in _pending_entries(split_results):
        amount = safe_amount(entry.amount)
        if amount <= 0:
            continue
        pending.append({
            "name": entry.participant.name,
            "amount": amount,
            "id": entry.participant.id,
            "status": entry.participant.status,
        })

    pending.sort(key=lambda p: p["amount"], reverse=True)
    return pending


def calculate_total_pending_amount(split_results: Any) -> float:
    """Sum the amounts still owed within a single bill."""
    return sum(p["amount"] for p in get_pending_participants_from_split_results(split_results))


def format_pending_participants_text(split_results: Any) -> str:
    """
    Build a plain-text summary of a bill's pending participants.

    Example:
        Pending participants: 2
        Total: ฿89

        1. a (฿70)
        2. b (฿19)
    """
    pending = get_pending_participants_from_split_results(split_results)
    if not pending:
        return "No pending participants"

    total = sum(p["amount"] for p in pending)
    lines = [
        f"{index}. {p['name']} ({format_currency(p['amount'])})"
        for index, p in enumerate(pending, start=1)
    ]
    return (
        f"Pending participants: {len(pending)}\n"
        f"Total: {format_currency(total)}\n\n"
        + "\n".join(lines)
    )


def calculate_pending_participants(
    bills: list[Bill],
    now: Optional[datetime] = None
) -> list[PendingParticipant]:
    """
    Reconcile pending shares across bills into one ledger per participant.

    Steps:
        1. Skip bills whose split_results is missing or not a list
        2. Skip split results without a participant, without a participant id,
           or whose status is not exactly "pending"
        3. Coerce the amount (0 on failure); zero amounts are kept
        4. Seed a ledger entry for a new participant id, add a per-bill entry
           for a new bill, or add into the existing per-bill entry when the
           participant appears again in the same bill
        5. Sort by total pending amount, largest first; ties keep first-seen order

    Args:
        bills: Fully fetched bills.
        now: Date used for bills that carry neither date nor created_at.

    Returns:
        list[PendingParticipant]: The ledger. For every entry,
        len(bills) == pending_bills and total_pending_amount equals the sum
        of the per-bill amounts.
    """
    ledger: dict[str, PendingParticipant] = {}

    for bill in bills:
        split_results = getattr(bill, "split_results", None)
        if not isinstance(split_results, list):
            continue

        bill_date = bill.effective_date or now or datetime.now()

        for entry in _pending_entries(split_results):
            participant_id = entry.participant.id
            if participant_id is None:
                logger.debug("Skipping pending share without participant id on bill %s", bill.id)
                continue

            amount = safe_amount(entry.amount)

            existing = ledger.get(participant_id)
            if existing is None:
                ledger[participant_id] = PendingParticipant(
                    id=participant_id,
                    name=entry.participant.name,
                    first_bill=_pending_bill(bill, amount, bill_date),
                )
            else:
                existing.add(bill, amount, bill_date)

    return sorted(ledger.values(), key=lambda p: p.total_pending_amount, reverse=True)
