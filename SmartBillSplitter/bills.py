"""
Bills Module

This module defines the bill records the statistics engine works on and
derives a bill's settlement status from its participants.

Features:
    - Participant, SplitResult and Bill records
    - Lenient normalization of raw Firestore documents (Bill.from_dict)
    - Derived bill status (paid only when every participant has paid)

Data Model:
    Bill stored at: bills/{bill_id}
    Fields:
        - name: string (bill title)
        - categoryId: string (category catalog id)
        - totalAmount: float
        - status: string (settled, partial, pending, paid)
        - createdAt: timestamp
        - participants: list of {id, name, status}
        - splitResults: list of {amount, participant: {id, name, status}, items}
        - userId: string

Functions:
    is_paid: Whether a participant has paid.
    derive_bill_status: Compute "paid" or "pending" from the participants.
    update_bill_status: Return a copy of a bill carrying the derived status.
    validate_bill_data: Check that a bill has the fields the report needs.
"""

import copy
from datetime import datetime
from typing import Any, Optional

from config.settings import DEFAULT_BILL_TITLE, DEFAULT_CATEGORY
from utils import safe_amount, safe_number, to_datetime


PAID = "paid"
PENDING = "pending"
SETTLED = "settled"
PARTIAL = "partial"

PARTICIPANT_STATUSES = {PAID, PENDING}
BILL_STATUSES = {SETTLED, PARTIAL, PENDING, PAID}


class Participant:
    """
    A person owing or having paid a share of a bill.

    Attributes:
        id (str | None): Participant identifier, unique within a user's data.
        name (str | None): Display name (names may collide between people).
        status (str | None): "pending" or "paid"; anything else counts as unpaid.
    """

    def __init__(self, id: Optional[str], name: Optional[str], status: Optional[str] = PENDING):
        self.id = id
        self.name = name
        self.status = status

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "status": self.status}

    @classmethod
    def from_dict(cls, data: Any) -> "Participant":
        """
        Create a Participant from a stored value.

        Plain strings are legacy participant entries and become a pending
        participant whose id and name are the string itself.
        """
        if isinstance(data, dict):
            return cls(id=data.get("id"), name=data.get("name"), status=data.get("status"))
        return cls(id=str(data), name=str(data), status=PENDING)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Participant(id='{self.id}', name='{self.name}', status='{self.status}')"


class SplitResult:
    """
    One participant's share of one bill.

    Attributes:
        participant (Participant | None): Who owes the share; None on malformed records.
        amount (Any): Share amount as stored. Coerced when aggregated.
        items (list[dict]): Line items {name, amount} making up the share.
    """

    def __init__(self, participant: Optional[Participant], amount: Any, items: Optional[list] = None):
        self.participant = participant
        self.amount = amount
        self.items = items or []

    def to_dict(self) -> dict:
        return {
            "participant": self.participant.to_dict() if self.participant else None,
            "amount": self.amount,
            "items": self.items,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SplitResult":
        if not isinstance(data, dict):
            return cls(participant=None, amount=0)
        raw_participant = data.get("participant")
        participant = Participant.from_dict(raw_participant) if isinstance(raw_participant, dict) else None
        items = data.get("items")
        return cls(
            participant=participant,
            amount=data.get("amount"),
            items=items if isinstance(items, list) else [],
        )

    def __repr__(self) -> str:
        return f"SplitResult(participant={self.participant!r}, amount={self.amount!r})"


class Bill:
    """
    A settled-or-open expense record.

    Attributes:
        id (str): Stable identifier.
        title (str): Display label.
        date (datetime | None): Preferred timestamp for monthly bucketing.
        created_at (datetime | None): Fallback timestamp.
        total_amount (float): Non-negative total.
        category (str): Category catalog id.
        status (str): Stored status hint (settled, partial, pending, paid).
        participants (list[Participant]): Ordered participants.
        split_results (list[SplitResult] | None): Itemized shares; None when absent.
        user_id (str | None): Owner of the bill.
    """

    def __init__(
        self,
        id: str,
        title: str = DEFAULT_BILL_TITLE,
        date: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        total_amount: float = 0.0,
        category: str = DEFAULT_CATEGORY,
        status: str = PENDING,
        participants: Optional[list[Participant]] = None,
        split_results: Optional[list[SplitResult]] = None,
        user_id: Optional[str] = None
    ):
        self.id = id
        self.title = title
        self.date = date
        self.created_at = created_at
        self.total_amount = total_amount
        self.category = category
        self.status = status
        self.participants = participants if participants is not None else []
        self.split_results = split_results
        self.user_id = user_id

    @property
    def effective_date(self) -> Optional[datetime]:
        """The date used for bucketing: date, then created_at."""
        return self.date or self.created_at

    def to_dict(self) -> dict:
        """Convert the bill to a dictionary (JSON friendly apart from dates)."""
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "created_at": self.created_at,
            "total_amount": self.total_amount,
            "category": self.category,
            "status": self.status,
            "participants": [p.to_dict() for p in self.participants],
            "split_results": (
                [s.to_dict() for s in self.split_results]
                if self.split_results is not None else None
            ),
            "user_id": self.user_id
        }

    @classmethod
    def from_dict(cls, data: dict, bill_id: Optional[str] = None) -> "Bill":
        """
        Normalize a raw bill document into a Bill.

        Missing or invalid fields are replaced with safe defaults instead of
        raising, since stored bills have no enforced schema:
            - title: name, then title, then a placeholder
            - date: date, then createdAt (Firestore timestamps, datetimes, ISO strings)
            - total_amount: finite non-negative number, 0 otherwise
            - category: categoryId, then category, then "food" if the bill
              has food items, else "other"
            - participants: dicts, or plain strings treated as pending names
            - split_results: None unless stored as a list

        Args:
            data: Raw document fields.
            bill_id: Document id; falls back to data["id"].

        Returns:
            Bill: The normalized bill.
        """
        created_at = to_datetime(data.get("createdAt") or data.get("created_at"))
        bill_date = to_datetime(data.get("date")) or created_at

        category = data.get("categoryId") or data.get("category")
        if not isinstance(category, str) or not category:
            category = "food" if data.get("foodItems") else DEFAULT_CATEGORY

        status = data.get("status")
        if not isinstance(status, str) or status not in BILL_STATUSES:
            status = PENDING

        raw_participants = data.get("participants")
        participants = (
            [Participant.from_dict(p) for p in raw_participants if p is not None]
            if isinstance(raw_participants, list) else []
        )

        raw_split_results = data.get("splitResults", data.get("split_results"))
        split_results = (
            [SplitResult.from_dict(s) for s in raw_split_results]
            if isinstance(raw_split_results, list) else None
        )

        return cls(
            id=bill_id or data.get("id"),
            title=data.get("name") or data.get("title") or DEFAULT_BILL_TITLE,
            date=bill_date,
            created_at=created_at,
            total_amount=safe_amount(data.get("totalAmount", data.get("total_amount"))),
            category=category,
            status=status,
            participants=participants,
            split_results=split_results,
            user_id=data.get("userId") or data.get("user_id")
        )

    def __repr__(self) -> str:
        return f"Bill(id='{self.id}', title='{self.title}', total_amount={self.total_amount}, status='{self.status}')"


def is_paid(participant: Any) -> bool:
    """A participant has paid only if its status is exactly "paid"."""
    return getattr(participant, "status", None) == PAID


def derive_bill_status(bill: Bill) -> str:
    """
    Derive a bill's status from its participants.

    A bill is "paid" when every participant is paid, otherwise "pending".
    A bill with no participants is therefore "paid".

    Args:
        bill: The bill to inspect.

    Returns:
        str: "paid" or "pending".
    """
    return PAID if all(is_paid(p) for p in bill.participants or []) else PENDING


def update_bill_status(bill: Bill) -> Bill:
    """
    Return a shallow copy of the bill carrying the derived status.

    The input bill is left untouched so that cached fetch results and the
    aggregated view never diverge.
    """
    updated = copy.copy(bill)
    updated.status = derive_bill_status(bill)
    return updated


def validate_bill_data(bill: Any) -> bool:
    """
    Check that a bill carries what the statistics report needs.

    Returns:
        bool: True if the bill has an id, a title, a numeric total and a date.
    """
    return (
        isinstance(bill, Bill)
        and bool(bill.id)
        and bool(bill.title)
        and isinstance(bill.total_amount, (int, float))
        and not isinstance(bill.total_amount, bool)
        and safe_number(bill.total_amount, None) is not None
        and isinstance(bill.date, datetime)
    )
