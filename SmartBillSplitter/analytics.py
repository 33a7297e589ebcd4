"""
Analytics Module

This module computes the spending statistics shown on the dashboard.

Features:
    - Monthly totals over a trailing 6-month window (zero-filled)
    - Category totals and counts, most frequent category
    - Most expensive bill
    - Settled vs pending bill counts and percentages
    - Cross-bill pending ledger (see pending.py)

Data Model:
    Input - bills: list of Bill (see bills.py), fully fetched
    Input - now: anchor of the 6-month window, injected by the caller

    Output - StatisticsRollup with:
        - total_bills, total_amount, average_amount
        - settled_bills, pending_bills, settled_percentage, pending_percentage
        - pending_participants, total_pending_amount
        - most_expensive_bill: {title, amount, date}
        - most_frequent_category, most_frequent_category_id
        - monthly_expenses: [{name, month, value, year_month}] x 6
        - category_expenses: top 6 [{name, value}] by amount
        - category_stats: [{id, name, value, color}] by amount
        - popular_categories: top 5 [{id, name, color, count}] by count

Functions:
    aggregate: Build the statistics rollup for a set of bills.
"""

from datetime import datetime
from typing import Optional

from bills import PAID, PARTIAL, PENDING, SETTLED, Bill, update_bill_status
from categories import CategoryCatalog, default_catalog
from config.settings import DEFAULT_CATEGORY, NO_DATA_LABEL, TOP_CATEGORY_LIMIT
from logging_setup import get_logger
from pending import PendingParticipant, calculate_pending_participants
from utils import (
    calculate_percentage,
    create_last_6_months_data,
    month_key,
    round_half_up,
    safe_amount,
)

logger = get_logger("analytics")


class StatisticsRollup:
    """Aggregated statistics for a bill collection."""

    def __init__(
        self,
        total_bills: int,
        total_amount: float,
        average_amount: int,
        settled_bills: int,
        pending_bills: int,
        pending_participants: list[PendingParticipant],
        total_pending_amount: float,
        most_expensive_bill: dict,
        most_frequent_category: str,
        most_frequent_category_id: str,
        monthly_expenses: list[dict],
        category_expenses: list[dict],
        category_stats: list[dict],
        popular_categories: list[dict]
    ):
        self.total_bills = total_bills
        self.total_amount = total_amount
        self.average_amount = average_amount
        self.settled_bills = settled_bills
        self.pending_bills = pending_bills
        self.pending_participants = pending_participants
        self.total_pending_amount = total_pending_amount
        self.most_expensive_bill = most_expensive_bill
        self.most_frequent_category = most_frequent_category
        self.most_frequent_category_id = most_frequent_category_id
        self.monthly_expenses = monthly_expenses
        self.category_expenses = category_expenses
        self.category_stats = category_stats
        self.popular_categories = popular_categories

    @property
    def settled_percentage(self) -> int:
        return calculate_percentage(self.settled_bills, self.total_bills)

    @property
    def pending_percentage(self) -> int:
        return calculate_percentage(self.pending_bills, self.total_bills)

    def to_dict(self) -> dict:
        return {
            "total_bills": self.total_bills,
            "total_amount": self.total_amount,
            "average_amount": self.average_amount,
            "settled_bills": self.settled_bills,
            "pending_bills": self.pending_bills,
            "settled_percentage": self.settled_percentage,
            "pending_percentage": self.pending_percentage,
            "pending_participants": [p.to_dict() for p in self.pending_participants],
            "total_pending_amount": self.total_pending_amount,
            "most_expensive_bill": dict(self.most_expensive_bill),
            "most_frequent_category": self.most_frequent_category,
            "most_frequent_category_id": self.most_frequent_category_id,
            "monthly_expenses": [dict(m) for m in self.monthly_expenses],
            "category_expenses": [dict(c) for c in self.category_expenses],
            "category_stats": [dict(c) for c in self.category_stats],
            "popular_categories": [dict(c) for c in self.popular_categories],
        }

    def __repr__(self) -> str:
        return f"StatisticsRollup(total_bills={self.total_bills}, total_amount={self.total_amount})"


def _most_frequent(category_counts: dict[str, int]) -> str:
    """First category holding the strict maximum count; "other" when empty."""
    most_frequent = DEFAULT_CATEGORY
    max_count = 0
    for category, count in category_counts.items():
        if count > max_count:
            max_count = count
            most_frequent = category
    return most_frequent


def aggregate(
    bills: list[Bill],
    now: datetime,
    catalog: Optional[CategoryCatalog] = None
) -> StatisticsRollup:
    """
    Compute the statistics rollup for a set of bills.

    Every bill's status is first re-derived from its participants (copies
    are used, the input bills are not modified). A single pass then
    accumulates totals, the most expensive bill (first one wins on ties),
    status counts, per-category counts and amounts, and the monthly series.
    Bills dated outside the 6-month window still count in every other total.

    Args:
        bills: Fully fetched bills, in the caller's order.
        now: Anchor of the monthly window; also the fallback date.
        catalog: Category catalog used to resolve names and colors.

    Returns:
        StatisticsRollup: The aggregated statistics. An empty bill list
        yields a zeroed rollup with six zero buckets.
    """
    catalog = catalog or default_catalog
    month_data, month_lookup = create_last_6_months_data(now)

    updated_bills = [update_bill_status(bill) for bill in bills]

    total_amount = 0.0
    max_bill_amount = 0.0
    max_bill_index = -1
    category_counts: dict[str, int] = {}
    category_totals: dict[str, float] = {}
    bill_statuses: dict[str, int] = {}

    for index, bill in enumerate(updated_bills):
        amount = safe_amount(bill.total_amount)
        total_amount += amount

        if max_bill_index < 0 or amount > max_bill_amount:
            max_bill_amount = amount
            max_bill_index = index

        bill_statuses[bill.status] = bill_statuses.get(bill.status, 0) + 1

        category = bill.category or DEFAULT_CATEGORY
        category_counts[category] = category_counts.get(category, 0) + 1
        category_totals[category] = category_totals.get(category, 0.0) + amount

        bill_date = bill.effective_date or now
        key = month_key(bill_date)
        if key in month_lookup:
            month_data[month_lookup[key]]["value"] += amount

    most_frequent_id = _most_frequent(category_counts)

    category_stats = []
    for category_id, value in category_totals.items():
        category = catalog.lookup(category_id)
        category_stats.append({
            "id": category_id,
            "name": category.name,
            "value": value,
            "color": category.hex_color,
        })
    category_stats.sort(key=lambda c: c["value"], reverse=True)

    category_expenses = [
        {"name": c["name"], "value": c["value"]}
        for c in category_stats[:TOP_CATEGORY_LIMIT]
    ]

    popular_categories = [
        {**category.to_dict(), "count": category_counts.get(category.id, 0)}
        for category in catalog.popular(category_counts)
    ]

    if max_bill_index >= 0:
        top_bill = updated_bills[max_bill_index]
        most_expensive_bill = {
            "title": top_bill.title,
            "amount": max_bill_amount,
            "date": top_bill.effective_date or now,
        }
    else:
        most_expensive_bill = {"title": NO_DATA_LABEL, "amount": 0.0, "date": now}

    pending_participants = calculate_pending_participants(updated_bills, now)
    total_pending_amount = sum(p.total_pending_amount for p in pending_participants)

    bill_count = len(updated_bills)
    logger.debug(
        "Aggregated %d bills: total=%s, %d pending participants",
        bill_count, total_amount, len(pending_participants),
    )

    return StatisticsRollup(
        total_bills=bill_count,
        total_amount=total_amount,
        average_amount=round_half_up(total_amount / bill_count) if bill_count > 0 else 0,
        settled_bills=bill_statuses.get(SETTLED, 0) + bill_statuses.get(PAID, 0),
        pending_bills=bill_statuses.get(PENDING, 0) + bill_statuses.get(PARTIAL, 0),
        pending_participants=pending_participants,
        total_pending_amount=total_pending_amount,
        most_expensive_bill=most_expensive_bill,
        most_frequent_category=catalog.lookup(most_frequent_id).name,
        most_frequent_category_id=most_frequent_id,
        monthly_expenses=month_data,
        category_expenses=category_expenses,
        category_stats=category_stats,
        popular_categories=popular_categories
    )
