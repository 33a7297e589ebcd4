"""Tests for the statistics rollup."""
import math
from datetime import datetime

import pytest

from analytics import aggregate
from bills import Participant
from categories import Category, CategoryCatalog
from conftest import NOW, make_bill, make_share


PAID = [Participant("p1", "a", "paid")]
UNPAID = [Participant("p1", "a", "pending")]


class TestEmptyInput:

    def test_zeroed_rollup(self):
        stats = aggregate([], NOW)

        assert stats.total_bills == 0
        assert stats.total_amount == 0
        assert stats.average_amount == 0
        assert stats.settled_bills == 0
        assert stats.pending_bills == 0
        assert stats.settled_percentage == 0
        assert stats.pending_participants == []
        assert stats.total_pending_amount == 0
        assert stats.most_frequent_category_id == "other"
        assert stats.most_frequent_category == "Other"
        assert stats.most_expensive_bill == {"title": "No data", "amount": 0.0, "date": NOW}
        assert stats.category_expenses == []
        assert [m["value"] for m in stats.monthly_expenses] == [0] * 6


class TestMonthlySeries:

    def test_window_covers_six_months_ending_now(self):
        stats = aggregate([], NOW)

        assert [m["year_month"] for m in stats.monthly_expenses] == [
            "2026-5", "2026-6", "2026-7", "2026-8", "2026-9", "2026-10",
        ]
        assert stats.monthly_expenses[-1]["name"] == "Oct"
        assert stats.monthly_expenses[-1]["month"] == "October"

    def test_window_crosses_year_boundary(self):
        stats = aggregate([], datetime(2026, 2, 28))
        assert [m["year_month"] for m in stats.monthly_expenses] == [
            "2025-9", "2025-10", "2025-11", "2025-12", "2026-1", "2026-2",
        ]

    def test_bills_are_bucketed_by_month(self):
        bills = [
            make_bill("b1", 100, date=datetime(2026, 10, 1)),
            make_bill("b2", 50, date=datetime(2026, 10, 18)),
            make_bill("b3", 30, date=datetime(2026, 5, 31)),
            make_bill("b4", 999, date=datetime(2026, 4, 30)),
        ]

        stats = aggregate(bills, NOW)

        assert [m["value"] for m in stats.monthly_expenses] == [30, 0, 0, 0, 0, 150]
        # Outside the window but still in the totals
        assert stats.total_amount == 1179
        assert stats.total_bills == 4

    def test_created_at_is_used_when_date_missing(self):
        bill = make_bill("b1", 40, date=None)
        bill.created_at = datetime(2026, 9, 2)

        stats = aggregate([bill], NOW)

        assert stats.monthly_expenses[4]["value"] == 40


class TestTotals:

    def test_totals_and_average(self):
        bills = [make_bill("b1", 100), make_bill("b2", 50), make_bill("b3", 1)]

        stats = aggregate(bills, NOW)

        assert stats.total_amount == 151
        assert stats.average_amount == 50

    def test_average_rounds_half_up(self):
        stats = aggregate([make_bill("b1", 1), make_bill("b2", 2)], NOW)
        assert stats.average_amount == 2

    def test_invalid_amounts_count_as_zero(self):
        bills = [
            make_bill("b1", "abc"),
            make_bill("b2", float("nan")),
            make_bill("b3", -40),
            make_bill("b4", None),
            make_bill("b5", "25"),
        ]

        stats = aggregate(bills, NOW)

        assert stats.total_amount == 25
        assert stats.most_expensive_bill["amount"] == 25
        for value in [stats.total_amount, stats.average_amount] + [m["value"] for m in stats.monthly_expenses]:
            assert value >= 0
            assert not math.isnan(value)


class TestMostExpensiveBill:

    def test_first_maximum_wins(self):
        bills = [
            make_bill("b1", 50, title="Small"),
            make_bill("b2", 300, title="First big"),
            make_bill("b3", 300, title="Second big"),
        ]

        stats = aggregate(bills, NOW)

        assert stats.most_expensive_bill["title"] == "First big"
        assert stats.most_expensive_bill["amount"] == 300
        assert stats.most_expensive_bill["date"] == NOW

    def test_all_zero_amounts_pick_first_bill(self):
        stats = aggregate([make_bill("b1", 0, title="One"), make_bill("b2", 0, title="Two")], NOW)
        assert stats.most_expensive_bill["title"] == "One"


class TestStatusCounts:

    def test_counts_use_derived_status(self):
        bills = [
            make_bill("b1", 10, status="pending", participants=PAID),
            make_bill("b2", 10, status="settled", participants=UNPAID),
            make_bill("b3", 10, status="partial", participants=[]),
            make_bill("b4", 10, status="paid", participants=UNPAID),
        ]

        stats = aggregate(bills, NOW)

        assert stats.settled_bills == 2
        assert stats.pending_bills == 2
        assert stats.settled_percentage == 50
        assert stats.pending_percentage == 50

    def test_input_bills_are_not_mutated(self):
        bill = make_bill("b1", 10, status="settled", participants=UNPAID)
        aggregate([bill], NOW)
        assert bill.status == "settled"


class TestCategories:

    def test_most_frequent_category_first_wins_on_tie(self):
        bills = [
            make_bill("b1", 10, category="coffee"),
            make_bill("b2", 10, category="food"),
            make_bill("b3", 10, category="food"),
            make_bill("b4", 10, category="coffee"),
        ]

        stats = aggregate(bills, NOW)

        assert stats.most_frequent_category_id == "coffee"
        assert stats.most_frequent_category == "Coffee & Drinks"

    def test_missing_category_defaults_to_other(self):
        stats = aggregate([make_bill("b1", 10, category=None), make_bill("b2", 5, category="")], NOW)
        assert stats.category_stats == [{"id": "other", "name": "Other", "value": 15, "color": "#6b7280"}]

    def test_unknown_category_uses_fallback_name(self):
        stats = aggregate([make_bill("b1", 10, category="spaceships")], NOW)

        assert stats.most_frequent_category == "Other"
        assert stats.category_stats[0]["id"] == "spaceships"
        assert stats.category_stats[0]["name"] == "Other"
        assert stats.popular_categories == []

    def test_category_expenses_top_six_by_amount(self):
        categories = ["food", "coffee", "shopping", "home", "work", "gift", "book", "game"]
        bills = [make_bill(f"b{i}", (i + 1) * 10, category=c) for i, c in enumerate(categories)]

        stats = aggregate(bills, NOW)

        assert len(stats.category_expenses) == 6
        assert [c["value"] for c in stats.category_expenses] == [80, 70, 60, 50, 40, 30]
        assert stats.category_expenses[0] == {"name": "Games", "value": 80}
        assert len(stats.category_stats) == 8

    def test_popular_categories_top_five_by_count(self):
        bills = (
            [make_bill(f"f{i}", 1, category="food") for i in range(3)]
            + [make_bill(f"c{i}", 1, category="coffee") for i in range(2)]
            + [make_bill("h", 1, category="home")]
        )

        stats = aggregate(bills, NOW)

        assert [(c["id"], c["count"]) for c in stats.popular_categories] == [
            ("food", 3), ("coffee", 2), ("home", 1),
        ]
        assert stats.popular_categories[0]["name"] == "Food"

    def test_custom_catalog(self):
        catalog = CategoryCatalog([
            Category("trip", "Trip", "text-blue-500"),
            Category("other", "Misc", "text-gray-500"),
        ])

        stats = aggregate([make_bill("b1", 10, category="trip")], NOW, catalog=catalog)

        assert stats.most_frequent_category == "Trip"
        assert stats.category_stats[0]["color"] == "#3b82f6"


class TestPendingLedger:

    def test_pending_ledger_is_attached(self):
        bills = [
            make_bill("b1", 89.14, split_results=[make_share("p1", "a", 70.33), make_share("p2", "b", 18.81)]),
            make_bill("b2", 150, split_results=[make_share("p1", "a", 150.00)]),
        ]

        stats = aggregate(bills, NOW)

        assert [p.id for p in stats.pending_participants] == ["p1", "p2"]
        assert stats.pending_participants[0].total_pending_amount == pytest.approx(220.33)
        assert stats.total_pending_amount == pytest.approx(239.14)


class TestDeterminism:

    def test_same_input_same_output(self):
        bills = [
            make_bill("b1", 120, category="food", participants=UNPAID,
                      split_results=[make_share("p1", "a", 60)]),
            make_bill("b2", 80, category="coffee", date=datetime(2026, 7, 4), participants=PAID),
        ]

        first = aggregate(bills, NOW).to_dict()
        second = aggregate(bills, NOW).to_dict()

        assert first == second

    def test_to_dict_shape(self):
        data = aggregate([make_bill("b1", 10)], NOW).to_dict()
        assert set(data) == {
            "total_bills", "total_amount", "average_amount", "settled_bills", "pending_bills",
            "settled_percentage", "pending_percentage", "pending_participants",
            "total_pending_amount", "most_expensive_bill", "most_frequent_category",
            "most_frequent_category_id", "monthly_expenses", "category_expenses",
            "category_stats", "popular_categories",
        }
