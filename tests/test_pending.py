"""Tests for single-bill pending extraction and the cross-bill pending ledger."""
import math

import pytest

from bills import Participant, SplitResult
from conftest import NOW, make_bill, make_share
from pending import (
    calculate_pending_participants,
    calculate_total_pending_amount,
    format_pending_participants_text,
    get_pending_participants_from_split_results,
)


class TestSingleBillExtraction:

    def test_sorted_by_amount_descending(self):
        split_results = [
            make_share("p2", "b", 18.81),
            make_share("p1", "a", 70.33),
        ]

        pending = get_pending_participants_from_split_results(split_results)

        assert [p["id"] for p in pending] == ["p1", "p2"]
        assert pending[0] == {"name": "a", "amount": 70.33, "id": "p1", "status": "pending"}

    def test_paid_and_non_positive_entries_are_dropped(self):
        split_results = [
            make_share("p1", "a", 50, status="paid"),
            make_share("p2", "b", 0),
            make_share("p3", "c", -5),
            make_share("p4", "d", "abc"),
            make_share("p5", "e", 12),
        ]

        pending = get_pending_participants_from_split_results(split_results)

        assert [p["id"] for p in pending] == ["p5"]

    def test_raw_dicts_are_accepted(self):
        split_results = [
            {"amount": "30", "participant": {"id": "p1", "name": "a", "status": "pending"}},
            {"amount": 10},
        ]
        pending = get_pending_participants_from_split_results(split_results)
        assert pending == [{"name": "a", "amount": 30.0, "id": "p1", "status": "pending"}]

    def test_not_a_list_returns_empty(self):
        assert get_pending_participants_from_split_results(None) == []
        assert get_pending_participants_from_split_results({"a": 1}) == []

    def test_total_pending_amount(self):
        split_results = [make_share("p1", "a", 70.33), make_share("p2", "b", 18.81)]
        assert calculate_total_pending_amount(split_results) == pytest.approx(89.14)

    def test_summary_text(self):
        split_results = [make_share("p1", "Alice", 70.33), make_share("p2", "Bob", 18.81)]

        text = format_pending_participants_text(split_results)

        assert text.startswith("Pending participants: 2\nTotal: ฿89\n\n")
        assert "1. Alice (฿70)" in text
        assert "2. Bob (฿19)" in text

    def test_summary_text_when_nobody_owes(self):
        assert format_pending_participants_text([]) == "No pending participants"


class TestCrossBillLedger:

    def test_single_bill_two_participants(self):
        bill = make_bill("b1", split_results=[
            make_share("p1", "a", 70.33),
            make_share("p2", "b", 18.81),
        ])

        ledger = calculate_pending_participants([bill], NOW)

        assert [p.id for p in ledger] == ["p1", "p2"]
        assert ledger[0].total_pending_amount == pytest.approx(70.33)
        assert ledger[1].total_pending_amount == pytest.approx(18.81)
        assert sum(p.total_pending_amount for p in ledger) == pytest.approx(89.14)

    def test_same_participant_across_two_bills(self):
        bills = [
            make_bill("b1", split_results=[make_share("p1", "a", 70.33)]),
            make_bill("b2", split_results=[make_share("p1", "a", 150.00)]),
        ]

        ledger = calculate_pending_participants(bills, NOW)

        assert len(ledger) == 1
        entry = ledger[0]
        assert entry.total_pending_amount == pytest.approx(220.33)
        assert entry.pending_bills == 2
        assert [b.id for b in entry.bills] == ["b1", "b2"]

    def test_same_participant_twice_in_one_bill(self):
        bill = make_bill("b1", title="Lunch", split_results=[
            make_share("p1", "a", 10),
            make_share("p1", "a", 5),
        ])

        ledger = calculate_pending_participants([bill], NOW)

        entry = ledger[0]
        assert entry.pending_bills == 1
        assert len(entry.bills) == 1
        assert entry.bills[0].to_dict() == {"id": "b1", "title": "Lunch", "amount": 15, "date": NOW}
        assert entry.total_pending_amount == 15

    def test_repeat_within_bill_after_other_bill(self):
        bills = [
            make_bill("b1", split_results=[make_share("p1", "a", 1)]),
            make_bill("b2", split_results=[make_share("p1", "a", 2), make_share("p1", "a", 3)]),
        ]

        entry = calculate_pending_participants(bills, NOW)[0]

        assert entry.pending_bills == 2
        assert [b.amount for b in entry.bills] == [1, 5]
        assert entry.total_pending_amount == 6

    def test_keyed_by_id_not_name(self):
        bill = make_bill("b1", split_results=[
            make_share("p1", "Sam", 10),
            make_share("p2", "Sam", 20),
        ])

        ledger = calculate_pending_participants([bill], NOW)

        assert [(p.id, p.name) for p in ledger] == [("p2", "Sam"), ("p1", "Sam")]

    def test_name_comes_from_first_split_result(self):
        bills = [
            make_bill("b1", split_results=[make_share("p1", "Alice", 10)]),
            make_bill("b2", split_results=[make_share("p1", "Alicia", 10)]),
        ]
        assert calculate_pending_participants(bills, NOW)[0].name == "Alice"

    def test_ties_keep_first_seen_order(self):
        bill = make_bill("b1", split_results=[
            make_share("p3", "c", 10),
            make_share("p1", "a", 10),
            make_share("p2", "b", 10),
        ])
        assert [p.id for p in calculate_pending_participants([bill], NOW)] == ["p3", "p1", "p2"]

    def test_zero_amounts_are_kept(self):
        bill = make_bill("b1", split_results=[make_share("p1", "a", 0), make_share("p2", "b", "n/a")])

        ledger = calculate_pending_participants([bill], NOW)

        assert {p.id for p in ledger} == {"p1", "p2"}
        assert all(p.total_pending_amount == 0 for p in ledger)

    def test_malformed_records_are_skipped(self):
        bills = [
            make_bill("b1", split_results=None),
            make_bill("b2", split_results="not a list"),
            make_bill("b3", split_results=[
                SplitResult(participant=None, amount=50),
                SplitResult(participant=Participant(None, "ghost", "pending"), amount=50),
                make_share("p1", "a", 40, status="paid"),
                make_share("p2", "b", 40, status="Pending"),
                "junk",
                make_share("p3", "c", 25),
            ]),
        ]

        ledger = calculate_pending_participants(bills, NOW)

        assert [p.id for p in ledger] == ["p3"]

    def test_bill_defaults(self):
        bill = make_bill("b1", date=None, split_results=[make_share("p1", "a", 5)])
        bill.title = ""

        entry = calculate_pending_participants([bill], NOW)[0]

        assert entry.bills[0].title == "Untitled bill"
        assert entry.bills[0].date == NOW

    def test_invariants_hold(self):
        bills = [
            make_bill("b1", split_results=[make_share("p1", "a", 3.3), make_share("p2", "b", 1.1),
                                           make_share("p1", "a", 2.2)]),
            make_bill("b2", split_results=[make_share("p2", "b", -7), make_share("p1", "a", 0.1)]),
            make_bill("b3", split_results=[make_share("p2", "b", float("nan")), make_share("p3", "c", 9)]),
        ]

        for entry in calculate_pending_participants(bills, NOW):
            assert len(entry.bills) == entry.pending_bills
            assert entry.total_pending_amount == pytest.approx(sum(b.amount for b in entry.bills))
            assert entry.total_pending_amount >= 0
            assert not math.isnan(entry.total_pending_amount)
            assert all(b.amount >= 0 for b in entry.bills)

    def test_empty_input(self):
        assert calculate_pending_participants([], NOW) == []

    def test_to_dict(self):
        bill = make_bill("b1", split_results=[make_share("p1", "a", 5)])
        entry = calculate_pending_participants([bill], NOW)[0]
        assert entry.to_dict() == {
            "id": "p1",
            "name": "a",
            "total_pending_amount": 5,
            "pending_bills": 1,
            "bills": [{"id": "b1", "title": "Bill b1", "amount": 5, "date": NOW}],
        }
