"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from bills import Bill, Participant, SplitResult


NOW = datetime(2026, 10, 19, 12, 0, 0)


def make_share(participant_id, name, amount, status="pending"):
    """Build a split result for a participant."""
    return SplitResult(participant=Participant(participant_id, name, status), amount=amount)


def make_bill(bill_id, total_amount=0.0, category="food", date=NOW, participants=None,
              split_results=None, title=None, status="pending"):
    """Build a bill with sensible defaults for the statistics tests."""
    return Bill(
        id=bill_id,
        title=title or f"Bill {bill_id}",
        date=date,
        created_at=date,
        total_amount=total_amount,
        category=category,
        status=status,
        participants=participants if participants is not None else [],
        split_results=split_results
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fake_doc():
    """Factory for Firestore document snapshots."""
    def _make(doc_id, data, exists=True):
        doc = MagicMock()
        doc.id = doc_id
        doc.exists = exists
        doc.to_dict.return_value = data
        return doc
    return _make


@pytest.fixture
def fake_db(monkeypatch):
    """Replace the Firestore client used by the store with a MagicMock."""
    import firebase_store

    db = MagicMock()
    monkeypatch.setattr(firebase_store, "get_db", lambda: db)
    return db
