"""
Firebase Store Module

This module reads and writes bills and temporary share links in Firebase
Firestore. It is the boundary where raw documents are normalized into Bill
records before any statistics are computed.

Features:
    - Fetch a user's bills, newest first
    - Fetch a single bill
    - Save a new bill with its split results
    - Update a participant's payment status (bill status re-derived)
    - Update or delete a bill
    - Create and resolve temporary share links (24 hour expiry, expired
      shares are deleted when read)

Firestore Structure:
    bills/{bill_id}
        - name: string
        - categoryId: string
        - totalAmount: float
        - vat, serviceCharge, discount: float
        - splitMethod: string (equal, itemized)
        - foodItems: list
        - participants: list of {id, name, status}
        - splitResults: list of {participant, amount, items}
        - status: string (paid, pending)
        - userId: string
        - createdAt: timestamp
        - updatedAt: timestamp (set on updates)

    temporary_shared_bills/{share_id}
        - bill fields as posted by the client
        - shareId: string (32 hex chars)
        - createdAt: ISO timestamp
        - expiryDate: ISO timestamp
        - isTemporary: true
        - type: "temp_share"

Functions:
    get_user_bills: Fetch and normalize all bills of a user.
    get_bill: Fetch and normalize one bill.
    save_bill: Save a bill draft and its split results.
    update_participant_status: Mark a participant paid or pending.
    update_bill: Update stored fields of a bill.
    delete_bill: Delete a bill.
    create_temporary_share: Store a bill snapshot behind a random share id.
    get_temporary_share: Resolve a share id; expired shares raise ShareExpiredError.
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from google.cloud.firestore_v1.base_query import FieldFilter

from bills import PARTICIPANT_STATUSES, Bill, Participant, SplitResult, derive_bill_status
from config.firebase_config import get_db
from config.settings import BILLS_COLLECTION, SHARES_COLLECTION, SHARE_EXPIRY_HOURS
from logging_setup import get_logger
from splitter import BillDraft, calculate_final_total
from utils import to_datetime

logger = get_logger("firebase_store")

SHARE_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
PROTECTED_BILL_FIELDS = {"userId", "createdAt"}


class ShareExpiredError(LookupError):
    """Raised when a temporary share exists but is past its expiry date."""


def _get_timestamp() -> datetime:
    """
    Get current UTC timestamp.

    Returns:
        datetime: Timezone-aware UTC now.
    """
    return datetime.now(timezone.utc)


def _require_db():
    """
    Return the Firestore client.

    Raises:
        RuntimeError: If Firestore is not available.
    """
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db


def _validate_id(value: str, field_name: str) -> None:
    """
    Validate that an id is a non-empty string.

    Raises:
        ValueError: If the id is invalid.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")


def get_user_bills(user_id: str) -> list[Bill]:
    """
    Fetch all bills of a user, newest first.

    Args:
        user_id: Owner of the bills.

    Returns:
        list[Bill]: Normalized bills (see Bill.from_dict).

    Raises:
        ValueError: If user_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_id(user_id, "user_id")
    db = _require_db()

    query = db.collection(BILLS_COLLECTION) \
              .where(filter=FieldFilter("userId", "==", user_id)) \
              .order_by("createdAt", direction="DESCENDING")

    bills = [Bill.from_dict(doc.to_dict() or {}, bill_id=doc.id) for doc in query.stream()]
    logger.info("Fetched %d bills for user %s", len(bills), user_id)
    return bills


def get_bill(bill_id: str) -> Optional[Bill]:
    """
    Fetch a single bill.

    Returns:
        Bill | None: The bill, or None if it does not exist.

    Raises:
        ValueError: If bill_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_id(bill_id, "bill_id")
    db = _require_db()

    snapshot = db.collection(BILLS_COLLECTION).document(bill_id).get()
    if not snapshot.exists:
        return None
    return Bill.from_dict(snapshot.to_dict() or {}, bill_id=snapshot.id)


def save_bill(user_id: str, draft: BillDraft, split_results: list[SplitResult]) -> str:
    """
    Save a new bill.

    The stored status is derived from the participants, and the total is
    the draft's final total (after VAT, service charge and discount).

    Args:
        user_id: Owner of the bill.
        draft: The bill draft.
        split_results: Split computed for the draft.

    Returns:
        str: The new document id.

    Raises:
        ValueError: If user_id or the bill name is invalid, or the draft has
            no participants.
        RuntimeError: If Firestore is not available.
    """
    _validate_id(user_id, "user_id")
    if not isinstance(draft.name, str) or not draft.name.strip():
        raise ValueError("bill name must be a non-empty string")
    if not draft.participants:
        raise ValueError("a bill needs at least one participant")

    db = _require_db()

    doc_data = draft.to_dict()
    doc_data.update({
        "name": draft.name.strip(),
        "totalAmount": calculate_final_total(draft),
        "splitResults": [s.to_dict() for s in split_results],
        "status": derive_bill_status(Bill(id="", participants=draft.participants)),
        "userId": user_id,
        "createdAt": _get_timestamp()
    })

    doc_ref = db.collection(BILLS_COLLECTION).document()
    doc_ref.set(doc_data)
    logger.info("Saved bill %s for user %s", doc_ref.id, user_id)
    return doc_ref.id


def update_participant_status(bill_id: str, participant_id: str, status: str) -> str:
    """
    Set a participant's payment status on a bill.

    The participant is updated in both the participants list and the split
    results, then the bill status is re-derived and stored.

    Args:
        bill_id: The bill to update.
        participant_id: The participant to update.
        status: "paid" or "pending".

    Returns:
        str: The bill's new derived status.

    Raises:
        ValueError: If an id or the status is invalid.
        LookupError: If the bill or the participant does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_id(bill_id, "bill_id")
    _validate_id(participant_id, "participant_id")
    if status not in PARTICIPANT_STATUSES:
        raise ValueError(f"status must be one of {sorted(PARTICIPANT_STATUSES)}, got: {status}")

    db = _require_db()
    doc_ref = db.collection(BILLS_COLLECTION).document(bill_id)
    snapshot = doc_ref.get()
    if not snapshot.exists:
        raise LookupError(f"bill '{bill_id}' does not exist")

    data = snapshot.to_dict() or {}
    raw_participants = data.get("participants")
    if not isinstance(raw_participants, list):
        raw_participants = []

    # Every stored entry is written back; only the matching one changes.
    # Legacy string entries are rewritten as {id, name, status} when matched.
    participants = []
    normalized = []
    found = False
    for raw in raw_participants:
        if raw is None:
            participants.append(raw)
            continue
        participant = Participant.from_dict(raw)
        if participant.id == participant_id:
            found = True
            participant.status = status
            raw = dict(raw, status=status) if isinstance(raw, dict) else participant.to_dict()
        participants.append(raw)
        normalized.append(participant)

    if not found:
        raise LookupError(f"participant '{participant_id}' is not on bill '{bill_id}'")

    split_results = []
    for entry in data.get("splitResults") or []:
        if isinstance(entry, dict) and isinstance(entry.get("participant"), dict):
            entry = dict(entry)
            entry["participant"] = dict(entry["participant"])
            if entry["participant"].get("id") == participant_id:
                entry["participant"]["status"] = status
        split_results.append(entry)

    bill_status = derive_bill_status(Bill(id=bill_id, participants=normalized))
    doc_ref.update({
        "participants": participants,
        "splitResults": split_results,
        "status": bill_status,
        "updatedAt": _get_timestamp()
    })
    logger.info("Participant %s on bill %s marked %s; bill is %s", participant_id, bill_id, status, bill_status)
    return bill_status


def update_bill(bill_id: str, fields: dict) -> dict:
    """
    Update stored fields of a bill.

    The owner and creation time cannot be changed. When participants are
    replaced, the stored bill status is re-derived from them.

    Args:
        bill_id: The bill to update.
        fields: Stored field names (camelCase) and their new values.

    Returns:
        dict: The fields written, including updatedAt and any derived status.

    Raises:
        ValueError: If bill_id is invalid, fields is empty or touches a
            protected field.
        LookupError: If the bill does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_id(bill_id, "bill_id")
    if not isinstance(fields, dict) or not fields:
        raise ValueError("no fields to update")
    protected = PROTECTED_BILL_FIELDS.intersection(fields)
    if protected:
        raise ValueError(f"fields cannot be updated: {sorted(protected)}")

    db = _require_db()
    doc_ref = db.collection(BILLS_COLLECTION).document(bill_id)
    if not doc_ref.get().exists:
        raise LookupError(f"bill '{bill_id}' does not exist")

    update = dict(fields)
    if "participants" in update:
        raw_participants = update["participants"] or []
        update["status"] = derive_bill_status(Bill(
            id=bill_id,
            participants=[Participant.from_dict(p) for p in raw_participants if p is not None]
        ))
    update["updatedAt"] = _get_timestamp()

    doc_ref.update(update)
    logger.info("Updated bill %s: %s", bill_id, sorted(fields))
    return update


def delete_bill(bill_id: str) -> None:
    """
    Delete a bill.

    Raises:
        ValueError: If bill_id is invalid.
        LookupError: If the bill does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_id(bill_id, "bill_id")
    db = _require_db()

    doc_ref = db.collection(BILLS_COLLECTION).document(bill_id)
    if not doc_ref.get().exists:
        raise LookupError(f"bill '{bill_id}' does not exist")

    doc_ref.delete()
    logger.info("Deleted bill %s", bill_id)


def create_temporary_share(bill_data: dict, now: Optional[datetime] = None) -> dict:
    """
    Store a bill snapshot behind a random share id.

    Args:
        bill_data: Bill fields posted by the client; needs billName (or
            name) and a non-empty participants list.
        now: Creation time; defaults to the current UTC time.

    Returns:
        dict: {share_id, expiry_date} with expiry_date as ISO string.

    Raises:
        ValueError: If the bill data is incomplete.
        RuntimeError: If Firestore is not available.
    """
    name = bill_data.get("billName") or bill_data.get("name")
    if not name or not bill_data.get("participants"):
        raise ValueError("bill data is incomplete: a name and participants are required")

    db = _require_db()
    now = now or _get_timestamp()
    share_id = secrets.token_hex(16)
    expiry_date = now + timedelta(hours=SHARE_EXPIRY_HOURS)

    share_data = dict(bill_data)
    share_data.update({
        "shareId": share_id,
        "createdAt": now.isoformat(),
        "expiryDate": expiry_date.isoformat(),
        "isTemporary": True,
        "type": "temp_share"
    })

    db.collection(SHARES_COLLECTION).document(share_id).set(share_data)
    logger.info("Created temporary share %s", share_id)

    return {"share_id": share_id, "expiry_date": expiry_date.isoformat()}


def get_temporary_share(share_id: str, now: Optional[datetime] = None) -> Optional[dict]:
    """
    Resolve a temporary share.

    An expired share is deleted from Firestore when it is found.

    Returns:
        dict | None: The stored share data, or None if the share does not exist.

    Raises:
        ValueError: If share_id is not 32 hex characters.
        ShareExpiredError: If the share has expired.
        RuntimeError: If Firestore is not available.
    """
    if not isinstance(share_id, str) or not SHARE_ID_PATTERN.match(share_id):
        raise ValueError("share_id must be 32 hex characters")
    db = _require_db()

    doc_ref = db.collection(SHARES_COLLECTION).document(share_id)
    snapshot = doc_ref.get()
    if not snapshot.exists:
        return None

    data = snapshot.to_dict() or {}
    expiry_date = to_datetime(data.get("expiryDate"))
    now = now or _get_timestamp()
    if expiry_date is not None:
        if expiry_date.tzinfo is None:
            expiry_date = expiry_date.replace(tzinfo=timezone.utc)
        if expiry_date <= now:
            doc_ref.delete()
            logger.info("Temporary share %s has expired and was deleted", share_id)
            raise ShareExpiredError(f"share '{share_id}' has expired")
    return data
