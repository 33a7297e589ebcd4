"""
SmartBillSplitter - FastAPI Web Backend

This module serves the JSON API of the bill splitting application.

Features:
    - Spending statistics and the cross-bill pending ledger per user
    - Pending participants of a single bill
    - Equal / itemized split calculation
    - Bill creation, updates, deletion and participant payment status updates
    - Temporary share links

Endpoints:
    GET   /users/{user_id}/statistics                      - Statistics rollup
    GET   /users/{user_id}/pending                         - Pending ledger
    POST  /users/{user_id}/bills                           - Split and save a bill
    POST  /bills/split                                     - Split a draft (not saved)
    GET   /bills/{bill_id}/pending                         - Pending people of one bill
    PATCH /bills/{bill_id}                                 - Update bill fields
    DELETE /bills/{bill_id}                                - Delete a bill
    PATCH /bills/{bill_id}/participants/{participant_id}   - Update payment status
    POST  /shares                                          - Create a temporary share
    GET   /shares/{share_id}                               - Resolve a temporary share
    GET   /health                                          - Health check

Usage:
    uvicorn main:app --reload
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel, Field

from analytics import aggregate
from firebase_store import (
    ShareExpiredError,
    create_temporary_share,
    delete_bill,
    get_bill,
    get_temporary_share,
    get_user_bills,
    save_bill,
    update_bill,
    update_participant_status
)
from logging_setup import configure_logging, get_logger
from pending import (
    calculate_pending_participants,
    calculate_total_pending_amount,
    format_pending_participants_text,
    get_pending_participants_from_split_results
)
from splitter import BillDraft, calculate_final_total, calculate_split

configure_logging()
logger = get_logger("api")


# =============================================================================
# Pydantic Models for Request/Response Validation
# =============================================================================

class ParticipantIn(BaseModel):
    """A participant of a bill draft."""
    id: str = Field(..., min_length=1, description="Participant ID")
    name: str = Field(..., min_length=1, description="Participant name")
    status: str = Field("pending", pattern=r"^(paid|pending)$", description="Payment status")


class FoodItemIn(BaseModel):
    """A food item of a bill draft."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, description="Item name")
    price: float = Field(..., ge=0, description="Item price (>= 0)")
    participants: list[str] = Field(default_factory=list, description="IDs of participants who shared it")


class BillDraftIn(BaseModel):
    """Request model for splitting or creating a bill."""
    name: str = Field("", description="Bill name (required when saving)")
    categoryId: str = Field("other", description="Category ID")
    foodItems: list[FoodItemIn] = Field(default_factory=list)
    participants: list[ParticipantIn] = Field(default_factory=list)
    vat: float = Field(0, ge=0, description="VAT percentage")
    serviceCharge: float = Field(0, ge=0, description="Service charge percentage")
    discount: float = Field(0, ge=0, description="Discount amount")
    splitMethod: str = Field("equal", pattern=r"^(equal|itemized)$")
    description: Optional[str] = None


class SplitResultOut(BaseModel):
    """One participant's share."""
    participant: dict
    amount: float
    items: list[dict]


class SplitResponse(BaseModel):
    """Response model for split calculation."""
    total_amount: float
    split_results: list[SplitResultOut]


class BillCreatedResponse(BaseModel):
    """Response model for bill creation."""
    bill_id: str
    total_amount: float
    split_results: list[SplitResultOut]


class BillUpdate(BaseModel):
    """Request model for updating a bill; only the fields sent are written."""
    name: Optional[str] = Field(None, min_length=1, description="Bill name")
    categoryId: Optional[str] = Field(None, min_length=1, description="Category ID")
    description: Optional[str] = None
    participants: Optional[list[ParticipantIn]] = None


class BillUpdateResponse(BaseModel):
    """Response model for a bill update."""
    bill_id: str
    updated_fields: list[str]
    status: Optional[str] = None


class StatusUpdate(BaseModel):
    """Request model for a participant status update."""
    status: str = Field(..., pattern=r"^(paid|pending)$")


class StatusUpdateResponse(BaseModel):
    """Response model for a participant status update."""
    bill_id: str
    participant_id: str
    status: str
    bill_status: str


class BillPendingResponse(BaseModel):
    """Response model for a single bill's pending participants."""
    bill_id: str
    pending_participants: list[dict]
    total_pending_amount: float
    summary: str


class ShareCreate(BaseModel):
    """Request model for a temporary share; any extra bill fields are kept."""
    model_config = {"extra": "allow"}

    billName: str = Field(..., min_length=1)
    participants: list[Any] = Field(..., min_length=1)


class ShareResponse(BaseModel):
    """Response model for a temporary share."""
    share_id: str
    expiry_date: str


app = FastAPI(title="Smart Bill Splitter")


# =============================================================================
# Helper Functions
# =============================================================================

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _draft_from_request(draft_data: BillDraftIn) -> BillDraft:
    return BillDraft.from_dict(draft_data.model_dump())


def _raise_http(e: Exception) -> None:
    """Map store and validation errors to HTTP errors."""
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ValueError):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ShareExpiredError):
        raise HTTPException(status_code=410, detail=str(e))
    if isinstance(e, LookupError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, RuntimeError):
        raise HTTPException(status_code=503, detail=str(e))
    logger.exception("Unhandled error")
    raise HTTPException(status_code=500, detail=str(e))


# =============================================================================
# API Endpoints
# =============================================================================

@app.get("/users/{user_id}/statistics")
async def get_user_statistics(user_id: str):
    """
    Get spending statistics for a user.

    Request flow:
        1. Fetch the user's bills from Firestore (firebase_store.py)
        2. Aggregate them with the current time as window anchor (analytics.py)
        3. Return the rollup
    """
    try:
        bills = get_user_bills(user_id)
        return aggregate(bills, _now()).to_dict()
    except Exception as e:
        _raise_http(e)


@app.get("/users/{user_id}/pending")
async def get_user_pending(user_id: str):
    """Get the pending ledger across all of a user's bills."""
    try:
        bills = get_user_bills(user_id)
        ledger = calculate_pending_participants(bills, _now())
        return {
            "pending_participants": [p.to_dict() for p in ledger],
            "total_pending_amount": sum(p.total_pending_amount for p in ledger)
        }
    except Exception as e:
        _raise_http(e)


@app.post("/bills/split", response_model=SplitResponse)
async def split_bill(draft_data: BillDraftIn):
    """Calculate the split of a draft without saving it."""
    try:
        draft = _draft_from_request(draft_data)
        results = calculate_split(draft)
        return SplitResponse(
            total_amount=calculate_final_total(draft),
            split_results=[SplitResultOut(**s.to_dict()) for s in results]
        )
    except Exception as e:
        _raise_http(e)


@app.post("/users/{user_id}/bills", response_model=BillCreatedResponse, status_code=201)
async def create_bill(user_id: str, draft_data: BillDraftIn):
    """
    Split and save a bill.

    Request flow:
        1. Validate input using Pydantic model
        2. Calculate the split (splitter.py)
        3. Save the bill with its split results (firebase_store.py)
    """
    try:
        draft = _draft_from_request(draft_data)
        results = calculate_split(draft)
        bill_id = save_bill(user_id, draft, results)
        return BillCreatedResponse(
            bill_id=bill_id,
            total_amount=calculate_final_total(draft),
            split_results=[SplitResultOut(**s.to_dict()) for s in results]
        )
    except Exception as e:
        _raise_http(e)


@app.get("/bills/{bill_id}/pending", response_model=BillPendingResponse)
async def get_bill_pending(bill_id: str):
    """Get the pending participants of one bill."""
    try:
        bill = get_bill(bill_id)
        if bill is None:
            raise HTTPException(status_code=404, detail=f"Bill '{bill_id}' not found")
        return BillPendingResponse(
            bill_id=bill_id,
            pending_participants=get_pending_participants_from_split_results(bill.split_results),
            total_pending_amount=calculate_total_pending_amount(bill.split_results),
            summary=format_pending_participants_text(bill.split_results)
        )
    except Exception as e:
        _raise_http(e)


@app.patch("/bills/{bill_id}", response_model=BillUpdateResponse)
async def patch_bill(bill_id: str, update: BillUpdate):
    """Update the name, category, description or participants of a bill."""
    try:
        fields = update.model_dump(exclude_unset=True)
        written = update_bill(bill_id, fields)
        return BillUpdateResponse(
            bill_id=bill_id,
            updated_fields=sorted(fields),
            status=written.get("status")
        )
    except Exception as e:
        _raise_http(e)


@app.delete("/bills/{bill_id}", status_code=204, response_class=Response)
async def remove_bill(bill_id: str):
    """Delete a bill."""
    try:
        delete_bill(bill_id)
        return Response(status_code=204)
    except Exception as e:
        _raise_http(e)


@app.patch("/bills/{bill_id}/participants/{participant_id}", response_model=StatusUpdateResponse)
async def set_participant_status(bill_id: str, participant_id: str, update: StatusUpdate):
    """Mark a participant of a bill as paid or pending."""
    try:
        bill_status = update_participant_status(bill_id, participant_id, update.status)
        return StatusUpdateResponse(
            bill_id=bill_id,
            participant_id=participant_id,
            status=update.status,
            bill_status=bill_status
        )
    except Exception as e:
        _raise_http(e)


@app.post("/shares", response_model=ShareResponse, status_code=201)
async def create_share(share_data: ShareCreate):
    """Create a temporary share link for a bill (expires after 24 hours)."""
    try:
        return ShareResponse(**create_temporary_share(share_data.model_dump()))
    except Exception as e:
        _raise_http(e)


@app.get("/shares/{share_id}")
async def read_share(share_id: str):
    """Resolve a temporary share link (400 bad id, 404 unknown, 410 expired)."""
    try:
        share = get_temporary_share(share_id)
        if share is None:
            raise HTTPException(status_code=404, detail="Share not found")
        return share
    except Exception as e:
        _raise_http(e)


# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"status": "healthy", "service": "Smart Bill Splitter"}


# =============================================================================
# Run with: python main.py
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
