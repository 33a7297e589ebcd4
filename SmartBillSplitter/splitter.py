"""
Splitter Module

This module computes how much each participant owes for a bill draft.

Features:
    - Equal split: the final total divided evenly
    - Itemized split: each food item divided among the people who ate it,
      with VAT, service charge and discount distributed in proportion to
      each person's food cost
    - Decimal-safe rounding

Bill total:
    subtotal      = sum of food item prices
    VAT           = subtotal x vat%
    after VAT     = subtotal + VAT
    service       = after VAT x service_charge%
    final total   = after VAT + service - discount

Data Model:
    Input - BillDraft:
        - name: string
        - category_id: string
        - food_items: list of FoodItem {id, name, price, participants}
        - participants: list of Participant
        - vat, service_charge: percentages (>= 0)
        - discount: absolute amount (>= 0)
        - split_method: "equal" or "itemized"

    Output - list of SplitResult, one per participant:
        - participant: Participant
        - amount: float (2 decimal places)
        - items: list of {name, amount}

Functions:
    calculate_split: Split a draft with its chosen method.
    calculate_final_total: Bill total after VAT, service charge and discount.
    calculate_additional_costs: VAT + service charge - discount.
"""

import math
from decimal import Decimal
from typing import Optional

from bills import PENDING, Participant, SplitResult
from config.settings import DEFAULT_CATEGORY
from utils import _round_decimal


SPLIT_EQUAL = "equal"
SPLIT_ITEMIZED = "itemized"
SPLIT_METHODS = {SPLIT_EQUAL, SPLIT_ITEMIZED}

FOOD_LINE = "Food"
VAT_LINE = "VAT"
SERVICE_CHARGE_LINE = "Service charge"
DISCOUNT_LINE = "Discount"
TOTAL_LINE = "Total"


class FoodItem:
    """
    A line on the receipt.

    Attributes:
        id (str): Item identifier.
        name (str): Item name.
        price (float): Item price (>= 0).
        participants (list[str]): Ids of the participants who shared the item.
    """

    def __init__(self, id: str, name: str, price: float, participants: Optional[list[str]] = None):
        self.id = id
        self.name = name
        self.price = price
        self.participants = participants or []

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "participants": self.participants
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FoodItem":
        price = _coerce_non_negative(data.get("price", 0), "price")
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            price=price,
            participants=list(data.get("participants") or [])
        )


class BillDraft:
    """A bill being created, before it is saved."""

    def __init__(
        self,
        name: str,
        participants: list[Participant],
        food_items: list[FoodItem],
        split_method: str = SPLIT_EQUAL,
        vat: float = 0.0,
        service_charge: float = 0.0,
        discount: float = 0.0,
        category_id: str = DEFAULT_CATEGORY,
        description: Optional[str] = None
    ):
        self.name = name
        self.participants = participants
        self.food_items = food_items
        self.split_method = split_method
        self.vat = vat
        self.service_charge = service_charge
        self.discount = discount
        self.category_id = category_id
        self.description = description

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "categoryId": self.category_id,
            "foodItems": [item.to_dict() for item in self.food_items],
            "participants": [p.to_dict() for p in self.participants],
            "vat": self.vat,
            "serviceCharge": self.service_charge,
            "discount": self.discount,
            "splitMethod": self.split_method,
            "description": self.description
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BillDraft":
        """
        Create a draft from a request payload (camelCase keys).

        Raises:
            ValueError: If the split method is unknown, a price, percentage
                or discount is negative or not a finite number, or a food
                item is shared by someone who is not a participant.
        """
        split_method = data.get("splitMethod", SPLIT_EQUAL)
        if split_method not in SPLIT_METHODS:
            raise ValueError(f"splitMethod must be one of {sorted(SPLIT_METHODS)}, got: {split_method}")

        participants = []
        for raw in data.get("participants") or []:
            participant = Participant.from_dict(raw)
            if participant.status is None:
                participant.status = PENDING
            participants.append(participant)

        food_items = [FoodItem.from_dict(item) for item in data.get("foodItems") or []]
        participant_ids = {p.id for p in participants}
        for item in food_items:
            unknown = [pid for pid in item.participants if pid not in participant_ids]
            if unknown:
                raise ValueError(f"food item '{item.name}' is shared by unknown participants: {unknown}")

        return cls(
            name=data.get("name", ""),
            participants=participants,
            food_items=food_items,
            split_method=split_method,
            vat=_coerce_non_negative(data.get("vat", 0), "vat"),
            service_charge=_coerce_non_negative(data.get("serviceCharge", 0), "serviceCharge"),
            discount=_coerce_non_negative(data.get("discount", 0), "discount"),
            category_id=data.get("categoryId") or DEFAULT_CATEGORY,
            description=data.get("description")
        )


def _coerce_non_negative(value, field_name: str) -> float:
    """
    Convert a numeric field to float, rejecting negatives.

    Raises:
        ValueError: If the value is not a number or is negative.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be a number, got: {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"{field_name} must be a finite number, got: {value!r}")
    if number < 0:
        raise ValueError(f"{field_name} must not be negative, got: {value!r}")
    return number


def _d(value: float) -> Decimal:
    return Decimal(str(value))


def _bill_totals(draft: BillDraft) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """Return (subtotal, vat_amount, service_charge_amount, discount) as Decimals."""
    subtotal = sum((_d(item.price) for item in draft.food_items), Decimal("0"))
    vat_amount = subtotal * _d(draft.vat) / Decimal("100")
    after_vat = subtotal + vat_amount
    # Service charge is computed on the amount after VAT
    service_charge_amount = after_vat * _d(draft.service_charge) / Decimal("100")
    return subtotal, vat_amount, service_charge_amount, _d(draft.discount)


def calculate_final_total(draft: BillDraft) -> float:
    """Bill total after VAT, service charge and discount, rounded to 2 places."""
    subtotal, vat_amount, service_charge_amount, discount = _bill_totals(draft)
    return _round_decimal(subtotal + vat_amount + service_charge_amount - discount)


def calculate_additional_costs(draft: BillDraft) -> float:
    """VAT plus service charge minus discount, rounded to 2 places."""
    _, vat_amount, service_charge_amount, discount = _bill_totals(draft)
    return _round_decimal(vat_amount + service_charge_amount - discount)


def calculate_equal_split(draft: BillDraft) -> list[SplitResult]:
    """
    Split the final total evenly among all participants.

    Example (food 120, VAT 5%, service 5%, discount 7):
        VAT = 6, after VAT = 126, service = 6.3, final = 125.3

    Returns:
        list[SplitResult]: One result per participant, in participant order.
        Empty if the draft has no participants.
    """
    count = len(draft.participants)
    if count == 0:
        return []

    subtotal, vat_amount, service_charge_amount, discount = _bill_totals(draft)
    final_total = subtotal + vat_amount + service_charge_amount - discount
    divisor = Decimal(count)
    per_person = _round_decimal(final_total / divisor)

    results = []
    for participant in draft.participants:
        results.append(SplitResult(
            participant=participant,
            amount=per_person,
            items=[
                {"name": FOOD_LINE, "amount": _round_decimal(subtotal / divisor)},
                {"name": VAT_LINE, "amount": _round_decimal(vat_amount / divisor)},
                {"name": SERVICE_CHARGE_LINE, "amount": _round_decimal(service_charge_amount / divisor)},
                {"name": DISCOUNT_LINE, "amount": _round_decimal(-discount / divisor)},
                {"name": TOTAL_LINE, "amount": per_person},
            ]
        ))
    return results


def calculate_itemized_split(draft: BillDraft) -> list[SplitResult]:
    """
    Split by what each participant ate.

    Each item's price is divided equally among its participants (items
    nobody ate are ignored). VAT, service charge and discount are then
    shared in proportion to each person's food cost, so a participant who
    ate nothing owes 0.

    Example (A ate 100, B ate 200, C nothing; VAT 5%, service 5%, discount 30):
        A: 100 + 15/3 + 15.75/3 - 30/3 = 100.25
        B: 200 + 2*(15/3 + 15.75/3 - 30/3) = 200.50
        C: 0

    Returns:
        list[SplitResult]: One result per participant, in participant order.
    """
    food_costs = {p.id: Decimal("0") for p in draft.participants}
    item_lines = {p.id: [] for p in draft.participants}

    for item in draft.food_items:
        eaters = item.participants
        if not eaters:
            continue
        price_per_person = _d(item.price) / Decimal(len(eaters))
        for participant_id in eaters:
            food_costs[participant_id] = food_costs.get(participant_id, Decimal("0")) + price_per_person
            item_lines.setdefault(participant_id, []).append({
                "name": item.name,
                "amount": _round_decimal(price_per_person)
            })

    subtotal, vat_amount, service_charge_amount, discount = _bill_totals(draft)

    results = []
    for participant in draft.participants:
        food_cost = food_costs.get(participant.id, Decimal("0"))
        lines = list(item_lines.get(participant.id, []))

        proportion = food_cost / subtotal if subtotal > 0 else Decimal("0")
        vat_share = vat_amount * proportion
        service_share = service_charge_amount * proportion
        discount_share = discount * proportion

        # Extra cost lines are only listed for people who ate something
        if food_cost > 0:
            if vat_share > 0:
                lines.append({"name": VAT_LINE, "amount": _round_decimal(vat_share)})
            if service_share > 0:
                lines.append({"name": SERVICE_CHARGE_LINE, "amount": _round_decimal(service_share)})
            if discount_share > 0:
                lines.append({"name": DISCOUNT_LINE, "amount": _round_decimal(-discount_share)})

        results.append(SplitResult(
            participant=participant,
            amount=_round_decimal(food_cost + vat_share + service_share - discount_share),
            items=lines
        ))
    return results


def calculate_split(draft: BillDraft) -> list[SplitResult]:
    """Split a draft with its split method ("equal" or anything else -> itemized)."""
    if draft.split_method == SPLIT_EQUAL:
        return calculate_equal_split(draft)
    return calculate_itemized_split(draft)
