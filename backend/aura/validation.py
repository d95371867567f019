from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from . import catalog
from .catalog import BoxConfig


class ValidationError(ValueError):
    """400-level input problem."""

    reason = "invalid"

    def to_dict(self) -> dict:
        return {"error": str(self), "reason": self.reason}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., referral code already in use)."""


class InvalidSubmission(ValidationError):
    """Request body does not have the shape of a box submission."""

    reason = "invalid_submission"


class UnknownBoxSize(ValidationError):
    reason = "unknown_box_size"

    def __init__(self, box_size: Any):
        super().__init__("Invalid box size")
        self.box_size = box_size


class SlotCountMismatch(ValidationError):
    """Product count differs from the box's slot count (in either direction)."""

    reason = "slot_count_mismatch"

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Box must contain exactly {expected} items")
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["expected"] = self.expected
        data["actual"] = self.actual
        return data


@dataclass(frozen=True)
class BoxSubmission:
    """
    One checkout request's box selection.

    product_ids keeps the submitted order; it is what ends up serialized
    into the checkout metadata. parse_box_submission stores it as received
    (a tuple when a list was sent) and validate_box_submission checks its
    type once the box size is known.
    """
    box_size: str
    product_ids: Any
    dealer_code: str | None = None


def parse_box_submission(payload: Any) -> BoxSubmission:
    """
    Build a BoxSubmission from a decoded JSON body.

    Only the envelope is checked here: the body must be an object and
    boxSize and dealerCode must be strings when present. productIds is
    carried through unchecked so that an unknown box size is reported
    before anything about the products. A missing productIds is read as
    an empty selection.

    Raises InvalidSubmission for bodies that fail those checks.
    """
    if not isinstance(payload, dict):
        raise InvalidSubmission("Request body must be a JSON object")

    box_size = payload.get("boxSize")
    if box_size is not None and not isinstance(box_size, str):
        raise InvalidSubmission("boxSize must be a string")

    dealer_code = payload.get("dealerCode")
    if dealer_code is not None and not isinstance(dealer_code, str):
        raise InvalidSubmission("dealerCode must be a string")

    product_ids = payload.get("productIds")
    if product_ids is None:
        product_ids = ()
    elif isinstance(product_ids, list):
        product_ids = tuple(product_ids)

    return BoxSubmission(
        box_size=box_size or "",
        product_ids=product_ids,
        dealer_code=dealer_code,
    )


def validate_box_submission(submission: BoxSubmission) -> BoxConfig:
    """
    Check a submission against the catalog and return its box config.

    Checks run in order and stop at the first failure:
    1. box_size must be a catalog size (UnknownBoxSize)
    2. product_ids must be a list of strings (InvalidSubmission)
    3. product count must equal the size's slot count exactly (SlotCountMismatch)

    Duplicate products, pricing and stock are not checked here.
    """
    config = catalog.lookup(submission.box_size)
    if config is None:
        raise UnknownBoxSize(submission.box_size)

    product_ids = submission.product_ids
    if not isinstance(product_ids, (list, tuple)):
        raise InvalidSubmission("productIds must be a list")
    # bool is rejected along with every other non-string
    if not all(isinstance(product_id, str) for product_id in product_ids):
        raise InvalidSubmission("productIds must contain strings")

    actual = len(product_ids)
    if actual != config.slots:
        raise SlotCountMismatch(expected=config.slots, actual=actual)

    return config
