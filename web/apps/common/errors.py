"""Error taxonomy shared by every market component.

Domain services signal business failures by raising a ``MarketError``
subclass. ``MarketError`` derives from ``ValueError`` so ``str(exc)`` is
always the stable error code (for example ``"INSUFFICIENT_STOCK"``), and
callers that only care about the code can keep comparing strings.

Each code maps to a human-readable message and an HTTP status used by the
API views. Internal exception details never leave the process; ``detail``
is kept for logs and tests.
"""

from typing import Optional


class MarketError(ValueError):
    """Base class for every business error raised by the market core.

    Attributes:
        code: Stable, upper-case error kind.
        detail: Optional context (item id, balances, ...). Not shown to
            end users.
    """

    code = "MARKET_ERROR"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(self.code)
        self.detail = detail

    def __str__(self) -> str:
        return self.code

    @property
    def message(self) -> str:
        """Human-readable message for this error kind."""
        return MESSAGES.get(self.code, "Something went wrong. Please try again.")

    @property
    def http_status(self) -> int:
        """HTTP status used when this error crosses the API boundary."""
        return HTTP_STATUS.get(self.code, 400)


class InsufficientStock(MarketError):
    code = "INSUFFICIENT_STOCK"


class InsufficientTokens(MarketError):
    code = "INSUFFICIENT_TOKENS"


class LimitExceeded(MarketError):
    code = "LIMIT_EXCEEDED"


class DuplicateItem(MarketError):
    code = "DUPLICATE_ITEM"


class EmptyCart(MarketError):
    code = "EMPTY_CART"


class InvalidTransition(MarketError):
    code = "INVALID_TRANSITION"


class NotFound(MarketError):
    code = "NOT_FOUND"


class DuplicatePending(MarketError):
    code = "DUPLICATE_PENDING"


class AlreadyDecided(MarketError):
    code = "ALREADY_DECIDED"


class InvalidRange(MarketError):
    code = "INVALID_RANGE"


class InvalidPickupTime(MarketError):
    code = "INVALID_PICKUP_TIME"


class Forbidden(MarketError):
    code = "FORBIDDEN"


class IdempotencyConflict(MarketError):
    """An Idempotency-Key was reused with a different payload."""

    code = "IDEMPOTENCY_CONFLICT"


class Conflict(MarketError):
    """Transient: a conditional write kept losing races. Safe to retry."""

    code = "CONFLICT"


MESSAGES = {
    InsufficientStock.code: "One of the items in your cart is no longer available in that quantity.",
    InsufficientTokens.code: "You do not have enough tokens for this order. Please request more tokens.",
    LimitExceeded.code: "You can only order up to 3 items in total.",
    DuplicateItem.code: "This item is already in your cart.",
    EmptyCart.code: "Your cart is empty.",
    InvalidTransition.code: "This action is not allowed in the current state.",
    NotFound.code: "The requested record was not found.",
    DuplicatePending.code: "You already have a pending token request.",
    AlreadyDecided.code: "This token request has already been decided.",
    InvalidRange.code: "The value is outside the allowed range.",
    InvalidPickupTime.code: "Please select one of the available pickup times.",
    Forbidden.code: "You are not allowed to perform this action.",
    Conflict.code: "The market is busy right now. Please try again.",
    IdempotencyConflict.code: "This request key was already used for a different request.",
}

HTTP_STATUS = {
    InsufficientStock.code: 422,
    InsufficientTokens.code: 402,
    LimitExceeded.code: 422,
    DuplicateItem.code: 422,
    EmptyCart.code: 422,
    InvalidTransition.code: 409,
    NotFound.code: 404,
    DuplicatePending.code: 409,
    AlreadyDecided.code: 409,
    InvalidRange.code: 400,
    InvalidPickupTime.code: 400,
    Forbidden.code: 403,
    Conflict.code: 409,
    IdempotencyConflict.code: 409,
}
