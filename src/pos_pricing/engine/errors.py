"""
Typed rejections raised by the pricing core.

Input errors are user-facing and name the offending field. Calculation
errors are internal inconsistencies. Commit errors come only from order
finalization.
"""
from typing import Any, Optional


class PricingError(Exception):
    """Base class for every rejection raised by the core."""

    def __init__(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        constraint: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field
        self.value = value
        self.constraint = constraint

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "value": self.value if _is_plain(self.value) else repr(self.value),
            "constraint": self.constraint,
        }


def _is_plain(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


class InputError(PricingError):
    """Missing or unparsable operator input."""


class CalculationError(PricingError):
    """A calculation that cannot resolve a price."""


class CommitError(PricingError):
    """An order or cart that may not be committed."""


class ChannelValidationError(InputError):
    """External channel input that violates a declared constraint."""


# Input error codes
INVALID_PRODUCT = "INVALID_PRODUCT"
INVALID_QTY = "INVALID_QTY"
INVALID_DIMENSION = "INVALID_DIMENSION"
INVALID_MANUAL_PRICE = "INVALID_MANUAL_PRICE"
INVALID_FINISHING = "INVALID_FINISHING"
UNKNOWN_MODE = "UNKNOWN_MODE"

# Calculation error codes
UNRESOLVED_PRICE = "UNRESOLVED_PRICE"
INVALID_TOTAL = "INVALID_TOTAL"
PRICE_MISMATCH = "PRICE_MISMATCH"
INVALID_DESCRIPTION = "INVALID_DESCRIPTION"

# Commit error codes
EMPTY_CART = "EMPTY_CART"
MISSING_CUSTOMER = "MISSING_CUSTOMER"
MISSING_OPERATOR = "MISSING_OPERATOR"
INVALID_ITEM = "INVALID_ITEM"
CART_LOCKED = "CART_LOCKED"
INVALID_PAYMENT = "INVALID_PAYMENT"
PERSISTENCE_FAILED = "PERSISTENCE_FAILED"

# Channel error codes
MISSING_FIELD = "MISSING_FIELD"
INVALID_FIELD = "INVALID_FIELD"
BELOW_MINIMUM = "BELOW_MINIMUM"
ABOVE_MAXIMUM = "ABOVE_MAXIMUM"
