"""
Finishing Cost Composer - additive finishing charge per priced unit.

The pricing mode decides the accrual rule:

- AREA: finishing is free, always 0 whatever is selected.
- LINEAR: PER_METER, each option's price times the length.
- BOOKLET: per option, PER_JOB adds once per book and anything else adds
  once per sheet of the book.
- every other mode: PER_UNIT, each option's price once.

The result is the charge for one unit (one piece, one run of length, one
book); the caller multiplies by quantity.
"""
from typing import Iterable, Optional

from .models import FinishingSelection, PriceMode, PricingMode


def sum_finishing(finishings: Optional[Iterable[FinishingSelection]], multiplier: float = 1.0) -> float:
    """Sum of finishing prices, each scaled by ``multiplier``."""
    if not finishings:
        return 0.0
    return sum(f.price * multiplier for f in finishings)


def accrual_rule_for(mode: PricingMode) -> Optional[PriceMode]:
    """
    Accrual rule a mode applies to its finishing selections.

    None means finishing is not charged (AREA) or each option carries its
    own rule (BOOKLET).
    """
    if mode in (PricingMode.AREA, PricingMode.BOOKLET):
        return None
    if mode is PricingMode.LINEAR:
        return PriceMode.PER_METER
    return PriceMode.PER_UNIT


def compose_finishing_cost(
    mode: PricingMode,
    finishings: Optional[Iterable[FinishingSelection]],
    length: float = 0.0,
    sheets_per_book: int = 0,
) -> float:
    """Finishing charge for one unit of ``mode``."""
    finishings = list(finishings or [])

    if mode is PricingMode.AREA:
        return 0.0

    if mode is PricingMode.LINEAR:
        return sum_finishing(finishings, length)

    if mode is PricingMode.BOOKLET:
        per_book = 0.0
        for f in finishings:
            if f.price_mode is PriceMode.PER_JOB:
                per_book += f.price
            else:
                per_book += f.price * sheets_per_book
        return per_book

    return sum_finishing(finishings)
