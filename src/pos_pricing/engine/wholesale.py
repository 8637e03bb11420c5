"""
Wholesale Tier Resolver - quantity-range lookup against a rule table.

Rules are expected to be non-overlapping; the first rule whose range
contains the quantity wins. ``find_overlaps`` reports tables where an
earlier rule shadows a later one.
"""
from typing import Iterable, Optional

from .models import WholesaleRule


def resolve_tier_price(qty: int, rules: Optional[Iterable[WholesaleRule]]) -> Optional[float]:
    """
    Return the price of the first rule where ``min <= qty <= max``.

    Returns None when no rule matches or the table is empty/absent, in which
    case the caller falls back to the product's base price.
    """
    if not rules:
        return None
    for rule in rules:
        if rule.matches(qty):
            return rule.price
    return None


def find_tier(qty: int, rules: Optional[Iterable[WholesaleRule]]) -> Optional[WholesaleRule]:
    """The matching rule itself, for display of the active tier."""
    for rule in rules or ():
        if rule.matches(qty):
            return rule
    return None


def find_overlaps(rules: Iterable[WholesaleRule]) -> list[tuple[WholesaleRule, WholesaleRule]]:
    """
    Pairs of rules whose quantity ranges overlap.

    Used by catalog loading to warn about tables the resolver would
    silently shadow.
    """
    ordered = sorted(rules, key=lambda r: (r.min, r.max))
    overlaps = []
    for current, following in zip(ordered, ordered[1:]):
        if following.min <= current.max:
            overlaps.append((current, following))
    return overlaps
