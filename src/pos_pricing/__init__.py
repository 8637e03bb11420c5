"""
POS Pricing Package

Pricing and cart-validation core for a print shop point of sale.
Prices nine product categories, composes finishing charges, and only ever
produces validated, committable cart items and orders.
"""

__version__ = "1.0.0"
