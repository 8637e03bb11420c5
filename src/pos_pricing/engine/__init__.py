"""Pricing core: calculators, dispatcher and the cart item validation gate."""
from .cart_item_builder import build_cart_item
from .errors import CalculationError, ChannelValidationError, CommitError, InputError, PricingError
from .models import CalcContext, CartItem, FinishingSelection, PriceMode, PriceResult, PricingMode, Product, WholesaleRule
from .pricing_engine import PricingEngine
from .raw_input import RawInput, normalize_call

__all__ = [
    'build_cart_item',
    'normalize_call',
    'PricingEngine',
    'RawInput',
    'CalcContext',
    'CartItem',
    'FinishingSelection',
    'PriceMode',
    'PriceResult',
    'PricingMode',
    'Product',
    'WholesaleRule',
    'PricingError',
    'InputError',
    'CalculationError',
    'CommitError',
    'ChannelValidationError',
]
