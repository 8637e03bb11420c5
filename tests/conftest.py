"""Shared fixtures for the pricing core tests."""
import pytest

from pos_pricing.config.settings import Settings
from pos_pricing.engine import PricingEngine, Product, RawInput


@pytest.fixture
def settings():
    return Settings.load()


@pytest.fixture
def engine(settings):
    return PricingEngine(settings)


@pytest.fixture
def banner():
    """AREA product priced per square meter."""
    return Product.from_dict({
        "id": "BANNER",
        "name": "Outdoor Banner",
        "pricing_mode": "AREA",
        "base_price": 50000,
        "variants": [{"label": "Flexi 340g", "price": 35000}],
    })


@pytest.fixture
def sticker_roll():
    """LINEAR product with a rolled-goods variant."""
    return Product.from_dict({
        "id": "STICKER_ROLL",
        "name": "Roll Sticker",
        "pricing_mode": "LINEAR",
        "base_price": 60000,
        "variants": [{"label": "Vinyl Glossy", "width": 1.2, "price_per_meter": 75000}],
    })


@pytest.fixture
def poster():
    """MATRIX product with the legacy flat size table."""
    return Product.from_dict({
        "id": "POSTER",
        "name": "Poster",
        "pricing_mode": "MATRIX",
        "prices": {"A2": 40000, "A1": 75000},
    })


@pytest.fixture
def business_card():
    """MATRIX product with a size -> material table."""
    return Product.from_dict({
        "id": "BUSINESS_CARD",
        "name": "Business Card",
        "pricing_mode": "MATRIX",
        "matrix_prices": {"Box 100": {"Art Carton": 30000, "Linen": 45000}},
    })


@pytest.fixture
def booklet():
    return Product.from_dict({
        "id": "YASIN_BOOK",
        "name": "Yasin Book",
        "pricing_mode": "BOOKLET",
        "base_price": 300,
        "min_order": 10,
        "variants": [{"label": "Art Paper 120g", "price": 600}],
        "print_modes": [{"id": "ONE_SIDE", "label": "One-sided", "price": 200}],
    })


@pytest.fixture
def mug():
    return Product.from_dict({"id": "MUG", "name": "Custom Mug", "pricing_mode": "UNIT", "base_price": 35000})


@pytest.fixture
def brochure():
    """TIERED product with two ascending wholesale tiers."""
    return Product.from_dict({
        "id": "BROCHURE",
        "name": "Brochure",
        "pricing_mode": "TIERED",
        "base_price": 1200,
        "wholesale_rules": [
            {"min": 1, "max": 9, "price": 1000},
            {"min": 10, "max": 99, "price": 800},
        ],
    })


@pytest.fixture
def sticker_sheet():
    return Product.from_dict({"id": "A3_STICKER", "name": "A3+ Sticker Sheet", "pricing_mode": "UNIT_SHEET", "base_price": 8000})


@pytest.fixture
def design_service():
    return Product.from_dict({"id": "DESIGN", "name": "Design Service", "pricing_mode": "MANUAL"})


@pytest.fixture
def custom_package():
    return Product.from_dict({"id": "CUSTOM", "name": "Custom Print Package", "pricing_mode": "ADVANCED"})


@pytest.fixture
def make_raw():
    """Build a RawInput with sensible defaults."""
    def _make(product, qty=1, dimensions=None, finishings=(), manual_price=None, notes=""):
        return RawInput(
            product=product,
            qty=qty,
            dimensions=dimensions or {},
            finishings=tuple(finishings),
            manual_price=manual_price,
            notes=notes,
        )
    return _make
