"""Tests for the web channel adapter."""
import pytest

from pos_pricing.channel import (
    CatalogDescriptor,
    derive_mode,
    lift_finishings,
    normalize_specs,
    to_raw_input,
    validate_specs,
)
from pos_pricing.engine import FinishingSelection, PricingMode, build_cart_item
from pos_pricing.engine.errors import ChannelValidationError, InputError
from pos_pricing.engine.models import PriceMode


@pytest.fixture
def banner_descriptor():
    return {
        "form_type": "CALCULATOR",
        "display_config": {"fixed_width": False},
        "pos_product_id": "BANNER",
        "web_display_name": "Outdoor Banner",
        "master_price": 50000,
        "required_inputs": ["length", "width"],
        "validation_rules": {"length": {"min": 1, "max": 10, "unit": "m"}},
        "input_options": {"material": [{"value": "Flexi 280g"}]},
        "finishing_groups": [
            {"id": "EYELETS", "title": "Eyelets", "price_mode": "PER_UNIT", "options": [{"id": "EYELET", "label": "Eyelet", "price": 2000}]},
        ],
    }


@pytest.mark.parametrize("form_type,config,expected", [
    ("CALCULATOR", {}, PricingMode.AREA),
    ("CALCULATOR", {"fixed_width": True}, PricingMode.LINEAR),
    ("CALCULATOR", {"fixed_width": "yes"}, PricingMode.AREA),
    ("UNIT", None, PricingMode.UNIT),
    ("UNIT", {"show_price_tiers": True}, PricingMode.TIERED),
    ("MATRIX", {}, PricingMode.MATRIX),
    ("WIZARD", {}, PricingMode.UNIT),
    (None, None, PricingMode.UNIT),
])
def test_derive_mode(form_type, config, expected):
    assert derive_mode(form_type, config) is expected


def test_area_specs_fill_defaults(banner_descriptor):
    specs = normalize_specs(PricingMode.AREA, {"length": "2", "width": "1.5"}, banner_descriptor)
    assert specs.dimensions["length"] == 2.0
    assert specs.dimensions["width"] == 1.5
    assert specs.dimensions["material"] == "Flexi 280g"
    assert specs.summary == "2m × 1.5m (3.00m²) • Flexi 280g"


def test_linear_width_is_fixed(settings):
    specs = normalize_specs(PricingMode.LINEAR, {"length": 3, "width": 9}, {}, settings)
    assert specs.dimensions["width"] == settings.default_roll_width

    fixed = normalize_specs(PricingMode.LINEAR, {"length": 3}, {"fixed_width": 1.5}, settings)
    assert fixed.dimensions["width"] == 1.5


def test_booklet_specs():
    specs = normalize_specs(
        PricingMode.BOOKLET,
        {"sheets": "24", "paper_type": "HVS 70g", "print_mode": "TWO_SIDE", "qty_books": "50"},
        {},
    )
    assert specs.dimensions == {"sheets_per_book": 24.0, "variant_label": "HVS 70g", "print_mode_id": "TWO_SIDE"}
    assert specs.qty == "50"


def test_unparsable_number_names_the_field():
    with pytest.raises(ChannelValidationError) as exc:
        normalize_specs(PricingMode.AREA, {"length": "two", "width": 1}, {})
    assert exc.value.code == "INVALID_FIELD"
    assert exc.value.field == "length"


def test_every_mode_normalizes():
    from pos_pricing.channel.web_order import _NORMALIZERS
    assert set(_NORMALIZERS) == set(PricingMode)


def test_range_violation_message_has_unit(banner_descriptor):
    specs = normalize_specs(PricingMode.AREA, {"length": 0.5, "width": 1}, banner_descriptor)
    with pytest.raises(ChannelValidationError) as exc:
        validate_specs(specs, banner_descriptor)

    assert str(exc.value.message) == "length below minimum: 1 m"
    assert exc.value.code == "BELOW_MINIMUM"
    assert exc.value.value == 0.5
    assert isinstance(exc.value, InputError)


def test_range_maximum(banner_descriptor):
    specs = normalize_specs(PricingMode.AREA, {"length": 12.5, "width": 1}, banner_descriptor)
    with pytest.raises(ChannelValidationError) as exc:
        validate_specs(specs, banner_descriptor)
    assert exc.value.message == "length exceeds maximum: 10 m"


def test_required_inputs(banner_descriptor):
    specs = normalize_specs(PricingMode.AREA, {"length": 2}, banner_descriptor)
    with pytest.raises(ChannelValidationError) as exc:
        validate_specs(specs, banner_descriptor)
    assert exc.value.code == "MISSING_FIELD"
    assert exc.value.field == "width"


def test_lift_finishings(banner_descriptor):
    """Ids resolve against the catalog, objects keep their own price, junk is dropped."""
    lifted = lift_finishings(
        ["EYELET", "ROPE", {"id": "HEM", "label": "Hemming", "price": 3000}, None, 7],
        banner_descriptor,
    )
    assert lifted == (
        FinishingSelection(id="EYELET", name="Eyelet", price=2000),
        FinishingSelection(id="ROPE", name="ROPE", price=0),
        FinishingSelection(id="HEM", name="Hemming", price=3000, price_mode=PriceMode.PER_UNIT),
    )
    assert lift_finishings("EYELET") == ()


def test_web_order_to_cart_item(settings, banner_descriptor):
    web_order = {
        "id": 42,
        "product_code": "WEB-BANNER",
        "specs_snapshot": {"length": "1.5", "width": "1.5", "finishing": ["EYELET"]},
        "notes_customer": "Please deliver",
        "quoted_amount": 112500,
    }
    raw = to_raw_input(web_order, banner_descriptor, settings)
    item = build_cart_item(raw, settings)

    assert raw.product.pricing_mode is PricingMode.AREA
    # 2.25m² bills 3m²; eyelets are free on area pricing
    assert item.total_price == 150000
    assert item.notes == "Please deliver"
    assert item.meta["web_order_id"] == 42
    assert item.meta["web_estimate"] == 112500


def test_tiered_web_order(settings):
    descriptor = {
        "form_type": "UNIT",
        "display_config": {"show_price_tiers": True},
        "pos_product_id": "BROCHURE",
        "web_display_name": "Brochure",
        "master_price": 1200,
        "wholesale_rules": [{"min": 1, "max": 9, "price": 1000}, {"min": 10, "max": 99, "price": 800}],
    }
    item = build_cart_item(to_raw_input({"specs_snapshot": {"qty": "10"}}, descriptor, settings), settings)
    assert item.total_price == 8000


def test_descriptor_mode_overrides_form_type(settings):
    descriptor = CatalogDescriptor(
        form_type="UNIT",
        pricing_mode="BOOKLET",
        pos_product_id="YASIN_BOOK",
        web_display_name="Yasin Book",
        master_price=300,
        print_modes=[{"id": "ONE_SIDE", "label": "One-sided", "price": 200}],
    )
    raw = to_raw_input({"specs_snapshot": {"sheets": 10, "print_mode": "ONE_SIDE", "qty_books": 5}}, descriptor, settings)
    assert build_cart_item(raw, settings).total_price == (300 + 200) * 10 * 5


def test_descriptor_without_product_id(settings):
    with pytest.raises(ChannelValidationError) as exc:
        to_raw_input({"specs_snapshot": {"qty": 1}}, {"form_type": "UNIT"}, settings)
    assert exc.value.field == "pos_product_id"


def test_malformed_descriptor(settings):
    with pytest.raises(ChannelValidationError) as exc:
        to_raw_input({}, {"master_price": "a lot"}, settings)
    assert exc.value.code == "INVALID_FIELD"
    assert exc.value.field == "master_price"
