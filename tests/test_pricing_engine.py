"""Tests for the unified dispatcher and its strict/preview call modes."""
import pytest

from pos_pricing.engine import CalcContext, FinishingSelection, PricingError, PricingMode, Product
from pos_pricing.engine.errors import CalculationError, InputError
from pos_pricing.engine.models import PriceMode


def test_every_mode_has_a_handler():
    from pos_pricing.engine.pricing_engine import _HANDLERS
    assert set(_HANDLERS) == set(PricingMode)


def test_area_example(engine, banner, make_raw):
    """1.5 x 1.5 at 50000/m², qty 2 -> 300000."""
    result = engine.calculate(make_raw(banner, qty=2, dimensions={"length": 1.5, "width": 1.5}))
    assert result.subtotal == 300000


def test_area_variant_price_overrides_base(engine, banner, make_raw):
    raw = make_raw(banner, dimensions={"length": 1, "width": 1, "variant_label": "Flexi 340g"})
    assert engine.calculate(raw).subtotal == 35000


def test_area_finishing_never_charged(engine, banner, make_raw):
    """Eyelets on a banner contribute 0."""
    eyelets = FinishingSelection(id="EYELET", name="Eyelet", price=2000)
    plain = engine.calculate(make_raw(banner, qty=2, dimensions={"length": 1.5, "width": 1.5}))
    finished = engine.calculate(make_raw(banner, qty=2, dimensions={"length": 1.5, "width": 1.5}, finishings=[eyelets]))
    assert finished.subtotal == plain.subtotal
    assert finished.finishing_cost == 0


def test_linear_base_price(engine, sticker_roll, make_raw):
    result = engine.calculate(make_raw(sticker_roll, qty=2, dimensions={"length": 3}))
    assert result.subtotal == 360000


def test_linear_rolled_goods_ignore_width(engine, sticker_roll, make_raw):
    """With a per-meter variant, width has no effect on the price."""
    narrow = make_raw(sticker_roll, dimensions={"length": 2, "width": 0.5, "variant_label": "Vinyl Glossy"})
    wide = make_raw(sticker_roll, dimensions={"length": 2, "width": 3.0, "variant_label": "Vinyl Glossy"})
    assert engine.calculate(narrow).subtotal == engine.calculate(wide).subtotal == 150000


def test_linear_finishing_per_meter(engine, sticker_roll, make_raw):
    lamination = FinishingSelection(id="LAM", name="Lamination", price=15000, price_mode=PriceMode.PER_METER)
    raw = make_raw(sticker_roll, qty=2, dimensions={"length": 2, "variant_label": "Vinyl Glossy"}, finishings=[lamination])
    # (2 x 75000 + 2 x 15000) x 2
    assert engine.calculate(raw).subtotal == 360000


def test_matrix_example(engine, poster, make_raw):
    """A2 at 40000, qty 3 -> 120000."""
    assert engine.calculate(make_raw(poster, qty=3, dimensions={"sizeKey": "A2"})).subtotal == 120000


def test_matrix_nested_table(engine, business_card, make_raw):
    raw = make_raw(business_card, qty=2, dimensions={"size_key": "Box 100", "material": "Linen"})
    assert engine.calculate(raw).subtotal == 90000


def test_matrix_variant_price_list_takes_precedence(engine, make_raw):
    product = Product.from_dict({
        "id": "P",
        "name": "Poster",
        "pricing_mode": "MATRIX",
        "variants": [{"label": "A3 (29.7 x 42 cm)", "price_list": {"Art Paper": 15000}}],
        "matrix_prices": {"A3": {"Art Paper": 99999}},
    })
    raw = make_raw(product, dimensions={"size_key": "A3", "material": "Art Paper"})
    assert engine.calculate(raw).subtotal == 15000


def test_matrix_unknown_size_is_hard_failure(engine, poster, make_raw):
    with pytest.raises(CalculationError) as exc:
        engine.calculate(make_raw(poster, dimensions={"size_key": "A0"}))
    assert exc.value.code == "UNRESOLVED_PRICE"
    assert exc.value.field == "size_key"


def test_booklet(engine, booklet, make_raw):
    binding = FinishingSelection(id="SOFT", name="Softcover", price=5000, price_mode=PriceMode.PER_JOB)
    raw = make_raw(
        booklet,
        qty=10,
        dimensions={"sheetsPerBook": 20, "printModeId": "ONE_SIDE", "variantLabel": "Art Paper 120g"},
        finishings=[binding],
    )
    result = engine.calculate(raw)
    assert result.unit_price == (600 + 200) * 20 + 5000
    assert result.subtotal == result.unit_price * 10


def test_booklet_paper_falls_back_to_base_price(engine, booklet, make_raw):
    raw = make_raw(booklet, qty=10, dimensions={"sheets": 10})
    assert engine.calculate(raw).unit_price == 300 * 10


def test_booklet_unknown_print_mode(engine, booklet, make_raw):
    with pytest.raises(CalculationError) as exc:
        engine.calculate(make_raw(booklet, qty=10, dimensions={"sheets": 10, "print_mode": "FOIL"}))
    assert exc.value.field == "print_mode_id"


def test_tiered_example(engine, brochure, make_raw):
    """qty 10 resolves the 800 tier: 8000 total."""
    result = engine.calculate(make_raw(brochure, qty=10))
    assert result.unit_price == 800
    assert result.subtotal == 8000


def test_unit_sheet(engine, sticker_sheet, make_raw):
    result = engine.calculate(make_raw(sticker_sheet, qty=5, dimensions={"cutting_cost": 2000}))
    assert result.subtotal == 50000


def test_manual(engine, design_service, make_raw):
    assert engine.calculate(make_raw(design_service, qty=2, manual_price="150000")).subtotal == 300000


def test_manual_without_price(engine, design_service, make_raw):
    with pytest.raises(InputError) as exc:
        engine.calculate(make_raw(design_service))
    assert exc.value.code == "INVALID_MANUAL_PRICE"


def test_advanced_passes_precomputed_totals(engine, custom_package, make_raw):
    raw = make_raw(custom_package, qty=10, dimensions={"total_price": 250000, "unit_price_final": 25000, "revenue_print": 200000})
    result = engine.calculate(raw)
    assert result.subtotal == 250000
    assert result.meta["revenue_print"] == 200000


@pytest.mark.parametrize("qty", [0, -1, 1.5, "abc", None, True, 10000])
def test_invalid_quantity(engine, mug, make_raw, qty):
    with pytest.raises(InputError) as exc:
        engine.calculate(make_raw(mug, qty=qty))
    assert exc.value.code == "INVALID_QTY"


def test_quantity_string_is_parsed(engine, mug, make_raw):
    assert engine.calculate(make_raw(mug, qty="3")).subtotal == 105000


def test_min_order_enforced(engine, booklet, make_raw):
    with pytest.raises(InputError) as exc:
        engine.calculate(make_raw(booklet, qty=5, dimensions={"sheets": 10}))
    assert exc.value.code == "INVALID_QTY"


@pytest.mark.parametrize("dimensions", [
    {"length": 0, "width": 1},
    {"length": 1},
    {"length": "wide", "width": 1},
    {"length": float("inf"), "width": 1},
    {"length": 101, "width": 1},
])
def test_invalid_area_dimensions(engine, banner, make_raw, dimensions):
    with pytest.raises(InputError) as exc:
        engine.calculate(make_raw(banner, dimensions=dimensions))
    assert exc.value.code == "INVALID_DIMENSION"


def test_missing_product(engine, make_raw):
    with pytest.raises(InputError) as exc:
        engine.calculate(make_raw(None))
    assert exc.value.code == "INVALID_PRODUCT"


def test_preview_degrades_to_zero(engine, poster, make_raw):
    """The same unresolvable input that raises in strict mode previews as 0."""
    raw = make_raw(poster, dimensions={"size_key": "A0"})
    result = engine.preview(raw)
    assert result.subtotal == 0
    assert result.unit_price == 0
    assert result.breakdown == ""
    assert result.trace[-1].step == "Rejected"
    assert result.trace[-1].value == "UNRESOLVED_PRICE"

    with pytest.raises(PricingError):
        engine.calculate(raw, CalcContext.STRICT)


def test_preview_matches_strict_when_resolvable(engine, poster, make_raw):
    raw = make_raw(poster, qty=3, dimensions={"size_key": "A2"})
    assert engine.preview(raw).subtotal == engine.calculate(raw).subtotal


def test_preview_of_incomplete_configuration(engine, banner, make_raw):
    """Mid-configuration, with only one dimension entered, preview shows 0."""
    assert engine.preview(make_raw(banner, dimensions={"length": 2})).subtotal == 0
