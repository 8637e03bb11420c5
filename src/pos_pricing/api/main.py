import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from pos_pricing import __version__
from pos_pricing.channel import to_raw_input
from pos_pricing.config.settings import get_settings
from pos_pricing.data.catalog import get_repository
from pos_pricing.engine import PricingEngine, PricingError, PricingMode, build_cart_item, normalize_call
from pos_pricing.engine.errors import InputError, INVALID_PRODUCT
from pos_pricing.engine.wholesale import find_tier
from pos_pricing.policy import OrderFinalizer

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="POS Pricing API",
    description="Pricing and cart validation core for the print shop POS",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

engine = PricingEngine(settings)
finalizer = OrderFinalizer()


class ItemRequest(BaseModel):
    """A configurator payload; the product is inline or looked up by id."""
    product_id: Optional[str] = None
    product: Optional[dict[str, Any]] = None
    qty: Any = 1
    dimensions: dict[str, Any] = Field(default_factory=dict)
    finishings: list[Any] = Field(default_factory=list)
    manual_price: Any = None
    notes: str = ""


class OrderRequest(BaseModel):
    items: list[ItemRequest]
    customer: Optional[dict[str, Any]] = None
    operator: Optional[dict[str, Any]] = None
    discount: float = 0.0
    paid: float = 0.0
    payment_method: str = "CASH"
    is_tempo: bool = False
    target_date: Optional[str] = None


class ChannelRequest(BaseModel):
    web_order: dict[str, Any]
    descriptor: dict[str, Any]


def _unprocessable(e: PricingError) -> HTTPException:
    return HTTPException(status_code=422, detail=e.to_dict())


def _raw_input(req: ItemRequest):
    finishings = list(req.finishings)
    if req.product is not None:
        product: Any = req.product
    elif req.product_id:
        repository = get_repository()
        product = repository.get_product(req.product_id)
        if product is None:
            raise InputError(INVALID_PRODUCT, f"Unknown product: {req.product_id}", field="product_id", value=req.product_id)
        # bare option ids resolve against the catalog's finishing groups
        finishings = [
            (repository.get_finishing(product.id, f) or f) if isinstance(f, str) else f
            for f in finishings
        ]
    else:
        product = None

    return normalize_call({
        "product": product,
        "qty": req.qty,
        "dimensions": req.dimensions,
        "finishings": finishings,
        "manual_price": req.manual_price,
        "notes": req.notes,
    })


@app.get("/")
async def root():
    return {"status": "online", "message": "POS Pricing API Active", "version": __version__}


@app.get("/catalog")
async def get_catalog(mode: Optional[str] = None):
    try:
        pricing_mode = PricingMode.parse(mode) if mode else None
        products = get_repository().list_products(pricing_mode)
    except PricingError as e:
        raise _unprocessable(e)
    return jsonable_encoder(products)


@app.post("/preview")
async def preview_price(req: ItemRequest):
    """Live price; rejections come back as a zero result, never an error."""
    try:
        raw = _raw_input(req)
    except PricingError as e:
        raise _unprocessable(e)

    result = engine.preview(raw)
    response = jsonable_encoder(result)
    response["trace_text"] = result.get_trace_text()

    product = raw.product
    if product is not None and product.pricing_mode is PricingMode.TIERED and isinstance(raw.qty, int):
        tier = find_tier(raw.qty, product.wholesale_rules)
        response["active_tier"] = jsonable_encoder(tier) if tier else None
    return response


@app.post("/cart-items")
async def create_cart_item(req: ItemRequest):
    try:
        item = build_cart_item(_raw_input(req), engine=engine)
    except PricingError as e:
        raise _unprocessable(e)
    return item.to_dict()


@app.post("/orders/validate")
async def validate_order(req: OrderRequest):
    """Build every line and the order payload without persisting anything."""
    try:
        items = [build_cart_item(_raw_input(line), engine=engine) for line in req.items]
        payload = finalizer.build_payload(
            items,
            req.customer,
            req.operator,
            discount=req.discount,
            paid=req.paid,
            payment_method=req.payment_method,
            is_tempo=req.is_tempo,
            target_date=req.target_date,
        )
    except PricingError as e:
        raise _unprocessable(e)
    return jsonable_encoder(payload.to_dict())


@app.post("/channel/cart-items")
async def create_channel_cart_item(req: ChannelRequest):
    try:
        raw = to_raw_input(req.web_order, req.descriptor, settings)
        item = build_cart_item(raw, engine=engine)
    except PricingError as e:
        raise _unprocessable(e)
    return item.to_dict()
