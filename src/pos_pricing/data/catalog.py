"""
Catalog Repository - loads a product catalog snapshot from CSV files.

The pricing core never performs I/O; this repository reads everything up
front so callers can hand the core a consistent snapshot.

Files (all optional except products.csv), keyed by ``product_id``:
- products.csv: id, name, pricing_mode, base_price, min_order, category_id
- variants.csv: product_id, label, price, width, price_per_meter
- wholesale_rules.csv: product_id, min, max, price
- matrix_prices.csv: product_id, size, material, price (blank material = flat table)
- print_modes.csv: product_id, id, label, price
- finishings.csv: product_id, group_id, group_title, group_type, price_mode, option_id, label, price
"""
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.models import (
    FinishingGroup,
    FinishingOption,
    FinishingSelection,
    PriceMode,
    PricingMode,
    PrintMode,
    Product,
    Variant,
    WholesaleRule,
)
from ..engine.wholesale import find_overlaps

logger = logging.getLogger(__name__)


def _optional_float(value: str) -> Optional[float]:
    return float(value) if value else None


class CatalogRepository:
    """
    In-memory catalog built from a directory of CSV exports.
    """

    def __init__(self, catalog_dir: Optional[Path] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.catalog_dir = Path(catalog_dir or settings.catalog_dir)
        self.warnings: list[str] = []

        products = self._load_csv('products.csv')
        if products.empty:
            raise FileNotFoundError(f"No products found in {self.catalog_dir / 'products.csv'}")

        self.variants = self._load_csv('variants.csv')
        self.wholesale_rules = self._load_csv('wholesale_rules.csv')
        self.matrix_prices = self._load_csv('matrix_prices.csv')
        self.print_modes = self._load_csv('print_modes.csv')
        self.finishings = self._load_csv('finishings.csv')

        self._products: dict[str, Product] = {}
        for _, row in products.iterrows():
            product = self._build_product(row)
            self._products[product.id] = product

        for msg in self.warnings:
            logger.warning(msg)
        logger.info("Loaded %d products from %s", len(self._products), self.catalog_dir)

    def _load_csv(self, filename: str) -> pd.DataFrame:
        path = self.catalog_dir / filename
        if path.exists():
            df = pd.read_csv(path, dtype=str).fillna('')
            # Strip all strings and headers
            df.columns = [c.strip() for c in df.columns]
            for col in df.columns:
                df[col] = df[col].astype(str).str.strip()
            return df
        return pd.DataFrame()

    def _rows_for(self, df: pd.DataFrame, product_id: str) -> pd.DataFrame:
        if df.empty:
            return df
        return df[df['product_id'] == product_id]

    def _build_product(self, row: pd.Series) -> Product:
        product_id = row['id']

        variants = [
            Variant(
                label=v['label'],
                price=_optional_float(v.get('price', '')),
                width=_optional_float(v.get('width', '')),
                price_per_meter=_optional_float(v.get('price_per_meter', '')),
            )
            for _, v in self._rows_for(self.variants, product_id).iterrows()
        ]

        rules = [
            WholesaleRule(min=int(r['min']), max=int(r['max']), price=float(r['price']))
            for _, r in self._rows_for(self.wholesale_rules, product_id).iterrows()
        ]
        for first, second in find_overlaps(rules):
            self.warnings.append(
                f"{product_id}: wholesale tiers {first.min}-{first.max} and {second.min}-{second.max} overlap"
            )

        matrix: dict = {}
        for _, m in self._rows_for(self.matrix_prices, product_id).iterrows():
            if m.get('material'):
                matrix.setdefault(m['size'], {})[m['material']] = float(m['price'])
            else:
                matrix[m['size']] = float(m['price'])

        print_modes = [
            PrintMode(id=p['id'], label=p.get('label') or p['id'], price=float(p['price'] or 0))
            for _, p in self._rows_for(self.print_modes, product_id).iterrows()
        ]

        groups: dict[str, FinishingGroup] = {}
        for _, f in self._rows_for(self.finishings, product_id).iterrows():
            group = groups.get(f['group_id'])
            if group is None:
                group = FinishingGroup(
                    id=f['group_id'],
                    title=f.get('group_title') or f['group_id'],
                    type=f.get('group_type') or 'checkbox',
                    price_mode=PriceMode.parse(f.get('price_mode')),
                )
                groups[group.id] = group
            group.options.append(FinishingOption(label=f['label'], price=float(f['price'] or 0), id=f['option_id']))

        return Product(
            id=product_id,
            name=row['name'],
            base_price=float(row.get('base_price') or 0),
            pricing_mode=PricingMode.parse(row.get('pricing_mode')),
            variants=variants,
            matrix_prices=matrix,
            wholesale_rules=rules,
            finishing_groups=list(groups.values()),
            print_modes=print_modes,
            min_order=int(row.get('min_order') or 1),
            category_id=row.get('category_id') or None,
        )

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def list_products(self, mode: Optional[PricingMode] = None) -> list[Product]:
        products = list(self._products.values())
        if mode is not None:
            products = [p for p in products if p.pricing_mode is mode]
        return products

    def get_finishing(self, product_id: str, option_id: str) -> Optional[FinishingSelection]:
        """A finishing option of a product, resolved to a priced selection."""
        product = self.get_product(product_id)
        if product is None:
            return None
        for group in product.finishing_groups:
            option = group.find_option(option_id)
            if option is not None:
                return FinishingSelection(id=option_id, name=option.label, price=option.price, price_mode=group.price_mode)
        return None


# Default repository instance
_repository: Optional[CatalogRepository] = None


def get_repository() -> CatalogRepository:
    """Get the global catalog repository, loading it on first use."""
    global _repository
    if _repository is None:
        _repository = CatalogRepository()
    return _repository
