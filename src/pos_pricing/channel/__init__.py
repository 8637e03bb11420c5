"""External order intake: web channel orders into the core's input contract."""
from .web_order import (
    CatalogDescriptor,
    DisplayConfig,
    FieldConstraint,
    NormalizedSpecs,
    WebOrder,
    derive_mode,
    lift_finishings,
    normalize_specs,
    to_raw_input,
    validate_specs,
)

__all__ = [
    'CatalogDescriptor',
    'DisplayConfig',
    'FieldConstraint',
    'NormalizedSpecs',
    'WebOrder',
    'derive_mode',
    'lift_finishings',
    'normalize_specs',
    'to_raw_input',
    'validate_specs',
]
