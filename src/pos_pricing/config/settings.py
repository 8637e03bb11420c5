"""
Centralized settings and path configuration for the pricing core.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Business rules and paths with sensible defaults."""

    project_root: Path
    catalog_dir: Path

    # Quantity limits per line item
    min_quantity: int = 1
    max_quantity: int = 9999

    # Dimension limits in meters
    max_dimension: float = 100.0
    default_roll_width: float = 1.2

    # Allowed drift between unit_price * qty and total_price
    price_tolerance: float = 0.01

    # Priority service fees and lead times
    express_fee: float = 15000.0
    urgent_fee: float = 30000.0
    standard_hours: int = 24
    express_hours: int = 5
    urgent_hours: int = 2
    express_cutoff_hour: int = 17

    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()
        default_catalog = Path(__file__).resolve().parent.parent / 'data' / 'catalog'

        catalog_dir = os.environ.get('POS_PRICING_CATALOG_DIR')
        max_quantity = os.environ.get('POS_PRICING_MAX_QUANTITY')

        return cls(
            project_root=root,
            catalog_dir=Path(catalog_dir) if catalog_dir else default_catalog,
            max_quantity=int(max_quantity) if max_quantity else 9999,
            log_level=os.environ.get('POS_PRICING_LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
